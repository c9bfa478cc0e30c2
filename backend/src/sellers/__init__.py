"""Seller onboarding: application, verification and document download"""

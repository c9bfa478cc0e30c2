"""Security tests for the seller onboarding API

This module contains security-focused tests including:
- Authentication bypass attempts
- Privilege escalation through token claims
- SQL injection in search filters
"""

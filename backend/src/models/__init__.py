"""SQLAlchemy Models for the seller onboarding service"""

from .base import Base, PortableJSONB
from .user import User
from .seller import Seller

__all__ = [
    "Base",
    "PortableJSONB",
    "User",
    "Seller",
]

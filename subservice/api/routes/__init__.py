"""
API Routes Package
"""
from . import health, subscriptions

__all__ = ["health", "subscriptions"]

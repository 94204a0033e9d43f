"""
Services Module

Provides the authentication service built on the request executor.
"""

from .auth_service import AuthService

__all__ = ['AuthService']

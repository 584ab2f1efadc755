"""
Security utilities for the application.
This module provides one-way credential hashing and verification, and
unguessable token generation for invitations.
"""
import secrets

from passlib.context import CryptContext

from procurement.core.config import settings
from procurement.core.logging import logger

# Password context for hashing and verification
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.security.bcrypt_rounds,
)


class PasswordManager:
    """Password management utilities."""

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against a hash.

        Args:
            plain_password: The plain text password
            hashed_password: The hashed password

        Returns:
            True if password matches hash, False otherwise
        """
        try:
            return pwd_context.verify(plain_password, hashed_password)
        except (ValueError, TypeError) as e:
            logger.error(f"Password verification error: {e}")
            return False

    @staticmethod
    def get_password_hash(password: str) -> str:
        """
        Generate a salted one-way hash of a password.

        Args:
            password: The plain text password

        Returns:
            Hashed password
        """
        try:
            return pwd_context.hash(password)
        except Exception as e:
            logger.error(f"Password hashing error: {e}")
            raise

    @staticmethod
    def is_acceptable(password: str) -> bool:
        """Minimum credential rule applied at redemption and admin creation."""
        return bool(password and password.strip()) and len(password) >= settings.security.password_min_length


class SecurityUtils:
    """General security utilities."""

    @staticmethod
    def generate_secure_token(length: int = 32) -> str:
        """
        Generate a secure random URL-safe token.

        Args:
            length: Number of random bytes

        Returns:
            Secure random token
        """
        return secrets.token_urlsafe(length)

    @staticmethod
    def generate_invitation_token() -> str:
        """Generate an invitation token sized by configuration."""
        return SecurityUtils.generate_secure_token(settings.invitation.token_bytes)

    @staticmethod
    def token_hint(token: str) -> str:
        """Short, non-reversible prefix of a token for log lines."""
        return f"{token[:6]}..." if token else "<empty>"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return PasswordManager.verify_password(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return PasswordManager.get_password_hash(password)

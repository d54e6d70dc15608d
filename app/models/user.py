"""User role enum for RBAC.

User accounts are owned by the identity service that issues tokens.
This module retains only the UserRole enum used by the RBAC dependency.
"""

import enum


class UserRole(enum.StrEnum):
    """User roles for RBAC."""

    admin = "admin"
    mentor = "mentor"
    student = "student"

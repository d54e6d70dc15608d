"""Pydantic schemas for authentication."""

from typing import Literal

from pydantic import BaseModel


class TokenUser(BaseModel):
    """Lightweight user representation from JWT claims. No DB query needed."""

    id: str
    username: str
    role: Literal["admin", "mentor", "student"]
    email: str = ""

from __future__ import annotations

from pydantic import BaseModel, field_validator


class SignInForm(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class SignUpForm(SignInForm):
    full_name: str = ""

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return value.strip()


def validate_password(password: str, min_length: int = 6) -> None:
    """Form-level check run before any request reaches the backend."""

    if len(password) < min_length:
        raise ValueError(f"Password must be at least {min_length} characters long")


__all__ = ["SignInForm", "SignUpForm", "validate_password"]

"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.domain.changes import ChangeRequest
from src.domain.user import User


class RegistrationForm(BaseModel):
    """Submitted registration form: a nested ``registration`` map."""

    model_config = ConfigDict(populate_by_name=True)

    registration: dict[str, Any]
    captcha_token: str | None = Field(
        None,
        alias="g-recaptcha-response",
        description="reCAPTCHA widget token (only checked when CAPTCHA is enabled)",
    )


class FormResponse(BaseModel):
    """State needed to render a registration form."""

    form: str
    values: dict[str, Any]
    errors: dict[str, list[str]]
    notice: str | None = None

    @classmethod
    def from_changes(
        cls, form: str, changes: ChangeRequest, notice: str | None = None
    ) -> "FormResponse":
        return cls(
            form=form,
            values=changes.form_values(),
            errors=changes.errors,
            notice=notice,
        )


class UserResponse(BaseModel):
    """Public view of an account."""

    id: int
    email: str
    name: str | None
    confirmed: bool

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(id=user.id, email=user.email, name=user.name, confirmed=user.confirmed)


class ShowResponse(BaseModel):
    """Response model for the account page."""

    user: UserResponse
    notices: list[str]


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str

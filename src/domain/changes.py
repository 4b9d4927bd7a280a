"""
Change requests - validation of proposed account changes.

A ChangeRequest carries the submitted params, the column changes that
passed validation and per-field error messages. It is built by
RegistrationSchema and consumed by the repository, which refuses to
persist it while it carries errors.

Constraints applied to registration params:
- Blank strings are treated as missing (``scrub_params``)
- email: required on create, not blank on update, valid address,
  at most 255 characters, stored lowercased
- name: optional, at most 255 characters
- password: required on create, at most 72 bytes (bcrypt input limit)
- password_confirmation: must match password when supplied
- current_password: required to change an existing password
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import bcrypt
from email_validator import EmailNotValidError, validate_email

from .user import User

PERMITTED_FIELDS = ("name", "email", "password", "password_confirmation", "current_password")
SECRET_FIELDS = frozenset({"password", "password_confirmation", "current_password"})

BLANK = "can't be blank"
TAKEN = "has already been taken"

_NAME_MAX_LENGTH = 255
_EMAIL_MAX_LENGTH = 255
_PASSWORD_MAX_BYTES = 72


@dataclass
class ChangeRequest:
    """Proposed changes to a User, with validation errors."""

    data: User | None = None
    params: dict[str, Any] = field(default_factory=dict)
    changes: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.errors

    def add_error(self, field_name: str, message: str) -> None:
        self.errors.setdefault(field_name, []).append(message)

    def form_values(self) -> dict[str, Any]:
        """
        Values to show in a re-rendered form.

        Submitted params win over the stored record; secrets are never
        echoed back.
        """
        values: dict[str, Any] = {}
        if self.data is not None:
            values["name"] = self.data.name
            values["email"] = self.data.email
        for key, value in self.params.items():
            if key not in SECRET_FIELDS:
                values[key] = value
        return values


def scrub_params(params: Mapping[str, Any] | None) -> dict[str, Any]:
    """Keep permitted keys and turn blank strings into None."""
    scrubbed: dict[str, Any] = {}
    for key in PERMITTED_FIELDS:
        if params is None or key not in params:
            continue
        value = params[key]
        if isinstance(value, str):
            if not value.strip():
                value = None
            elif key not in SECRET_FIELDS:
                value = value.strip()
        scrubbed[key] = value
    return scrubbed


@dataclass
class RegistrationSchema:
    """Builds ChangeRequests for the registration form."""

    bcrypt_cost: int = 10

    def new(self) -> ChangeRequest:
        """Empty change request for a blank registration form."""
        return ChangeRequest()

    def changes(self, user: User | None, params: Mapping[str, Any] | None) -> ChangeRequest:
        """
        Validate params against ``user`` (None when registering).

        Args:
            user: Existing user being edited, or None for a new account
            params: Raw ``registration`` map from the request

        Returns:
            ChangeRequest with accepted changes and field errors
        """
        scrubbed = scrub_params(params)
        request = ChangeRequest(data=user, params=scrubbed)
        values = self._cast(request, scrubbed)
        creating = user is None

        self._validate_required(request, scrubbed, creating)
        self._validate_email(request, values, user)
        self._validate_name(request, scrubbed, values, user)
        self._validate_password(request, values, user)

        if request.valid and "password" in values:
            request.changes["password_hash"] = self._hash_password(values["password"])
        return request

    def _cast(self, request: ChangeRequest, scrubbed: dict[str, Any]) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for field_name, value in scrubbed.items():
            if value is None:
                continue
            if not isinstance(value, str):
                request.add_error(field_name, "is invalid")
                continue
            values[field_name] = value

        if "name" in values and len(values["name"]) > _NAME_MAX_LENGTH:
            request.add_error("name", f"should have at most {_NAME_MAX_LENGTH} characters")
            del values["name"]

        if "email" in values:
            try:
                values["email"] = validate_email(values["email"], check_deliverability=False).normalized
            except EmailNotValidError as e:
                request.add_error("email", f"is invalid: {e}")
                del values["email"]
        return values

    def _validate_required(
        self, request: ChangeRequest, scrubbed: dict[str, Any], creating: bool
    ) -> None:
        for field_name in ("email", "password"):
            if scrubbed.get(field_name) is not None:
                continue
            if creating or (field_name == "email" and field_name in scrubbed):
                request.add_error(field_name, BLANK)

    def _validate_email(
        self, request: ChangeRequest, values: dict[str, Any], user: User | None
    ) -> None:
        if "email" not in values or "email" in request.errors:
            return
        email = values["email"].strip().lower()
        if len(email) > _EMAIL_MAX_LENGTH:
            request.add_error("email", f"should have at most {_EMAIL_MAX_LENGTH} characters")
            return
        if user is None or email != user.email:
            request.changes["email"] = email

    def _validate_name(
        self,
        request: ChangeRequest,
        scrubbed: dict[str, Any],
        values: dict[str, Any],
        user: User | None,
    ) -> None:
        if "name" not in scrubbed or "name" in request.errors:
            return
        name = values.get("name")
        if user is None:
            if name is not None:
                request.changes["name"] = name
        elif name != user.name:
            request.changes["name"] = name

    def _validate_password(
        self, request: ChangeRequest, values: dict[str, Any], user: User | None
    ) -> None:
        password = values.get("password")
        for field_name in ("password", "current_password"):
            if field_name in values and len(values[field_name].encode()) > _PASSWORD_MAX_BYTES:
                request.add_error(field_name, f"should have at most {_PASSWORD_MAX_BYTES} bytes")
                del values[field_name]

        if "password_confirmation" in values and values["password_confirmation"] != password:
            request.add_error("password_confirmation", "does not match password")

        if user is None or "password" not in values or "current_password" in request.errors:
            return
        current = values.get("current_password")
        if current is None:
            request.add_error("current_password", BLANK)
        elif not bcrypt.checkpw(current.encode(), user.password_hash.encode()):
            request.add_error("current_password", "is invalid")

    def _hash_password(self, password: str) -> str:
        """Hash password using bcrypt with the configured cost factor."""
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.bcrypt_cost)).decode()

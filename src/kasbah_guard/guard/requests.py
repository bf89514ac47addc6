"""Lenient request models for ``/decide`` and ``/consume``.

Any parseable JSON is accepted. Fields that are missing or of the wrong type
fall back to defaults, and on the redemption path every default denies.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


def _as_object(payload: Any) -> dict[str, Any]:
    return payload if isinstance(payload, dict) else {}


class DecideRequest(BaseModel):
    product: Any = None
    host: Any = None
    action: Any = None
    meta: dict[str, Any] = Field(default_factory=dict)

    @field_validator("meta", mode="before")
    @classmethod
    def _validate_meta(cls, v: Any) -> dict[str, Any]:
        return _as_object(v)

    @classmethod
    def from_payload(cls, payload: Any) -> "DecideRequest":
        return cls.model_validate(_as_object(payload))

    @property
    def preview(self) -> str | None:
        preview = self.meta.get("preview")
        return preview if isinstance(preview, str) else None

    @property
    def secret_count(self) -> int:
        """Number of candidate secrets the caller's own scan reported."""
        secrets = self.meta.get("secrets")
        return len(secrets) if isinstance(secrets, list) else 0

    def ticket_metadata(self) -> dict[str, Any]:
        return {
            "product": self.product,
            "host": self.host,
            "action": self.action,
            "meta": self.meta,
        }


class ConsumeRequest(BaseModel):
    # None marks a ticket field that was present but not a string.
    ticket: str | None = ""
    choice: str = "DENY"

    @field_validator("ticket", mode="before")
    @classmethod
    def _validate_ticket(cls, v: Any) -> str | None:
        return v if isinstance(v, str) else None

    @field_validator("choice", mode="before")
    @classmethod
    def _validate_choice(cls, v: Any) -> str:
        if not isinstance(v, str):
            return "DENY"
        return v.upper()

    @classmethod
    def from_payload(cls, payload: Any) -> "ConsumeRequest":
        return cls.model_validate(_as_object(payload))

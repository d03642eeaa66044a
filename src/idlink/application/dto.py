"""Result objects returned by the application layer."""

from dataclasses import dataclass


@dataclass(frozen=True)
class IdentifyRequest:
    email: str | None = None
    phone_number: str | int | None = None


@dataclass(frozen=True)
class Invalid:
    reason: str

"""Identifier keys used for exact-equality matching.

Phones go to E.164 when they parse as valid numbers; anything else is kept as
submitted (stripped) so local identifiers still match themselves. Emails are
only stripped: case is significant.
"""

from collections.abc import Callable

import phonenumbers


def _stripped(raw: str | int | None) -> str | None:
    if raw is None:
        return None
    return str(raw).strip() or None


def phone_key(raw: str | int | None, default_region: str | None = None) -> str | None:
    """Matching key for a submitted phone: E.164 if valid, else the stripped input.

    default_region applies to numbers without a leading + (e.g. "202 555 1234"
    with "US"); numbers carrying a country code ignore it.
    """
    stripped = _stripped(raw)
    if stripped is None:
        return None
    try:
        parsed = phonenumbers.parse(stripped, default_region)
    except phonenumbers.NumberParseException:
        return stripped
    if not phonenumbers.is_valid_number(parsed):
        return stripped
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def email_key(raw: str | int | None) -> str | None:
    return _stripped(raw)


def phone_normalizer(default_region: str | None = None) -> Callable[[str | int | None], str | None]:
    def _normalize(raw: str | int | None) -> str | None:
        return phone_key(raw, default_region)

    return _normalize

"""Custom validators and types."""

import re
from typing import Annotated

from pydantic import AfterValidator, Field

# International phone number: optional +, 7 to 15 digits (E.164 length)
PHONE_PATTERN = re.compile(r"^\+?[0-9]{7,15}$")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_phone_number(value: str) -> str:
    """
    Validate and normalize a phone number.

    Accepts formats:
    - +14155552671
    - +1 415 555 2671
    - (415) 555-2671
    - 0300-1234567

    Returns the digits with an optional leading +: +14155552671
    """
    # Remove spaces, dashes, dots, parentheses
    normalized = re.sub(r"[\s\-\.\(\)]", "", value)

    if not PHONE_PATTERN.match(normalized):
        raise ValueError(
            "Invalid phone number. Use 7 to 15 digits with an optional leading + "
            "(e.g., +1 415 555 2671)"
        )

    return normalized


def validate_email(value: str) -> str:
    """Validate an email address and return it lowercased."""
    normalized = value.strip().lower()
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError("Invalid email address")
    return normalized


# Annotated type for phone number validation
PhoneNumber = Annotated[
    str,
    Field(min_length=7, max_length=25),
    AfterValidator(validate_phone_number),
]

Email = Annotated[
    str,
    Field(min_length=3, max_length=255),
    AfterValidator(validate_email),
]

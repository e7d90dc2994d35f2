"""Phone number checks for the print server login."""

import re

# Korean mobile numbers as typed at the printer: 010 followed by 8 digits
PHONE_NUMBER_PATTERN = re.compile(r"010[0-9]{8}")


def is_valid_phone_number(value: str) -> bool:
    """Return True if ``value`` is exactly ``010`` + 8 digits."""
    if not isinstance(value, str):
        return False
    return PHONE_NUMBER_PATTERN.fullmatch(value) is not None

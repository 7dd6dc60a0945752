"""Indonesian phone number normalisation.

Numbers are stored in ``+62`` form regardless of how the customer typed them.
"""

import re
from typing import Optional

COUNTRY_PREFIX = "+62"

# +62 followed by 8-13 digits
PHONE_PATTERN = re.compile(r"^\+62\d{8,13}$")


def normalize_phone(value: Optional[str]) -> Optional[str]:
    """Rewrite local and bare country-code forms to ``+62...``.

    ``0812...`` -> ``+62812...``, ``62812...`` -> ``+62812...`` and bare
    digits get the prefix. Anything else is returned stripped but otherwise
    untouched so validation can reject it.
    """
    if value is None:
        return None
    phone = re.sub(r"[\s-]", "", value)
    if not phone:
        return phone
    if phone.startswith(COUNTRY_PREFIX):
        return phone
    if phone.startswith("0"):
        return COUNTRY_PREFIX + phone[1:]
    if phone.startswith("62"):
        return "+" + phone
    if phone.isdigit():
        return COUNTRY_PREFIX + phone
    return phone


def is_valid_phone(value: Optional[str]) -> bool:
    return bool(value) and PHONE_PATTERN.match(value) is not None

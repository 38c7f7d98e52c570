"""Phone number normalization and custom-field lookup utilities.

Numbers are reduced to digits only. Russian domestic numbers written with
the trunk prefix (8XXXXXXXXXX) are rewritten to the international form
(7XXXXXXXXXX), which is what SpravPortal expects.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

_NON_DIGITS = re.compile(r"\D")

DOMESTIC_TRUNK_PREFIX = "8"
COUNTRY_CODE = "7"
NATIONAL_NUMBER_LENGTH = 11

# Field names/codes amoCRM uses for the phone custom field
PHONE_FIELD_NAME = "Телефон"
PHONE_FIELD_CODE = "PHONE"


def normalize_phone(raw: object) -> str:
    """Return the digits of ``raw`` in canonical international form.

    Never raises: ``None`` or text without digits yields an empty string.
    """
    if raw is None:
        return ""
    digits = _NON_DIGITS.sub("", str(raw))
    if len(digits) == NATIONAL_NUMBER_LENGTH and digits.startswith(DOMESTIC_TRUNK_PREFIX):
        digits = COUNTRY_CODE + digits[1:]
    return digits


def find_field_value(
    fields: Any,
    matchers: Mapping[str, Iterable[str]],
) -> Any | None:
    """Return the first value of the first field matching any of ``matchers``.

    ``matchers`` maps a key of the field mapping (e.g. ``"field_code"``) to
    the accepted values for that key. Non-mapping entries are ignored.
    """
    if not isinstance(fields, list):
        return None

    for field in fields:
        if not isinstance(field, Mapping):
            continue
        if not any(field.get(key) in accepted for key, accepted in matchers.items()):
            continue
        values = field.get("values")
        if not isinstance(values, list) or not values:
            return None
        first = values[0]
        if isinstance(first, Mapping):
            return first.get("value")
        return first
    return None

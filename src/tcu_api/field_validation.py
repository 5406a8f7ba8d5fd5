"""Format checks for applicant and programme fields.

These are pure predicates plus two aggregate helpers returning error lists.
They are used by the request builder's registration convenience and by
:class:`~tcu_api.structure_validator.StructureValidator`.

Index numbers follow ``Letter + 4 digits / 4 digits / 4 digits``
(e.g. ``S0123/0001/2023``); AVNs are ``AVN`` followed by 6-10 digits.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, List, Mapping, Sequence

INDEX_NUMBER_PATTERN = re.compile(r"^[A-Z][0-9]{4}/[0-9]{4}/[0-9]{4}$")
AVN_PATTERN = re.compile(r"^AVN[0-9]{6,10}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")
PHONE_PATTERN = re.compile(r"^(\+255|0)?[67][0-9]{8}$")
CODE_PATTERN = re.compile(r"^[A-Z0-9]{3,10}$")
NAME_PATTERN = re.compile(r"^[a-zA-Z\s'-]{2,50}$")
CONFIRMATION_CODE_PATTERN = re.compile(r"^[A-Z0-9]{6,12}$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

NAME_FIELDS = ("firstname", "middlename", "surname")
PROGRAMME_REQUIRED_FIELDS = ("programme_code", "priority")

VALID_NATIONALITIES = frozenset(
    {
        "Tanzanian",
        "Kenyan",
        "Ugandan",
        "Rwandan",
        "Burundian",
        "Congolese",
        "Sudanese",
        "Ethiopian",
        "Somalian",
        "Other",
    }
)
VALID_APPLICANT_CATEGORIES = frozenset({"Government", "Private", "Foreign", "Special"})


def validate_f4_index_no(value: str) -> bool:
    return bool(INDEX_NUMBER_PATTERN.match(value))


def validate_f6_index_no(value: str) -> bool:
    return bool(INDEX_NUMBER_PATTERN.match(value))


def validate_avn(value: str) -> bool:
    return bool(AVN_PATTERN.match(value))


def validate_gender(value: str) -> bool:
    return value.upper() in ("M", "F")


def validate_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value))


def validate_phone_number(value: str) -> bool:
    return bool(PHONE_PATTERN.match(value))


def validate_year(value: Any) -> bool:
    try:
        year = int(value)
    except (TypeError, ValueError):
        return False
    return 1900 <= year <= date.today().year + 10


def validate_programme_code(value: str) -> bool:
    return bool(CODE_PATTERN.match(value))


def validate_institution_code(value: str) -> bool:
    return bool(CODE_PATTERN.match(value))


def validate_priority(value: Any) -> bool:
    try:
        priority = int(value)
    except (TypeError, ValueError):
        return False
    return 1 <= priority <= 10


def validate_name(value: str) -> bool:
    return bool(NAME_PATTERN.match(value))


def validate_confirmation_code(value: str) -> bool:
    return bool(CONFIRMATION_CODE_PATTERN.match(value))


def validate_date(value: str) -> bool:
    """``YYYY-MM-DD`` that is also a real calendar date."""
    if not DATE_PATTERN.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def sanitize_phone_number(phone: str) -> str:
    """Normalise to ``+255XXXXXXXXX``.

    Example:
        >>> sanitize_phone_number("0712 345 678")
        '+255712345678'
    """
    digits = re.sub(r"[^\d+]", "", phone)
    if digits.startswith("0"):
        return "+255" + digits[1:]
    if not digits.startswith("+"):
        return "+255" + digits
    return digits


def validate_required_fields(
    data: Mapping[str, Any], required_fields: Sequence[str]
) -> List[str]:
    return [
        f"Required field '{name}' is missing or empty"
        for name in required_fields
        if not data.get(name)
    ]


def validate_applicant_data(data: Mapping[str, Any]) -> List[str]:
    """Return every problem found in an applicant record (empty when valid)."""
    errors = validate_required_fields(data, NAME_FIELDS)

    for name in NAME_FIELDS:
        if data.get(name) and not validate_name(str(data[name])):
            errors.append(f"Invalid {name} format")

    if data.get("f4indexno") and not validate_f4_index_no(str(data["f4indexno"])):
        errors.append("Invalid F4 Index Number format")
    if data.get("f6indexno") and not validate_f6_index_no(str(data["f6indexno"])):
        errors.append("Invalid F6 Index Number format")
    if "gender" in data and not validate_gender(str(data["gender"])):
        errors.append("Invalid gender format")
    if data.get("email") and not validate_email(str(data["email"])):
        errors.append("Invalid email format")
    if data.get("phone") and not validate_phone_number(str(data["phone"])):
        errors.append("Invalid phone number format")
    if "year" in data and not validate_year(data["year"]):
        errors.append("Invalid year")
    if "nationality" in data and data["nationality"] not in VALID_NATIONALITIES:
        errors.append("Invalid nationality")
    if (
        "applicant_category" in data
        and data["applicant_category"] not in VALID_APPLICANT_CATEGORIES
    ):
        errors.append("Invalid applicant category")

    return errors


def validate_programme_data(data: Mapping[str, Any]) -> List[str]:
    errors = validate_required_fields(data, PROGRAMME_REQUIRED_FIELDS)
    if data.get("programme_code") and not validate_programme_code(
        str(data["programme_code"])
    ):
        errors.append("Invalid programme code format")
    if data.get("priority") and not validate_priority(data["priority"]):
        errors.append("Invalid priority value")
    return errors

"""TCU status code registry and semantic classification.

The registry is the single source of truth for what a numeric status code
means. It is built once at import time from immutable structures
(``MappingProxyType`` + ``frozenset``) and exposed through pure lookup
functions, so it is safe to share across threads.

Categories:
    * success          - explicit membership set (not a numeric range).
    * error            - defined as ``not is_success(code)``.
    * duplicate        - the record/confirmation already exists.
    * not_found        - no matching record or admission.
    * validation_error - the request itself was rejected.
    * capacity_issue   - capacity or permission constraints.
    * admission_status - informational admission state.

Categories overlap freely; 231 (applicant cleared) is both a success and an
admission status.

Note on ``error_codes()``:
    The enumerated error set is narrower than the ``is_error`` predicate. Codes
    such as 203 (already admitted) are neither successes nor listed as errors.
    ``is_error`` stays authoritative; ``error_codes()`` is for enumeration and
    reporting only.

Example:
    >>> classify(208).categories()
    ['error', 'duplicate']
    >>> message(999)
    'Unknown response code'
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from types import MappingProxyType
from typing import FrozenSet, List, Mapping

UNKNOWN_MESSAGE = "Unknown response code"


class ResponseCode(IntEnum):
    SUCCESS = 200
    PRIOR_ADMISSION = 201
    CLEAR = 202
    ALREADY_ADMITTED = 203
    SESSION_TOKEN_DOES_NOT_EXIST = 204
    MALFORMED_XML_REQUEST = 205
    EMPTY_FORM_FOUR_INDEX_NUMBER = 206
    OPERATION_FAIL = 207
    DUPLICATE_RECORD = 208
    RE_SUBMITTED_SUCCESSFUL = 209
    NOT_FOUND = 210
    MANDATORY_PARAMETERS = 211
    CONFIRMED_SUCCESSFUL = 212
    CONFIRM_TO_OTHER_INSTITUTION = 213
    CONFIRM_TO_YOUR_INSTITUTION = 214
    NO_MULTIPLE_ADMISSION = 215
    PROGRAMME_CAPACITY_FULL = 216
    INVALID_CONFIRMATION_CODE = 217
    UNCONFIRMED_SUCCESSFULLY = 218
    OPERATION_FAILED = 219
    NOT_CONFIRMED = 220
    FAILED_TO_UN_CONFIRM = 221
    CONFIRMATION_CODE_SENT_TO_EMAIL = 222
    CONFIRMATION_CODE_SENT_TO_EMAIL_AND_SMS = 223
    NO_ADMISSION_FOUND = 224
    MULTIPLE_ADMISSION = 225
    SINGLE_ADMISSION = 226
    OPERATION_NOT_ALLOWED = 227
    NOT_CANCELLED_HERE = 228
    NOT_CANCELLED_ANYWHERE = 229
    ADMISSION_RESTORED = 230
    APPLICANT_CLEARED = 231
    APPLICANT_NOT_CLEARED = 232
    CONFIRMED_ADMISSION_IN_THIS_PROGRAMME = 233
    CONFIRMED_ADMISSION_TO_OTHER_INSTITUTION = 234


RC = ResponseCode

MESSAGES: Mapping[int, str] = MappingProxyType(
    {
        RC.SUCCESS: "Operation was performed successfully.",
        RC.PRIOR_ADMISSION: "Applicant record was found in prior admission list.",
        RC.CLEAR: "Applicant has no prior admission.",
        RC.ALREADY_ADMITTED: "Applicant is already admitted in current admission cycle.",
        RC.SESSION_TOKEN_DOES_NOT_EXIST: (
            "The given session token does not exist in system, "
            "please contact system administrator."
        ),
        RC.MALFORMED_XML_REQUEST: "Invalid xml request.",
        RC.EMPTY_FORM_FOUR_INDEX_NUMBER: "Form four index number cannot be null.",
        RC.OPERATION_FAIL: "Data was not successfully submitted to TCU.",
        RC.DUPLICATE_RECORD: "The applicant has already been submitted previously.",
        RC.RE_SUBMITTED_SUCCESSFUL: "The applicant has already been re-submitted previously.",
        RC.NOT_FOUND: "No record found",
        RC.MANDATORY_PARAMETERS: "Empty mandatory parameters",
        RC.CONFIRMED_SUCCESSFUL: "Applicant successfully confirmed",
        RC.CONFIRM_TO_OTHER_INSTITUTION: "Applicant has already confirmed to other institution",
        RC.CONFIRM_TO_YOUR_INSTITUTION: "Applicant has already confirmed to this institution",
        RC.NO_MULTIPLE_ADMISSION: "The applicant has no multiple admission",
        RC.PROGRAMME_CAPACITY_FULL: (
            "The programme capacity is full. No more confirmations are allowed"
        ),
        RC.INVALID_CONFIRMATION_CODE: "Invalid confirmation code",
        RC.UNCONFIRMED_SUCCESSFULLY: "Un-confirmed successfully",
        RC.OPERATION_FAILED: "Failed to un-confirm the admission",
        RC.NOT_CONFIRMED: "The applicant has not confirmed admission to any institution",
        RC.FAILED_TO_UN_CONFIRM: (
            "Unable to un-confirm since the applicant has not confirmed to this institution"
        ),
        RC.CONFIRMATION_CODE_SENT_TO_EMAIL: "Confirmation code has been sent to your email address.",
        RC.CONFIRMATION_CODE_SENT_TO_EMAIL_AND_SMS: (
            "Confirmation code has been sent to your email address and mobile number."
        ),
        RC.NO_ADMISSION_FOUND: "You have no admission to this institution",
        RC.MULTIPLE_ADMISSION: "The applicant has multiple admissions",
        RC.SINGLE_ADMISSION: "The applicant has single admission",
        RC.OPERATION_NOT_ALLOWED: "Operation not allowed at the moment",
        RC.NOT_CANCELLED_HERE: "Applicant have not cancelled admission in this programme",
        RC.NOT_CANCELLED_ANYWHERE: "Applicant have not cancelled admission in any institution",
        RC.ADMISSION_RESTORED: "Applicant admission restored successfully",
        RC.APPLICANT_CLEARED: "Applicant cleared by the Commission",
        RC.APPLICANT_NOT_CLEARED: "Applicant NOT cleared by the Commission",
        RC.CONFIRMED_ADMISSION_IN_THIS_PROGRAMME: "Applicant confirmed in this programme",
        RC.CONFIRMED_ADMISSION_TO_OTHER_INSTITUTION: "Applicant Confirmed to other HLI",
    }
)

SUCCESS_CODES: FrozenSet[int] = frozenset(
    {
        RC.SUCCESS,
        RC.PRIOR_ADMISSION,
        RC.CLEAR,
        RC.RE_SUBMITTED_SUCCESSFUL,
        RC.CONFIRMED_SUCCESSFUL,
        RC.UNCONFIRMED_SUCCESSFULLY,
        RC.CONFIRMATION_CODE_SENT_TO_EMAIL,
        RC.CONFIRMATION_CODE_SENT_TO_EMAIL_AND_SMS,
        RC.ADMISSION_RESTORED,
        RC.APPLICANT_CLEARED,
        RC.CONFIRMED_ADMISSION_IN_THIS_PROGRAMME,
    }
)

# Enumeration only; see module docstring.
ERROR_CODES: FrozenSet[int] = frozenset(
    {
        RC.SESSION_TOKEN_DOES_NOT_EXIST,
        RC.MALFORMED_XML_REQUEST,
        RC.EMPTY_FORM_FOUR_INDEX_NUMBER,
        RC.OPERATION_FAIL,
        RC.DUPLICATE_RECORD,
        RC.NOT_FOUND,
        RC.MANDATORY_PARAMETERS,
        RC.CONFIRM_TO_OTHER_INSTITUTION,
        RC.CONFIRM_TO_YOUR_INSTITUTION,
        RC.NO_MULTIPLE_ADMISSION,
        RC.PROGRAMME_CAPACITY_FULL,
        RC.INVALID_CONFIRMATION_CODE,
        RC.OPERATION_FAILED,
        RC.NOT_CONFIRMED,
        RC.FAILED_TO_UN_CONFIRM,
        RC.NO_ADMISSION_FOUND,
        RC.OPERATION_NOT_ALLOWED,
        RC.NOT_CANCELLED_HERE,
        RC.NOT_CANCELLED_ANYWHERE,
        RC.APPLICANT_NOT_CLEARED,
        RC.CONFIRMED_ADMISSION_TO_OTHER_INSTITUTION,
    }
)

DUPLICATE_CODES: FrozenSet[int] = frozenset(
    {
        RC.ALREADY_ADMITTED,
        RC.DUPLICATE_RECORD,
        RC.CONFIRM_TO_OTHER_INSTITUTION,
        RC.CONFIRM_TO_YOUR_INSTITUTION,
    }
)

NOT_FOUND_CODES: FrozenSet[int] = frozenset(
    {
        RC.NOT_FOUND,
        RC.NO_ADMISSION_FOUND,
        RC.NOT_CANCELLED_HERE,
        RC.NOT_CANCELLED_ANYWHERE,
    }
)

VALIDATION_ERROR_CODES: FrozenSet[int] = frozenset(
    {
        RC.MALFORMED_XML_REQUEST,
        RC.EMPTY_FORM_FOUR_INDEX_NUMBER,
        RC.MANDATORY_PARAMETERS,
        RC.INVALID_CONFIRMATION_CODE,
    }
)

ADMISSION_STATUS_CODES: FrozenSet[int] = frozenset(
    {
        RC.MULTIPLE_ADMISSION,
        RC.SINGLE_ADMISSION,
        RC.APPLICANT_CLEARED,
        RC.APPLICANT_NOT_CLEARED,
    }
)

CAPACITY_ISSUE_CODES: FrozenSet[int] = frozenset(
    {RC.PROGRAMME_CAPACITY_FULL, RC.OPERATION_NOT_ALLOWED}
)

CATEGORY_CODES: Mapping[str, FrozenSet[int]] = MappingProxyType(
    {
        "success": SUCCESS_CODES,
        "error": ERROR_CODES,
        "duplicate": DUPLICATE_CODES,
        "not_found": NOT_FOUND_CODES,
        "validation_error": VALIDATION_ERROR_CODES,
        "capacity_issue": CAPACITY_ISSUE_CODES,
        "admission_status": ADMISSION_STATUS_CODES,
    }
)


def message(code: int) -> str:
    return MESSAGES.get(code, UNKNOWN_MESSAGE)


def is_known(code: int) -> bool:
    return code in MESSAGES


def is_success(code: int) -> bool:
    return code in SUCCESS_CODES


def is_error(code: int) -> bool:
    """Anything that is not an explicit success, including unknown codes."""
    return not is_success(code)


def is_duplicate(code: int) -> bool:
    return code in DUPLICATE_CODES


def is_not_found(code: int) -> bool:
    return code in NOT_FOUND_CODES


def is_validation_error(code: int) -> bool:
    return code in VALIDATION_ERROR_CODES


def is_admission_status(code: int) -> bool:
    return code in ADMISSION_STATUS_CODES


def is_capacity_issue(code: int) -> bool:
    return code in CAPACITY_ISSUE_CODES


def success_codes() -> FrozenSet[int]:
    return SUCCESS_CODES


def error_codes() -> FrozenSet[int]:
    return ERROR_CODES


def all_codes() -> FrozenSet[int]:
    return frozenset(MESSAGES)


@dataclass(frozen=True)
class StatusClassification:
    """All category flags for one status code."""

    code: int
    message: str
    success: bool
    error: bool
    duplicate: bool
    not_found: bool
    validation_error: bool
    capacity_issue: bool
    admission_status: bool

    def categories(self) -> List[str]:
        names = (
            "success",
            "error",
            "duplicate",
            "not_found",
            "validation_error",
            "capacity_issue",
            "admission_status",
        )
        return [name for name in names if getattr(self, name)]

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "categories": self.categories(),
        }


def classify(code: int) -> StatusClassification:
    return StatusClassification(
        code=code,
        message=message(code),
        success=is_success(code),
        error=is_error(code),
        duplicate=is_duplicate(code),
        not_found=is_not_found(code),
        validation_error=is_validation_error(code),
        capacity_issue=is_capacity_issue(code),
        admission_status=is_admission_status(code),
    )

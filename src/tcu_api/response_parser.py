"""Decode TCU API responses into canonical records.

Responses arrive either wrapped in a SOAP-style envelope or as a bare payload.
The parser is tolerant of that variance:

1. Parse with ``defusedxml`` (responses come from the network).
2. If the root is an ``Envelope``, descend into ``Body`` and take its first
   child element as the payload.
3. If the payload holds nothing but a ``ResponseParameters`` element, descend
   into it.
4. Flatten the payload children into a :class:`~tcu_api.values.MapValue`.
   Repeated sibling names are promoted to a :class:`~tcu_api.values.ListValue`
   on the first repeat; element 0 is the entry already seen.
5. Resolve the canonical fields through :data:`ALIAS_TABLE` (first matching
   key wins) and remove every alias key from ``data``.

Namespaces are ignored: every element is addressed by its local name. Only the
payload element's own attributes are kept (as ``@name`` keys); attributes on
nested elements are dropped, so ``<Results count="2"/>`` becomes ``Scalar("")``.

Example:
    >>> record = ResponseParser().parse(
    ...     "<Response><f4indexno>S0123/0001/2023</f4indexno>"
    ...     "<StatusCode>200</StatusCode></Response>"
    ... )
    >>> record.status_code, record.index_id, len(record.data)
    (200, 'S0123/0001/2023', 0)

Strict callers use :meth:`ResponseParser.parse` and handle
:class:`~tcu_api.exceptions.ParseError`. Best-effort callers use
:meth:`~ResponseParser.is_success_response`,
:meth:`~ResponseParser.extract_status_code` or
:meth:`~ResponseParser.extract_status_description`, which never raise.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as SafeET
from defusedxml.ElementTree import ParseError as SafeParseError

from . import response_codes
from .exceptions import ParseError
from .response_codes import StatusClassification
from .values import ListValue, MapValue, Scalar, Value

logger = logging.getLogger(__name__)

# Ordered aliases per canonical field; earlier keys take precedence.
ALIAS_TABLE: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "index_id": ("f4indexno", "F4IndexNo"),
        "status_code": ("StatusCode", "status_code"),
        "status_description": ("StatusDescription", "status_description"),
    }
)

CLAIMED_KEYS = frozenset(key for aliases in ALIAS_TABLE.values() for key in aliases)

_INTEGER = re.compile(r"[+-]?[0-9]+")

APPLICANT_FIELDS = (
    "firstname",
    "middlename",
    "surname",
    "gender",
    "phone",
    "email",
    "nationality",
    "f4indexno",
    "f6indexno",
    "programme",
    "institution",
    "year",
)


def local_name(tag: Any) -> str:
    """Strip a ``{namespace}`` prefix from an ElementTree tag."""
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def resolve_alias(data: MapValue, aliases: Tuple[str, ...]) -> Optional[Value]:
    """Return the value of the first alias present in ``data``."""
    for key in aliases:
        if key in data:
            return data[key]
    return None


def _scalar_text(value: Optional[Value]) -> Optional[str]:
    if isinstance(value, Scalar):
        return value.text
    if isinstance(value, ListValue) and len(value) and isinstance(value[0], Scalar):
        return value[0].text
    return None


@dataclass
class CanonicalResponse:
    """Normalized view of any TCU response.

    Attributes:
        index_id: Candidate index number (``""`` when absent).
        status_code: Integer status (0 when absent or not numeric).
        status_description: Server supplied description (``""`` when absent).
        data: Every payload field not claimed by the three fields above.
        raw: The original response text.
        timestamp: UTC instant the record was produced.
    """

    index_id: str
    status_code: int
    status_description: str
    data: MapValue = field(default_factory=MapValue)
    raw: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def message(self) -> str:
        """Registry message for :attr:`status_code`."""
        return response_codes.message(self.status_code)

    @property
    def classification(self) -> StatusClassification:
        return response_codes.classify(self.status_code)

    def is_success(self) -> bool:
        return response_codes.is_success(self.status_code)

    def is_error(self) -> bool:
        return response_codes.is_error(self.status_code)

    def get(self, key: str, default: Any = None) -> Any:
        """Plain-Python value of a data field."""
        value = self.data.get(key)
        return default if value is None else value.to_python()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "f4indexno": self.index_id,
            "status_code": self.status_code,
            "status_description": self.status_description,
            "message": self.message,
            "categories": self.classification.categories(),
            "data": self.data.to_python(),
            "timestamp": self.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
        }


class ResponseParser:
    """Turn raw response text into :class:`CanonicalResponse` records."""

    def parse(self, xml_response: str) -> CanonicalResponse:
        """Parse ``xml_response`` strictly.

        Raises:
            ParseError: Empty input, malformed XML, or no payload element.
        """
        raw = xml_response or ""
        if not raw.strip():
            raise ParseError("Empty XML response received", raw=raw)

        try:
            root = SafeET.fromstring(raw)
        except (SafeParseError, DefusedXmlException) as exc:
            raise ParseError(f"Invalid XML format: {exc}", raw=raw) from exc

        payload = self._locate_payload(root, raw)
        data = self._flatten(payload)
        for attr_name, attr_value in payload.attrib.items():
            data.set(f"@{local_name(attr_name)}", Scalar(attr_value))

        index_id = _scalar_text(resolve_alias(data, ALIAS_TABLE["index_id"])) or ""
        status_code = self._to_int(
            _scalar_text(resolve_alias(data, ALIAS_TABLE["status_code"]))
        )
        description = (
            _scalar_text(resolve_alias(data, ALIAS_TABLE["status_description"])) or ""
        )
        remaining = MapValue(
            {key: value for key, value in data.items() if key not in CLAIMED_KEYS}
        )

        logger.debug(
            f"Parsed response payload <{local_name(payload.tag)}> "
            f"status={status_code} fields={len(remaining)}"
        )
        return CanonicalResponse(
            index_id=index_id,
            status_code=status_code,
            status_description=description,
            data=remaining,
            raw=raw,
        )

    # ---------------- Best-effort wrappers ---------------- #

    def is_success_response(self, xml_response: str) -> bool:
        try:
            return self.parse(xml_response).is_success()
        except ParseError:
            return False

    def extract_status_code(self, xml_response: str) -> int:
        try:
            return self.parse(xml_response).status_code
        except ParseError:
            return -1

    def extract_status_description(self, xml_response: str) -> str:
        try:
            return self.parse(xml_response).status_description
        except ParseError as exc:
            return f"Failed to parse response: {exc}"

    def parse_error_response(self, xml_response: str) -> Dict[str, Any]:
        now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        try:
            record = self.parse(xml_response)
        except ParseError as exc:
            return {
                "error": True,
                "error_code": -1,
                "error_message": f"Failed to parse error response: {exc}",
                "raw_response": xml_response,
                "timestamp": now,
            }
        return {
            "error": True,
            "error_code": record.status_code,
            "error_message": record.status_description,
            "f4indexno": record.index_id,
            "raw_response": xml_response,
            "timestamp": now,
        }

    # ---------------- Data extraction helpers ---------------- #

    def extract_applicant_data(self, xml_response: str) -> Dict[str, Any]:
        """Known applicant fields present in the response ``data``."""
        record = self.parse(xml_response)
        applicant = {
            name: record.data[name].to_python()
            for name in APPLICANT_FIELDS
            if name in record.data
        }
        # f4indexno is claimed by the canonical index field.
        if record.index_id:
            applicant["f4indexno"] = record.index_id
        return applicant

    def extract_search_results(self, xml_response: str) -> List[Any]:
        """``Results`` entries as a list, whether one or many were returned."""
        record = self.parse(xml_response)
        results = record.data.get("Results")
        if results is None:
            return []
        if isinstance(results, ListValue):
            return results.to_python()
        return [results.to_python()]

    @staticmethod
    def format_xml(xml: str) -> str:
        """Pretty-print ``xml``; return it unchanged if it does not parse."""
        try:
            root = SafeET.fromstring(xml)
        except (SafeParseError, DefusedXmlException):
            return xml
        ET.indent(root, space="  ")
        return ET.tostring(root, encoding="unicode")

    # ---------------- Internal helpers ---------------- #

    @staticmethod
    def _locate_payload(root: ET.Element, raw: str) -> ET.Element:
        payload = root
        if local_name(root.tag) == "Envelope":
            body = next(
                (child for child in root if local_name(child.tag) == "Body"), None
            )
            if body is None:
                raise ParseError("Envelope has no Body element", raw=raw)
            first = next(iter(body), None)
            if first is None:
                raise ParseError("Envelope Body contains no payload", raw=raw)
            payload = first

        children = list(payload)
        if len(children) == 1 and local_name(children[0].tag) == "ResponseParameters":
            payload = children[0]
        return payload

    def _flatten(self, element: ET.Element) -> MapValue:
        result = MapValue()
        for child in element:
            name = local_name(child.tag)
            if not name:
                # Comments / processing instructions
                continue
            result.add_repeated(name, self._element_value(child))
        return result

    def _element_value(self, element: ET.Element) -> Value:
        if any(local_name(child.tag) for child in element):
            return self._flatten(element)
        return Scalar((element.text or "").strip())

    @staticmethod
    def _to_int(text: Optional[str]) -> int:
        if text is None:
            return 0
        text = text.strip()
        if not _INTEGER.fullmatch(text):
            return 0
        return int(text)


def parse_response(xml_response: str) -> CanonicalResponse:
    """Convenience wrapper around :meth:`ResponseParser.parse`."""
    return ResponseParser().parse(xml_response)

"""Build authenticated SOAP-style request envelopes for the TCU API.

Wire layout produced by :meth:`RequestBuilder.build`::

    <?xml version="1.0" encoding="UTF-8"?>
    <soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/"
                   xmlns:tcu="http://www.tcu.go.tz/">
      <soap:Header>
        <Security>
          <UsernameToken>
            <Username>jdoe</Username>
            <SessionToken>abcdefghij0123</SessionToken>
            <Timestamp>2025-01-09T10:00:00Z</Timestamp>
          </UsernameToken>
        </Security>
      </soap:Header>
      <soap:Body>
        <tcu:RequestParameters>
          <Operation>CheckStatus</Operation>
          <f4indexno>S0123/0001/2023</f4indexno>
        </tcu:RequestParameters>
      </soap:Body>
    </soap:Envelope>

Serialization rules for the parameter tree:
    * ``MapValue`` entry -> child element named after the sanitized key.
    * ``ListValue`` -> one sibling per item, each repeating the entry's name.
    * ``Scalar`` -> element text, escaped by the XML serializer.

Keys are sanitized with the ``param_`` prefix. When two keys sanitize to the
same name within one map, the first one written wins and later ones are
dropped. The builder is a pure function of its inputs apart from the header
timestamp, which comes from an injectable clock.

Example:
    >>> from tcu_api.credential import UsernameToken
    >>> builder = RequestBuilder()
    >>> xml = builder.build(UsernameToken.create("jdoe", "abcdefghij0123"),
    ...                     {"Operation": "CheckStatus"})
    >>> "<Operation>CheckStatus</Operation>" in xml
    True
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Sequence, Set

from .credential import UsernameToken
from .exceptions import AuthenticationError, BuildError
from .field_validation import NAME_FIELDS, validate_f4_index_no
from .values import (
    PARAM_PREFIX,
    ListValue,
    MapValue,
    Scalar,
    Value,
    from_python,
    sanitize_element_name,
)

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
SOAP_NS = "http://schemas.xmlsoap.org/soap/envelope/"
TCU_NS = "http://www.tcu.go.tz/"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

ET.register_namespace("soap", SOAP_NS)
ET.register_namespace("tcu", TCU_NS)

# Characters XML 1.0 cannot carry, even escaped.
_ILLEGAL_XML_CHARS = re.compile(
    r"[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]"
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RequestBuilder:
    """Compose a credential and a parameter tree into a request envelope.

    Args:
        clock: Zero-argument callable returning the header timestamp instant.
            Defaults to the current UTC time.
        pretty: Indent the output (two spaces per level).
    """

    def __init__(
        self, clock: Optional[Callable[[], datetime]] = None, pretty: bool = True
    ) -> None:
        self.clock = clock or _utcnow
        self.pretty = pretty

    def build(
        self,
        credential: UsernameToken,
        parameters: Any = None,
        required: Sequence[str] = (),
    ) -> str:
        """Return the XML envelope for ``credential`` and ``parameters``.

        Args:
            credential: Authenticated username token.
            parameters: ``MapValue`` or plain mapping of operation parameters.
            required: Top-level parameter names that must be present and non-empty.

        Raises:
            BuildError: Invalid credential, missing required field, or a
                parameter tree that cannot be serialized.
        """
        self._check_credential(credential)
        params = self._coerce_parameters(parameters)
        self._require(params, required, "request parameters")

        envelope = ET.Element(f"{{{SOAP_NS}}}Envelope")
        header = ET.SubElement(envelope, f"{{{SOAP_NS}}}Header")
        self._append_auth_header(header, credential)

        body = ET.SubElement(envelope, f"{{{SOAP_NS}}}Body")
        container = ET.SubElement(body, f"{{{TCU_NS}}}RequestParameters")
        self._append_map(container, params)

        if self.pretty:
            ET.indent(envelope, space="  ")
        xml = XML_DECLARATION + "\n" + ET.tostring(envelope, encoding="unicode")
        logger.debug(f"Built request envelope ({len(params)} parameters, {len(xml)} bytes)")
        return xml

    # ---------------- Convenience builders ---------------- #

    def build_simple_request(
        self, credential: UsernameToken, operation: str, data: Any = None
    ) -> str:
        return self.build(
            credential, {"Operation": operation, "Data": data or {}}
        )

    def build_applicant_search_request(
        self, credential: UsernameToken, search_criteria: Mapping[str, Any]
    ) -> str:
        return self.build(
            credential,
            {"Operation": "SearchApplicant", "SearchCriteria": search_criteria},
        )

    def build_applicant_registration_request(
        self, credential: UsernameToken, applicant_data: Mapping[str, Any]
    ) -> str:
        applicant = self._coerce_parameters(applicant_data)
        self._require(applicant, NAME_FIELDS, "applicant data")
        index_no = applicant.get("f4indexno")
        if isinstance(index_no, Scalar) and not validate_f4_index_no(index_no.text):
            raise BuildError(
                "Invalid f4indexno format", context={"f4indexno": index_no.text}
            )
        return self.build(
            credential,
            MapValue({"Operation": Scalar("RegisterApplicant"), "ApplicantData": applicant}),
        )

    def build_status_update_request(
        self, credential: UsernameToken, f4indexno: str, status: str
    ) -> str:
        return self.build(
            credential,
            {"Operation": "UpdateStatus", "f4indexno": f4indexno, "Status": status},
            required=("f4indexno", "Status"),
        )

    @staticmethod
    def xml_template() -> str:
        """Placeholder envelope for debugging and documentation."""
        return "\n".join(
            [
                XML_DECLARATION,
                f'<soap:Envelope xmlns:soap="{SOAP_NS}" xmlns:tcu="{TCU_NS}">',
                "  <soap:Header>",
                "    <Security>",
                "      <UsernameToken>",
                "        <Username>USERNAME_HERE</Username>",
                "        <SessionToken>SESSION_TOKEN_HERE</SessionToken>",
                "        <Timestamp>TIMESTAMP_HERE</Timestamp>",
                "      </UsernameToken>",
                "    </Security>",
                "  </soap:Header>",
                "  <soap:Body>",
                "    <tcu:RequestParameters>",
                "      <!-- Request parameters go here -->",
                "    </tcu:RequestParameters>",
                "  </soap:Body>",
                "</soap:Envelope>",
            ]
        )

    # ---------------- Internal helpers ---------------- #

    @staticmethod
    def _check_credential(credential: Any) -> None:
        if not isinstance(credential, UsernameToken):
            raise BuildError(
                f"Expected UsernameToken credential, got {type(credential).__name__}"
            )
        try:
            credential.check()
        except AuthenticationError as exc:
            raise BuildError(f"Invalid credential: {exc}") from exc

    @staticmethod
    def _coerce_parameters(parameters: Any) -> MapValue:
        if parameters is None:
            return MapValue()
        try:
            value = from_python(parameters)
        except TypeError as exc:
            raise BuildError(f"Cannot serialize request parameters: {exc}") from exc
        if not isinstance(value, MapValue):
            raise BuildError(
                f"Request parameters must be a mapping, got {type(value).__name__}"
            )
        return value

    @staticmethod
    def _require(params: MapValue, required: Sequence[str], where: str) -> None:
        for name in required:
            value = params.get(name)
            if value is None or (isinstance(value, Scalar) and not value.text):
                raise BuildError(
                    f"Required field '{name}' is missing from {where}",
                    context={"field": name},
                )

    def _append_auth_header(self, header: ET.Element, credential: UsernameToken) -> None:
        security = ET.SubElement(header, "Security")
        token_el = ET.SubElement(security, "UsernameToken")
        for name, value in credential.to_auth_fragment().items():
            self._append_named(token_el, name, value)
        timestamp = ET.SubElement(token_el, "Timestamp")
        timestamp.text = self.clock().astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)

    def _append_map(self, parent: ET.Element, mapping: MapValue) -> None:
        written: Set[str] = set()
        for key, value in mapping.items():
            name = sanitize_element_name(key, PARAM_PREFIX)
            if name in written:
                logger.debug(f"Dropping parameter {key!r}: sanitized name {name!r} already written")
                continue
            written.add(name)
            self._append_named(parent, name, value)

    def _append_named(self, parent: ET.Element, name: str, value: Value) -> None:
        if isinstance(value, ListValue):
            for item in value:
                self._append_named(parent, name, item)
        elif isinstance(value, MapValue):
            self._append_map(ET.SubElement(parent, name), value)
        elif isinstance(value, Scalar):
            if _ILLEGAL_XML_CHARS.search(value.text):
                raise BuildError(
                    f"Value for '{name}' contains characters not allowed in XML",
                    context={"element": name},
                )
            ET.SubElement(parent, name).text = value.text
        else:
            raise BuildError(f"Unsupported value node {type(value).__name__} for '{name}'")


def build_request(credential: UsernameToken, parameters: Any = None) -> str:
    """Convenience wrapper around :meth:`RequestBuilder.build`."""
    return RequestBuilder().build(credential, parameters)

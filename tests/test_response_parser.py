"""Tests for response decoding into canonical records."""

import pytest

from tcu_api.exceptions import ParseError
from tcu_api.response_parser import (
    ALIAS_TABLE,
    CanonicalResponse,
    ResponseParser,
    parse_response,
    resolve_alias,
)
from tcu_api.values import ListValue, MapValue, Scalar


@pytest.fixture
def parser():
    return ResponseParser()


class TestParse:
    def test_canonical_record_from_bare_payload(self, parser):
        record = parser.parse(
            "<Response>"
            "<StatusCode>200</StatusCode>"
            "<StatusDescription>Operation was performed successfully.</StatusDescription>"
            "<f4indexno>S0123/0001/2023</f4indexno>"
            "</Response>"
        )
        assert record.status_code == 200
        assert record.index_id == "S0123/0001/2023"
        assert record.status_description == "Operation was performed successfully."
        assert record.data == MapValue()
        assert record.classification.success is True
        assert record.is_success()

    def test_soap_envelope(self, parser, load_fixture):
        record = parser.parse(load_fixture("check_status_response.xml"))
        assert record.status_code == 201
        assert record.index_id == "S0123/0001/2023"
        assert record.data.to_python() == {"AdmissionStatus": "Admitted", "Institution": "UD"}
        assert record.message == "Applicant record was found in prior admission list."

    def test_lowercase_aliases(self, parser, load_fixture):
        record = parser.parse(load_fixture("error_response.xml"))
        assert record.status_code == 208
        assert record.index_id == "S0123/0001/2023"
        assert record.status_description.startswith("The applicant has already")
        assert len(record.data) == 0
        assert record.is_error()
        assert record.classification.duplicate is True

    def test_alias_precedence_and_removal(self, parser):
        record = parser.parse(
            "<R><status_code>210</status_code><StatusCode>200</StatusCode>"
            "<Other>x</Other></R>"
        )
        assert record.status_code == 200
        assert list(record.data.keys()) == ["Other"]

    def test_repeated_children_become_list(self, parser):
        record = parser.parse("<R><Item>a</Item><Item>b</Item></R>")
        assert record.data["Item"] == ListValue([Scalar("a"), Scalar("b")])

    def test_repeated_children_keep_order(self, parser):
        record = parser.parse("<R><Item>a</Item><Other/><Item>b</Item><Item>c</Item></R>")
        assert record.data["Item"].to_python() == ["a", "b", "c"]

    def test_nested_elements(self, parser):
        record = parser.parse(
            "<R><Applicant><firstname>Asha</firstname><surname>Juma</surname></Applicant></R>"
        )
        applicant = record.data["Applicant"]
        assert isinstance(applicant, MapValue)
        assert record.get("Applicant") == {"firstname": "Asha", "surname": "Juma"}

    def test_leaf_text_is_trimmed(self, parser):
        record = parser.parse("<R>\n  <StatusCode>\n 200 \n</StatusCode>\n  <Note>  hi </Note>\n</R>")
        assert record.status_code == 200
        assert record.get("Note") == "hi"

    def test_payload_attributes(self, parser):
        record = parser.parse('<R version="2"><StatusCode>200</StatusCode></R>')
        assert record.get("@version") == "2"

    def test_namespaced_payload(self, parser):
        record = parser.parse(
            '<t:R xmlns:t="urn:example"><t:StatusCode>205</t:StatusCode></t:R>'
        )
        assert record.status_code == 205

    def test_missing_fields_default(self, parser):
        record = parser.parse("<R><Other>x</Other></R>")
        assert record.index_id == ""
        assert record.status_code == 0
        assert record.status_description == ""
        assert record.is_error()

    def test_non_numeric_status(self, parser):
        assert parser.parse("<R><StatusCode>OK</StatusCode></R>").status_code == 0

    @pytest.mark.parametrize("text", ["2_00", "\u0662\u0660\u0660", "200.0", "0x c8"])
    def test_status_must_be_ascii_digits(self, parser, text):
        xml = f"<R><StatusCode>{text}</StatusCode></R>"
        assert parser.parse(xml).status_code == 0

    def test_signed_status(self, parser):
        assert parser.parse("<R><StatusCode> +201 </StatusCode></R>").status_code == 201

    def test_nested_attributes_are_dropped(self, parser):
        record = parser.parse('<R><Results count="2"/></R>')
        assert record.data["Results"] == Scalar("")

    def test_raw_is_kept(self, parser):
        xml = "<R><StatusCode>200</StatusCode></R>"
        assert parser.parse(xml).raw == xml

    def test_module_level_helper(self):
        assert parse_response("<R><StatusCode>200</StatusCode></R>").status_code == 200


class TestParseErrors:
    def test_malformed_xml(self, parser):
        with pytest.raises(ParseError, match="Invalid XML format"):
            parser.parse("<a><b></a>")

    @pytest.mark.parametrize("xml", ["", "   ", None])
    def test_empty_input(self, parser, xml):
        with pytest.raises(ParseError, match="Empty XML response received"):
            parser.parse(xml)

    def test_raw_travels_with_error(self, parser):
        with pytest.raises(ParseError) as exc_info:
            parser.parse("<a><b></a>")
        assert exc_info.value.raw == "<a><b></a>"

    def test_envelope_without_body(self, parser, load_fixture):
        with pytest.raises(ParseError, match="no Body"):
            parser.parse(load_fixture("missing_body.xml"))

    def test_envelope_with_empty_body(self, parser):
        with pytest.raises(ParseError, match="no payload"):
            parser.parse(
                '<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/">'
                "<soap:Body/></soap:Envelope>"
            )

    def test_entity_declarations_rejected(self, parser):
        with pytest.raises(ParseError):
            parser.parse('<!DOCTYPE r [<!ENTITY a "aaaa">]><r>&a;</r>')


class TestBestEffort:
    def test_is_success_response(self, parser):
        assert parser.is_success_response("<R><StatusCode>200</StatusCode></R>") is True
        assert parser.is_success_response("<R><StatusCode>231</StatusCode></R>") is True
        assert parser.is_success_response("<R><StatusCode>208</StatusCode></R>") is False
        assert parser.is_success_response("<a><b></a>") is False

    def test_extract_status_code(self, parser):
        assert parser.extract_status_code("<R><StatusCode>210</StatusCode></R>") == 210
        assert parser.extract_status_code("<a><b></a>") == -1

    def test_extract_status_description(self, parser):
        assert parser.extract_status_description(
            "<R><StatusDescription>fine</StatusDescription></R>"
        ) == "fine"
        assert parser.extract_status_description("").startswith(
            "Failed to parse response"
        )

    def test_parse_error_response(self, parser, load_fixture):
        result = parser.parse_error_response(load_fixture("error_response.xml"))
        assert result["error"] is True
        assert result["error_code"] == 208
        assert result["f4indexno"] == "S0123/0001/2023"

    def test_parse_error_response_on_garbage(self, parser):
        result = parser.parse_error_response("not xml")
        assert result["error_code"] == -1
        assert result["error_message"].startswith("Failed to parse error response")
        assert result["raw_response"] == "not xml"


class TestExtraction:
    def test_extract_search_results_many(self, parser, load_fixture):
        results = parser.extract_search_results(load_fixture("search_results_response.xml"))
        assert [r["firstname"] for r in results] == ["Asha", "Juma"]

    def test_extract_search_results_single(self, parser):
        results = parser.extract_search_results(
            "<R><Results><firstname>Asha</firstname></Results></R>"
        )
        assert results == [{"firstname": "Asha"}]

    def test_extract_search_results_none(self, parser):
        assert parser.extract_search_results("<R><StatusCode>210</StatusCode></R>") == []

    def test_extract_applicant_data(self, parser):
        data = parser.extract_applicant_data(
            "<R><firstname>Asha</firstname><surname>Juma</surname>"
            "<gender>F</gender><unrelated>x</unrelated></R>"
        )
        assert data == {"firstname": "Asha", "surname": "Juma", "gender": "F"}

    def test_extract_applicant_data_includes_index_number(self, parser):
        data = parser.extract_applicant_data(
            "<R><f4indexno>S0123/0001/2023</f4indexno><firstname>Asha</firstname></R>"
        )
        assert data == {"firstname": "Asha", "f4indexno": "S0123/0001/2023"}

    def test_format_xml(self):
        pretty = ResponseParser.format_xml("<R><A>1</A></R>")
        assert pretty == "<R>\n  <A>1</A>\n</R>"
        assert ResponseParser.format_xml("<broken") == "<broken"


class TestCanonicalResponse:
    def test_to_dict(self, parser):
        record = parser.parse(
            "<R><f4indexno>S0123/0001/2023</f4indexno><StatusCode>208</StatusCode>"
            "<Extra>1</Extra></R>"
        )
        result = record.to_dict()
        assert result["f4indexno"] == "S0123/0001/2023"
        assert result["status_code"] == 208
        assert result["categories"] == ["error", "duplicate"]
        assert result["data"] == {"Extra": "1"}
        assert set(result) == {
            "f4indexno",
            "status_code",
            "status_description",
            "message",
            "categories",
            "data",
            "timestamp",
        }

    def test_get_default(self):
        record = CanonicalResponse(index_id="", status_code=0, status_description="")
        assert record.get("missing", "fallback") == "fallback"

    def test_resolve_alias_order(self):
        data = MapValue({"status_code": Scalar("1"), "StatusCode": Scalar("2")})
        assert resolve_alias(data, ALIAS_TABLE["status_code"]) == Scalar("2")

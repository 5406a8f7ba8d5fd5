"""Tests for request envelope construction."""

import xml.etree.ElementTree as ET

import pytest

from tcu_api.exceptions import BuildError
from tcu_api.request_builder import (
    SOAP_NS,
    TCU_NS,
    XML_DECLARATION,
    RequestBuilder,
    build_request,
)
from tcu_api.values import MapValue, Scalar

PARAMS_PATH = f"{{{SOAP_NS}}}Body/{{{TCU_NS}}}RequestParameters"


def parameters_of(xml):
    root = ET.fromstring(xml)
    container = root.find(PARAMS_PATH)
    assert container is not None
    return container


class TestEnvelope:
    def test_round_trip_of_credential_and_parameters(self, builder, credential):
        xml = builder.build(
            credential, {"Operation": "CheckStatus", "f4indexno": "S0123/0001/2023"}
        )
        root = ET.fromstring(xml)

        assert root.find(".//Username").text == "jdoe"
        assert root.find(".//SessionToken").text == "abcdefghij0123"
        params = parameters_of(xml)
        assert params.find("Operation").text == "CheckStatus"
        assert params.find("f4indexno").text == "S0123/0001/2023"

    def test_layout_and_namespaces(self, builder, credential):
        xml = builder.build(credential, {"Operation": "CheckStatus"})

        assert xml.startswith(XML_DECLARATION + "\n")
        assert "<soap:Envelope" in xml
        assert f'xmlns:soap="{SOAP_NS}"' in xml
        assert f'xmlns:tcu="{TCU_NS}"' in xml
        root = ET.fromstring(xml)
        assert [child.tag for child in root] == [
            f"{{{SOAP_NS}}}Header",
            f"{{{SOAP_NS}}}Body",
        ]
        token = root.find(f"{{{SOAP_NS}}}Header/Security/UsernameToken")
        assert [child.tag for child in token] == ["Username", "SessionToken", "Timestamp"]

    def test_timestamp_comes_from_clock(self, builder, credential):
        root = ET.fromstring(builder.build(credential, {}))
        assert root.find(".//Timestamp").text == "2025-01-09T10:00:00Z"

    def test_output_is_deterministic(self, builder, credential):
        params = {"Operation": "CheckStatus", "ids": ["a", "b"]}
        assert builder.build(credential, params) == builder.build(credential, params)

    def test_empty_parameters_still_emit_container(self, builder, credential):
        for params in (None, {}, MapValue()):
            assert len(parameters_of(builder.build(credential, params))) == 0

    def test_compact_output(self, credential, fixed_now):
        xml = RequestBuilder(clock=lambda: fixed_now, pretty=False).build(
            credential, {"a": "b"}
        )
        assert "\n  " not in xml

    def test_module_level_helper(self, credential):
        xml = build_request(credential, {"Operation": "CheckStatus"})
        assert parameters_of(xml).find("Operation").text == "CheckStatus"


class TestParameterSerialization:
    def test_key_sanitization_uses_param_prefix(self, builder, credential):
        params = parameters_of(builder.build(credential, {"123abc": "x", "first name": "y"}))
        assert params.find("param_123abc").text == "x"
        assert params.find("firstname").text == "y"

    def test_empty_key_gets_placeholder_name(self, builder, credential):
        params = parameters_of(builder.build(credential, {"": "x"}))
        assert params.find("param_").text == "x"

    def test_collision_keeps_first_value(self, builder, credential):
        params = parameters_of(
            builder.build(credential, {"first name": "a", "firstname": "b"})
        )
        matches = params.findall("firstname")
        assert len(matches) == 1
        assert matches[0].text == "a"

    def test_list_repeats_parent_name(self, builder, credential):
        params = parameters_of(
            builder.build(credential, {"f4indexno": ["S0123/0001/2023", "S0456/0002/2023"]})
        )
        assert [el.text for el in params.findall("f4indexno")] == [
            "S0123/0001/2023",
            "S0456/0002/2023",
        ]

    def test_nested_maps(self, builder, credential):
        params = parameters_of(
            builder.build(credential, {"SearchCriteria": {"surname": "Doe", "year": 2023}})
        )
        assert params.find("SearchCriteria/surname").text == "Doe"
        assert params.find("SearchCriteria/year").text == "2023"

    def test_text_is_escaped(self, builder, credential):
        xml = builder.build(credential, {"note": "a < b & c"})
        assert "a &lt; b &amp; c" in xml
        assert parameters_of(xml).find("note").text == "a < b & c"

    def test_booleans(self, builder, credential):
        params = parameters_of(builder.build(credential, {"flag": True}))
        assert params.find("flag").text == "true"

    def test_value_tree_input(self, builder, credential):
        tree = MapValue({"Operation": Scalar("CheckStatus")})
        assert parameters_of(builder.build(credential, tree)).find("Operation").text == "CheckStatus"


class TestBuildErrors:
    def test_rejects_non_credential(self, builder):
        with pytest.raises(BuildError, match="Expected UsernameToken"):
            builder.build({"username": "jdoe"}, {})

    @pytest.mark.parametrize("params", [["a", "b"], "CheckStatus", 42])
    def test_rejects_non_mapping_parameters(self, builder, credential, params):
        with pytest.raises(BuildError, match="must be a mapping"):
            builder.build(credential, params)

    def test_rejects_unserializable_keys(self, builder, credential):
        with pytest.raises(BuildError, match="Cannot serialize"):
            builder.build(credential, {("a",): "b"})

    def test_rejects_illegal_xml_characters(self, builder, credential):
        with pytest.raises(BuildError, match="not allowed in XML"):
            builder.build(credential, {"note": "bad\x00value"})

    def test_required_field_missing(self, builder, credential):
        with pytest.raises(BuildError, match="Required field 'f4indexno'"):
            builder.build(credential, {"Operation": "x"}, required=("f4indexno",))

    def test_required_field_empty(self, builder, credential):
        with pytest.raises(BuildError):
            builder.build(credential, {"f4indexno": ""}, required=("f4indexno",))


class TestConvenienceBuilders:
    def test_simple_request(self, builder, credential):
        params = parameters_of(
            builder.build_simple_request(credential, "Ping", {"echo": "hi"})
        )
        assert params.find("Operation").text == "Ping"
        assert params.find("Data/echo").text == "hi"

    def test_applicant_search(self, builder, credential):
        params = parameters_of(
            builder.build_applicant_search_request(credential, {"surname": "Doe"})
        )
        assert params.find("Operation").text == "SearchApplicant"
        assert params.find("SearchCriteria/surname").text == "Doe"

    def test_applicant_registration(self, builder, credential):
        applicant = {
            "firstname": "Asha",
            "middlename": "M",
            "surname": "Juma",
            "f4indexno": "S0123/0001/2023",
        }
        params = parameters_of(
            builder.build_applicant_registration_request(credential, applicant)
        )
        assert params.find("Operation").text == "RegisterApplicant"
        assert params.find("ApplicantData/surname").text == "Juma"

    def test_applicant_registration_requires_names(self, builder, credential):
        with pytest.raises(BuildError, match="middlename"):
            builder.build_applicant_registration_request(
                credential, {"firstname": "Asha", "surname": "Juma"}
            )

    def test_applicant_registration_checks_index_number(self, builder, credential):
        applicant = {
            "firstname": "Asha",
            "middlename": "M",
            "surname": "Juma",
            "f4indexno": "123",
        }
        with pytest.raises(BuildError, match="Invalid f4indexno format"):
            builder.build_applicant_registration_request(credential, applicant)

    def test_status_update(self, builder, credential):
        params = parameters_of(
            builder.build_status_update_request(credential, "S0123/0001/2023", "Confirmed")
        )
        assert params.find("Operation").text == "UpdateStatus"
        assert params.find("Status").text == "Confirmed"

    def test_status_update_requires_status(self, builder, credential):
        with pytest.raises(BuildError):
            builder.build_status_update_request(credential, "S0123/0001/2023", "")

    def test_xml_template(self):
        template = RequestBuilder.xml_template()
        assert template.startswith(XML_DECLARATION)
        assert "USERNAME_HERE" in template
        assert "<tcu:RequestParameters>" in template

import pytest

from trustconf.exception import FilterParseError
from trustconf.exception import ProfileParseError
from trustconf.filter import filter_name
from trustconf.filter import normalize_filters
from trustconf.filter import normalize_relationship
from trustconf.filter import parse_filter
from trustconf.filter import parse_profile_configuration
from trustconf.message import TrustRelationship
from tests.directory_data import SIGNATURE_FILTER
from tests.directory_data import SSO_PROFILE
from tests.directory_data import VALIDITY_FILTER
from tests.directory_data import WHITE_LIST_FILTER

BAD_FILTER = '<MetadataFilter type="RequiredValidUntil"'


def test_parse_filter():
    _filter = parse_filter(SIGNATURE_FILTER)
    assert _filter.type == "SignatureValidation"
    assert _filter.name == "signatureValidation"
    assert _filter.attributes == {
        "requireSignedRoot": "true",
        "certificateFile": "/opt/upload/federation.crt"
    }
    assert _filter.xml == SIGNATURE_FILTER
    assert _filter.is_entity_role_white_list() is False
    assert parse_filter(WHITE_LIST_FILTER).is_entity_role_white_list()


def test_parse_filter_fails():
    with pytest.raises(FilterParseError):
        parse_filter(BAD_FILTER)

    # well-formed but untyped
    with pytest.raises(FilterParseError):
        parse_filter('<MetadataFilter maxValidityInterval="P14D"/>')


def test_filter_name():
    assert filter_name("EntityRoleWhiteList") == "entityRoleWhiteList"
    assert filter_name("") == ""


def test_white_list_last():
    _filters, errors = normalize_filters([WHITE_LIST_FILTER, VALIDITY_FILTER, SIGNATURE_FILTER])
    assert [f.type for f in _filters] == [
        "RequiredValidUntil", "SignatureValidation", "EntityRoleWhiteList"]
    assert errors == []

    _filters, errors = normalize_filters([VALIDITY_FILTER, WHITE_LIST_FILTER, SIGNATURE_FILTER])
    assert [f.type for f in _filters] == [
        "RequiredValidUntil", "SignatureValidation", "EntityRoleWhiteList"]


def test_bad_filter_dropped():
    _filters, errors = normalize_filters([BAD_FILTER, VALIDITY_FILTER])
    assert [f.type for f in _filters] == ["RequiredValidUntil"]
    assert len(errors) == 1


def test_profile_configuration():
    _profile = parse_profile_configuration(SSO_PROFILE)
    assert _profile.name == "SAML2SSO"
    assert _profile.get("signAssertions") == "conditional"
    assert _profile.get("encryptAssertions") == "never"
    assert _profile.get("includeAttributeStatement") is None


def test_profile_configuration_fails():
    with pytest.raises(ProfileParseError):
        parse_profile_configuration("<ProfileConfiguration")


def test_normalize_relationship():
    tr = TrustRelationship(inum="@!1111.0001", sp_metadata_source_type="file",
                           metadata_filters=[WHITE_LIST_FILTER, BAD_FILTER, VALIDITY_FILTER],
                           profile_configurations=[SSO_PROFILE])
    normalized = normalize_relationship(tr)
    assert normalized.inum == "@!1111.0001"
    assert normalized.metadata_filters == [VALIDITY_FILTER, WHITE_LIST_FILTER]
    assert list(normalized.profile_configurations.keys()) == ["SAML2SSO"]
    assert len(normalized.errors) == 1
    assert normalized.filter("entityRoleWhiteList") is not None
    assert normalized.filter("signatureValidation") is None


def test_normalize_bad_profile():
    tr = TrustRelationship(inum="@!1111.0001", sp_metadata_source_type="file",
                           metadata_filters=[VALIDITY_FILTER],
                           profile_configurations=[SSO_PROFILE, "<ProfileConfiguration"])
    normalized = normalize_relationship(tr)
    assert normalized.profile_configurations == {}
    assert normalized.metadata_filters == [VALIDITY_FILTER]
    assert len(normalized.errors) == 1


def test_normalize_nothing():
    normalized = normalize_relationship(
        TrustRelationship(inum="@!1111.0001", sp_metadata_source_type="file"))
    assert normalized.filters == []
    assert normalized.profile_configurations == {}
    assert normalized.errors == []

import pytest

from trustconf.attribute import create_attribute_map
from trustconf.attribute import ordered_released_attributes
from trustconf.attribute import resolve_released_attributes
from trustconf.attribute import saml1_uri
from trustconf.attribute import saml2_uri
from trustconf.exception import AttributeResolutionError
from trustconf.message import Attribute
from trustconf.message import TrustRelationship
from trustconf.schema import SchemaService
from trustconf.service import AttributeService
from tests.directory_data import CN_DN
from tests.directory_data import MAIL_DN
from tests.directory_data import UID_DN
from tests.directory_data import memory_store


class TestAttributes():
    @pytest.fixture(autouse=True)
    def create_services(self):
        store = memory_store()
        self.schema = SchemaService(store).get_schema()
        self.attribute_service = AttributeService(store)
        self.attributes = self.attribute_service.get_all_person_attributes()
        self.by_name = {a["name"]: a for a in self.attributes}

    def test_all_attributes(self):
        assert [a["name"] for a in self.attributes] == [
            "cn", "givenName", "mail", "nickname", "transientId", "uid"]
        assert self.attribute_service.get_attribute_by_name("UID")["dn"] == UID_DN

    def test_saml1_uri(self):
        assert saml1_uri(self.by_name["uid"]) == "urn:mace:dir:attribute-def:uid"
        assert saml1_uri(self.by_name["mail"]) == "urn:gluu:dir:attribute-def:mail"
        # No URN at all
        assert saml1_uri(self.by_name["cn"]) == "urn:gluu:dir:attribute-def:cn"
        # Custom attribute
        assert saml1_uri(self.by_name["transientId"]) == "urn:gluu:dir:attribute-def:transientId"

    def test_saml2_uri(self):
        assert saml2_uri(self.by_name["uid"], self.schema) == "urn:oid:0.9.2342.19200300.100.1.1"
        assert saml2_uri(self.by_name["cn"], self.schema) == "urn:oid:2.5.4.3"
        # Stored value wins
        assert saml2_uri(self.by_name["givenName"], self.schema) == "urn:oid:2.5.4.42"

    def test_saml2_uri_unknown_oid(self):
        with pytest.raises(AttributeResolutionError):
            saml2_uri(self.by_name["nickname"], self.schema)

    def test_attribute_map(self):
        params = create_attribute_map(
            [self.by_name["uid"], self.by_name["mail"], self.by_name["uid"]], self.schema)
        assert [a["name"] for a in params.attributes] == ["mail", "uid"]
        assert set(params.attribute_saml1_strings.keys()) == {"mail", "uid"}
        assert set(params.attribute_saml2_strings.keys()) == {"mail", "uid"}
        assert params.attribute_saml2_strings["mail"] == "urn:oid:0.9.2342.19200300.100.1.3"

    def test_attribute_map_all_or_nothing(self):
        with pytest.raises(AttributeResolutionError):
            create_attribute_map([self.by_name["uid"], self.by_name["nickname"]], self.schema)

    def test_released_uid_first(self):
        tr = TrustRelationship(inum="@!1111.0001", sp_metadata_source_type="file",
                               released_attributes=[MAIL_DN, CN_DN, UID_DN])
        assert ordered_released_attributes(tr, self.by_name["uid"]) == [UID_DN, MAIL_DN, CN_DN]
        assert ordered_released_attributes(tr) == [MAIL_DN, CN_DN, UID_DN]

        by_dn = self.attribute_service.get_attribute_map_by_dns(self.attributes)
        released, missing = resolve_released_attributes(tr, by_dn, self.by_name["uid"])
        assert [r.name for r in released] == ["uid", "mail", "cn"]
        assert missing == []

    def test_released_unknown_dn(self):
        tr = TrustRelationship(inum="@!1111.0001", sp_metadata_source_type="file",
                               released_attributes=[MAIL_DN, "inum=XXXX,ou=attributes,o=gluu"])
        by_dn = self.attribute_service.get_attribute_map_by_dns(self.attributes)
        released, missing = resolve_released_attributes(tr, by_dn)
        assert [r.name for r in released] == ["mail"]
        assert missing == ["inum=XXXX,ou=attributes,o=gluu"]


def test_explicit_saml1_uri():
    attr = Attribute(name="eduPersonPrincipalName",
                     saml1_uri="urn:mace:dir:attribute-def:eduPersonPrincipalName")
    assert saml1_uri(attr) == "urn:mace:dir:attribute-def:eduPersonPrincipalName"

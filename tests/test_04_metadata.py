import os

import pytest

from trustconf.exception import MetadataParseError
from trustconf.metadata import entity_ids_from_file
from trustconf.metadata import extract_entity_ids
from trustconf.metadata import extract_sp_entity_ids
from trustconf.metadata import is_federation_aggregate
from trustconf.metadata import parse_metadata
from trustconf.metadata import read_metadata_file
from trustconf.metadata import sp_entity_ids_from_file
from trustconf.metadata import validate_metadata
from tests.directory_data import IDP3
from tests.directory_data import MEMBER1
from tests.directory_data import MEMBER2
from tests.directory_data import METADATA_DIR
from tests.directory_data import SP1_ENTITY_ID
from tests.directory_data import SP2_ENTITY_ID


def _read(name):
    return read_metadata_file(os.path.join(METADATA_DIR, name))


def test_single_entity():
    assert extract_entity_ids(_read("sp1-sp-metadata.xml")) == [SP1_ENTITY_ID]
    # default namespace instead of a prefix
    assert extract_entity_ids(_read("sp2-sp-metadata.xml")) == [SP2_ENTITY_ID]


def test_federation_entities():
    _data = _read("federation-metadata.xml")
    assert extract_entity_ids(_data) == [MEMBER1, MEMBER2, IDP3]
    assert extract_sp_entity_ids(_data) == [MEMBER1, MEMBER2]


def test_corrupt():
    assert extract_entity_ids(_read("corrupt-sp-metadata.xml")) is None
    assert extract_sp_entity_ids(_read("corrupt-sp-metadata.xml")) is None
    assert is_federation_aggregate(_read("corrupt-sp-metadata.xml")) is False


def test_no_entities():
    assert extract_entity_ids(_read("empty-metadata.xml")) == []


def test_is_federation_aggregate():
    assert is_federation_aggregate(_read("federation-metadata.xml"))
    assert is_federation_aggregate(_read("empty-metadata.xml"))
    assert is_federation_aggregate(_read("sp1-sp-metadata.xml")) is False


def test_parse_refuses_entities():
    _doc = (b'<?xml version="1.0"?>'
            b'<!DOCTYPE lolz [<!ENTITY lol "lol">]>'
            b'<md:EntityDescriptor xmlns:md="urn:oasis:names:tc:SAML:2.0:metadata" '
            b'entityID="&lol;"/>')
    with pytest.raises(MetadataParseError):
        parse_metadata(_doc)
    assert extract_entity_ids(_doc) is None


def test_parse_empty():
    with pytest.raises(MetadataParseError):
        parse_metadata(b"")


def test_files():
    assert entity_ids_from_file(os.path.join(METADATA_DIR, "sp1-sp-metadata.xml")) == [
        SP1_ENTITY_ID]
    assert sp_entity_ids_from_file(os.path.join(METADATA_DIR, "federation-metadata.xml")) == [
        MEMBER1, MEMBER2]
    assert entity_ids_from_file(os.path.join(METADATA_DIR, "no-such-file.xml")) is None


def test_validate_malformed():
    report = validate_metadata(_read("corrupt-sp-metadata.xml"))
    assert bool(report) is False
    assert report.valid is False
    assert report.messages

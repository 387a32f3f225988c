"""Inspection of SAML metadata documents."""
import logging
import os
from typing import List
from typing import Optional
from typing import Union
from xml.etree.ElementTree import ParseError

from cryptojwt.utils import as_bytes
from defusedxml import DefusedXmlException
from defusedxml.ElementTree import fromstring
from idpyoidc.impexp import ImpExp
from saml2 import md
from saml2.xml.schema import XMLSchemaError
from saml2.xml.schema import validate as validate_doc_with_schema

from trustconf.exception import MetadataParseError

logger = logging.getLogger(__name__)

ENTITY_DESCRIPTOR = "{%s}%s" % (md.NAMESPACE, md.EntityDescriptor.c_tag)
SP_SSO_DESCRIPTOR = "{%s}%s" % (md.NAMESPACE, md.SPSSODescriptor.c_tag)
ENTITIES_DESCRIPTOR_NAME = md.EntitiesDescriptor.c_tag


def local_name(tag: str) -> str:
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def parse_metadata(metadata: Union[str, bytes]):
    """
    Parse a metadata document.

    :param metadata: The document
    :return: The root element
    :raises MetadataParseError: if the document is not well-formed or contains
        constructs that are not allowed (DTDs, entity expansion)
    """
    if not metadata:
        raise MetadataParseError("Empty metadata document")

    try:
        return fromstring(as_bytes(metadata))
    except (ParseError, DefusedXmlException, ValueError) as err:
        raise MetadataParseError(f"Could not parse metadata: {err}")


def _entity_ids(root, sp_only=False) -> List[str]:
    res = []
    for elem in root.iter(ENTITY_DESCRIPTOR):
        if sp_only and elem.find(SP_SSO_DESCRIPTOR) is None:
            continue
        _id = elem.get("entityID")
        if _id and _id not in res:
            res.append(_id)
    return res


def extract_entity_ids(metadata: Union[str, bytes]) -> Optional[List[str]]:
    """
    Collects the entity IDs defined in a metadata document.

    :param metadata: The document
    :return: A list of entity IDs, possibly empty. None if the document could not be
        parsed.
    """
    try:
        root = parse_metadata(metadata)
    except MetadataParseError as err:
        logger.warning(str(err))
        return None

    return _entity_ids(root)


def extract_sp_entity_ids(metadata: Union[str, bytes]) -> Optional[List[str]]:
    """As extract_entity_ids but only entities with an SP role."""
    try:
        root = parse_metadata(metadata)
    except MetadataParseError as err:
        logger.warning(str(err))
        return None

    return _entity_ids(root, sp_only=True)


def is_federation_aggregate(metadata: Union[str, bytes]) -> bool:
    """
    True if the document contains one or more EntitiesDescriptor elements, that is
    it describes a federation rather than a single entity.
    """
    try:
        root = parse_metadata(metadata)
    except MetadataParseError as err:
        logger.warning(str(err))
        return False

    for elem in root.iter():
        if isinstance(elem.tag, str) and local_name(elem.tag) == ENTITIES_DESCRIPTOR_NAME:
            return True
    return False


def read_metadata_file(path: str) -> Optional[bytes]:
    if not os.path.isfile(path):
        logger.warning(f"Missing metadata file '{path}'")
        return None

    try:
        with open(path, "rb") as fp:
            return fp.read()
    except OSError as err:
        logger.error(f"Failed to read metadata file '{path}': {err}")
        return None


def entity_ids_from_file(path: str) -> Optional[List[str]]:
    _data = read_metadata_file(path)
    if _data is None:
        return None
    return extract_entity_ids(_data)


def sp_entity_ids_from_file(path: str) -> Optional[List[str]]:
    _data = read_metadata_file(path)
    if _data is None:
        return None
    return extract_sp_entity_ids(_data)


class ValidationReport(ImpExp):
    parameter = {
        "valid": bool,
        "schema_error": bool,
        "messages": []
    }

    def __init__(self, valid: bool = False, schema_error: bool = False,
                 messages: Optional[List[str]] = None):
        ImpExp.__init__(self)
        self.valid = valid
        self.schema_error = schema_error
        self.messages = messages or []

    def __bool__(self):
        return self.valid


def validate_metadata(metadata: Union[str, bytes]) -> ValidationReport:
    """Validate a metadata document against the SAML metadata XML schema."""
    try:
        parse_metadata(metadata)
    except MetadataParseError as err:
        return ValidationReport(valid=False, messages=[str(err)])

    try:
        validate_doc_with_schema(as_bytes(metadata).decode("utf-8"))
    except XMLSchemaError as err:
        logger.info(f"Metadata failed schema validation: {err}")
        return ValidationReport(valid=False, messages=[str(err)])
    except (UnicodeDecodeError, ValueError) as err:
        return ValidationReport(valid=False, schema_error=True, messages=[str(err)])

    return ValidationReport(valid=True)

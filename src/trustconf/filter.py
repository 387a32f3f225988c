"""
Parsing of the metadata filter and profile configuration blobs stored with a
trust relationship.
"""
import logging
from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple
from xml.etree.ElementTree import ParseError

from cryptojwt.utils import as_bytes
from defusedxml import DefusedXmlException
from defusedxml.ElementTree import fromstring
from idpyoidc.impexp import ImpExp

from trustconf.defaults import ENTITY_ROLE_WHITE_LIST_TYPE
from trustconf.defaults import XSI_NAMESPACE
from trustconf.exception import FilterParseError
from trustconf.exception import ProfileParseError
from trustconf.message import TrustRelationship

logger = logging.getLogger(__name__)

XSI_TYPE = "{%s}type" % XSI_NAMESPACE


def _parse_typed_element(xml: str) -> Tuple[str, Dict[str, str]]:
    root = fromstring(as_bytes(xml))
    _type = root.get(XSI_TYPE)
    if not _type:
        raise ValueError("Missing xsi:type")

    attributes = {k: v for k, v in root.attrib.items() if not k.startswith("{")}
    # Drop any namespace prefix, 'saml:SAML2SSOProfile' -> 'SAML2SSOProfile'
    return _type.split(":")[-1], attributes


def filter_name(filter_type: str) -> str:
    return filter_type[:1].lower() + filter_type[1:]


class ParsedFilter(ImpExp):
    parameter = {
        "type": "",
        "attributes": {},
        "xml": ""
    }

    def __init__(self, type: str = "", attributes: Optional[dict] = None, xml: str = ""):
        ImpExp.__init__(self)
        self.type = type
        self.attributes = attributes or {}
        self.xml = xml

    @property
    def name(self):
        return filter_name(self.type)

    def is_entity_role_white_list(self) -> bool:
        return self.type == ENTITY_ROLE_WHITE_LIST_TYPE


def parse_filter(xml: str) -> ParsedFilter:
    try:
        _type, attributes = _parse_typed_element(xml)
    except (ParseError, DefusedXmlException, ValueError) as err:
        raise FilterParseError(f"Invalid metadata filter: {err}")

    return ParsedFilter(type=_type, attributes=attributes, xml=xml)


class ProfileConfiguration(ImpExp):
    parameter = {
        "name": "",
        "attributes": {}
    }

    def __init__(self, name: str = "", attributes: Optional[dict] = None):
        ImpExp.__init__(self)
        self.name = name
        self.attributes = attributes or {}

    def get(self, item, default=None):
        return self.attributes.get(item, default)


def parse_profile_configuration(xml: str) -> ProfileConfiguration:
    try:
        _type, attributes = _parse_typed_element(xml)
    except (ParseError, DefusedXmlException, ValueError) as err:
        raise ProfileParseError(f"Invalid profile configuration: {err}")

    if _type.endswith("Profile"):
        _type = _type[:-len("Profile")]
    return ProfileConfiguration(name=_type, attributes=attributes)


def parse_profile_configurations(blobs: List[str]) -> Dict[str, ProfileConfiguration]:
    res = {}
    for xml in blobs:
        _conf = parse_profile_configuration(xml)
        res[_conf.name] = _conf
    return res


def order_filters(filters: List[ParsedFilter]) -> List[ParsedFilter]:
    """
    The entity role white list filter is intrusive, it has to run after all the
    others. Everything else keeps its relative order.
    """
    _white_list = [f for f in filters if f.is_entity_role_white_list()]
    _other = [f for f in filters if not f.is_entity_role_white_list()]
    return _other + _white_list


class NormalizedRelationship(ImpExp):
    parameter = {
        "inum": "",
        "filters": [],
        "profile_configurations": {},
        "errors": []
    }

    def __init__(self, inum: str = "",
                 filters: Optional[List[ParsedFilter]] = None,
                 profile_configurations: Optional[Dict[str, ProfileConfiguration]] = None,
                 errors: Optional[List[str]] = None):
        ImpExp.__init__(self)
        self.inum = inum
        self.filters = filters or []
        self.profile_configurations = profile_configurations or {}
        self.errors = errors or []

    @property
    def metadata_filters(self) -> List[str]:
        return [f.xml for f in self.filters]

    def filter(self, name: str) -> Optional[ParsedFilter]:
        for _filter in self.filters:
            if _filter.name == name:
                return _filter
        return None


def normalize_filters(blobs: List[str]) -> Tuple[List[ParsedFilter], List[str]]:
    parsed = []
    errors = []
    for xml in blobs:
        try:
            parsed.append(parse_filter(xml))
        except FilterParseError as err:
            logger.error(f"Metadata filter contains invalid value: {err}")
            errors.append(str(err))
    return order_filters(parsed), errors


def normalize_relationship(trust_relationship: TrustRelationship) -> NormalizedRelationship:
    """
    Parses the profile configurations and metadata filters of a trust relationship.
    Neither an unparsable filter nor an unparsable profile configuration stops the
    relationship from being used. A bad filter is dropped, a bad profile
    configuration leaves the relationship with no profile configuration at all.
    """
    inum = trust_relationship["inum"]
    errors = []

    try:
        profiles = parse_profile_configurations(
            trust_relationship.get("profile_configurations", []))
    except ProfileParseError as err:
        logger.error(
            f"Failed to parse stored profile configuration for trust relationship {inum}: {err}")
        errors.append(str(err))
        profiles = {}

    filters, _errors = normalize_filters(trust_relationship.get("metadata_filters", []))
    errors.extend(_errors)

    return NormalizedRelationship(inum=inum, filters=filters, profile_configurations=profiles,
                                  errors=errors)

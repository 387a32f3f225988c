"""
Resolution of released attributes and the SAML1/SAML2 names they are released
under.
"""
import logging
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional
from typing import Tuple

from idpyoidc.impexp import ImpExp

from trustconf.defaults import GLUU_ATTRIBUTE_DEF_PREFIX
from trustconf.defaults import SAML1_URI_PATTERN
from trustconf.defaults import SAML2_URI_PATTERN
from trustconf.exception import AttributeResolutionError
from trustconf.exception import SchemaLookupError
from trustconf.message import Attribute
from trustconf.message import TrustRelationship
from trustconf.schema import SchemaSnapshot

logger = logging.getLogger(__name__)


class ReleasedAttribute(ImpExp):
    """An attribute a trust relationship releases together with its definition."""
    parameter = {
        "name": "",
        "dn": "",
        "metadata": None
    }

    def __init__(self, name: str = "", dn: str = "", metadata: Optional[Attribute] = None):
        ImpExp.__init__(self)
        self.name = name
        self.dn = dn
        self.metadata = metadata

    def __repr__(self):
        return f"<ReleasedAttribute {self.name} ({self.dn})>"


class AttributeParams(ImpExp):
    parameter = {
        "attributes": [],
        "attribute_saml1_strings": {},
        "attribute_saml2_strings": {}
    }

    def __init__(self,
                 attributes: Optional[List[Attribute]] = None,
                 attribute_saml1_strings: Optional[Dict[str, str]] = None,
                 attribute_saml2_strings: Optional[Dict[str, str]] = None):
        ImpExp.__init__(self)
        self.attributes = attributes or []
        self.attribute_saml1_strings = attribute_saml1_strings or {}
        self.attribute_saml2_strings = attribute_saml2_strings or {}

    def to_dict(self) -> dict:
        return {
            "attributes": [a.to_dict() for a in self.attributes],
            "attribute_saml1_strings": dict(self.attribute_saml1_strings),
            "attribute_saml2_strings": dict(self.attribute_saml2_strings)
        }


def ordered_released_attributes(trust_relationship: TrustRelationship,
                                uid: Optional[Attribute] = None) -> List[str]:
    """
    The DNs of the released attributes with the uid attribute, if released, first.
    """
    released = list(trust_relationship.get("released_attributes", []))
    if uid is not None and uid.get("dn") in released:
        released.remove(uid["dn"])
        released.insert(0, uid["dn"])
    return released


def resolve_released_attributes(
        trust_relationship: TrustRelationship,
        attributes_by_dn: Dict[str, Attribute],
        uid: Optional[Attribute] = None) -> Tuple[List[ReleasedAttribute], List[str]]:
    """
    :return: tuple of resolved attributes and the DNs that could not be resolved
    """
    res = []
    missing = []
    for dn in ordered_released_attributes(trust_relationship, uid):
        _attr = attributes_by_dn.get(dn)
        if _attr is None:
            missing.append(dn)
            continue
        res.append(ReleasedAttribute(name=_attr["name"], dn=dn, metadata=_attr))
    return res, missing


def is_gluu_attribute(attribute: Attribute) -> bool:
    _urn = attribute.get("urn")
    return bool(attribute.get("custom", False) or not _urn or
                _urn.startswith(GLUU_ATTRIBUTE_DEF_PREFIX))


def saml1_uri(attribute: Attribute) -> str:
    _uri = attribute.get("saml1_uri")
    if _uri:
        return _uri

    namespace = "gluu" if is_gluu_attribute(attribute) else "mace"
    return SAML1_URI_PATTERN.format(namespace, attribute["name"])


def saml2_uri(attribute: Attribute, schema: SchemaSnapshot) -> str:
    _uri = attribute.get("saml2_uri")
    if _uri:
        return _uri

    try:
        _oid = schema.resolve_oid(attribute["name"])
    except SchemaLookupError as err:
        logger.error(f"Failed to get OID for attribute name {attribute['name']}")
        raise AttributeResolutionError(str(err))

    return SAML2_URI_PATTERN.format(_oid)


def unique_attributes(attributes: Iterable[Attribute]) -> List[Attribute]:
    """Attributes deduplicated on name, sorted on name."""
    res = {}
    for attr in attributes:
        if attr is None:
            continue
        res.setdefault(attr["name"], attr)
    return [res[name] for name in sorted(res.keys())]


def create_attribute_map(attributes: Iterable[Attribute], schema: SchemaSnapshot) -> AttributeParams:
    """
    Builds the SAML1 and SAML2 name maps for a set of attributes. Either both maps
    cover every attribute or AttributeResolutionError is raised.
    """
    _attributes = unique_attributes(attributes)

    saml1 = {}
    saml2 = {}
    for attr in _attributes:
        name = attr["name"]
        saml1[name] = saml1_uri(attr)
        saml2[name] = saml2_uri(attr, schema)

    return AttributeParams(attributes=_attributes, attribute_saml1_strings=saml1,
                           attribute_saml2_strings=saml2)

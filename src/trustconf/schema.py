import logging
from typing import Dict
from typing import Iterable
from typing import List
from typing import Optional

from cryptojwt.utils import as_unicode
from ldaptor.schema import AttributeTypeDescription

from trustconf.defaults import SCHEMA_DN
from trustconf.exception import SchemaLookupError
from trustconf.message import SchemaEntry
from trustconf.store import DirectoryStore

logger = logging.getLogger(__name__)


def type_names(definition: AttributeTypeDescription) -> List[str]:
    if not definition.name:
        return []
    return [as_unicode(n) for n in definition.name]


def parse_attribute_types(attribute_types: Iterable[str]) -> List[AttributeTypeDescription]:
    res = []
    for text in attribute_types:
        try:
            res.append(AttributeTypeDescription(text))
        except (AssertionError, ValueError, IndexError) as err:
            logger.warning(f"Skipping unparsable attribute type definition {text!r}: {err}")
    return res


class SchemaSnapshot(object):
    """
    The attribute type definitions of the directory schema as they were when the
    snapshot was taken. Lookups are case insensitive as LDAP names are.
    """

    def __init__(self, definitions: Optional[List[AttributeTypeDescription]] = None):
        self._definitions = tuple(definitions or [])
        self._index = {}
        for _def in self._definitions:
            for name in type_names(_def):
                self._index.setdefault(name.lower(), _def)

    def __len__(self):
        return len(self._definitions)

    def __contains__(self, name):
        return name.lower() in self._index

    def definition(self, name: str) -> Optional[AttributeTypeDescription]:
        return self._index.get(name.lower())

    def definitions(self):
        return self._definitions

    def resolve_oid(self, name: str) -> str:
        _def = self.definition(name)
        if _def is None:
            raise SchemaLookupError(f"No attribute type definition for '{name}'")
        return as_unicode(_def.oid)


class SchemaService(object):

    def __init__(self, store: DirectoryStore, schema_dn: str = SCHEMA_DN):
        self.store = store
        self.schema_dn = schema_dn

    def get_schema(self) -> SchemaSnapshot:
        _entry = self.store.find(self.schema_dn, SchemaEntry)
        if _entry is None:
            logger.warning(f"No schema entry at {self.schema_dn}")
            return SchemaSnapshot()

        snapshot = SchemaSnapshot(parse_attribute_types(_entry.get("attribute_types", [])))
        logger.debug(f"Schema snapshot with {len(snapshot)} attribute types")
        return snapshot

    @staticmethod
    def get_attribute_type_definitions(snapshot: SchemaSnapshot,
                                       names: Iterable[str]) -> List[AttributeTypeDescription]:
        res = []
        for name in names:
            _def = snapshot.definition(name)
            if _def is not None and _def not in res:
                res.append(_def)
        return res

    @staticmethod
    def get_attribute_type_definition(definitions: List[AttributeTypeDescription],
                                      name: str) -> Optional[AttributeTypeDescription]:
        for _def in definitions:
            if name.lower() in [n.lower() for n in type_names(_def)]:
                return _def
        return None


def resolve_oids(snapshot: SchemaSnapshot, names: Iterable[str]) -> Dict[str, str]:
    """
    Map each attribute name to its OID. Fails on the first name the schema does not
    know about.
    """
    return {name: snapshot.resolve_oid(name) for name in names}

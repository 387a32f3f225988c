"""Thin services on top of the directory store."""
import logging
import secrets
from typing import Dict
from typing import List
from typing import Optional

from trustconf.cache import RunCache
from trustconf.defaults import APPLIANCE_CONFIGURATION_DN
from trustconf.defaults import ATTRIBUTE_BASE
from trustconf.defaults import CAS_CONFIGURATION_DN
from trustconf.defaults import NAMEID_BASE
from trustconf.defaults import TRUST_RELATIONSHIP_BASE
from trustconf.message import ApplianceConfiguration
from trustconf.message import Attribute
from trustconf.message import CasProtocolConfiguration
from trustconf.message import NameIdConfig
from trustconf.message import TrustRelationship
from trustconf.store import DirectoryStore
from trustconf.utils import sanitize_inum

logger = logging.getLogger(__name__)


class StoreService(object):

    def __init__(self, store: DirectoryStore, base_dn: str = "o=gluu",
                 cache: Optional[RunCache] = None):
        self.store = store
        self.base_dn = base_dn
        self.cache = cache

    def _cached(self, key, loader, *args):
        if self.cache is None:
            return loader(*args)
        return self.cache.get(key, loader, *args)


class TrustService(StoreService):

    def base(self) -> str:
        return TRUST_RELATIONSHIP_BASE.format(self.base_dn)

    def dn_for_trust_relationship(self, inum: str) -> str:
        return f"inum={inum},{self.base()}"

    def get_all_trust_relationships(self) -> List[TrustRelationship]:
        """
        All trust relationships ordered by inum. Numeric IDs handed out during a run
        follow this order.
        """
        _trs = self.store.find_entries(self.base(), TrustRelationship)
        return sorted(_trs, key=lambda tr: tr["inum"])

    def get_relationship_by_inum(self, inum: Optional[str]) -> Optional[TrustRelationship]:
        if not inum:
            return None
        return self.store.find(self.dn_for_trust_relationship(inum), TrustRelationship)

    def generate_inum_for_new_trust_relationship(self) -> str:
        """The new inum is unique also after sanitizing."""
        _used = {sanitize_inum(tr.get("inum", "")) for tr in self.get_all_trust_relationships()}
        while True:
            inum = f"{secrets.token_hex(2)}.{secrets.token_hex(2)}".upper()
            if sanitize_inum(inum) not in _used:
                return inum

    def add_trust_relationship(self, trust_relationship: TrustRelationship):
        if not trust_relationship.get("dn"):
            trust_relationship["dn"] = self.dn_for_trust_relationship(trust_relationship["inum"])
        self.store.merge(trust_relationship)

    def update_trust_relationship(self, trust_relationship: TrustRelationship):
        self.add_trust_relationship(trust_relationship)


class AttributeService(StoreService):

    def base(self) -> str:
        return ATTRIBUTE_BASE.format(self.base_dn)

    def get_all_person_attributes(self) -> List[Attribute]:
        return self._cached("attributes", self._load_attributes)

    def _load_attributes(self):
        _attrs = self.store.find_entries(self.base(), Attribute)
        return sorted(_attrs, key=lambda a: a["name"])

    @staticmethod
    def get_attribute_map_by_dns(attributes: List[Attribute]) -> Dict[str, Attribute]:
        return {a["dn"]: a for a in attributes if a.get("dn")}

    def get_attribute_by_name(self, name: str,
                              attributes: Optional[List[Attribute]] = None) -> Optional[Attribute]:
        if attributes is None:
            attributes = self.get_all_person_attributes()

        for attr in attributes:
            if attr["name"].lower() == name.lower():
                return attr
        return None


class NameIdService(StoreService):

    def get_name_id_configs(self) -> List[NameIdConfig]:
        _confs = self.store.find_entries(NAMEID_BASE.format(self.base_dn), NameIdConfig)
        return sorted(_confs, key=lambda c: c.get("dn", ""))


class CASService(StoreService):

    def load_cas_configuration(self) -> Optional[CasProtocolConfiguration]:
        return self.store.find(CAS_CONFIGURATION_DN.format(self.base_dn),
                               CasProtocolConfiguration)


class ConfigurationService(StoreService):

    def dn(self):
        return APPLIANCE_CONFIGURATION_DN.format(self.base_dn)

    def get_configuration(self) -> ApplianceConfiguration:
        _conf = self._cached("appliance", self.store.find, self.dn(), ApplianceConfiguration)
        if _conf is None:
            _conf = ApplianceConfiguration(dn=self.dn())
        return _conf

    def update_configuration(self, configuration: ApplianceConfiguration):
        if not configuration.get("dn"):
            configuration["dn"] = self.dn()
        self.store.merge(configuration)
        if self.cache is not None:
            self.cache["appliance"] = configuration

"""
Assembly of everything the configuration templates need into one
ConfigurationContext.
"""
import logging
import os
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional

from idpyoidc.impexp import ImpExp

from trustconf.attribute import AttributeParams
from trustconf.attribute import ReleasedAttribute
from trustconf.attribute import create_attribute_map
from trustconf.attribute import resolve_released_attributes
from trustconf.cache import RunCache
from trustconf.classifier import Classification
from trustconf.classifier import TrustClassifier
from trustconf.configure import TrustConfConfiguration
from trustconf.defaults import IDP_CREDENTIALS_FOLDER
from trustconf.defaults import ORG_INUM
from trustconf.defaults import UID
from trustconf.exception import AttributeResolutionError
from trustconf.message import NameIdConfig
from trustconf.message import TrustRelationship
from trustconf.outcome import Fatal
from trustconf.outcome import Outcome
from trustconf.schema import SchemaService
from trustconf.schema import SchemaSnapshot
from trustconf.service import AttributeService
from trustconf.service import CASService
from trustconf.service import ConfigurationService
from trustconf.service import NameIdService
from trustconf.service import TrustService
from trustconf.store import DirectoryStore
from trustconf.utils import host_from_url
from trustconf.utils import ldap_url
from trustconf.utils import sanitize_inum

logger = logging.getLogger(__name__)


def identity(value):
    return value


class TrustParams(ImpExp):
    parameter = {
        "trusts": [],
        "trust_ids": {},
        "trust_entity_ids": {},
        "deconstructed": [],
        "deconstructed_ids": {},
        "trust_engines": [],
        "normalized": {},
        "released_attributes": {},
        "idp_credentials_path": ""
    }

    def __init__(self, classification: Optional[Classification] = None,
                 released_attributes: Optional[Dict[str, List[ReleasedAttribute]]] = None,
                 idp_credentials_path: str = ""):
        ImpExp.__init__(self)
        _class = classification or Classification()
        self.trusts = _class.trusts
        self.trust_ids = _class.trust_ids
        self.trust_entity_ids = _class.trust_entity_ids
        self.deconstructed = _class.deconstructed
        self.deconstructed_ids = _class.deconstructed_ids
        self.trust_engines = _class.trust_engines
        self.normalized = _class.normalized
        self.released_attributes = released_attributes or {}
        self.idp_credentials_path = idp_credentials_path

    def to_dict(self) -> dict:
        return {
            "trusts": [tr.to_dict() for tr in self.trusts],
            "trust_ids": dict(self.trust_ids),
            "trust_entity_ids": {k: list(v) for k, v in self.trust_entity_ids.items()},
            "deconstructed": [tr.to_dict() for tr in self.deconstructed],
            "deconstructed_ids": dict(self.deconstructed_ids),
            "trust_engines": [dict(e) for e in self.trust_engines],
            "metadata_filters": {k: n.metadata_filters for k, n in self.normalized.items()},
            "profile_configurations": {
                k: {p.name: dict(p.attributes) for p in n.profile_configurations.values()}
                for k, n in self.normalized.items()},
            "released_attributes": {k: [a.name for a in v]
                                    for k, v in self.released_attributes.items()},
            "idp_credentials_path": self.idp_credentials_path
        }


class CasParams(ImpExp):
    parameter = {
        "enabled": bool,
        "extended": bool,
        "enable_to_proxy_patterns": bool,
        "authorized_to_proxy_pattern": "",
        "unauthorized_to_proxy_pattern": ""
    }

    def __init__(self, enabled: bool = False, extended: bool = False,
                 enable_to_proxy_patterns: bool = False,
                 authorized_to_proxy_pattern: str = "",
                 unauthorized_to_proxy_pattern: str = "",
                 configured: bool = False):
        ImpExp.__init__(self)
        self.enabled = enabled
        self.extended = extended
        self.enable_to_proxy_patterns = enable_to_proxy_patterns
        self.authorized_to_proxy_pattern = authorized_to_proxy_pattern
        self.unauthorized_to_proxy_pattern = unauthorized_to_proxy_pattern
        self.configured = configured

    def to_dict(self) -> dict:
        if not self.configured:
            return {}
        return {k: getattr(self, k) for k in self.parameter.keys()}


class ResolverParams(AttributeParams):
    parameter = {
        "configs": [],
        "attributes": [],
        "attribute_saml1_strings": {},
        "attribute_saml2_strings": {},
        "persistence_type": ""
    }

    def __init__(self, configs: Optional[List[NameIdConfig]] = None,
                 attribute_params: Optional[AttributeParams] = None,
                 persistence_type: str = ""):
        _params = attribute_params or AttributeParams()
        AttributeParams.__init__(self, attributes=_params.attributes,
                                 attribute_saml1_strings=_params.attribute_saml1_strings,
                                 attribute_saml2_strings=_params.attribute_saml2_strings)
        self.configs = configs or []
        self.persistence_type = persistence_type

    def to_dict(self) -> dict:
        _dict = AttributeParams.to_dict(self)
        _dict["configs"] = [c.to_dict() for c in self.configs]
        _dict["persistence_type"] = self.persistence_type
        return _dict


class ConfigurationContext(ImpExp):
    """All that is needed to render one set of configuration files."""
    parameter = {
        "trust_params": TrustParams,
        "attr_params": AttributeParams,
        "cas_params": CasParams,
        "resolver_params": ResolverParams,
        "salt": "",
        "metadata_folder": "",
        "org_inum": "",
        "org_support_email": "",
        "idp_url": "",
        "idp_host": "",
        "sp_url": "",
        "sp_host": "",
        "gluu_sp_entity_id": "",
        "ldap_url": "",
        "bind_dn": "",
        "ldap_pass": "",
        "security_key": "",
        "security_cert": "",
        "security_key_password": ""
    }
    settings = ["salt", "metadata_folder", "org_inum", "org_support_email", "idp_url", "idp_host",
                "sp_url", "sp_host", "gluu_sp_entity_id", "ldap_url", "bind_dn", "ldap_pass",
                "security_key", "security_cert", "security_key_password"]

    def __init__(self, trust_params: Optional[TrustParams] = None,
                 attr_params: Optional[AttributeParams] = None,
                 cas_params: Optional[CasParams] = None,
                 resolver_params: Optional[ResolverParams] = None,
                 outcomes: Optional[List[Outcome]] = None,
                 **kwargs):
        ImpExp.__init__(self)
        self.trust_params = trust_params or TrustParams()
        self.attr_params = attr_params or AttributeParams()
        self.cas_params = cas_params or CasParams()
        self.resolver_params = resolver_params or ResolverParams()
        self.outcomes = outcomes or []
        for param in self.settings:
            setattr(self, param, kwargs.get(param))

    def to_dict(self) -> dict:
        _dict = {
            "trust_params": self.trust_params.to_dict(),
            "attr_params": self.attr_params.to_dict(),
            "cas_params": self.cas_params.to_dict(),
            "resolver_params": self.resolver_params.to_dict()
        }
        for param in self.settings:
            _dict[param] = getattr(self, param)
        return _dict

    def template_args(self) -> dict:
        _args = {param: getattr(self, param) for param in self.settings}
        _args.update({
            "trust_params": self.trust_params,
            "attr_params": self.attr_params,
            "cas_params": self.cas_params,
            "resolver_params": self.resolver_params,
            "sanitize_inum": sanitize_inum
        })
        return _args


class ContextBuilder(object):
    """
    Builds the ConfigurationContext for one configuration run. The attribute
    definitions and the schema are read once and then reused for the rest of the
    run through the run cache.
    """

    def __init__(self,
                 config: TrustConfConfiguration,
                 store: DirectoryStore,
                 decrypt: Optional[Callable] = None,
                 cache: Optional[RunCache] = None):
        self.config = config
        self.store = store
        self.decrypt = decrypt or identity
        self.cache = cache if cache is not None else RunCache()

        _base = config.base_dn
        self.trust_service = TrustService(store, _base, self.cache)
        self.attribute_service = AttributeService(store, _base, self.cache)
        self.name_id_service = NameIdService(store, _base, self.cache)
        self.cas_service = CASService(store, _base, self.cache)
        self.configuration_service = ConfigurationService(store, _base, self.cache)
        self.schema_service = SchemaService(store)

    def schema(self) -> SchemaSnapshot:
        return self.cache.get("schema", self.schema_service.get_schema)

    def decrypt_value(self, value: Optional[str], what: str) -> Optional[str]:
        if value is None:
            return None
        try:
            return self.decrypt(value)
        except Exception as err:
            logger.error(f"Failed to decrypt {what}: {err}")
            return None

    def released_attributes(self, trust_relationships: List[TrustRelationship],
                            outcomes: List[Outcome]) -> Dict[str, List[ReleasedAttribute]]:
        attributes = self.attribute_service.get_all_person_attributes()
        by_dn = self.attribute_service.get_attribute_map_by_dns(attributes)
        uid = self.attribute_service.get_attribute_by_name(UID, attributes)

        res = {}
        for tr in trust_relationships:
            _released, _missing = resolve_released_attributes(tr, by_dn, uid)
            if _missing:
                _err = AttributeResolutionError(
                    f"Unknown released attribute(s): {', '.join(_missing)}")
                outcomes.append(Fatal(item=tr["inum"], error=_err))
                res[tr["inum"]] = []
            else:
                res[tr["inum"]] = _released
        return res

    def trust_params(self, classification: Classification,
                     released: Dict[str, List[ReleasedAttribute]]) -> TrustParams:
        return TrustParams(
            classification=classification,
            released_attributes=released,
            idp_credentials_path=os.path.join(self.config.idp_metadata_dir(),
                                              IDP_CREDENTIALS_FOLDER, ""))

    def attribute_params(self, released: Dict[str, List[ReleasedAttribute]]) -> AttributeParams:
        _attrs = [ra.metadata for _released in released.values() for ra in _released]
        return create_attribute_map(_attrs, self.schema())

    def cas_params(self) -> CasParams:
        try:
            _conf = self.cas_service.load_cas_configuration()
        except Exception as err:
            logger.exception(f"Failed to load CAS configuration: {err}")
            return CasParams()

        if _conf is None:
            return CasParams()

        logger.info("Adding CAS protocol configuration parameters")
        return CasParams(
            enabled=_conf.get("enabled", False),
            extended=_conf.get("extended", False),
            enable_to_proxy_patterns=_conf.get("enable_to_proxy_patterns", False),
            authorized_to_proxy_pattern=_conf.get("authorized_to_proxy_pattern", ""),
            unauthorized_to_proxy_pattern=_conf.get("unauthorized_to_proxy_pattern", ""),
            configured=True)

    def resolver_params(self) -> ResolverParams:
        attributes = self.attribute_service.get_all_person_attributes()
        configs = []
        name_id_attributes = []
        for _conf in self.name_id_service.get_name_id_configs():
            _source = _conf.get("source_attribute")
            if not _source or not _conf.get("enabled", False):
                continue

            _attr = self.attribute_service.get_attribute_by_name(_source, attributes)
            if _attr is None:
                logger.warning(f"NameID source attribute '{_source}' is not defined")
                continue

            configs.append(_conf)
            name_id_attributes.append(_attr)

        return ResolverParams(
            configs=configs,
            attribute_params=create_attribute_map(name_id_attributes, self.schema()),
            persistence_type=self.config.persistence_type or "")

    def gluu_sp_entity_id(self) -> Optional[str]:
        _inum = self.configuration_service.get_configuration().get("gluu_sp_tr")
        _inum = _inum or self.config.gluu_sp_tr
        _tr = self.trust_service.get_relationship_by_inum(_inum)
        if _tr is None:
            return None
        return _tr.get("entity_id")

    def deployment_settings(self) -> dict:
        _conf = self.config
        return {
            "salt": _conf.crypto_salt,
            "metadata_folder": _conf.idp_metadata_dir(),
            "org_inum": sanitize_inum(ORG_INUM),
            "org_support_email": _conf.org_support_email,
            "idp_url": _conf.idp_url,
            "idp_host": host_from_url(_conf.idp_url),
            "sp_url": _conf.application_url,
            "sp_host": host_from_url(_conf.application_url),
            "gluu_sp_entity_id": self.gluu_sp_entity_id(),
            "ldap_url": ldap_url(_conf.idp_ldap_protocol, _conf.idp_ldap_server),
            "bind_dn": _conf.idp_bind_dn,
            "ldap_pass": self.decrypt_value(_conf.idp_bind_password, "bind password"),
            "security_key": _conf.idp_security_key,
            "security_cert": _conf.idp_security_cert,
            "security_key_password": self.decrypt_value(_conf.idp_security_key_password,
                                                   "IDP security key password")
        }

    def build(self, trust_relationships: List[TrustRelationship]) -> ConfigurationContext:
        """
        :raises ConfigurationError: If the IDP root folder is not configured
        :raises AttributeResolutionError: If one of the attribute maps can not be
            completed
        """
        self.config.require_idp_root_dir("update configuration")

        outcomes = []
        classification = TrustClassifier(self.config.idp_metadata_dir(),
                                         self.trust_service).classify(trust_relationships)
        outcomes.extend(classification.outcomes)

        released = self.released_attributes(classification.trusts + classification.deconstructed,
                                            outcomes)

        context = ConfigurationContext(
            trust_params=self.trust_params(classification, released),
            attr_params=self.attribute_params(released),
            cas_params=self.cas_params(),
            resolver_params=self.resolver_params(),
            outcomes=outcomes,
            **self.deployment_settings())

        logger.debug(f"Configuration context with {len(classification.trust_ids)} trust "
                     f"relationships and {len(classification.deconstructed)} federation members")
        return context

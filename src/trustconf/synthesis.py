"""
Runs the configuration generation. Every public operation returns a
SynthesisResult, none of them raises.
"""
import logging
import os
import threading
from typing import Callable
from typing import List
from typing import Optional
from typing import Tuple

from idpyoidc.server.util import execute

from trustconf.attribute import create_attribute_map
from trustconf.attribute import resolve_released_attributes
from trustconf.cache import RunCache
from trustconf.configure import TrustConfConfiguration
from trustconf.context import ContextBuilder
from trustconf.defaults import IDP_ARTIFACTS
from trustconf.defaults import IDP_IDP_METADATA_FILE
from trustconf.defaults import IDP_LOGIN_CONFIG_FILE
from trustconf.defaults import IDP_SP_METADATA_FILE
from trustconf.defaults import OXAUTH_SUPPORTED_PRINCIPALS_FILE
from trustconf.defaults import SOURCE_FILE
from trustconf.defaults import SP_ATTRIBUTE_MAP_FILE
from trustconf.defaults import STATUS_ACTIVE
from trustconf.defaults import UID
from trustconf.download import MetadataDownloader
from trustconf.exception import ConfigurationError
from trustconf.exception import RenderError
from trustconf.exception import SynthesisInProgress
from trustconf.exception import TrustConfError
from trustconf.exception import WriteError
from trustconf.files import MetadataFileManager
from trustconf.files import sp_new_metadata_file_name
from trustconf.message import TrustRelationship
from trustconf.outcome import Ok
from trustconf.outcome import SynthesisResult
from trustconf.store import DirectoryStore
from trustconf.template import TemplateService
from trustconf.utils import host_from_url
from trustconf.utils import ldap_url
from trustconf.utils import sanitize_inum
from trustconf.utils import strip_pem_delimiters

logger = logging.getLogger(__name__)

_root_locks = {}
_root_locks_guard = threading.Lock()


def root_lock(root_dir: str) -> threading.Lock:
    """One lock per IDP root folder, however the folder is spelled."""
    _key = os.path.realpath(root_dir)
    with _root_locks_guard:
        if _key not in _root_locks:
            _root_locks[_key] = threading.Lock()
        return _root_locks[_key]


def read_certificate(path: Optional[str]) -> str:
    if not path:
        raise ConfigurationError("Certificate file not configured")
    try:
        with open(path, "r") as fp:
            return strip_pem_delimiters(fp.read())
    except OSError as err:
        raise ConfigurationError(f"Unable to read certificate from {path}: {err}")


class ConfigurationSynthesizer(object):
    """
    :param config: Deployment configuration
    :param store: The directory store. If not given one is created from the `store`
        entry in the configuration.
    :param template_service: Renders and writes the files
    :param decrypt: Function that decrypts stored secrets
    :param downloader: Used when fetching remote metadata
    """

    def __init__(self,
                 config: TrustConfConfiguration,
                 store: Optional[DirectoryStore] = None,
                 template_service: Optional[TemplateService] = None,
                 decrypt: Optional[Callable] = None,
                 downloader: Optional[MetadataDownloader] = None):
        self.config = config
        self.store = store or execute(config.store)
        self.template_service = template_service or TemplateService(config.template_dir)
        self.decrypt = decrypt
        self.files = MetadataFileManager(config, downloader)

    def context_builder(self, cache: Optional[RunCache] = None) -> ContextBuilder:
        return ContextBuilder(self.config, self.store, decrypt=self.decrypt, cache=cache)

    def _render(self, template_id: str, args: dict) -> str:
        _text = self.template_service.render(template_id, args)
        if _text is None:
            raise RenderError(f"Failed to render {template_id}")
        return _text

    def _write_all(self, files: List[Tuple[str, str]], result: SynthesisResult) -> SynthesisResult:
        """
        Write the files in order. The first failure stops the writing, files already
        written stay.
        """
        for path, text in files:
            if not self.template_service.write(path, text):
                result.fail(os.path.basename(path), WriteError(f"Failed to write {path}"))
                return result
            result.written.append(path)

        result.complete = True
        return result

    def _locked(self, func: Callable, result: SynthesisResult, blocking: bool = True,
                **kwargs) -> SynthesisResult:
        try:
            root = self.config.require_idp_root_dir("update configuration")
        except ConfigurationError as err:
            result.fail("configuration", err)
            return result

        lock = root_lock(root)
        if not lock.acquire(blocking=blocking):
            result.fail("configuration",
                        SynthesisInProgress(f"A configuration run is already active for {root}"))
            return result

        try:
            return func(result, **kwargs)
        except TrustConfError as err:
            result.fail(func.__name__.lstrip("_"), err)
            return result
        except Exception as err:
            logger.exception(f"Unexpected error in {func.__name__.lstrip('_')}")
            result.fail(func.__name__.lstrip("_"), err)
            return result
        finally:
            lock.release()

    def artifact_path(self, template_id: str, folder: str) -> str:
        if folder == "sp_conf":
            return os.path.join(self.config.sp_conf_directory(), template_id)
        return os.path.join(self.config.idp_conf_dir(), template_id)

    def active_trust_relationships(self, cache: Optional[RunCache] = None) -> List[TrustRelationship]:
        _builder = self.context_builder(cache)
        return [tr for tr in _builder.trust_service.get_all_trust_relationships() if tr.is_active()]

    def generate_configuration_files(self,
                                     trust_relationships: Optional[List[TrustRelationship]] = None,
                                     cache: Optional[RunCache] = None,
                                     blocking: bool = True) -> SynthesisResult:
        """
        Generate the IDP and SP configuration files for the given trust relationships.
        If none are given all active trust relationships in the store are used.

        :param trust_relationships: Trust relationships in the order they should be
            numbered
        :param cache: Run scoped cache
        :param blocking: Wait for an already running configuration run against the
            same IDP root folder to finish. If False such a situation is reported as
            a failure.
        """
        logger.info("Generating configuration files")
        result = self._locked(self._generate_configuration_files, SynthesisResult(),
                              blocking=blocking, trust_relationships=trust_relationships,
                              cache=cache if cache is not None else RunCache())
        logger.info(f"Configuration files generated: {result.summary()}")
        return result

    def _generate_configuration_files(self, result: SynthesisResult,
                                      trust_relationships: Optional[List[TrustRelationship]],
                                      cache: RunCache) -> SynthesisResult:
        if trust_relationships is None:
            trust_relationships = self.active_trust_relationships(cache)

        context = self.context_builder(cache).build(trust_relationships)
        result.extend(context.outcomes)

        args = context.template_args()
        files = []
        for template_id, folder in IDP_ARTIFACTS:
            files.append((self.artifact_path(template_id, folder), self._render(template_id, args)))

        return self._write_all(files, result)

    def generate_supported_principals(self, acrs: List[str],
                                      blocking: bool = True) -> SynthesisResult:
        """
        :param acrs: Authentication context class references
        """
        return self._locked(self._generate_supported_principals, SynthesisResult(),
                            blocking=blocking, acrs=acrs)

    def _generate_supported_principals(self, result, acrs):
        _text = self._render(OXAUTH_SUPPORTED_PRINCIPALS_FILE, {"acrs": list(acrs)})
        _path = os.path.join(self.config.idp_conf_authn_dir(), OXAUTH_SUPPORTED_PRINCIPALS_FILE)
        return self._write_all([(_path, _text)], result)

    def generate_metadata_files(self, blocking: bool = True) -> SynthesisResult:
        """Generate the IDP metadata document."""
        return self._locked(self._generate_metadata_files, SynthesisResult(), blocking=blocking)

    def _generate_metadata_files(self, result):
        _conf = self.config
        args = {
            "idp_host": _conf.idp_url,
            "domain": host_from_url(_conf.idp_url),
            "org_name": _conf.organization_name,
            "org_short_name": _conf.organization_name,
            "idp_signing_certificate": read_certificate(_conf.idp3_signing_cert),
            "idp_encryption_certificate": read_certificate(_conf.idp3_encryption_cert)
        }
        _text = self._render(IDP_IDP_METADATA_FILE, args)
        _path = os.path.join(_conf.idp_metadata_dir(), IDP_IDP_METADATA_FILE)
        return self._write_all([(_path, _text)], result)

    def generate_idp_configuration_files(self, blocking: bool = True) -> SynthesisResult:
        """Generate the LDAP login configuration."""
        return self._locked(self._generate_idp_configuration_files, SynthesisResult(),
                            blocking=blocking)

    def _generate_idp_configuration_files(self, result):
        _conf = self.config
        _builder = self.context_builder()
        args = {
            "host": ldap_url(_conf.idp_ldap_protocol, _conf.idp_ldap_server),
            "base": _conf.base_dn,
            "service_user": _conf.idp_bind_dn,
            "service_credential": _builder.decrypt_value(_conf.idp_bind_password, "bind password"),
            "user_field": _conf.idp_user_fields
        }
        _text = self._render(IDP_LOGIN_CONFIG_FILE, args)
        _path = os.path.join(_conf.idp_conf_dir(), IDP_LOGIN_CONFIG_FILE)
        return self._write_all([(_path, _text)], result)

    @staticmethod
    def sp_entity_id(trust_relationship: TrustRelationship) -> str:
        return trust_relationship.get("entity_id") or sanitize_inum(trust_relationship["inum"])

    def sp_metadata_content(self, trust_relationship: TrustRelationship,
                            certificate: Optional[str]) -> Optional[str]:
        _url = trust_relationship.get("url")
        if not _url:
            logger.error("Trust relationship URL is empty")
            return None

        args = {
            "certificate": certificate,
            "trust_relationship": trust_relationship,
            "entity_id": self.sp_entity_id(trust_relationship),
            "sp_host": _url[:-1] if _url.endswith("/") else _url
        }
        return self.template_service.render(IDP_SP_METADATA_FILE, args)

    def generate_sp_metadata_file(self, trust_relationship: TrustRelationship,
                                  certificate: Optional[str],
                                  blocking: bool = True) -> SynthesisResult:
        return self._locked(self._generate_sp_metadata_file, SynthesisResult(), blocking=blocking,
                            trust_relationship=trust_relationship, certificate=certificate)

    def _generate_sp_metadata_file(self, result, trust_relationship, certificate):
        _text = self.sp_metadata_content(trust_relationship, certificate)
        if _text is None:
            raise RenderError(f"Failed to create SP metadata for {trust_relationship['inum']}")

        _fn = trust_relationship.get("sp_metadata_fn") or sp_new_metadata_file_name(
            trust_relationship["inum"])
        return self._write_all([(self.files.sp_metadata_file_path(_fn), _text)], result)

    def generate_sp_attribute_map(self, trust_relationship: TrustRelationship,
                                  cache: Optional[RunCache] = None) -> Optional[str]:
        """
        The SP attribute map for one trust relationship. The text is returned, it is
        not written anywhere.
        """
        _builder = self.context_builder(cache)
        try:
            attributes = _builder.attribute_service.get_all_person_attributes()
            uid = _builder.attribute_service.get_attribute_by_name(UID, attributes)
            released, missing = resolve_released_attributes(
                trust_relationship, _builder.attribute_service.get_attribute_map_by_dns(attributes),
                uid)
            if missing:
                logger.error(f"Unknown released attribute(s): {', '.join(missing)}")
                return None
            attr_params = create_attribute_map([r.metadata for r in released], _builder.schema())
        except TrustConfError as err:
            logger.error(f"Failed to build attribute map: {err}")
            return None

        return self.template_service.render(SP_ATTRIBUTE_MAP_FILE, {"attr_params": attr_params})

    def add_own_sp(self, blocking: bool = True) -> SynthesisResult:
        """
        Add a trust relationship for the deployment's own SP. On success the inum of
        the new trust relationship is the value of the last outcome.
        """
        return self._locked(self._add_own_sp, SynthesisResult(), blocking=blocking)

    def _own_sp_released_attributes(self, builder: ContextBuilder) -> List[str]:
        attributes = builder.attribute_service.get_all_person_attributes()
        res = []
        for name in self.config.gluu_sp_attributes or []:
            _attr = builder.attribute_service.get_attribute_by_name(name, attributes)
            if _attr is not None and _attr.get("dn"):
                res.append(_attr["dn"])
        return res

    def _add_own_sp(self, result):
        _builder = self.context_builder()
        inum = _builder.trust_service.generate_inum_for_new_trust_relationship()
        own_sp = TrustRelationship(
            inum=inum,
            display_name="gluu SP on configuration",
            description="Trust Relationship for the SP",
            sp_metadata_source_type=SOURCE_FILE,
            sp_metadata_fn=sp_new_metadata_file_name(inum),
            entity_id=sanitize_inum(inum),
            url=self.config.application_url or "")

        certificate = read_certificate(self.config.gluu_sp_cert)
        self._generate_sp_metadata_file(result, own_sp, certificate)
        if not result.complete or not self.files.is_correct_sp_metadata_file(
                own_sp["sp_metadata_fn"]):
            raise ConfigurationError("IDP configuration update failed. Own SP was not generated.")

        own_sp["status"] = STATUS_ACTIVE
        own_sp["dn"] = _builder.trust_service.dn_for_trust_relationship(inum)
        _released = self._own_sp_released_attributes(_builder)
        if _released:
            own_sp["released_attributes"] = _released
        _builder.trust_service.add_trust_relationship(own_sp)

        _appliance = _builder.configuration_service.get_configuration()
        _appliance["gluu_sp_tr"] = inum
        _builder.configuration_service.update_configuration(_appliance)

        logger.warning(f"Own SP entity ID set to {own_sp['entity_id']}. "
                       f"IDP configuration should be updated.")
        result.add(Ok(item="own_sp", value=inum))
        return result


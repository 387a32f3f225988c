import copy
import os
from typing import Dict
from typing import List
from typing import Optional

from idpyoidc.configure import Base

from trustconf.defaults import DEFAULT_CONFIG
from trustconf.defaults import IDP_AUTHN_FOLDER
from trustconf.defaults import IDP_CONF_FOLDER
from trustconf.defaults import IDP_METADATA_FOLDER
from trustconf.defaults import IDP_TEMP_METADATA_FOLDER
from trustconf.exception import ConfigurationError

DEFAULT_TRUSTCONF_FILE_ATTRIBUTE_NAMES = ['idp3_signing_cert', 'idp3_encryption_cert',
                                          'gluu_sp_cert', 'idp_security_key',
                                          'idp_security_cert', 'filename']

DEFAULT_TRUSTCONF_DIR_ATTRIBUTE_NAMES = ['idp_root_dir', 'sp_conf_dir', 'template_dir']

SETTINGS = [
    "idp_root_dir", "sp_conf_dir", "idp_url", "application_url", "idp_ldap_protocol",
    "idp_ldap_server", "idp_bind_dn", "idp_bind_password", "idp_security_key",
    "idp_security_cert", "idp_security_key_password", "idp_user_fields", "base_dn",
    "org_support_email", "organization_name", "idp3_signing_cert", "idp3_encryption_cert",
    "gluu_sp_cert", "gluu_sp_attributes", "gluu_sp_tr", "shibboleth_version", "template_dir",
    "crypto_salt", "persistence_type", "insecure_metadata_download", "httpc_params", "store",
    "logging"
]


class TrustConfConfiguration(Base):
    """Deployment wide settings used when synthesizing IDP/SP configuration."""

    def __init__(self,
                 conf: Dict,
                 entity_conf: Optional[List[dict]] = None,
                 base_path: str = '',
                 file_attributes: Optional[List[str]] = None,
                 domain: Optional[str] = "",
                 port: Optional[int] = 0,
                 dir_attributes: Optional[List[str]] = None,
                 ):
        file_attributes = file_attributes or DEFAULT_TRUSTCONF_FILE_ATTRIBUTE_NAMES
        dir_attributes = dir_attributes or DEFAULT_TRUSTCONF_DIR_ATTRIBUTE_NAMES

        Base.__init__(self, conf=conf, base_path=base_path, file_attributes=file_attributes,
                      dir_attributes=dir_attributes, domain=domain, port=port)

        _conf = copy.deepcopy(DEFAULT_CONFIG)
        _conf.update(conf)

        for param in SETTINGS:
            setattr(self, param, _conf.get(param))

    def require_idp_root_dir(self, purpose: str = "update configuration") -> str:
        if not self.idp_root_dir:
            raise ConfigurationError(f"Failed to {purpose} due to undefined IDP root folder")
        return self.idp_root_dir

    def idp_conf_dir(self) -> str:
        return os.path.join(self.require_idp_root_dir(), IDP_CONF_FOLDER)

    def idp_conf_authn_dir(self) -> str:
        return os.path.join(self.require_idp_root_dir(), IDP_CONF_FOLDER, IDP_AUTHN_FOLDER)

    def idp_metadata_dir(self) -> str:
        return os.path.join(self.require_idp_root_dir(), IDP_METADATA_FOLDER)

    def idp_metadata_temp_dir(self) -> str:
        return os.path.join(self.require_idp_root_dir(), IDP_TEMP_METADATA_FOLDER)

    def sp_conf_directory(self) -> str:
        return self.sp_conf_dir or self.idp_conf_dir()

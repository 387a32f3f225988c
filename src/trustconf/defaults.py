IDP_CONF_FOLDER = "conf"
IDP_AUTHN_FOLDER = "authn"
IDP_METADATA_FOLDER = "metadata"
IDP_TEMP_METADATA_FOLDER = "temp_metadata"
IDP_CREDENTIALS_FOLDER = "credentials"
GENERATED_SSL_ARTIFACTS_DIR = "ssl"

IDP_METADATA_PROVIDERS_FILE = "metadata-providers.xml"
IDP_ATTRIBUTE_FILTER_FILE = "attribute-filter.xml"
IDP_ATTRIBUTE_RESOLVER_FILE = "attribute-resolver.xml"
IDP_RELYING_PARTY_FILE = "relying-party.xml"
IDP_CAS_PROTOCOL_FILE = "cas-protocol.xml"
IDP_IDP_METADATA_FILE = "idp-metadata.xml"
IDP_SP_METADATA_FILE = "sp-metadata.xml"
IDP_LOGIN_CONFIG_FILE = "login.config"
SP_ATTRIBUTE_MAP_FILE = "attribute-map.xml"
SP_SHIBBOLETH2_FILE = "shibboleth2.xml"
SAML_NAMEID_FILE = "saml-nameid.xml"
SAML_NAMEID_PROPS_FILE = "saml-nameid.properties"
OXAUTH_SUPPORTED_PRINCIPALS_FILE = "oxauth-supported-principals.xml"

SP_METADATA_FILE_PATTERN = "{}-sp-metadata.xml"
METADATA_FILE_PATTERN = "{}-metadata.xml"

PUBLIC_CERTIFICATE_START_LINE = "-----BEGIN CERTIFICATE-----"
PUBLIC_CERTIFICATE_END_LINE = "-----END CERTIFICATE-----"

METADATA_ACCEPT = "application/xml, text/xml"

# Metadata source types
SOURCE_FILE = "file"
SOURCE_URI = "uri"
SOURCE_FEDERATION = "federation"
SOURCE_GENERATE = "generate"
METADATA_SOURCE_TYPES = [SOURCE_FILE, SOURCE_URI, SOURCE_FEDERATION, SOURCE_GENERATE]
STANDALONE_SOURCE_TYPES = [SOURCE_FILE, SOURCE_URI]

STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"
STATUSES = [STATUS_ACTIVE, STATUS_INACTIVE]

UID = "uid"

GLUU_ATTRIBUTE_DEF_PREFIX = "urn:gluu:dir:attribute-def:"
SAML1_URI_PATTERN = "urn:{}:dir:attribute-def:{}"
SAML2_URI_PATTERN = "urn:oid:{}"

ENTITY_ROLE_WHITE_LIST_TYPE = "EntityRoleWhiteList"
SIGNATURE_VALIDATION_TYPE = "SignatureValidation"

XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"

# white space, comma or '=>' separated list of LDAP servers
LDAP_SERVER_SEPARATOR = r"\s*(?:=>|,|\s)\s*"

ORG_INUM = "gluu"

# Artifacts written by a configuration run, in write order.
# (template name, folder key)
IDP_ARTIFACTS = [
    (IDP_METADATA_PROVIDERS_FILE, "conf"),
    (IDP_ATTRIBUTE_RESOLVER_FILE, "conf"),
    (IDP_ATTRIBUTE_FILTER_FILE, "conf"),
    (IDP_RELYING_PARTY_FILE, "conf"),
    (IDP_CAS_PROTOCOL_FILE, "conf"),
    (SP_SHIBBOLETH2_FILE, "sp_conf"),
    (SAML_NAMEID_FILE, "conf"),
    (SAML_NAMEID_PROPS_FILE, "conf"),
]

DEFAULT_CONFIG = {
    "idp_ldap_protocol": "ldaps",
    "idp_ldap_server": "localhost:1636",
    "idp_user_fields": "uid",
    "persistence_type": "ldap",
    "insecure_metadata_download": False,
    "gluu_sp_attributes": [],
    "httpc_params": {},
    "store": {
        "class": "trustconf.store.MemoryStore",
        "kwargs": {}
    },
    "base_dn": "o=gluu",
}

TRUST_RELATIONSHIP_BASE = "ou=trustRelationships,{}"
ATTRIBUTE_BASE = "ou=attributes,{}"
NAMEID_BASE = "ou=nameid,ou=configuration,{}"
CAS_CONFIGURATION_DN = "ou=cas,ou=configuration,{}"
APPLIANCE_CONFIGURATION_DN = "ou=configuration,{}"
SCHEMA_DN = "cn=schema"

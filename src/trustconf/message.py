"""Classes used to describe the directory records a configuration run works on."""
import logging

from idpyoidc.exception import MissingRequiredAttribute
from idpyoidc.message import Message
from idpyoidc.message import OPTIONAL_LIST_OF_STRINGS
from idpyoidc.message import SINGLE_OPTIONAL_STRING
from idpyoidc.message import SINGLE_REQUIRED_STRING
from idpyoidc.message.oidc import SINGLE_OPTIONAL_BOOLEAN

from trustconf.defaults import METADATA_SOURCE_TYPES
from trustconf.defaults import SOURCE_FEDERATION
from trustconf.defaults import STATUS_ACTIVE
from trustconf.defaults import STATUSES

LOGGER = logging.getLogger(__name__)


class TrustRelationship(Message):
    """A configured federation partner (SP or aggregator)."""
    c_param = {
        "inum": SINGLE_REQUIRED_STRING,
        "dn": SINGLE_OPTIONAL_STRING,
        "display_name": SINGLE_OPTIONAL_STRING,
        "description": SINGLE_OPTIONAL_STRING,
        "entity_id": SINGLE_OPTIONAL_STRING,
        "url": SINGLE_OPTIONAL_STRING,
        "sp_metadata_source_type": SINGLE_REQUIRED_STRING,
        "sp_metadata_fn": SINGLE_OPTIONAL_STRING,
        "sp_metadata_url": SINGLE_OPTIONAL_STRING,
        "released_attributes": OPTIONAL_LIST_OF_STRINGS,
        "metadata_filters": OPTIONAL_LIST_OF_STRINGS,
        "profile_configurations": OPTIONAL_LIST_OF_STRINGS,
        "status": SINGLE_OPTIONAL_STRING,
        "container_federation": SINGLE_OPTIONAL_STRING,
    }
    c_default = {"status": STATUS_ACTIVE}

    def verify(self, **kwargs):
        super(TrustRelationship, self).verify(**kwargs)

        if self["sp_metadata_source_type"] not in METADATA_SOURCE_TYPES:
            raise ValueError(
                f"Unknown metadata source type: {self['sp_metadata_source_type']}")

        if self["sp_metadata_source_type"] == SOURCE_FEDERATION:
            if not self.get("container_federation"):
                raise MissingRequiredAttribute(
                    "container_federation is a MUST if the metadata source is a federation")

        if self.get("status", STATUS_ACTIVE) not in STATUSES:
            raise ValueError(f"Unknown status: {self['status']}")

        return True

    def is_active(self):
        return self.get("status", STATUS_ACTIVE) == STATUS_ACTIVE


class Attribute(Message):
    """A directory attribute definition."""
    c_param = {
        "name": SINGLE_REQUIRED_STRING,
        "dn": SINGLE_OPTIONAL_STRING,
        "display_name": SINGLE_OPTIONAL_STRING,
        "description": SINGLE_OPTIONAL_STRING,
        "custom": SINGLE_OPTIONAL_BOOLEAN,
        "urn": SINGLE_OPTIONAL_STRING,
        "saml1_uri": SINGLE_OPTIONAL_STRING,
        "saml2_uri": SINGLE_OPTIONAL_STRING,
        "origin": SINGLE_OPTIONAL_STRING,
        "status": SINGLE_OPTIONAL_STRING,
    }


class NameIdConfig(Message):
    """Which attribute becomes the SAML subject identifier."""
    c_param = {
        "dn": SINGLE_OPTIONAL_STRING,
        "source_attribute": SINGLE_OPTIONAL_STRING,
        "name_id_type": SINGLE_OPTIONAL_STRING,
        "enabled": SINGLE_OPTIONAL_BOOLEAN,
    }


class CasProtocolConfiguration(Message):
    c_param = {
        "dn": SINGLE_OPTIONAL_STRING,
        "enabled": SINGLE_OPTIONAL_BOOLEAN,
        "extended": SINGLE_OPTIONAL_BOOLEAN,
        "enable_to_proxy_patterns": SINGLE_OPTIONAL_BOOLEAN,
        "authorized_to_proxy_pattern": SINGLE_OPTIONAL_STRING,
        "unauthorized_to_proxy_pattern": SINGLE_OPTIONAL_STRING,
    }


class ApplianceConfiguration(Message):
    c_param = {
        "dn": SINGLE_OPTIONAL_STRING,
        "inum": SINGLE_OPTIONAL_STRING,
        "gluu_sp_tr": SINGLE_OPTIONAL_STRING,
    }


class SchemaEntry(Message):
    """The directory schema, attribute types as RFC 4512 definitions."""
    c_param = {
        "dn": SINGLE_OPTIONAL_STRING,
        "attribute_types": OPTIONAL_LIST_OF_STRINGS,
    }


MESSAGE_TYPES = {
    cls.__name__: cls for cls in [TrustRelationship, Attribute, NameIdConfig,
                                  CasProtocolConfiguration, ApplianceConfiguration, SchemaEntry]
}

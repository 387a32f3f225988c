"""Handling of metadata, certificate and key files below the IDP root folder."""
import logging
import os
from typing import Optional
from typing import Union

from cryptojwt.utils import as_bytes
from idpyoidc.util import rndstr

from trustconf.configure import TrustConfConfiguration
from trustconf.defaults import GENERATED_SSL_ARTIFACTS_DIR
from trustconf.defaults import METADATA_FILE_PATTERN
from trustconf.defaults import SP_METADATA_FILE_PATTERN
from trustconf.download import MetadataDownloader
from trustconf.message import TrustRelationship
from trustconf.metadata import ValidationReport
from trustconf.metadata import entity_ids_from_file
from trustconf.metadata import is_federation_aggregate
from trustconf.metadata import read_metadata_file
from trustconf.metadata import sp_entity_ids_from_file
from trustconf.metadata import validate_metadata
from trustconf.utils import sanitize_inum
from trustconf.utils import wrap_certificate

logger = logging.getLogger(__name__)


def sp_new_metadata_file_name(inum: str) -> str:
    return SP_METADATA_FILE_PATTERN.format(sanitize_inum(inum))


def new_metadata_file_name(inum: str) -> str:
    return METADATA_FILE_PATTERN.format(sanitize_inum(inum))


def create_temp_file(directory: str, file_name: str, data: bytes) -> str:
    """
    Creates a new file in directory with a name that is file_name followed by a
    random suffix. The file is created exclusively so two callers can never end up
    with the same file.

    :return: The name of the created file
    """
    os.makedirs(directory, exist_ok=True)
    while True:
        _name = f"{file_name}{rndstr(8)}"
        try:
            fd = os.open(os.path.join(directory, _name), os.O_CREAT | os.O_EXCL | os.O_WRONLY,
                         0o644)
        except FileExistsError:
            continue

        with os.fdopen(fd, "wb") as fp:
            fp.write(data)
        return _name


def _remove(path: str):
    if os.path.isfile(path):
        os.unlink(path)
        logger.debug(f"Removed {path}")


class MetadataFileManager(object):

    def __init__(self, config: TrustConfConfiguration,
                 downloader: Optional[MetadataDownloader] = None):
        self.config = config
        self.downloader = downloader or MetadataDownloader(
            httpc_params=config.httpc_params, insecure=config.insecure_metadata_download)

    def sp_metadata_file_path(self, file_name: str) -> str:
        self.config.require_idp_root_dir("return SP metadata file")
        return os.path.join(self.config.idp_metadata_dir(), file_name)

    def metadata_file_path(self, file_name: str) -> str:
        self.config.require_idp_root_dir("return metadata file")
        _dir = self.config.idp_metadata_dir()
        os.makedirs(_dir, exist_ok=True)
        return os.path.join(_dir, file_name)

    def save_sp_metadata_file(self, file_name: str, data: Union[str, bytes]) -> Optional[str]:
        """
        Store an uploaded SP metadata document in the temporary metadata folder.

        :return: The name of the temporary file or None if it could not be written
        """
        self.config.require_idp_root_dir("save SP metadata file")
        try:
            return create_temp_file(self.config.idp_metadata_temp_dir(), file_name, as_bytes(data))
        except OSError as err:
            logger.error(f"Failed to write SP metadata file '{file_name}': {err}")
            return None

    def save_sp_metadata_from_uri(self, uri: Optional[str], file_name: str) -> Optional[str]:
        if not uri:
            return None

        _data = self.downloader.get(uri)
        if not _data:
            return None
        return self.save_sp_metadata_file(file_name, _data)

    def save_metadata_file(self, file_name: str, data: Union[str, bytes]) -> bool:
        _path = self.metadata_file_path(file_name)
        try:
            with open(_path, "wb") as fp:
                fp.write(as_bytes(data))
        except OSError as err:
            logger.error(f"Failed to write metadata file '{_path}': {err}")
            return False
        return True

    def save_metadata_from_uri(self, uri: Optional[str], file_name: str) -> bool:
        if not uri:
            return False

        _data = self.downloader.get(uri)
        if not _data:
            return False
        return self.save_metadata_file(file_name, _data)

    def remove_sp_metadata_file(self, file_name: str):
        _remove(self.sp_metadata_file_path(file_name))

    def remove_metadata_file(self, file_name: str):
        _remove(self.metadata_file_path(file_name))

    def is_correct_sp_metadata_file(self, file_name: str) -> bool:
        return bool(sp_entity_ids_from_file(self.sp_metadata_file_path(file_name)))

    def is_correct_metadata_file(self, file_name: str) -> bool:
        return bool(entity_ids_from_file(self.metadata_file_path(file_name)))

    def is_federation_metadata(self, file_name: Optional[str]) -> bool:
        if not file_name:
            return False

        _data = read_metadata_file(self.sp_metadata_file_path(file_name))
        if _data is None:
            return False
        return is_federation_aggregate(_data)

    def is_federation(self, trust_relationship: TrustRelationship) -> bool:
        return self.is_federation_metadata(trust_relationship.get("sp_metadata_fn"))

    @staticmethod
    def validate_metadata(data: Union[str, bytes]) -> ValidationReport:
        return validate_metadata(data)

    def exists_resource_uri(self, url: str) -> bool:
        return self.downloader.exists(url)

    def is_idp_installed(self) -> bool:
        return bool(self.config.shibboleth_version)

    def _ssl_file(self, trust_relationship: TrustRelationship, extension: str) -> str:
        _dir = os.path.join(self.config.require_idp_root_dir("save SSL artifacts"),
                            GENERATED_SSL_ARTIFACTS_DIR)
        if not os.path.isdir(_dir):
            logger.debug(f"creating directory: {_dir}")
            os.makedirs(_dir, exist_ok=True)

        _name = sp_new_metadata_file_name(trust_relationship["inum"])
        return os.path.join(_dir, _name[:-len(".xml")] + extension)

    def save_cert(self, trust_relationship: TrustRelationship, certificate: str) -> str:
        _path = self._ssl_file(trust_relationship, ".crt")
        with open(_path, "w") as fp:
            fp.write(wrap_certificate(certificate))
        return _path

    def save_key(self, trust_relationship: TrustRelationship, key: Optional[str]) -> str:
        _path = self._ssl_file(trust_relationship, ".key")
        if key is None:
            _remove(_path)
        else:
            with open(_path, "w") as fp:
                fp.write(key)
        return _path

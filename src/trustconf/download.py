import logging
from typing import Callable
from typing import Optional

import requests
from requests.exceptions import ConnectionError
from requests.exceptions import RequestException
from requests.exceptions import SSLError

from trustconf.defaults import METADATA_ACCEPT
from trustconf.exception import DownloadError

logger = logging.getLogger(__name__)


class MetadataDownloader(object):
    """
    Fetches metadata documents over HTTP(S). A failed fetch is reported once, it is
    never retried.

    :param http_cli: Function used to do the HTTP request, same signature as
        requests.request
    :param httpc_params: Additional parameters to pass to the HTTP client function
    :param insecure: Do not verify the server certificate
    """

    def __init__(self,
                 http_cli: Optional[Callable] = None,
                 httpc_params: Optional[dict] = None,
                 insecure: bool = False):
        self.http_cli = http_cli or requests.request
        self.httpc_params = dict(httpc_params or {})
        if insecure:
            logger.warning("Certificate verification is turned off for metadata downloads")
            self.httpc_params["verify"] = False
        logger.debug(f'httpc_params: {self.httpc_params}')

    def fetch(self, url: str, accept: str = METADATA_ACCEPT) -> bytes:
        """
        :param url: Where the metadata document is
        :param accept: Value of the Accept header
        :return: The document
        :raises DownloadError: If the document could not be fetched
        """
        _args = dict(self.httpc_params)
        _headers = dict(_args.pop("headers", {}))
        _headers["Accept"] = accept

        try:
            response = self.http_cli("GET", url, headers=_headers, **_args)
        except SSLError as err:
            raise DownloadError(f"TLS failure fetching '{url}': {err}")
        except ConnectionError as err:
            raise DownloadError(f"Could not connect to '{url}': {err}")
        except RequestException as err:
            raise DownloadError(f"Failed to fetch '{url}': {err}")

        if response.status_code != 200:
            raise DownloadError(f"Failed to fetch '{url}': status {response.status_code}")

        _type = response.headers.get("Content-Type", "")
        if "xml" not in _type:
            logger.warning(f"Wrong Content-Type: {_type}")
        return response.content

    def get(self, url: str, accept: str = METADATA_ACCEPT) -> Optional[bytes]:
        try:
            return self.fetch(url, accept)
        except DownloadError as err:
            logger.error(str(err))
            return None

    def exists(self, url: str) -> bool:
        """True if a HEAD request, not following redirects, ends in a 200 response."""
        _args = dict(self.httpc_params)
        _args["allow_redirects"] = False
        try:
            response = self.http_cli("HEAD", url, **_args)
        except RequestException as err:
            logger.info(f"Resource '{url}' not reachable: {err}")
            return False
        return response.status_code == 200

import os

import pytest
import responses
from requests.exceptions import ConnectionError

from trustconf.download import MetadataDownloader
from trustconf.exception import DownloadError
from tests.directory_data import METADATA_DIR

METADATA_URL = "https://federation.example.edu/metadata.xml"

FEDERATION_METADATA = open(os.path.join(METADATA_DIR, "federation-metadata.xml"), "rb").read()


class TestDownloader():
    @pytest.fixture(autouse=True)
    def create_downloader(self):
        self.downloader = MetadataDownloader(httpc_params={"timeout": 5})

    def test_fetch(self):
        with responses.RequestsMock() as rsps:
            rsps.add(rsps.GET, METADATA_URL, body=FEDERATION_METADATA,
                     content_type="application/samlmetadata+xml", status=200)
            _data = self.downloader.fetch(METADATA_URL)
            assert rsps.calls[0].request.headers["Accept"] == "application/xml, text/xml"

        assert _data == FEDERATION_METADATA

    def test_fetch_not_found(self):
        with responses.RequestsMock() as rsps:
            rsps.add(rsps.GET, METADATA_URL, body="Not found", status=404)
            with pytest.raises(DownloadError):
                self.downloader.fetch(METADATA_URL)

    def test_get_connection_error(self):
        with responses.RequestsMock() as rsps:
            rsps.add(rsps.GET, METADATA_URL, body=ConnectionError("refused"))
            assert self.downloader.get(METADATA_URL) is None

    def test_get_wrong_content_type(self):
        with responses.RequestsMock() as rsps:
            rsps.add(rsps.GET, METADATA_URL, body=FEDERATION_METADATA,
                     content_type="text/html", status=200)
            assert self.downloader.get(METADATA_URL) == FEDERATION_METADATA

    def test_exists(self):
        with responses.RequestsMock() as rsps:
            rsps.add(rsps.HEAD, METADATA_URL, status=200)
            assert self.downloader.exists(METADATA_URL)

    def test_exists_redirect(self):
        with responses.RequestsMock() as rsps:
            rsps.add(rsps.HEAD, METADATA_URL, status=302,
                     adding_headers={"Location": "https://elsewhere.example.edu/metadata.xml"})
            assert self.downloader.exists(METADATA_URL) is False

    def test_exists_not_found(self):
        with responses.RequestsMock() as rsps:
            rsps.add(rsps.HEAD, METADATA_URL, status=404)
            assert self.downloader.exists(METADATA_URL) is False


def test_insecure():
    downloader = MetadataDownloader(httpc_params={"verify": True}, insecure=True)
    assert downloader.httpc_params["verify"] is False


def test_http_cli_used():
    calls = []

    class Response(object):
        status_code = 200
        headers = {"Content-Type": "application/xml"}
        content = b"<EntitiesDescriptor/>"

    def http_cli(method, url, **kwargs):
        calls.append((method, url, kwargs))
        return Response()

    downloader = MetadataDownloader(http_cli=http_cli, httpc_params={"verify": False})
    assert downloader.fetch(METADATA_URL, accept="application/samlmetadata+xml") == (
        b"<EntitiesDescriptor/>")
    assert calls[0][0] == "GET"
    assert calls[0][2]["headers"] == {"Accept": "application/samlmetadata+xml"}
    assert calls[0][2]["verify"] is False

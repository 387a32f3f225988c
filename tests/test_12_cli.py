import json
import os

import pytest

from trustconf.cli import load_configuration
from trustconf.cli import main
from trustconf.cli import run
from tests.directory_data import CERT_DIR
from tests.directory_data import directory_entries
from tests.directory_data import idp_root


class TestCli():
    @pytest.fixture(autouse=True)
    def setup(self, tmp_path):
        self.root = idp_root(tmp_path)
        self.directory = os.path.join(str(tmp_path), "directory.json")
        with open(self.directory, "w") as fp:
            json.dump(directory_entries(), fp)

        conf = {
            "idp_root_dir": self.root,
            "idp_url": "https://idp.example.com",
            "application_url": "https://idp.example.com",
            "idp_ldap_server": "localhost:1636",
            "idp_bind_dn": "cn=directory manager,o=gluu",
            "idp_bind_password": "secret",
            "organization_name": "Example Org",
            "idp3_signing_cert": os.path.join(CERT_DIR, "idp-signing.crt"),
            "idp3_encryption_cert": os.path.join(CERT_DIR, "idp-encryption.crt"),
            "store": {
                "class": "trustconf.store.JsonFileStore",
                "kwargs": {"filename": self.directory}
            }
        }
        self.conf_file = os.path.join(str(tmp_path), "trustconf.json")
        with open(self.conf_file, "w") as fp:
            json.dump(conf, fp)

    def test_load_configuration(self):
        config = load_configuration(self.conf_file)
        assert os.path.realpath(config.idp_root_dir) == os.path.realpath(self.root)
        assert config.base_dn == "o=gluu"
        assert config.insecure_metadata_download is False

    def test_run(self):
        results = run(load_configuration(self.conf_file), metadata=True, idp=True)
        assert set(results.keys()) == {"configuration", "metadata", "idp"}
        assert all(results.values())
        assert os.path.isfile(os.path.join(self.root, "metadata", "idp-metadata.xml"))
        assert os.path.isfile(os.path.join(self.root, "conf", "login.config"))

    def test_main(self, capsys):
        assert main(["-c", self.conf_file, "-k"]) == 0
        _out = capsys.readouterr().out
        assert "configuration: success=True complete=True" in _out
        assert os.path.join(self.root, "conf", "relying-party.xml") in _out

        # The broken SP was marked inactive in the directory file
        with open(self.directory) as fp:
            _db = json.load(fp)
        assert _db["inum=@!1111.0005,ou=trustRelationships,o=gluu"]["status"] == "inactive"

    def test_main_failure(self, capsys, tmp_path):
        _conf_file = os.path.join(str(tmp_path), "no_root.json")
        with open(_conf_file, "w") as fp:
            json.dump({"store": {"class": "trustconf.store.MemoryStore", "kwargs": {}}}, fp)

        assert main(["-c", _conf_file]) == 1
        assert "error configuration" in capsys.readouterr().out

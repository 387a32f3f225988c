import os

from trustconf.utils import host_from_url
from trustconf.utils import ldap_url
from trustconf.utils import public_certificate
from trustconf.utils import sanitize_inum
from trustconf.utils import split_ldap_servers
from trustconf.utils import strip_pem_delimiters
from trustconf.utils import strip_port
from trustconf.utils import wrap_certificate

BASE_PATH = os.path.abspath(os.path.dirname(__file__))

PEM = open(os.path.join(BASE_PATH, 'base_data', 'certs', 'sp.crt')).read()


def test_sanitize_inum():
    assert sanitize_inum("@!1111.0001") == "11110001"
    assert sanitize_inum("ABCD-1234") == "ABCD1234"


def test_strip_port():
    assert strip_port("https://idp.example.com:8443") == "https://idp.example.com"
    assert strip_port("https://idp.example.com") == "https://idp.example.com"


def test_host_from_url():
    assert host_from_url("https://idp.example.com:8443") == "idp.example.com"
    assert host_from_url("https://idp.example.com") == "idp.example.com"
    assert host_from_url("idp.example.com") == "idp.example.com"
    assert host_from_url("https://idp.example.com:8443/idp/shibboleth") == "idp.example.com"
    assert host_from_url(None) == ""


def test_split_ldap_servers():
    assert split_ldap_servers("a:1636, b:1636") == ["a:1636", "b:1636"]
    assert split_ldap_servers("a:1636 => b:1636") == ["a:1636", "b:1636"]
    assert split_ldap_servers(" a:1636   b:1636 ") == ["a:1636", "b:1636"]


def test_ldap_url():
    assert ldap_url("ldaps", "a:1636, b:1636") == "ldaps://a:1636 ldaps://b:1636"
    assert ldap_url("ldap", "localhost:1389") == "ldap://localhost:1389"
    assert ldap_url("ldaps", "") == ""


def test_public_certificate():
    _body = public_certificate(PEM)
    assert _body
    assert "CERTIFICATE" not in _body
    assert len(_body.splitlines()) == 4
    assert _body.startswith("MIIDJzCCAg+gAwIBAgIU")


def test_public_certificate_no_pem():
    assert public_certificate(None) is None
    assert public_certificate("not a certificate") is None


def test_strip_and_wrap():
    _body = strip_pem_delimiters(PEM)
    assert not _body.startswith("-")
    assert not _body.endswith("-")

    _pem = wrap_certificate(_body)
    assert _pem.startswith("-----BEGIN CERTIFICATE-----\n")
    assert _pem.endswith("-----END CERTIFICATE-----\n")
    assert public_certificate(_pem) == public_certificate(PEM)

import re
from typing import List
from typing import Optional

from trustconf.defaults import LDAP_SERVER_SEPARATOR
from trustconf.defaults import PUBLIC_CERTIFICATE_END_LINE
from trustconf.defaults import PUBLIC_CERTIFICATE_START_LINE

PUNCTUATION = re.compile(r"[^a-zA-Z0-9]")
PORT = re.compile(r":[0-9]*$")
SCHEME = re.compile(r"^.*?//")
PEM_DELIMITER = re.compile(r"-{5}.*?-{5}")


def sanitize_inum(inum: str) -> str:
    return PUNCTUATION.sub("", inum)


def strip_port(url: str) -> str:
    return PORT.sub("", url)


def host_from_url(url: Optional[str]) -> str:
    """'https://idp.example.com:8443/' -> 'idp.example.com'"""
    if not url:
        return ""
    _host = SCHEME.sub("", url, count=1).split("/", 1)[0]
    return strip_port(_host)


def split_ldap_servers(servers: str) -> List[str]:
    return [s for s in re.split(LDAP_SERVER_SEPARATOR, servers.strip()) if s]


def ldap_url(protocol: str, servers: Optional[str]) -> str:
    """
    Turns a white space, comma or '=>' separated list of servers into a space
    separated list of LDAP URLs.
    """
    if not servers:
        return ""
    return " ".join(f"{protocol}://{s}" for s in split_ldap_servers(servers))


def public_certificate(pem: Optional[str]) -> Optional[str]:
    """
    The base64 body of a PEM encoded certificate, the lines between the BEGIN and
    END lines.
    """
    if not pem:
        return None

    lines = []
    inside = False
    for line in pem.splitlines():
        if line.startswith(PUBLIC_CERTIFICATE_END_LINE):
            break
        if inside:
            lines.append(line)
        elif line.startswith(PUBLIC_CERTIFICATE_START_LINE):
            inside = True

    return "\n".join(lines) or None


def strip_pem_delimiters(pem: Optional[str]) -> Optional[str]:
    if pem is None:
        return None
    return PEM_DELIMITER.sub("", pem).strip()


def wrap_certificate(body: str) -> str:
    return "\n".join([PUBLIC_CERTIFICATE_START_LINE, body.strip(), PUBLIC_CERTIFICATE_END_LINE, ""])

"""Value objects for the cluster PKI."""

import enum
import ipaddress
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

VALIDITY_TEN_YEARS = timedelta(days=10 * 365)
VALIDITY_THIRTY_MINUTES = timedelta(minutes=30)


class KeyUsage(enum.Flag):
    """Key usage bits a certificate profile may request."""

    NONE = 0
    DIGITAL_SIGNATURE = enum.auto()
    KEY_ENCIPHERMENT = enum.auto()
    CERT_SIGN = enum.auto()
    CRL_SIGN = enum.auto()


class Purpose(enum.Enum):
    """Extended key usage purposes."""

    SERVER_AUTH = "serverAuth"
    CLIENT_AUTH = "clientAuth"


@dataclass(frozen=True)
class CertificateProfile:
    """Everything needed to mint the certificate for one identity.

    Raises:
        ValueError: If a CA profile lacks CERT_SIGN or the validity is not positive
    """

    common_name: str
    validity: timedelta
    organization: tuple[str, ...] = ()
    organizational_unit: tuple[str, ...] = ()
    key_usages: KeyUsage = KeyUsage.NONE
    extended_key_usages: frozenset[Purpose] = frozenset()
    dns_names: tuple[str, ...] = ()
    ip_addresses: tuple[IPAddress, ...] = ()
    is_ca: bool = False

    def __post_init__(self) -> None:
        if self.is_ca and KeyUsage.CERT_SIGN not in self.key_usages:
            raise ValueError(f"CA profile {self.common_name!r} must include CERT_SIGN key usage")
        if self.validity <= timedelta(0):
            raise ValueError(f"profile {self.common_name!r} must have a positive validity")


@dataclass(frozen=True)
class SigningPair:
    """A private key and the certificate issued for it."""

    private_key: RSAPrivateKey
    certificate: x509.Certificate


@dataclass
class BootstrapResult:
    """Result from a PKI bootstrap run.

    Contains the TLS directory, whether the root CA was freshly generated,
    the root serial and every role written, in mint order.
    """

    tls_dir: Path
    root_generated: bool
    root_serial: str
    minted_roles: list[str] = field(default_factory=list)

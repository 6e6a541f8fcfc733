"""Role-named on-disk storage for the cluster PKI."""

import enum
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from .cert_utils import (
    create_combined_certificate,
    deserialize_certificate,
    deserialize_private_key,
    key_matches_certificate,
    serialize_certificate,
    serialize_private_key,
    serialize_public_key,
)
from .certificate_builder import is_ca_certificate
from .config import ExternalCA
from .errors import ConfigurationError, PersistenceError
from .models import SigningPair

PRIVATE_MODE = 0o600
PUBLIC_MODE = 0o644


class CertRole(enum.Enum):
    """Every artifact the PKI bootstrap writes."""

    ROOT_CA = "root-ca"
    KUBE_CA = "kube-ca"
    ETCD_CA = "etcd-ca"
    ETCD_CLIENT_CA = "etcd-client-ca"
    ETCD_CLIENT = "etcd-client"
    AGGREGATOR_CA = "aggregator-ca"
    SERVICE_SERVING_CA = "service-serving-ca"
    INGRESS_CA = "ingress-ca"
    INGRESS = "ingress"
    ADMIN = "admin"
    APISERVER = "apiserver"
    OPENSHIFT_APISERVER = "openshift-apiserver"
    APISERVER_PROXY = "apiserver-proxy"
    KUBELET = "kubelet"
    TNC = "tnc"
    CLUSTER_APISERVER = "cluster-apiserver-ca"
    SERVICE_ACCOUNT = "service-account"


@dataclass(frozen=True)
class ArtifactPaths:
    """File names (relative to the TLS directory) held by one role."""

    cert: str | None = None
    key: str | None = None
    public_key: str | None = None


def _pair(role: CertRole) -> ArtifactPaths:
    return ArtifactPaths(cert=f"{role.value}.crt", key=f"{role.value}.key")


DEFAULT_LAYOUT: Mapping[CertRole, ArtifactPaths] = MappingProxyType(
    {
        **{role: _pair(role) for role in CertRole},
        CertRole.INGRESS_CA: ArtifactPaths(cert="ingress-ca.crt"),
        CertRole.SERVICE_ACCOUNT: ArtifactPaths(
            key="service-account.key", public_key="service-account.pub"
        ),
    }
)


class CertStore:
    """Writes keys and certificates to fixed role-named paths.

    Private keys are written with mode 0600, certificates and public keys
    with 0644.
    """

    def __init__(self, tls_dir: Path, layout: Mapping[CertRole, ArtifactPaths] = DEFAULT_LAYOUT) -> None:
        """Initialize store rooted at tls_dir.

        Args:
            tls_dir: Directory holding all TLS artifacts
            layout: Role to file name table
        """
        self.tls_dir = tls_dir
        self.layout = layout

    def cert_path(self, role: CertRole) -> Path:
        name = self.layout[role].cert
        if name is None:
            raise KeyError(f"role {role.value} has no certificate")
        return self.tls_dir / name

    def key_path(self, role: CertRole) -> Path:
        name = self.layout[role].key
        if name is None:
            raise KeyError(f"role {role.value} has no private key")
        return self.tls_dir / name

    def public_key_path(self, role: CertRole) -> Path:
        name = self.layout[role].public_key
        if name is None:
            raise KeyError(f"role {role.value} has no public key")
        return self.tls_dir / name

    def _write(self, path: Path, data: bytes, mode: int) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
            os.chmod(path, mode)
        except OSError as e:
            raise PersistenceError(path, e) from e

    def save_pair(
        self, role: CertRole, pair: SigningPair, issuer: SigningPair | None = None
    ) -> None:
        """Write key and certificate for role.

        Args:
            role: Role whose paths to write
            pair: Key and certificate to persist
            issuer: If given, its certificate is appended to the certificate file
        """
        cert_pem = serialize_certificate(pair.certificate)
        if issuer is not None:
            cert_pem = create_combined_certificate(
                cert_pem, serialize_certificate(issuer.certificate)
            )
        self._write(self.key_path(role), serialize_private_key(pair.private_key), PRIVATE_MODE)
        self._write(self.cert_path(role), cert_pem, PUBLIC_MODE)

    def save_certificate(self, role: CertRole, pair: SigningPair) -> None:
        """Write only the certificate of pair under role."""
        self._write(self.cert_path(role), serialize_certificate(pair.certificate), PUBLIC_MODE)

    def save_keypair(self, role: CertRole, key: RSAPrivateKey) -> None:
        """Write a standalone private key and its public half."""
        self._write(self.key_path(role), serialize_private_key(key), PRIVATE_MODE)
        self._write(
            self.public_key_path(role), serialize_public_key(key.public_key()), PUBLIC_MODE
        )

    def import_root_ca(self, external: ExternalCA) -> SigningPair:
        """Validate an operator-supplied root CA and store it verbatim.

        The files are read as raw bytes and parsed before anything is written,
        so invalid material never lands in the TLS directory.

        Args:
            external: Paths to the PEM certificate and RSA private key

        Returns:
            Parsed root CA signing pair

        Raises:
            ConfigurationError: If files are unreadable, malformed, not RSA,
                mismatched, or the certificate is not a CA
        """
        try:
            cert_pem = external.cert_path.read_bytes()
            key_pem = external.key_path.read_bytes()
        except OSError as e:
            raise ConfigurationError(f"cannot read root CA files: {e}") from e

        try:
            cert = deserialize_certificate(cert_pem)
        except ValueError as e:
            raise ConfigurationError(f"invalid root CA certificate {external.cert_path}: {e}") from e

        try:
            key = deserialize_private_key(key_pem)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise ConfigurationError(f"invalid root CA key {external.key_path}: {e}") from e

        if not key_matches_certificate(key, cert):
            raise ConfigurationError("root CA key does not match root CA certificate")
        if not is_ca_certificate(cert):
            raise ConfigurationError(f"root CA certificate {external.cert_path} is not a CA")

        self._write(self.key_path(CertRole.ROOT_CA), key_pem, PRIVATE_MODE)
        self._write(self.cert_path(CertRole.ROOT_CA), cert_pem, PUBLIC_MODE)

        return SigningPair(private_key=key, certificate=cert)

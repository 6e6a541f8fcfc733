"""Tests for PKIBootstrap."""

import ipaddress
from datetime import timedelta
from pathlib import Path

import pytest
from cryptography import x509

from cluster_bootstrap.lib import profiles
from cluster_bootstrap.lib.cert_store import CertRole, CertStore
from cluster_bootstrap.lib.cert_utils import (
    deserialize_certificate,
    deserialize_private_key,
    validate_issued_by,
)
from cluster_bootstrap.lib.certificate_builder import CertificateBuilder
from cluster_bootstrap.lib.config import ClusterConfig, ExternalCA, Platform
from cluster_bootstrap.lib.errors import CertificateGenerationError, ConfigurationError
from cluster_bootstrap.lib.models import BootstrapResult, CertificateProfile, SigningPair
from cluster_bootstrap.lib.pki_bootstrap import TLS_DIR, PKIBootstrap

MINT_ORDER = [
    "root-ca",
    "kube-ca",
    "etcd-ca",
    "etcd-client",
    "aggregator-ca",
    "service-serving-ca",
    "ingress",
    "admin",
    "apiserver",
    "openshift-apiserver",
    "apiserver-proxy",
    "kubelet",
    "tnc",
    "cluster-apiserver-ca",
    "service-account",
]

ISSUERS = {
    CertRole.KUBE_CA: CertRole.ROOT_CA,
    CertRole.ETCD_CA: CertRole.ROOT_CA,
    CertRole.ETCD_CLIENT: CertRole.ETCD_CA,
    CertRole.AGGREGATOR_CA: CertRole.ROOT_CA,
    CertRole.SERVICE_SERVING_CA: CertRole.ROOT_CA,
    CertRole.INGRESS: CertRole.KUBE_CA,
    CertRole.ADMIN: CertRole.KUBE_CA,
    CertRole.APISERVER: CertRole.KUBE_CA,
    CertRole.OPENSHIFT_APISERVER: CertRole.AGGREGATOR_CA,
    CertRole.APISERVER_PROXY: CertRole.AGGREGATOR_CA,
    CertRole.KUBELET: CertRole.KUBE_CA,
    CertRole.TNC: CertRole.ROOT_CA,
    CertRole.CLUSTER_APISERVER: CertRole.AGGREGATOR_CA,
}

COMBINED = {
    CertRole.INGRESS: CertRole.KUBE_CA,
    CertRole.APISERVER: CertRole.KUBE_CA,
    CertRole.OPENSHIFT_APISERVER: CertRole.AGGREGATOR_CA,
    CertRole.CLUSTER_APISERVER: CertRole.AGGREGATOR_CA,
}


def _config() -> ClusterConfig:
    return ClusterConfig(
        name="test", base_domain="example.com", platform=Platform.LIBVIRT, key_size=2048
    )


def _cert(store: CertStore, role: CertRole) -> x509.Certificate:
    return deserialize_certificate(store.cert_path(role).read_bytes())


def _pem_blocks(data: bytes) -> list[bytes]:
    marker = b"-----BEGIN CERTIFICATE-----"
    return [marker + block for block in data.split(marker)[1:]]


@pytest.fixture(scope="module")
def bootstrapped(tmp_path_factory: pytest.TempPathFactory) -> tuple[BootstrapResult, CertStore]:
    """Run one full bootstrap shared by the read-only tests below."""
    cluster_dir = tmp_path_factory.mktemp("cluster")
    result = PKIBootstrap(_config()).bootstrap(cluster_dir)
    return result, CertStore(cluster_dir / TLS_DIR)


class TestGeneratedHierarchy:
    """Tests for a bootstrap with a freshly minted root."""

    def test_result(self, bootstrapped: tuple[BootstrapResult, CertStore]) -> None:
        result, store = bootstrapped
        assert result.root_generated is True
        assert result.tls_dir == store.tls_dir
        assert result.minted_roles == MINT_ORDER
        assert result.root_serial

    def test_every_artifact_written(self, bootstrapped: tuple[BootstrapResult, CertStore]) -> None:
        _, store = bootstrapped
        for role, paths in store.layout.items():
            for name in (paths.cert, paths.key, paths.public_key):
                if name is not None:
                    assert (store.tls_dir / name).is_file(), f"{role.value}: {name} missing"

    @pytest.mark.parametrize("role", list(ISSUERS))
    def test_issued_by_expected_ca(
        self, bootstrapped: tuple[BootstrapResult, CertStore], role: CertRole
    ) -> None:
        _, store = bootstrapped
        issuer = _cert(store, ISSUERS[role])
        assert validate_issued_by(_cert(store, role), issuer)

    @pytest.mark.parametrize("role", list(COMBINED))
    def test_combined_files(
        self, bootstrapped: tuple[BootstrapResult, CertStore], role: CertRole
    ) -> None:
        """Combined files hold the leaf followed by its issuer."""
        _, store = bootstrapped
        blocks = _pem_blocks(store.cert_path(role).read_bytes())

        assert len(blocks) == 2
        leaf = deserialize_certificate(blocks[0])
        issuer = deserialize_certificate(blocks[1])
        assert issuer == _cert(store, COMBINED[role])
        assert validate_issued_by(leaf, issuer)

    def test_keys_match_certificates(
        self, bootstrapped: tuple[BootstrapResult, CertStore]
    ) -> None:
        _, store = bootstrapped
        for role in (CertRole.ROOT_CA, CertRole.ADMIN, CertRole.TNC):
            key = deserialize_private_key(store.key_path(role).read_bytes())
            assert key.public_key().public_numbers() == _cert(store, role).public_key().public_numbers()  # type: ignore[union-attr]

    def test_etcd_client_ca_is_etcd_ca(
        self, bootstrapped: tuple[BootstrapResult, CertStore]
    ) -> None:
        _, store = bootstrapped
        assert store.cert_path(CertRole.ETCD_CLIENT_CA).read_bytes() == (
            store.cert_path(CertRole.ETCD_CA).read_bytes()
        )
        assert store.key_path(CertRole.ETCD_CLIENT_CA).read_bytes() == (
            store.key_path(CertRole.ETCD_CA).read_bytes()
        )

    def test_ingress_ca_is_kube_ca(self, bootstrapped: tuple[BootstrapResult, CertStore]) -> None:
        _, store = bootstrapped
        assert store.cert_path(CertRole.INGRESS_CA).read_bytes() == (
            store.cert_path(CertRole.KUBE_CA).read_bytes()
        )

    def test_kubelet_is_short_lived(
        self, bootstrapped: tuple[BootstrapResult, CertStore]
    ) -> None:
        cert = _cert(bootstrapped[1], CertRole.KUBELET)
        lifetime = cert.not_valid_after_utc - cert.not_valid_before_utc
        assert lifetime == timedelta(minutes=30)

    def test_apiserver_sans(self, bootstrapped: tuple[BootstrapResult, CertStore]) -> None:
        cert = _cert(bootstrapped[1], CertRole.APISERVER)
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value

        assert "test-api.example.com" in san.get_values_for_type(x509.DNSName)
        assert "kubernetes.default.svc.cluster.local" in san.get_values_for_type(x509.DNSName)
        assert san.get_values_for_type(x509.IPAddress) == [ipaddress.ip_address("10.3.0.1")]

    def test_ingress_sans(self, bootstrapped: tuple[BootstrapResult, CertStore]) -> None:
        cert = _cert(bootstrapped[1], CertRole.INGRESS)
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        assert san.get_values_for_type(x509.DNSName) == ["test.example.com", "*.test.example.com"]

    def test_tnc_sans(self, bootstrapped: tuple[BootstrapResult, CertStore]) -> None:
        cert = _cert(bootstrapped[1], CertRole.TNC)
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        assert san.get_values_for_type(x509.DNSName) == ["test-tnc.example.com"]

    def test_service_account_public_key(
        self, bootstrapped: tuple[BootstrapResult, CertStore]
    ) -> None:
        _, store = bootstrapped
        pub = store.public_key_path(CertRole.SERVICE_ACCOUNT).read_bytes()
        assert pub.startswith(b"-----BEGIN PUBLIC KEY-----")


class TestRepeatedRuns:
    """Each run mints fresh key material."""

    def test_distinct_keys(self, tmp_path: Path) -> None:
        first = tmp_path / "first"
        second = tmp_path / "second"
        PKIBootstrap(_config()).bootstrap(first)
        PKIBootstrap(_config()).bootstrap(second)

        for role in (CertRole.ROOT_CA, CertRole.KUBE_CA, CertRole.SERVICE_ACCOUNT):
            name = f"{role.value}.key"
            assert (first / TLS_DIR / name).read_bytes() != (second / TLS_DIR / name).read_bytes()


class RecordingSigner(CertificateBuilder):
    """Signer that records which profiles were self-signed."""

    self_signed: list[str] = []

    @staticmethod
    def sign(
        profile: CertificateProfile, issuer: SigningPair | None = None, key_size: int = 2048
    ) -> SigningPair:
        if issuer is None:
            RecordingSigner.self_signed.append(profile.common_name)
        return CertificateBuilder.sign(profile, issuer=issuer, key_size=key_size)


class FailingSigner(CertificateBuilder):
    """Signer that fails for the kube-apiserver identity."""

    @staticmethod
    def sign(
        profile: CertificateProfile, issuer: SigningPair | None = None, key_size: int = 2048
    ) -> SigningPair:
        if profile.common_name == "kube-apiserver":
            raise ValueError("boom")
        return CertificateBuilder.sign(profile, issuer=issuer, key_size=key_size)


class WrongIssuerSigner(CertificateBuilder):
    """Signer that signs the admin identity with an unrelated CA."""

    @staticmethod
    def sign(
        profile: CertificateProfile, issuer: SigningPair | None = None, key_size: int = 2048
    ) -> SigningPair:
        if profile.common_name == "system:admin":
            issuer = CertificateBuilder.sign(profiles.ROOT_CA, key_size=key_size)
        return CertificateBuilder.sign(profile, issuer=issuer, key_size=key_size)


class TestExternalRootCA:
    """Tests for bootstrap with an operator-supplied root CA."""

    def test_root_is_not_minted(
        self, cluster_dir: Path, external_root_ca_files: ExternalCA, root_ca: SigningPair
    ) -> None:
        RecordingSigner.self_signed = []

        result = PKIBootstrap(_config(), signer=RecordingSigner).bootstrap(
            cluster_dir, external_root_ca_files
        )

        assert RecordingSigner.self_signed == []
        assert result.root_generated is False
        assert result.minted_roles == MINT_ORDER[1:]

        store = CertStore(cluster_dir / TLS_DIR)
        assert store.cert_path(CertRole.ROOT_CA).read_bytes() == (
            external_root_ca_files.cert_path.read_bytes()
        )
        assert validate_issued_by(_cert(store, CertRole.KUBE_CA), root_ca.certificate)

    def test_invalid_root_writes_nothing(
        self, cluster_dir: Path, external_root_ca_files: ExternalCA
    ) -> None:
        external_root_ca_files.cert_path.write_bytes(b"garbage")

        with pytest.raises(ConfigurationError):
            PKIBootstrap(_config()).bootstrap(cluster_dir, external_root_ca_files)
        assert not (cluster_dir / TLS_DIR / "kube-ca.crt").exists()


class TestMintFailure:
    """Tests for signer failures."""

    def test_names_failing_identity(self, cluster_dir: Path) -> None:
        with pytest.raises(CertificateGenerationError) as exc_info:
            PKIBootstrap(_config(), signer=FailingSigner).bootstrap(cluster_dir)

        assert exc_info.value.identity == "apiserver"
        assert "boom" in str(exc_info.value)
        # Artifacts minted before the failure stay on disk
        assert (cluster_dir / TLS_DIR / "admin.crt").is_file()
        assert not (cluster_dir / TLS_DIR / "apiserver.crt").exists()

    def test_rejects_certificate_from_wrong_issuer(self, cluster_dir: Path) -> None:
        """A certificate that does not verify against its intended CA is never written."""
        with pytest.raises(CertificateGenerationError, match="does not chain to") as exc_info:
            PKIBootstrap(_config(), signer=WrongIssuerSigner).bootstrap(cluster_dir)

        assert exc_info.value.identity == "admin"
        assert not (cluster_dir / TLS_DIR / "admin.crt").exists()
        assert not (cluster_dir / TLS_DIR / "admin.key").exists()

"""Builds the cluster trust hierarchy under the cluster directory."""

from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm

from . import profiles
from .cert_store import CertRole, CertStore
from .cert_utils import generate_private_key, get_certificate_serial_hex, validate_issued_by
from .certificate_builder import CertificateBuilder
from .config import ClusterConfig, ExternalCA
from .errors import CertificateGenerationError
from .logging_config import LOGGER
from .models import BootstrapResult, CertificateProfile, SigningPair

TLS_DIR = Path("generated") / "tls"


class PKIBootstrap:
    """Mints every CA, leaf certificate and key the cluster needs.

    Generation order is fixed: each issuer is minted (or imported) before
    anything it signs, and each pair is on disk before the next mint starts.
    Issuers are always handed on in memory, never re-read from disk.

    Any exception leaves a partial TLS directory behind; callers should
    discard the cluster directory and start over.
    """

    def __init__(self, config: ClusterConfig, signer: type[CertificateBuilder] = CertificateBuilder) -> None:
        """Initialize bootstrap.

        Args:
            config: Cluster config providing names, domains and key size
            signer: Certificate signer (swappable in tests)
        """
        self.config = config
        self.signer = signer

    def _mint(
        self,
        store: CertStore,
        result: BootstrapResult,
        role: CertRole,
        profile: CertificateProfile,
        issuer: SigningPair | None,
        embed_issuer: bool = False,
    ) -> SigningPair:
        try:
            pair = self.signer.sign(profile, issuer=issuer, key_size=self.config.key_size)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise CertificateGenerationError(role.value, e) from e

        signer_cert = pair.certificate if issuer is None else issuer.certificate
        if not validate_issued_by(pair.certificate, signer_cert):
            issuer_name = signer_cert.subject.rfc4514_string()
            raise CertificateGenerationError(
                role.value, ValueError(f"certificate does not chain to {issuer_name}")
            )

        store.save_pair(role, pair, issuer=issuer if embed_issuer else None)
        result.minted_roles.append(role.value)
        LOGGER.info(
            "Generated %s (CN=%s)", role.value, profile.common_name, extra={"role": role.value}
        )
        return pair

    def bootstrap(self, cluster_dir: Path, external_root_ca: ExternalCA | None = None) -> BootstrapResult:
        """Generate the full hierarchy into <cluster_dir>/generated/tls.

        Args:
            cluster_dir: Cluster working directory
            external_root_ca: Operator-supplied root CA to use instead of minting one

        Returns:
            BootstrapResult describing what was written

        Raises:
            ConfigurationError: If the external root CA is invalid
            CertificateGenerationError: If minting any identity fails
            PersistenceError: If writing any artifact fails
        """
        store = CertStore(cluster_dir / TLS_DIR)
        config = self.config

        if external_root_ca is not None:
            root = store.import_root_ca(external_root_ca)
            LOGGER.info("Imported root CA from %s", external_root_ca.cert_path)
            result = BootstrapResult(
                tls_dir=store.tls_dir,
                root_generated=False,
                root_serial=get_certificate_serial_hex(root.certificate),
            )
        else:
            result = BootstrapResult(tls_dir=store.tls_dir, root_generated=True, root_serial="")
            root = self._mint(store, result, CertRole.ROOT_CA, profiles.ROOT_CA, None)
            result.root_serial = get_certificate_serial_hex(root.certificate)

        kube_ca = self._mint(store, result, CertRole.KUBE_CA, profiles.KUBE_CA, root)

        etcd_ca = self._mint(store, result, CertRole.ETCD_CA, profiles.ETCD_CA, root)
        store.save_pair(CertRole.ETCD_CLIENT_CA, etcd_ca)
        self._mint(store, result, CertRole.ETCD_CLIENT, profiles.ETCD_CLIENT, etcd_ca)

        aggregator_ca = self._mint(
            store, result, CertRole.AGGREGATOR_CA, profiles.AGGREGATOR_CA, root
        )
        self._mint(store, result, CertRole.SERVICE_SERVING_CA, profiles.SERVICE_SERVING_CA, root)

        store.save_certificate(CertRole.INGRESS_CA, kube_ca)
        self._mint(
            store, result, CertRole.INGRESS, profiles.ingress_profile(config), kube_ca,
            embed_issuer=True,
        )
        self._mint(store, result, CertRole.ADMIN, profiles.ADMIN, kube_ca)
        self._mint(
            store, result, CertRole.APISERVER, profiles.apiserver_profile(config), kube_ca,
            embed_issuer=True,
        )
        self._mint(
            store, result, CertRole.OPENSHIFT_APISERVER,
            profiles.openshift_apiserver_profile(config), aggregator_ca,
            embed_issuer=True,
        )
        self._mint(store, result, CertRole.APISERVER_PROXY, profiles.APISERVER_PROXY, aggregator_ca)
        self._mint(store, result, CertRole.KUBELET, profiles.KUBELET, kube_ca)
        self._mint(store, result, CertRole.TNC, profiles.tnc_profile(config), root)
        self._mint(
            store, result, CertRole.CLUSTER_APISERVER, profiles.CLUSTER_APISERVER, aggregator_ca,
            embed_issuer=True,
        )

        try:
            service_account_key = generate_private_key(config.key_size)
        except (ValueError, UnsupportedAlgorithm) as e:
            raise CertificateGenerationError(CertRole.SERVICE_ACCOUNT.value, e) from e
        store.save_keypair(CertRole.SERVICE_ACCOUNT, service_account_key)
        result.minted_roles.append(CertRole.SERVICE_ACCOUNT.value)
        LOGGER.info("Generated %s keypair", CertRole.SERVICE_ACCOUNT.value)

        return result

"""Certificate profiles for every identity in the cluster trust hierarchy."""

import ipaddress

from .config import ClusterConfig
from .models import (
    VALIDITY_TEN_YEARS,
    VALIDITY_THIRTY_MINUTES,
    CertificateProfile,
    KeyUsage,
    Purpose,
)

CA_KEY_USAGES = KeyUsage.KEY_ENCIPHERMENT | KeyUsage.DIGITAL_SIGNATURE | KeyUsage.CERT_SIGN
LEAF_KEY_USAGES = KeyUsage.KEY_ENCIPHERMENT | KeyUsage.DIGITAL_SIGNATURE
SERVER_AND_CLIENT = frozenset({Purpose.SERVER_AUTH, Purpose.CLIENT_AUTH})
CLIENT_ONLY = frozenset({Purpose.CLIENT_AUTH})

# Namespace the machine API operator runs cluster-api in
MACHINE_API_NAMESPACE = "openshift-cluster-api"

LOOPBACK = ipaddress.ip_address("127.0.0.1")


def _ca(common_name: str, organizational_unit: str) -> CertificateProfile:
    return CertificateProfile(
        common_name=common_name,
        organizational_unit=(organizational_unit,),
        key_usages=CA_KEY_USAGES,
        validity=VALIDITY_TEN_YEARS,
        is_ca=True,
    )


def _service_names(service: str, namespace: str) -> tuple[str, ...]:
    """In-cluster DNS aliases for a service, shortest first."""
    return (
        service,
        f"{service}.{namespace}",
        f"{service}.{namespace}.svc",
        f"{service}.{namespace}.svc.cluster.local",
    )


ROOT_CA = _ca("root-ca", "openshift")
KUBE_CA = _ca("kube-ca", "bootkube")
ETCD_CA = _ca("etcd", "etcd")
AGGREGATOR_CA = _ca("aggregator", "bootkube")
SERVICE_SERVING_CA = _ca("service-serving", "bootkube")

ETCD_CLIENT = CertificateProfile(
    common_name="etcd",
    organizational_unit=("etcd",),
    key_usages=KeyUsage.KEY_ENCIPHERMENT,
    extended_key_usages=CLIENT_ONLY,
    validity=VALIDITY_TEN_YEARS,
)

ADMIN = CertificateProfile(
    common_name="system:admin",
    organization=("system:masters",),
    key_usages=LEAF_KEY_USAGES,
    extended_key_usages=SERVER_AND_CLIENT,
    validity=VALIDITY_TEN_YEARS,
)

APISERVER_PROXY = CertificateProfile(
    common_name="kube-apiserver-proxy",
    organization=("kube-master",),
    key_usages=LEAF_KEY_USAGES,
    extended_key_usages=CLIENT_ONLY,
    validity=VALIDITY_TEN_YEARS,
)

# Short-lived: only used by kubelets to request their real credentials
KUBELET = CertificateProfile(
    common_name="system:serviceaccount:kube-system:default",
    organization=("system:serviceaccounts:kube-system",),
    key_usages=LEAF_KEY_USAGES,
    extended_key_usages=CLIENT_ONLY,
    validity=VALIDITY_THIRTY_MINUTES,
)

CLUSTER_APISERVER = CertificateProfile(
    common_name="clusterapi",
    organizational_unit=("bootkube",),
    key_usages=LEAF_KEY_USAGES,
    extended_key_usages=SERVER_AND_CLIENT,
    dns_names=_service_names("clusterapi", MACHINE_API_NAMESPACE),
    validity=VALIDITY_TEN_YEARS,
)


def ingress_profile(config: ClusterConfig) -> CertificateProfile:
    """Serving certificate for the cluster domain and all its subdomains."""
    return CertificateProfile(
        common_name=config.base_address,
        organization=("ingress",),
        key_usages=LEAF_KEY_USAGES,
        extended_key_usages=SERVER_AND_CLIENT,
        dns_names=(config.base_address, f"*.{config.base_address}"),
        validity=VALIDITY_TEN_YEARS,
    )


def apiserver_profile(config: ClusterConfig) -> CertificateProfile:
    return CertificateProfile(
        common_name="kube-apiserver",
        organization=("kube-master",),
        key_usages=LEAF_KEY_USAGES,
        extended_key_usages=SERVER_AND_CLIENT,
        dns_names=(
            config.api_dns_name,
            "kubernetes",
            "kubernetes.default",
            "kubernetes.default.svc",
            "kubernetes.default.svc.cluster.local",
        ),
        ip_addresses=(config.api_server_ip,),
        validity=VALIDITY_TEN_YEARS,
    )


def openshift_apiserver_profile(config: ClusterConfig) -> CertificateProfile:
    return CertificateProfile(
        common_name="openshift-apiserver",
        organization=("kube-master",),
        key_usages=LEAF_KEY_USAGES,
        extended_key_usages=SERVER_AND_CLIENT,
        dns_names=(
            config.api_dns_name,
            *_service_names("openshift-apiserver", "kube-system"),
            "localhost",
        ),
        ip_addresses=(config.api_server_ip, LOOPBACK),
        validity=VALIDITY_TEN_YEARS,
    )


def tnc_profile(config: ClusterConfig) -> CertificateProfile:
    return CertificateProfile(
        common_name=config.tnc_dns_name,
        extended_key_usages=frozenset({Purpose.SERVER_AUTH}),
        dns_names=(config.tnc_dns_name,),
        validity=VALIDITY_TEN_YEARS,
    )

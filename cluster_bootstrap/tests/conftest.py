"""Test fixtures for cluster_bootstrap tests."""

import json
from collections.abc import Generator
from pathlib import Path

import pytest
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from urllib3.exceptions import MaxRetryError

from cluster_bootstrap.lib import profiles
from cluster_bootstrap.lib.cert_utils import (
    generate_private_key,
    serialize_certificate,
    serialize_private_key,
)
from cluster_bootstrap.lib.certificate_builder import CertificateBuilder
from cluster_bootstrap.lib.config import AWSConfig, ClusterConfig, ExternalCA, Platform
from cluster_bootstrap.lib.models import SigningPair


@pytest.fixture
def cluster_dir(tmp_path: Path) -> Path:
    """Return empty cluster working directory."""
    path = tmp_path / "cluster"
    path.mkdir()
    return path


@pytest.fixture
def cluster_config() -> ClusterConfig:
    """Return AWS cluster config with a pinned AMI and test key size."""
    return ClusterConfig(
        name="test",
        base_domain="example.com",
        platform=Platform.AWS,
        aws=AWSConfig(region="us-east-1", ec2_ami_override="ami-0123456789abcdef0"),
        key_size=2048,  # Faster for tests
    )


@pytest.fixture
def cluster_config_dict() -> dict:
    """Return cluster.json content for a libvirt cluster."""
    return {
        "name": "dev",
        "base_domain": "tt.testing",
        "platform": "libvirt",
        "service_cidr": "10.3.0.0/16",
    }


@pytest.fixture
def cluster_json(cluster_dir: Path, cluster_config_dict: dict) -> Path:
    """Write cluster.json into the cluster directory."""
    path = cluster_dir / "cluster.json"
    path.write_text(json.dumps(cluster_config_dict))
    return path


@pytest.fixture
def root_ca() -> SigningPair:
    """Generate self-signed root CA."""
    return CertificateBuilder.sign(profiles.ROOT_CA, key_size=2048)


@pytest.fixture
def kube_ca(root_ca: SigningPair) -> SigningPair:
    """Generate kube CA signed by the root CA."""
    return CertificateBuilder.sign(profiles.KUBE_CA, issuer=root_ca, key_size=2048)


@pytest.fixture
def foreign_key() -> RSAPrivateKey:
    """Generate RSA key unrelated to any certificate."""
    return generate_private_key(key_size=2048)


@pytest.fixture
def external_root_ca_files(tmp_path: Path, root_ca: SigningPair) -> Generator[ExternalCA]:
    """Write root CA to files outside the cluster directory.

    Creates:
        {tmp}/external/ca.crt
        {tmp}/external/ca.key
    """
    external_dir = tmp_path / "external"
    external_dir.mkdir()
    cert_path = external_dir / "ca.crt"
    key_path = external_dir / "ca.key"
    cert_path.write_bytes(serialize_certificate(root_ca.certificate))
    key_path.write_bytes(serialize_private_key(root_ca.private_key))

    yield ExternalCA(cert_path=cert_path, key_path=key_path)


@pytest.fixture
def connection_refused() -> MaxRetryError:
    """Error the kubernetes client raises when the API server is unreachable."""
    return MaxRetryError(
        None,  # type: ignore[arg-type]
        "/apis/cluster.k8s.io/v1alpha1/namespaces/openshift-cluster-api/machinesets/worker",
        ConnectionRefusedError(111, "Connection refused"),
    )

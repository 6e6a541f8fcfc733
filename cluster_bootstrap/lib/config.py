"""Cluster configuration dataclasses."""

import enum
import ipaddress
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigurationError

CLUSTER_CONFIG_FILE = "cluster.json"
DEFAULT_SERVICE_CIDR = "10.3.0.0/16"
DEFAULT_RHCOS_CHANNEL = "tested"


class Platform(enum.Enum):
    """Platforms with provisioning templates."""

    AWS = "aws"
    LIBVIRT = "libvirt"


class DrainPolicy(enum.Enum):
    """How the destroy workflow treats worker pool drain.

    REQUIRED: drain failures abort teardown.
    BEST_EFFORT: drain failures are logged and teardown continues.
    SKIP: no drain is attempted.
    """

    REQUIRED = "required"
    BEST_EFFORT = "best-effort"
    SKIP = "skip"


PLATFORM_DRAIN_POLICIES: dict[Platform, DrainPolicy] = {
    Platform.AWS: DrainPolicy.REQUIRED,
    Platform.LIBVIRT: DrainPolicy.BEST_EFFORT,
}


@dataclass(frozen=True)
class WorkerPoolConfig:
    """Location of the worker MachineSet in the control plane."""

    namespace: str = "openshift-cluster-api"
    name: str = "worker"
    group: str = "cluster.k8s.io"
    version: str = "v1alpha1"
    plural: str = "machinesets"


@dataclass(frozen=True)
class ExternalCA:
    """Operator-supplied root CA certificate and key files."""

    cert_path: Path
    key_path: Path


@dataclass
class AWSConfig:
    """AWS-specific settings."""

    region: str = "us-east-1"
    rhcos_channel: str = DEFAULT_RHCOS_CHANNEL
    ec2_ami_override: str | None = None


@dataclass
class ClusterConfig:
    """Cluster-wide settings read from cluster.json."""

    name: str
    base_domain: str
    platform: Platform
    service_cidr: str = DEFAULT_SERVICE_CIDR
    root_ca: ExternalCA | None = None
    aws: AWSConfig = field(default_factory=AWSConfig)
    worker_pool: WorkerPoolConfig = field(default_factory=WorkerPoolConfig)
    drain_policy: DrainPolicy | None = None
    key_size: int = 2048

    @property
    def base_address(self) -> str:
        """Cluster domain under the base domain, e.g. mycluster.example.com."""
        return f"{self.name}.{self.base_domain}"

    @property
    def api_dns_name(self) -> str:
        return f"{self.name}-api.{self.base_domain}"

    @property
    def tnc_dns_name(self) -> str:
        return f"{self.name}-tnc.{self.base_domain}"

    @property
    def api_server_ip(self) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
        """First host address of the service network.

        Raises:
            ConfigurationError: If service_cidr is not a valid network or has no hosts
        """
        try:
            network = ipaddress.ip_network(self.service_cidr)
        except ValueError as e:
            raise ConfigurationError(f"invalid service_cidr {self.service_cidr!r}: {e}") from e
        if network.num_addresses < 2:
            raise ConfigurationError(f"service_cidr {self.service_cidr!r} has no host addresses")
        return network[1]

    def effective_drain_policy(self) -> DrainPolicy:
        """Return the configured drain policy, or the platform default."""
        if self.drain_policy is not None:
            return self.drain_policy
        return PLATFORM_DRAIN_POLICIES[self.platform]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClusterConfig":
        """Build a ClusterConfig from decoded JSON.

        Raises:
            ConfigurationError: If required keys are missing or values are invalid
        """
        missing = [key for key in ("name", "base_domain", "platform") if not data.get(key)]
        if missing:
            raise ConfigurationError(f"cluster config missing required keys: {', '.join(missing)}")

        try:
            platform = Platform(data["platform"])
        except ValueError as e:
            raise ConfigurationError(f"unsupported platform {data['platform']!r}") from e

        drain_policy = None
        if data.get("drain_policy") is not None:
            try:
                drain_policy = DrainPolicy(data["drain_policy"])
            except ValueError as e:
                raise ConfigurationError(f"unknown drain_policy {data['drain_policy']!r}") from e

        root_ca = None
        if data.get("root_ca"):
            try:
                root_ca = ExternalCA(
                    cert_path=Path(data["root_ca"]["cert_path"]),
                    key_path=Path(data["root_ca"]["key_path"]),
                )
            except (KeyError, TypeError) as e:
                raise ConfigurationError(
                    "root_ca requires both cert_path and key_path"
                ) from e

        try:
            aws = AWSConfig(**data.get("aws", {}))
            worker_pool = WorkerPoolConfig(**data.get("worker_pool", {}))
        except TypeError as e:
            raise ConfigurationError(f"invalid cluster config section: {e}") from e

        try:
            key_size = int(data.get("key_size", 2048))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid key_size {data.get('key_size')!r}") from e

        config = cls(
            name=data["name"],
            base_domain=data["base_domain"],
            platform=platform,
            service_cidr=data.get("service_cidr", DEFAULT_SERVICE_CIDR),
            root_ca=root_ca,
            aws=aws,
            worker_pool=worker_pool,
            drain_policy=drain_policy,
            key_size=key_size,
        )
        # Fail early on a bad network instead of midway through the PKI run
        _ = config.api_server_ip
        return config


def load_cluster_config(path: Path) -> ClusterConfig:
    """Read and validate cluster.json.

    Args:
        path: Path to the JSON cluster config

    Returns:
        Parsed ClusterConfig

    Raises:
        ConfigurationError: If the file is missing, not JSON or invalid
    """
    try:
        data = json.loads(path.read_text())
    except FileNotFoundError as e:
        raise ConfigurationError(f"cluster config not found: {path}") from e
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"cannot read cluster config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"cluster config {path} must be a JSON object")

    return ClusterConfig.from_dict(data)

"""Exception types raised by cluster bootstrap and teardown operations."""

from pathlib import Path


class ClusterBootstrapError(Exception):
    """Base class for all cluster bootstrap errors."""


class ConfigurationError(ClusterBootstrapError, ValueError):
    """Invalid operator-supplied input (CA material, cluster config, platform, kubeconfig).

    Never retryable: the input has to be fixed first.
    """


class CertificateGenerationError(ClusterBootstrapError):
    """Minting a key/certificate pair for a named identity failed."""

    def __init__(self, identity: str, cause: Exception) -> None:
        self.identity = identity
        super().__init__(f"failed to generate {identity}: {cause}")


class PersistenceError(ClusterBootstrapError):
    """Writing an artifact to the cluster directory failed."""

    def __init__(self, path: Path, cause: Exception) -> None:
        self.path = path
        super().__init__(f"failed to write {path}: {cause}")


class ProvisioningError(ClusterBootstrapError):
    """The provisioning executor failed to apply or destroy a step."""

    def __init__(self, step: str, action: str, detail: str, returncode: int | None = None) -> None:
        self.step = step
        self.action = action
        self.returncode = returncode
        super().__init__(f"{action} of step {step!r} failed: {detail}")


class ControlPlaneError(ClusterBootstrapError):
    """A request against the cluster control-plane API failed.

    Covers API error responses and an unreachable API server.
    """


class DrainTimeoutError(ClusterBootstrapError, TimeoutError):
    """Worker pool did not report zero replicas within the drain timeout."""


class ResourceNotFoundError(ControlPlaneError):
    """The requested control-plane object does not exist (HTTP 404)."""

"""Kubernetes client for scaling and deleting cluster-api MachineSets."""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError

from .config import WorkerPoolConfig
from .errors import ConfigurationError, ControlPlaneError, ResourceNotFoundError


class MachineSetClient:
    """MachineSet operations through the custom objects API."""

    def __init__(self, api: client.CustomObjectsApi, group: str, version: str, plural: str) -> None:
        """Initialize MachineSet client.

        Args:
            api: Custom objects API bound to a cluster
            group: API group of the MachineSet resource
            version: API version of the MachineSet resource
            plural: Plural resource name
        """
        self.api = api
        self.group = group
        self.version = version
        self.plural = plural

    @classmethod
    def from_kubeconfig(cls, kubeconfig_path: Path, pool: WorkerPoolConfig) -> "MachineSetClient":
        """Build a client from a kubeconfig file.

        Raises:
            ConfigurationError: If the kubeconfig is missing, unreadable or malformed
        """
        try:
            api_client = config.new_client_from_config(config_file=str(kubeconfig_path))
        except (ConfigException, OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"cannot load kubeconfig {kubeconfig_path}: {e}") from e
        return cls(client.CustomObjectsApi(api_client), pool.group, pool.version, pool.plural)
    def _resource(self, namespace: str, name: str) -> dict[str, Any]:
        return {
            "group": self.group,
            "version": self.version,
            "namespace": namespace,
            "plural": self.plural,
            "name": name,
        }

    def _request(self, operation: str, call: Callable[..., Any], **kwargs: Any) -> Any:
        """Invoke an API method, translating client failures to ControlPlaneError.

        Args:
            operation: Description used in the error message, e.g. 'get ns/name'
            call: Bound CustomObjectsApi method
            **kwargs: Arguments for call

        Raises:
            ResourceNotFoundError: If the API answers 404
            ControlPlaneError: If the API answers with any other error or is unreachable
        """
        try:
            return call(**kwargs)
        except ApiException as e:
            error_cls = ResourceNotFoundError if e.status == 404 else ControlPlaneError
            raise error_cls(f"failed to {operation}: {e.status} {e.reason}") from e
        except HTTPError as e:
            raise ControlPlaneError(f"failed to {operation}: {e}") from e

    def patch_replicas(self, namespace: str, name: str, count: int) -> None:
        """Set spec.replicas with a JSON patch.

        MachineSets have no scale subresource, so the object is patched
        rather than scaled.

        Raises:
            ControlPlaneError: If the API rejects the patch or cannot be reached
        """
        body = [{"op": "replace", "path": "/spec/replicas", "value": count}]
        self._request(
            f"patch replicas of {namespace}/{name}",
            self.api.patch_namespaced_custom_object,
            body=body,
            **self._resource(namespace, name),
        )

    def get_replicas(self, namespace: str, name: str) -> int:
        """Return the observed replica count (status.replicas, 0 when unset).

        Raises:
            ControlPlaneError: If the API request fails
        """
        obj = self._request(
            f"get {namespace}/{name}",
            self.api.get_namespaced_custom_object,
            **self._resource(namespace, name),
        )
        return int((obj.get("status") or {}).get("replicas") or 0)

    def delete(self, namespace: str, name: str) -> None:
        """Delete the MachineSet.

        Raises:
            ControlPlaneError: If the API request fails
        """
        self._request(
            f"delete {namespace}/{name}",
            self.api.delete_namespaced_custom_object,
            **self._resource(namespace, name),
        )

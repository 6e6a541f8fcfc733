"""Scales the worker pool to zero and deletes it."""

import time
from collections.abc import Callable
from pathlib import Path

from .config import WorkerPoolConfig
from .errors import DrainTimeoutError, ResourceNotFoundError
from .kube_client import MachineSetClient
from .logging_config import LOGGER

DRAIN_POLL_INTERVAL = 3.0
DRAIN_TIMEOUT = 60.0


class ClusterDrainer:
    """Drains the worker MachineSet before its backing resources are destroyed.

    Workers are scaled to zero and confirmed gone before the MachineSet is
    deleted, so no running machines escape cluster accounting. The wait is
    bounded: a control plane that never converges fails the teardown with
    DrainTimeoutError, which an operator can retry.
    """

    def __init__(
        self,
        pool: WorkerPoolConfig,
        interval: float = DRAIN_POLL_INTERVAL,
        timeout: float = DRAIN_TIMEOUT,
        client_factory: Callable[[Path, WorkerPoolConfig], MachineSetClient] = MachineSetClient.from_kubeconfig,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.pool = pool
        self.interval = interval
        self.timeout = timeout
        self.client_factory = client_factory
        self.sleep = sleep
        self.clock = clock

    def drain_worker_pool(self, kubeconfig_path: Path) -> None:
        """Patch the pool to zero replicas, wait until none remain, then delete it.

        A pool that no longer exists is treated as already drained, so a
        teardown can be re-run after the MachineSet was deleted.

        Args:
            kubeconfig_path: Credentials for the cluster control plane

        Raises:
            ConfigurationError: If the kubeconfig cannot be loaded
            ControlPlaneError: If a patch, get or delete request fails
            DrainTimeoutError: If replicas do not reach zero within the timeout
        """
        kube = self.client_factory(kubeconfig_path, self.pool)
        namespace, name = self.pool.namespace, self.pool.name

        try:
            kube.patch_replicas(namespace, name, 0)
            LOGGER.info("Waiting for MachineSet %s/%s to scale down...", namespace, name)
            self._wait_for_zero(kube, namespace, name)
            kube.delete(namespace, name)
        except ResourceNotFoundError:
            # Deleted by an earlier, interrupted teardown
            LOGGER.info("MachineSet %s/%s not found, nothing to drain", namespace, name)
            return
        LOGGER.info("Deleted MachineSet %s/%s", namespace, name)

    def _wait_for_zero(self, kube: MachineSetClient, namespace: str, name: str) -> None:
        deadline = self.clock() + self.timeout
        while True:
            observed = kube.get_replicas(namespace, name)
            if observed == 0:
                return
            if self.clock() >= deadline:
                raise DrainTimeoutError(
                    f"MachineSet {namespace}/{name} still has {observed} replicas "
                    f"after {self.timeout:g}s"
                )
            LOGGER.info("MachineSet %s/%s has %d replicas remaining", namespace, name, observed)
            self.sleep(self.interval)

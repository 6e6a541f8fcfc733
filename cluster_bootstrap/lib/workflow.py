"""Create and destroy workflows: ordered step pipelines over a cluster directory."""

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from botocore.exceptions import BotoCoreError, ClientError

from .ami_client import AMIClient
from .config import CLUSTER_CONFIG_FILE, ClusterConfig, DrainPolicy, Platform, load_cluster_config
from .drainer import ClusterDrainer
from .errors import ClusterBootstrapError, ConfigurationError, PersistenceError
from .logging_config import LOGGER
from .pki_bootstrap import TLS_DIR, PKIBootstrap
from .state_tracker import StateTracker
from .steps import ASSETS, BOOTSTRAP, INFRA, WORKERS, LifecycleStep, StepRegistry
from .terraform import TFVARS_FILE, TerraformExecutor

KUBECONFIG_PATH = Path("generated") / "auth" / "kubeconfig"


class ProvisioningExecutor(Protocol):
    """Applies and destroys a step's templates."""

    def apply(self, step: str, template_dir: Path, extra_args: Sequence[str] = ()) -> None: ...

    def destroy(self, step: str, template_dir: Path, extra_args: Sequence[str] = ()) -> None: ...


@dataclass
class WorkflowMetadata:
    """State shared by the steps of one workflow run."""

    cluster_dir: Path
    registry: StepRegistry
    executor: ProvisioningExecutor
    cluster: ClusterConfig | None = None
    drainer: ClusterDrainer | None = None
    ami_client_factory: Callable[[str], AMIClient] = AMIClient

    @property
    def state(self) -> StateTracker:
        return StateTracker(self.cluster_dir)

    @property
    def kubeconfig_path(self) -> Path:
        return self.cluster_dir / KUBECONFIG_PATH

    def require_cluster(self) -> ClusterConfig:
        if self.cluster is None:
            raise ConfigurationError("cluster config has not been read")
        return self.cluster


Step = Callable[[WorkflowMetadata], None]


class Workflow:
    """Runs its steps in order, stopping at the first one that raises.

    There is no rollback and no retry here: re-running a workflow is safe
    because destroy steps are no-ops when nothing was applied.
    """

    def __init__(self, metadata: WorkflowMetadata, steps: Sequence[Step]) -> None:
        self.metadata = metadata
        self.steps = list(steps)

    def run(self) -> None:
        for step in self.steps:
            name = getattr(step, "__name__", repr(step))
            LOGGER.info("Running step %s", name, extra={"step": name})
            step(self.metadata)


def run_apply_step(m: WorkflowMetadata, step: LifecycleStep) -> None:
    """Apply step's templates for the cluster platform."""
    template_dir = m.registry.template_dir(step, m.require_cluster().platform)
    m.executor.apply(step.name, template_dir, step.extra_args)


def run_destroy_step(m: WorkflowMetadata, step: LifecycleStep) -> None:
    """Destroy step's resources, or do nothing if the step was never applied.

    Raises:
        ConfigurationError: If the step has state but no templates for the platform
        ProvisioningError: If the executor fails
    """
    if not m.state.has_state(step.name):
        LOGGER.info(
            "No state for step %s, nothing to destroy", step.name, extra={"step": step.name}
        )
        return
    template_dir = m.registry.template_dir(step, m.require_cluster().platform)
    m.executor.destroy(step.name, template_dir, step.extra_args)


def read_cluster_config_step(m: WorkflowMetadata) -> None:
    m.cluster = load_cluster_config(m.cluster_dir / CLUSTER_CONFIG_FILE)


def generate_terraform_variables_step(m: WorkflowMetadata) -> None:
    """Write terraform.tfvars.json from the cluster config.

    On AWS the RHCOS AMI comes from the config override or an EC2 lookup.

    Raises:
        ConfigurationError: If the AMI cannot be resolved (unsupported channel,
            no image, missing credentials or an EC2 error)
        PersistenceError: If the variables file cannot be written
    """
    cluster = m.require_cluster()
    variables: dict[str, str] = {
        "cluster_name": cluster.name,
        "base_domain": cluster.base_domain,
        "platform": cluster.platform.value,
        "service_cidr": cluster.service_cidr,
        "tls_dir": str((m.cluster_dir / TLS_DIR).resolve()),
    }
    if cluster.platform is Platform.AWS:
        ami = cluster.aws.ec2_ami_override
        if not ami:
            try:
                ami = m.ami_client_factory(cluster.aws.region).lookup_ami(cluster.aws.rhcos_channel)
            except (ValueError, ClientError, BotoCoreError) as e:
                raise ConfigurationError(f"cannot resolve RHCOS AMI: {e}") from e
        variables["aws_region"] = cluster.aws.region
        variables["aws_ec2_ami"] = ami

    path = m.cluster_dir / TFVARS_FILE
    try:
        path.write_text(json.dumps(variables, indent=2))
    except OSError as e:
        raise PersistenceError(path, e) from e


def generate_tls_config_step(m: WorkflowMetadata) -> None:
    cluster = m.require_cluster()
    PKIBootstrap(cluster).bootstrap(m.cluster_dir, cluster.root_ca)


def install_assets_step(m: WorkflowMetadata) -> None:
    run_apply_step(m, ASSETS)


def install_infra_step(m: WorkflowMetadata) -> None:
    run_apply_step(m, INFRA)


def install_bootstrap_step(m: WorkflowMetadata) -> None:
    run_apply_step(m, BOOTSTRAP)


def install_workers_step(m: WorkflowMetadata) -> None:
    run_apply_step(m, WORKERS)


def destroy_bootstrap_step(m: WorkflowMetadata) -> None:
    run_destroy_step(m, BOOTSTRAP)


def destroy_workers_step(m: WorkflowMetadata) -> None:
    """Drain the worker MachineSet per the platform's drain policy, then destroy workers."""
    cluster = m.require_cluster()
    policy = cluster.effective_drain_policy()

    if policy is DrainPolicy.SKIP:
        LOGGER.info("Skipping worker drain on %s", cluster.platform.value)
    else:
        drainer = m.drainer or ClusterDrainer(cluster.worker_pool)
        try:
            drainer.drain_worker_pool(m.kubeconfig_path)
        except ClusterBootstrapError as e:
            if policy is DrainPolicy.REQUIRED:
                raise
            LOGGER.warning("Worker drain failed, continuing teardown: %s", e)

    run_destroy_step(m, WORKERS)


def destroy_infra_step(m: WorkflowMetadata) -> None:
    run_destroy_step(m, INFRA)


def destroy_assets_step(m: WorkflowMetadata) -> None:
    run_destroy_step(m, ASSETS)


def _metadata(
    cluster_dir: Path, templates_dir: Path, executor: ProvisioningExecutor | None
) -> WorkflowMetadata:
    return WorkflowMetadata(
        cluster_dir=cluster_dir,
        registry=StepRegistry(templates_dir),
        executor=executor or TerraformExecutor(cluster_dir),
    )


def create_workflow(
    cluster_dir: Path, templates_dir: Path, executor: ProvisioningExecutor | None = None
) -> Workflow:
    """Workflow that generates TLS assets and applies every step in dependency order."""
    return Workflow(
        _metadata(cluster_dir, templates_dir, executor),
        [
            read_cluster_config_step,
            generate_terraform_variables_step,
            generate_tls_config_step,
            install_assets_step,
            install_infra_step,
            install_bootstrap_step,
            install_workers_step,
        ],
    )


def destroy_workflow(
    cluster_dir: Path, templates_dir: Path, executor: ProvisioningExecutor | None = None
) -> Workflow:
    """Workflow that removes an existing cluster's resources in reverse dependency order."""
    return Workflow(
        _metadata(cluster_dir, templates_dir, executor),
        [
            read_cluster_config_step,
            generate_terraform_variables_step,
            destroy_bootstrap_step,
            destroy_workers_step,
            destroy_infra_step,
            destroy_assets_step,
        ],
    )

"""Provisioning executor backed by the terraform CLI."""

import os
import subprocess
from collections.abc import Sequence
from pathlib import Path

from .errors import ProvisioningError
from .logging_config import LOGGER
from .state_tracker import StateTracker

TFVARS_FILE = "terraform.tfvars.json"


class TerraformExecutor:
    """Runs terraform init + apply/destroy for a step against its template directory.

    State is kept in the cluster directory (one <step>.tfstate per step) and
    provider plugins in <cluster_dir>/.terraform/<step>, so the shared
    template tree is never written to.
    """

    def __init__(self, cluster_dir: Path, binary: str = "terraform") -> None:
        """Initialize executor.

        Args:
            cluster_dir: Cluster working directory holding state and tfvars
            binary: terraform executable name or path
        """
        self.cluster_dir = cluster_dir
        self.binary = binary
        self.state = StateTracker(cluster_dir)

    def _run(self, step: str, action: str, args: Sequence[str]) -> None:
        cmd = [self.binary, *args]
        env = {**os.environ, "TF_DATA_DIR": str(self.cluster_dir / ".terraform" / step)}
        LOGGER.info("Running %s", " ".join(cmd))
        try:
            proc = subprocess.run(cmd, cwd=self.cluster_dir, env=env, check=False)
        except OSError as e:
            raise ProvisioningError(step, action, f"cannot execute {self.binary}: {e}") from e
        if proc.returncode != 0:
            raise ProvisioningError(
                step, action, f"terraform exited with code {proc.returncode}", proc.returncode
            )

    def _execute(self, action: str, step: str, template_dir: Path, extra_args: Sequence[str]) -> None:
        chdir = f"-chdir={template_dir.resolve()}"
        self._run(step, action, [chdir, "init", "-input=false"])
        self._run(
            step,
            action,
            [
                chdir,
                action,
                "-auto-approve",
                "-input=false",
                f"-state={self.state.state_path(step).resolve()}",
                f"-var-file={(self.cluster_dir / TFVARS_FILE).resolve()}",
                *extra_args,
            ],
        )

    def apply(self, step: str, template_dir: Path, extra_args: Sequence[str] = ()) -> None:
        """Apply template_dir for step.

        Raises:
            ProvisioningError: If terraform cannot run or exits non-zero
        """
        self._execute("apply", step, template_dir, extra_args)

    def destroy(self, step: str, template_dir: Path, extra_args: Sequence[str] = ()) -> None:
        """Destroy resources previously applied for step.

        Raises:
            ProvisioningError: If terraform cannot run or exits non-zero
        """
        self._execute("destroy", step, template_dir, extra_args)

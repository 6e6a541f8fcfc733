"""Tracks which lifecycle steps have been applied, by their state files."""

from pathlib import Path

STATE_SUFFIX = ".tfstate"


class StateTracker:
    """Answers "was this step applied?" from state file presence alone.

    The state file content belongs to the provisioning executor; only
    existence is inspected here.
    """

    def __init__(self, state_dir: Path) -> None:
        self.state_dir = state_dir

    def state_path(self, step_name: str) -> Path:
        return self.state_dir / f"{step_name}{STATE_SUFFIX}"

    def has_state(self, step_name: str) -> bool:
        return self.state_path(step_name).is_file()

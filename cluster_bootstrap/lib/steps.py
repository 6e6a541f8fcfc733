"""Lifecycle steps and their per-platform template directories."""

from dataclasses import dataclass
from pathlib import Path

from .config import Platform
from .errors import ConfigurationError


@dataclass(frozen=True)
class LifecycleStep:
    """A named unit of infrastructure applied and destroyed as a whole."""

    name: str
    extra_args: tuple[str, ...] = ()


class StepRegistry:
    """Maps steps to template directories laid out as <templates_dir>/steps/<step>/<platform>."""

    def __init__(self, templates_dir: Path) -> None:
        self.templates_dir = templates_dir

    def template_dir(self, step: LifecycleStep, platform: Platform) -> Path:
        """Resolve the template directory of step for platform.

        Raises:
            ConfigurationError: If no template variant exists for the platform
        """
        path = self.templates_dir / "steps" / step.name / platform.value
        if not path.is_dir():
            raise ConfigurationError(
                f"no templates for step {step.name!r} on platform {platform.value!r} ({path})"
            )
        return path


ASSETS = LifecycleStep("assets")
INFRA = LifecycleStep("infra")
BOOTSTRAP = LifecycleStep("bootstrap")
WORKERS = LifecycleStep("workers")

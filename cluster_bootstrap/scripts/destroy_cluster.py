#!/usr/bin/env python3
"""Destroy a cluster: drain workers and tear down every applied provisioning step."""

import argparse
import sys
from pathlib import Path

from cluster_bootstrap.lib.errors import DrainTimeoutError
from cluster_bootstrap.lib.logging_config import LOGGER
from cluster_bootstrap.lib.workflow import destroy_workflow


def main() -> int:
    """Run the destroy workflow.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Destroy a cluster")
    parser.add_argument(
        "--cluster-dir",
        type=Path,
        required=True,
        help="Cluster working directory of an existing cluster",
    )
    parser.add_argument(
        "--templates-dir",
        type=Path,
        default=Path("templates"),
        help="Directory holding steps/<step>/<platform> templates (default: templates)",
    )
    args = parser.parse_args()

    try:
        destroy_workflow(args.cluster_dir, args.templates_dir).run()
        LOGGER.info("Cluster in %s destroyed", args.cluster_dir)
        return 0

    except DrainTimeoutError as e:
        LOGGER.error("Workers did not drain in time, re-run destroy to retry: %s", e)
        return 1
    except Exception as e:
        LOGGER.error("Cluster destroy failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())

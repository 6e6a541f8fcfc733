#!/usr/bin/env python3
"""Create a cluster: generate TLS assets and apply every provisioning step."""

import argparse
import sys
from pathlib import Path

from cluster_bootstrap.lib.logging_config import LOGGER
from cluster_bootstrap.lib.workflow import create_workflow


def main() -> int:
    """Run the create workflow.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Create a cluster")
    parser.add_argument(
        "--cluster-dir",
        type=Path,
        required=True,
        help="Cluster working directory containing cluster.json",
    )
    parser.add_argument(
        "--templates-dir",
        type=Path,
        default=Path("templates"),
        help="Directory holding steps/<step>/<platform> templates (default: templates)",
    )
    args = parser.parse_args()

    try:
        create_workflow(args.cluster_dir, args.templates_dir).run()
        LOGGER.info("Cluster created from %s", args.cluster_dir)
        return 0

    except Exception as e:
        LOGGER.error("Cluster creation failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())

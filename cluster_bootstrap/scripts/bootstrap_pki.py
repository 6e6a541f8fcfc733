#!/usr/bin/env python3
"""Generate the cluster TLS hierarchy into <cluster-dir>/generated/tls."""

import argparse
import sys
from pathlib import Path

from cluster_bootstrap.lib.config import CLUSTER_CONFIG_FILE, ExternalCA, load_cluster_config
from cluster_bootstrap.lib.logging_config import LOGGER
from cluster_bootstrap.lib.pki_bootstrap import PKIBootstrap


def main() -> int:
    """Bootstrap cluster PKI.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Generate cluster certificates and keys")
    parser.add_argument(
        "--cluster-dir",
        type=Path,
        required=True,
        help=f"Cluster working directory containing {CLUSTER_CONFIG_FILE}",
    )
    parser.add_argument("--root-ca-cert", type=Path, help="Existing root CA certificate (PEM)")
    parser.add_argument("--root-ca-key", type=Path, help="Existing root CA RSA private key (PEM)")
    args = parser.parse_args()

    if bool(args.root_ca_cert) != bool(args.root_ca_key):
        parser.error("--root-ca-cert and --root-ca-key must be given together")

    try:
        config = load_cluster_config(args.cluster_dir / CLUSTER_CONFIG_FILE)
        external = config.root_ca
        if args.root_ca_cert:
            external = ExternalCA(cert_path=args.root_ca_cert, key_path=args.root_ca_key)

        LOGGER.info("Bootstrapping PKI for cluster %s...", config.name)
        result = PKIBootstrap(config).bootstrap(args.cluster_dir, external)

        LOGGER.info("Root CA %s:", "generated" if result.root_generated else "imported")
        LOGGER.info("  Serial: %s", result.root_serial)
        LOGGER.info("  Artifacts: %s (%d roles)", result.tls_dir, len(result.minted_roles))
        return 0

    except Exception as e:
        LOGGER.error("PKI bootstrap failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())

#!/usr/bin/env python3
"""
appstudio-install - AppStudio e2e installation CLI

Installs AppStudio in preview mode, or runs a single installation step.
"""
import argparse
import logging
import sys
from typing import Optional

from appstudio_installer.config import InstallationConfig
from appstudio_installer.controller import InstallationController
from appstudio_installer.errors import BootstrapScriptError, InstallationError
from appstudio_installer.kube import ClusterClient


CLUSTER_COMMANDS = ('preview', 'quay-secret', 'oauth-redirect')


def load_config(config_path: Optional[str]) -> InstallationConfig:
    if config_path:
        return InstallationConfig.from_yaml(config_path)
    return InstallationConfig.from_env()


def build_controller(args) -> InstallationController:
    """Build a controller; only cluster commands connect to the cluster."""
    config = load_config(args.config)
    cluster = None
    if args.command in CLUSTER_COMMANDS:
        cluster = ClusterClient(in_cluster=args.in_cluster, context=args.context)
    return InstallationController(config, cluster)


def run_command(args) -> int:
    controller = build_controller(args)

    if args.command == 'preview':
        controller.install_preview()
        print("AppStudio preview installation complete")
    elif args.command == 'clone':
        clone_dir = controller.sync_repository()
        print(f"Cloned infra-deployments to {clone_dir}")
    elif args.command == 'env':
        for name, value in controller.environment.masked().items():
            print(f"{name}={value}")
    elif args.command == 'quay-secret':
        outcome = controller.provision_quay_secret()
        print(f"Quay secret {outcome}")
    elif args.command == 'oauth-redirect':
        result = controller.fix_oauth_redirect()
        if result.skipped:
            print("OAUTH_REDIRECT_PROXY_URL not set, nothing to do")
        elif result.error:
            print(f"OAuth redirect fixup incomplete: {result.error}")
        else:
            print("OAuth redirect URL applied, deployment scaled to 0")
    return 0


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='AppStudio e2e installation CLI',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--config',
        help='YAML file with config overrides (applied on top of environment variables)'
    )

    parser.add_argument(
        '--in-cluster',
        action='store_true',
        help='Use in-cluster service account config instead of kubeconfig'
    )

    parser.add_argument(
        '--context',
        help='kubeconfig context to use (default: current context)'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    subparsers.add_parser('preview', help='Clone, bootstrap and apply post-install fixups')
    subparsers.add_parser('clone', help='Clone infra-deployments and add the fork remote')
    subparsers.add_parser('env', help='Print the bootstrap environment (secrets masked)')
    subparsers.add_parser('quay-secret', help='Create or update the quay pull secret')
    subparsers.add_parser('oauth-redirect', help='Patch the SPI OAuth redirect URL and take the service down')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    try:
        return run_command(args)
    except BootstrapScriptError as e:
        print(f"Error: {e}", file=sys.stderr)
        return e.returncode or 1
    except (InstallationError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())

"""
Runs the infra-deployments bootstrap script.

The script is a black box: argv, cwd, environment in; exit code out.
Its stdout/stderr go straight to ours.
"""
import logging
import subprocess
from pathlib import Path
from typing import Mapping, Optional, Sequence

from appstudio_installer.config import BOOTSTRAP_SCRIPT, PREVIEW_INSTALL_ARGS
from appstudio_installer.errors import BootstrapScriptError


logger = logging.getLogger(__name__)


class BootstrapScript:
    """Synchronous wrapper around hack/bootstrap-cluster.sh."""

    def __init__(self, script: str = BOOTSTRAP_SCRIPT, args: Sequence[str] = PREVIEW_INSTALL_ARGS):
        self.script = script
        self.args = list(args)

    @property
    def command(self):
        return [self.script] + self.args

    def run(self, cwd: Path, env: Optional[Mapping[str, str]] = None) -> None:
        """
        Run the script in cwd and block until it exits.

        Args:
            cwd: Working directory (the infra-deployments clone)
            env: Complete child environment (default: inherit ours)

        Raises:
            BootstrapScriptError: If the script cannot start or exits non-zero
        """
        command_str = ' '.join(self.command)
        logger.info(f"running '{command_str}' in {cwd}")

        try:
            result = subprocess.run(
                self.command,
                cwd=cwd,
                env=dict(env) if env is not None else None
            )
        except OSError as e:
            raise BootstrapScriptError(f"Failed to start '{command_str}' in {cwd}: {e}") from e

        if result.returncode != 0:
            raise BootstrapScriptError(
                f"'{command_str}' exited with code {result.returncode}",
                returncode=result.returncode
            )

        logger.info(f"'{command_str}' finished successfully")

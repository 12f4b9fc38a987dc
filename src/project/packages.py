"""Package manager detection and dependency installation."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import List, Mapping, Optional, Sequence

from constants import Constants, PackageManagers

logger = logging.getLogger(__name__)

# Checked in order; the first lockfile present decides the manager.
LOCKFILES = [
    ("pnpm-lock.yaml", PackageManagers.PNPM),
    ("yarn.lock", PackageManagers.YARN),
    ("bun.lockb", PackageManagers.BUN),
    ("bun.lock", PackageManagers.BUN),
    ("package-lock.json", PackageManagers.NPM),
]


def get_pkg_manager(base_dir: str, env: Optional[Mapping[str, str]] = None) -> PackageManagers:
    """Detect the package manager driving this project.

    The invoking manager's user agent wins, then lockfiles, then npm.
    """
    env = os.environ if env is None else env
    user_agent = env.get(Constants.ENV_USER_AGENT, "")
    for manager in (PackageManagers.PNPM, PackageManagers.YARN, PackageManagers.BUN):
        if user_agent.startswith(manager.value):
            return manager

    for filename, manager in LOCKFILES:
        if os.path.isfile(os.path.join(base_dir, filename)):
            return manager
    return PackageManagers.NPM


def build_install_command(
    packages: Sequence[str], manager: PackageManagers, silent: bool = False
) -> List[str]:
    """Build the install command pinning exact versions."""
    if manager == PackageManagers.NPM:
        cmd = ["npm", "install", "--save-exact"]
    elif manager == PackageManagers.PNPM:
        cmd = ["pnpm", "add", "--save-exact"]
    elif manager == PackageManagers.YARN:
        cmd = ["yarn", "add", "--exact"]
    else:
        cmd = ["bun", "add", "--exact"]
    if silent:
        cmd.append("--silent")
    return cmd + list(packages)


def install_packages(
    packages: Sequence[str],
    manager: PackageManagers,
    *,
    silent: bool = False,
    cwd: Optional[str] = None,
) -> bool:
    """Install packages ("name@version") and report success.

    Never raises for a failed or missing package manager; the failure is
    logged and False returned.
    """
    cmd = build_install_command(packages, manager, silent=silent)
    logger.info("Running: %s", " ".join(cmd))
    try:
        result = subprocess.run(  # noqa: S603
            cmd,
            cwd=cwd,
            stdout=subprocess.DEVNULL if silent else None,
            stderr=subprocess.PIPE if silent else None,
            text=True,
            check=False,
        )
    except OSError as exc:
        logger.error("Failed to run %s: %s", manager.value, exc)
        return False
    if result.returncode != 0:
        if silent and result.stderr:
            logger.error("%s", result.stderr.strip())
        logger.error("%s exited with status %s", manager.value, result.returncode)
        return False
    return True

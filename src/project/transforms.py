"""Invoke an external codemod transform against the project."""

from __future__ import annotations

import logging
import subprocess
from typing import List, Optional, Sequence

from constants import Constants

logger = logging.getLogger(__name__)


def build_transform_command(
    codemod_id: str,
    target_dir: str,
    *,
    force: bool = False,
    verbose: bool = False,
    base_command: Optional[Sequence[str]] = None,
) -> List[str]:
    """Build the transform invocation for one codemod."""
    cmd = list(base_command or Constants.TRANSFORM_COMMAND)
    cmd += [codemod_id, target_dir]
    if force:
        cmd.append("--force")
    if verbose:
        cmd.append("--verbose")
    return cmd


def run_transform(
    codemod_id: str,
    target_dir: str,
    *,
    force: bool = False,
    verbose: bool = False,
    base_command: Optional[Sequence[str]] = None,
) -> bool:
    """Run one codemod over target_dir; True on a zero exit status.

    The transform reports its own progress on the inherited stdout/stderr.
    """
    cmd = build_transform_command(
        codemod_id, target_dir, force=force, verbose=verbose, base_command=base_command
    )
    logger.debug("Running transform: %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, cwd=target_dir, check=False)  # noqa: S603
    except OSError as exc:
        logger.error("Failed to run codemod %s: %s", codemod_id, exc)
        return False
    if result.returncode != 0:
        logger.error("Codemod %s exited with status %s", codemod_id, result.returncode)
        return False
    return True

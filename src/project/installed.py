"""Installed framework version introspection."""

from __future__ import annotations

import json
import logging
import os

import semantic_version

from constants import Constants

logger = logging.getLogger(__name__)


class CannotDetectInstalledError(Exception):
    """The installed package version could not be determined."""


def find_installed_package_json(base_dir: str, package: str = Constants.FRAMEWORK_PACKAGE) -> str:
    """Locate node_modules/<package>/package.json from base_dir upwards.

    Follows Node's lookup so a package hoisted to a monorepo root is found.

    Raises:
        CannotDetectInstalledError: If no installed copy exists.
    """
    current = os.path.abspath(base_dir)
    while True:
        candidate = os.path.join(current, Constants.NODE_MODULES_DIR, package, Constants.PACKAGE_JSON_FILE)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    raise CannotDetectInstalledError(
        f'Failed to get the installed {package} version at "{base_dir}".\n'
        "If you're using a monorepo, please run this command from the Next.js app directory."
    )


def get_installed_version(base_dir: str, package: str = Constants.FRAMEWORK_PACKAGE) -> str:
    """Return the semantic version of the installed package.

    Raises:
        CannotDetectInstalledError: If the package is missing or its metadata is unusable.
    """
    path = find_installed_package_json(base_dir, package)
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, json.JSONDecodeError) as e:
        raise CannotDetectInstalledError(f"Cannot read {path}: {e}") from e

    version = data.get("version") if isinstance(data, dict) else None
    if not isinstance(version, str) or not semantic_version.validate(version):
        raise CannotDetectInstalledError(f"{path} has no valid version field")
    logger.debug("Installed %s version %s (%s)", package, version, path)
    return version

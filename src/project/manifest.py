"""Read and write the project's package.json.

The manifest is loaded once, edited in memory, and written back once per run.
Key order and unrelated content are preserved.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Mapping, Optional

from constants import Constants

logger = logging.getLogger(__name__)

DEPENDENCY_SECTIONS = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
)


class ManifestError(Exception):
    """The manifest could not be read, parsed or written."""


class PackageManifest:
    """In-memory package.json bound to its path on disk."""

    def __init__(self, path: str, data: Dict[str, Any], trailing_newline: bool = True):
        self.path = path
        self.data = data
        self.trailing_newline = trailing_newline

    @classmethod
    def load(cls, directory: str) -> "PackageManifest":
        """Load package.json from directory.

        Raises:
            ManifestError: If the file is missing, unreadable or not a JSON object.
        """
        path = os.path.join(directory, Constants.PACKAGE_JSON_FILE)
        try:
            with open(path, "r", encoding="utf-8") as fh:
                text = fh.read()
        except OSError as e:
            raise ManifestError(f"Cannot read {path}: {e}") from e
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ManifestError(f"Cannot parse {path}: {e}") from e
        if not isinstance(data, dict):
            raise ManifestError(f"{path} does not contain a JSON object")
        return cls(path, data, trailing_newline=text.endswith("\n"))

    def save(self) -> None:
        """Write the manifest back with two-space indentation."""
        text = json.dumps(self.data, indent=2, ensure_ascii=False)
        if self.trailing_newline:
            text += "\n"
        try:
            with open(self.path, "w", encoding="utf-8") as fh:
                fh.write(text)
        except OSError as e:
            raise ManifestError(f"Cannot write {self.path}: {e}") from e
        logger.debug("Wrote %s", self.path)

    @property
    def scripts(self) -> Dict[str, Any]:
        scripts = self.data.get("scripts")
        return scripts if isinstance(scripts, dict) else {}

    def get_script(self, name: str) -> Optional[str]:
        value = self.scripts.get(name)
        return value if isinstance(value, str) else None

    def set_script(self, name: str, command: str) -> None:
        if not isinstance(self.data.get("scripts"), dict):
            self.data["scripts"] = {}
        self.data["scripts"][name] = command

    def pin_dependencies(self, pins: Mapping[str, str], dev_packages=()) -> None:
        """Set declared versions for every package in pins.

        Existing entries are rewritten in place in each section that declares
        them. Undeclared packages are appended to "dependencies", or to
        "devDependencies" when listed in dev_packages.
        """
        for name, version in pins.items():
            declared = False
            for section in DEPENDENCY_SECTIONS:
                deps = self.data.get(section)
                if isinstance(deps, dict) and name in deps:
                    deps[name] = version
                    declared = True
            if not declared:
                section = "devDependencies" if name in dev_packages else "dependencies"
                if not isinstance(self.data.get(section), dict):
                    self.data[section] = {}
                self.data[section][name] = version

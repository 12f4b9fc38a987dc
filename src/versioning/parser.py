"""Token parsing utilities for package version queries."""

import re
from typing import Optional, Tuple

import semantic_version

from .models import PackageQuery, ResolutionMode, VersionSpec

_TAG_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9._\-]*$")
_X_RANGES = ("x", "X", "*")


def tokenize_rightmost_at(s: str) -> Tuple[str, Optional[str]]:
    """Return (name, spec or None) split on the rightmost '@'.

    A leading '@' belongs to a scoped package name, so "@types/react" has
    no spec while "@types/react@^19" has spec "^19".
    """
    s = s.strip()
    idx = s.rfind('@')
    if idx <= 0:
        return s, None
    name = s[:idx].strip()
    spec_part = s[idx + 1:].strip()
    return name, (spec_part if spec_part else None)


def determine_resolution_mode(spec: str) -> ResolutionMode:
    """Classify spec as an exact version, a dist-tag, or a range."""
    spec = spec.strip()
    candidate = spec[1:] if spec[:1] in ("=", "v") else spec
    if semantic_version.validate(candidate):
        return ResolutionMode.EXACT
    if spec not in _X_RANGES and _TAG_PATTERN.match(spec):
        return ResolutionMode.TAG
    return ResolutionMode.RANGE


def parse_package_query(token: str) -> PackageQuery:
    """Parse "name@spec" into a PackageQuery.

    A bare name is treated as the "latest" dist-tag.

    Raises:
        ValueError: If the token has no package name.
    """
    name, spec = tokenize_rightmost_at(token)
    if not name or name == "@":
        raise ValueError(f"Invalid package query: {token!r}")
    if spec is None:
        spec = "latest"
    return PackageQuery(
        name=name,
        spec=VersionSpec(raw=spec, mode=determine_resolution_mode(spec)),
        raw_token=token.strip(),
    )

"""Data models for version queries and resolved upgrade targets."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class ResolutionMode(Enum):
    """Resolution strategy derived from the spec."""
    EXACT = "exact"
    RANGE = "range"
    TAG = "tag"


@dataclass(frozen=True)
class VersionSpec:
    """Normalized representation of a version spec."""
    raw: str
    mode: ResolutionMode


@dataclass(frozen=True)
class PackageQuery:
    """A package name paired with the version spec it must satisfy."""
    name: str
    spec: Optional[VersionSpec]
    raw_token: str

    def __str__(self) -> str:
        return self.raw_token


@dataclass(frozen=True)
class TargetManifest:
    """Release metadata of the resolved upgrade target.

    Built once per run from the registry response; the peer dependency
    mapping is read-only.
    """
    version: str
    peer_dependencies: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(
            self, "peer_dependencies", MappingProxyType(dict(self.peer_dependencies))
        )

    def peer_query(self, name: str) -> Optional[str]:
        """Return the declared version query for a peer, if any."""
        return self.peer_dependencies.get(name)

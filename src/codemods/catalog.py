"""Version-ordered registry of the codemods shipped for each release."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple, Union

import semantic_version

VersionLike = Union[str, semantic_version.Version]


class CatalogOrderError(ValueError):
    """Raised when catalog entries are out of version order or duplicated."""


def as_version(value: VersionLike) -> semantic_version.Version:
    """Coerce a version string into a comparable Version."""
    if isinstance(value, semantic_version.Version):
        return value
    return semantic_version.Version(value)


@dataclass(frozen=True)
class CodemodDescriptor:
    """A codemod and the release that introduced it."""
    id: str
    title: str
    introduced_in: str

    @property
    def version(self) -> semantic_version.Version:
        return as_version(self.introduced_in)


class CodemodCatalog:
    """Immutable sequence of codemods in ascending release order.

    Insertion order is application order, so it is validated up front:
    ids must be unique and versions must never decrease.
    """

    def __init__(self, descriptors: Iterable[CodemodDescriptor]):
        entries = tuple(descriptors)
        seen = set()
        previous: Optional[semantic_version.Version] = None
        for entry in entries:
            if entry.id in seen:
                raise CatalogOrderError(f"Duplicate codemod id: {entry.id}")
            seen.add(entry.id)
            try:
                current = entry.version
            except ValueError as e:
                raise CatalogOrderError(
                    f"Codemod {entry.id} has invalid version {entry.introduced_in!r}"
                ) from e
            if previous is not None and current < previous:
                raise CatalogOrderError(
                    f"Codemod {entry.id} ({current}) is listed after a codemod for {previous}"
                )
            previous = current
        self._entries: Tuple[CodemodDescriptor, ...] = entries

    def __iter__(self) -> Iterator[CodemodDescriptor]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def ids(self) -> Tuple[str, ...]:
        return tuple(entry.id for entry in self._entries)

    def get(self, codemod_id: str) -> Optional[CodemodDescriptor]:
        for entry in self._entries:
            if entry.id == codemod_id:
                return entry
        return None

    def applicable_between(
        self, installed: VersionLike, target: VersionLike
    ) -> Tuple[CodemodDescriptor, ...]:
        """Return the codemods introduced in the window (installed, target].

        The lower bound is exclusive because the installed release's own
        codemods have already been applied; the upper bound is inclusive.
        """
        low, high = as_version(installed), as_version(target)
        if low >= high:
            return ()
        return tuple(entry for entry in self._entries if low < entry.version <= high)


DEFAULT_CATALOG = CodemodCatalog([
    CodemodDescriptor(
        id="url-to-withrouter",
        title="Transforms the deprecated automatically injected url property on top level pages to using withRouter",
        introduced_in="6.0.0",
    ),
    CodemodDescriptor(
        id="withamp-to-config",
        title="Transforms the withAmp HOC into Next.js 9 page configuration",
        introduced_in="8.0.0",
    ),
    CodemodDescriptor(
        id="name-default-component",
        title="Transforms anonymous components into named components to make sure they work with Fast Refresh",
        introduced_in="9.0.0",
    ),
    CodemodDescriptor(
        id="add-missing-react-import",
        title="Transforms files that do not import React to include the import in order for the new React JSX transform",
        introduced_in="10.0.0",
    ),
    CodemodDescriptor(
        id="cra-to-next",
        title="Automatically migrates a Create React App project to Next.js (experimental)",
        introduced_in="11.0.0",
    ),
    CodemodDescriptor(
        id="new-link",
        title="Ensures your <Link> usage is backwards compatible",
        introduced_in="13.0.0",
    ),
    CodemodDescriptor(
        id="next-image-to-legacy-image",
        title="Safely migrate Next.js 10, 11, 12 applications importing `next/image` to the renamed `next/legacy/image` import in Next.js 13",
        introduced_in="13.0.0",
    ),
    CodemodDescriptor(
        id="next-image-experimental",
        title="Dangerously migrates from `next/legacy/image` to the new `next/image` by adding inline styles and removing unused props (experimental)",
        introduced_in="13.0.0",
    ),
    CodemodDescriptor(
        id="built-in-next-font",
        title="Uninstall `@next/font` and transform imports to `next/font`",
        introduced_in="13.2.0",
    ),
    CodemodDescriptor(
        id="metadata-to-viewport-export",
        title="Migrates certain viewport related metadata from the `metadata` export to a new `viewport` export",
        introduced_in="14.0.0",
    ),
    CodemodDescriptor(
        id="next-og-import",
        title="Transforms imports from `next/server` to `next/og` for usage of Dynamic OG Image Generation",
        introduced_in="14.0.0",
    ),
    CodemodDescriptor(
        id="next-dynamic-access-named-export",
        title="Transforms dynamic imports that return the named export itself to a module like object",
        introduced_in="15.0.0-canary.44",
    ),
    CodemodDescriptor(
        id="next-request-geo-ip",
        title="Install `@vercel/functions` to replace `geo` and `ip` properties on `NextRequest`",
        introduced_in="15.0.0-canary.153",
    ),
    CodemodDescriptor(
        id="next-async-request-api",
        title="Transforms usage of Next.js async Request APIs",
        introduced_in="15.0.0-canary.171",
    ),
])

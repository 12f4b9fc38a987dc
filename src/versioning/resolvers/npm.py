"""NPM version resolver using semantic versioning."""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import semantic_version

from common.http_client import get_json
from common.logging_utils import extra_context, is_debug_enabled
from constants import Constants
from ..errors import InvalidRevisionError, NoMatchingVersionError
from ..models import PackageQuery, ResolutionMode, TargetManifest
from ..parser import parse_package_query

logger = logging.getLogger(__name__)

_ABBREVIATED_METADATA = {
    "Accept": "application/vnd.npm.install-v1+json; q=1.0, application/json; q=0.8, */*"
}


class NpmVersionResolver:
    """Resolver for npm packages using semantic versioning.

    Args:
        registry_url: Registry base URL; defaults to Constants.REGISTRY_URL_NPM
            at call time so configuration overrides apply.
        package: Framework package whose revisions are resolved.
    """

    def __init__(self, registry_url: Optional[str] = None, package: str = Constants.FRAMEWORK_PACKAGE):
        self._registry_url = registry_url
        self.package = package

    @property
    def registry_url(self) -> str:
        """Registry base URL with a trailing slash."""
        url = self._registry_url or Constants.REGISTRY_URL_NPM
        return url if url.endswith("/") else url + "/"

    def _package_url(self, name: str) -> str:
        return self.registry_url + quote(name, safe="@")

    def resolve_revision(self, revision: Optional[str] = None) -> TargetManifest:
        """Resolve a dist-tag, exact version or range to the release metadata.

        Args:
            revision: Revision token; "latest" when omitted.

        Returns:
            TargetManifest with the concrete version and declared peers.

        Raises:
            InvalidRevisionError: On a non-200 response, malformed JSON, or
                metadata lacking "version" or "peerDependencies".
        """
        token = (revision or Constants.DEFAULT_REVISION).strip()
        url = f"{self._package_url(self.package)}/{quote(token, safe='')}"
        status_code, _, data = get_json(url)

        if status_code != 200:
            raise InvalidRevisionError(token, f"registry returned status {status_code}")
        if not isinstance(data, dict):
            raise InvalidRevisionError(token, "malformed registry response")
        version = data.get("version")
        peers = data.get("peerDependencies")
        if not isinstance(version, str) or not isinstance(peers, dict):
            raise InvalidRevisionError(token, "release metadata lacks version or peerDependencies")
        if not semantic_version.validate(version):
            raise InvalidRevisionError(token, f"registry version {version!r} is not a semantic version")

        logger.debug(
            "Resolved revision",
            extra=extra_context(
                event="resolve_revision",
                component="npm_resolver",
                revision=token,
                resolved_version=version
            )
        )
        return TargetManifest(
            version=version,
            peer_dependencies={str(k): str(v) for k, v in peers.items()},
        )

    def fetch_document(self, name: str) -> Optional[Dict[str, Any]]:
        """Fetch the abbreviated package document, or None when unavailable."""
        status_code, _, data = get_json(self._package_url(name), headers=_ABBREVIATED_METADATA)
        if status_code != 200 or not isinstance(data, dict):
            if is_debug_enabled(logger):
                logger.debug(
                    "Package document unavailable",
                    extra=extra_context(
                        event="fetch_document",
                        component="npm_resolver",
                        outcome="unavailable",
                        status_code=status_code,
                        package=name
                    )
                )
            return None
        return data

    def resolve_highest_matching(self, query: str) -> str:
        """Pin a "name@spec" query to the highest matching published version.

        Example: "react@^18.3.0 || ^19.0.0" with {18.3.0, 18.3.2, 19.0.0}
        published resolves to "19.0.0".

        Raises:
            NoMatchingVersionError: If nothing published matches.
        """
        try:
            req = parse_package_query(query)
        except ValueError as e:
            raise NoMatchingVersionError(query, str(e)) from e

        data = self.fetch_document(req.name)
        if data is None:
            raise NoMatchingVersionError(query, "package not found in registry")

        version, count, error = self.pick(req, data)
        if version is None:
            raise NoMatchingVersionError(query, error or "")
        logger.debug("Resolved %s to %s out of %d candidates", query, version, count)
        return version

    def pick(
        self, req: PackageQuery, data: Dict[str, Any]
    ) -> Tuple[Optional[str], int, Optional[str]]:
        """Apply npm semver rules to select a version from a package document.

        Returns:
            Tuple of (resolved_version, candidate_count, error_message)
        """
        candidates = list((data.get("versions") or {}).keys())
        spec = req.spec
        if spec.mode == ResolutionMode.TAG:
            return self._pick_tag(spec.raw, data.get("dist-tags") or {}, candidates)
        if spec.mode == ResolutionMode.EXACT:
            return self._pick_exact(spec.raw, candidates)
        return self._pick_range(spec.raw, candidates)

    def _pick_tag(
        self, tag: str, dist_tags: Dict[str, str], candidates: List[str]
    ) -> Tuple[Optional[str], int, Optional[str]]:
        """Follow a dist-tag to the version it points at."""
        version = dist_tags.get(tag)
        if version is None:
            return None, len(candidates), f"Dist-tag {tag} not found"
        return version, len(candidates), None

    def _pick_exact(self, version: str, candidates: List[str]) -> Tuple[Optional[str], int, Optional[str]]:
        """Check if exact version exists in candidates."""
        version = version.lstrip("=v")
        if version in candidates:
            return version, len(candidates), None
        return None, len(candidates), f"Version {version} not found"

    def _normalize_spec(self, spec_str: str) -> str:
        """Normalize npm range syntax (hyphen, x-ranges) into SimpleSpec-compatible form."""
        s = spec_str.strip()

        # Hyphen ranges: "1.2.3 - 1.4.5" => ">=1.2.3, <=1.4.5"
        m = re.match(r'^\s*([0-9A-Za-z\.\-\+]+)\s*-\s*([0-9A-Za-z\.\-\+]+)\s*$', s)
        if m:
            left, right = m.group(1), m.group(2)
            return f">={left},<={right}"

        s2 = s.replace('*', 'x').lower()
        m = re.match(r'^\s*(\d+)\.(\d+)\.x\s*$', s2)
        if m:
            major, minor = int(m.group(1)), int(m.group(2))
            return f">={major}.{minor}.0,<{major}.{minor + 1}.0"

        m = re.match(r'^\s*(\d+)(\.x)?\s*$', s2)
        if m:
            major = int(m.group(1))
            return f">={major}.0.0,<{major + 1}.0.0"

        return spec_str

    def _parse_range(self, spec_str: str):
        """Parse one range alternative with NpmSpec, falling back to SimpleSpec."""
        try:
            return semantic_version.NpmSpec(spec_str or "*")
        except ValueError:
            return semantic_version.SimpleSpec(self._normalize_spec(spec_str))

    def _pick_range(
        self, spec_str: str, candidates: List[str]
    ) -> Tuple[Optional[str], int, Optional[str]]:
        """Apply semver range and pick highest matching version.

        Alternatives joined by "||" are matched one by one. A bare version
        alternative such as "19.0.0-rc-66855b96-20241106" only matches that
        exact release; NpmSpec would also admit its final release.
        NpmSpec only admits prereleases when a comparator names a
        prerelease of the same major.minor.patch, as npm does.
        """
        exact = set()
        ranges = []
        try:
            for alternative in spec_str.split("||"):
                alternative = alternative.strip()
                bare = alternative.lstrip("=v").strip()
                if semantic_version.validate(bare):
                    exact.add(semantic_version.Version(bare))
                else:
                    ranges.append(self._parse_range(alternative))
        except ValueError as e:
            return None, len(candidates), f"Invalid semver spec: {str(e)}"

        matching_versions = []
        for v in candidates:
            try:
                ver = semantic_version.Version(v)
            except ValueError:
                continue  # Skip invalid versions
            if ver in exact or any(r.match(ver) for r in ranges):
                matching_versions.append(ver)

        if not matching_versions:
            return None, len(candidates), f"No versions match spec '{spec_str}'"

        return str(max(matching_versions)), len(candidates), None

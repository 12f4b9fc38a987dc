"""Orchestrate a framework upgrade.

Stages run in a fixed order, each producing a Result:

    LoadManifest -> ResolveTarget -> CompareVersions -> ResolvePeerVersions
    -> Plan -> PersistManifest -> Install -> ApplyCodemods

Resolution failures abort before anything is written. Writing the manifest
is the commit point: install and codemod failures after it are recorded in
the report but never roll it back, and never stop the remaining codemods.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from rich.console import Console
from rich.markup import escape

from codemods.catalog import DEFAULT_CATALOG, CodemodCatalog, CodemodDescriptor, as_version
from constants import Constants
from project.installed import CannotDetectInstalledError, get_installed_version
from project.manifest import ManifestError, PackageManifest
from project.packages import get_pkg_manager, install_packages
from project.transforms import run_transform
from versioning.errors import InvalidRevisionError, NoMatchingVersionError, ResolutionError
from versioning.models import TargetManifest
from versioning.resolvers.npm import NpmVersionResolver
from .planner import AlreadyCurrent, CodemodSequence, UpgradePlanner
from .prompts import Prompter
from .result import Failure, FailureKind, Result

logger = logging.getLogger(__name__)

InstallFn = Callable[..., bool]
TransformFn = Callable[..., bool]


def _cause_of(error: ResolutionError) -> Optional[FailureKind]:
    if isinstance(error, NoMatchingVersionError):
        return FailureKind.NO_MATCHING_VERSION
    return None


class RunState(Enum):
    """Terminal state of an upgrade run."""
    ABORTED = "aborted"
    NOOP_ALREADY_CURRENT = "noop_already_current"
    COMPLETED = "completed"


@dataclass
class CodemodOutcome:
    codemod_id: str
    ok: bool


@dataclass
class UpgradeReport:
    """Everything a caller needs to render the outcome of a run."""
    revision: str
    state: RunState = RunState.COMPLETED
    failure: Optional[Failure] = None
    installed_version: Optional[str] = None
    target_version: Optional[str] = None
    dependencies: List[str] = field(default_factory=list)
    manifest_written: bool = False
    install_ok: Optional[bool] = None
    codemod_outcomes: List[CodemodOutcome] = field(default_factory=list)

    def abort(self, failure: Failure) -> "UpgradeReport":
        self.state = RunState.ABORTED
        self.failure = failure
        return self

    @property
    def warnings(self) -> List[Failure]:
        """Non-fatal failures recorded after the manifest was written."""
        found = []
        if self.install_ok is False:
            found.append(Failure(FailureKind.INSTALL_FAILED, "Dependency installation failed"))
        for outcome in self.codemod_outcomes:
            if not outcome.ok:
                found.append(Failure(
                    FailureKind.CODEMOD_FAILED,
                    f"Codemod {outcome.codemod_id} failed",
                    subject=outcome.codemod_id,
                ))
        return found


class UpgradeExecutor:
    """Drive one upgrade of the project in project_dir.

    All collaborators are injectable so runs can be exercised without a
    registry, package manager or terminal.

    Args:
        project_dir: Directory holding package.json.
        resolver: Registry resolver.
        prompter: Confirmation oracle, or None for non-interactive runs.
        catalog: Codemod catalog used when no planner is given.
        planner: Upgrade planner.
        install: Callable(packages, *, silent) -> bool.
        transform: Callable(codemod_id, target_dir, *, force, verbose) -> bool.
        installed_version: Callable(project_dir) -> version string.
        env: Environment used for package manager detection.
        verbose: Show installer output and pass --verbose to transforms.
        console: Console for user-facing output.
    """

    def __init__(
        self,
        project_dir: str,
        *,
        resolver: Optional[NpmVersionResolver] = None,
        prompter: Optional[Prompter] = None,
        catalog: CodemodCatalog = DEFAULT_CATALOG,
        planner: Optional[UpgradePlanner] = None,
        install: Optional[InstallFn] = None,
        transform: Optional[TransformFn] = None,
        installed_version: Callable[[str], str] = get_installed_version,
        env: Optional[Mapping[str, str]] = None,
        verbose: bool = False,
        console: Optional[Console] = None,
    ):
        self.project_dir = os.path.abspath(project_dir)
        self.resolver = resolver or NpmVersionResolver()
        self.prompter = prompter
        self.planner = planner or UpgradePlanner(catalog, prompter)
        self.install = install or self._install_with_detected_manager
        self.transform = transform or run_transform
        self.installed_version = installed_version
        self.env = os.environ if env is None else env
        self.verbose = verbose
        self.console = console or Console()

    def run(self, revision: Optional[str] = None) -> UpgradeReport:
        """Run every stage and return the report; never raises for expected failures."""
        revision = revision or Constants.DEFAULT_REVISION
        report = UpgradeReport(revision=revision)

        manifest = self._load_manifest()
        if not manifest.ok:
            return report.abort(manifest.failure)

        target = self._resolve_target(revision)
        if not target.ok:
            return report.abort(target.failure)
        report.target_version = target.value.version

        installed = self._detect_installed()
        if not installed.ok:
            return report.abort(installed.failure)
        report.installed_version = installed.value
        self.console.print(f"Current Next.js version: v{installed.value}")

        decision = self.planner.plan(installed.value, target.value.version)
        if isinstance(decision, AlreadyCurrent):
            self.console.print(
                f"[green]✓[/green] Current Next.js version is already on or higher than "
                f'the target version "v{decision.target}".'
            )
            report.state = RunState.NOOP_ALREADY_CURRENT
            return report

        peers = self._resolve_peer_versions(target.value)
        if not peers.ok:
            return report.abort(peers.failure)

        turbopack = self._suggest_turbopack(manifest.value, target.value.version)
        if not turbopack.ok:
            return report.abort(turbopack.failure)

        selection = self.planner.confirm(decision)
        if not selection.ok:
            return report.abort(selection.failure)

        pins = {Constants.FRAMEWORK_PACKAGE: target.value.version}
        pins.update(peers.value)
        report.dependencies = [f"{name}@{version}" for name, version in pins.items()]

        persisted = self._persist_manifest(manifest.value, pins)
        if not persisted.ok:
            return report.abort(persisted.failure)
        report.manifest_written = True

        self.console.print(
            f"Upgrading your project to [blue]Next.js {target.value.version}[/blue]...\n"
        )
        report.install_ok = self._install(report.dependencies)
        report.codemod_outcomes = self._apply_codemods(selection.value)
        self._print_summary(report)
        return report

    # Stages

    def _load_manifest(self) -> Result[PackageManifest]:
        try:
            return Result.success(PackageManifest.load(self.project_dir))
        except ManifestError as e:
            return Result.fail(FailureKind.MANIFEST_ERROR, str(e))

    def _resolve_target(self, revision: str) -> Result[TargetManifest]:
        try:
            return Result.success(self.resolver.resolve_revision(revision))
        except InvalidRevisionError as e:
            return Result.fail(
                FailureKind.INVALID_REVISION,
                f"{e}\nPlease provide a valid Next.js version or dist-tag "
                f'(e.g. "latest", "canary", "rc", or "15.0.0").\n'
                f"Check available versions at {Constants.VERSIONS_URL}.",
                subject=revision,
            )

    def _detect_installed(self) -> Result[str]:
        try:
            return Result.success(self.installed_version(self.project_dir))
        except CannotDetectInstalledError as e:
            return Result.fail(FailureKind.CANNOT_DETECT_INSTALLED, str(e))

    def _resolve_peer_versions(self, target: TargetManifest) -> Result[Dict[str, str]]:
        """Pin the react peer, its companions and the type packages.

        Versions are pinned because the declared peer query may be compound
        (e.g. "^18.2.0 || ^19.0.0") and would otherwise land verbatim in the
        manifest.
        """
        peer = Constants.PEER_PACKAGE
        peer_query = target.peer_query(peer)
        if not peer_query:
            return Result.fail(
                FailureKind.PEER_RESOLUTION_FAILED,
                f"Next.js {target.version} declares no {peer} peer dependency",
                subject=peer,
            )

        try:
            peer_version = self.resolver.resolve_highest_matching(f"{peer}@{peer_query}")
        except ResolutionError as e:
            return Result.fail(
                FailureKind.PEER_RESOLUTION_FAILED, str(e), subject=peer, cause=_cause_of(e)
            )

        versions = {peer: peer_version}
        for companion in Constants.PEER_COMPANIONS:
            versions[companion] = peer_version

        if peer_version.startswith(Constants.PRERELEASE_PEER_PREFIXES):
            # No matching @types releases exist for React 19 prereleases.
            for name in Constants.TYPE_PACKAGES:
                versions[name] = Constants.PRERELEASE_TYPE_ALIASES[name]
            return Result.success(versions)

        queries = {name: f"{name}@{peer_query}" for name in Constants.TYPE_PACKAGES}
        resolved = self._resolve_concurrently(queries)
        if not resolved.ok:
            return resolved
        versions.update(resolved.value)
        return Result.success(versions)

    def _resolve_concurrently(self, queries: Mapping[str, str]) -> Result[Dict[str, str]]:
        """Resolve independent queries in parallel; every failure is collected."""
        workers = max(1, min(len(queries), Constants.PEER_RESOLUTION_MAX_WORKERS))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                name: pool.submit(self.resolver.resolve_highest_matching, query)
                for name, query in queries.items()
            }
            versions: Dict[str, str] = {}
            errors: List[ResolutionError] = []
            for name, future in futures.items():
                try:
                    versions[name] = future.result()
                except ResolutionError as e:
                    errors.append(e)
        if errors:
            return Result.fail(
                FailureKind.PEER_RESOLUTION_FAILED,
                "; ".join(str(e) for e in errors),
                cause=_cause_of(errors[0]),
            )
        return Result.success(versions)

    def _suggest_turbopack(self, manifest: PackageManifest, target_version: str) -> Result[bool]:
        """Offer to add --turbo to the dev script; the value says whether it changed.

        1. A dev script already passing --turbo is left alone.
        2. "next dev" is rewritten to "next dev --turbo".
        3. Otherwise the user is asked to edit the command by hand.
        """
        if as_version(target_version) < as_version(Constants.TURBOPACK_MIN_VERSION):
            return Result.success(False)
        dev_script = manifest.get_script(Constants.DEV_SCRIPT)
        if dev_script is None or Constants.TURBOPACK_FLAG in dev_script:
            return Result.success(False)

        turbo_command = f"{Constants.DEV_COMMAND} {Constants.TURBOPACK_FLAG}"
        if self.prompter is None:
            if Constants.DEV_COMMAND not in dev_script:
                return Result.success(False)
            manifest.set_script(Constants.DEV_SCRIPT, dev_script.replace(Constants.DEV_COMMAND, turbo_command, 1))
            return Result.success(True)

        enable = self.prompter.confirm("Enable Turbopack for next dev?", default=True)
        if enable is None:
            return Result.fail(FailureKind.CANCELLED, "Turbopack prompt cancelled")
        if not enable:
            return Result.success(False)

        if Constants.DEV_COMMAND in dev_script:
            manifest.set_script(Constants.DEV_SCRIPT, dev_script.replace(Constants.DEV_COMMAND, turbo_command, 1))
            return Result.success(True)

        self.console.print(
            f'[yellow]⚠[/yellow] Could not find "[bold]{Constants.DEV_COMMAND}[/bold]" in your dev script.'
        )
        custom = self.prompter.text(
            f'Please manually add "{Constants.TURBOPACK_FLAG}" to your dev command.',
            default=dev_script,
        )
        if custom is None:
            return Result.fail(FailureKind.CANCELLED, "Dev script prompt cancelled")
        new_script = custom or dev_script
        manifest.set_script(Constants.DEV_SCRIPT, new_script)
        return Result.success(new_script != dev_script)

    def _persist_manifest(self, manifest: PackageManifest, pins: Mapping[str, str]) -> Result[str]:
        manifest.pin_dependencies(pins, dev_packages=Constants.TYPE_PACKAGES)
        try:
            manifest.save()
        except ManifestError as e:
            return Result.fail(FailureKind.MANIFEST_ERROR, str(e))
        return Result.success(manifest.path)

    def _install(self, dependencies: Sequence[str]) -> bool:
        try:
            ok = self.install(list(dependencies), silent=not self.verbose)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Installer raised: %s", e)
            ok = False
        if not ok:
            logger.error(
                "Installing %s failed; package.json already declares the new versions, "
                "re-run your package manager's install to finish.",
                " ".join(dependencies),
            )
        return ok

    def _install_with_detected_manager(self, packages: Sequence[str], *, silent: bool = False) -> bool:
        manager = get_pkg_manager(self.project_dir, self.env)
        logger.debug("Using package manager %s", manager.value)
        return install_packages(packages, manager, silent=silent, cwd=self.project_dir)

    def _apply_codemods(self, codemods: CodemodSequence) -> List[CodemodOutcome]:
        """Run codemods strictly in order; a failure never stops the rest."""
        outcomes = []
        for codemod in codemods:
            outcomes.append(CodemodOutcome(codemod.id, self._apply_one(codemod)))
        return outcomes

    def _apply_one(self, codemod: CodemodDescriptor) -> bool:
        logger.info("Applying codemod %s", codemod.id)
        try:
            ok = self.transform(codemod.id, self.project_dir, force=True, verbose=self.verbose)
        except Exception as e:  # pylint: disable=broad-exception-caught
            logger.error("Codemod %s raised: %s", codemod.id, e)
            return False
        if not ok:
            logger.error("Codemod %s failed", codemod.id)
        return ok

    def _print_summary(self, report: UpgradeReport) -> None:
        self.console.print()
        for outcome in report.codemod_outcomes:
            if outcome.ok:
                self.console.print(f"[green]✔[/green] {escape(outcome.codemod_id)}")
            else:
                self.console.print(f"[red]✘[/red] {escape(outcome.codemod_id)} failed")
        if report.codemod_outcomes and all(o.ok for o in report.codemod_outcomes):
            self.console.print("[green]✔[/green] Codemods have been applied successfully.")
        if report.install_ok is False:
            self.console.print(
                "[yellow]⚠[/yellow] Dependency installation failed. "
                "package.json declares the target versions; run your package manager's install to finish."
            )
        self.console.print(
            "Please review the local changes and read the Next.js migration guide "
            f"to complete the migration. {Constants.MIGRATION_GUIDE_URL}"
        )

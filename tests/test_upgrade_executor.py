"""Tests for the upgrade executor pipeline."""

import io
import json
from unittest.mock import patch

import pytest
from rich.console import Console

from codemods.catalog import CodemodCatalog, CodemodDescriptor
from constants import PackageManagers
from project.installed import CannotDetectInstalledError
from upgrade.executor import RunState, UpgradeExecutor
from upgrade.result import FailureKind

from fakes import FakePrompter, FakeResolver, RecordingInstaller, RecordingTransform

PEER_QUERY = "^18.2.0 || ^19.0.0"

MANIFEST = {
    "name": "app",
    "private": True,
    "scripts": {"dev": "next dev", "build": "next build"},
    "dependencies": {"next": "13.5.6", "react": "^18.2.0", "react-dom": "^18.2.0", "zod": "^3.22.0"},
    "devDependencies": {"@types/react": "^18", "typescript": "^5"},
}


@pytest.fixture
def project(tmp_path):
    """Project directory with a package.json."""
    (tmp_path / "package.json").write_text(json.dumps(MANIFEST, indent=2) + "\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def catalog():
    return CodemodCatalog([
        CodemodDescriptor("A", "first", "14.0.0"),
        CodemodDescriptor("B", "second", "15.0.0"),
        CodemodDescriptor("C", "third", "15.2.0"),
    ])


@pytest.fixture
def resolver():
    return FakeResolver(
        revisions={
            "latest": ("15.2.0", {"react": PEER_QUERY, "react-dom": PEER_QUERY}),
            "15.0.0": ("15.0.0", {"react": PEER_QUERY, "react-dom": PEER_QUERY}),
            "14.2.0": ("14.2.0", {"react": "^18.2.0", "react-dom": "^18.2.0"}),
            "no-peers": ("15.0.0", {}),
        },
        matches={
            f"react@{PEER_QUERY}": "19.0.0",
            f"@types/react@{PEER_QUERY}": "19.0.1",
            f"@types/react-dom@{PEER_QUERY}": "19.0.2",
            "react@^18.2.0": "18.3.1",
            "@types/react@^18.2.0": "18.3.12",
            "@types/react-dom@^18.2.0": "18.3.1",
        },
    )


def make_executor(project, resolver, catalog, installed="13.0.0", **kwargs):
    """Helper to build an executor with silent output and fake collaborators."""
    kwargs.setdefault("install", RecordingInstaller())
    kwargs.setdefault("transform", RecordingTransform())

    def installed_version(_):
        if isinstance(installed, Exception):
            raise installed
        return installed

    return UpgradeExecutor(
        str(project),
        resolver=resolver,
        catalog=catalog,
        installed_version=installed_version,
        console=Console(file=io.StringIO()),
        **kwargs,
    )


def read_manifest(project):
    return json.loads((project / "package.json").read_text(encoding="utf-8"))


class TestCompletedRun:
    """A full upgrade resolves, persists, installs and applies codemods."""

    def test_codemods_applied_in_window_order(self, project, resolver, catalog):
        transform = RecordingTransform()
        executor = make_executor(project, resolver, catalog, transform=transform)

        report = executor.run("15.0.0")

        assert report.state == RunState.COMPLETED
        assert report.installed_version == "13.0.0"
        assert report.target_version == "15.0.0"
        assert transform.calls == ["A", "B"]
        assert [o.ok for o in report.codemod_outcomes] == [True, True]
        assert report.warnings == []

    def test_install_pins_exact_versions(self, project, resolver, catalog):
        installer = RecordingInstaller()
        executor = make_executor(project, resolver, catalog, install=installer)

        executor.run("15.0.0")

        assert installer.calls == [([
            "next@15.0.0",
            "react@19.0.0",
            "react-dom@19.0.0",
            "@types/react@19.0.1",
            "@types/react-dom@19.0.2",
        ], True)]

    def test_verbose_shows_installer_output(self, project, resolver, catalog):
        installer = RecordingInstaller()
        executor = make_executor(project, resolver, catalog, install=installer, verbose=True)
        executor.run("15.0.0")
        assert installer.calls[0][1] is False

    def test_manifest_rewritten_in_place(self, project, resolver, catalog):
        make_executor(project, resolver, catalog).run("15.0.0")

        data = read_manifest(project)
        assert list(data) == ["name", "private", "scripts", "dependencies", "devDependencies"]
        assert data["dependencies"] == {
            "next": "15.0.0",
            "react": "19.0.0",
            "react-dom": "19.0.0",
            "zod": "^3.22.0",
        }
        assert data["devDependencies"] == {
            "@types/react": "19.0.1",
            "typescript": "^5",
            "@types/react-dom": "19.0.2",
        }
        assert (project / "package.json").read_text(encoding="utf-8").endswith("}\n")

    def test_default_revision_is_latest(self, project, resolver, catalog):
        report = make_executor(project, resolver, catalog).run(None)
        assert report.revision == "latest"
        assert report.target_version == "15.2.0"

    def test_peer_types_resolved_against_peer_query(self, project, resolver, catalog):
        make_executor(project, resolver, catalog).run("15.0.0")
        assert sorted(resolver.queries) == sorted([
            f"react@{PEER_QUERY}",
            f"@types/react@{PEER_QUERY}",
            f"@types/react-dom@{PEER_QUERY}",
        ])

    def test_react_prerelease_aliases_type_packages(self, project, resolver, catalog):
        resolver.matches[f"react@{PEER_QUERY}"] = "19.0.0-rc-66855b96-20241106"
        installer = RecordingInstaller()

        make_executor(project, resolver, catalog, install=installer).run("15.0.0")

        packages = installer.calls[0][0]
        assert "@types/react@npm:types-react@rc" in packages
        assert "@types/react-dom@npm:types-react-dom@rc" in packages
        assert resolver.queries == [f"react@{PEER_QUERY}"]
        assert read_manifest(project)["devDependencies"]["@types/react"] == "npm:types-react@rc"

    @patch("upgrade.executor.install_packages")
    def test_default_installer_detects_manager(self, mock_install, project, resolver, catalog):
        (project / "pnpm-lock.yaml").write_text("", encoding="utf-8")
        mock_install.return_value = True
        executor = UpgradeExecutor(
            str(project),
            resolver=resolver,
            catalog=catalog,
            transform=RecordingTransform(),
            installed_version=lambda _: "13.0.0",
            env={},
            console=Console(file=io.StringIO()),
        )

        report = executor.run("15.0.0")

        assert report.install_ok is True
        args, kwargs = mock_install.call_args
        assert args[1] == PackageManagers.PNPM
        assert kwargs["silent"] is True
        assert kwargs["cwd"] == str(project)


class TestAbortedRuns:
    """Resolution failures abort before the manifest is touched."""

    def _assert_untouched(self, project, installer, transform):
        assert read_manifest(project) == MANIFEST
        assert installer.calls == []
        assert transform.calls == []

    def test_invalid_revision(self, project, resolver, catalog):
        installer, transform = RecordingInstaller(), RecordingTransform()
        executor = make_executor(project, resolver, catalog, install=installer, transform=transform)

        report = executor.run("not-a-real-tag")

        assert report.state == RunState.ABORTED
        assert report.failure.kind == FailureKind.INVALID_REVISION
        assert "not-a-real-tag" in report.failure.message
        self._assert_untouched(project, installer, transform)

    def test_cannot_detect_installed(self, project, resolver, catalog):
        installer, transform = RecordingInstaller(), RecordingTransform()
        executor = make_executor(
            project, resolver, catalog,
            installed=CannotDetectInstalledError("no next"),
            install=installer, transform=transform,
        )

        report = executor.run("15.0.0")

        assert report.failure.kind == FailureKind.CANNOT_DETECT_INSTALLED
        self._assert_untouched(project, installer, transform)

    def test_peer_resolution_failure_collects_all_errors(self, project, resolver, catalog):
        del resolver.matches[f"@types/react@{PEER_QUERY}"]
        del resolver.matches[f"@types/react-dom@{PEER_QUERY}"]
        installer, transform = RecordingInstaller(), RecordingTransform()
        executor = make_executor(project, resolver, catalog, install=installer, transform=transform)

        report = executor.run("15.0.0")

        assert report.failure.kind == FailureKind.PEER_RESOLUTION_FAILED
        assert "@types/react@" in report.failure.message
        assert "@types/react-dom@" in report.failure.message
        assert report.failure.cause == FailureKind.NO_MATCHING_VERSION
        self._assert_untouched(project, installer, transform)

    def test_missing_react_peer(self, project, resolver, catalog):
        report = make_executor(project, resolver, catalog).run("no-peers")
        assert report.failure.kind == FailureKind.PEER_RESOLUTION_FAILED
        assert report.failure.cause is None

    def test_missing_manifest(self, tmp_path, resolver, catalog):
        report = make_executor(tmp_path, resolver, catalog).run("15.0.0")
        assert report.failure.kind == FailureKind.MANIFEST_ERROR

    def test_cancelled_selection(self, project, resolver, catalog):
        installer, transform = RecordingInstaller(), RecordingTransform()
        executor = make_executor(
            project, resolver, catalog,
            prompter=FakePrompter(selection="cancel"),
            install=installer, transform=transform,
        )

        report = executor.run("15.0.0")

        assert report.failure.kind == FailureKind.CANCELLED
        self._assert_untouched(project, installer, transform)


class TestAlreadyCurrent:
    """Equal or newer installed versions are a no-op."""

    @pytest.mark.parametrize("installed", ["15.0.0", "15.1.0"])
    def test_noop(self, project, resolver, catalog, installed):
        installer, transform = RecordingInstaller(), RecordingTransform()
        executor = make_executor(
            project, resolver, catalog, installed=installed, install=installer, transform=transform,
        )

        report = executor.run("15.0.0")

        assert report.state == RunState.NOOP_ALREADY_CURRENT
        assert report.failure is None
        assert resolver.queries == []
        assert read_manifest(project) == MANIFEST
        assert installer.calls == []
        assert transform.calls == []


class TestPartialFailures:
    """Failures after the manifest commit are recorded, not fatal."""

    def test_install_failure_still_applies_codemods(self, project, resolver, catalog):
        transform = RecordingTransform()
        executor = make_executor(
            project, resolver, catalog, installed="14.5.0",
            install=RecordingInstaller(ok=False), transform=transform,
        )

        report = executor.run("latest")

        assert report.state == RunState.COMPLETED
        assert report.install_ok is False
        assert report.manifest_written is True
        assert transform.calls == ["B", "C"]
        assert [w.kind for w in report.warnings] == [FailureKind.INSTALL_FAILED]
        assert read_manifest(project)["dependencies"]["next"] == "15.2.0"

    def test_installer_exception_still_applies_codemods(self, project, resolver, catalog):
        def installer(packages, *, silent=False):
            raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")

        transform = RecordingTransform()
        executor = make_executor(
            project, resolver, catalog, installed="14.0.0",
            install=installer, transform=transform,
        )

        report = executor.run("15.0.0")

        assert report.state == RunState.COMPLETED
        assert report.install_ok is False
        assert transform.calls == ["B"]
        assert [w.kind for w in report.warnings] == [FailureKind.INSTALL_FAILED]

    def test_failing_codemod_does_not_stop_later_ones(self, project, resolver):
        catalog = CodemodCatalog([
            CodemodDescriptor("A", "first", "14.0.0"),
            CodemodDescriptor("explode", "raises", "14.1.0"),
            CodemodDescriptor("B", "second", "15.0.0"),
        ])
        transform = RecordingTransform(failing={"A"})
        executor = make_executor(project, resolver, catalog, transform=transform)

        report = executor.run("15.0.0")

        assert transform.calls == ["A", "explode", "B"]
        assert [(o.codemod_id, o.ok) for o in report.codemod_outcomes] == [
            ("A", False), ("explode", False), ("B", True),
        ]
        assert [w.subject for w in report.warnings] == ["A", "explode"]

    def test_user_deselection_respected(self, project, resolver, catalog):
        transform = RecordingTransform()
        executor = make_executor(
            project, resolver, catalog,
            prompter=FakePrompter(selection=["B"]),
            transform=transform,
        )
        executor.run("15.0.0")
        assert transform.calls == ["B"]


class TestTurbopackSuggestion:
    """The dev script may be switched to Turbopack for 15.x targets."""

    def test_non_interactive_rewrites_next_dev(self, project, resolver, catalog):
        make_executor(project, resolver, catalog).run("15.0.0")
        assert read_manifest(project)["scripts"]["dev"] == "next dev --turbo"

    def test_declined(self, project, resolver, catalog):
        prompter = FakePrompter(confirm=False)
        make_executor(project, resolver, catalog, prompter=prompter).run("15.0.0")
        assert read_manifest(project)["scripts"]["dev"] == "next dev"
        assert prompter.asked[0] == ("confirm", "Enable Turbopack for next dev?")

    def test_custom_dev_command(self, project, resolver, catalog):
        data = dict(MANIFEST, scripts={"dev": "node server.js"})
        (project / "package.json").write_text(json.dumps(data), encoding="utf-8")
        prompter = FakePrompter(confirm=True, text="node server.js --turbo")

        make_executor(project, resolver, catalog, prompter=prompter).run("15.0.0")

        assert ("text", "node server.js") in prompter.asked
        assert read_manifest(project)["scripts"]["dev"] == "node server.js --turbo"

    def test_custom_dev_command_cancelled(self, project, resolver, catalog):
        data = dict(MANIFEST, scripts={"dev": "node server.js"})
        (project / "package.json").write_text(json.dumps(data), encoding="utf-8")
        prompter = FakePrompter(confirm=True, text=None)

        report = make_executor(project, resolver, catalog, prompter=prompter).run("15.0.0")

        assert report.failure.kind == FailureKind.CANCELLED
        assert read_manifest(project) == data

    def test_already_enabled_not_asked(self, project, resolver, catalog):
        data = dict(MANIFEST, scripts={"dev": "next dev --turbo"})
        (project / "package.json").write_text(json.dumps(data), encoding="utf-8")
        prompter = FakePrompter()

        make_executor(project, resolver, catalog, prompter=prompter).run("15.0.0")

        assert [kind for kind, _ in prompter.asked] == ["multiselect"]

    def test_not_offered_before_15(self, project, resolver, catalog):
        prompter = FakePrompter()
        make_executor(project, resolver, catalog, prompter=prompter).run("14.2.0")
        assert read_manifest(project)["scripts"]["dev"] == "next dev"
        assert all(kind != "confirm" for kind, _ in prompter.asked)

"""Test doubles for the upgrade collaborators."""

from versioning.errors import InvalidRevisionError, NoMatchingVersionError
from versioning.models import TargetManifest


class FakeResolver:
    """Resolver answering from in-memory tables."""

    def __init__(self, revisions=None, matches=None):
        self.revisions = revisions or {}
        self.matches = matches or {}
        self.queries = []

    def resolve_revision(self, revision=None):
        token = revision or "latest"
        if token not in self.revisions:
            raise InvalidRevisionError(token, "registry returned status 404")
        version, peers = self.revisions[token]
        return TargetManifest(version=version, peer_dependencies=peers)

    def resolve_highest_matching(self, query):
        self.queries.append(query)
        if query not in self.matches:
            raise NoMatchingVersionError(query)
        return self.matches[query]


class FakePrompter:
    """Prompter replaying scripted answers; None means the user cancelled."""

    def __init__(self, confirm=True, selection=None, text=""):
        self.confirm_answer = confirm
        self.selection = selection
        self.text_answer = text
        self.asked = []

    def confirm(self, message, default=True):
        self.asked.append(("confirm", message))
        return self.confirm_answer

    def multiselect(self, message, choices):
        self.asked.append(("multiselect", [c.value for c in choices]))
        if self.selection is None:
            return [c.value for c in choices]
        if self.selection == "cancel":
            return None
        return list(self.selection)

    def text(self, message, default=""):
        self.asked.append(("text", default))
        return self.text_answer


class RecordingInstaller:
    def __init__(self, ok=True):
        self.ok = ok
        self.calls = []

    def __call__(self, packages, *, silent=False):
        self.calls.append((list(packages), silent))
        return self.ok


class RecordingTransform:
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls = []

    def __call__(self, codemod_id, target_dir, *, force=False, verbose=False):
        self.calls.append(codemod_id)
        if codemod_id == "explode":
            raise RuntimeError("transform crashed")
        return codemod_id not in self.failing

"""Decide whether an upgrade is needed and which codemods it should run."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from codemods.catalog import DEFAULT_CATALOG, CodemodCatalog, CodemodDescriptor, as_version
from .prompts import Choice, Prompter
from .result import FailureKind, Result

logger = logging.getLogger(__name__)

CodemodSequence = Tuple[CodemodDescriptor, ...]


@dataclass(frozen=True)
class AlreadyCurrent:
    installed: str
    target: str


@dataclass(frozen=True)
class Applicable:
    installed: str
    target: str
    codemods: CodemodSequence


UpgradeDecision = Union[AlreadyCurrent, Applicable]


class UpgradePlanner:
    """Compare installed and target versions and select codemods.

    Args:
        catalog: Codemod catalog to query.
        prompter: Confirmation oracle; when None every applicable codemod
            is selected without asking.
    """

    def __init__(self, catalog: CodemodCatalog = DEFAULT_CATALOG, prompter: Optional[Prompter] = None):
        self.catalog = catalog
        self.prompter = prompter

    def plan(self, installed: str, target: str) -> UpgradeDecision:
        """Return AlreadyCurrent when installed >= target, else the applicable codemods."""
        if as_version(installed) >= as_version(target):
            return AlreadyCurrent(installed=installed, target=target)
        codemods = self.catalog.applicable_between(installed, target)
        logger.debug(
            "%d codemods apply between %s and %s", len(codemods), installed, target
        )
        return Applicable(installed=installed, target=target, codemods=codemods)

    def confirm(self, decision: Applicable) -> Result[CodemodSequence]:
        """Let the user deselect codemods; the catalog order is always kept."""
        codemods = decision.codemods
        if not codemods or self.prompter is None:
            return Result.success(codemods)

        choices = [
            Choice(
                title=f"(v{codemod.introduced_in}) {codemod.id}",
                value=codemod.id,
                description=codemod.title,
                selected=True,
            )
            for codemod in codemods
        ]
        answer = self.prompter.multiselect(
            "The following codemods are recommended for your upgrade. Select the ones to apply.",
            choices,
        )
        if answer is None:
            return Result.fail(FailureKind.CANCELLED, "Codemod selection cancelled")

        chosen = set(answer)
        return Result.success(tuple(c for c in codemods if c.id in chosen))

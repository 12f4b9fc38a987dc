"""Tagged results passed between upgrade stages."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class FailureKind(Enum):
    """Why a stage did not produce a value."""
    INVALID_REVISION = "invalid_revision"
    NO_MATCHING_VERSION = "no_matching_version"
    CANNOT_DETECT_INSTALLED = "cannot_detect_installed"
    PEER_RESOLUTION_FAILED = "peer_resolution_failed"
    MANIFEST_ERROR = "manifest_error"
    INSTALL_FAILED = "install_failed"
    CODEMOD_FAILED = "codemod_failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    message: str
    subject: Optional[str] = None  # codemod id or package name
    cause: Optional[FailureKind] = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or a Failure, never both."""
    value: Optional[T] = None
    failure: Optional[Failure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(
        cls,
        kind: FailureKind,
        message: str,
        subject: Optional[str] = None,
        cause: Optional[FailureKind] = None,
    ) -> "Result[T]":
        return cls(failure=Failure(kind=kind, message=message, subject=subject, cause=cause))

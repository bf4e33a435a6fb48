"""
Exception hierarchy for schemadelta.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping


class SchemaDeltaError(Exception):
    """Base class for every failure raised by schemadelta."""


class InvalidSnapshot(SchemaDeltaError):
    """
    Aggregated snapshot validation error storing path-to-messages mapping.
    """

    def __init__(self, errors: Mapping[str, List[str]]) -> None:
        self.errors: Dict[str, List[str]] = {
            key: list(messages) for key, messages in errors.items()
        }
        message = self._format_message()
        super().__init__(message)

    def _format_message(self) -> str:
        segments = []
        for path, messages in self.errors.items():
            prefix = path or "snapshot"
            combined = "; ".join(messages)
            segments.append(f"{prefix}: {combined}")
        return "; ".join(segments)


class CyclicDependency(SchemaDeltaError):
    """Raised when actions cannot be ordered because they depend on each other."""

    def __init__(self, tables: Iterable[str]) -> None:
        self.tables: tuple[str, ...] = tuple(sorted(set(tables)))
        super().__init__(
            "Unresolvable dependency cycle between actions on tables: "
            + ", ".join(self.tables)
        )


class UnknownActionError(SchemaDeltaError):
    """Raised when an object that is not a known action reaches the generator."""


class UnsupportedOperation(SchemaDeltaError):
    """Raised when a dialect cannot express an action."""


class ReplayError(SchemaDeltaError):
    """Raised when an action cannot be applied to a snapshot."""


class StateStoreError(SchemaDeltaError):
    """Raised when revision state cannot be read or written."""


class ArtifactError(SchemaDeltaError):
    """Raised when migration artifact files cannot be written or read."""

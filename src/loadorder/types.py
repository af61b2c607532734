"""Core immutable data structures used throughout loadorder."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

WILDCARD_SUFFIX = ".*"


class RecordError(ValueError):
    """Raised when a dependency record is malformed."""


def _unique(symbols: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(str(symbol) for symbol in symbols))


@dataclass(frozen=True)
class Record:
    """One module declaration: its path, provided and required symbols."""

    path: str
    provides: tuple[str, ...]
    requires: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if isinstance(self.provides, str) or isinstance(self.requires, str):
            raise RecordError(f"Record '{self.path}' symbols must be a sequence, not a string.")
        object.__setattr__(self, "provides", _unique(self.provides))
        object.__setattr__(self, "requires", _unique(self.requires))
        if not str(self.path).strip():
            raise RecordError("Record path cannot be empty.")
        if not self.provides:
            raise RecordError(f"Record '{self.path}' must provide at least one symbol.")
        for symbol in (*self.provides, *self.requires):
            if not symbol.strip():
                raise RecordError(f"Record '{self.path}' declares an empty symbol name.")


@dataclass(frozen=True)
class ExternalPolicy:
    """Decides which unowned symbols are assumed supplied by the host environment."""

    treat_unknown_as_external: bool = False
    external_symbols: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "external_symbols", frozenset(self.external_symbols))

    def is_external(self, symbol: str) -> bool:
        if self.treat_unknown_as_external or symbol in self.external_symbols:
            return True
        for pattern in self.external_symbols:
            if pattern.endswith(WILDCARD_SUFFIX):
                prefix = pattern[: -len(WILDCARD_SUFFIX)]
                if symbol.startswith(f"{prefix}."):
                    return True
        return False

    def extended(
        self,
        symbols: Iterable[str] = (),
        *,
        treat_unknown_as_external: bool = False,
    ) -> ExternalPolicy:
        """Return a copy with extra external symbols and, optionally, the catch-all flag."""

        return ExternalPolicy(
            treat_unknown_as_external=self.treat_unknown_as_external or treat_unknown_as_external,
            external_symbols=self.external_symbols | frozenset(symbols),
        )


__all__ = [
    "ExternalPolicy",
    "Record",
    "RecordError",
]

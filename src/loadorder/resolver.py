"""Dependency graph construction and deterministic load ordering."""

from __future__ import annotations

import heapq
import logging
from collections.abc import Iterable, Sequence
from enum import Enum

from .types import ExternalPolicy, Record, RecordError

LOGGER = logging.getLogger(__name__)
ENTRY_REQUIRER = "<entry>"


class ResolutionError(Exception):
    """Base class for errors that make a record set unresolvable."""


class DuplicateSymbolError(ResolutionError):
    """Raised when two records claim the same provided symbol."""

    def __init__(self, symbol: str, existing_path: str, path: str) -> None:
        super().__init__(
            f"Symbol '{symbol}' provided by '{path}' is already provided by '{existing_path}'."
        )
        self.symbol = symbol
        self.existing_path = existing_path
        self.path = path


class UnresolvedSymbolError(ResolutionError):
    """Raised when a required symbol has no owner and is not external."""

    def __init__(self, symbol: str, required_by: str) -> None:
        super().__init__(f"Symbol '{symbol}' required by '{required_by}' is not provided.")
        self.symbol = symbol
        self.required_by = required_by


class CyclicDependencyError(ResolutionError):
    """Raised when records depend on each other in a loop."""

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = tuple(cycle)
        trail = " -> ".join((*self.cycle, self.cycle[0])) if self.cycle else "<empty>"
        super().__init__(f"Cyclic dependency: {trail}")


class ResolverStateError(RuntimeError):
    """Raised when the resolver is used outside its lifecycle."""


class ResolverState(str, Enum):
    """Lifecycle of a resolution session."""

    EMPTY = "empty"
    REGISTERING = "registering"
    RESOLVED = "resolved"
    FAILED = "failed"


class DependencyGraphResolver:
    """Collects dependency records and orders them so owners load before dependents.

    Records are kept in registration order, which is also the tie-breaker
    between records that become loadable at the same time. Registration is
    closed by the first call to :meth:`resolve`; its outcome (order or error)
    is cached for the rest of the session.

    ``register`` is not safe for concurrent use. Once registration is closed
    the resolver is read-only.
    """

    def __init__(self, policy: ExternalPolicy | None = None) -> None:
        self._policy = policy or ExternalPolicy()
        self._records: list[Record] = []
        self._paths: dict[str, int] = {}
        self._owners: dict[str, int] = {}
        self._order: list[str] | None = None
        self._error: ResolutionError | None = None

    @property
    def policy(self) -> ExternalPolicy:
        return self._policy

    @property
    def state(self) -> ResolverState:
        if self._error is not None:
            return ResolverState.FAILED
        if self._order is not None:
            return ResolverState.RESOLVED
        if self._records:
            return ResolverState.REGISTERING
        return ResolverState.EMPTY

    @property
    def records(self) -> tuple[Record, ...]:
        """Return registered records in registration order."""
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, path: object) -> bool:
        return path in self._paths

    def register(self, record: Record) -> None:
        """Add ``record`` to the working set, rejecting symbol collisions."""

        if self.state in (ResolverState.RESOLVED, ResolverState.FAILED):
            raise ResolverStateError("Cannot register records after resolve() has been called.")
        if record.path in self._paths:
            raise RecordError(f"Record path '{record.path}' is already registered.")
        for symbol in record.provides:
            owner = self._owners.get(symbol)
            if owner is not None:
                raise DuplicateSymbolError(symbol, self._records[owner].path, record.path)

        index = len(self._records)
        self._records.append(record)
        self._paths[record.path] = index
        for symbol in record.provides:
            self._owners[symbol] = index
        LOGGER.debug(
            "Registered '%s' providing %s (requires %d symbol(s))",
            record.path,
            ", ".join(record.provides),
            len(record.requires),
        )

    def register_many(self, records: Iterable[Record]) -> None:
        for record in records:
            self.register(record)

    def owner_of(self, symbol: str) -> Record | None:
        """Return the record providing ``symbol``, if any."""
        index = self._owners.get(symbol)
        return None if index is None else self._records[index]

    def dependencies_of(self, path: str) -> list[str]:
        """Return paths of the records ``path`` directly depends on."""

        try:
            index = self._paths[path]
        except KeyError as exc:
            raise KeyError(f"Record '{path}' is not registered.") from exc
        return [self._records[owner].path for owner in self._direct_dependencies(index)]

    def resolve(self) -> list[str]:
        """Return registered paths ordered so every owner precedes its dependents.

        Raises :class:`UnresolvedSymbolError` or :class:`CyclicDependencyError`
        when no valid order exists. Repeated calls return the cached order or
        re-raise the cached error.
        """

        if self._order is not None:
            return list(self._order)
        if self._error is not None:
            raise self._error

        try:
            order = self._compute_order()
        except ResolutionError as exc:
            self._error = exc
            LOGGER.debug("Dependency resolution failed: %s", exc)
            raise
        self._order = order
        LOGGER.debug("Resolved load order for %d record(s)", len(order))
        return list(order)

    def load_order_for(self, symbols: Iterable[str]) -> list[str]:
        """Return the load order restricted to what the given entry symbols need."""

        order = self.resolve()
        pending: list[int] = []
        for symbol in symbols:
            owner = self._owners.get(symbol)
            if owner is None:
                raise UnresolvedSymbolError(symbol, ENTRY_REQUIRER)
            pending.append(owner)

        needed: set[int] = set()
        while pending:
            index = pending.pop()
            if index in needed:
                continue
            needed.add(index)
            pending.extend(self._direct_dependencies(index))

        needed_paths = {self._records[index].path for index in needed}
        return [path for path in order if path in needed_paths]

    def _direct_dependencies(self, index: int) -> list[int]:
        owners: list[int] = []
        for symbol in self._records[index].requires:
            owner = self._owners.get(symbol)
            if owner is None or owner == index or owner in owners:
                continue
            owners.append(owner)
        return owners

    def _compute_order(self) -> list[str]:
        dependencies = self._build_edges()
        dependents: list[list[int]] = [[] for _ in self._records]
        for index, owners in enumerate(dependencies):
            for owner in owners:
                dependents[owner].append(index)

        remaining = [len(owners) for owners in dependencies]
        ready = [index for index, count in enumerate(remaining) if count == 0]
        heapq.heapify(ready)
        order: list[int] = []
        while ready:
            index = heapq.heappop(ready)
            order.append(index)
            for dependent in dependents[index]:
                remaining[dependent] -= 1
                if remaining[dependent] == 0:
                    heapq.heappush(ready, dependent)

        if len(order) < len(self._records):
            blocked = {index for index, count in enumerate(remaining) if count > 0}
            raise CyclicDependencyError(self._find_cycle(dependencies, blocked))
        return [self._records[index].path for index in order]

    def _build_edges(self) -> list[list[int]]:
        dependencies: list[list[int]] = []
        for index, record in enumerate(self._records):
            for symbol in record.requires:
                if symbol in self._owners:
                    continue
                if not self._policy.is_external(symbol):
                    raise UnresolvedSymbolError(symbol, record.path)
                LOGGER.debug("Assuming '%s' required by '%s' is external", symbol, record.path)
            dependencies.append(self._direct_dependencies(index))
        return dependencies

    def _find_cycle(self, dependencies: list[list[int]], blocked: set[int]) -> list[str]:
        # Every blocked record waits on another blocked record, so a depth-first
        # walk restricted to them always reaches a node already on its stack.
        visited: set[int] = set()
        for start in sorted(blocked):
            if start in visited:
                continue
            visited.add(start)
            stack = [start]
            positions = {start: 0}
            branches = [iter(dependencies[start])]
            while stack:
                try:
                    target = next(branches[-1])
                except StopIteration:
                    positions.pop(stack.pop())
                    branches.pop()
                    continue
                if target not in blocked:
                    continue
                if target in positions:
                    return [self._records[index].path for index in stack[positions[target] :]]
                if target in visited:
                    continue
                visited.add(target)
                positions[target] = len(stack)
                stack.append(target)
                branches.append(iter(dependencies[target]))
        raise RuntimeError("Dependency cycle detected but could not be traced.")


def resolve_records(
    records: Iterable[Record],
    policy: ExternalPolicy | None = None,
) -> list[str]:
    """Resolve ``records`` in a fresh session and return the load order."""

    resolver = DependencyGraphResolver(policy)
    resolver.register_many(records)
    return resolver.resolve()


__all__ = [
    "CyclicDependencyError",
    "DependencyGraphResolver",
    "DuplicateSymbolError",
    "ResolutionError",
    "ResolverState",
    "ResolverStateError",
    "UnresolvedSymbolError",
    "resolve_records",
]

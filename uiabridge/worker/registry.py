"""Operation registry for the worker.

Dispatcher resolves every request through OperationRegistry; names and
aliases are matched case-insensitively and the registry is frozen before the
worker starts reading requests.
"""

from __future__ import annotations

from typing import Iterable

from uiabridge.operations.base import Operation


class OperationRegistry:
    """
    Registry of operation handlers.

    Each operation is stored once and indexed under its canonical name and
    every alias.
    """

    def __init__(self, operations: Iterable[Operation] | None = None):
        self._operations: dict[str, Operation] = {}
        self._index: dict[str, Operation] = {}
        self._frozen = False
        for operation in operations or ():
            self.register(operation)

    def register(self, operation: Operation) -> None:
        """Register an operation under its name and aliases."""
        if self._frozen:
            raise RuntimeError("Operation registry is frozen")
        keys = [operation.name, *operation.aliases]
        seen: set[str] = set()
        for key in keys:
            folded = key.strip().casefold()
            if not folded:
                raise ValueError(f"Operation {operation.name!r} has an empty name or alias")
            if folded in seen:
                raise ValueError(f"Operation {operation.name!r} lists {key!r} twice (names ignore case)")
            seen.add(folded)
            existing = self._index.get(folded)
            if existing is not None:
                raise ValueError(f"Operation name {key!r} is already registered by {existing.name}")
        for key in keys:
            self._index[key.strip().casefold()] = operation
        self._operations[operation.name] = operation

    def freeze(self) -> "OperationRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> Operation | None:
        """Get an operation by name or alias, ignoring case."""
        if not isinstance(name, str):
            return None
        return self._index.get(name.strip().casefold())

    @property
    def names(self) -> list[str]:
        """Canonical operation names, sorted."""
        return sorted(self._operations, key=str.casefold)

    def operations(self) -> list[Operation]:
        return [self._operations[name] for name in self.names]

    def __len__(self) -> int:
        return len(self._operations)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None


def build_default_registry() -> OperationRegistry:
    """Registry with every built-in operation, frozen."""
    from uiabridge.operations import ALL_OPERATIONS

    return OperationRegistry(cls() for cls in ALL_OPERATIONS).freeze()

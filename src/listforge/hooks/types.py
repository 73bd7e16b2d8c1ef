"""Records exchanged between lists, the hook service and hook functions."""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Operation(Enum):
    """The kind of save being performed."""

    CREATE = "create"
    UPDATE = "update"


@dataclass
class HookDefinition:
    """One entry of a list's ``hooks`` option.

    ``on`` limits the hook to creates or updates. ``when`` is called with
    the ``HookContext``; a falsy return skips the hook for that save.
    """

    name: str
    on: list[Operation] = field(
        default_factory=lambda: [Operation.CREATE, Operation.UPDATE]
    )
    when: Callable[["HookContext"], bool] | None = None
    description: str = ""

    @classmethod
    def from_value(cls, data: Any) -> "HookDefinition":
        """Accepts a bare hook name or ``{name, on, when, description}``."""
        if isinstance(data, HookDefinition):
            return data
        if isinstance(data, str):
            return cls(name=data)

        operations = data.get("on", ["create", "update"])
        if isinstance(operations, str):
            operations = [operations]

        return cls(
            name=data["name"],
            on=[Operation(op) for op in operations],
            when=data.get("when"),
            description=data.get("description", ""),
        )


@dataclass
class HookContext:
    """What a hook function sees of the save in progress.

    ``record`` is a plain-dict snapshot of the document being saved and
    ``item`` the ``Document`` itself. ``original`` and ``changes`` are None
    when the document is new.
    """

    list_key: str
    operation: Operation
    record: dict[str, Any]
    original: dict[str, Any] | None = None
    changes: dict[str, Any] | None = None
    item: Any = None


@dataclass
class HookResult:
    """What a ``beforeSave`` hook asks for: more field values, or a refusal.

    A non-empty ``abort`` becomes the failed ``UpdateResult`` message.
    """

    update: dict[str, Any] | None = None
    abort: str | None = None


def compute_changes(
    record: dict[str, Any], original: dict[str, Any] | None
) -> dict[str, Any] | None:
    """``{path: new_value}`` for every path whose value differs from ``original``.

    None for new documents, which have nothing to compare against.
    """
    if original is None:
        return None

    changes: dict[str, Any] = {}
    for key, value in record.items():
        if key not in original or original[key] != value:
            changes[key] = value

    return changes

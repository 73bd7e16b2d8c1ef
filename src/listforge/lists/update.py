"""The ``List.update_item`` pipeline.

Every field is validated before anything is mutated. Updates are applied to
a working copy; the caller's document only changes after the backend save
succeeds. Per-field failures are returned, not raised.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from listforge.codecs import is_empty, keyify
from listforge.filters import and_predicates
from listforge.hooks import HookContext, Operation, compute_changes
from listforge.validation import FailureKind, UpdateResult, ValidationFailed

if TYPE_CHECKING:
    from listforge.document import Document
    from listforge.fields.base import Field
    from listforge.lists.list import List

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class ItemUpdater:
    """Runs one validated update of one document."""

    def __init__(
        self,
        list: "List",
        fields: list[str] | None = None,
        required: list[str] | None = None,
        user: Any = None,
        ignore_no_edit: bool = False,
    ):
        self.list = list
        self.user = user
        self.required = set(required or [])
        self.fields = self._select_fields(fields, ignore_no_edit)

    def _select_fields(self, paths: list[str] | None, ignore_no_edit: bool) -> list["Field"]:
        if paths is None:
            selected = list(self.list.fields.values())
        else:
            selected = [self.list.fields[p] for p in paths if p in self.list.fields]
        return [
            f for f in selected
            if not f.virtual and (ignore_no_edit or not f.noedit)
        ]

    def validate(self, item: "Document", data: dict[str, Any]) -> dict[str, ValidationFailed]:
        errors: dict[str, ValidationFailed] = {}
        for field in self.fields:
            if field.is_required(item) or field.path in self.required:
                result = field.validate_required_input(item, data)
                if not result:
                    errors[field.path] = ValidationFailed(
                        field.path, result.message or f"{field.label} is required", FailureKind.REQUIRED
                    )
                    continue
            result = field.validate_input(data)
            if not result:
                errors[field.path] = ValidationFailed(
                    field.path, result.message or f"{field.label} is invalid", FailureKind.INVALID
                )
        return errors

    async def check_unique(self, working: "Document") -> dict[str, ValidationFailed]:
        errors: dict[str, ValidationFailed] = {}
        for field in self.list.fields.values():
            if not field.unique:
                continue
            value = working.get(field.path)
            if is_empty(value) or not working.is_modified(field.path):
                continue
            predicate = and_predicates(
                [{field.path: value}, {"id": {"$ne": working.id}} if working.id else {}]
            )
            if await self.list.model.count(predicate):
                errors[field.path] = ValidationFailed(
                    field.path, f"{field.label} must be unique", FailureKind.UNIQUE
                )
        return errors

    async def apply_watchers(self, working: "Document") -> None:
        for field in self.list.fields.values():
            if field.watch and field.should_recompute(working):
                working.set(field.path, await field.compute_value(working))

    async def apply_autokey(self, working: "Document") -> None:
        autokey = self.list.autokey
        if not autokey:
            return
        path = autokey["path"]
        sources = autokey["from"]
        current = working.get(path)
        if current and (autokey["fixed"] or not any(working.is_modified(p) for p in sources)):
            return
        parts = []
        for source in sources:
            field = self.list.fields.get(source)
            parts.append(field.format(working) if field else str(working.get(source) or ""))
        value = keyify(" ".join(parts))
        if not value:
            return
        if autokey["unique"]:
            value = await self.list.get_unique_value(
                path, value, separator="-", exclude_id=working.id
            )
        working.set(path, value)

    def apply_tracking(self, working: "Document") -> None:
        track = self.list.tracking
        if not track:
            return
        now = _utcnow()
        user_id = getattr(self.user, "id", self.user)
        if working.is_new:
            if track.get("created_at") and working.get(track["created_at"]) is None:
                working.set(track["created_at"], now)
            if track.get("created_by") and user_id is not None:
                working.set(track["created_by"], str(user_id))
        if working.is_new or working.is_modified():
            if track.get("updated_at"):
                working.set(track["updated_at"], now)
            if track.get("updated_by") and user_id is not None:
                working.set(track["updated_by"], str(user_id))

    async def apply_sort_order(self, working: "Document") -> None:
        if not self.list.options.get("sortable") or not working.is_new:
            return
        if working.get("sortOrder") is not None:
            return
        last = await self.list.model.find(
            {"sortOrder": {"$ne": None}}, projection=["sortOrder"], sort=[("sortOrder", -1)], limit=1
        )
        working.set("sortOrder", (last[0].get("sortOrder") or 0) + 1 if last else 1)

    async def run(self, item: "Document", data: dict[str, Any]) -> UpdateResult:
        errors = self.validate(item, data)
        if errors:
            return UpdateResult(False, item, errors)

        working = item.copy()
        for field in self.fields:
            field.update_item(working, data)

        await self.apply_watchers(working)
        await self.apply_autokey(working)

        errors = await self.check_unique(working)
        if errors:
            return UpdateResult(False, item, errors)

        self.apply_tracking(working)
        await self.apply_sort_order(working)

        operation = Operation.CREATE if working.is_new else Operation.UPDATE
        original = None if working.is_new else working.original
        hooks = self.list.hooks
        context = self.list.context

        if hooks.get("beforeSave"):
            record = working.to_dict()
            result = await context.hook_service.run_hooks(
                "beforeSave",
                hooks["beforeSave"],
                HookContext(
                    list_key=self.list.key,
                    operation=operation,
                    record=record,
                    original=original,
                    changes=compute_changes(record, original),
                    item=working,
                ),
            )
            if result is not None and result.abort:
                return UpdateResult(False, item, message=result.abort)
            if result is not None and result.update:
                for path, value in result.update.items():
                    working.set(path, value)

        saved = await self.list.model.save(working.to_dict())
        item.mark_saved(saved)

        if hooks.get("afterSave"):
            record = item.to_dict()
            await context.hook_service.run_hooks(
                "afterSave",
                hooks["afterSave"],
                HookContext(
                    list_key=self.list.key,
                    operation=operation,
                    record=record,
                    original=original,
                    changes=compute_changes(record, original),
                    item=item,
                ),
            )

        return UpdateResult(True, item)

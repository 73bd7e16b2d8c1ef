"""ListForge save lifecycle hook system.

Provides extension points for logic that runs around ``List.update_item``:
- beforeSave: After field updates, before persist (can modify record, can abort)
- afterSave: After persist (side effects; failures are logged, not raised)

Usage:
    from listforge import ListForge
    from listforge.hooks import HookContext, HookResult

    forge = ListForge()

    @forge.hook("computeReadingTime")
    async def compute_reading_time(ctx: HookContext) -> HookResult:
        words = len((ctx.record.get("content") or "").split())
        return HookResult(update={"readingTime": max(1, words // 200)})
"""

from listforge.hooks.registry import HookFn, HookRegistry
from listforge.hooks.service import HookService
from listforge.hooks.types import (
    HookContext,
    HookDefinition,
    HookResult,
    Operation,
    compute_changes,
)

VALID_HOOK_POINTS = ("beforeSave", "afterSave")

__all__ = [
    "HookContext",
    "HookDefinition",
    "HookFn",
    "HookRegistry",
    "HookResult",
    "HookService",
    "Operation",
    "VALID_HOOK_POINTS",
    "compute_changes",
]

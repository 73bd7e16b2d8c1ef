"""Runs the named save hooks a list declares.

``List.update_item`` calls ``run_hooks`` twice per save: once with the
``beforeSave`` definitions against the working copy, and once with the
``afterSave`` definitions after the backend has stored the document.
"""

import logging
from typing import Any

from listforge.hooks.registry import HookFn, HookRegistry
from listforge.hooks.types import HookContext, HookDefinition, HookResult

logger = logging.getLogger(__name__)


class HookService:
    """Dispatches hook definitions to the functions in a ``HookRegistry``.

    Before the save, each hook sees the record as updated by the hooks
    ahead of it, and the first abort ends the run. After the save, results
    are ignored and a failing hook is logged so the rest still run.
    """

    def __init__(self, registry: HookRegistry):
        self.registry = registry

    def _applies(self, definition: HookDefinition, context: HookContext) -> bool:
        if context.operation not in definition.on:
            return False
        if definition.when is None:
            return True
        try:
            return bool(definition.when(context))
        except Exception:
            logger.warning("Hook '%s' when condition failed to evaluate", definition.name)
            return False

    def _lookup(self, name: str) -> HookFn | None:
        if not self.registry.is_registered(name):
            logger.warning("Hook '%s' is not registered, skipping", name)
            return None
        return self.registry.get(name)

    async def run_hooks(
        self,
        hook_point: str,
        definitions: list[HookDefinition],
        context: HookContext,
    ) -> HookResult | None:
        """Run ``definitions`` for one save.

        Returns:
            The abort result of the first ``beforeSave`` hook that refuses
            the save, else the combined field updates of every hook that
            returned some, else None. ``afterSave`` runs always return None.
        """
        after_save = hook_point == "afterSave"
        updates: dict[str, Any] = {}

        for definition in definitions or []:
            if not self._applies(definition, context):
                continue
            hook_fn = self._lookup(definition.name)
            if hook_fn is None:
                continue

            try:
                result = await hook_fn(context)
            except Exception as e:
                if after_save:
                    logger.error("afterSave hook '%s' failed: %s", definition.name, e)
                    continue
                return HookResult(abort=f"Hook '{definition.name}' failed: {e}")

            if after_save or result is None:
                continue
            if result.abort:
                return result
            if result.update:
                # Later hooks see earlier updates
                context.record.update(result.update)
                updates.update(result.update)

        return HookResult(update=updates) if updates else None

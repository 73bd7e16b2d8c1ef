"""Named save-hook functions for one ``ListForge`` context.

A list's ``hooks`` option names hooks; the functions behind those names
live here, so two contexts can bind the same name to different code.
"""

from collections.abc import Awaitable, Callable

from listforge.hooks.types import HookContext, HookResult

HookFn = Callable[[HookContext], Awaitable[HookResult | None]]


class HookRegistry:
    """Maps hook names to async hook functions.

    Example:
        @forge.hook("stampPublishedDate")
        async def stamp(ctx: HookContext) -> HookResult | None:
            if ctx.record.get("state") == "published":
                return HookResult(update={"publishedDate": date.today()})
    """

    def __init__(self) -> None:
        self._hooks: dict[str, HookFn] = {}

    def register(self, name: str, hook_fn: HookFn) -> None:
        """Bind ``name`` to ``hook_fn``. The first binding of a name wins."""
        self._hooks.setdefault(name, hook_fn)

    def get(self, name: str) -> HookFn:
        """Raises ValueError for a name nothing was registered under."""
        try:
            return self._hooks[name]
        except KeyError:
            raise ValueError(
                f"Hook '{name}' is not registered on this context"
            ) from None

    def is_registered(self, name: str) -> bool:
        return name in self._hooks

    def list_registered(self) -> list[str]:
        return sorted(self._hooks)

    def clear(self) -> None:
        self._hooks.clear()

    def hook(self, name: str) -> Callable[[HookFn], HookFn]:
        """Decorator form of ``register``."""

        def decorator(fn: HookFn) -> HookFn:
            self.register(name, fn)
            return fn

        return decorator

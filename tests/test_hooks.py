"""Tests for the save lifecycle hook system."""

import logging
from unittest.mock import AsyncMock

import pytest

from listforge.hooks import (
    VALID_HOOK_POINTS,
    HookContext,
    HookDefinition,
    HookRegistry,
    HookResult,
    HookService,
    Operation,
    compute_changes,
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def registry():
    return HookRegistry()


@pytest.fixture
def hook_service(registry):
    return HookService(registry)


@pytest.fixture
def base_context():
    """A basic HookContext for tests."""
    return HookContext(
        list_key="Contact",
        operation=Operation.CREATE,
        record={"id": "C001", "firstName": "John", "lastName": "Doe", "status": "active"},
    )


@pytest.fixture
def update_context():
    """A HookContext for update operations."""
    original = {"id": "C001", "firstName": "John", "lastName": "Doe", "status": "active"}
    record = {"id": "C001", "firstName": "Jane", "lastName": "Doe", "status": "inactive"}
    return HookContext(
        list_key="Contact",
        operation=Operation.UPDATE,
        record=record,
        original=original,
        changes=compute_changes(record, original),
    )


# =============================================================================
# compute_changes tests
# =============================================================================


class TestComputeChanges:
    def test_returns_none_for_create(self):
        assert compute_changes({"a": 1}, None) is None

    def test_detects_changed_fields(self):
        changes = compute_changes({"a": 1, "b": 99, "c": 3}, {"a": 1, "b": 2, "c": 3})
        assert changes == {"b": 99}

    def test_detects_new_fields(self):
        assert compute_changes({"a": 1, "b": 2}, {"a": 1}) == {"b": 2}

    def test_empty_when_no_changes(self):
        record = {"a": 1, "b": 2}
        assert compute_changes(record, record) == {}


# =============================================================================
# HookRegistry tests
# =============================================================================


class TestHookRegistry:
    def test_register_and_get(self, registry):
        async def my_hook(ctx):
            return None

        registry.register("myHook", my_hook)
        assert registry.get("myHook") is my_hook

    def test_register_idempotent(self, registry):
        async def hook_a(ctx):
            return None

        async def hook_b(ctx):
            return None

        registry.register("myHook", hook_a)
        registry.register("myHook", hook_b)  # no-op
        assert registry.get("myHook") is hook_a

    def test_get_unknown_raises(self, registry):
        with pytest.raises(ValueError, match="not registered"):
            registry.get("nonExistent")

    def test_list_registered_sorted(self, registry):
        registry.register("beta", AsyncMock())
        registry.register("alpha", AsyncMock())
        assert registry.list_registered() == ["alpha", "beta"]

    def test_clear(self, registry):
        registry.register("myHook", AsyncMock())
        registry.clear()
        assert not registry.is_registered("myHook")
        assert registry.list_registered() == []

    def test_decorator_registers(self, registry):
        @registry.hook("decoratedHook")
        async def my_decorated_hook(ctx):
            return HookResult(update={"x": 1})

        assert registry.get("decoratedHook") is my_decorated_hook
        assert my_decorated_hook.__name__ == "my_decorated_hook"

    def test_registries_are_independent(self, forge):
        other = HookRegistry()
        forge.register_hook("onlyHere", AsyncMock())
        assert forge.hooks.is_registered("onlyHere")
        assert not other.is_registered("onlyHere")


# =============================================================================
# HookDefinition tests
# =============================================================================


class TestHookDefinition:
    def test_from_name(self):
        defn = HookDefinition.from_value("testHook")
        assert defn.name == "testHook"
        assert defn.on == [Operation.CREATE, Operation.UPDATE]
        assert defn.when is None

    def test_from_dict_full(self):
        when = lambda ctx: True  # noqa: E731
        defn = HookDefinition.from_value(
            {"name": "testHook", "on": ["create"], "when": when, "description": "A test hook"}
        )
        assert defn.on == [Operation.CREATE]
        assert defn.when is when
        assert defn.description == "A test hook"

    def test_from_dict_string_on(self):
        assert HookDefinition.from_value({"name": "testHook", "on": "update"}).on == [Operation.UPDATE]

    def test_unknown_operation(self):
        with pytest.raises(ValueError):
            HookDefinition.from_value({"name": "testHook", "on": "delete"})

    def test_hook_points(self):
        assert VALID_HOOK_POINTS == ("beforeSave", "afterSave")


# =============================================================================
# HookService tests
# =============================================================================


class TestHookService:
    @pytest.mark.asyncio
    async def test_empty_definitions_returns_none(self, hook_service, base_context):
        assert await hook_service.run_hooks("beforeSave", [], base_context) is None

    @pytest.mark.asyncio
    async def test_hook_receives_context(self, registry, hook_service, base_context):
        capture = AsyncMock(return_value=None)
        registry.register("captureCtx", capture)

        await hook_service.run_hooks("beforeSave", [HookDefinition(name="captureCtx")], base_context)
        capture.assert_awaited_once_with(base_context)

    @pytest.mark.asyncio
    async def test_operation_filtering(self, registry, hook_service, base_context):
        """Hooks with a non-matching ``on`` are skipped."""
        counting = AsyncMock(return_value=None)
        registry.register("countingHook", counting)
        defn = HookDefinition(name="countingHook", on=[Operation.UPDATE])

        await hook_service.run_hooks("beforeSave", [defn], base_context)
        counting.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_when_condition(self, registry, hook_service, base_context):
        ran = AsyncMock(return_value=None)
        registry.register("conditional", ran)

        skip = HookDefinition(name="conditional", when=lambda ctx: ctx.record["status"] == "inactive")
        await hook_service.run_hooks("beforeSave", [skip], base_context)
        ran.assert_not_awaited()

        run = HookDefinition(name="conditional", when=lambda ctx: ctx.record["status"] == "active")
        await hook_service.run_hooks("beforeSave", [run], base_context)
        ran.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_when_condition_can_read_original(self, registry, hook_service, update_context):
        ran = AsyncMock(return_value=None)
        registry.register("changeDetect", ran)
        defn = HookDefinition(
            name="changeDetect",
            on=[Operation.UPDATE],
            when=lambda ctx: ctx.record["status"] != ctx.original["status"],
        )

        await hook_service.run_hooks("beforeSave", [defn], update_context)
        ran.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failing_when_condition_skips(self, registry, hook_service, base_context, caplog):
        ran = AsyncMock(return_value=None)
        registry.register("badWhen", ran)
        defn = HookDefinition(name="badWhen", when=lambda ctx: ctx.record["missing"])

        with caplog.at_level(logging.WARNING):
            await hook_service.run_hooks("beforeSave", [defn], base_context)
        ran.assert_not_awaited()
        assert "badWhen" in caplog.text

    @pytest.mark.asyncio
    async def test_sequential_execution_order(self, registry, hook_service, base_context):
        order = []

        def recorder(name):
            async def hook_fn(ctx):
                order.append(name)

            return hook_fn

        for name in ("a", "b", "c"):
            registry.register(f"hook{name}", recorder(name))

        defs = [HookDefinition(name=f"hook{n}") for n in ("a", "b", "c")]
        await hook_service.run_hooks("beforeSave", defs, base_context)
        assert order == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_compounding_updates(self, registry, hook_service, base_context):
        """Later hooks see earlier updates in ``ctx.record``."""

        async def hook_a(ctx):
            return HookResult(update={"computed_a": "A"})

        async def hook_b(ctx):
            return HookResult(update={"computed_b": f"B+{ctx.record.get('computed_a', '')}"})

        registry.register("hookA", hook_a)
        registry.register("hookB", hook_b)

        defs = [HookDefinition(name="hookA"), HookDefinition(name="hookB")]
        result = await hook_service.run_hooks("beforeSave", defs, base_context)
        assert result.update == {"computed_a": "A", "computed_b": "B+A"}
        assert base_context.record["computed_b"] == "B+A"

    @pytest.mark.asyncio
    async def test_abort_stops_execution(self, registry, hook_service, base_context):
        later = AsyncMock(return_value=None)
        registry.register("hookA", AsyncMock(return_value=HookResult(abort="Blocked by hook A")))
        registry.register("hookB", later)

        defs = [HookDefinition(name="hookA"), HookDefinition(name="hookB")]
        result = await hook_service.run_hooks("beforeSave", defs, base_context)
        assert result.abort == "Blocked by hook A"
        later.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_before_save_exception_aborts(self, registry, hook_service, base_context):
        registry.register("broken", AsyncMock(side_effect=RuntimeError("boom")))

        result = await hook_service.run_hooks("beforeSave", [HookDefinition(name="broken")], base_context)
        assert result.abort == "Hook 'broken' failed: boom"

    @pytest.mark.asyncio
    async def test_after_save_exception_is_logged(self, registry, hook_service, base_context, caplog):
        after = AsyncMock(return_value=None)
        registry.register("broken", AsyncMock(side_effect=RuntimeError("boom")))
        registry.register("after", after)

        defs = [HookDefinition(name="broken"), HookDefinition(name="after")]
        with caplog.at_level(logging.ERROR):
            result = await hook_service.run_hooks("afterSave", defs, base_context)
        assert result is None
        after.assert_awaited_once()
        assert "afterSave hook 'broken' failed: boom" in caplog.text

    @pytest.mark.asyncio
    async def test_after_save_results_are_ignored(self, registry, hook_service, base_context):
        registry.register("late", AsyncMock(return_value=HookResult(update={"x": 1})))

        result = await hook_service.run_hooks("afterSave", [HookDefinition(name="late")], base_context)
        assert result is None
        assert "x" not in base_context.record

    @pytest.mark.asyncio
    async def test_unregistered_hook_skipped(self, hook_service, base_context, caplog):
        with caplog.at_level(logging.WARNING):
            result = await hook_service.run_hooks("beforeSave", [HookDefinition(name="ghost")], base_context)
        assert result is None
        assert "ghost" in caplog.text

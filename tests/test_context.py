"""Tests for the per-task business context."""

import asyncio

import pytest
import structlog

from equiledger.db.context import (
    BusinessContext,
    BusinessContextError,
    business_context,
    get_business_context,
    reset_business_context,
    safe_db_operation,
    set_business_context,
    verify_business_context,
    with_business_context,
)


class TestBusinessContext:
    """Tests for setting and reading the context."""

    def test_no_context_by_default(self):
        assert get_business_context() is None

    def test_set_and_reset(self):
        token = set_business_context(BusinessContext(business_id="biz-1"))
        try:
            assert get_business_context() == BusinessContext(business_id="biz-1")
        finally:
            reset_business_context(token)

        assert get_business_context() is None

    def test_context_manager_restores_previous(self):
        with business_context("outer"):
            with business_context("inner", user_id="user-1") as inner:
                assert inner.user_id == "user-1"
                assert get_business_context().business_id == "inner"
            assert get_business_context().business_id == "outer"
        assert get_business_context() is None

    def test_context_manager_resets_on_error(self):
        with pytest.raises(RuntimeError):
            with business_context("biz-1"):
                raise RuntimeError("boom")

        assert get_business_context() is None

    def test_business_id_bound_to_logs(self):
        with business_context("biz-log"):
            assert structlog.contextvars.get_contextvars()["business_id"] == "biz-log"
        assert "business_id" not in structlog.contextvars.get_contextvars()


class TestContextGuards:
    """Tests for with_business_context and verify_business_context."""

    def test_with_business_context_requires_context(self):
        with pytest.raises(BusinessContextError, match="No business context found"):
            with_business_context(lambda ctx: ctx.business_id)

    def test_with_business_context_passes_context(self):
        with business_context("biz-1"):
            assert with_business_context(lambda ctx: ctx.business_id) == "biz-1"

    def test_verify_matches(self):
        with business_context("biz-1"):
            verify_business_context("biz-1")

    def test_verify_rejects_other_business(self):
        with business_context("biz-1"):
            with pytest.raises(BusinessContextError, match="mismatch"):
                verify_business_context("biz-2")

    def test_verify_rejects_missing_context(self):
        with pytest.raises(BusinessContextError):
            verify_business_context("biz-1")


class TestAsyncIsolation:
    """Concurrent tasks each see their own business."""

    @pytest.mark.asyncio
    async def test_concurrent_tasks_are_isolated(self):
        async def handle(business_id: str) -> list[str]:
            seen = []
            with business_context(business_id):
                for _ in range(5):
                    await asyncio.sleep(0)
                    seen.append(get_business_context().business_id)
            return seen

        results = await asyncio.gather(*(handle(f"biz-{i}") for i in range(10)))

        for i, seen in enumerate(results):
            assert seen == [f"biz-{i}"] * 5
        assert get_business_context() is None

    @pytest.mark.asyncio
    async def test_safe_db_operation_runs_sync_and_async(self):
        def sync_op():
            return get_business_context().business_id

        async def async_op():
            await asyncio.sleep(0)
            return get_business_context().business_id

        assert await safe_db_operation("biz-sync", sync_op) == "biz-sync"
        assert await safe_db_operation("biz-async", async_op) == "biz-async"
        assert get_business_context() is None

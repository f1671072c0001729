"""Tests for logging context variables."""

import asyncio

from core.logging.context import clear_log_context, get_log_context, set_log_context


class TestLogContext:
    def test_defaults_empty(self):
        assert get_log_context() == {
            "resource": "",
            "operation": "",
            "supervisor_id": "",
            "trace_id": "",
        }

    def test_set_and_get(self):
        set_log_context(resource="orders", operation="create", supervisor_id="orders-supervisor")
        ctx = get_log_context()
        assert ctx["resource"] == "orders"
        assert ctx["operation"] == "create"
        assert ctx["supervisor_id"] == "orders-supervisor"

    def test_none_leaves_value(self):
        set_log_context(resource="orders")
        set_log_context(operation="read")
        assert get_log_context()["resource"] == "orders"

    def test_clear(self):
        set_log_context(resource="orders", trace_id="abc")
        clear_log_context()
        assert not any(get_log_context().values())

    async def test_isolated_between_tasks(self):
        async def worker(name):
            set_log_context(supervisor_id=name)
            await asyncio.sleep(0)
            return get_log_context()["supervisor_id"]

        results = await asyncio.gather(worker("a"), worker("b"))
        assert results == ["a", "b"]

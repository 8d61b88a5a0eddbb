"""Tests for the Engine composition root and the dependency container."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from taskengine import DependencyContainer, Engine, EngineSettings, TaskStatus
from taskengine.platform.local import HeadlessNotification
from taskengine.task.events import TaskEventType
from taskengine.tests.conftest import FakeBrowser, ScriptedModelClient, respond, tool_call, wait_for_status


@pytest.fixture
def local_engine(workspace, tmp_path):
    settings = EngineSettings(_env_file=None, log_level="DEBUG", max_iterations=4)
    browser = FakeBrowser()
    browser.close = AsyncMock()
    return Engine.create_local(
        ScriptedModelClient([respond("", tool_call("list_files")), respond("Two entries")]),
        workspace_path=str(workspace),
        settings=settings,
        config_home=tmp_path / "config_home",
        notification=HeadlessNotification(),
        browser=browser,
    )


class TestEngine:
    """Host-facing surface over the task manager."""

    def test_default_registry(self, local_engine):
        names = {descriptor.name for descriptor in local_engine.registry.list()}

        assert names == {
            "read_file",
            "list_files",
            "search_files",
            "write_file",
            "apply_diff",
            "execute_command",
            "browser_action",
        }

    def test_create_local_uses_overrides(self, local_engine, workspace):
        platform = local_engine.platform

        assert isinstance(platform.notification, HeadlessNotification)
        assert isinstance(platform.browser, FakeBrowser)
        assert platform.workspace.root_path == str(workspace)

    def test_child_logger(self, local_engine):
        assert local_engine.create_child_logger("host").name == "taskengine.host"

    @pytest.mark.asyncio
    async def test_run(self, local_engine, workspace):
        events = []
        local_engine.subscribe(events.append, [TaskEventType.COMPLETED])

        snapshot = await local_engine.run("What is in the workspace?")

        assert snapshot.status == TaskStatus.COMPLETED
        assert snapshot.result == "Two entries"
        assert snapshot.workspace_root == str(workspace.resolve())
        assert "README.md" in snapshot.tool_results[0].output
        assert local_engine.get_task(snapshot.id) == snapshot
        assert [task.id for task in local_engine.list_tasks()] == [snapshot.id]
        assert len(events) == 1

        local_engine.remove_task(snapshot.id)
        assert local_engine.list_tasks() == []

    @pytest.mark.asyncio
    async def test_approval_through_engine(self, platform, settings, workspace):
        client = ScriptedModelClient(
            [respond("", tool_call("write_file", path="out.txt", content="ok")), respond("Wrote it")]
        )
        engine = Engine(platform, client, settings=settings)
        task = engine.create_task("Write out.txt")

        running = asyncio.create_task(engine.execute_task(task.id))
        await wait_for_status(engine.manager, task.id, TaskStatus.AWAITING_APPROVAL)
        assert engine.active_task_id == task.id
        engine.resolve_approval(task.id, True)
        snapshot = await running

        assert snapshot.status == TaskStatus.COMPLETED
        assert (workspace / "out.txt").read_text(encoding="utf-8") == "ok"

    @pytest.mark.asyncio
    async def test_shutdown_closes_capabilities(self, local_engine):
        await local_engine.shutdown()

        local_engine.platform.browser.close.assert_awaited_once()


class TestDependencyContainer:
    """Capability bundle assembly."""

    def test_defaults(self, workspace, tmp_path):
        container = DependencyContainer.create_local(str(workspace), config_home=tmp_path / "config_home")
        capabilities = container.capabilities

        assert capabilities.workspace.root_path == str(workspace)
        assert capabilities.logger is container.logger
        assert container.create_child_logger("x").name == "taskengine.x"

    @pytest.mark.asyncio
    async def test_shutdown_logs_close_errors(self, workspace, tmp_path):
        browser = FakeBrowser()
        browser.close = AsyncMock(side_effect=RuntimeError("already closed"))
        container = DependencyContainer(str(workspace), config_home=tmp_path / "config_home", browser=browser)

        await container.shutdown()

        browser.close.assert_awaited_once()

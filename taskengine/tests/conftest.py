"""Shared fixtures: a temporary workspace, headless platform and a scripted model."""

import asyncio
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Union

import pytest

from taskengine.container import DependencyContainer
from taskengine.core.settings import EngineSettings
from taskengine.platform.interfaces import PlatformCapabilities
from taskengine.platform.local import HeadlessNotification
from taskengine.platform.models import PageSnapshot
from taskengine.task.manager import TaskManager
from taskengine.task.model_client import ModelRequest, ModelResponse
from taskengine.task.models import TaskStatus
from taskengine.tools.builtin import create_default_registry
from taskengine.tools.models import ToolCallRequest

ScriptStep = Union[ModelResponse, Exception, Callable[[ModelRequest], ModelResponse]]


def tool_call(tool_name: str, call_id: Optional[str] = None, **parameters: Any) -> ToolCallRequest:
    return ToolCallRequest(tool_name=tool_name, parameters=parameters, call_id=call_id)


def respond(text: str = "", *calls: ToolCallRequest) -> ModelResponse:
    return ModelResponse(text=text, tool_calls=tuple(calls))


class ScriptedModelClient:
    """Model collaborator stub replaying a fixed script.

    Each step is a response, an exception to raise, or a callable taking
    the request. With ``repeat_last`` the final step repeats forever.
    """

    def __init__(self, steps: Sequence[ScriptStep], repeat_last: bool = False, delay: float = 0.0):
        self.steps: List[ScriptStep] = list(steps)
        self.repeat_last = repeat_last
        self.delay = delay
        self.requests: List[ModelRequest] = []

    async def complete(self, request: ModelRequest) -> ModelResponse:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        index = len(self.requests) - 1
        if index >= len(self.steps):
            if not self.repeat_last or not self.steps:
                raise RuntimeError("Model script exhausted")
            index = len(self.steps) - 1
        step = self.steps[index]
        if isinstance(step, Exception):
            raise step
        if callable(step) and not isinstance(step, ModelResponse):
            return step(request)
        return step


class FakeBrowser:
    """Browser capability returning canned pages."""

    def __init__(self):
        self.visited: List[str] = []

    async def navigate(self, url: str, timeout: float = 30.0) -> PageSnapshot:
        self.visited.append(url)
        return PageSnapshot(
            url=url, status=200, title="Example Domain", text="Example text", content_type="text/html"
        )


async def wait_for_status(manager: TaskManager, task_id: str, status: TaskStatus, timeout: float = 5.0) -> None:
    """Poll until the task reaches ``status``."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while manager.get_task(task_id).status != status:
        if loop.time() > deadline:
            raise AssertionError(f"Task {task_id} never reached {status.value}")
        await asyncio.sleep(0.01)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    (root / "src").mkdir(parents=True)
    (root / "README.md").write_text("# Demo\n\nA demo project.\n", encoding="utf-8")
    (root / "src" / "main.py").write_text(
        "def main():\n    print('hello')\n\n\nif __name__ == '__main__':\n    main()\n", encoding="utf-8"
    )
    return root


@pytest.fixture
def notification() -> HeadlessNotification:
    return HeadlessNotification()


@pytest.fixture
def browser() -> FakeBrowser:
    return FakeBrowser()


@pytest.fixture
def platform(workspace: Path, tmp_path: Path, notification, browser) -> PlatformCapabilities:
    container = DependencyContainer(
        workspace_path=str(workspace),
        config_home=tmp_path / "config_home",
        notification=notification,
        browser=browser,
    )
    return container.capabilities


@pytest.fixture
def settings(workspace: Path) -> EngineSettings:
    return EngineSettings(_env_file=None, max_iterations=5, workspace_root=workspace)


@pytest.fixture
def registry():
    return create_default_registry()


def make_manager(platform, settings, steps, registry=None, **client_kwargs) -> TaskManager:
    client = ScriptedModelClient(steps, **client_kwargs)
    return TaskManager(
        model_client=client,
        registry=registry or create_default_registry(),
        platform=platform,
        settings=settings,
    )

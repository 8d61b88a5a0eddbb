"""Engine: composition root wiring platform, tools and task manager."""

from typing import Any, AsyncIterator, Callable, Iterable, List, Optional, Union

from taskengine.container import DependencyContainer
from taskengine.core.settings import EngineSettings
from taskengine.platform.interfaces import Logger, PlatformCapabilities
from taskengine.task.events import TaskEvent, TaskEventListener, TaskEventType
from taskengine.task.manager import TaskManager
from taskengine.task.model_client import ModelClient
from taskengine.task.models import TaskConfig, TaskInput, TaskSnapshot
from taskengine.tools.approval import ApprovalDecision
from taskengine.tools.builtin import create_default_registry
from taskengine.tools.registry import ToolRegistry


class Engine:
    """Host-facing entry point.

    A host builds one ``Engine`` per session from its platform
    capabilities and a model client, then drives tasks through it and
    relays its events.
    """

    def __init__(
        self,
        platform: PlatformCapabilities,
        model_client: ModelClient,
        settings: Optional[EngineSettings] = None,
        registry: Optional[ToolRegistry] = None,
    ):
        self.platform = platform
        self.settings = settings or EngineSettings()
        self.logger = platform.create_child_logger("engine")
        self.registry = registry or create_default_registry(ToolRegistry(platform.create_child_logger("tools")))
        self.container: Optional[DependencyContainer] = None
        self.manager = TaskManager(
            model_client=model_client,
            registry=self.registry,
            platform=platform,
            settings=self.settings,
        )
        self.logger.info(f"Engine ready with {len(self.registry)} tools")

    @classmethod
    def create_local(
        cls,
        model_client: ModelClient,
        workspace_path: Optional[str] = None,
        settings: Optional[EngineSettings] = None,
        **overrides: Any,
    ) -> "Engine":
        """Engine over local-process capabilities; ``overrides`` replace single capabilities."""
        settings = settings or EngineSettings()
        if workspace_path is None and settings.workspace_root is not None:
            workspace_path = str(settings.workspace_root)
        container = DependencyContainer.create_local(workspace_path, **overrides)
        container.logger.set_level(settings.log_level)
        engine = cls(container.capabilities, model_client, settings=settings)
        engine.container = container
        return engine

    async def shutdown(self) -> None:
        """Cancel the active task and release capability resources."""
        active = self.manager.active_task_id
        if active is not None:
            self.manager.cancel_task(active)
        if self.container is not None:
            await self.container.shutdown()
        self.logger.info("Engine shut down")

    @property
    def active_task_id(self) -> Optional[str]:
        return self.manager.active_task_id

    def create_task(
        self, task_input: Union[str, TaskInput], config: Optional[TaskConfig] = None
    ) -> TaskSnapshot:
        return self.manager.create_task(task_input, config)

    async def execute_task(self, task_id: str) -> TaskSnapshot:
        return await self.manager.execute_task(task_id)

    async def run(self, task_input: Union[str, TaskInput], config: Optional[TaskConfig] = None) -> TaskSnapshot:
        """Create and execute a task in one call."""
        snapshot = self.create_task(task_input, config)
        return await self.execute_task(snapshot.id)

    def resolve_approval(
        self, task_id: str, decision: Union[ApprovalDecision, bool], reason: Optional[str] = None
    ) -> TaskSnapshot:
        return self.manager.resolve_approval(task_id, decision, reason)

    def cancel_task(self, task_id: str) -> TaskSnapshot:
        return self.manager.cancel_task(task_id)

    def get_task(self, task_id: str) -> TaskSnapshot:
        return self.manager.get_task(task_id)

    def list_tasks(self) -> List[TaskSnapshot]:
        return self.manager.list_tasks()

    def remove_task(self, task_id: str) -> TaskSnapshot:
        return self.manager.remove_task(task_id)

    def subscribe(
        self, listener: TaskEventListener, event_types: Optional[Iterable[TaskEventType]] = None
    ) -> Callable[[], None]:
        return self.manager.subscribe(listener, event_types)

    def events(self, event_types: Optional[Iterable[TaskEventType]] = None) -> AsyncIterator[TaskEvent]:
        return self.manager.events(event_types)

    def create_child_logger(self, prefix: str) -> Logger:
        return self.platform.create_child_logger(prefix)

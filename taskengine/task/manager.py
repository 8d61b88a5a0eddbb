"""Task manager: creation, the single-active-task rule and event fan-out."""

import os
import threading
import uuid
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional, Union

from taskengine.core.errors import (
    AlreadyRunningError,
    ConfigurationError,
    ConfigurationErrorContext,
    InvalidStateError,
    TaskNotFoundError,
)
from taskengine.core.settings import EngineSettings
from taskengine.platform.interfaces import PlatformCapabilities
from taskengine.tools.approval import ApprovalDecision, ApprovalPolicy
from taskengine.tools.registry import ToolRegistry

from .events import EventBus, TaskEvent, TaskEventListener, TaskEventType
from .model_client import ModelClient
from .models import TaskConfig, TaskInput, TaskSnapshot, TaskStatus
from .task import Task


class TaskManager:
    """Holds tasks by id and runs at most one of them at a time.

    The task map and the active-task slot are guarded by a lock, so the
    single-active check and the slot reservation are one atomic step even
    when the manager is driven from several threads.
    """

    def __init__(
        self,
        model_client: ModelClient,
        registry: ToolRegistry,
        platform: PlatformCapabilities,
        settings: Optional[EngineSettings] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.model_client = model_client
        self.registry = registry
        self.platform = platform
        self.settings = settings or EngineSettings()
        self.event_bus = event_bus or EventBus()
        self.logger = platform.create_child_logger("task_manager")
        self._tasks: Dict[str, Task] = {}
        self._active_task_id: Optional[str] = None
        self._lock = threading.RLock()

    @property
    def active_task_id(self) -> Optional[str]:
        return self._active_task_id

    def _require(self, task_id: str, operation: str) -> Task:
        with self._lock:
            task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id, operation=operation)
        return task

    def _resolve_workspace_root(self, config: TaskConfig) -> str:
        root = config.workspace_root
        if root is None and self.settings.workspace_root is not None:
            root = str(self.settings.workspace_root)
        if root is None:
            root = self.platform.workspace.root_path
        if root is None or not os.path.isdir(root):
            raise ConfigurationError(
                f"Workspace root is not an existing directory: {root}",
                config_context=ConfigurationErrorContext(
                    config_key="workspace_root",
                    config_section="task",
                    expected_type="directory",
                    actual_value=str(root),
                ),
                component="task_manager",
                operation="create_task",
            )
        return os.path.realpath(root)

    def create_task(
        self, task_input: Union[str, TaskInput], config: Optional[TaskConfig] = None
    ) -> TaskSnapshot:
        """Allocate a task in ``pending``. Never starts it."""
        if isinstance(task_input, str):
            task_input = TaskInput(text=task_input)
        config = config or TaskConfig()
        settings = self.settings

        policy = ApprovalPolicy(auto_approve=list(settings.auto_approve) + list(config.auto_approve))
        task = Task(
            task_id=str(uuid.uuid4()),
            task_input=task_input,
            workspace_root=self._resolve_workspace_root(config),
            model_client=self.model_client,
            registry=self.registry,
            platform=self.platform,
            approval_policy=policy,
            max_iterations=config.max_iterations or settings.max_iterations,
            rejection_policy=config.rejection_policy or settings.rejection_policy,
            approval_timeout_seconds=(
                config.approval_timeout_seconds
                if config.approval_timeout_seconds is not None
                else settings.approval_timeout_seconds
            ),
            allow_shell_operators=settings.allow_shell_operators,
            command_timeout_seconds=settings.command_timeout_seconds,
            max_output_chars=settings.max_output_chars,
            emit=self.event_bus.emit,
        )
        with self._lock:
            self._tasks[task.id] = task
        self.logger.info(f"Created task {task.id}")
        self.event_bus.emit(
            TaskEvent(
                type=TaskEventType.CREATED,
                task_id=task.id,
                payload={"input": task_input.text, "workspace_root": task.workspace_root},
            )
        )
        return task.snapshot()

    async def execute_task(self, task_id: str) -> TaskSnapshot:
        """Run a pending task to a terminal state.

        Raises:
            TaskNotFoundError: Unknown id
            AlreadyRunningError: A task, this one included, is already active
            InvalidStateError: The task is not pending
        """
        with self._lock:
            task = self._require(task_id, "execute_task")
            active = self._active_task_id
            if active is not None:
                raise AlreadyRunningError(task_id, active)
            if task.status != TaskStatus.PENDING:
                raise InvalidStateError(
                    f"Task {task_id} cannot be executed from status {task.status.value}",
                    component="task_manager",
                    operation="execute_task",
                    task_id=task_id,
                )
            self._active_task_id = task_id

        try:
            return await task.run()
        finally:
            with self._lock:
                self._active_task_id = None

    def resolve_approval(
        self, task_id: str, decision: Union[ApprovalDecision, bool], reason: Optional[str] = None
    ) -> TaskSnapshot:
        if isinstance(decision, bool):
            decision = ApprovalDecision(approved=decision, reason=reason)
        task = self._require(task_id, "resolve_approval")
        task.resolve_approval(decision)
        self.logger.info(f"Task {task_id}: approval {'granted' if decision.approved else 'rejected'}")
        return task.snapshot()

    def cancel_task(self, task_id: str) -> TaskSnapshot:
        """Request cancellation; a no-op for terminal tasks."""
        task = self._require(task_id, "cancel_task")
        if task.request_cancel():
            self.logger.info(f"Cancellation requested for task {task_id}")
        return task.snapshot()

    def get_task(self, task_id: str) -> TaskSnapshot:
        return self._require(task_id, "get_task").snapshot()

    def list_tasks(self) -> List[TaskSnapshot]:
        """Snapshots of every held task, oldest first."""
        with self._lock:
            tasks = list(self._tasks.values())
        return [task.snapshot() for task in tasks]

    def remove_task(self, task_id: str) -> TaskSnapshot:
        with self._lock:
            task = self._require(task_id, "remove_task")
            if self._active_task_id == task_id or task.status in (TaskStatus.RUNNING, TaskStatus.AWAITING_APPROVAL):
                raise InvalidStateError(
                    f"Task {task_id} is active and cannot be removed",
                    component="task_manager",
                    operation="remove_task",
                    task_id=task_id,
                )
            del self._tasks[task_id]
        self.logger.debug(f"Removed task {task_id}")
        return task.snapshot()

    def subscribe(
        self, listener: TaskEventListener, event_types: Optional[Iterable[TaskEventType]] = None
    ) -> Callable[[], None]:
        return self.event_bus.subscribe(listener, event_types)

    def events(self, event_types: Optional[Iterable[TaskEventType]] = None) -> AsyncIterator[TaskEvent]:
        return self.event_bus.stream(event_types)

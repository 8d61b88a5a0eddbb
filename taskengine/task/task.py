"""Task: one instruction driven through the model/tool loop.

A task owns its status and exchange history. Only the coroutine running
``Task.run`` appends to the history; ``request_cancel`` and
``resolve_approval`` may be called from elsewhere and only touch the
cancel flag, the pending approval, or (for tasks not mid-step) the status.

Loop outline::

    pending -> running
    repeat up to max_iterations:
        ask the model
        plain text            -> completed
        for each tool call:
            prepare (schema, sandbox, policy)
            needs approval    -> awaiting_approval -> running
            run, append result turn
    bound exhausted           -> failed (iteration_limit_exceeded)
"""

import asyncio
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from taskengine.core.errors import (
    ErrorKind,
    InvalidStateError,
    InvalidStateTransition,
    IterationLimitExceeded,
    ProviderError,
    StateErrorContext,
)
from taskengine.core.settings import RejectionPolicy
from taskengine.platform.interfaces import PlatformCapabilities
from taskengine.platform.models import SystemSnapshot
from taskengine.tools.approval import ApprovalDecision, ApprovalPolicy
from taskengine.tools.models import ToolCallRequest, ToolContext, ToolInvocation, ToolResult
from taskengine.tools.registry import ToolRegistry

from .events import TaskEvent, TaskEventType
from .model_client import ModelClient, ModelRequest, ModelResponse
from .models import (
    TERMINAL_STATUSES,
    TRANSITIONS,
    FailureReason,
    ModelTurn,
    PendingApproval,
    TaskError,
    TaskInput,
    TaskSnapshot,
    TaskStatus,
    ToolResultTurn,
)

# Failure kinds that are fed back to the model once; a repeat on the very
# next invocation of the same tool fails the task
RETRY_ONCE_KINDS: Dict[ErrorKind, FailureReason] = {
    ErrorKind.SANDBOX_VIOLATION: FailureReason.SANDBOX_DENIED,
    ErrorKind.UNAVAILABLE: FailureReason.TOOL_FAILURE,
    ErrorKind.INTERNAL: FailureReason.TOOL_FAILURE,
}


class Task:
    """Stateful executor for a single task."""

    def __init__(
        self,
        task_id: str,
        task_input: TaskInput,
        workspace_root: str,
        model_client: ModelClient,
        registry: ToolRegistry,
        platform: PlatformCapabilities,
        approval_policy: ApprovalPolicy,
        max_iterations: int = 10,
        rejection_policy: RejectionPolicy = RejectionPolicy.CONTINUE,
        approval_timeout_seconds: Optional[float] = None,
        allow_shell_operators: bool = False,
        command_timeout_seconds: int = 30,
        max_output_chars: int = 30000,
        emit: Optional[Callable[[TaskEvent], None]] = None,
    ):
        self.id = task_id
        self.input = task_input
        self.workspace_root = workspace_root
        self.max_iterations = max_iterations
        self.rejection_policy = rejection_policy
        self.approval_timeout_seconds = approval_timeout_seconds

        self._model_client = model_client
        self._registry = registry
        self._platform = platform
        self._emit_callback = emit
        self.logger = platform.create_child_logger("task")
        self._context = ToolContext(
            task_id=task_id,
            workspace_root=workspace_root,
            platform=platform,
            approval_policy=approval_policy,
            allow_shell_operators=allow_shell_operators,
            command_timeout_seconds=command_timeout_seconds,
            max_output_chars=max_output_chars,
        )

        self._lock = threading.RLock()
        self._status = TaskStatus.PENDING
        self._history: List[Any] = []
        self._cancel_requested = False
        self._approval_future: Optional["asyncio.Future[Optional[ApprovalDecision]]"] = None
        self._decision_pending = False
        self._system: Optional[SystemSnapshot] = None

        self.created_at = datetime.now()
        self.started_at: Optional[datetime] = None
        self.completed_at: Optional[datetime] = None
        self.iterations = 0
        self.pending_approval: Optional[PendingApproval] = None
        self.result: Optional[str] = None
        self.error: Optional[TaskError] = None

    @property
    def status(self) -> TaskStatus:
        return self._status

    @property
    def is_terminal(self) -> bool:
        return self._status in TERMINAL_STATUSES

    def snapshot(self) -> TaskSnapshot:
        with self._lock:
            return TaskSnapshot(
                id=self.id,
                input=self.input,
                status=self._status,
                workspace_root=self.workspace_root,
                history=tuple(self._history),
                iterations=self.iterations,
                max_iterations=self.max_iterations,
                created_at=self.created_at,
                started_at=self.started_at,
                completed_at=self.completed_at,
                pending_approval=self.pending_approval,
                result=self.result,
                error=self.error,
            )

    # State machine

    def _transition(self, new_status: TaskStatus) -> None:
        with self._lock:
            current = self._status
            if new_status not in TRANSITIONS[current]:
                raise InvalidStateTransition(
                    f"Task {self.id} cannot move from {current.value} to {new_status.value}",
                    state_context=StateErrorContext(
                        state_name=self.id,
                        state_type="task",
                        transition_from=current.value,
                        transition_to=new_status.value,
                    ),
                    component="task",
                    operation="transition",
                    task_id=self.id,
                )
            self._status = new_status
            if new_status in TERMINAL_STATUSES:
                self.completed_at = datetime.now()
        self.logger.debug(f"Task {self.id}: {current.value} -> {new_status.value}")

    def _emit(self, event_type: TaskEventType, payload: Optional[Dict[str, Any]] = None) -> None:
        if self._emit_callback is None:
            return
        self._emit_callback(TaskEvent(type=event_type, task_id=self.id, payload=payload or {}))

    def _append(self, turn: Any) -> None:
        with self._lock:
            if self._status in TERMINAL_STATUSES:
                raise InvalidStateError(
                    f"Task {self.id} is {self._status.value}; history is closed",
                    component="task",
                    operation="append",
                    task_id=self.id,
                )
            self._history.append(turn)

    def _complete(self, text: str) -> None:
        with self._lock:
            self._transition(TaskStatus.COMPLETED)
            self.result = text
        self.logger.info(f"Task {self.id} completed after {self.iterations} iteration(s)")
        self._emit(TaskEventType.COMPLETED, {"result": text, "iterations": self.iterations})

    def _fail(
        self,
        reason: FailureReason,
        message: str,
        error_kind: Optional[ErrorKind] = None,
        tool_name: Optional[str] = None,
    ) -> None:
        with self._lock:
            if self._status in TERMINAL_STATUSES:
                return
            if self._status == TaskStatus.AWAITING_APPROVAL:
                self.pending_approval = None
                self._transition(TaskStatus.RUNNING)
            self._transition(TaskStatus.FAILED)
            self.error = TaskError(reason=reason, message=message, error_kind=error_kind, tool_name=tool_name)
        self.logger.warn(f"Task {self.id} failed ({reason.value}): {message}")
        self._emit(TaskEventType.FAILED, self.error.model_dump(mode="json"))

    def _check_cancel(self) -> bool:
        """True if the loop must stop; moves to cancelled if a cancel is pending."""
        with self._lock:
            if self._status in TERMINAL_STATUSES:
                return True
            if not self._cancel_requested:
                return False
            self.pending_approval = None
            self._transition(TaskStatus.CANCELLED)
        self.logger.info(f"Task {self.id} cancelled")
        self._emit(TaskEventType.CANCELLED, {"iterations": self.iterations})
        return True

    # Control surface

    def request_cancel(self) -> bool:
        """Flag the task for cancellation.

        Pending and approval-blocked tasks are cancelled at once. A running
        task stops at its next boundary (before a model call or a tool
        invocation); an in-flight tool call is allowed to finish.

        Returns:
            False if the task was already terminal
        """
        with self._lock:
            if self._status in TERMINAL_STATUSES:
                return False
            self._cancel_requested = True
            if self._status == TaskStatus.RUNNING:
                return True
            if self._status == TaskStatus.AWAITING_APPROVAL:
                self.pending_approval = None
                self._settle_approval(None)
            self._transition(TaskStatus.CANCELLED)
        self.logger.info(f"Task {self.id} cancelled")
        self._emit(TaskEventType.CANCELLED, {"iterations": self.iterations})
        return True

    def resolve_approval(self, decision: ApprovalDecision) -> None:
        with self._lock:
            if self._status != TaskStatus.AWAITING_APPROVAL or not self._decision_pending:
                raise InvalidStateError(
                    f"Task {self.id} is not awaiting approval (status: {self._status.value})",
                    component="task",
                    operation="resolve_approval",
                    task_id=self.id,
                )
            self._settle_approval(decision)

    def _settle_approval(self, decision: Optional[ApprovalDecision]) -> None:
        future = self._approval_future
        self._decision_pending = False
        if future is None:
            return
        loop = future.get_loop()
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            _set_result(future, decision)
        else:
            loop.call_soon_threadsafe(_set_result, future, decision)

    # Loop

    async def run(self) -> TaskSnapshot:
        """Drive the task to a terminal state and return its final snapshot."""
        self._transition(TaskStatus.RUNNING)
        self.started_at = datetime.now()
        self.logger.info(f"Task {self.id} started in {self.workspace_root}")
        self._emit(TaskEventType.STARTED, {"input": self.input.text, "workspace_root": self.workspace_root})

        try:
            self._system = self._platform.system_info.snapshot()
            await self._loop()
        except IterationLimitExceeded as e:
            self._fail(FailureReason.ITERATION_LIMIT_EXCEEDED, e.message, e.kind)
        except ProviderError as e:
            self._fail(FailureReason.PROVIDER_UNAVAILABLE, str(e), e.kind)
        except asyncio.CancelledError:
            with self._lock:
                self._cancel_requested = True
            self._check_cancel()
            raise
        except Exception as e:
            self.logger.error(f"Task {self.id} crashed", exc=e)
            self._fail(FailureReason.INTERNAL_ERROR, f"{type(e).__name__}: {e}", ErrorKind.INTERNAL)

        return self.snapshot()

    async def _loop(self) -> None:
        last_failure: Optional[Tuple[str, ErrorKind]] = None

        for iteration in range(1, self.max_iterations + 1):
            if self._check_cancel():
                return
            self.iterations = iteration

            response = await self._ask_model(iteration)
            if self._check_cancel():
                return
            self._append(ModelTurn(text=response.text, tool_calls=response.tool_calls, iteration=iteration))
            self._emit(
                TaskEventType.PROGRESS,
                {
                    "iteration": iteration,
                    "text": response.text,
                    "tool_calls": [call.tool_name for call in response.tool_calls],
                },
            )

            if response.is_final:
                self._complete(response.text)
                return

            for call in response.tool_calls:
                if self._check_cancel():
                    return
                turn = await self._invoke(call)
                if turn is None:
                    return
                self._append(turn)
                self._emit(TaskEventType.TOOL_EXECUTED, turn.model_dump(mode="json", exclude={"kind"}))

                if not turn.success and turn.error_kind in RETRY_ONCE_KINDS:
                    key = (turn.tool_name, turn.error_kind)
                    if last_failure == key:
                        self._fail(
                            RETRY_ONCE_KINDS[turn.error_kind],
                            f"Tool '{turn.tool_name}' failed twice in a row: {turn.message}",
                            turn.error_kind,
                            turn.tool_name,
                        )
                        return
                    last_failure = key
                else:
                    last_failure = None

                if turn.declined and self.rejection_policy == RejectionPolicy.TERMINATE:
                    self._fail(
                        FailureReason.TOOL_DECLINED,
                        f"Tool '{turn.tool_name}' was declined: {turn.message}",
                        ErrorKind.DECLINED,
                        turn.tool_name,
                    )
                    return

        if self._check_cancel():
            return
        raise IterationLimitExceeded(self.id, self.max_iterations)

    async def _ask_model(self, iteration: int) -> ModelResponse:
        with self._lock:
            history = tuple(self._history)
        request = ModelRequest(
            task_id=self.id,
            input=self.input,
            history=history,
            tools=tuple(self._registry.specs()),
            workspace_root=self.workspace_root,
            iteration=iteration,
            max_iterations=self.max_iterations,
            system=self._system,
        )
        try:
            response = await self._model_client.complete(request)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise ProviderError(
                f"Model request failed: {e}", cause=e, component="task", operation="complete", task_id=self.id
            ) from e
        if not isinstance(response, ModelResponse):
            raise ProviderError(
                f"Model client returned {type(response).__name__}, expected ModelResponse",
                component="task",
                operation="complete",
                task_id=self.id,
            )
        return response

    async def _invoke(self, call: ToolCallRequest) -> Optional[ToolResultTurn]:
        """Run one tool call; None means the task stopped while waiting."""
        requested_at = datetime.now()
        prepared = self._registry.prepare(call, self._context)
        if isinstance(prepared, ToolResult):
            return self._result_turn(call, call.parameters, prepared, requested_at)

        if prepared.requires_approval:
            decision = await self._await_approval(prepared)
            if decision is None:
                return None
            if not decision.approved:
                prepared.outcome = ToolResult.failure(
                    prepared.tool_name, ErrorKind.DECLINED, decision.reason or "Declined by user"
                )
                return self._result_turn(call, prepared.parameters, prepared.outcome, requested_at)
            if self._check_cancel():
                return None

        result = await self._registry.run(prepared, self._context)
        return self._result_turn(call, prepared.parameters, result, requested_at)

    async def _await_approval(self, invocation: ToolInvocation) -> Optional[ApprovalDecision]:
        loop = asyncio.get_running_loop()
        with self._lock:
            self._transition(TaskStatus.AWAITING_APPROVAL)
            self.pending_approval = PendingApproval(
                tool_name=invocation.tool_name,
                call_id=invocation.request.call_id,
                parameters=invocation.parameters,
                side_effect_class=invocation.descriptor.side_effect_class,
                requested_at=invocation.requested_at,
            )
            future: "asyncio.Future[Optional[ApprovalDecision]]" = loop.create_future()
            self._approval_future = future
            self._decision_pending = True
        self._emit(TaskEventType.APPROVAL_REQUIRED, self.pending_approval.model_dump(mode="json"))

        try:
            if self.approval_timeout_seconds is None:
                decision = await future
            else:
                decision = await asyncio.wait_for(asyncio.shield(future), self.approval_timeout_seconds)
        except asyncio.TimeoutError:
            decision = ApprovalDecision.reject(
                f"No approval decision within {self.approval_timeout_seconds} seconds"
            )

        with self._lock:
            self._approval_future = None
            self._decision_pending = False
            self.pending_approval = None
            if self._status in TERMINAL_STATUSES or decision is None:
                return None
            self._transition(TaskStatus.RUNNING)
        self._emit(
            TaskEventType.PROGRESS,
            {
                "iteration": self.iterations,
                "approval": "approved" if decision.approved else "rejected",
                "tool_name": invocation.tool_name,
                "reason": decision.reason,
            },
        )
        return decision

    def _result_turn(
        self,
        call: ToolCallRequest,
        parameters: Dict[str, Any],
        result: ToolResult,
        requested_at: datetime,
    ) -> ToolResultTurn:
        return ToolResultTurn(
            tool_name=call.tool_name,
            call_id=call.call_id,
            parameters=parameters,
            success=result.success,
            output=result.output,
            error_kind=result.error_kind,
            message=result.message,
            requested_at=requested_at,
        )


def _set_result(future: "asyncio.Future[Optional[ApprovalDecision]]", value: Optional[ApprovalDecision]) -> None:
    if not future.done():
        future.set_result(value)

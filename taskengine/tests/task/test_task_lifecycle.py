"""Tests for the task loop: iterations, approvals, failures and events."""

import asyncio

import pytest

from taskengine.core.errors import ErrorKind, InvalidStateError
from taskengine.core.settings import RejectionPolicy
from taskengine.task.events import TaskEventType
from taskengine.task.models import FailureReason, ModelTurn, TaskConfig, TaskStatus, ToolResultTurn
from taskengine.tests.conftest import make_manager, respond, tool_call, wait_for_status

ESCAPE = tool_call("read_file", call_id="c-1", path="../../etc/passwd")
READ_README = tool_call("read_file", call_id="c-2", path="README.md")
WRITE_NOTES = tool_call("write_file", call_id="c-3", path="notes.txt", content="hello\n")


class TestCompletion:
    """Tasks that finish with a final model answer."""

    @pytest.mark.asyncio
    async def test_immediate_answer(self, platform, settings):
        manager = make_manager(platform, settings, [respond("All done")])
        task = manager.create_task("Say hi")

        snapshot = await manager.execute_task(task.id)

        assert snapshot.status == TaskStatus.COMPLETED
        assert snapshot.result == "All done"
        assert len(snapshot.history) == 1
        assert isinstance(snapshot.history[0], ModelTurn)
        assert snapshot.iterations == 1
        assert snapshot.started_at is not None and snapshot.completed_at is not None

    @pytest.mark.asyncio
    async def test_tool_result_feeds_next_request(self, platform, settings):
        manager = make_manager(platform, settings, [respond("Reading", READ_README), respond("It is a demo")])
        task = manager.create_task("What is this project?")

        snapshot = await manager.execute_task(task.id)

        assert snapshot.status == TaskStatus.COMPLETED
        assert [type(turn) for turn in snapshot.history] == [ModelTurn, ToolResultTurn, ModelTurn]
        assert [turn.iteration for turn in snapshot.model_turns] == [1, 2]
        tool_turn = snapshot.tool_results[0]
        assert tool_turn.success is True
        assert tool_turn.call_id == "c-2"
        assert "# Demo" in tool_turn.output

        requests = manager.model_client.requests
        assert requests[0].history == ()
        assert len(requests[0].tools) == 7
        assert requests[1].history == snapshot.history[:2]
        assert requests[1].iteration == 2
        assert requests[0].system is not None

    @pytest.mark.asyncio
    async def test_sandbox_violation_is_fed_back(self, platform, settings):
        manager = make_manager(platform, settings, [respond("", ESCAPE), respond("Cannot read that")])
        task = manager.create_task("Read /etc/passwd")

        snapshot = await manager.execute_task(task.id)

        assert snapshot.status == TaskStatus.COMPLETED
        assert len(snapshot.history) == 3
        failed = snapshot.tool_results[0]
        assert failed.success is False
        assert failed.error_kind == ErrorKind.SANDBOX_VIOLATION

    @pytest.mark.asyncio
    async def test_write_outside_workspace_is_refused_before_approval(self, platform, settings, tmp_path):
        escape = tool_call("write_file", path="../../etc/passwd", content="root::0:0")
        manager = make_manager(platform, settings, [respond("", escape), respond("Refused")])
        statuses = []
        manager.subscribe(lambda event: statuses.append(manager.get_task(event.task_id).status))
        task = manager.create_task("Overwrite passwd")

        snapshot = await manager.execute_task(task.id)

        assert snapshot.status == TaskStatus.COMPLETED
        assert snapshot.tool_results[0].error_kind == ErrorKind.SANDBOX_VIOLATION
        assert TaskStatus.AWAITING_APPROVAL not in statuses
        assert not (tmp_path.parent / "etc" / "passwd").exists()

    @pytest.mark.asyncio
    async def test_history_is_append_only(self, platform, settings):
        manager = make_manager(
            platform, settings, [respond("", READ_README), respond("", READ_README), respond("done")]
        )
        task = manager.create_task("Read twice")
        seen = []
        manager.subscribe(
            lambda event: seen.append(manager.get_task(event.task_id).history),
            [TaskEventType.PROGRESS, TaskEventType.TOOL_EXECUTED],
        )

        final = await manager.execute_task(task.id)

        assert len(seen) == 5
        for earlier, later in zip(seen, seen[1:]):
            assert later[:len(earlier)] == earlier
            assert len(later) == len(earlier) + 1
        assert final.history[:len(seen[-1])] == seen[-1]


class TestFailures:
    """Tasks that end in failed."""

    @pytest.mark.asyncio
    async def test_iteration_limit(self, platform, settings):
        manager = make_manager(platform, settings, [respond("", READ_README)], repeat_last=True)
        task = manager.create_task("Loop forever", TaskConfig(max_iterations=3))

        snapshot = await manager.execute_task(task.id)

        assert snapshot.status == TaskStatus.FAILED
        assert snapshot.error.reason == FailureReason.ITERATION_LIMIT_EXCEEDED
        assert len(snapshot.history) == 6
        assert len(manager.model_client.requests) == 3

    @pytest.mark.asyncio
    async def test_provider_failure(self, platform, settings):
        manager = make_manager(platform, settings, [ConnectionError("model offline")])
        task = manager.create_task("Anything")

        snapshot = await manager.execute_task(task.id)

        assert snapshot.status == TaskStatus.FAILED
        assert snapshot.error.reason == FailureReason.PROVIDER_UNAVAILABLE
        assert "model offline" in snapshot.error.message
        assert snapshot.history == ()

    @pytest.mark.asyncio
    async def test_malformed_model_response(self, platform, settings):
        manager = make_manager(platform, settings, [lambda request: "not a response"])
        task = manager.create_task("Anything")

        snapshot = await manager.execute_task(task.id)

        assert snapshot.error.reason == FailureReason.PROVIDER_UNAVAILABLE
        assert "str" in snapshot.error.message

    @pytest.mark.asyncio
    async def test_repeated_sandbox_violation(self, platform, settings):
        manager = make_manager(platform, settings, [respond("", ESCAPE)], repeat_last=True)
        task = manager.create_task("Keep escaping")

        snapshot = await manager.execute_task(task.id)

        assert snapshot.status == TaskStatus.FAILED
        assert snapshot.error.reason == FailureReason.SANDBOX_DENIED
        assert snapshot.error.tool_name == "read_file"
        assert len(snapshot.history) == 4

    @pytest.mark.asyncio
    async def test_retry_resets_after_success(self, platform, settings):
        manager = make_manager(
            platform,
            settings,
            [respond("", ESCAPE), respond("", READ_README), respond("", ESCAPE), respond("done")],
        )
        task = manager.create_task("Mixed")

        snapshot = await manager.execute_task(task.id)

        assert snapshot.status == TaskStatus.COMPLETED
        assert [turn.success for turn in snapshot.tool_results] == [False, True, False]

    @pytest.mark.asyncio
    async def test_validation_errors_do_not_fail_the_task(self, platform, settings):
        bad = tool_call("read_file", offset=1)
        manager = make_manager(platform, settings, [respond("", bad), respond("", bad), respond("gave up")])
        task = manager.create_task("Bad calls")

        snapshot = await manager.execute_task(task.id)

        assert snapshot.status == TaskStatus.COMPLETED
        assert all(turn.error_kind == ErrorKind.VALIDATION for turn in snapshot.tool_results)


class TestApproval:
    """Write, execute and network tools wait for a decision."""

    @pytest.mark.asyncio
    async def test_rejection_continues(self, platform, settings, workspace):
        manager = make_manager(platform, settings, [respond("Writing", WRITE_NOTES), respond("Okay, skipped")])
        task = manager.create_task("Write notes")

        running = asyncio.create_task(manager.execute_task(task.id))
        await wait_for_status(manager, task.id, TaskStatus.AWAITING_APPROVAL)

        waiting = manager.get_task(task.id)
        assert waiting.pending_approval.tool_name == "write_file"
        assert waiting.pending_approval.parameters["path"] == "notes.txt"
        assert waiting.pending_approval.call_id == "c-3"

        manager.resolve_approval(task.id, False)
        snapshot = await running

        assert snapshot.status == TaskStatus.COMPLETED
        assert snapshot.pending_approval is None
        declined = snapshot.tool_results[0]
        assert declined.declined is True
        assert declined.message == "Declined by user"
        assert not (workspace / "notes.txt").exists()

    @pytest.mark.asyncio
    async def test_command_rejection_resumes(self, platform, settings):
        command = tool_call("execute_command", command="echo hi")
        manager = make_manager(platform, settings, [respond("", command), respond("Not run")])
        task = manager.create_task("Run echo")

        running = asyncio.create_task(manager.execute_task(task.id))
        await wait_for_status(manager, task.id, TaskStatus.AWAITING_APPROVAL)
        assert manager.get_task(task.id).pending_approval.side_effect_class.value == "execute"

        manager.resolve_approval(task.id, False)
        await wait_for_status(manager, task.id, TaskStatus.COMPLETED)
        snapshot = await running

        assert snapshot.tool_results[0].declined is True
        assert snapshot.result == "Not run"

    @pytest.mark.asyncio
    async def test_approval_runs_the_tool(self, platform, settings, workspace):
        manager = make_manager(platform, settings, [respond("", WRITE_NOTES), respond("Written")])
        task = manager.create_task("Write notes")

        running = asyncio.create_task(manager.execute_task(task.id))
        await wait_for_status(manager, task.id, TaskStatus.AWAITING_APPROVAL)
        manager.resolve_approval(task.id, True, "looks fine")
        snapshot = await running

        assert snapshot.status == TaskStatus.COMPLETED
        assert snapshot.tool_results[0].success is True
        assert (workspace / "notes.txt").read_text(encoding="utf-8") == "hello\n"

    @pytest.mark.asyncio
    async def test_rejection_terminates(self, platform, settings):
        manager = make_manager(platform, settings, [respond("", WRITE_NOTES)])
        task = manager.create_task("Write notes", TaskConfig(rejection_policy=RejectionPolicy.TERMINATE))

        running = asyncio.create_task(manager.execute_task(task.id))
        await wait_for_status(manager, task.id, TaskStatus.AWAITING_APPROVAL)
        manager.resolve_approval(task.id, False, "not now")
        snapshot = await running

        assert snapshot.status == TaskStatus.FAILED
        assert snapshot.error.reason == FailureReason.TOOL_DECLINED
        assert "not now" in snapshot.error.message
        assert len(snapshot.history) == 2

    @pytest.mark.asyncio
    async def test_timeout_is_a_rejection(self, platform, settings):
        manager = make_manager(platform, settings, [respond("", WRITE_NOTES), respond("Timed out")])
        task = manager.create_task("Write notes", TaskConfig(approval_timeout_seconds=0.05))

        snapshot = await manager.execute_task(task.id)

        assert snapshot.status == TaskStatus.COMPLETED
        assert snapshot.tool_results[0].declined is True
        assert "No approval decision" in snapshot.tool_results[0].message

    @pytest.mark.asyncio
    async def test_auto_approve(self, platform, settings, workspace):
        manager = make_manager(platform, settings, [respond("", WRITE_NOTES), respond("Written")])
        task = manager.create_task("Write notes", TaskConfig(auto_approve=("write_file",)))

        snapshot = await manager.execute_task(task.id)

        assert snapshot.status == TaskStatus.COMPLETED
        assert (workspace / "notes.txt").exists()

    @pytest.mark.asyncio
    async def test_resolve_without_pending_approval(self, platform, settings):
        manager = make_manager(platform, settings, [respond("done")])
        task = manager.create_task("Nothing to approve")

        with pytest.raises(InvalidStateError):
            manager.resolve_approval(task.id, True)


class TestTerminalStates:
    """Terminal tasks absorb every further request."""

    @pytest.mark.asyncio
    async def test_completed_task_is_final(self, platform, settings):
        manager = make_manager(platform, settings, [respond("done")])
        task = manager.create_task("Finish")
        final = await manager.execute_task(task.id)

        assert manager.cancel_task(task.id).status == TaskStatus.COMPLETED
        with pytest.raises(InvalidStateError):
            await manager.execute_task(task.id)
        with pytest.raises(InvalidStateError):
            manager.resolve_approval(task.id, True)
        assert manager.get_task(task.id).history == final.history


class TestEvents:
    """Lifecycle events arrive in order."""

    @pytest.mark.asyncio
    async def test_event_sequence(self, platform, settings):
        manager = make_manager(platform, settings, [respond("", READ_README), respond("done")])
        events = []
        manager.subscribe(events.append)

        task = manager.create_task("Read it")
        await manager.execute_task(task.id)

        assert [event.type for event in events] == [
            TaskEventType.CREATED,
            TaskEventType.STARTED,
            TaskEventType.PROGRESS,
            TaskEventType.TOOL_EXECUTED,
            TaskEventType.PROGRESS,
            TaskEventType.COMPLETED,
        ]
        assert all(event.task_id == task.id for event in events)
        assert events[3].payload["tool_name"] == "read_file"
        assert events[-1].payload["result"] == "done"
        assert events[-1].to_message()["taskId"] == task.id

    @pytest.mark.asyncio
    async def test_approval_events(self, platform, settings):
        manager = make_manager(platform, settings, [respond("", WRITE_NOTES), respond("done")])
        events = []
        manager.subscribe(events.append, [TaskEventType.APPROVAL_REQUIRED, TaskEventType.PROGRESS])
        task = manager.create_task("Write notes")

        running = asyncio.create_task(manager.execute_task(task.id))
        await wait_for_status(manager, task.id, TaskStatus.AWAITING_APPROVAL)
        manager.resolve_approval(task.id, True)
        await running

        required = [event for event in events if event.type == TaskEventType.APPROVAL_REQUIRED]
        assert len(required) == 1
        assert required[0].payload["tool_name"] == "write_file"
        assert required[0].payload["side_effect_class"] == "write"
        assert any(event.payload.get("approval") == "approved" for event in events)

    @pytest.mark.asyncio
    async def test_failed_event(self, platform, settings):
        manager = make_manager(platform, settings, [RuntimeError("down")])
        failures = []
        manager.subscribe(failures.append, [TaskEventType.FAILED])
        task = manager.create_task("Anything")

        await manager.execute_task(task.id)

        assert len(failures) == 1
        assert failures[0].payload["reason"] == "provider_unavailable"

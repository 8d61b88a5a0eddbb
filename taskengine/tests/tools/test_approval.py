"""Tests for ApprovalPolicy."""

import pytest

from taskengine.tools.approval import ApprovalDecision, ApprovalPolicy, PermissionLevel
from taskengine.tools.builtin.command import EXECUTE_COMMAND
from taskengine.tools.builtin.filesystem import READ_FILE, WRITE_FILE
from taskengine.tools.builtin.browser import BROWSER_ACTION


class TestApprovalPolicy:
    """Permission resolution order: explicit, auto-approve, class default."""

    def test_class_defaults(self):
        policy = ApprovalPolicy()

        assert policy.get_permission(READ_FILE) == PermissionLevel.ALLOW
        assert policy.requires_approval(WRITE_FILE)
        assert policy.requires_approval(EXECUTE_COMMAND)
        assert policy.requires_approval(BROWSER_ACTION)

    @pytest.mark.parametrize("entry", ["write_file", "write"])
    def test_auto_approve_by_name_or_class(self, entry):
        policy = ApprovalPolicy(auto_approve=[entry])

        assert not policy.requires_approval(WRITE_FILE)
        assert policy.requires_approval(EXECUTE_COMMAND)

    def test_explicit_level_wins(self):
        policy = ApprovalPolicy(auto_approve=["execute"])
        policy.set_permission("execute_command", PermissionLevel.DENY)
        policy.set_permission("read_file", PermissionLevel.ASK)

        assert policy.is_denied(EXECUTE_COMMAND)
        assert policy.requires_approval(READ_FILE)

    def test_with_auto_approve_copies(self):
        base = ApprovalPolicy()
        extended = base.with_auto_approve(["network"])

        assert not extended.requires_approval(BROWSER_ACTION)
        assert base.requires_approval(BROWSER_ACTION)

    def test_decision_helpers(self):
        assert ApprovalDecision.approve().approved is True
        rejected = ApprovalDecision.reject("not now")
        assert rejected.approved is False
        assert rejected.reason == "not now"

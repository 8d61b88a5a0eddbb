"""Tests for LocalTerminal."""

import sys

import pytest

from taskengine.core.errors import NotFoundError, OperationTimeoutError
from taskengine.platform.interfaces import Terminal
from taskengine.platform.local import LocalTerminal

pytestmark = pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX shell commands")


class TestLocalTerminal:
    """Shell execution with captured output."""

    def test_satisfies_protocol(self):
        assert isinstance(LocalTerminal(), Terminal)

    @pytest.mark.asyncio
    async def test_run_captures_output(self, tmp_path):
        result = await LocalTerminal().run("echo hello && echo oops 1>&2", cwd=str(tmp_path))

        assert result.exit_code == 0
        assert result.succeeded
        assert result.stdout.strip() == "hello"
        assert result.stderr.strip() == "oops"
        assert result.cwd == str(tmp_path)
        assert result.duration >= 0

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, tmp_path):
        result = await LocalTerminal().run("exit 3", cwd=str(tmp_path))

        assert result.exit_code == 3
        assert not result.succeeded

    @pytest.mark.asyncio
    async def test_environment(self, tmp_path):
        result = await LocalTerminal().run("echo $GREETING", cwd=str(tmp_path), env={"GREETING": "hi"})

        assert result.stdout.strip() == "hi"

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, tmp_path):
        terminal = LocalTerminal(kill_grace_seconds=1.0)

        with pytest.raises(OperationTimeoutError):
            await terminal.run("sleep 10", cwd=str(tmp_path), timeout=0.2)

    @pytest.mark.asyncio
    async def test_missing_cwd(self, tmp_path):
        with pytest.raises(NotFoundError):
            await LocalTerminal().run("echo hi", cwd=str(tmp_path / "nope"))

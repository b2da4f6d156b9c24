"""Tests for parallel execution of cluster commands."""

import asyncio
from unittest.mock import patch

import pytest

from segdispatch.commands import ShellCommand
from segdispatch.executor import ClusterExecutor, CommandFailedError
from segdispatch.scope import Scope

SCOPE = Scope.SEGMENTS_WITH_MASTER


def command(content, args):
    return ShellCommand(SCOPE, content, "", args)


class TestExecuteClusterCommand:
    def test_runs_every_command(self, tmp_path):
        commands = [
            command(-1, ["touch", str(tmp_path / "foo")]),
            command(0, ["touch", str(tmp_path / "baz")]),
        ]
        assert not any(cmd.completed for cmd in commands)

        output = ClusterExecutor().execute_cluster_command(SCOPE, commands)

        assert (tmp_path / "foo").exists()
        assert (tmp_path / "baz").exists()
        assert output.scope is SCOPE
        assert output.num_errors == 0
        assert output.failed_commands == []
        assert all(cmd.completed for cmd in output.commands)

    def test_spawn_failure_is_recorded(self, tmp_path):
        commands = [
            command(-1, ["touch", str(tmp_path / "foo")]),
            command(0, ["some-non-existent-command"]),
        ]

        output = ClusterExecutor().execute_cluster_command(SCOPE, commands)

        assert (tmp_path / "foo").exists()
        assert output.num_errors == 1
        assert len(output.failed_commands) == 1
        assert isinstance(output.failed_commands[0].error, FileNotFoundError)
        assert output.failed_commands[0] is output.commands[1]
        assert all(cmd.completed for cmd in output.commands)

    def test_non_zero_exit_captures_stderr(self):
        commands = [command(0, ["bash", "-c", "echo out; echo err >&2; exit 3"])]

        output = ClusterExecutor().execute_cluster_command(SCOPE, commands)

        failed = output.failed_commands[0]
        assert isinstance(failed.error, CommandFailedError)
        assert failed.error.returncode == 3
        assert str(failed.error) == "exit status 3"
        assert failed.stdout == "out\n"
        assert failed.stderr == "err\n"

    def test_results_keep_input_order(self):
        # The first command finishes last
        commands = [
            command(0, ["bash", "-c", "sleep 0.3; echo first"]),
            command(1, ["bash", "-c", "echo second"]),
            command(2, ["bash", "-c", "exit 1"]),
        ]

        output = ClusterExecutor().execute_cluster_command(SCOPE, commands)

        assert [cmd.content for cmd in output.commands] == [0, 1, 2]
        assert [cmd.stdout for cmd in output.commands] == ["first\n", "second\n", ""]
        assert output.num_errors == 1
        assert output.num_errors == sum(cmd.error is not None for cmd in output.commands)

    def test_empty_command_list(self):
        output = ClusterExecutor().execute_cluster_command(Scope.HOSTS, [])

        assert output.num_errors == 0
        assert output.commands == []

    def test_on_complete_called_per_command(self):
        seen = []
        commands = [command(0, ["true"]), command(1, ["false"])]

        ClusterExecutor(on_complete=seen.append).execute_cluster_command(SCOPE, commands)

        assert sorted(cmd.content for cmd in seen) == [0, 1]
        assert all(cmd.completed for cmd in seen)

    def test_rerun_clears_previous_results(self, tmp_path):
        marker = tmp_path / "ready"
        commands = [command(0, ["bash", "-c", f"echo checking >&2; test -e {marker}"])]
        executor = ClusterExecutor()

        first = executor.execute_cluster_command(SCOPE, commands)
        assert first.num_errors == 1

        marker.touch()
        second = executor.execute_cluster_command(SCOPE, commands)

        assert second.num_errors == 0
        assert commands[0].error is None
        assert commands[0].stderr == "checking\n"
        assert commands[0].completed

    @pytest.mark.asyncio
    async def test_on_complete_called_when_execute_raises(self):
        seen = []

        async def broken_execute(self, cmd):
            raise RuntimeError("boom")

        commands = [command(0, ["true"])]
        with patch.object(ClusterExecutor, "_execute", broken_execute):
            with pytest.raises(RuntimeError, match="boom"):
                await ClusterExecutor(on_complete=seen.append).run_all(SCOPE, commands)

        assert seen == commands
        assert commands[0].completed


class TestConcurrency:
    def test_invalid_limit(self):
        with pytest.raises(ValueError, match="at least 1"):
            ClusterExecutor(max_concurrency=0)

    @pytest.mark.asyncio
    async def test_commands_start_together_without_limit(self):
        running = 0
        peak = 0

        async def fake_execute(self, cmd):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        commands = [command(i, ["true"]) for i in range(10)]
        with patch.object(ClusterExecutor, "_execute", fake_execute):
            output = await ClusterExecutor().run_all(SCOPE, commands)

        assert peak == 10
        assert output.num_errors == 0

    @pytest.mark.asyncio
    async def test_limit_bounds_running_commands(self):
        running = 0
        peak = 0

        async def fake_execute(self, cmd):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        commands = [command(i, ["true"]) for i in range(10)]
        with patch.object(ClusterExecutor, "_execute", fake_execute):
            output = await ClusterExecutor(max_concurrency=3).run_all(SCOPE, commands)

        assert peak == 3
        assert all(cmd.completed for cmd in output.commands)


class TestExecuteLocalCommand:
    def test_runs_the_command(self, tmp_path):
        target = tmp_path / "foo"

        output, error = ClusterExecutor().execute_local_command(f"touch {target} && echo done")

        assert target.exists()
        assert output == "done\n"
        assert error is None

    def test_returns_error_and_combined_output(self):
        output, error = ClusterExecutor().execute_local_command(
            "some-non-existent-command /tmp/foo"
        )

        assert "some-non-existent-command: command not found" in output
        assert isinstance(error, CommandFailedError)
        assert str(error) == "exit status 127"

    def test_missing_shell(self):
        output, error = ClusterExecutor(shell="no-such-shell").execute_local_command("ls")

        assert output == ""
        assert isinstance(error, FileNotFoundError)

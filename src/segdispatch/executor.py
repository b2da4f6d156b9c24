"""Parallel execution engine for cluster commands."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from .commands import RemoteOutput, ShellCommand
from .scope import Scope

logger = logging.getLogger(__name__)

# Type alias for completion callback
CompleteCallback = Callable[[ShellCommand], None]  # (command) -> None


class CommandFailedError(Exception):
    """A command ran but exited with a non-zero status."""

    def __init__(self, returncode: int):
        super().__init__(f"exit status {returncode}")
        self.returncode = returncode


class ClusterExecutor:
    """Runs ShellCommands concurrently and collects their results.

    Every command gets its own worker. ``max_concurrency`` caps how many
    run at once; ``None`` starts them all immediately.
    """

    def __init__(
        self,
        max_concurrency: int | None = None,
        on_complete: CompleteCallback | None = None,
        shell: str = "bash",
    ):
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")
        self.max_concurrency = max_concurrency
        self.on_complete = on_complete
        self.shell = shell

    async def run_all(self, scope: Scope, commands: list[ShellCommand]) -> RemoteOutput:
        """Run all commands in parallel and wait for every one to finish."""
        logger.debug("Executing %d commands for scope %s", len(commands), scope.name)
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        async def worker(command: ShellCommand) -> None:
            if semaphore is None:
                await self._run_command(command)
                return
            async with semaphore:
                await self._run_command(command)

        await asyncio.gather(*(worker(cmd) for cmd in commands))

        output = RemoteOutput.from_commands(scope, commands)
        logger.debug(
            "Finished %d commands for scope %s with %d errors",
            len(commands), scope.name, output.num_errors,
        )
        return output

    def execute_cluster_command(
        self, scope: Scope, commands: list[ShellCommand]
    ) -> RemoteOutput:
        """Blocking wrapper around run_all for callers without an event loop."""
        return asyncio.run(self.run_all(scope, commands))

    async def _run_command(self, command: ShellCommand) -> None:
        """Run one command, recording its output and error on the command itself.

        Results from an earlier run of the same command are cleared first.
        """
        command.stdout = ""
        command.stderr = ""
        command.error = None
        command.completed = False
        try:
            await self._execute(command)
        except OSError as e:
            # The command could not be started at all
            command.error = e
        finally:
            command.completed = True
            if self.on_complete:
                self.on_complete(command)

    async def _execute(self, command: ShellCommand) -> None:
        proc = await asyncio.create_subprocess_exec(
            *command.args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        stdout, stderr = await proc.communicate()
        command.stdout = stdout.decode("utf-8", errors="replace")
        command.stderr = stderr.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            command.error = CommandFailedError(proc.returncode)

    async def run_local(self, command_str: str) -> tuple[str, BaseException | None]:
        """Run a command string through the local shell.

        Returns the combined stdout and stderr, and the error (None on success).
        """
        logger.debug("Executing local command: %s", command_str)
        try:
            proc = await asyncio.create_subprocess_exec(
                self.shell,
                "-c",
                command_str,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
            output, _ = await proc.communicate()
        except OSError as e:
            return "", e

        error = CommandFailedError(proc.returncode) if proc.returncode != 0 else None
        return output.decode("utf-8", errors="replace"), error

    def execute_local_command(self, command_str: str) -> tuple[str, BaseException | None]:
        return asyncio.run(self.run_local(command_str))

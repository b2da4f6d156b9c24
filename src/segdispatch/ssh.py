"""Native SSH transport for cluster commands, built on asyncssh."""

from __future__ import annotations

import asyncio
from pathlib import Path

import asyncssh

from .commands import ShellCommand
from .executor import ClusterExecutor, CommandFailedError, CompleteCallback


class SSHClusterExecutor(ClusterExecutor):
    """ClusterExecutor that sends remote commands over asyncssh connections.

    Commands wrapped for the ``ssh`` client are run over a native
    connection to their target instead of spawning a process. Local
    commands still go through the shell.
    """

    def __init__(
        self,
        max_concurrency: int | None = None,
        on_complete: CompleteCallback | None = None,
        shell: str = "bash",
        ssh_key: Path | None = None,
        port: int = 22,
        connect_timeout: int = 30,
    ):
        super().__init__(max_concurrency=max_concurrency, on_complete=on_complete, shell=shell)
        self.ssh_key = ssh_key
        self.port = port
        self.connect_timeout = connect_timeout

    async def _execute(self, command: ShellCommand) -> None:
        if command.target is None:
            await super()._execute(command)
            return
        try:
            await self._execute_ssh(command)
        except (asyncssh.Error, ValueError, asyncio.TimeoutError) as e:
            # Connection, key loading and connect timeout failures belong to this target
            command.error = e

    async def _execute_ssh(self, command: ShellCommand) -> None:
        user, _, host = command.target.rpartition("@")
        options = {}
        if self.ssh_key is not None:
            options["client_keys"] = [str(self.ssh_key)]

        async with asyncssh.connect(
            host,
            port=self.port,
            username=user or None,
            known_hosts=None,  # Host key verification is disabled, as with the ssh client
            connect_timeout=self.connect_timeout,
            **options,
        ) as conn:
            result = await conn.run(command.payload, check=False)

        command.stdout = _as_text(result.stdout)
        command.stderr = _as_text(result.stderr)
        if result.exit_status != 0:
            status = result.exit_status if result.exit_status is not None else -1
            command.error = CommandFailedError(status)


def _as_text(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data

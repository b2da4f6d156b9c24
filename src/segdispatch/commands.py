"""Shell command generation for cluster scopes."""

from __future__ import annotations

import getpass
import logging
import socket
from dataclasses import dataclass, field
from typing import Callable, Union

from .scope import Scope, scope_includes_master, scope_is_hosts, scope_is_remote
from .topology import MASTER_CONTENT_ID, Topology

logger = logging.getLogger(__name__)

# Content value carried by per-host commands
NO_CONTENT = -2


@dataclass
class ShellCommand:
    """A command to run against one segment or host, and its result.

    Per-segment commands have ``host == ""`` and per-host commands have
    ``content == NO_CONTENT``; check ``scope`` before reading either field.
    """

    scope: Scope
    content: int
    host: str
    args: list[str]
    payload: str = ""
    target: str | None = None  # "user@host" when sent over SSH
    stdout: str = ""
    stderr: str = ""
    error: BaseException | None = None
    completed: bool = False
    command_string: str = field(init=False)

    def __post_init__(self) -> None:
        if not self.args:
            raise ValueError("ShellCommand requires a non-empty argument list")
        self.command_string = " ".join(self.args)

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class RemoteOutput:
    """Aggregate result of running a list of ShellCommands.

    ``failed_commands`` holds the same objects as ``commands``.
    """

    scope: Scope
    num_errors: int
    commands: list[ShellCommand]
    failed_commands: list[ShellCommand]

    @classmethod
    def from_commands(cls, scope: Scope, commands: list[ShellCommand]) -> RemoteOutput:
        failed = [cmd for cmd in commands if cmd.error is not None]
        return cls(
            scope=scope,
            num_errors=len(failed),
            commands=commands,
            failed_commands=failed,
        )


@dataclass(frozen=True)
class PerContent:
    """Wraps a function that builds a command string from a content id."""

    func: Callable[[int], str]

    def __call__(self, content: int) -> str:
        return self.func(content)


@dataclass(frozen=True)
class PerHost:
    """Wraps a function that builds a command string from a hostname."""

    func: Callable[[str], str]

    def __call__(self, host: str) -> str:
        return self.func(host)


Generator = Union[PerContent, PerHost]


def check_generator(scope: Scope, generator: object) -> Generator:
    """Ensure ``generator`` is a PerContent/PerHost matching the scope granularity."""
    if not isinstance(generator, (PerContent, PerHost)):
        raise TypeError(
            f"Generator {generator!r} must be a PerContent or PerHost function wrapper"
        )
    hosts = scope_is_hosts(scope)
    if hosts and isinstance(generator, PerContent):
        raise ValueError(f"Per-content generator passed with per-host scope {scope.name}")
    if not hosts and isinstance(generator, PerHost):
        raise ValueError(f"Per-host generator passed with per-segment scope {scope.name}")
    return generator


def construct_shell_command(use_local: bool, host: str, cmd: str, user: str,
                            shell: str = "bash", ssh_client: str = "ssh") -> list[str]:
    """Wrap ``cmd`` for local execution through a shell or remote execution over SSH."""
    if use_local:
        return [shell, "-c", cmd]
    return [ssh_client, "-o", "StrictHostKeyChecking=no", f"{user}@{host}", cmd]


class CommandFactory:
    """Turns a command generator and a scope into ShellCommands for a topology."""

    def __init__(
        self,
        topology: Topology,
        user: str | None = None,
        shell: str = "bash",
        ssh_client: str = "ssh",
        local_host: str | None = None,
    ):
        self.topology = topology
        self.user = user or getpass.getuser()
        self.shell = shell
        self.ssh_client = ssh_client
        # The tool runs on the master, so the master's host is "here"
        self.local_host = local_host or topology.master_host or socket.gethostname()

    def generate_command_list(self, scope: Scope, generator: Generator) -> list[ShellCommand]:
        generator = check_generator(scope, generator)
        if isinstance(generator, PerContent):
            return self.generate_for_contents(scope, generator.func)
        return self.generate_for_hosts(scope, generator.func)

    def generate_for_contents(
        self, scope: Scope, func: Callable[[int], str]
    ) -> list[ShellCommand]:
        """One command per content id, ascending; the master only if the scope includes it."""
        include_master = scope_includes_master(scope)
        commands = []
        for content in self.topology.content_ids:
            if content == MASTER_CONTENT_ID and not include_master:
                continue
            host = self.topology.host_for_content(content)
            commands.append(self._wrap(scope, content, "", host, func(content)))
        logger.debug("Generated %d per-segment commands for scope %s", len(commands), scope.name)
        return commands

    def generate_for_hosts(
        self, scope: Scope, func: Callable[[str], str]
    ) -> list[ShellCommand]:
        """One command per host in first-seen order.

        When the scope excludes the master, the master's host is skipped only
        if the master is the sole segment on it; a host that also carries
        data segments is kept.
        """
        include_master = scope_includes_master(scope)
        master_host = self.topology.master_host
        commands = []
        for host in self.topology.hostnames:
            host_has_one_content = len(self.topology.contents_for_host(host)) == 1
            if host == master_host and not include_master and host_has_one_content:
                continue
            commands.append(self._wrap(scope, NO_CONTENT, host, host, func(host)))
        logger.debug("Generated %d per-host commands for scope %s", len(commands), scope.name)
        return commands

    def _wrap(
        self, scope: Scope, content: int, host_field: str, host: str, cmd: str
    ) -> ShellCommand:
        use_local = not scope_is_remote(scope) or host == self.local_host
        args = construct_shell_command(
            use_local, host, cmd, self.user, shell=self.shell, ssh_client=self.ssh_client
        )
        return ShellCommand(
            scope=scope,
            content=content,
            host=host_field,
            args=args,
            payload=cmd,
            target=None if use_local else f"{self.user}@{host}",
        )

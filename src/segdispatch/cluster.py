"""Cluster facade tying topology, command generation, execution and reporting together."""

from __future__ import annotations

import logging

from .commands import CommandFactory, Generator, RemoteOutput, ShellCommand
from .executor import ClusterExecutor
from .reporting import ErrorReporter, Verdict
from .scope import Scope
from .topology import Topology

logger = logging.getLogger(__name__)


class Cluster:
    """Runs shell commands across the segments or hosts of a cluster.

    Typical use::

        output = cluster.generate_and_execute_command(
            "Removing backup directories",
            Scope.HOSTS,
            PerHost(lambda host: f"rm -rf {backup_dir}"),
        )
        cluster.check_cluster_error(
            output, "Unable to remove backup directories",
            PerHost(lambda host: f"Unable to remove directory on {host}"),
        )
    """

    def __init__(
        self,
        topology: Topology,
        executor: ClusterExecutor | None = None,
        factory: CommandFactory | None = None,
    ):
        self.topology = topology
        self.executor = executor or ClusterExecutor()
        self.factory = factory or CommandFactory(topology)
        self.reporter = ErrorReporter(topology)

    def generate_command_list(self, scope: Scope, generator: Generator) -> list[ShellCommand]:
        return self.factory.generate_command_list(scope, generator)

    async def generate_and_run(
        self, verbose_msg: str, scope: Scope, generator: Generator
    ) -> RemoteOutput:
        logger.debug(verbose_msg)
        commands = self.factory.generate_command_list(scope, generator)
        return await self.executor.run_all(scope, commands)

    def generate_and_execute_command(
        self, verbose_msg: str, scope: Scope, generator: Generator
    ) -> RemoteOutput:
        """Generate commands for ``scope`` and run them all, blocking until done."""
        logger.debug(verbose_msg)
        commands = self.factory.generate_command_list(scope, generator)
        return self.executor.execute_cluster_command(scope, commands)

    def execute_cluster_command(self, scope: Scope, commands: list[ShellCommand]) -> RemoteOutput:
        return self.executor.execute_cluster_command(scope, commands)

    def execute_local_command(self, command_str: str) -> tuple[str, BaseException | None]:
        return self.executor.execute_local_command(command_str)

    def check_cluster_error(
        self,
        remote_output: RemoteOutput,
        final_msg: str,
        message_for: Generator,
        no_fatal: bool = False,
    ) -> Verdict:
        """Report failures in ``remote_output``.

        Raises:
            FatalClusterError: if any command failed and ``no_fatal`` is not set.
        """
        verdict = self.reporter.check_cluster_error(
            remote_output, final_msg, message_for, no_fatal=no_fatal
        )
        verdict.raise_if_fatal()
        return verdict

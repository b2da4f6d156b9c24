"""Classification and reporting of cluster command failures."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .commands import Generator, PerContent, RemoteOutput, check_generator
from .log import get_log_file_path
from .scope import Scope, scope_is_hosts, scope_is_remote
from .topology import Topology

logger = logging.getLogger(__name__)


class VerdictStatus(Enum):
    """Outcome of checking a RemoteOutput."""

    SUCCESS = "success"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


class FatalClusterError(Exception):
    """Raised when a cluster command failed and the caller must not continue."""


@dataclass(frozen=True)
class Verdict:
    status: VerdictStatus
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status == VerdictStatus.SUCCESS

    def raise_if_fatal(self) -> None:
        if self.status == VerdictStatus.FATAL:
            raise FatalClusterError(self.message)


SUCCESS = Verdict(VerdictStatus.SUCCESS)


class ErrorReporter:
    """Logs the failures in a RemoteOutput and decides how to escalate them."""

    def __init__(self, topology: Topology):
        self.topology = topology

    def check_cluster_error(
        self,
        remote_output: RemoteOutput,
        final_msg: str,
        message_for: Generator,
        no_fatal: bool = False,
    ) -> Verdict:
        """Log every failed command, then return a recoverable or fatal verdict.

        ``message_for`` builds the per-failure message from the failed
        command's content id (PerContent) or hostname (PerHost), and must
        match the scope's granularity. With ``no_fatal`` the summary is
        logged as an error and the verdict is recoverable.
        """
        message_for = check_generator(remote_output.scope, message_for)
        if remote_output.num_errors == 0:
            return SUCCESS

        prefix = "on" if scope_is_remote(remote_output.scope) else "on master for"
        for failed in remote_output.failed_commands:
            err_str = f"with error {failed.error}: {failed.stderr}"
            if isinstance(message_for, PerContent):
                content = failed.content
                host = self.topology.host_for_content(content)
                logger.error(
                    "%s %s segment %d on host %s %s",
                    message_for(content), prefix, content, host, err_str,
                )
            else:
                host = failed.host
                logger.error("%s %s host %s %s", message_for(host), prefix, host, err_str)
            logger.debug("Command was: %s", failed.command_string)

        if no_fatal:
            logger.error(final_msg)
            return Verdict(VerdictStatus.RECOVERABLE, final_msg)
        return self.fatal_cluster_error(final_msg, remote_output.scope, remote_output.num_errors)

    def fatal_cluster_error(self, final_msg: str, scope: Scope, num_errors: int) -> Verdict:
        """Compose and log the final message for a fatal cluster failure."""
        return fatal_cluster_error(final_msg, scope, num_errors)


def fatal_cluster_error(final_msg: str, scope: Scope, num_errors: int) -> Verdict:
    where = " on"
    if not scope_is_remote(scope):
        where += " master for"

    noun = "host" if scope_is_hosts(scope) else "segment"
    if num_errors != 1:
        noun += "s"

    message = (
        f"{final_msg}{where} {num_errors} {noun}. "
        f"See {get_log_file_path()} for a complete list of errors."
    )
    logger.critical(message)
    return Verdict(VerdictStatus.FATAL, message)

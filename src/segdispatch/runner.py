#!/usr/bin/env python3
"""Main entry point for segdispatch."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .cluster import Cluster
from .commands import CommandFactory, PerContent, PerHost, ShellCommand
from .config import Config, load_config
from .executor import ClusterExecutor
from .log import setup_logging
from .reporting import FatalClusterError
from .scope import Scope, scope_is_hosts
from .ssh import SSHClusterExecutor
from .topology import SegmentConfigError, Topology

logger = logging.getLogger(__name__)

# ANSI colors for different targets
COLORS = [
    "\033[36m",  # Cyan
    "\033[33m",  # Yellow
    "\033[35m",  # Magenta
    "\033[32m",  # Green
    "\033[34m",  # Blue
    "\033[91m",  # Light Red
    "\033[96m",  # Light Cyan
    "\033[93m",  # Light Yellow
]
RESET = "\033[0m"

# Exit codes: 1 for a recoverable error, 2 for a fatal one
EXIT_ERROR = 1
EXIT_FATAL = 2


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run a shell command on every segment or host of a database cluster"
    )
    parser.add_argument("config", type=Path, help="Path to YAML configuration file")
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Command to run, after CONFIG and an optional '--'; {content}, {host}, "
        "{datadir}, {port} and {dbid} are replaced per target (per-host scopes only "
        "support {host}). Options must come before CONFIG",
    )
    parser.add_argument(
        "--scope",
        type=Scope.parse,
        default=Scope.SEGMENTS,
        help="Execution scope, e.g. segments, hosts-with-master, master-to-hosts "
        "(default: segments)",
    )
    parser.add_argument(
        "--no-fatal",
        action="store_true",
        help="Report failures as errors instead of aborting",
    )
    parser.add_argument(
        "--max-concurrency",
        type=int,
        help="Override the maximum number of commands run at once",
    )
    parser.add_argument(
        "--key",
        type=Path,
        help="Override SSH key path from config (asyncssh transport)",
    )
    parser.add_argument(
        "--no-logs",
        action="store_true",
        help="Disable logging to a file",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show debug messages on the console",
    )
    args = parser.parse_args(argv)

    command_words = args.command
    if command_words[:1] == ["--"]:
        command_words = command_words[1:]
    if not command_words:
        parser.error("the following arguments are required: command")

    # Load configuration
    try:
        config = load_config(args.config)
        topology = Topology(config.segments)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except (ValueError, SegmentConfigError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.key:
        config.ssh.key = args.key.expanduser()
    if config.ssh.key and not config.ssh.key.exists():
        print(f"Error: SSH key not found: {config.ssh.key}", file=sys.stderr)
        return EXIT_ERROR
    if args.max_concurrency is not None:
        if args.max_concurrency < 1:
            print("Error: --max-concurrency must be at least 1", file=sys.stderr)
            return EXIT_ERROR
        config.max_concurrency = args.max_concurrency

    setup_logging(None if args.no_logs else config.log_dir, verbose=args.verbose)

    if config.transport != "asyncssh" and (config.ssh.key or config.ssh.port != 22):
        logger.warning(
            "SSH key and port settings only apply to the asyncssh transport; "
            "the ssh client uses its own configuration"
        )

    command = " ".join(command_words)
    return _run(config, topology, args.scope, command, args.no_fatal)


def _run(
    config: Config, topology: Topology, scope: Scope, command: str, no_fatal: bool
) -> int:
    """Run ``command`` across the cluster and report the outcome."""
    labels = _target_labels(topology, scope)

    def on_complete(cmd: ShellCommand) -> None:
        label = cmd.host if scope_is_hosts(scope) else f"seg{cmd.content}"
        color = labels.get(label, "")
        for line in cmd.stdout.splitlines():
            print(f"{color}[{label}]{RESET} {line}")
        status = "failed" if cmd.failed else "success"
        print(f"{color}[{label}]{RESET} Status: {status}")

    cluster = Cluster(
        topology,
        executor=_build_executor(config, on_complete),
        factory=CommandFactory(topology, user=config.ssh.user),
    )

    if scope_is_hosts(scope):
        generator = PerHost(lambda host: _fill_host(command, host))
        message_for = PerHost(lambda host: "Command failed")
    else:
        generator = PerContent(lambda content: _fill_content(command, topology, content))
        message_for = PerContent(lambda content: "Command failed")

    output = cluster.generate_and_execute_command(
        f"Running '{command}' with scope {scope.name}", scope, generator
    )

    try:
        verdict = cluster.check_cluster_error(
            output, f"Unable to run '{command}'", message_for, no_fatal=no_fatal
        )
    except FatalClusterError:
        return EXIT_FATAL

    if not verdict.ok:
        return EXIT_ERROR

    logger.info("Command completed on %d target(s)", len(output.commands))
    return 0


def _build_executor(config: Config, on_complete) -> ClusterExecutor:
    if config.transport == "asyncssh":
        return SSHClusterExecutor(
            max_concurrency=config.max_concurrency,
            on_complete=on_complete,
            ssh_key=config.ssh.key,
            port=config.ssh.port,
            connect_timeout=config.ssh.connect_timeout,
        )
    return ClusterExecutor(max_concurrency=config.max_concurrency, on_complete=on_complete)


def _target_labels(topology: Topology, scope: Scope) -> dict[str, str]:
    """Assign colors to targets."""
    if scope_is_hosts(scope):
        names = list(topology.hostnames)
    else:
        names = [f"seg{content}" for content in topology.content_ids]
    return {name: COLORS[i % len(COLORS)] for i, name in enumerate(names)}


def _fill_content(template: str, topology: Topology, content: int) -> str:
    segment = topology.segment_for_content(content)
    values = {
        "content": content,
        "host": segment.hostname,
        "datadir": segment.data_dir,
        "port": segment.port,
        "dbid": segment.dbid,
    }
    for key, value in values.items():
        template = template.replace("{" + key + "}", str(value))
    return template


def _fill_host(template: str, host: str) -> str:
    return template.replace("{host}", host)


if __name__ == "__main__":
    sys.exit(main())

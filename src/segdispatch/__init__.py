"""segdispatch: Run shell commands across the segments and hosts of a database cluster."""

from .cluster import Cluster
from .commands import (
    NO_CONTENT,
    CommandFactory,
    PerContent,
    PerHost,
    RemoteOutput,
    ShellCommand,
    construct_shell_command,
)
from .config import Config, SSHSettings, load_config
from .executor import ClusterExecutor, CommandFailedError
from .reporting import ErrorReporter, FatalClusterError, Verdict, VerdictStatus
from .scope import Scope, scope_includes_master, scope_is_hosts, scope_is_remote
from .topology import (
    MASTER_CONTENT_ID,
    Segment,
    SegmentConfigError,
    Topology,
    UnknownSegmentError,
    read_segment_config_file,
    segments_from_records,
)

__all__ = [
    "Cluster",
    "NO_CONTENT",
    "CommandFactory",
    "PerContent",
    "PerHost",
    "RemoteOutput",
    "ShellCommand",
    "construct_shell_command",
    "Config",
    "SSHSettings",
    "load_config",
    "ClusterExecutor",
    "CommandFailedError",
    "ErrorReporter",
    "FatalClusterError",
    "Verdict",
    "VerdictStatus",
    "Scope",
    "scope_includes_master",
    "scope_is_hosts",
    "scope_is_remote",
    "MASTER_CONTENT_ID",
    "Segment",
    "SegmentConfigError",
    "Topology",
    "UnknownSegmentError",
    "read_segment_config_file",
    "segments_from_records",
]

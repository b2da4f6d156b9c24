"""Execution scopes for cluster commands."""

from __future__ import annotations

from enum import Enum

# Bit layout of a scope value:
#
#   /---- ON_LOCAL (1) or ON_REMOTE (0)
#   |/--- INCLUDE_MASTER (1) or EXCLUDE_MASTER (0)
#   ||/-- ON_HOSTS (1) or ON_SEGMENTS (0)
#   vvv
#   000
ON_HOSTS = 1
INCLUDE_MASTER = 1 << 1
ON_LOCAL = 1 << 2


class Scope(Enum):
    """Where and how often a cluster command is executed.

    SEGMENTS/HOSTS scopes run one command per segment or per host, on that
    segment's host. MASTER_TO_* scopes run every command on the master,
    typically to push or pull data to each target with scp or rsync.
    """

    SEGMENTS = 0
    HOSTS = ON_HOSTS
    SEGMENTS_WITH_MASTER = INCLUDE_MASTER
    HOSTS_WITH_MASTER = ON_HOSTS | INCLUDE_MASTER
    MASTER_TO_SEGMENTS = ON_LOCAL
    MASTER_TO_HOSTS = ON_LOCAL | ON_HOSTS
    MASTER_TO_SEGMENTS_WITH_MASTER = ON_LOCAL | INCLUDE_MASTER
    MASTER_TO_HOSTS_WITH_MASTER = ON_LOCAL | ON_HOSTS | INCLUDE_MASTER

    @classmethod
    def from_flags(
        cls, hosts: bool = False, include_master: bool = False, local: bool = False
    ) -> Scope:
        """Build a scope from its three axes."""
        value = 0
        if hosts:
            value |= ON_HOSTS
        if include_master:
            value |= INCLUDE_MASTER
        if local:
            value |= ON_LOCAL
        return cls(value)

    @classmethod
    def parse(cls, text: str) -> Scope:
        """Parse a scope name such as "hosts-with-master"."""
        name = text.strip().upper().replace("-", "_")
        try:
            return cls[name]
        except KeyError:
            valid = ", ".join(s.name.lower().replace("_", "-") for s in cls)
            raise ValueError(f"Unknown scope '{text}' (expected one of: {valid})") from None


def _check(scope: Scope) -> int:
    if not isinstance(scope, Scope):
        raise TypeError(f"Invalid scope {scope!r}: expected a Scope member")
    return scope.value


def scope_is_remote(scope: Scope) -> bool:
    return _check(scope) & ON_LOCAL == 0


def scope_includes_master(scope: Scope) -> bool:
    return _check(scope) & INCLUDE_MASTER == INCLUDE_MASTER


def scope_is_hosts(scope: Scope) -> bool:
    return _check(scope) & ON_HOSTS == ON_HOSTS

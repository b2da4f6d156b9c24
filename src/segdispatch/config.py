"""Configuration loader for segdispatch."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .topology import PRIMARY, Segment, read_segment_config_file

TRANSPORTS = ("ssh", "asyncssh")


@dataclass
class SSHSettings:
    """How remote commands reach their hosts."""

    user: str | None = None  # None means the current OS user
    key: Path | None = None
    port: int = 22
    connect_timeout: int = 30


@dataclass
class Config:
    """Main configuration for segdispatch."""

    segments: list[Segment]
    log_dir: Path = field(default_factory=lambda: Path("logs"))
    max_concurrency: int | None = None
    transport: str = "ssh"
    ssh: SSHSettings = field(default_factory=SSHSettings)
    source_path: Path | None = None  # Path to the original config file


def load_config(config_path: str | Path) -> Config:
    """Load and validate configuration from a YAML file."""
    config_path = Path(config_path).resolve()

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")

    config = _parse_config(raw)
    config.source_path = config_path
    return config


def _parse_ssh(raw: dict[str, Any]) -> SSHSettings:
    """Parse the ssh section."""
    ssh_raw = raw.get("ssh") or {}
    key = ssh_raw.get("key")
    return SSHSettings(
        user=ssh_raw.get("user"),
        key=Path(key).expanduser() if key else None,
        port=int(ssh_raw.get("port", 22)),
        connect_timeout=int(ssh_raw.get("connect_timeout", 30)),
    )


def _parse_config(raw: dict[str, Any]) -> Config:
    """Parse raw YAML data into Config object."""
    log_dir = Path(raw.get("log_dir", "logs")).expanduser().resolve()

    transport = raw.get("transport", "ssh")
    if transport not in TRANSPORTS:
        raise ValueError(
            f"Unknown transport '{transport}' (expected one of: {', '.join(TRANSPORTS)})"
        )

    max_concurrency = raw.get("max_concurrency")
    if max_concurrency is not None:
        if not isinstance(max_concurrency, int) or max_concurrency < 1:
            raise ValueError(
                f"max_concurrency must be a positive integer, got {max_concurrency!r}"
            )

    # Segments come either from a gpsegconfig_dump file or are listed inline
    if "segment_config_dir" in raw:
        segments = read_segment_config_file(Path(raw["segment_config_dir"]).expanduser())
    else:
        segments = [_parse_segment(seg_raw) for seg_raw in raw.get("segments") or []]
        segments = [seg for seg in segments if seg.role == PRIMARY]
        segments.sort(key=lambda seg: seg.content_id)

    if not segments:
        raise ValueError("No segments defined in configuration")

    seen: set[int] = set()
    for segment in segments:
        if segment.content_id in seen:
            raise ValueError(f"Duplicate content id {segment.content_id} in configuration")
        seen.add(segment.content_id)

    return Config(
        segments=segments,
        log_dir=log_dir,
        max_concurrency=max_concurrency,
        transport=transport,
        ssh=_parse_ssh(raw),
    )


def _parse_segment(seg_raw: dict[str, Any]) -> Segment:
    """Parse a single segment entry."""
    if not isinstance(seg_raw, dict):
        raise ValueError(f"Segment entry must be a mapping, got {seg_raw!r}")

    missing = [key for key in ("dbid", "content", "port", "host", "datadir") if key not in seg_raw]
    if missing:
        raise ValueError(f"Segment {seg_raw!r} is missing field(s): {', '.join(missing)}")

    try:
        return Segment(
            dbid=int(seg_raw["dbid"]),
            content_id=int(seg_raw["content"]),
            port=int(seg_raw["port"]),
            hostname=str(seg_raw["host"]),
            data_dir=str(seg_raw["datadir"]),
            role=seg_raw.get("role", PRIMARY),
        )
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid segment {seg_raw!r}: {e}") from e

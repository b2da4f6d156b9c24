"""Cluster topology: segments and the lookups derived from them."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

MASTER_CONTENT_ID = -1
SEGMENT_CONFIG_FILE = "gpsegconfig_dump"

PRIMARY = "p"


class UnknownSegmentError(KeyError):
    """Raised when a content id or hostname is not part of the topology."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class SegmentConfigError(Exception):
    """Raised when a segment configuration file cannot be read."""


@dataclass
class Segment:
    """A single cluster member.

    The content id is the segment's identity; port, hostname and data
    directory may change while the process runs.
    """

    dbid: int
    content_id: int
    port: int
    hostname: str
    data_dir: str
    role: str = PRIMARY

    @property
    def is_master(self) -> bool:
        return self.content_id == MASTER_CONTENT_ID


class Topology:
    """The segments of a cluster plus lookups by content id and by host.

    ``segments`` is the source of truth. The content and host lookups are
    indexes into it, so a Segment fetched through any of them is the same
    object held in ``segments``.
    """

    def __init__(self, segments: Sequence[Segment]):
        if not segments:
            raise ValueError("No segments defined in topology")
        self.segments: list[Segment] = list(segments)
        self._by_content: dict[int, int] = {}
        self._by_host: dict[str, list[int]] = {}
        self.hostnames: list[str] = []

        for index, segment in enumerate(self.segments):
            if segment.content_id in self._by_content:
                raise ValueError(
                    f"Duplicate content id {segment.content_id} in topology"
                )
            self._by_content[segment.content_id] = index
            if segment.hostname not in self._by_host:
                # Only add each hostname once, in first-seen order
                self._by_host[segment.hostname] = []
                self.hostnames.append(segment.hostname)
            self._by_host[segment.hostname].append(index)

        self.content_ids: list[int] = sorted(self._by_content)

    def __len__(self) -> int:
        return len(self.segments)

    def __repr__(self) -> str:
        return f"Topology(segments={len(self.segments)}, hosts={self.hostnames!r})"

    @property
    def master_host(self) -> str | None:
        """Hostname of the master, or None if the topology has no master."""
        index = self._by_content.get(MASTER_CONTENT_ID)
        if index is None:
            return None
        return self.segments[index].hostname

    def has_content(self, content_id: int) -> bool:
        return content_id in self._by_content

    def has_host(self, hostname: str) -> bool:
        return hostname in self._by_host

    def segment_for_content(self, content_id: int) -> Segment:
        try:
            return self.segments[self._by_content[content_id]]
        except KeyError:
            raise UnknownSegmentError(
                f"No segment with content id {content_id} in topology"
            ) from None

    def segments_for_host(self, hostname: str) -> list[Segment]:
        try:
            indexes = self._by_host[hostname]
        except KeyError:
            raise UnknownSegmentError(f"No segments on host {hostname} in topology") from None
        return [self.segments[i] for i in indexes]

    def host_for_content(self, content_id: int) -> str:
        return self.segment_for_content(content_id).hostname

    def port_for_content(self, content_id: int) -> int:
        return self.segment_for_content(content_id).port

    def dir_for_content(self, content_id: int) -> str:
        return self.segment_for_content(content_id).data_dir

    def dbid_for_content(self, content_id: int) -> int:
        return self.segment_for_content(content_id).dbid

    def dbids_for_host(self, hostname: str) -> list[int]:
        return [seg.dbid for seg in self.segments_for_host(hostname)]

    def contents_for_host(self, hostname: str) -> list[int]:
        return [seg.content_id for seg in self.segments_for_host(hostname)]

    def ports_for_host(self, hostname: str) -> list[int]:
        return [seg.port for seg in self.segments_for_host(hostname)]

    def dirs_for_host(self, hostname: str) -> list[str]:
        return [seg.data_dir for seg in self.segments_for_host(hostname)]


def segments_from_records(
    rows: Iterable[Sequence[Any] | Mapping[str, Any]],
) -> list[Segment]:
    """Convert catalog query rows into primary Segments ordered by content id.

    Rows are ``(dbid, content_id, port, hostname, data_dir)`` tuples or
    mappings with those keys (``content`` and ``datadir`` are accepted as
    aliases). Mapping rows with a ``role`` other than primary are dropped.
    """
    segments = []
    for row in rows:
        if isinstance(row, Mapping):
            if row.get("role", PRIMARY) != PRIMARY:
                continue
            segment = Segment(
                dbid=int(row["dbid"]),
                content_id=int(row.get("content_id", row.get("content"))),
                port=int(row["port"]),
                hostname=str(row["hostname"]),
                data_dir=str(row.get("data_dir", row.get("datadir"))),
            )
        else:
            dbid, content_id, port, hostname, data_dir = row
            segment = Segment(
                dbid=int(dbid),
                content_id=int(content_id),
                port=int(port),
                hostname=str(hostname),
                data_dir=str(data_dir),
            )
        segments.append(segment)

    segments.sort(key=lambda seg: seg.content_id)
    return segments


def read_segment_config_file(
    master_data_dir: str | Path, include_mirrors: bool = False
) -> list[Segment]:
    """Read segments from the gpsegconfig_dump file in the master data directory.

    Each line has 9 or 10 whitespace-separated fields:
    ``dbid content role preferred_role mode status port hostname address [datadir]``.
    Only primaries are returned unless ``include_mirrors`` is set.
    """
    if not str(master_data_dir):
        raise SegmentConfigError("Master data directory path is empty")

    path = Path(master_data_dir) / SEGMENT_CONFIG_FILE
    try:
        with open(path) as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise SegmentConfigError(f"Failed to open file {path}. Error: {e}") from e

    segments = []
    for line in lines:
        if not line.strip():
            continue
        fields = line.split()
        if len(fields) not in (9, 10):
            raise SegmentConfigError(
                f"Unexpected number of fields ({len(fields)}) in line: {line}"
            )
        segment = Segment(
            dbid=_parse_int("dbID", fields[0]),
            content_id=_parse_int("contentID", fields[1]),
            port=_parse_int("port", fields[6]),
            hostname=fields[7],
            data_dir=fields[9] if len(fields) == 10 else "",
            role=fields[2],
        )
        if segment.role != PRIMARY and not include_mirrors:
            continue
        segments.append(segment)

    return segments


def _parse_int(field_name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise SegmentConfigError(
            f"Failed to convert {field_name} with value {value} to an int. Error: {e}"
        ) from e

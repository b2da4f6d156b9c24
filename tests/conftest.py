"""Shared fixtures for segdispatch tests."""

import pytest

from segdispatch import log
from segdispatch.topology import Segment, Topology


@pytest.fixture(autouse=True)
def reset_logging(monkeypatch):
    """Start each test without a log file and drop any handlers it installs."""
    monkeypatch.setattr(log, "_log_file_path", None)
    yield
    for handler in list(log._handlers):
        log.logger.removeHandler(handler)
        handler.close()
    log._handlers.clear()


@pytest.fixture
def master_seg():
    return Segment(dbid=1, content_id=-1, port=5432, hostname="localhost", data_dir="/data/gpseg-1")


@pytest.fixture
def local_seg_one():
    return Segment(dbid=2, content_id=0, port=20000, hostname="localhost", data_dir="/data/gpseg0")


@pytest.fixture
def remote_seg_one():
    return Segment(dbid=3, content_id=1, port=20001, hostname="remotehost1", data_dir="/data/gpseg1")


@pytest.fixture
def local_seg_two():
    return Segment(dbid=4, content_id=2, port=20002, hostname="localhost", data_dir="/data/gpseg2")


@pytest.fixture
def remote_seg_two():
    return Segment(dbid=5, content_id=3, port=20003, hostname="remotehost2", data_dir="/data/gpseg3")


@pytest.fixture
def topology(master_seg, local_seg_one, remote_seg_one):
    """Master and one segment on localhost, one segment on remotehost1."""
    return Topology([master_seg, local_seg_one, remote_seg_one])

"""Tests for the Cluster facade."""

import logging

import pytest

from segdispatch.cluster import Cluster
from segdispatch.commands import CommandFactory, PerContent, PerHost
from segdispatch.reporting import FatalClusterError, VerdictStatus
from segdispatch.scope import Scope
from segdispatch.topology import Segment, Topology


@pytest.fixture
def local_cluster(tmp_path):
    """A cluster whose segments all live on the local host."""
    segments = [
        Segment(dbid=1, content_id=-1, port=5432, hostname="mdw", data_dir=str(tmp_path / "m")),
        Segment(dbid=2, content_id=0, port=6000, hostname="mdw", data_dir=str(tmp_path / "s0")),
        Segment(dbid=3, content_id=1, port=6001, hostname="mdw", data_dir=str(tmp_path / "s1")),
    ]
    topology = Topology(segments)
    return Cluster(topology, factory=CommandFactory(topology, user="testUser"))


def test_generate_and_execute_command(local_cluster, tmp_path, caplog):
    caplog.set_level(logging.DEBUG, logger="segdispatch")
    topology = local_cluster.topology

    output = local_cluster.generate_and_execute_command(
        "Creating data directories",
        Scope.SEGMENTS_WITH_MASTER,
        PerContent(lambda content: f"mkdir -p {topology.dir_for_content(content)}"),
    )

    assert output.num_errors == 0
    assert [cmd.content for cmd in output.commands] == [-1, 0, 1]
    for name in ("m", "s0", "s1"):
        assert (tmp_path / name).is_dir()
    assert "Creating data directories" in caplog.messages


def test_check_cluster_error_raises_when_fatal(local_cluster):
    output = local_cluster.generate_and_execute_command(
        "Failing", Scope.HOSTS_WITH_MASTER, PerHost(lambda host: "exit 1")
    )

    with pytest.raises(FatalClusterError, match="Unable to do it on 1 host."):
        local_cluster.check_cluster_error(
            output, "Unable to do it", PerHost(lambda host: f"Failed on {host}")
        )


def test_check_cluster_error_no_fatal(local_cluster):
    output = local_cluster.generate_and_execute_command(
        "Failing", Scope.SEGMENTS, PerContent(lambda content: f"test {content} -eq 0")
    )

    verdict = local_cluster.check_cluster_error(
        output, "Unable to do it", PerContent(lambda content: "Failed"), no_fatal=True
    )

    assert output.num_errors == 1
    assert output.failed_commands[0].content == 1
    assert verdict.status is VerdictStatus.RECOVERABLE


def test_check_cluster_error_success(local_cluster):
    output = local_cluster.generate_and_execute_command(
        "Listing", Scope.SEGMENTS, PerContent(lambda content: "true")
    )

    verdict = local_cluster.check_cluster_error(output, "Unable", PerContent(str))

    assert verdict.ok


def test_execute_local_command(local_cluster):
    output, error = local_cluster.execute_local_command("echo hello")

    assert output == "hello\n"
    assert error is None


@pytest.mark.asyncio
async def test_generate_and_run_inside_event_loop(local_cluster):
    output = await local_cluster.generate_and_run(
        "Echoing", Scope.HOSTS_WITH_MASTER, PerHost(lambda host: f"echo {host}")
    )

    assert [cmd.stdout for cmd in output.commands] == ["mdw\n"]

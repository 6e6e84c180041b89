"""Unit tests for snapshot building."""

import copy

import pytest

from cluster_monitor.exceptions import MalformedResponseError
from cluster_monitor.models.api import StateVariant
from cluster_monitor.snapshot import build_cluster


def test_build_cluster_header(sample_cluster):
    assert sample_cluster.name == "demo"
    assert sample_cluster.cluster_version == "25.1.0"
    assert sample_cluster.engine_version == "25.1.0-12-gabcdef"
    assert sample_cluster.plugins == ("radix 0.5.0",)


def test_build_cluster_topology(sample_cluster):
    assert [t.name for t in sample_cluster.tiers] == ["default", "storage"]
    default = sample_cluster.tiers[0]
    assert [rs.name for rs in default.replicasets] == ["r1", "r2"]
    r1 = default.replicasets[0]
    assert [i.name for i in r1.instances] == ["i1", "i2", "i3"]
    assert r1.leader.name == "i1"
    assert default.replicasets[1].leader is None


def test_children_refer_to_parents_by_name(sample_cluster):
    i4 = sample_cluster.find(("storage", "rs1", "i4"))
    assert i4.tier == "storage"
    assert i4.replicaset == "rs1"
    assert i4.key == ("storage", "rs1", "i4")


def test_counts_are_derived_from_instances(sample_cluster):
    default, storage = sample_cluster.tiers
    assert default.replicaset_count == 2
    assert default.instance_count == 3
    assert default.online_count == 2
    assert storage.instance_count == 1
    assert sample_cluster.replicaset_count == 3
    assert sample_cluster.instance_count == 4
    assert sample_cluster.online_count == 3
    assert sample_cluster.offline_count == 1


def test_memory_is_summed_upward(sample_cluster):
    default, storage = sample_cluster.tiers
    assert default.memory_used == 256
    assert default.memory_total == 2048
    assert default.memory_percent == pytest.approx(12.5)
    assert storage.memory_percent == pytest.approx(12.5)
    assert sample_cluster.memory_used == 384
    assert sample_cluster.memory_total == 3072


def test_counts_ignore_overview_totals(sample_overview_data, sample_tiers_data):
    sample_overview_data["instancesCurrentStateOnline"] = 40
    sample_overview_data["replicasetsCount"] = 99

    cluster = build_cluster(sample_overview_data, sample_tiers_data)

    assert cluster.instance_count == 4
    assert cluster.replicaset_count == 3


def test_empty_pg_address_becomes_none(sample_overview_data, sample_tiers_data):
    sample_tiers_data[1]["replicasets"][0]["instances"][0]["pgAddress"] = ""

    cluster = build_cluster(sample_overview_data, sample_tiers_data)

    assert cluster.find(("storage", "rs1", "i4")).pg_address is None


def test_unknown_state_is_kept_as_unknown(sample_overview_data, sample_tiers_data):
    sample_tiers_data[0]["replicasets"][0]["instances"][1]["currentState"] = "Joining"

    cluster = build_cluster(sample_overview_data, sample_tiers_data)

    i2 = cluster.find(("default", "r1", "i2"))
    assert i2.state is StateVariant.UNKNOWN
    assert not i2.is_online


def test_empty_tiers(sample_overview_data):
    cluster = build_cluster(sample_overview_data, [])

    assert cluster.tiers == ()
    assert cluster.instance_count == 0
    assert cluster.memory_percent == 0.0


def test_missing_overview_field(sample_overview_data, sample_tiers_data):
    del sample_overview_data["clusterName"]

    with pytest.raises(MalformedResponseError):
        build_cluster(sample_overview_data, sample_tiers_data)


def test_missing_instance_field(sample_overview_data, sample_tiers_data):
    del sample_tiers_data[0]["replicasets"][0]["instances"][0]["binaryAddress"]

    with pytest.raises(MalformedResponseError):
        build_cluster(sample_overview_data, sample_tiers_data)


def test_tiers_not_a_list(sample_overview_data):
    with pytest.raises(MalformedResponseError):
        build_cluster(sample_overview_data, {"name": "default"})


def test_duplicate_tier(sample_overview_data, sample_tiers_data):
    sample_tiers_data.append(copy.deepcopy(sample_tiers_data[0]))

    with pytest.raises(MalformedResponseError) as exc_info:
        build_cluster(sample_overview_data, sample_tiers_data)

    assert "Duplicate tier 'default'" in exc_info.value.message


def test_duplicate_replicaset_in_tier(sample_overview_data, sample_tiers_data):
    sample_tiers_data[0]["replicasets"][1]["name"] = "r1"

    with pytest.raises(MalformedResponseError):
        build_cluster(sample_overview_data, sample_tiers_data)


def test_same_replicaset_name_in_different_tiers(sample_overview_data, sample_tiers_data):
    sample_tiers_data[1]["replicasets"][0]["name"] = "r1"

    cluster = build_cluster(sample_overview_data, sample_tiers_data)

    assert cluster.has(("default", "r1"))
    assert cluster.has(("storage", "r1"))


def test_duplicate_instance_across_cluster(sample_overview_data, sample_tiers_data):
    sample_tiers_data[1]["replicasets"][0]["instances"][0]["name"] = "i1"

    with pytest.raises(MalformedResponseError):
        build_cluster(sample_overview_data, sample_tiers_data)


def test_several_leaders(sample_overview_data, sample_tiers_data):
    sample_tiers_data[0]["replicasets"][0]["instances"][1]["isLeader"] = True

    with pytest.raises(MalformedResponseError) as exc_info:
        build_cluster(sample_overview_data, sample_tiers_data)

    assert exc_info.value.details == "i1, i2"


def test_find_and_has(sample_cluster):
    assert sample_cluster.has(("default",))
    assert sample_cluster.has(("default", "r2"))
    assert not sample_cluster.has(("default", "r9"))
    assert sample_cluster.find(("nope",)) is None
    assert [i.name for i in sample_cluster.iter_instances()] == ["i1", "i2", "i3", "i4"]

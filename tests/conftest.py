"""Pytest configuration and shared fixtures."""

import pytest
from hypothesis import Verbosity, settings

from cluster_monitor.snapshot import build_cluster

# Configure Hypothesis for property-based testing
settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, verbosity=Verbosity.verbose)

# Load the default profile
settings.load_profile("default")


def _instance(name, state="Online", leader=False, port=3301, domain=None):
    return {
        "name": name,
        "currentState": state,
        "targetState": "Online",
        "binaryAddress": f"10.0.0.{port - 3300}:{port}",
        "pgAddress": f"10.0.0.{port - 3300}:5432",
        "httpAddress": f"10.0.0.{port - 3300}:8080",
        "version": "25.1.0",
        "failureDomain": domain if domain is not None else {"dc": "msk"},
        "isLeader": leader,
    }


@pytest.fixture
def sample_overview_data():
    """Sample GET /api/v1/cluster response."""
    return {
        "clusterName": "demo",
        "clusterVersion": "25.1.0",
        "currentInstaceVersion": "25.1.0-12-gabcdef",
        "capacityUsage": 12.5,
        "replicasetsCount": 3,
        "instancesCurrentStateOffline": 1,
        "instancesCurrentStateOnline": 3,
        "memory": {"usable": 3072, "used": 384},
        "plugins": ["radix 0.5.0"],
    }


@pytest.fixture
def sample_tiers_data():
    """Sample GET /api/v1/tiers response.

    Tier ``default`` holds r1 (i1 leader/online, i2 online, i3 offline) and an
    empty r2; tier ``storage`` holds rs1 with i4 online.
    """
    return [
        {
            "name": "default",
            "rf": 3,
            "bucketCount": 3000,
            "can_vote": True,
            "services": [],
            "replicasets": [
                {
                    "name": "r1",
                    "state": "Online",
                    "uuid": "a1",
                    "version": "25.1.0",
                    "memory": {"usable": 1024, "used": 256},
                    "instances": [
                        _instance("i1", leader=True, port=3301, domain={"dc": "msk", "rack": "1"}),
                        _instance("i2", port=3302, domain={"dc": "spb", "rack": "1"}),
                        _instance("i3", state="Offline", port=3303, domain={"dc": "ams"}),
                    ],
                },
                {
                    "name": "r2",
                    "state": "Offline",
                    "uuid": "a2",
                    "version": "25.1.0",
                    "memory": {"usable": 1024, "used": 0},
                    "instances": [],
                },
            ],
        },
        {
            "name": "storage",
            "rf": 1,
            "bucketCount": 3000,
            "can_vote": False,
            "services": ["radix"],
            "replicasets": [
                {
                    "name": "rs1",
                    "state": "Online",
                    "uuid": "b1",
                    "version": "25.1.0",
                    "memory": {"usable": 1024, "used": 128},
                    "instances": [
                        _instance("i4", leader=True, port=3304, domain={"dc": "msk", "rack": "2"}),
                    ],
                },
            ],
        },
    ]


@pytest.fixture
def sample_cluster(sample_overview_data, sample_tiers_data):
    """Snapshot built from the sample responses."""
    return build_cluster(sample_overview_data, sample_tiers_data)

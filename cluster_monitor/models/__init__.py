"""Data models for API payloads, cluster snapshots and sessions."""

from cluster_monitor.models.api import (
    ClusterInfo,
    ErrorResponse,
    InstanceInfo,
    MemoryInfo,
    ReplicasetInfo,
    StateVariant,
    TierInfo,
    TokenResponse,
    UiConfig,
)
from cluster_monitor.models.cluster import Cluster, Instance, Replicaset, RowKey, Tier
from cluster_monitor.models.session import Session

__all__ = [
    "ClusterInfo",
    "ErrorResponse",
    "InstanceInfo",
    "MemoryInfo",
    "ReplicasetInfo",
    "StateVariant",
    "TierInfo",
    "TokenResponse",
    "UiConfig",
    "Cluster",
    "Instance",
    "Replicaset",
    "RowKey",
    "Tier",
    "Session",
]

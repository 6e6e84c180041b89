"""Build cluster snapshots from raw API responses."""

from typing import Any

from pydantic import TypeAdapter, ValidationError

from cluster_monitor.exceptions import MalformedResponseError
from cluster_monitor.logging_config import get_logger
from cluster_monitor.models.api import ClusterInfo, ReplicasetInfo, TierInfo
from cluster_monitor.models.cluster import Cluster, Instance, Replicaset, Tier

logger = get_logger(__name__)

_tiers_adapter = TypeAdapter(list[TierInfo])


def build_cluster(overview: Any, tiers: Any) -> Cluster:
    """Convert cluster overview and tiers responses into a Cluster snapshot.

    Either a complete, internally consistent snapshot is returned or
    MalformedResponseError is raised; nothing is partially built.

    Args:
        overview: Decoded body of GET /api/v1/cluster
        tiers: Decoded body of GET /api/v1/tiers

    Returns:
        Cluster snapshot with aggregates derived from instance data

    Raises:
        MalformedResponseError: Missing fields, duplicate names, or more than
            one leader in a replicaset
    """
    try:
        info = ClusterInfo.model_validate(overview)
    except ValidationError as e:
        raise MalformedResponseError("Cluster overview has unexpected format", str(e)) from e
    try:
        tier_infos = _tiers_adapter.validate_python(tiers)
    except ValidationError as e:
        raise MalformedResponseError("Tiers response has unexpected format", str(e)) from e

    seen_tiers: set[str] = set()
    seen_instances: set[str] = set()
    built_tiers = []
    for tier_info in tier_infos:
        if tier_info.name in seen_tiers:
            raise MalformedResponseError(f"Duplicate tier '{tier_info.name}'")
        seen_tiers.add(tier_info.name)
        built_tiers.append(_build_tier(tier_info, seen_instances))

    cluster = Cluster(
        name=info.cluster_name,
        cluster_version=info.cluster_version,
        engine_version=info.current_instance_version,
        plugins=tuple(info.plugins),
        tiers=tuple(built_tiers),
    )

    reported = info.instances_current_state_online + info.instances_current_state_offline
    if reported and reported != cluster.instance_count:
        logger.debug(
            f"Overview reports {reported} instances, tiers contain {cluster.instance_count}"
        )
    return cluster


def _build_tier(info: TierInfo, seen_instances: set[str]) -> Tier:
    seen_replicasets: set[str] = set()
    replicasets = []
    for rs_info in info.replicasets:
        if rs_info.name in seen_replicasets:
            raise MalformedResponseError(
                f"Duplicate replicaset '{rs_info.name}' in tier '{info.name}'"
            )
        seen_replicasets.add(rs_info.name)
        replicasets.append(_build_replicaset(info.name, rs_info, seen_instances))

    return Tier(
        name=info.name,
        replication_factor=info.rf,
        bucket_count=info.bucket_count,
        can_vote=info.can_vote,
        services=tuple(info.services),
        replicasets=tuple(replicasets),
    )


def _build_replicaset(tier: str, info: ReplicasetInfo, seen_instances: set[str]) -> Replicaset:
    instances = []
    for inst in info.instances:
        if inst.name in seen_instances:
            raise MalformedResponseError(f"Duplicate instance '{inst.name}'")
        seen_instances.add(inst.name)
        instances.append(
            Instance(
                name=inst.name,
                tier=tier,
                replicaset=info.name,
                state=inst.current_state,
                target_state=inst.target_state,
                binary_address=inst.binary_address,
                pg_address=inst.pg_address or None,
                http_address=inst.http_address,
                version=inst.version,
                failure_domain=dict(inst.failure_domain),
                is_leader=inst.is_leader,
            )
        )

    leaders = [i.name for i in instances if i.is_leader]
    if len(leaders) > 1:
        raise MalformedResponseError(
            f"Replicaset '{info.name}' in tier '{tier}' has several leaders",
            ", ".join(leaders),
        )

    return Replicaset(
        name=info.name,
        tier=tier,
        state=info.state,
        memory_used=info.memory.used,
        memory_total=info.memory.usable,
        instances=tuple(instances),
    )

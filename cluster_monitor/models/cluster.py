"""Snapshot entities: cluster topology as displayed by the dashboard.

A snapshot is an immutable graph owned top-down (Cluster -> Tier ->
Replicaset -> Instance). Children refer to their parents by name only, and
every aggregate is derived from child data.
"""

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from cluster_monitor.models.api import StateVariant

# Stable identity of a node across snapshots:
# (tier,), (tier, replicaset) or (tier, replicaset, instance).
RowKey = tuple[str, ...]


def memory_percent(used: int, total: int) -> float:
    """Return used/total as a percentage, 0.0 when nothing is usable."""
    if total <= 0:
        return 0.0
    return used / total * 100.0


class Instance(BaseModel):
    """A single cluster node process."""

    model_config = ConfigDict(frozen=True)

    name: str
    tier: str
    replicaset: str
    state: StateVariant
    target_state: StateVariant = StateVariant.UNKNOWN
    binary_address: str
    pg_address: str | None = None
    http_address: str = ""
    version: str = ""
    failure_domain: dict[str, str] = Field(default_factory=dict)
    is_leader: bool = False

    @property
    def key(self) -> RowKey:
        return (self.tier, self.replicaset, self.name)

    @property
    def is_online(self) -> bool:
        return self.state == StateVariant.ONLINE

    @property
    def failure_domain_text(self) -> str:
        """Failure domain as "key:value" pairs ordered by key."""
        return ", ".join(f"{k}:{v}" for k, v in sorted(self.failure_domain.items()))

    @property
    def failure_domain_sort_key(self) -> str:
        """Failure domain values ordered by key name, for sorting."""
        return "/".join(v for _, v in sorted(self.failure_domain.items()))


class Replicaset(BaseModel):
    """A set of instances holding the same shard."""

    model_config = ConfigDict(frozen=True)

    name: str
    tier: str
    state: StateVariant
    memory_used: int = 0
    memory_total: int = 0
    instances: tuple[Instance, ...] = ()

    @property
    def key(self) -> RowKey:
        return (self.tier, self.name)

    @property
    def instance_count(self) -> int:
        return len(self.instances)

    @property
    def online_count(self) -> int:
        return sum(1 for i in self.instances if i.is_online)

    @property
    def memory_percent(self) -> float:
        return memory_percent(self.memory_used, self.memory_total)

    @property
    def leader(self) -> Instance | None:
        return next((i for i in self.instances if i.is_leader), None)


class Tier(BaseModel):
    """A named group of replicasets sharing a replication policy."""

    model_config = ConfigDict(frozen=True)

    name: str
    replication_factor: int
    bucket_count: int
    can_vote: bool
    services: tuple[str, ...] = ()
    replicasets: tuple[Replicaset, ...] = ()

    @property
    def key(self) -> RowKey:
        return (self.name,)

    @property
    def replicaset_count(self) -> int:
        return len(self.replicasets)

    @property
    def instance_count(self) -> int:
        return sum(rs.instance_count for rs in self.replicasets)

    @property
    def online_count(self) -> int:
        return sum(rs.online_count for rs in self.replicasets)

    @property
    def memory_used(self) -> int:
        return sum(rs.memory_used for rs in self.replicasets)

    @property
    def memory_total(self) -> int:
        return sum(rs.memory_total for rs in self.replicasets)

    @property
    def memory_percent(self) -> float:
        return memory_percent(self.memory_used, self.memory_total)


class Cluster(BaseModel):
    """Root of one snapshot."""

    model_config = ConfigDict(frozen=True)

    name: str
    cluster_version: str
    engine_version: str
    plugins: tuple[str, ...] = ()
    tiers: tuple[Tier, ...] = ()

    _nodes: dict[RowKey, Tier | Replicaset | Instance] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context) -> None:
        nodes: dict[RowKey, Tier | Replicaset | Instance] = {}
        for tier in self.tiers:
            nodes[tier.key] = tier
            for rs in tier.replicasets:
                nodes[rs.key] = rs
                for inst in rs.instances:
                    nodes[inst.key] = inst
        self._nodes = nodes

    @property
    def replicaset_count(self) -> int:
        return sum(t.replicaset_count for t in self.tiers)

    @property
    def instance_count(self) -> int:
        return sum(t.instance_count for t in self.tiers)

    @property
    def online_count(self) -> int:
        return sum(t.online_count for t in self.tiers)

    @property
    def offline_count(self) -> int:
        return self.instance_count - self.online_count

    @property
    def memory_used(self) -> int:
        return sum(t.memory_used for t in self.tiers)

    @property
    def memory_total(self) -> int:
        return sum(t.memory_total for t in self.tiers)

    @property
    def memory_percent(self) -> float:
        return memory_percent(self.memory_used, self.memory_total)

    def has(self, key: RowKey) -> bool:
        """Check whether a node with this key exists in the snapshot."""
        return key in self._nodes

    def find(self, key: RowKey) -> Tier | Replicaset | Instance | None:
        """Resolve a row key against this snapshot."""
        return self._nodes.get(key)

    def iter_replicasets(self):
        """Yield every replicaset in API order."""
        for tier in self.tiers:
            yield from tier.replicasets

    def iter_instances(self):
        """Yield every instance in API order."""
        for rs in self.iter_replicasets():
            yield from rs.instances

"""Wire models for cluster API responses."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StateVariant(str, Enum):
    """Replicaset or instance state as reported by the API."""

    ONLINE = "Online"
    OFFLINE = "Offline"
    EXPELLED = "Expelled"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: str) -> "StateVariant":
        """Map a raw state string to a variant, unknown strings to UNKNOWN."""
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


class ApiModel(BaseModel):
    """Base for API payloads: camelCase aliases, unknown keys ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MemoryInfo(ApiModel):
    """Memory figures in bytes."""

    usable: int = Field(ge=0)
    used: int = Field(ge=0)


class UiConfig(ApiModel):
    """Response of GET /api/v1/config."""

    is_auth_enabled: bool = Field(alias="isAuthEnabled")


class TokenResponse(ApiModel):
    """Response of POST and GET /api/v1/session."""

    auth: str = Field(min_length=1)
    refresh: str | None = None


class ErrorResponse(ApiModel):
    """Error body returned with non-2xx statuses."""

    error: str = ""
    error_message: str = Field(default="", alias="errorMessage")


class ClusterInfo(ApiModel):
    """Response of GET /api/v1/cluster."""

    cluster_name: str = Field(alias="clusterName")
    cluster_version: str = Field(alias="clusterVersion")
    # Sic: the server spells this key without the second "n".
    current_instance_version: str = Field(alias="currentInstaceVersion")
    capacity_usage: float = Field(default=0.0, alias="capacityUsage")
    replicasets_count: int = Field(default=0, alias="replicasetsCount")
    instances_current_state_offline: int = Field(default=0, alias="instancesCurrentStateOffline")
    instances_current_state_online: int = Field(default=0, alias="instancesCurrentStateOnline")
    memory: MemoryInfo
    plugins: list[str] = Field(default_factory=list)


class InstanceInfo(ApiModel):
    """Instance entry nested in a replicaset."""

    name: str = Field(min_length=1)
    current_state: StateVariant = Field(alias="currentState")
    target_state: StateVariant = Field(default=StateVariant.UNKNOWN, alias="targetState")
    binary_address: str = Field(alias="binaryAddress")
    pg_address: str = Field(default="", alias="pgAddress")
    http_address: str = Field(default="", alias="httpAddress")
    version: str = ""
    failure_domain: dict[str, str] = Field(default_factory=dict, alias="failureDomain")
    is_leader: bool = Field(default=False, alias="isLeader")

    @field_validator("current_state", "target_state", mode="before")
    @classmethod
    def validate_state(cls, v):
        """Accept states this client does not know about."""
        if not isinstance(v, str):
            raise ValueError("state must be a string")
        return StateVariant.parse(v)


class ReplicasetInfo(ApiModel):
    """Replicaset entry nested in a tier."""

    name: str = Field(min_length=1)
    state: StateVariant
    uuid: str = ""
    version: str = ""
    memory: MemoryInfo
    instances: list[InstanceInfo] = Field(default_factory=list)

    @field_validator("state", mode="before")
    @classmethod
    def validate_state(cls, v):
        """Accept states this client does not know about."""
        if not isinstance(v, str):
            raise ValueError("state must be a string")
        return StateVariant.parse(v)


class TierInfo(ApiModel):
    """Tier entry of GET /api/v1/tiers."""

    name: str = Field(min_length=1)
    rf: int = Field(ge=0)
    bucket_count: int = Field(ge=0, alias="bucketCount")
    can_vote: bool
    services: list[str] = Field(default_factory=list)
    replicasets: list[ReplicasetInfo] = Field(default_factory=list)

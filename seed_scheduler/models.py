# seed_scheduler/models.py
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

UNMANAGED_DNS = "unmanaged"


class Purpose(str, Enum):
    evaluation = "evaluation"
    testing = "testing"
    development = "development"
    production = "production"
    infrastructure = "infrastructure"


class Strategy(str, Enum):
    same_region = "SameRegion"
    minimal_distance = "MinimalDistance"


class Networks(BaseModel):
    pods: Optional[str] = None
    services: Optional[str] = None
    nodes: Optional[str] = None

    def cidrs(self) -> Dict[str, str]:
        return {k: v for k, v in (("pods", self.pods), ("services", self.services), ("nodes", self.nodes)) if v}


class LabelSelectorRequirement(BaseModel):
    key: str
    operator: str  # In, NotIn, Exists, DoesNotExist
    values: List[str] = Field(default_factory=list)


class LabelSelector(BaseModel):
    match_labels: Dict[str, str] = Field(default_factory=dict)
    match_expressions: List[LabelSelectorRequirement] = Field(default_factory=list)


class SeedSelector(LabelSelector):
    # None means "no explicit allow-list"; "*" allows every provider type
    provider_types: Optional[List[str]] = None


class ShootDNS(BaseModel):
    provider: Optional[str] = None
    domain: Optional[str] = None

    @property
    def unmanaged(self) -> bool:
        return self.provider == UNMANAGED_DNS


class Shoot(BaseModel):
    namespace: str
    name: str
    provider_type: str
    region: str
    purpose: Purpose = Purpose.evaluation
    cloud_profile_name: Optional[str] = None
    networks: Networks = Field(default_factory=Networks)
    seed_selector: Optional[SeedSelector] = None
    dns: ShootDNS = Field(default_factory=ShootDNS)
    tolerations: List[str] = Field(default_factory=list)
    seed_name: Optional[str] = None
    resource_version: int = 0

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"


class Seed(BaseModel):
    name: str
    provider_type: str
    region: str
    labels: Dict[str, str] = Field(default_factory=dict)
    taints: List[str] = Field(default_factory=list)
    networks: Networks = Field(default_factory=Networks)
    visible: bool = True
    ready: bool = True
    deletion_timestamp: Optional[datetime] = None


class CloudProfile(BaseModel):
    name: str
    provider_type: str
    seed_selector: Optional[SeedSelector] = None


class Assigned(BaseModel):
    seed_name: str


class Unschedulable(BaseModel):
    reason: str


SchedulingOutcome = Union[Assigned, Unschedulable]


class Event(BaseModel):
    type: str = "Warning"
    reason: str
    message: str
    count: int = 1
    first_seen: Optional[datetime] = None
    last_seen: Optional[datetime] = None

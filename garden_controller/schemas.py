# garden_controller/schemas.py
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from seed_scheduler.models import Networks, Purpose, SeedSelector, ShootDNS


class ShootCreate(BaseModel):
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


class ShootUpdate(BaseModel):
    # seed_name is deliberately absent: use the binding or migration endpoints
    region: Optional[str] = None
    purpose: Optional[Purpose] = None
    cloud_profile_name: Optional[str] = None
    networks: Optional[Networks] = None
    seed_selector: Optional[SeedSelector] = None
    dns: Optional[ShootDNS] = None
    tolerations: Optional[List[str]] = None


class Binding(BaseModel):
    seed_name: str
    resource_version: int


class MigrationRequest(BaseModel):
    target_seed: str
    resource_version: int


class SeedUpsert(BaseModel):
    name: str
    provider_type: str
    region: str
    labels: Dict[str, str] = Field(default_factory=dict)
    taints: List[str] = Field(default_factory=list)
    networks: Networks = Field(default_factory=Networks)
    visible: bool = True
    ready: bool = True


class CloudProfileUpsert(BaseModel):
    name: str
    provider_type: str
    seed_selector: Optional[SeedSelector] = None


class EventCreate(BaseModel):
    type: str = "Normal"
    reason: str
    message: str

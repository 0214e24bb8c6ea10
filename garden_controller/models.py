from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, UniqueConstraint

from garden_controller.db import Base


def utcnow():
    return datetime.now(timezone.utc)


class Shoot(Base):
    __tablename__ = "shoots"
    __table_args__ = (UniqueConstraint("namespace", "name", name="uq_shoots_namespace_name"),)

    id = Column(Integer, primary_key=True)
    namespace = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)

    provider_type = Column(String, nullable=False)
    region = Column(String, nullable=False)
    purpose = Column(String, nullable=False, default="evaluation")
    cloud_profile_name = Column(String, nullable=True)
    networks = Column(JSON, nullable=False, default=dict)
    seed_selector = Column(JSON, nullable=True)
    dns = Column(JSON, nullable=False, default=dict)
    tolerations = Column(JSON, nullable=False, default=list)

    # set exactly once by the scheduler, changed afterwards only by a migration
    seed_name = Column(String, nullable=True, index=True)
    resource_version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Seed(Base):
    __tablename__ = "seeds"

    name = Column(String, primary_key=True)
    provider_type = Column(String, nullable=False)
    region = Column(String, nullable=False)
    labels = Column(JSON, nullable=False, default=dict)
    taints = Column(JSON, nullable=False, default=list)
    networks = Column(JSON, nullable=False, default=dict)
    visible = Column(Boolean, nullable=False, default=True)
    ready = Column(Boolean, nullable=False, default=False)
    deletion_timestamp = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow)


class CloudProfile(Base):
    __tablename__ = "cloud_profiles"

    name = Column(String, primary_key=True)
    provider_type = Column(String, nullable=False, index=True)
    seed_selector = Column(JSON, nullable=True)


class ShootEvent(Base):
    __tablename__ = "shoot_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    shoot_namespace = Column(String, nullable=False, index=True)
    shoot_name = Column(String, nullable=False, index=True)
    type = Column(String, nullable=False, default="Normal")
    reason = Column(String, nullable=False)
    message = Column(String, nullable=False)
    count = Column(Integer, nullable=False, default=1)
    first_seen = Column(DateTime(timezone=True), default=utcnow)
    last_seen = Column(DateTime(timezone=True), default=utcnow)

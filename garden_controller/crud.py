# garden_controller/crud.py
from typing import List, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from garden_controller import models, schemas
from garden_controller.models import utcnow
from seed_scheduler import models as entities
from seed_scheduler.errors import ConcurrentModification, NotFound, ValidationRejected
from seed_scheduler.planner import resolve_cloud_profile
from seed_scheduler.policies import filter_seeds

CLEARABLE_SHOOT_FIELDS = {"seed_selector", "cloud_profile_name"}


# ---------------- row -> entity ----------------

def to_shoot(row: models.Shoot) -> entities.Shoot:
    return entities.Shoot(
        namespace=row.namespace,
        name=row.name,
        provider_type=row.provider_type,
        region=row.region,
        purpose=row.purpose,
        cloud_profile_name=row.cloud_profile_name,
        networks=row.networks or {},
        seed_selector=row.seed_selector,
        dns=row.dns or {},
        tolerations=row.tolerations or [],
        seed_name=row.seed_name,
        resource_version=row.resource_version,
    )


def to_seed(row: models.Seed) -> entities.Seed:
    return entities.Seed(
        name=row.name,
        provider_type=row.provider_type,
        region=row.region,
        labels=row.labels or {},
        taints=row.taints or [],
        networks=row.networks or {},
        visible=row.visible,
        ready=row.ready,
        deletion_timestamp=row.deletion_timestamp,
    )


def to_cloud_profile(row: models.CloudProfile) -> entities.CloudProfile:
    return entities.CloudProfile(name=row.name, provider_type=row.provider_type, seed_selector=row.seed_selector)


def to_event(row: models.ShootEvent) -> entities.Event:
    return entities.Event(type=row.type, reason=row.reason, message=row.message, count=row.count,
                          first_seen=row.first_seen, last_seen=row.last_seen)


def _dump(model) -> Optional[dict]:
    return model.model_dump(mode="json") if model is not None else None


# ---------------- shoots ----------------

def get_shoot_row(db: Session, namespace: str, name: str) -> Optional[models.Shoot]:
    return db.query(models.Shoot).filter(models.Shoot.namespace == namespace, models.Shoot.name == name).first()


def get_shoot(db: Session, namespace: str, name: str) -> models.Shoot:
    row = get_shoot_row(db, namespace, name)
    if row is None:
        raise NotFound(f"shoot {namespace}/{name} not found")
    return row


def list_shoots(db: Session, unscheduled: bool = False, seed_name: Optional[str] = None) -> List[models.Shoot]:
    q = db.query(models.Shoot)
    if unscheduled:
        q = q.filter(models.Shoot.seed_name.is_(None))
    if seed_name:
        q = q.filter(models.Shoot.seed_name == seed_name)
    return q.order_by(models.Shoot.namespace, models.Shoot.name).all()


def create_shoot(db: Session, payload: schemas.ShootCreate) -> models.Shoot:
    if get_shoot_row(db, payload.namespace, payload.name) is not None:
        raise ConcurrentModification(f"shoot {payload.namespace}/{payload.name} already exists")
    row = models.Shoot(
        namespace=payload.namespace,
        name=payload.name,
        provider_type=payload.provider_type,
        region=payload.region,
        purpose=payload.purpose.value,
        cloud_profile_name=payload.cloud_profile_name,
        networks=_dump(payload.networks),
        seed_selector=_dump(payload.seed_selector),
        dns=_dump(payload.dns),
        tolerations=list(payload.tolerations),
        resource_version=1,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update_shoot_spec(db: Session, namespace: str, name: str, payload: schemas.ShootUpdate) -> models.Shoot:
    row = get_shoot(db, namespace, name)
    changed = False
    for field in payload.model_fields_set:
        value = getattr(payload, field)
        if value is None and field not in CLEARABLE_SHOOT_FIELDS:
            continue
        if field == "purpose":
            value = value.value
        elif hasattr(value, "model_dump"):
            value = _dump(value)
        setattr(row, field, value)
        changed = True
    if changed:
        row.resource_version = row.resource_version + 1
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def _conditional_seed_update(db: Session, namespace: str, name: str, seed_name: str, resource_version: int,
                             current_seed: Optional[str]) -> models.Shoot:
    """UPDATE ... WHERE resource_version = :rv AND seed_name IS :current; 0 rows means a conflict."""
    cond = [
        models.Shoot.namespace == namespace,
        models.Shoot.name == name,
        models.Shoot.resource_version == resource_version,
    ]
    if current_seed is None:
        cond.append(models.Shoot.seed_name.is_(None))
    else:
        cond.append(models.Shoot.seed_name == current_seed)
    res = db.execute(
        update(models.Shoot)
        .where(*cond)
        .values(seed_name=seed_name, resource_version=models.Shoot.resource_version + 1, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if res.rowcount == 0:
        db.rollback()
        row = get_shoot(db, namespace, name)
        if current_seed is None and row.seed_name:
            raise ConcurrentModification(f"shoot {namespace}/{name} is already assigned to seed {row.seed_name}")
        raise ConcurrentModification(
            f"shoot {namespace}/{name} has resource_version {row.resource_version}, not {resource_version}")
    db.commit()
    row = get_shoot(db, namespace, name)
    db.refresh(row)
    return row


def bind_shoot(db: Session, namespace: str, name: str, binding: schemas.Binding) -> models.Shoot:
    seed = get_seed_row(db, binding.seed_name)
    if seed is None:
        raise ValidationRejected(f"seed {binding.seed_name} does not exist")
    get_shoot(db, namespace, name)
    return _conditional_seed_update(db, namespace, name, binding.seed_name, binding.resource_version, None)


def migrate_shoot(db: Session, namespace: str, name: str, request: schemas.MigrationRequest) -> models.Shoot:
    """The explicit path for moving an assigned shoot to another seed."""
    row = get_shoot(db, namespace, name)
    if not row.seed_name:
        raise ValidationRejected(f"shoot {namespace}/{name} is not assigned to a seed yet")
    if row.seed_name == request.target_seed:
        raise ValidationRejected(f"shoot {namespace}/{name} is already on seed {request.target_seed}")
    target = get_seed_row(db, request.target_seed)
    if target is None:
        raise ValidationRejected(f"seed {request.target_seed} does not exist")
    if target.provider_type != row.provider_type:
        raise ValidationRejected(
            f"seed {target.name} has provider type {target.provider_type}, shoot needs {row.provider_type}")

    shoot = to_shoot(row)
    profile = resolve_cloud_profile(shoot, [to_cloud_profile(p) for p in list_cloud_profiles(db)])
    result = filter_seeds(shoot, [to_seed(target)], profile)
    if not result.seeds:
        raise ValidationRejected(f"seed {target.name} cannot host shoot: {result.eliminated[target.name]}")

    return _conditional_seed_update(db, namespace, name, target.name, request.resource_version, row.seed_name)


# ---------------- seeds ----------------

def get_seed_row(db: Session, name: str) -> Optional[models.Seed]:
    return db.query(models.Seed).filter(models.Seed.name == name).first()


def get_seed(db: Session, name: str) -> models.Seed:
    row = get_seed_row(db, name)
    if row is None:
        raise NotFound(f"seed {name} not found")
    return row


def list_seeds(db: Session) -> List[models.Seed]:
    return db.query(models.Seed).order_by(models.Seed.name).all()


def upsert_seed(db: Session, payload: schemas.SeedUpsert) -> models.Seed:
    row = get_seed_row(db, payload.name)
    if row is None:
        row = models.Seed(name=payload.name)
        db.add(row)
    row.provider_type = payload.provider_type
    row.region = payload.region
    row.labels = dict(payload.labels)
    row.taints = list(payload.taints)
    row.networks = _dump(payload.networks)
    row.visible = payload.visible
    row.ready = payload.ready
    db.commit()
    db.refresh(row)
    return row


def count_shoots_on_seed(db: Session, seed_name: str) -> int:
    return db.query(func.count(models.Shoot.id)).filter(models.Shoot.seed_name == seed_name).scalar() or 0


def delete_seed(db: Session, name: str) -> int:
    """
    Delete the seed if it hosts nothing. Otherwise mark it for deletion so
    the scheduler stops picking it, and return the number of hosted shoots.
    """
    row = get_seed(db, name)
    hosted = count_shoots_on_seed(db, name)
    if hosted:
        if row.deletion_timestamp is None:
            row.deletion_timestamp = utcnow()
            db.commit()
        return hosted
    db.delete(row)
    db.commit()
    return 0


# ---------------- cloud profiles ----------------

def list_cloud_profiles(db: Session) -> List[models.CloudProfile]:
    return db.query(models.CloudProfile).order_by(models.CloudProfile.name).all()


def get_cloud_profile(db: Session, name: str) -> models.CloudProfile:
    row = db.query(models.CloudProfile).filter(models.CloudProfile.name == name).first()
    if row is None:
        raise NotFound(f"cloud profile {name} not found")
    return row


def upsert_cloud_profile(db: Session, payload: schemas.CloudProfileUpsert) -> models.CloudProfile:
    row = db.query(models.CloudProfile).filter(models.CloudProfile.name == payload.name).first()
    if row is None:
        row = models.CloudProfile(name=payload.name)
        db.add(row)
    row.provider_type = payload.provider_type
    row.seed_selector = _dump(payload.seed_selector)
    db.commit()
    db.refresh(row)
    return row


# ---------------- events ----------------

def record_event(db: Session, namespace: str, name: str, payload: schemas.EventCreate) -> models.ShootEvent:
    get_shoot(db, namespace, name)
    existing = db.query(models.ShootEvent).filter(
        models.ShootEvent.shoot_namespace == namespace,
        models.ShootEvent.shoot_name == name,
        models.ShootEvent.type == payload.type,
        models.ShootEvent.reason == payload.reason,
        models.ShootEvent.message == payload.message,
    ).first()
    if existing is not None:
        existing.count = existing.count + 1
        existing.last_seen = utcnow()
        row = existing
    else:
        row = models.ShootEvent(shoot_namespace=namespace, shoot_name=name, type=payload.type,
                                reason=payload.reason, message=payload.message)
        db.add(row)
    db.commit()
    db.refresh(row)
    return row


def list_events(db: Session, namespace: str, name: str) -> List[models.ShootEvent]:
    return db.query(models.ShootEvent).filter(
        models.ShootEvent.shoot_namespace == namespace,
        models.ShootEvent.shoot_name == name,
    ).order_by(models.ShootEvent.id).all()

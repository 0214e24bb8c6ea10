# garden_controller/api/shoots.py
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from garden_controller import crud, schemas
from garden_controller.api.deps import http_error, require_controller_token
from garden_controller.db import get_db
from seed_scheduler.errors import SchedulerError

log = logging.getLogger("garden_controller.shoots")

router = APIRouter(prefix="/shoots", tags=["shoots"], dependencies=[Depends(require_controller_token)])


def _out(row) -> Dict[str, Any]:
    return crud.to_shoot(row).model_dump(mode="json")


@router.get("", response_model=List[Dict[str, Any]])
def list_shoots(unscheduled: bool = False, seed: Optional[str] = None, db: Session = Depends(get_db)):
    """
    List shoots. ?unscheduled=true returns only shoots without a seed,
    ?seed=<name> only the shoots hosted by that seed.
    """
    return [_out(s) for s in crud.list_shoots(db, unscheduled=unscheduled, seed_name=seed)]


@router.post("", status_code=201)
def create_shoot(payload: schemas.ShootCreate, db: Session = Depends(get_db)):
    try:
        row = crud.create_shoot(db, payload)
    except SchedulerError as e:
        raise http_error(e)
    log.info("Created shoot %s/%s (%s, %s)", row.namespace, row.name, row.provider_type, row.region)
    return _out(row)


@router.get("/{namespace}/{name}")
def get_shoot(namespace: str, name: str, db: Session = Depends(get_db)):
    try:
        return _out(crud.get_shoot(db, namespace, name))
    except SchedulerError as e:
        raise http_error(e)


@router.patch("/{namespace}/{name}")
def update_shoot(namespace: str, name: str, payload: schemas.ShootUpdate, db: Session = Depends(get_db)):
    try:
        return _out(crud.update_shoot_spec(db, namespace, name, payload))
    except SchedulerError as e:
        raise http_error(e)


@router.put("/{namespace}/{name}/binding")
def bind_shoot(namespace: str, name: str, payload: schemas.Binding, db: Session = Depends(get_db)):
    """
    Record the scheduler's decision. Only succeeds if the shoot has no seed yet
    and payload.resource_version matches; 409 otherwise.
    """
    try:
        row = crud.bind_shoot(db, namespace, name, payload)
    except SchedulerError as e:
        raise http_error(e)
    log.info("Shoot %s/%s bound to seed %s", namespace, name, row.seed_name)
    return _out(row)


@router.post("/{namespace}/{name}/migration")
def migrate_shoot(namespace: str, name: str, payload: schemas.MigrationRequest, db: Session = Depends(get_db)):
    try:
        source = crud.get_shoot(db, namespace, name).seed_name
        row = crud.migrate_shoot(db, namespace, name, payload)
    except SchedulerError as e:
        raise http_error(e)
    log.info("Shoot %s/%s migrated from seed %s to %s", namespace, name, source, row.seed_name)
    return _out(row)


@router.get("/{namespace}/{name}/events")
def list_events(namespace: str, name: str, db: Session = Depends(get_db)):
    return [crud.to_event(e).model_dump(mode="json") for e in crud.list_events(db, namespace, name)]


@router.post("/{namespace}/{name}/events", status_code=201)
def record_event(namespace: str, name: str, payload: schemas.EventCreate, db: Session = Depends(get_db)):
    try:
        row = crud.record_event(db, namespace, name, payload)
    except SchedulerError as e:
        raise http_error(e)
    return crud.to_event(row).model_dump(mode="json")

# garden_controller/api/seeds.py
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from garden_controller import crud, schemas
from garden_controller.api.deps import http_error, require_controller_token
from garden_controller.db import get_db
from seed_scheduler.errors import SchedulerError

log = logging.getLogger("garden_controller.seeds")

router = APIRouter(prefix="/seeds", tags=["seeds"], dependencies=[Depends(require_controller_token)])


def _out(row) -> Dict[str, Any]:
    return crud.to_seed(row).model_dump(mode="json")


@router.get("", response_model=List[Dict[str, Any]])
def list_seeds(db: Session = Depends(get_db)):
    return [_out(s) for s in crud.list_seeds(db)]


@router.post("")
def register_seed(payload: schemas.SeedUpsert, db: Session = Depends(get_db)):
    """Register a seed or update the mutable fields of an existing one."""
    row = crud.upsert_seed(db, payload)
    log.info("Registered seed %s (%s, %s)", row.name, row.provider_type, row.region)
    return _out(row)


@router.get("/{name}")
def get_seed(name: str, db: Session = Depends(get_db)):
    try:
        row = crud.get_seed(db, name)
    except SchedulerError as e:
        raise http_error(e)
    out = _out(row)
    out["shoot_count"] = crud.count_shoots_on_seed(db, name)
    return out


@router.delete("/{name}")
def delete_seed(name: str, db: Session = Depends(get_db)):
    try:
        hosted = crud.delete_seed(db, name)
    except SchedulerError as e:
        raise http_error(e)
    if hosted:
        log.info("Seed %s still hosts %d shoots, marked for deletion", name, hosted)
        return JSONResponse(status_code=409, content={
            "detail": f"seed {name} still hosts {hosted} shoots",
            "shoot_count": hosted,
        })
    log.info("Deleted seed %s", name)
    return {"status": "deleted", "name": name}

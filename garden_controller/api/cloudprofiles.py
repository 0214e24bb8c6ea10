# garden_controller/api/cloudprofiles.py
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from garden_controller import crud, schemas
from garden_controller.api.deps import http_error, require_controller_token
from garden_controller.db import get_db
from seed_scheduler.errors import SchedulerError

router = APIRouter(prefix="/cloudprofiles", tags=["cloudprofiles"], dependencies=[Depends(require_controller_token)])


@router.get("", response_model=List[Dict[str, Any]])
def list_cloud_profiles(db: Session = Depends(get_db)):
    return [crud.to_cloud_profile(p).model_dump(mode="json") for p in crud.list_cloud_profiles(db)]


@router.post("")
def upsert_cloud_profile(payload: schemas.CloudProfileUpsert, db: Session = Depends(get_db)):
    return crud.to_cloud_profile(crud.upsert_cloud_profile(db, payload)).model_dump(mode="json")


@router.get("/{name}")
def get_cloud_profile(name: str, db: Session = Depends(get_db)):
    try:
        return crud.to_cloud_profile(crud.get_cloud_profile(db, name)).model_dump(mode="json")
    except SchedulerError as e:
        raise http_error(e)

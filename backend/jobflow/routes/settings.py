from fastapi import APIRouter, Depends, Response, status

from jobflow.dependencies.auth import get_identity_key
from jobflow.dependencies.store import get_store
from jobflow.schemas.progress import UserProgress
from jobflow.schemas.user_settings import UpdateSettingsIn, UserSettingsOut
from jobflow.stores.sql import SqlStore

router = APIRouter(tags=["settings"], dependencies=[Depends(get_identity_key)])


@router.get("/settings", response_model=UserSettingsOut)
def get_settings(store: SqlStore = Depends(get_store)):
    return store.get_settings()


@router.patch("/settings", response_model=UserSettingsOut)
def update_settings(payload: UpdateSettingsIn, store: SqlStore = Depends(get_store)):
    return store.update_settings(payload)


@router.get("/progress", response_model=UserProgress)
def get_progress(store: SqlStore = Depends(get_store)):
    return store.get_user_progress()


@router.delete("/data", status_code=status.HTTP_204_NO_CONTENT)
def reset_data(store: SqlStore = Depends(get_store)):
    store.reset()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

from fastapi import APIRouter, Depends, Response, status

from jobflow.dependencies.auth import get_identity_key
from jobflow.dependencies.store import get_store, not_found
from jobflow.schemas.application import (
    ApplicationCreate,
    ApplicationOut,
    ApplicationUpdate,
    BulkCreateIn,
    BulkCreateOut,
    StatusUpdate,
)
from jobflow.stores.sql import SqlStore

router = APIRouter(prefix="/applications", tags=["applications"], dependencies=[Depends(get_identity_key)])


@router.get("", response_model=list[ApplicationOut])
def list_applications(store: SqlStore = Depends(get_store)):
    return store.list_applications()


@router.post("", response_model=ApplicationOut, status_code=status.HTTP_201_CREATED)
def create_application(payload: ApplicationCreate, store: SqlStore = Depends(get_store)):
    app_id = store.create_application(payload)
    return store.get_application(app_id)


@router.post("/bulk", response_model=BulkCreateOut, status_code=status.HTTP_201_CREATED)
def bulk_create_applications(payload: BulkCreateIn, store: SqlStore = Depends(get_store)):
    ids = store.bulk_create_applications(payload.items)
    return BulkCreateOut(ids=ids, migrated=len(ids))


@router.get("/{app_id}", response_model=ApplicationOut)
def get_application(app_id: str, store: SqlStore = Depends(get_store)):
    app = store.get_application(app_id)
    if app is None:
        raise not_found()
    return app


@router.patch("/{app_id}", response_model=ApplicationOut)
def update_application(app_id: str, payload: ApplicationUpdate, store: SqlStore = Depends(get_store)):
    app = store.update_application(app_id, payload)
    if app is None:
        raise not_found()
    return app


@router.post("/{app_id}/status", response_model=ApplicationOut)
def update_application_status(app_id: str, payload: StatusUpdate, store: SqlStore = Depends(get_store)):
    app = store.update_application_status(app_id, payload.status)
    if app is None:
        raise not_found()
    return app


@router.delete("/{app_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_application(app_id: str, store: SqlStore = Depends(get_store)):
    if not store.delete_application(app_id):
        raise not_found()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

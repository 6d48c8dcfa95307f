from fastapi import APIRouter, Depends
from typing import List
from .. import schemas
from ..deps import RequireAdmin, get_catalog_service
from ..policy import Actor
from ..services.catalog import CatalogService

router = APIRouter(prefix="/services", tags=["services"])


@router.get("", response_model=List[schemas.ServiceOut])
def list_services(catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.list_services()


@router.get("/{service_id}", response_model=schemas.ServiceOut)
def get_service(service_id: int, catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.get_service(service_id)


@router.post("", response_model=schemas.ServiceOut, status_code=201)
def create_service(payload: schemas.ServiceCreate, actor: Actor = Depends(RequireAdmin), catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.create_service(payload.model_dump(), actor)


@router.put("/{service_id}", response_model=schemas.ServiceOut)
def update_service(service_id: int, payload: schemas.ServiceUpdate, actor: Actor = Depends(RequireAdmin), catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.update_service(service_id, payload.model_dump(exclude_unset=True), actor)


@router.delete("/{service_id}", response_model=schemas.ServiceOut)
def delete_service(service_id: int, actor: Actor = Depends(RequireAdmin), catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.delete_service(service_id, actor)

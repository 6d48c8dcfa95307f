from fastapi import APIRouter, Depends
from typing import List
from .. import schemas
from ..deps import RequireAdmin, RequireBarberOrAdmin, get_catalog_service
from ..policy import Actor
from ..services.catalog import CatalogService

router = APIRouter(prefix="/barbers", tags=["barbers"])

@router.get("", response_model=List[schemas.BarberOut])
def list_barbers(catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.list_barbers()

@router.get("/all", response_model=List[schemas.BarberOut], dependencies=[Depends(RequireAdmin)])
def list_all_barbers(catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.list_barbers(include_inactive=True)

@router.get("/{barber_id}", response_model=schemas.BarberOut)
def get_barber(barber_id: int, catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.get_barber(barber_id)

@router.post("", response_model=schemas.BarberOut, status_code=201)
def create_barber(payload: schemas.BarberCreate, actor: Actor = Depends(RequireAdmin), catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.create_barber(payload.model_dump(), actor)

@router.put("/{barber_id}", response_model=schemas.BarberOut)
def update_barber(barber_id: int, payload: schemas.BarberUpdate, actor: Actor = Depends(RequireAdmin), catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.update_barber(barber_id, payload.model_dump(exclude_unset=True), actor)

@router.delete("/{barber_id}", response_model=schemas.BarberOut)
def delete_barber(barber_id: int, actor: Actor = Depends(RequireAdmin), catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.delete_barber(barber_id, actor)

@router.patch("/{barber_id}/availability", response_model=schemas.BarberOut)
def set_availability(
    barber_id: int,
    payload: schemas.BarberAvailabilityUpdate,
    actor: Actor = Depends(RequireBarberOrAdmin),
    catalog: CatalogService = Depends(get_catalog_service),
):
    return catalog.set_barber_availability(barber_id, payload.available, actor)

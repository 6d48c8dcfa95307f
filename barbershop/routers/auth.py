# barbershop/routers/auth.py
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from .. import schemas
from ..auth import create_access_token
from ..deps import get_catalog_service, get_current_actor
from ..policy import Actor
from ..services.catalog import CatalogService

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/signup", response_model=schemas.UserOut, status_code=status.HTTP_201_CREATED)
def signup(user_in: schemas.UserCreate, catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.register(user_in.email, user_in.password, user_in.first_name, user_in.last_name)

@router.post("/signin", response_model=schemas.Token)
def signin(form_data: OAuth2PasswordRequestForm = Depends(), catalog: CatalogService = Depends(get_catalog_service)):
    user = catalog.login(form_data.username, form_data.password)
    token = create_access_token({"sub": str(user.id), "role": user.role})
    return {"access_token": token, "token_type": "bearer"}

@router.get("/me", response_model=schemas.UserOut)
def me(actor: Actor = Depends(get_current_actor), catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.store.get_user(actor.id)

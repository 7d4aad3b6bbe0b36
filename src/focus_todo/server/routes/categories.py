"""Category API routes."""

from fastapi import APIRouter, Depends, status

from ...models import CategoryCreate, CategoryUpdate, SuccessResponse
from ...services.categories import CategoryService
from ..auth import get_current_user_id
from ..deps import get_category_service


router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("")
def list_categories(
    user_id: str = Depends(get_current_user_id),
    service: CategoryService = Depends(get_category_service),
):
    return [c.to_dict() for c in service.list_categories(user_id)]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_category(
    body: CategoryCreate,
    user_id: str = Depends(get_current_user_id),
    service: CategoryService = Depends(get_category_service),
):
    return service.create_category(user_id, body.name, body.color).to_dict()


@router.patch("/{category_id}")
def update_category(
    category_id: int,
    body: CategoryUpdate,
    user_id: str = Depends(get_current_user_id),
    service: CategoryService = Depends(get_category_service),
):
    return service.update_category(user_id, category_id, body.name, body.color).to_dict()


@router.delete("/{category_id}", response_model=SuccessResponse)
def delete_category(
    category_id: int,
    user_id: str = Depends(get_current_user_id),
    service: CategoryService = Depends(get_category_service),
):
    service.delete_category(user_id, category_id)
    return SuccessResponse(message=f"Category {category_id} deleted")

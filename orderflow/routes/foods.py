"""
Menu API Routes
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.database import get_db
from orderflow.schemas import ErrorResponse, FoodCreate, FoodResponse, FoodUpdate
from orderflow.services.foods import FoodService

router = APIRouter(prefix="/api/foods", tags=["Menu"])


def get_food_service(request: Request, db: AsyncSession = Depends(get_db)) -> FoodService:
    return FoodService(db, request.app.state.broadcaster)


@router.get("", response_model=list[FoodResponse])
async def list_foods(
    available: bool = Query(False, description="Only items currently on the menu"),
    service: FoodService = Depends(get_food_service),
):
    return await service.list_foods(available_only=available)


@router.post("", response_model=FoodResponse, status_code=201, responses={400: {"model": ErrorResponse}})
async def add_food(food_data: FoodCreate, service: FoodService = Depends(get_food_service)):
    return await service.add_food(food_data)


@router.put("/{food_id}", response_model=FoodResponse, responses={404: {"model": ErrorResponse}})
async def update_food(
    food_id: str,
    food_data: FoodUpdate,
    service: FoodService = Depends(get_food_service),
):
    return await service.update_food(food_id, food_data)


@router.delete("/{food_id}", responses={404: {"model": ErrorResponse}})
async def remove_food(food_id: str, service: FoodService = Depends(get_food_service)) -> dict:
    deleted_id = await service.remove_food(food_id)
    return {"success": True, "message": "Food removed successfully", "deletedFoodId": deleted_id}

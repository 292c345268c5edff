"""
Menu Service

Plain CRUD for menu items. Every change is pushed to all live clients.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderflow.core.exceptions import NotFoundError
from orderflow.models import Food
from orderflow.realtime.broadcaster import EventBroadcaster
from orderflow.schemas import FoodCreate, FoodUpdate, food_payload

logger = logging.getLogger(__name__)


class FoodService:
    def __init__(self, db: AsyncSession, broadcaster: EventBroadcaster):
        self.db = db
        self.broadcaster = broadcaster

    async def list_foods(self, available_only: bool = False) -> list[Food]:
        query = select(Food).order_by(Food.category, Food.name)
        if available_only:
            query = query.where(Food.is_available.is_(True))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_food(self, food_id: str) -> Food:
        food = await self.db.get(Food, food_id)
        if food is None:
            raise NotFoundError("Food not found")
        return food

    async def add_food(self, data: FoodCreate) -> Food:
        food = Food(**data.model_dump())
        self.db.add(food)
        await self.db.commit()
        await self.db.refresh(food)

        logger.info(f"🍽️ Menu item added: {food.name}")
        self.broadcaster.food_added(food_payload(food))
        return food

    async def update_food(self, food_id: str, data: FoodUpdate) -> Food:
        food = await self.get_food(food_id)
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(food, key, value)
        await self.db.commit()
        await self.db.refresh(food)

        logger.info(f"🍽️ Menu item updated: {food.name}")
        self.broadcaster.food_updated(food_payload(food))
        return food

    async def remove_food(self, food_id: str) -> str:
        food = await self.get_food(food_id)
        await self.db.delete(food)
        await self.db.commit()

        logger.info(f"🍽️ Menu item removed: {food_id}")
        self.broadcaster.food_deleted(food_id)
        return food_id

"""Category management."""

import logging
import re
from typing import List, Optional

from ..domain import DEFAULT_CATEGORY_COLOR, OTHERS_CATEGORY_NAME, Category
from ..errors import NotFoundError, ValidationError
from ..storage.database import DatabaseManager


logger = logging.getLogger(__name__)

COLOR_PATTERN = re.compile(r'^#[0-9a-fA-F]{6}$')


def _check_color(color: str) -> str:
    if not COLOR_PATTERN.match(color or ""):
        raise ValidationError(f"Invalid color '{color}', expected #RRGGBB")
    return color


class CategoryService:
    """User-owned categories; names are unique per user."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def list_categories(self, user_id: str) -> List[Category]:
        return self.db.list_categories(user_id)

    def get_category(self, user_id: str, category_id: int) -> Category:
        category = self.db.get_category(user_id, category_id)
        if category is None:
            raise NotFoundError(f"Category {category_id} not found")
        return category

    def create_category(self, user_id: str, name: str, color: str = DEFAULT_CATEGORY_COLOR) -> Category:
        if not name or not name.strip():
            raise ValidationError("Category name is required")
        category = self.db.create_category(user_id, name.strip(), _check_color(color))
        logger.info(f"Created category {category.id} '{category.name}' for user {user_id}")
        return category

    def update_category(
        self,
        user_id: str,
        category_id: int,
        name: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Category:
        category = self.get_category(user_id, category_id)
        if name is not None:
            if not name.strip():
                raise ValidationError("Category name is required")
            category.name = name.strip()
        if color is not None:
            category.color = _check_color(color)
        self.db.update_category(category)
        return category

    def delete_category(self, user_id: str, category_id: int) -> None:
        if not self.db.delete_category(user_id, category_id):
            raise NotFoundError(f"Category {category_id} not found")
        logger.info(f"Deleted category {category_id} for user {user_id}")

    def resolve(
        self,
        user_id: str,
        category_id: Optional[int] = None,
        category_name: Optional[str] = None,
        conn=None,
    ) -> Optional[Category]:
        """Resolve the category a task should carry.

        An id must exist for the user. A name that matches nothing falls back
        to the user's "Others" category, created on demand.
        """
        if category_id is not None:
            category = self.db.get_category(user_id, category_id, conn=conn)
            if category is None:
                raise ValidationError(f"Category {category_id} not found")
            return category

        if category_name and category_name.strip():
            category = self.db.get_category_by_name(user_id, category_name.strip(), conn=conn)
            if category is not None:
                return category
            logger.warning(f"Category '{category_name}' not found for user {user_id}, using {OTHERS_CATEGORY_NAME}")
            return self.get_or_create_others(user_id, conn=conn)

        return None

    def get_or_create_others(self, user_id: str, conn=None) -> Category:
        existing = self.db.get_category_by_name(user_id, OTHERS_CATEGORY_NAME, conn=conn)
        if existing:
            return existing
        return self.db.create_category(user_id, OTHERS_CATEGORY_NAME, DEFAULT_CATEGORY_COLOR, conn=conn)

"""Category store: per-user CRUD over categories."""
from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from subtracker.core.errors import DuplicateNameError, NotFoundError, StorageError
from subtracker.core.validation import parse_identifier, require_name

from .models import Category

logger = logging.getLogger(__name__)


def _is_unique_violation(exc: IntegrityError) -> bool:
    """True for the per-user name constraint (sqlite and PostgreSQL wording)."""
    message = str(exc.orig).lower()
    return "uq_categories_name_user" in message or "unique constraint" in message


class CategoryStore:
    """Categories scoped to their owning user.

    Every query filters on ``user_id`` so one user's rows are invisible to
    another; a foreign id looks exactly like a missing one.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_categories(self, user_id: int) -> list[Category]:
        """Return all categories of the user, newest first."""
        try:
            result = await self.db.execute(
                select(Category)
                .where(Category.user_id == user_id)
                .order_by(Category.created_at.desc(), Category.id.desc())
            )
        except SQLAlchemyError as exc:
            logger.exception("Failed to list categories for user %s", user_id)
            raise StorageError("Failed to fetch categories") from exc
        return list(result.scalars().all())

    async def get_category(self, category_id: int, user_id: int) -> Category:
        try:
            result = await self.db.execute(
                select(Category).where(Category.id == category_id, Category.user_id == user_id)
            )
        except SQLAlchemyError as exc:
            logger.exception("Failed to load category %s for user %s", category_id, user_id)
            raise StorageError("Failed to fetch category") from exc

        category = result.scalar_one_or_none()
        if category is None:
            raise NotFoundError("Category not found")
        return category

    async def create_category(self, name: str, user_id: int) -> Category:
        """Insert a category; the unique (name, user_id) constraint decides duplicates."""
        name = require_name(name, "category name")

        category = Category(name=name, user_id=user_id)
        self.db.add(category)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            if _is_unique_violation(exc):
                logger.info("Duplicate category name for user %s", user_id)
                raise DuplicateNameError("Category already exists") from None
            # only the owner foreign key is left
            logger.warning("Category insert for unknown user %s rejected", user_id)
            raise NotFoundError("User not found") from None
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("Failed to create category for user %s", user_id)
            raise StorageError("Failed to create category") from exc

        await self.db.refresh(category)
        return category

    async def delete_category(self, category_id: int, user_id: int) -> None:
        """Delete the category; its subscriptions go with it via ON DELETE CASCADE."""
        category_id = parse_identifier(category_id, "category ID")
        try:
            result = await self.db.execute(
                delete(Category).where(Category.id == category_id, Category.user_id == user_id)
            )
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.exception("Failed to delete category %s for user %s", category_id, user_id)
            raise StorageError("Failed to delete category") from exc

        if not result.rowcount:
            raise NotFoundError("Category not found")

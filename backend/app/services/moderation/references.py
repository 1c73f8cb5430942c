"""Soft image references.

Sales, items and profiles store approved image URLs as plain strings
with no foreign key to the storage object. The only way this package
mutates them is a single compare-and-clear primitive: remove the value
only while it still equals the flagged url, so an owner's newer write is
never clobbered by a stale moderation action.
"""

from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy import and_, delete, select, update

from app.extensions import db
from app.models import GarageSale, Item, ItemImage, Profile
from app.services.moderation.errors import UnknownOwnerKindError
from app.services.moderation.strikes import StrikeTracker


logger = logging.getLogger(__name__)


class OwnerKind(str, Enum):
    SALE_COVER = "sale_cover"
    SALE_ITEM_IMAGE = "sale_item_image"
    PROFILE_PHOTO = "profile_photo"

    @classmethod
    def parse(cls, value) -> "OwnerKind":
        if isinstance(value, cls):
            return value
        raw = (str(value) if value is not None else "").strip().lower()
        if raw == "sale_item":
            return cls.SALE_ITEM_IMAGE
        try:
            return cls(raw)
        except ValueError:
            raise UnknownOwnerKindError(f"unknown owner kind: {value!r}")


class SoftReference:
    def clear_statement(self, owner_id: str, url: str):
        raise NotImplementedError


class ScalarReference(SoftReference):
    """Single string column on the owning row."""

    def __init__(self, model, owner_column: str, column: str):
        self.model = model
        self.owner_column = owner_column
        self.column = column

    def clear_statement(self, owner_id: str, url: str):
        owner = getattr(self.model, self.owner_column)
        col = getattr(self.model, self.column)
        return (
            update(self.model)
            .where(and_(owner == owner_id, col == url))
            .values({self.column: ""})
            .execution_options(synchronize_session=False)
        )


class ListReference(SoftReference):
    """One row per list entry; clearing removes the matching entries."""

    def clear_statement(self, owner_id: str, url: str):
        item_ids = select(Item.id).where(Item.sale_id == owner_id)
        return (
            delete(ItemImage)
            .where(and_(ItemImage.url == url, ItemImage.item_id.in_(item_ids)))
            .execution_options(synchronize_session=False)
        )


SOFT_REFERENCES = {
    OwnerKind.SALE_COVER: ScalarReference(GarageSale, "id", "sale_cover_photo"),
    OwnerKind.SALE_ITEM_IMAGE: ListReference(),
    OwnerKind.PROFILE_PHOTO: ScalarReference(Profile, "user_id", "photo_url"),
}


class ReferenceConsistencyManager:
    def __init__(self, *, strikes: StrikeTracker | None = None, session=None):
        self._session = session
        self.strikes = strikes or StrikeTracker(session=session)

    @property
    def session(self):
        return self._session or db.session

    def _execute_and_commit(self, stmt) -> bool:
        try:
            result = self.session.execute(stmt)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return (result.rowcount or 0) > 0

    def clear_if_matches(self, owner_kind, owner_id: str, url: str) -> bool:
        kind = OwnerKind.parse(owner_kind)
        owner = (owner_id or "").strip()
        target = (url or "").strip()
        if not owner or not target:
            return False
        cleared = self._execute_and_commit(SOFT_REFERENCES[kind].clear_statement(owner, target))
        logger.info("reference_clear kind=%s owner_id=%s cleared=%s", kind.value, owner, cleared)
        return cleared

    def clear_profile_photo(self, user_id: str) -> bool:
        """Clear whatever photo the user's profile holds."""
        uid = (user_id or "").strip()
        if not uid:
            return False
        stmt = (
            update(Profile)
            .where(and_(Profile.user_id == uid, Profile.photo_url != ""))
            .values(photo_url="")
            .execution_options(synchronize_session=False)
        )
        cleared = self._execute_and_commit(stmt)
        logger.info("reference_clear kind=profile_photo user_id=%s cleared=%s unconditional=1", uid, cleared)
        return cleared

    def strike_and_clear(self, user_id: str, owner_id: str, url: str, owner_kind) -> bool:
        kind = OwnerKind.parse(owner_kind)

        try:
            self.strikes.increment(user_id)
        except Exception:
            logger.exception("strike_and_clear_strike_failed user_id=%s kind=%s", user_id, kind.value)

        try:
            if kind is OwnerKind.PROFILE_PHOTO:
                return self.clear_profile_photo(user_id)
            return self.clear_if_matches(kind, owner_id, url)
        except Exception:
            logger.exception(
                "strike_and_clear_clear_failed user_id=%s owner_id=%s kind=%s", user_id, owner_id, kind.value
            )
            return False

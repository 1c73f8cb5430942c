from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.extensions import db
from app.models import UserFlag


logger = logging.getLogger(__name__)


def _upsert_insert(dialect_name: str):
    if dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    elif dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        return None
    return insert


class StrikeTracker:
    """Durable per-user strike counter.

    Each ``increment`` adds exactly one strike with a single atomic
    statement, so concurrent rejections for one user never lose a count.

    Without an explicit ``session`` the write runs and commits on its own
    session, so pending changes in the request's ``db.session`` are
    neither committed nor rolled back by a strike.
    """

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session or db.session

    def _atomic_upsert(self, session, user_id: str, now: datetime) -> bool:
        insert = _upsert_insert(session.get_bind().dialect.name)
        if insert is None:
            return False
        table = UserFlag.__table__
        stmt = insert(table).values(
            user_id=user_id,
            strikes=1,
            last_strike_at=now,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.user_id],
            set_={
                "strikes": table.c.strikes + 1,
                "last_strike_at": now,
                "updated_at": now,
            },
        )
        session.execute(stmt)
        return True

    def _update_then_insert(self, session, user_id: str, now: datetime) -> None:
        table = UserFlag.__table__
        bump = (
            update(table)
            .where(table.c.user_id == user_id)
            .values(strikes=table.c.strikes + 1, last_strike_at=now, updated_at=now)
        )
        if session.execute(bump).rowcount:
            return
        try:
            with session.begin_nested():
                session.execute(
                    table.insert().values(
                        user_id=user_id,
                        strikes=1,
                        last_strike_at=now,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except IntegrityError:
            # Lost the insert race; the row exists now.
            session.execute(bump)

    def _write(self, session, user_id: str, now: datetime) -> None:
        try:
            if not self._atomic_upsert(session, user_id, now):
                self._update_then_insert(session, user_id, now)
            session.commit()
        except Exception:
            session.rollback()
            raise

    def increment(self, user_id: str) -> UserFlag:
        uid = (user_id or "").strip()
        if not uid:
            raise ValueError("user_id is required")
        now = datetime.utcnow()
        if self._session is not None:
            self._write(self._session, uid, now)
        else:
            with Session(bind=db.engine) as session:
                self._write(session, uid, now)
        flag = self.get(uid)
        logger.info("strike_recorded user_id=%s strikes=%s", uid, flag.strikes if flag else None)
        return flag

    def get(self, user_id: str) -> UserFlag | None:
        uid = (user_id or "").strip()
        if not uid:
            return None
        with self.session.no_autoflush:
            flag = self.session.execute(select(UserFlag).where(UserFlag.user_id == uid)).scalar_one_or_none()
            if flag is not None:
                self.session.refresh(flag)
        return flag

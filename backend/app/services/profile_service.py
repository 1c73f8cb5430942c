from __future__ import annotations

import logging
from datetime import date, datetime

from app.extensions import db
from app.models import Profile
from app.services.moderation import ImageRejectedError, get_coordinator, request_deadline
from app.services.record_errors import RecordNotFoundError, RecordValidationError


logger = logging.getLogger(__name__)

MIN_AGE_YEARS = 16


def _parse_dob(value):
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value).strip()[:10]
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise RecordValidationError({"dob": "DOB must be an ISO date"})


def _check_age(dob: date, today: date | None = None) -> None:
    today = today or datetime.utcnow().date()
    if dob > today:
        raise RecordValidationError({"dob": "DOB cannot be in the future"})
    try:
        cutoff = today.replace(year=today.year - MIN_AGE_YEARS)
    except ValueError:
        cutoff = today.replace(year=today.year - MIN_AGE_YEARS, day=28)
    if dob > cutoff:
        raise RecordValidationError({"dob": "User must be 16 years old or older"})


def get_profile(user_id: str) -> Profile:
    prof = db.session.get(Profile, (user_id or "").strip()) if user_id else None
    if prof is None:
        raise RecordNotFoundError("Profile not found")
    return prof


def upsert_profile(user_id: str, payload: dict, *, email: str = "") -> Profile:
    """Create or update the caller's profile.

    ``photo_url``: absent or None keeps the current photo, ``""`` clears
    it, anything else is moderated and only the approved url is stored.
    """
    payload = payload or {}
    dob = None
    if "dob" in payload:
        dob = _parse_dob(payload.get("dob"))
        if dob is not None:
            _check_age(dob)

    photo = payload.get("photo_url")
    approved_photo = None
    if photo is not None:
        value = str(photo).strip()
        if not value:
            approved_photo = ""
        else:
            result = get_coordinator().moderate_and_promote(value, user_id, deadline=request_deadline())
            if result.is_rejected:
                raise ImageRejectedError(locator=result.locator)
            approved_photo = result.url

    prof = db.session.get(Profile, user_id)
    if prof is None:
        prof = Profile(user_id=user_id, email=email or "")
        db.session.add(prof)
    elif email and not prof.email:
        prof.email = email

    if "display_name" in payload:
        prof.display_name = (payload.get("display_name") or "").strip()
    if "bio" in payload:
        prof.bio = (payload.get("bio") or "").strip()
    if "dob" in payload:
        prof.dob = datetime.combine(dob, datetime.min.time()) if dob else None
    if approved_photo is not None:
        prof.photo_url = approved_photo

    db.session.commit()
    logger.info("profile_upserted user_id=%s photo_changed=%s", user_id, approved_photo is not None)
    return prof

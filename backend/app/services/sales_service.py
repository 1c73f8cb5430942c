from __future__ import annotations

import logging
from datetime import datetime, timezone

from app.extensions import db
from app.models import GarageSale, Item
from app.services.moderation import ImageRejectedError, get_coordinator, request_deadline
from app.services.record_errors import NotOwnerError, RecordNotFoundError, RecordValidationError


logger = logging.getLogger(__name__)


def _parse_dt(value):
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    raw = str(value).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _float(value, default=0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def validate_sale_payload(payload: dict) -> dict:
    errors = {}
    if not (payload.get("title") or "").strip():
        errors["title"] = "Title is required"
    if not (payload.get("address") or "").strip():
        errors["address"] = "Address is required"
    if _float(payload.get("latitude")) == 0 and _float(payload.get("longitude")) == 0:
        errors["location"] = "Location coordinates are required"
    start = _parse_dt(payload.get("start_date"))
    end = _parse_dt(payload.get("end_date"))
    if start is None:
        errors["start_date"] = "Start date is required"
    if end is None:
        errors["end_date"] = "End date is required"
    if start is not None and end is not None and end < start:
        errors["end_date"] = "End date must be after start date"
    return errors


def validate_item_payload(payload: dict, *, partial: bool = False) -> dict:
    errors = {}
    if not partial or "name" in payload:
        if not (payload.get("name") or "").strip():
            errors["name"] = "Item name is required"
    if "price" in payload and _float(payload.get("price")) < 0:
        errors["price"] = "Price cannot be negative"
    return errors


def _image_list(payload: dict):
    if "image_urls" in payload:
        raw = payload.get("image_urls")
        if raw is None:
            return []
        if isinstance(raw, str):
            return [raw]
        return list(raw)
    if "image_url" in payload:
        raw = payload.get("image_url")
        return [raw] if raw else []
    return None


def _moderate_images(locators, user_id: str) -> list[str]:
    if not locators:
        return []
    result = get_coordinator().moderate_multiple(locators, user_id, deadline=request_deadline())
    if result.is_rejected:
        raise ImageRejectedError(locator=result.rejected_locator)
    return list(result.urls)


def get_sale(sale_id: str) -> GarageSale:
    sale = db.session.get(GarageSale, (sale_id or "").strip()) if sale_id else None
    if sale is None:
        raise RecordNotFoundError("Sale not found")
    return sale


def _owned_sale(sale_id: str, user_id: str, action: str) -> GarageSale:
    sale = get_sale(sale_id)
    if sale.user_id != user_id:
        raise NotOwnerError(f"Not authorized to {action}")
    return sale


def create_sale(user_id: str, payload: dict) -> GarageSale:
    payload = payload or {}
    errors = validate_sale_payload(payload)
    if errors:
        raise RecordValidationError(errors)

    cover = ""
    if (payload.get("sale_cover_photo") or "").strip():
        cover = _moderate_images([payload.get("sale_cover_photo")], user_id)[0]

    sale = GarageSale(
        user_id=user_id,
        title=payload.get("title").strip(),
        description=(payload.get("description") or "").strip(),
        address=payload.get("address").strip(),
        latitude=_float(payload.get("latitude")),
        longitude=_float(payload.get("longitude")),
        start_date=_parse_dt(payload.get("start_date")),
        end_date=_parse_dt(payload.get("end_date")),
        sale_cover_photo=cover,
    )
    db.session.add(sale)
    db.session.commit()
    logger.info("sale_created sale_id=%s user_id=%s", sale.id, user_id)
    return sale


def set_sale_cover_photo(sale_id: str, user_id: str, locator) -> GarageSale:
    sale = _owned_sale(sale_id, user_id, "update this sale")
    value = (str(locator) if locator is not None else "").strip()
    if not value:
        sale.sale_cover_photo = ""
    else:
        result = get_coordinator().moderate_and_promote(value, user_id, deadline=request_deadline())
        if result.is_rejected:
            raise ImageRejectedError(locator=result.locator)
        sale.sale_cover_photo = result.url
    db.session.commit()
    logger.info("sale_cover_set sale_id=%s cleared=%s", sale.id, not value)
    return sale


def add_item(sale_id: str, user_id: str, payload: dict) -> Item:
    payload = payload or {}
    sale = _owned_sale(sale_id, user_id, "add items to this sale")
    errors = validate_item_payload(payload)
    if errors:
        raise RecordValidationError(errors)

    urls = _moderate_images(_image_list(payload) or [], user_id)

    item = Item(
        sale_id=sale.id,
        name=payload.get("name").strip(),
        description=(payload.get("description") or "").strip(),
        price=_float(payload.get("price")),
        category=(payload.get("category") or "").strip(),
    )
    item.set_image_urls(urls)
    db.session.add(item)
    db.session.commit()
    logger.info("item_added sale_id=%s item_id=%s images=%s", sale.id, item.id, len(urls))
    return item


def update_item(sale_id: str, item_id: str, user_id: str, payload: dict) -> Item:
    payload = payload or {}
    sale = _owned_sale(sale_id, user_id, "update items in this sale")
    item = db.session.get(Item, (item_id or "").strip()) if item_id else None
    if item is None or item.sale_id != sale.id:
        raise RecordNotFoundError("Item not found")
    errors = validate_item_payload(payload, partial=True)
    if errors:
        raise RecordValidationError(errors)

    locators = _image_list(payload)
    # Moderate the whole list before touching the row.
    urls = _moderate_images(locators, user_id) if locators is not None else None

    if "name" in payload:
        item.name = payload.get("name").strip()
    if "description" in payload:
        item.description = (payload.get("description") or "").strip()
    if "price" in payload:
        item.price = _float(payload.get("price"))
    if "category" in payload:
        item.category = (payload.get("category") or "").strip()
    if urls is not None:
        item.set_image_urls(urls)
    db.session.commit()
    logger.info("item_updated sale_id=%s item_id=%s images=%s", sale.id, item.id, None if urls is None else len(urls))
    return item

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from app.services import sales_service
from app.utils.jwt_utils import current_claims

sales_bp = Blueprint("sales_bp", __name__, url_prefix="/api")


def _current_user_id() -> str | None:
    claims = current_claims(request.headers.get("Authorization", ""))
    if not claims:
        return None
    uid = str(claims.get("sub") or "").strip()
    g.auth_user_id = uid
    g.auth_role = claims.get("role")
    return uid or None


def _unauthorized():
    return jsonify({"ok": False, "message": "Unauthorized"}), 401


@sales_bp.post("/sales")
def create_sale():
    uid = _current_user_id()
    if not uid:
        return _unauthorized()
    sale = sales_service.create_sale(uid, request.get_json(silent=True) or {})
    return jsonify({"ok": True, "sale": sale.to_dict()}), 201


@sales_bp.get("/sales/<sale_id>")
def get_sale(sale_id: str):
    sale = sales_service.get_sale(sale_id)
    return jsonify({"ok": True, "sale": sale.to_dict()}), 200


@sales_bp.put("/sales/<sale_id>/cover")
def set_cover(sale_id: str):
    uid = _current_user_id()
    if not uid:
        return _unauthorized()
    data = request.get_json(silent=True) or {}
    sale = sales_service.set_sale_cover_photo(sale_id, uid, data.get("sale_cover_photo"))
    return jsonify({"ok": True, "sale": sale.to_dict(include_items=False)}), 200


@sales_bp.post("/sales/<sale_id>/items")
def add_item(sale_id: str):
    uid = _current_user_id()
    if not uid:
        return _unauthorized()
    item = sales_service.add_item(sale_id, uid, request.get_json(silent=True) or {})
    return jsonify({"ok": True, "item": item.to_dict()}), 201


@sales_bp.put("/sales/<sale_id>/items/<item_id>")
def update_item(sale_id: str, item_id: str):
    uid = _current_user_id()
    if not uid:
        return _unauthorized()
    item = sales_service.update_item(sale_id, item_id, uid, request.get_json(silent=True) or {})
    return jsonify({"ok": True, "item": item.to_dict()}), 200

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from app.services.moderation import (
    OwnerKind,
    StrikeTracker,
    get_coordinator,
    get_reference_manager,
    request_deadline,
)
from app.utils.jwt_utils import current_claims, is_admin

moderation_bp = Blueprint("moderation_bp", __name__, url_prefix="/api")


def _claims() -> dict | None:
    claims = current_claims(request.headers.get("Authorization", ""))
    if claims:
        g.auth_user_id = str(claims.get("sub"))
        g.auth_role = claims.get("role")
    return claims


@moderation_bp.post("/images/moderate")
def moderate_images():
    """Moderate one ``locator`` or an ordered ``locators`` batch."""
    claims = _claims()
    if not claims:
        return jsonify({"ok": False, "message": "Unauthorized"}), 401
    uid = str(claims["sub"])
    data = request.get_json(silent=True) or {}
    coordinator = get_coordinator()

    if isinstance(data.get("locators"), list):
        result = coordinator.moderate_multiple(data["locators"], uid, deadline=request_deadline())
        g.moderation_outcome = result.status
        if result.is_rejected:
            return jsonify({
                "ok": False,
                "code": "IMAGE_REJECTED",
                "message": "image rejected by content moderation",
                "rejected_locator": result.rejected_locator,
            }), 422
        return jsonify({"ok": True, "urls": list(result.urls)}), 200

    result = coordinator.moderate_and_promote(data.get("locator"), uid, deadline=request_deadline())
    g.moderation_outcome = result.status
    if result.is_rejected:
        return jsonify({
            "ok": False,
            "code": "IMAGE_REJECTED",
            "message": "image rejected by content moderation",
            "locator": result.locator,
        }), 422
    return jsonify({"ok": True, "url": result.url}), 200


@moderation_bp.post("/admin/moderation/strike")
def admin_strike():
    claims = _claims()
    if not claims:
        return jsonify({"ok": False, "message": "Unauthorized"}), 401
    if not is_admin(claims):
        return jsonify({"ok": False, "message": "Forbidden"}), 403

    data = request.get_json(silent=True) or {}
    user_id = str(data.get("user_id") or "").strip()
    if not user_id:
        return jsonify({"ok": False, "message": "user_id is required"}), 400
    kind = OwnerKind.parse(data.get("kind"))

    cleared = get_reference_manager().strike_and_clear(
        user_id,
        str(data.get("owner_id") or "").strip(),
        str(data.get("url") or "").strip(),
        kind,
    )
    current_app.logger.info(
        "admin_strike admin=%s user_id=%s kind=%s cleared=%s", claims.get("sub"), user_id, kind.value, cleared
    )
    flag = StrikeTracker().get(user_id)
    return jsonify({
        "ok": True,
        "cleared": bool(cleared),
        "flag": flag.to_dict() if flag else None,
    }), 200


@moderation_bp.get("/admin/moderation/flags/<user_id>")
def admin_flag(user_id: str):
    claims = _claims()
    if not claims:
        return jsonify({"ok": False, "message": "Unauthorized"}), 401
    if not is_admin(claims):
        return jsonify({"ok": False, "message": "Forbidden"}), 403
    flag = StrikeTracker().get(user_id)
    if flag is None:
        return jsonify({"ok": True, "flag": {"user_id": user_id, "strikes": 0, "last_strike_at": None}}), 200
    return jsonify({"ok": True, "flag": flag.to_dict()}), 200

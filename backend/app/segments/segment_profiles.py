from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from app.services import profile_service
from app.utils.jwt_utils import current_claims

profiles_bp = Blueprint("profiles_bp", __name__, url_prefix="/api")


def _claims() -> dict | None:
    claims = current_claims(request.headers.get("Authorization", ""))
    if claims:
        g.auth_user_id = str(claims.get("sub"))
        g.auth_role = claims.get("role")
    return claims


@profiles_bp.get("/me/profile")
def my_profile():
    claims = _claims()
    if not claims:
        return jsonify({"ok": False, "message": "Unauthorized"}), 401
    prof = profile_service.get_profile(str(claims["sub"]))
    return jsonify({"ok": True, "profile": prof.to_dict()}), 200


@profiles_bp.put("/me/profile")
def upsert_my_profile():
    claims = _claims()
    if not claims:
        return jsonify({"ok": False, "message": "Unauthorized"}), 401
    prof = profile_service.upsert_profile(
        str(claims["sub"]),
        request.get_json(silent=True) or {},
        email=str(claims.get("email") or ""),
    )
    return jsonify({"ok": True, "profile": prof.to_dict()}), 200


@profiles_bp.get("/profiles/<user_id>")
def public_profile(user_id: str):
    if not _claims():
        return jsonify({"ok": False, "message": "Unauthorized"}), 401
    prof = profile_service.get_profile(user_id)
    return jsonify({"ok": True, "profile": prof.to_public_dict()}), 200

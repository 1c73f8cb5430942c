import logging
import time
from typing import Any, Dict, Optional, Tuple

import jwt
from flask import current_app, has_app_context

logger = logging.getLogger(__name__)


def _secret() -> str:
    if has_app_context():
        key = current_app.config.get("SECRET_KEY")
        if key:
            return key
    return "dev-secret"


def create_access_token(user_id: str, *, role: str = "user", email: str = "", ttl_seconds: int = 60 * 60 * 24) -> str:
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + ttl_seconds,
        "type": "access",
        "role": role or "user",
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, _secret(), algorithm="HS256")


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        payload = jwt.decode(token, _secret(), algorithms=["HS256"])
    except jwt.PyJWTError as e:
        logger.info("jwt_rejected err=%s", type(e).__name__)
        return None
    if not str(payload.get("sub") or "").strip():
        return None
    return payload


def parse_auth_header(auth_header: str) -> Tuple[Optional[str], Optional[str]]:
    if not auth_header:
        return None, None
    parts = auth_header.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1], "bearer"
    return None, None


def get_bearer_token(auth_header: str) -> Optional[str]:
    token, _scheme = parse_auth_header(auth_header)
    return token


def current_claims(auth_header: str) -> Optional[Dict[str, Any]]:
    token = get_bearer_token(auth_header)
    if not token:
        return None
    return decode_token(token)


def is_admin(claims: Optional[Dict[str, Any]]) -> bool:
    return bool(claims) and str(claims.get("role") or "").lower() == "admin"

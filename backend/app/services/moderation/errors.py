from __future__ import annotations


class ModerationError(Exception):
    code = "MODERATION_ERROR"
    http_status = 500

    def __init__(self, message: str = "", *, code: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code
        if code:
            self.code = code

    def to_payload(self) -> dict:
        return {
            "ok": False,
            "code": self.code,
            "message": self.message,
        }


class TransientModerationError(ModerationError):
    """Classifier or storage could not answer. Never means safe or unsafe."""

    code = "MODERATION_UNAVAILABLE"
    http_status = 503


class ModerationDeadlineExceeded(TransientModerationError):
    code = "MODERATION_TIMEOUT"


class InvalidImageError(ModerationError):
    code = "INVALID_IMAGE"
    http_status = 400


class PendingImageMissingError(InvalidImageError):
    code = "PENDING_IMAGE_MISSING"


class ImageRejectedError(ModerationError):
    code = "IMAGE_REJECTED"
    http_status = 422

    def __init__(self, message: str = "image rejected by content moderation", *, locator: str = ""):
        super().__init__(message)
        self.locator = locator


class UnknownOwnerKindError(ModerationError, ValueError):
    code = "UNKNOWN_OWNER_KIND"
    http_status = 400

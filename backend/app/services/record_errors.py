from __future__ import annotations


class RecordError(Exception):
    code = "RECORD_ERROR"
    http_status = 400

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_payload(self) -> dict:
        return {"ok": False, "code": self.code, "message": self.message}


class RecordNotFoundError(RecordError, LookupError):
    code = "NOT_FOUND"
    http_status = 404


class NotOwnerError(RecordError, PermissionError):
    code = "FORBIDDEN"
    http_status = 403


class RecordValidationError(RecordError, ValueError):
    code = "VALIDATION_FAILED"
    http_status = 400

    def __init__(self, errors: dict, message: str = "Validation failed"):
        super().__init__(message)
        self.errors = dict(errors or {})

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["errors"] = self.errors
        return payload

from __future__ import annotations

from dataclasses import dataclass, field


APPROVED = "approved"
REJECTED = "rejected"


@dataclass(frozen=True)
class ModerationResult:
    status: str
    url: str = ""
    locator: str = ""

    @classmethod
    def approved(cls, url: str, *, locator: str = "") -> "ModerationResult":
        return cls(status=APPROVED, url=url, locator=locator or url)

    @classmethod
    def rejected(cls, locator: str) -> "ModerationResult":
        return cls(status=REJECTED, locator=locator)

    @property
    def is_approved(self) -> bool:
        return self.status == APPROVED

    @property
    def is_rejected(self) -> bool:
        return self.status == REJECTED

    def to_dict(self) -> dict:
        payload = {"status": self.status, "locator": self.locator}
        if self.is_approved:
            payload["url"] = self.url
        return payload


@dataclass(frozen=True)
class BatchModerationResult:
    status: str
    urls: tuple = field(default_factory=tuple)
    rejected_locator: str = ""

    @classmethod
    def approved(cls, urls) -> "BatchModerationResult":
        return cls(status=APPROVED, urls=tuple(urls))

    @classmethod
    def rejected(cls, locator: str) -> "BatchModerationResult":
        # No partial url list on rejection.
        return cls(status=REJECTED, rejected_locator=locator)

    @property
    def is_approved(self) -> bool:
        return self.status == APPROVED

    @property
    def is_rejected(self) -> bool:
        return self.status == REJECTED

    def to_dict(self) -> dict:
        if self.is_rejected:
            return {"status": self.status, "rejected_locator": self.rejected_locator}
        return {"status": self.status, "urls": list(self.urls)}

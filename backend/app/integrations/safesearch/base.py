from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class Likelihood(IntEnum):
    """Ordinal safe-search rating, numbered the way the Vision API numbers it."""

    UNKNOWN = 0
    VERY_UNLIKELY = 1
    UNLIKELY = 2
    POSSIBLE = 3
    LIKELY = 4
    VERY_LIKELY = 5

    @classmethod
    def parse(cls, value) -> "Likelihood":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.UNKNOWN
        if isinstance(value, int):
            try:
                return cls(int(value))
            except ValueError:
                return cls.UNKNOWN
        name = getattr(value, "name", None) or str(value)
        name = name.strip().upper()
        if name == "LIKELIHOOD_UNSPECIFIED":
            return cls.UNKNOWN
        return cls.__members__.get(name, cls.UNKNOWN)


# Ratings at or above this level in a policed category reject the image.
# POSSIBLE stays below it on purpose.
UNSAFE_THRESHOLD = Likelihood.LIKELY


@dataclass(frozen=True)
class SafeSearchRatings:
    adult: Likelihood = Likelihood.UNKNOWN
    violence: Likelihood = Likelihood.UNKNOWN
    racy: Likelihood = Likelihood.UNKNOWN
    spoof: Likelihood = Likelihood.UNKNOWN
    medical: Likelihood = Likelihood.UNKNOWN

    @classmethod
    def from_mapping(cls, data: dict | None) -> "SafeSearchRatings":
        data = data or {}
        return cls(
            adult=Likelihood.parse(data.get("adult")),
            violence=Likelihood.parse(data.get("violence")),
            racy=Likelihood.parse(data.get("racy")),
            spoof=Likelihood.parse(data.get("spoof")),
            medical=Likelihood.parse(data.get("medical")),
        )

    def is_unsafe(self) -> bool:
        return is_unsafe(self)

    def to_dict(self) -> dict:
        return {
            "adult": self.adult.name,
            "violence": self.violence.name,
            "racy": self.racy.name,
            "spoof": self.spoof.name,
            "medical": self.medical.name,
        }


def is_unsafe(ratings: SafeSearchRatings) -> bool:
    """Adult, violence or racy at LIKELY or above. Spoof and medical are informational."""
    return any(
        level >= UNSAFE_THRESHOLD
        for level in (ratings.adult, ratings.violence, ratings.racy)
    )


class SafeSearchUnavailableError(RuntimeError):
    """The classification call itself failed. Never a verdict on the image."""


class SafeSearchProvider:
    name = "unknown"

    def classify(self, image_uri: str, *, timeout: float | None = None) -> SafeSearchRatings:
        raise NotImplementedError

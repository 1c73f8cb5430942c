from __future__ import annotations

from app.integrations.safesearch.base import Likelihood, SafeSearchProvider, SafeSearchRatings


SAFE_RATINGS = SafeSearchRatings(
    adult=Likelihood.VERY_UNLIKELY,
    violence=Likelihood.VERY_UNLIKELY,
    racy=Likelihood.VERY_UNLIKELY,
    spoof=Likelihood.VERY_UNLIKELY,
    medical=Likelihood.VERY_UNLIKELY,
)


def object_name_from_uri(image_uri: str) -> str:
    uri = (image_uri or "").strip()
    if uri.startswith("gs://"):
        parts = uri[len("gs://"):].split("/", 1)
        return parts[1] if len(parts) == 2 else ""
    return uri


class MockSafeSearchProvider(SafeSearchProvider):
    """Deterministic classifier for dev and tests.

    Ratings are looked up by object name; anything not registered is rated
    ``default``. Setting ``error`` makes every call raise it.
    """

    name = "mock"

    def __init__(self, ratings: dict | None = None, *, default: SafeSearchRatings | None = None):
        self.ratings: dict[str, SafeSearchRatings] = dict(ratings or {})
        self.default = default or SAFE_RATINGS
        self.error: Exception | None = None
        self.calls: list[str] = []

    def rate(self, object_name: str, **levels) -> None:
        self.ratings[object_name] = SafeSearchRatings.from_mapping(levels)

    def classify(self, image_uri: str, *, timeout: float | None = None) -> SafeSearchRatings:
        self.calls.append(image_uri)
        if self.error is not None:
            raise self.error
        return self.ratings.get(object_name_from_uri(image_uri), self.default)

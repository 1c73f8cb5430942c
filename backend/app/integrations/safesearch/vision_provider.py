from __future__ import annotations

from google.api_core import exceptions as google_exceptions
from google.cloud import vision

from app.integrations.safesearch.base import (
    Likelihood,
    SafeSearchProvider,
    SafeSearchRatings,
    SafeSearchUnavailableError,
)


class VisionSafeSearchProvider(SafeSearchProvider):
    name = "vision"

    def __init__(self, client=None, *, default_timeout: float = 30.0):
        # Application Default Credentials when no client is handed in.
        self.client = client or vision.ImageAnnotatorClient()
        self.default_timeout = default_timeout

    def classify(self, image_uri: str, *, timeout: float | None = None) -> SafeSearchRatings:
        uri = (image_uri or "").strip()
        if not uri:
            raise ValueError("image_uri_required")
        image = vision.Image(source=vision.ImageSource(gcs_image_uri=uri))
        try:
            response = self.client.safe_search_detection(
                image=image,
                timeout=timeout if timeout is not None else self.default_timeout,
            )
        except (google_exceptions.GoogleAPICallError, google_exceptions.RetryError) as e:
            raise SafeSearchUnavailableError(f"SAFESEARCH_CALL_FAILED:{e}") from e

        # A per-image error comes back with an empty annotation; that is not a verdict.
        error = getattr(response, "error", None)
        message = (getattr(error, "message", "") or "").strip()
        if message:
            raise SafeSearchUnavailableError(f"SAFESEARCH_IMAGE_FAILED:{message}")

        annotation = response.safe_search_annotation
        return SafeSearchRatings(
            adult=Likelihood.parse(annotation.adult),
            violence=Likelihood.parse(annotation.violence),
            racy=Likelihood.parse(annotation.racy),
            spoof=Likelihood.parse(annotation.spoof),
            medical=Likelihood.parse(annotation.medical),
        )

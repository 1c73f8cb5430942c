from __future__ import annotations

import logging

from app.integrations.safesearch.base import SafeSearchProvider
from app.integrations.storage.base import ObjectNotFoundError, ObjectStore, StorageError
from app.services.moderation.deadline import Deadline
from app.services.moderation.errors import (
    ModerationDeadlineExceeded,
    ModerationError,
    TransientModerationError,
)
from app.services.moderation.locators import is_pending, normalize_locator, public_name_for
from app.services.moderation.promoter import RetryingObjectPromoter
from app.services.moderation.results import BatchModerationResult, ModerationResult
from app.services.moderation.strikes import StrikeTracker


logger = logging.getLogger(__name__)


class ModerationCoordinator:
    """Entry point for moderating uploaded images.

    Collaborators are injected; nothing here reaches for globals. A
    classifier failure always surfaces as ``TransientModerationError``
    and never approves or rejects the image.

    Strikes are written on their own session; callers still moderate
    before staging record changes so a rejection leaves nothing to undo.
    """

    def __init__(
        self,
        *,
        classifier: SafeSearchProvider,
        store: ObjectStore,
        strikes: StrikeTracker | None = None,
        promoter: RetryingObjectPromoter | None = None,
        request_timeout: float | None = None,
    ):
        self.classifier = classifier
        self.store = store
        self.strikes = strikes
        self.promoter = promoter or RetryingObjectPromoter(store)
        self.request_timeout = request_timeout

    def _deadline(self, deadline: Deadline | None) -> Deadline:
        if deadline is not None:
            return deadline
        return Deadline(self.request_timeout)

    def _classify(self, name: str, deadline: Deadline):
        deadline.check("classify")
        try:
            return self.classifier.classify(self.store.gs_uri(name), timeout=deadline.timeout_for())
        except ModerationError:
            raise
        except Exception as e:
            logger.warning("moderation_classify_failed name=%s provider=%s err=%s", name, self.classifier.name, e)
            raise TransientModerationError(f"safe-search classification failed for {name}") from e

    def _reject(self, name: str, user_id: str) -> None:
        try:
            self.store.delete(name)
        except ObjectNotFoundError:
            pass
        except StorageError:
            logger.exception("moderation_reject_delete_failed name=%s", name)

        if not self.strikes or not (user_id or "").strip():
            logger.warning("moderation_reject_no_strike name=%s user_id=%s", name, user_id)
            return
        try:
            self.strikes.increment(user_id)
        except Exception:
            logger.exception("moderation_reject_strike_failed name=%s user_id=%s", name, user_id)

    def moderate_and_promote(self, locator, user_id: str = "", *, deadline: Deadline | None = None) -> ModerationResult:
        name = normalize_locator(locator)
        if not is_pending(name):
            return ModerationResult.approved(name, locator=name)

        # Malformed pending names are rejected before any external call.
        public_name_for(name)
        deadline = self._deadline(deadline)
        ratings = self._classify(name, deadline)
        if ratings.is_unsafe():
            logger.info("moderation_rejected name=%s user_id=%s ratings=%s", name, user_id, ratings.to_dict())
            self._reject(name, user_id)
            return ModerationResult.rejected(name)

        try:
            approved = self.promoter.promote(name, deadline=deadline)
        except ModerationDeadlineExceeded:
            logger.warning("moderation_promote_timeout name=%s", name)
            raise
        logger.info("moderation_approved name=%s dest=%s user_id=%s", name, approved.object_name, user_id)
        return ModerationResult.approved(approved.url, locator=name)

    def moderate_multiple(self, locators, user_id: str = "", *, deadline: Deadline | None = None) -> BatchModerationResult:
        deadline = self._deadline(deadline)
        urls = []
        for locator in locators or []:
            if locator is None or not str(locator).strip():
                continue
            result = self.moderate_and_promote(locator, user_id, deadline=deadline)
            if result.is_rejected:
                logger.info("moderation_batch_rejected locator=%s approved_before=%s", result.locator, len(urls))
                return BatchModerationResult.rejected(result.locator)
            urls.append(result.url)
        return BatchModerationResult.approved(urls)

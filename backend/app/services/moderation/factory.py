from __future__ import annotations

from flask import current_app, has_app_context

from app.integrations.common import IntegrationDisabledError, IntegrationMisconfiguredError, settings_value
from app.integrations.safesearch.factory import build_safesearch_provider
from app.integrations.storage.factory import build_object_store
from app.services.moderation.backoff import BackoffPolicy
from app.services.moderation.coordinator import ModerationCoordinator
from app.services.moderation.deadline import Deadline
from app.services.moderation.errors import TransientModerationError
from app.services.moderation.promoter import RetryingObjectPromoter
from app.services.moderation.references import ReferenceConsistencyManager
from app.services.moderation.strikes import StrikeTracker


EXTENSION_KEY = "moderation"


def _timeout_seconds(settings) -> float:
    raw = settings_value(settings, "MODERATION_TIMEOUT_SECONDS", 30)
    try:
        val = float(raw)
    except Exception:
        val = 30.0
    return max(1.0, min(val, 300.0))


def build_moderation_coordinator(settings, *, store=None, classifier=None, backoff=None) -> ModerationCoordinator:
    store = store or build_object_store(settings)
    classifier = classifier or build_safesearch_provider(settings)
    promoter = RetryingObjectPromoter(store, backoff=backoff or BackoffPolicy.from_settings(settings))
    return ModerationCoordinator(
        classifier=classifier,
        store=store,
        strikes=StrikeTracker(),
        promoter=promoter,
        request_timeout=_timeout_seconds(settings),
    )


def init_moderation(app, *, store=None, classifier=None, backoff=None) -> ModerationCoordinator | None:
    try:
        coordinator = build_moderation_coordinator(app.config, store=store, classifier=classifier, backoff=backoff)
    except IntegrationDisabledError as e:
        app.logger.warning("moderation_disabled reason=%s", e)
        coordinator = None
    except IntegrationMisconfiguredError as e:
        app.logger.error("moderation_misconfigured reason=%s", e)
        coordinator = None
    app.extensions[EXTENSION_KEY] = coordinator
    if coordinator is not None:
        app.logger.info(
            "moderation_ready storage=%s safesearch=%s bucket=%s",
            coordinator.store.name,
            coordinator.classifier.name,
            coordinator.store.bucket,
        )
    return coordinator


def get_coordinator() -> ModerationCoordinator:
    coordinator = current_app.extensions.get(EXTENSION_KEY) if has_app_context() else None
    if coordinator is None:
        # No coordinator means nothing can be approved.
        raise TransientModerationError("image moderation is not configured")
    return coordinator


def get_reference_manager() -> ReferenceConsistencyManager:
    coordinator = current_app.extensions.get(EXTENSION_KEY)
    strikes = coordinator.strikes if coordinator is not None and coordinator.strikes else StrikeTracker()
    return ReferenceConsistencyManager(strikes=strikes)


def request_deadline() -> Deadline:
    return Deadline(_timeout_seconds(current_app.config))

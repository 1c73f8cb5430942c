from app.services.moderation.backoff import BackoffPolicy, jittered_exponential, linear_delay
from app.services.moderation.coordinator import ModerationCoordinator
from app.services.moderation.deadline import Deadline
from app.services.moderation.errors import (
    ImageRejectedError,
    InvalidImageError,
    ModerationDeadlineExceeded,
    ModerationError,
    PendingImageMissingError,
    TransientModerationError,
    UnknownOwnerKindError,
)
from app.services.moderation.factory import (
    build_moderation_coordinator,
    get_coordinator,
    get_reference_manager,
    init_moderation,
    request_deadline,
)
from app.services.moderation.locators import PENDING_PREFIX, is_pending, normalize_locator, public_name_for
from app.services.moderation.promoter import ApprovedImage, RetryingObjectPromoter
from app.services.moderation.references import OwnerKind, ReferenceConsistencyManager
from app.services.moderation.results import BatchModerationResult, ModerationResult
from app.services.moderation.strikes import StrikeTracker

__all__ = [
    "ApprovedImage",
    "BackoffPolicy",
    "BatchModerationResult",
    "Deadline",
    "ImageRejectedError",
    "InvalidImageError",
    "ModerationCoordinator",
    "ModerationDeadlineExceeded",
    "ModerationError",
    "ModerationResult",
    "OwnerKind",
    "PENDING_PREFIX",
    "PendingImageMissingError",
    "ReferenceConsistencyManager",
    "RetryingObjectPromoter",
    "StrikeTracker",
    "TransientModerationError",
    "UnknownOwnerKindError",
    "build_moderation_coordinator",
    "get_coordinator",
    "get_reference_manager",
    "init_moderation",
    "is_pending",
    "jittered_exponential",
    "linear_delay",
    "normalize_locator",
    "public_name_for",
]

from .properties import PropertyService
from .subscriptions import SubscriptionService
from .blueprints import BlueprintService
from .inspections import InspectionService
from .audit import RecipientRule, apply_blueprint_update, complement_recipients
from .recurrence import complete_reminder, compute_next_occurrence
from .scoring import compute_overall_score, metric_status
from .auth import get_current_actor, require_tech

__all__ = [
    "PropertyService",
    "SubscriptionService",
    "BlueprintService",
    "InspectionService",
    "RecipientRule",
    "apply_blueprint_update",
    "complement_recipients",
    "complete_reminder",
    "compute_next_occurrence",
    "compute_overall_score",
    "metric_status",
    "get_current_actor",
    "require_tech",
]

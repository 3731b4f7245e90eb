"""
Snapshot inspection service.

Lifecycle:
    scheduled -> in-progress -> completed

Completed is terminal: no room or score edits afterwards.
Completing records a MyHome Score on the property's subscription.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..db import AggregateRepository, INSPECTION_TABLE, RecordStore, SupabaseRecordStore
from ..errors import (
    InspectionLockedError,
    PreconditionError,
    UnassignedInspectionError,
)
from ..models import (
    Actor,
    CategoryScores,
    InspectionStatus,
    MyHomeScore,
    RoomInput,
    RoomInspection,
    SnapshotInspection,
)
from . import scoring
from .properties import PropertyService
from .subscriptions import SubscriptionService
from .timeutils import new_id, utc_now

logger = logging.getLogger(__name__)

ROOM_FIELDS = frozenset(RoomInput.model_fields)
DETAIL_FIELDS = frozenset({
    "scheduled_date", "general_notes", "general_images", "general_audio_notes",
    "consultation_notes", "homeowner_priorities",
})


class InspectionService:
    """Handles snapshot inspections from scheduling through scoring."""

    def __init__(
        self,
        subscriptions: SubscriptionService,
        store: Optional[RecordStore] = None,
        properties: Optional[PropertyService] = None,
    ):
        self.subscriptions = subscriptions
        # Source of each property's timezone; without it the default zone is used
        self.properties = properties
        self.repo = AggregateRepository(store or SupabaseRecordStore(INSPECTION_TABLE), SnapshotInspection)

    def _save(self, inspection: SnapshotInspection, now: datetime) -> SnapshotInspection:
        inspection = inspection.model_copy(update={"updated_at": now})
        return self.repo.save(inspection.id, inspection, owner_id=inspection.tech_id)

    def _property_timezone(self, property_id: str) -> Optional[str]:
        if self.properties is None:
            return None
        prop = self.properties.get_property(property_id)
        return prop.timezone if prop else None

    def _edit(
        self,
        inspection_id: str,
        change: Callable[[SnapshotInspection], SnapshotInspection],
        now: Optional[datetime] = None,
    ) -> Optional[SnapshotInspection]:
        inspection = self.get_inspection(inspection_id)
        if inspection is None:
            logger.debug("Inspection %s not found", inspection_id)
            return None
        if inspection.status == InspectionStatus.COMPLETED:
            raise InspectionLockedError(inspection_id)

        updated = change(inspection)
        if updated is inspection:
            return inspection
        return self._save(updated, now or utc_now())

    # -- Lifecycle ------------------------------------------------------------

    def create_inspection(
        self,
        actor: Actor,
        property_id: Optional[str] = None,
        scheduled_date: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> SnapshotInspection:
        now = now or utc_now()
        inspection = SnapshotInspection(
            id=new_id("snapshot"),
            property_id=property_id,
            tech_id=actor.user_id,
            tech_name=actor.user_name,
            scheduled_date=scheduled_date,
            created_at=now,
            updated_at=now,
        )
        inspection = inspection.model_copy(update={
            "overall_score": scoring.compute_overall_score(scoring.category_scores(inspection)),
        })

        saved = self._save(inspection, now)
        logger.info("Created inspection %s by %s", saved.id, actor.user_id)
        return saved

    def assign_to_property(
        self, inspection_id: str, property_id: str, now: Optional[datetime] = None
    ) -> Optional[SnapshotInspection]:
        def change(inspection: SnapshotInspection) -> SnapshotInspection:
            return inspection.model_copy(update={"property_id": property_id})

        return self._edit(inspection_id, change, now)

    def start_inspection(self, inspection_id: str, now: Optional[datetime] = None) -> Optional[SnapshotInspection]:
        now = now or utc_now()

        def change(inspection: SnapshotInspection) -> SnapshotInspection:
            if inspection.status == InspectionStatus.IN_PROGRESS:
                return inspection
            return inspection.model_copy(update={
                "status": InspectionStatus.IN_PROGRESS,
                "started_at": now,
            })

        return self._edit(inspection_id, change, now)

    def update_details(
        self, inspection_id: str, updates: Dict[str, Any], now: Optional[datetime] = None
    ) -> Optional[SnapshotInspection]:
        """Notes, media URIs, homeowner priorities and the scheduled date."""
        unknown = set(updates) - DETAIL_FIELDS
        if unknown:
            raise PreconditionError(f"Inspection fields cannot be edited here: {sorted(unknown)}")

        def change(inspection: SnapshotInspection) -> SnapshotInspection:
            return SnapshotInspection.model_validate({**inspection.model_dump(), **updates})

        return self._edit(inspection_id, change, now)

    # -- Rooms ----------------------------------------------------------------

    def add_room(
        self, inspection_id: str, data: RoomInput, now: Optional[datetime] = None
    ) -> Optional[SnapshotInspection]:
        """Add a room. The first room on a scheduled inspection starts it."""
        now = now or utc_now()

        def change(inspection: SnapshotInspection) -> SnapshotInspection:
            room = RoomInspection(id=new_id("room"), created_at=now, updated_at=now, **data.model_dump())
            update = {"rooms": [*inspection.rooms, room]}
            if inspection.status == InspectionStatus.SCHEDULED:
                update.update(status=InspectionStatus.IN_PROGRESS, started_at=now)
            return inspection.model_copy(update=update)

        return self._edit(inspection_id, change, now)

    def update_room(
        self,
        inspection_id: str,
        room_id: str,
        updates: Dict[str, Any],
        now: Optional[datetime] = None,
    ) -> Optional[SnapshotInspection]:
        unknown = set(updates) - ROOM_FIELDS
        if unknown:
            raise PreconditionError(f"Room fields cannot be edited: {sorted(unknown)}")
        now = now or utc_now()

        def change(inspection: SnapshotInspection) -> SnapshotInspection:
            if not any(r.id == room_id for r in inspection.rooms):
                return inspection
            rooms = [
                RoomInspection.model_validate({**r.model_dump(), **updates, "updated_at": now})
                if r.id == room_id else r
                for r in inspection.rooms
            ]
            return inspection.model_copy(update={"rooms": rooms})

        return self._edit(inspection_id, change, now)

    def remove_room(
        self, inspection_id: str, room_id: str, now: Optional[datetime] = None
    ) -> Optional[SnapshotInspection]:
        def change(inspection: SnapshotInspection) -> SnapshotInspection:
            if not any(r.id == room_id for r in inspection.rooms):
                return inspection
            return inspection.model_copy(update={"rooms": [r for r in inspection.rooms if r.id != room_id]})

        return self._edit(inspection_id, change, now)

    def update_category_scores(
        self, inspection_id: str, scores: CategoryScores, now: Optional[datetime] = None
    ) -> Optional[SnapshotInspection]:
        """Set all five category scores; the overall score follows them."""
        def change(inspection: SnapshotInspection) -> SnapshotInspection:
            update = {
                field: getattr(scores, category.value)
                for category, field in scoring.CATEGORY_FIELDS.items()
            }
            update["overall_score"] = scoring.compute_overall_score(scores)
            return inspection.model_copy(update=update)

        return self._edit(inspection_id, change, now)

    def complete_inspection(
        self, inspection_id: str, now: Optional[datetime] = None
    ) -> Optional[Tuple[SnapshotInspection, MyHomeScore]]:
        """
        Finish an inspection and publish its score.

        Raises:
            InspectionLockedError: already completed
            UnassignedInspectionError: no property yet
            PreconditionError: no rooms inspected

        The score is written to the subscription before the inspection is
        marked completed, so a failure between the two writes can be
        retried and simply replaces the same quarter's score.
        """
        inspection = self.get_inspection(inspection_id)
        if inspection is None:
            logger.debug("Inspection %s not found", inspection_id)
            return None
        if inspection.status == InspectionStatus.COMPLETED:
            raise InspectionLockedError(inspection_id)
        if not inspection.property_id:
            raise UnassignedInspectionError(inspection_id)
        if not inspection.rooms:
            raise PreconditionError(f"Inspection {inspection_id} has no rooms inspected")

        now = now or utc_now()
        subscription = self.subscriptions.get_subscription(inspection.property_id)
        previous = subscription.current_score if subscription else None
        if previous is not None and previous.inspection_id == inspection.id:
            # Retry after a failed inspection write: compare against what came before it
            previous = None

        score = scoring.build_home_score(
            inspection, inspection.property_id, now, previous,
            timezone=self._property_timezone(inspection.property_id),
        )
        self.subscriptions.record_score(inspection.property_id, score)

        completed = inspection.model_copy(update={
            "status": InspectionStatus.COMPLETED,
            "completed_at": now,
            "started_at": inspection.started_at or now,
            "overall_score": score.score,
        })
        saved = self._save(completed, now)
        logger.info(
            "Completed inspection %s for property %s with score %s",
            inspection_id, inspection.property_id, score.score,
        )
        return saved, score

    # -- Queries --------------------------------------------------------------

    def get_inspection(self, inspection_id: str) -> Optional[SnapshotInspection]:
        return self.repo.load(inspection_id)

    def list_for_property(self, property_id: str) -> List[SnapshotInspection]:
        inspections = [i for i in self.repo.list() if i.property_id == property_id]
        return sorted(inspections, key=lambda i: i.created_at, reverse=True)

    def list_for_tech(self, tech_id: str) -> List[SnapshotInspection]:
        return sorted(self.repo.list(tech_id), key=lambda i: i.created_at, reverse=True)

    def list_unassigned(self) -> List[SnapshotInspection]:
        return [i for i in self.repo.list() if not i.property_id]

    def get_active_inspection(self, property_id: str) -> Optional[SnapshotInspection]:
        """The newest inspection on the property that is not completed."""
        active = [i for i in self.list_for_property(property_id) if i.status != InspectionStatus.COMPLETED]
        return active[0] if active else None

    def score_report(self, inspection_id: str) -> Optional[Dict[str, dict]]:
        inspection = self.get_inspection(inspection_id)
        if inspection is None:
            return None
        return scoring.score_report(inspection)

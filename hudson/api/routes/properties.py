"""
Property routes.
Homeowners manage their properties; techs and homeowners both keep
insights and reminders up to date.

Endpoints:
- GET / - List my properties
- POST / - Add a property
- GET/PUT/DELETE /{property_id}
- POST /{property_id}/insights, PUT/DELETE /{property_id}/insights/{insight_id}
- GET /{property_id}/insights/due - Insights past their service interval
- POST /{property_id}/reminders, PUT/DELETE /{property_id}/reminders/{reminder_id}
- POST /{property_id}/reminders/{reminder_id}/complete
- GET /{property_id}/reminders/upcoming, /overdue, /summary
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ...db import from_api_updates, to_api
from ...lib import PropertyService, get_current_actor
from ...models import Actor, Insight, InsightInput, Property, PropertyInput, Reminder, ReminderInput
from ..deps import get_property_service


router = APIRouter()


def _found(prop: Optional[Property]) -> dict:
    if prop is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return to_api(prop)


@router.get("/")
async def list_properties(
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    """List the caller's properties, oldest first."""
    return [to_api(p) for p in service.list_properties(actor.user_id)]


@router.post("/")
async def add_property(
    body: PropertyInput,
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    """
    Add a property.

    The first property an owner adds is always primary. Adding one with
    isPrimary=true moves the flag off the others.
    """
    return to_api(service.add_property(actor.user_id, body))


@router.get("/primary")
async def get_primary_property(
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    return _found(service.get_primary_property(actor.user_id))


@router.get("/{property_id}")
async def get_property(
    property_id: str,
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    return _found(service.get_property(property_id))


@router.put("/{property_id}")
async def update_property(
    property_id: str,
    body: dict,
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    return _found(service.update_property(property_id, from_api_updates(Property, body)))


@router.delete("/{property_id}")
async def delete_property(
    property_id: str,
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    if not service.delete_property(property_id):
        raise HTTPException(status_code=404, detail="Property not found")
    return {"success": True}


# -- Insights -----------------------------------------------------------------

@router.post("/{property_id}/insights")
async def add_insight(
    property_id: str,
    body: InsightInput,
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    return _found(service.add_insight(property_id, body, actor))


@router.put("/{property_id}/insights/{insight_id}")
async def update_insight(
    property_id: str,
    insight_id: str,
    body: dict,
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    return _found(service.update_insight(property_id, insight_id, from_api_updates(Insight, body), actor))


@router.delete("/{property_id}/insights/{insight_id}")
async def delete_insight(
    property_id: str,
    insight_id: str,
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    return _found(service.delete_insight(property_id, insight_id))


@router.get("/{property_id}/insights/due")
async def get_due_insights(
    property_id: str,
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    return [to_api(i) for i in service.get_due_insights(property_id)]


# -- Reminders ----------------------------------------------------------------

@router.post("/{property_id}/reminders")
async def add_reminder(
    property_id: str,
    body: ReminderInput,
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    """
    Add a reminder.

    Recurring reminders need recurringInterval >= 1 (days), otherwise 400.
    """
    return _found(service.add_reminder(property_id, body, actor))


@router.put("/{property_id}/reminders/{reminder_id}")
async def update_reminder(
    property_id: str,
    reminder_id: str,
    body: dict,
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    return _found(service.update_reminder(property_id, reminder_id, from_api_updates(Reminder, body)))


@router.delete("/{property_id}/reminders/{reminder_id}")
async def delete_reminder(
    property_id: str,
    reminder_id: str,
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    return _found(service.delete_reminder(property_id, reminder_id))


@router.post("/{property_id}/reminders/{reminder_id}/complete")
async def complete_reminder(
    property_id: str,
    reminder_id: str,
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    """
    Complete a reminder.

    The reminder stays on the property as completed. A recurring one gets
    a new open reminder due recurringInterval days after the old due date.
    """
    return _found(service.complete_reminder(property_id, reminder_id))


@router.get("/{property_id}/reminders/upcoming")
async def get_upcoming_reminders(
    property_id: str,
    days: Optional[int] = None,
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    return [to_api(r) for r in service.get_upcoming_reminders(property_id, horizon_days=days)]


@router.get("/{property_id}/reminders/overdue")
async def get_overdue_reminders(
    property_id: str,
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    return [to_api(r) for r in service.get_overdue_reminders(property_id)]


@router.get("/{property_id}/reminders/summary")
async def get_reminder_summary(
    property_id: str,
    days: Optional[int] = None,
    actor: Actor = Depends(get_current_actor),
    service: PropertyService = Depends(get_property_service),
):
    """
    All reminders split into overdue, upcoming, later and completed.
    Every reminder lands in exactly one group.
    """
    partition = service.partition_reminders(property_id, horizon_days=days)
    if partition is None:
        raise HTTPException(status_code=404, detail="Property not found")
    return {group: [to_api(r) for r in reminders] for group, reminders in partition._asdict().items()}

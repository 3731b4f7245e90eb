"""
Service singletons for the API.
Built once per process and handed to routes with Depends.
"""

from functools import lru_cache

from ..db import INSPECTION_TABLE, PROPERTY_TABLE, SUBSCRIPTION_TABLE, SupabaseRecordStore
from ..lib import BlueprintService, InspectionService, PropertyService, SubscriptionService


@lru_cache()
def get_property_service() -> PropertyService:
    return PropertyService(SupabaseRecordStore(PROPERTY_TABLE))


@lru_cache()
def get_subscription_service() -> SubscriptionService:
    return SubscriptionService(SupabaseRecordStore(SUBSCRIPTION_TABLE))


@lru_cache()
def get_blueprint_service() -> BlueprintService:
    # Shares the subscription service so both see one view of the aggregate
    return BlueprintService(get_subscription_service())


@lru_cache()
def get_inspection_service() -> InspectionService:
    return InspectionService(
        get_subscription_service(),
        SupabaseRecordStore(INSPECTION_TABLE),
        properties=get_property_service(),
    )

"""
Error taxonomy for the Hudson core.

- PreconditionError: rejected before any state change (also a ValueError,
  so callers that already catch ValueError keep working).
- PersistenceError: the record store refused or failed the write.
  In-memory state is left at the last confirmed version.

Unknown ids are not errors: operations on them return state unchanged.
"""

GENERIC_NOTICE = "Something went wrong. Please try again."


class HudsonError(Exception):
    """Base class for all Hudson errors."""


class PreconditionError(HudsonError, ValueError):
    """The operation is not allowed in the current state."""


class InvalidTransitionError(PreconditionError):
    """A status change not permitted by the lifecycle."""

    def __init__(self, kind: str, current: str, target: str):
        self.kind = kind
        self.current = current
        self.target = target
        super().__init__(f"Cannot move {kind} from '{current}' to '{target}'")


class BlueprintNotFoundError(PreconditionError):
    def __init__(self, property_id: str):
        self.property_id = property_id
        super().__init__(f"No blueprint exists for property {property_id}")


class SubscriptionNotFoundError(PreconditionError):
    def __init__(self, property_id: str):
        self.property_id = property_id
        super().__init__(f"No subscription exists for property {property_id}")


class ActiveSubscriptionExistsError(PreconditionError):
    def __init__(self, property_id: str):
        self.property_id = property_id
        super().__init__(f"Property {property_id} already has an active subscription")


class InspectionLockedError(PreconditionError):
    def __init__(self, inspection_id: str):
        self.inspection_id = inspection_id
        super().__init__(f"Inspection {inspection_id} is completed and can no longer be edited")


class UnassignedInspectionError(PreconditionError):
    def __init__(self, inspection_id: str):
        self.inspection_id = inspection_id
        super().__init__(f"Inspection {inspection_id} must be assigned to a property first")


class VisitRequestLimitError(PreconditionError):
    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Maximum {limit} monthly visit requests allowed")


class PersistenceError(HudsonError):
    """The record store failed the read or write."""


class VersionConflictError(PersistenceError):
    """The stored aggregate changed since it was loaded."""

    def __init__(self, key: str, expected_version: int):
        self.key = key
        self.expected_version = expected_version
        super().__init__(
            f"Record {key} was modified by someone else (expected version {expected_version})"
        )

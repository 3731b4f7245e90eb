"""
Data models for the Hudson home-services core.

Python attributes are snake_case, which is also the flattened record
shape written to the store. API consumers see camelCase aliases.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class HudsonModel(BaseModel):
    """Base for every record: camelCase aliases, snake_case names accepted."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Role(str, Enum):
    """Actor roles recorded on audited changes."""
    TECH = "tech"
    HOMEOWNER = "homeowner"
    ADMIN = "admin"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PropertyType(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    RENTAL = "rental"
    VACATION = "vacation"


class ReminderType(str, Enum):
    MAINTENANCE = "maintenance"
    INSPECTION = "inspection"
    PAYMENT = "payment"
    RENEWAL = "renewal"
    CUSTOM = "custom"


class SubscriptionStatus(str, Enum):
    """Subscription states. Cancelled keeps all history."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    CANCELLED = "cancelled"


class VisitStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class VisitType(str, Enum):
    MONTHLY_MAINTENANCE = "monthly-maintenance"
    SNAPSHOT_INSPECTION = "snapshot-inspection"


class TaskCategory(str, Enum):
    STANDARD = "standard"
    SEASONAL = "seasonal"
    CUSTOM = "custom"


class PlanItemStatus(str, Enum):
    """Plan item states. Completed and skipped are terminal."""
    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class PlanItemCategory(str, Enum):
    MAINTENANCE = "maintenance"
    UPGRADE = "upgrade"
    REPAIR = "repair"
    INSPECTION = "inspection"
    SEASONAL = "seasonal"
    PROJECT = "project"


class ProjectStatus(str, Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class HistoryAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    PROJECT_ADDED = "project_added"
    PROJECT_UPDATED = "project_updated"
    PROJECT_COMPLETED = "project_completed"
    PROJECT_REMOVED = "project_removed"
    PLAN_ITEM_ADDED = "plan_item_added"
    PLAN_ITEM_UPDATED = "plan_item_updated"
    PLAN_ITEM_COMPLETED = "plan_item_completed"
    PLAN_ITEM_REMOVED = "plan_item_removed"


class NotificationType(str, Enum):
    USER_UPDATE = "user_update"
    TECH_UPDATE = "tech_update"
    PROJECT_ADDED = "project_added"
    PROJECT_COMPLETED = "project_completed"
    PLAN_MODIFIED = "plan_modified"


class InspectionStatus(str, Enum):
    """Inspection states. Completed is terminal."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class RoomType(str, Enum):
    BEDROOM = "bedroom"
    BATHROOM = "bathroom"
    KITCHEN = "kitchen"
    LIVING = "living"
    DINING = "dining"
    GARAGE = "garage"
    BASEMENT = "basement"
    ATTIC = "attic"
    LAUNDRY = "laundry"
    OFFICE = "office"
    OTHER = "other"


class ScoreCategory(str, Enum):
    STRUCTURAL = "structural"
    MECHANICAL = "mechanical"
    AESTHETIC = "aesthetic"
    EFFICIENCY = "efficiency"
    SAFETY = "safety"


class MetricStatus(str, Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


# -- Identity -----------------------------------------------------------------

class Actor(HudsonModel):
    """Who is making a change. Supplied by the auth provider, never verified here."""
    user_id: str
    user_name: str
    user_role: Role


# -- Properties ---------------------------------------------------------------

class Insight(HudsonModel):
    id: str
    property_id: str
    label: str
    last_updated: date
    icon: str = "home"
    color: str = "#4A5568"
    recommended_interval: int = Field(..., gt=0, description="Days between services")
    notes: Optional[str] = None
    updated_by: Optional[str] = None
    updated_by_role: Optional[Role] = None


class Reminder(HudsonModel):
    """
    A dated obligation on a property.
    Completed reminders are kept as history, never deleted by completion.
    """
    id: str
    property_id: str
    title: str
    description: Optional[str] = None
    due_date: date
    type: ReminderType = ReminderType.MAINTENANCE
    priority: Priority = Priority.MEDIUM
    completed: bool = False
    completed_date: Optional[datetime] = None
    recurring: bool = False
    recurring_interval: Optional[int] = None
    created_by: Optional[str] = None
    created_by_role: Optional[Role] = None


class Property(HudsonModel):
    """A home owned by a single homeowner account."""
    id: str
    owner_id: str
    name: str
    address: str
    city: str
    state: str
    zip_code: str
    type: PropertyType = PropertyType.PRIMARY
    is_primary: bool = False
    image_url: Optional[str] = None
    purchase_date: Optional[date] = None
    square_feet: Optional[int] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    notes: Optional[str] = None
    timezone: Optional[str] = None
    insights: List[Insight] = Field(default_factory=list)
    reminders: List[Reminder] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


# -- Subscription and visits --------------------------------------------------

class MaintenanceTask(HudsonModel):
    id: str
    name: str
    description: str
    category: TaskCategory = TaskCategory.STANDARD
    month: int = Field(..., ge=1, le=12)
    estimated_duration: str
    completed: bool = False


class HudsonVisit(HudsonModel):
    """A scheduled or completed maintenance visit with its checklist."""
    id: str
    property_id: str
    scheduled_date: datetime
    completed_date: Optional[datetime] = None
    status: VisitStatus = VisitStatus.SCHEDULED
    type: VisitType = VisitType.MONTHLY_MAINTENANCE
    hudson_name: str
    tasks: List[MaintenanceTask] = Field(default_factory=list)
    notes: Optional[str] = None
    photos: List[str] = Field(default_factory=list)
    next_visit_date: Optional[datetime] = None


class CategoryScores(HudsonModel):
    """Human-entered 0-100 scores for the five inspection categories."""
    structural: int = Field(..., ge=0, le=100)
    mechanical: int = Field(..., ge=0, le=100)
    aesthetic: int = Field(..., ge=0, le=100)
    efficiency: int = Field(..., ge=0, le=100)
    safety: int = Field(..., ge=0, le=100)


class MyHomeScore(HudsonModel):
    """Quarterly property health snapshot. Only the current one is kept."""
    id: str
    property_id: str
    score: int = Field(..., ge=0, le=100)
    quarter: str
    year: int
    categories: CategoryScores
    improvements: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    inspection_id: Optional[str] = None
    created_at: datetime


# -- Blueprint ----------------------------------------------------------------

class YearlyPlanItem(HudsonModel):
    """One dated entry on the five-year timeline."""
    id: str
    year: int
    month: int = Field(..., ge=1, le=12)
    title: str
    description: str = ""
    category: PlanItemCategory = PlanItemCategory.MAINTENANCE
    estimated_cost: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    dependencies: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    status: PlanItemStatus = PlanItemStatus.PLANNED
    completed_date: Optional[datetime] = None
    actual_cost: Optional[str] = None
    photos: List[str] = Field(default_factory=list)
    tech_notes: Optional[str] = None
    homeowner_notes: Optional[str] = None
    created_by: str
    created_by_role: Role
    created_at: datetime
    updated_at: Optional[datetime] = None


class FiveYearPlan(HudsonModel):
    id: str
    property_id: str
    blueprint_id: str
    created_at: datetime
    updated_at: datetime
    generated_by_ai: bool = False
    items: List[YearlyPlanItem] = Field(default_factory=list)
    summary: str = ""
    total_estimated_cost: Optional[str] = None
    key_milestones: List[str] = Field(default_factory=list)


class CustomProject(HudsonModel):
    id: str
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    estimated_cost: Optional[str] = None
    target_date: Optional[date] = None
    status: ProjectStatus = ProjectStatus.PLANNED
    created_at: datetime
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_by_role: Optional[Role] = None
    completed_date: Optional[datetime] = None
    actual_cost: Optional[str] = None
    notes: Optional[str] = None


class MonthlyVisitRequest(HudsonModel):
    id: str
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    estimated_time: str = ""
    created_at: datetime


class ChangeRecord(HudsonModel):
    model_config = ConfigDict(frozen=True)

    field: str
    old_value: Any = None
    new_value: Any = None


class BlueprintHistoryEntry(HudsonModel):
    """Write-once audit record. Never edited or removed."""
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime
    action: HistoryAction
    description: str
    user_id: str
    user_name: str
    user_role: Role
    related_item_id: Optional[str] = None
    related_item_type: Optional[str] = None
    changes: Optional[List[ChangeRecord]] = None


class BlueprintNotification(HudsonModel):
    """Role-targeted record generated alongside a history entry."""
    id: str
    blueprint_id: str
    property_id: str
    type: NotificationType
    message: str
    user_id: str
    user_name: str
    user_role: Role
    recipient_role: Role
    read: bool = False
    created_at: datetime


class MyHomeBlueprint(HudsonModel):
    """Long-range plan. Mutated only through the audited update protocol."""
    id: str
    property_id: str
    created_at: datetime
    updated_at: datetime
    five_year_goals: List[str] = Field(default_factory=list)
    priority_areas: List[str] = Field(default_factory=list)
    custom_projects: List[CustomProject] = Field(default_factory=list)
    monthly_visit_requests: List[MonthlyVisitRequest] = Field(default_factory=list)
    budget_range: Optional[str] = None
    timeline: Optional[str] = None
    five_year_plan: Optional[FiveYearPlan] = None
    history: List[BlueprintHistoryEntry] = Field(default_factory=list)
    notifications: List[BlueprintNotification] = Field(default_factory=list)


class PersonalDirector(HudsonModel):
    name: str
    phone: str
    email: EmailStr
    photo: Optional[str] = None


class Subscription(HudsonModel):
    """One per property. Holds visits, the current score and the blueprint."""
    id: str
    property_id: str
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    start_date: datetime
    next_billing_date: datetime
    monthly_price: float
    cancelled_at: Optional[datetime] = None
    blueprint: Optional[MyHomeBlueprint] = None
    current_score: Optional[MyHomeScore] = None
    visits: List[HudsonVisit] = Field(default_factory=list)
    has_completed_snapshot: bool = False
    personal_director: PersonalDirector


# -- Inspections --------------------------------------------------------------

class InspectionIssue(HudsonModel):
    id: str
    description: str
    severity: Priority = Priority.MEDIUM
    category: ScoreCategory = ScoreCategory.STRUCTURAL


class RoomInspection(HudsonModel):
    """
    One room of a snapshot inspection.
    The room score is for display only and does not feed the overall score.
    Photo and audio fields are opaque URIs.
    """
    id: str
    room_name: str
    room_type: RoomType = RoomType.OTHER
    score: int = Field(..., ge=0, le=100)
    notes: str = ""
    images: List[str] = Field(default_factory=list)
    audio_notes: List[str] = Field(default_factory=list)
    issues: List[InspectionIssue] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class SnapshotInspection(HudsonModel):
    id: str
    property_id: Optional[str] = None
    tech_id: str
    tech_name: str
    scheduled_date: Optional[datetime] = None
    status: InspectionStatus = InspectionStatus.SCHEDULED
    rooms: List[RoomInspection] = Field(default_factory=list)
    structural_score: int = Field(85, ge=0, le=100)
    mechanical_score: int = Field(85, ge=0, le=100)
    aesthetic_score: int = Field(85, ge=0, le=100)
    efficiency_score: int = Field(85, ge=0, le=100)
    safety_score: int = Field(85, ge=0, le=100)
    overall_score: int = Field(85, ge=0, le=100)
    general_notes: str = ""
    general_images: List[str] = Field(default_factory=list)
    general_audio_notes: List[str] = Field(default_factory=list)
    consultation_notes: str = ""
    homeowner_priorities: List[str] = Field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# -- Request bodies -----------------------------------------------------------

class PropertyInput(HudsonModel):
    name: str
    address: str
    city: str
    state: str
    zip_code: str
    type: PropertyType = PropertyType.PRIMARY
    is_primary: bool = False
    image_url: Optional[str] = None
    purchase_date: Optional[date] = None
    square_feet: Optional[int] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    notes: Optional[str] = None
    timezone: Optional[str] = None


class InsightInput(HudsonModel):
    label: str
    last_updated: date
    icon: str = "home"
    color: str = "#4A5568"
    recommended_interval: int = Field(..., gt=0)
    notes: Optional[str] = None


class ReminderInput(HudsonModel):
    title: str
    description: Optional[str] = None
    due_date: date
    type: ReminderType = ReminderType.MAINTENANCE
    priority: Priority = Priority.MEDIUM
    recurring: bool = False
    recurring_interval: Optional[int] = None


class PlanItemInput(HudsonModel):
    year: int
    month: int = Field(..., ge=1, le=12)
    title: str
    description: str = ""
    category: PlanItemCategory = PlanItemCategory.MAINTENANCE
    estimated_cost: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    dependencies: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    status: PlanItemStatus = PlanItemStatus.PLANNED


class FiveYearPlanInput(HudsonModel):
    items: List[PlanItemInput] = Field(default_factory=list)
    summary: str = ""
    key_milestones: List[str] = Field(default_factory=list)
    generated_by_ai: bool = False


class CustomProjectInput(HudsonModel):
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    estimated_cost: Optional[str] = None
    target_date: Optional[date] = None
    notes: Optional[str] = None


class VisitRequestInput(HudsonModel):
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    estimated_time: str = ""


class BlueprintInput(HudsonModel):
    five_year_goals: List[str] = Field(default_factory=list)
    priority_areas: List[str] = Field(default_factory=list)
    budget_range: Optional[str] = None
    timeline: Optional[str] = None


class RoomInput(HudsonModel):
    room_name: str
    room_type: RoomType = RoomType.OTHER
    score: int = Field(..., ge=0, le=100)
    notes: str = ""
    images: List[str] = Field(default_factory=list)
    audio_notes: List[str] = Field(default_factory=list)
    issues: List[InspectionIssue] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class InspectionCreateRequest(HudsonModel):
    property_id: Optional[str] = None
    scheduled_date: Optional[datetime] = None

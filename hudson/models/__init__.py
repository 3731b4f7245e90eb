from .schemas import (
    HudsonModel,
    Role,
    Priority,
    PropertyType,
    ReminderType,
    SubscriptionStatus,
    VisitStatus,
    VisitType,
    TaskCategory,
    PlanItemStatus,
    PlanItemCategory,
    ProjectStatus,
    HistoryAction,
    NotificationType,
    InspectionStatus,
    RoomType,
    ScoreCategory,
    MetricStatus,
    Actor,
    Insight,
    Reminder,
    Property,
    MaintenanceTask,
    HudsonVisit,
    CategoryScores,
    MyHomeScore,
    YearlyPlanItem,
    FiveYearPlan,
    CustomProject,
    MonthlyVisitRequest,
    ChangeRecord,
    BlueprintHistoryEntry,
    BlueprintNotification,
    MyHomeBlueprint,
    PersonalDirector,
    Subscription,
    InspectionIssue,
    RoomInspection,
    SnapshotInspection,
    PropertyInput,
    InsightInput,
    ReminderInput,
    PlanItemInput,
    FiveYearPlanInput,
    CustomProjectInput,
    VisitRequestInput,
    BlueprintInput,
    RoomInput,
    InspectionCreateRequest,
)

__all__ = [
    "HudsonModel",
    "Role",
    "Priority",
    "PropertyType",
    "ReminderType",
    "SubscriptionStatus",
    "VisitStatus",
    "VisitType",
    "TaskCategory",
    "PlanItemStatus",
    "PlanItemCategory",
    "ProjectStatus",
    "HistoryAction",
    "NotificationType",
    "InspectionStatus",
    "RoomType",
    "ScoreCategory",
    "MetricStatus",
    "Actor",
    "Insight",
    "Reminder",
    "Property",
    "MaintenanceTask",
    "HudsonVisit",
    "CategoryScores",
    "MyHomeScore",
    "YearlyPlanItem",
    "FiveYearPlan",
    "CustomProject",
    "MonthlyVisitRequest",
    "ChangeRecord",
    "BlueprintHistoryEntry",
    "BlueprintNotification",
    "MyHomeBlueprint",
    "PersonalDirector",
    "Subscription",
    "InspectionIssue",
    "RoomInspection",
    "SnapshotInspection",
    "PropertyInput",
    "InsightInput",
    "ReminderInput",
    "PlanItemInput",
    "FiveYearPlanInput",
    "CustomProjectInput",
    "VisitRequestInput",
    "BlueprintInput",
    "RoomInput",
    "InspectionCreateRequest",
]

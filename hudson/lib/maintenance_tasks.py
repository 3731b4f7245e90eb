"""
Monthly maintenance checklist.
Four standard tasks every visit, plus seasonal tasks for the month.
"""

from typing import Dict, List, Tuple

from ..models import MaintenanceTask, TaskCategory

# (name, description, estimated duration)
STANDARD_TASKS: List[Tuple[str, str, str]] = [
    ("HVAC Filter Check", "Inspect and replace HVAC filters if needed", "15 minutes"),
    ("Plumbing Inspection", "Check for leaks, drips, and water pressure issues", "30 minutes"),
    ("Safety Device Test", "Test smoke detectors, CO detectors, and fire extinguishers", "20 minutes"),
    ("Exterior Walkthrough", "Inspect exterior for damage, wear, or maintenance needs", "30 minutes"),
]

SEASONAL_TASKS: Dict[int, List[Tuple[str, str, str]]] = {
    1: [
        ("Winter Weather Prep Check",
         "Inspect heating system, check for ice dams, ensure proper insulation", "45 minutes"),
        ("Indoor Air Quality", "Check humidity levels and ventilation during winter months", "20 minutes"),
    ],
    2: [
        ("Roof & Gutter Inspection", "Check for winter damage and ice buildup", "30 minutes"),
    ],
    3: [
        ("Spring Preparation",
         "Prepare outdoor systems, check irrigation, inspect deck/patio", "1 hour"),
        ("Window & Door Seals", "Inspect and repair weather stripping", "30 minutes"),
    ],
    4: [
        ("Lawn & Garden Startup",
         "Assess lawn health, prepare garden beds, check sprinkler system", "45 minutes"),
        ("AC System Check", "Test and prepare air conditioning for summer", "30 minutes"),
    ],
    5: [
        ("Outdoor Living Spaces", "Inspect and clean deck, patio, outdoor furniture", "1 hour"),
    ],
    6: [
        ("Summer Cooling Efficiency",
         "Optimize AC performance, check insulation, inspect attic ventilation", "45 minutes"),
    ],
    7: [
        ("Pest Prevention", "Inspect for pest entry points and signs of infestation", "30 minutes"),
    ],
    8: [
        ("Drainage & Grading", "Check property drainage before fall rains", "30 minutes"),
    ],
    9: [
        ("Fall Preparation", "Prepare heating system, clean gutters, inspect chimney", "1 hour"),
        ("Weatherproofing", "Seal gaps, check insulation, prepare for cold weather", "45 minutes"),
    ],
    10: [
        ("Heating System Tune-Up", "Full inspection and maintenance of heating system", "1 hour"),
    ],
    11: [
        ("Winter Prep Final Check",
         "Winterize outdoor faucets, check insulation, prepare for freezing temps", "45 minutes"),
    ],
    12: [
        ("Holiday Safety Check", "Inspect holiday lighting, check fire safety with decorations", "30 minutes"),
        ("Year-End Review", "Review annual maintenance, plan for next year", "30 minutes"),
    ],
}


def get_monthly_tasks(month: int, id_prefix: str = "task", completed: bool = False) -> List[MaintenanceTask]:
    """Checklist for a visit in the given month (1-12)."""
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")

    entries = [(TaskCategory.STANDARD, entry) for entry in STANDARD_TASKS]
    entries += [(TaskCategory.SEASONAL, entry) for entry in SEASONAL_TASKS.get(month, [])]

    return [
        MaintenanceTask(
            id=f"{id_prefix}-{idx}",
            name=name,
            description=description,
            category=category,
            month=month,
            estimated_duration=duration,
            completed=completed,
        )
        for idx, (category, (name, description, duration)) in enumerate(entries)
    ]

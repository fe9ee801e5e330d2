# greenpulse/validation.py
# Closed vocabulary enforced before anything is calculated or persisted.
# The calculator itself is more permissive; see calculator.ImpactCalculator.
import math
from typing import Any, Dict, Mapping, Tuple

from .errors import ActivityValidationError

STRICT_ACTIVITY_TYPES: Tuple[str, ...] = ("electricity", "water", "waste", "materials", "flights")

# preview-only types, never persisted by the backend
EXTENDED_ACTIVITY_TYPES: Tuple[str, ...] = STRICT_ACTIVITY_TYPES + (
    "transport",
    "food",
    "shopping",
    "micro_action",
    "energy",
)

VALID_SUBTYPES: Dict[str, Tuple[str, ...]] = {
    "electricity": ("ac", "fan", "laptop", "led_bulb", "geyser"),
    "water": ("shower", "bucket", "tap"),
    "waste": ("plastic_bottle", "plastic_bag", "plastic_container"),
    "materials": ("used_plastic_item", "used_reusable_item"),
    "flights": (
        "domestic_economy",
        "domestic_business",
        "short_haul_economy",
        "short_haul_business",
        "long_haul_economy",
        "long_haul_business",
        "long_haul_first",
    ),
}

VALID_UNITS: Dict[str, Tuple[str, ...]] = {
    "electricity": ("hours",),
    "water": ("minutes", "count"),
    "waste": ("count",),
    "materials": ("count",),
    "flights": ("km",),
}

REQUIRED_FIELDS = ("user_id", "activity_type", "subtype", "quantity", "unit")


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def validate_activity(body: Mapping[str, Any], required=REQUIRED_FIELDS) -> None:
    """Raise ActivityValidationError unless ``body`` is a loggable activity."""
    for name in required:
        value = body.get(name)
        if value is None or value == "":
            raise ActivityValidationError(f"{name} is required")

    activity_type = body["activity_type"]
    subtype = body["subtype"]
    quantity = body["quantity"]
    unit = body["unit"]

    if activity_type not in STRICT_ACTIVITY_TYPES:
        raise ActivityValidationError(
            f"Invalid activity_type. Must be one of: {', '.join(STRICT_ACTIVITY_TYPES)}"
        )

    subtypes = VALID_SUBTYPES[activity_type]
    if subtype not in subtypes:
        raise ActivityValidationError(
            f'Invalid subtype "{subtype}" for {activity_type}. Must be one of: {", ".join(subtypes)}'
        )

    if not _is_number(quantity) or quantity < 0:
        raise ActivityValidationError("quantity must be a non-negative number")

    units = VALID_UNITS[activity_type]
    if unit not in units:
        raise ActivityValidationError(
            f'Invalid unit "{unit}" for {activity_type}. Must be one of: {", ".join(units)}'
        )


def validate_preview(body: Mapping[str, Any]) -> None:
    """Looser check for calculation-only requests: fields present, quantity numeric."""
    missing = [n for n in ("activity_type", "subtype", "quantity", "unit") if body.get(n) in (None, "")]
    if missing:
        raise ActivityValidationError(
            "Missing required fields: activity_type, subtype, quantity, unit"
        )
    if not _is_number(body["quantity"]) or body["quantity"] < 0:
        raise ActivityValidationError("quantity must be a non-negative number")

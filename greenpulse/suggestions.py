# greenpulse/suggestions.py
# Next-day suggestions aimed at the day's biggest emission sources, with the
# CO2e each one could save. Savings are read from the FactorTable where it
# carries the numbers; the shares below cover what it does not.
from typing import Dict, Iterable, List

from .calculator import PRECISION
from .factors import DEFAULT_FACTORS, GRAMS_PER_KG, WATTS_PER_KW, FactorTable
from .schemas import ActivityLog, MissingActivities, Suggestion

TOP_DRIVERS = 3
MIN_SUGGESTIONS = 3
MAX_SUGGESTIONS = 5

# persisted logs record energy use as "electricity"
CATEGORY_ALIASES = {"electricity": "energy"}

MEAT_MEALS = ("chicken", "mutton", "beef", "fish")

LED_SWITCH_SHARE = 0.3
PLATE_WASTE_SHARE = 0.2
SHOWER_MINUTES_CUT = 2
SHOWER_CUT_CO2E_KG = 0.01
TAP_OFF_CO2E_KG = 0.005
UNPLUG_CO2E_KG = 0.02


def _category(activity_type: str) -> str:
    return CATEGORY_ALIASES.get(activity_type, activity_type)


def _suggestion(id, category, title, description, saving, difficulty="easy") -> Suggestion:
    return Suggestion(
        id=id,
        category=category,
        title=title,
        description=description,
        potential_saving_kg=round(max(0.0, saving), PRECISION),
        difficulty=difficulty,
    )


def category_totals(activities: Iterable[ActivityLog]) -> Dict[str, float]:
    """CO2e per category, in first-logged order."""
    totals: Dict[str, float] = {}
    for activity in activities:
        category = _category(activity.activity_type)
        totals[category] = round(totals.get(category, 0.0) + activity.calculated_impact.co2e_kg, PRECISION)
    return totals


def category_suggestions(
    category: str,
    total_co2e_kg: float,
    activities: List[ActivityLog],
    factors: FactorTable = DEFAULT_FACTORS,
) -> List[Suggestion]:
    subtypes = {a.subtype for a in activities if _category(a.activity_type) == category}

    if category == "transport":
        modes = factors.transport_g_co2e_per_km
        car = modes[factors.baseline_transport_mode]
        public_share = 1 - modes["metro"] / car
        pool_share = 1 - modes["carpool"] / car
        return [
            _suggestion("transport-public", category, "Try metro or bus tomorrow",
                        f"Public transport can cut your commute emissions by {public_share:.0%}",
                        total_co2e_kg * public_share),
            _suggestion("transport-pool", category, "Pool your ride",
                        f"Sharing a ride cuts emissions per person by {pool_share:.0%}",
                        total_co2e_kg * pool_share, "medium"),
        ]

    if category == "energy":
        out = []
        if any(s.startswith("ac") for s in subtypes):
            kwh = factors.device_watts["ac"] / WATTS_PER_KW
            out.append(_suggestion("energy-ac", category, "Reduce AC by 1 hour",
                                   f"An AC hour uses about {kwh:g} kWh",
                                   kwh * factors.grid_co2e_per_kwh))
        out.append(_suggestion("energy-led", category, "Switch to LED bulbs",
                               "LEDs use a fraction of the energy of older bulbs",
                               total_co2e_kg * LED_SWITCH_SHARE))
        return out

    if category == "food":
        out = []
        if subtypes & set(MEAT_MEALS):
            meals = factors.food_co2e_per_serving
            swap = meals[factors.baseline_meal] - meals["veg"]
            out.append(_suggestion("food-veg", category, "Try a plant-based meal",
                                   f"One veg meal instead of {factors.baseline_meal} saves about {swap:g} kg CO2e",
                                   swap))
        out.append(_suggestion("food-plate", category, "Finish what's on your plate",
                               "Food waste adds to your footprint",
                               total_co2e_kg * PLATE_WASTE_SHARE))
        return out

    if category == "water":
        shower_l = SHOWER_MINUTES_CUT * factors.water_liters_per_unit["shower"]
        tap_l = factors.water_liters_per_unit["tap"]
        return [
            _suggestion("water-shower", category, "Shorter shower = water saved",
                        f"{SHOWER_MINUTES_CUT} fewer shower minutes save about {shower_l:g} liters",
                        SHOWER_CUT_CO2E_KG),
            _suggestion("water-tap", category, "Turn off tap while brushing",
                        f"A running tap uses {tap_l:g} liters per minute",
                        TAP_OFF_CO2E_KG),
        ]

    if category == "waste":
        return [
            _suggestion("waste-refuse", category, "Refuse extra packaging",
                        "Say no to plastic bags, straws and disposable cutlery",
                        factors.waste_actions["refuse"].avoided_co2e_kg),
            _suggestion("waste-compost", category, "Compost food scraps",
                        "Composting keeps food waste out of landfill",
                        factors.waste_actions["compost"].avoided_co2e_kg, "medium"),
        ]

    if category == "shopping":
        thrift_share = 1 - factors.shopping_co2e_per_item["thrift"] / factors.shopping_baseline_per_item
        return [
            _suggestion("shopping-thrift", category, "Try thrifting or repair",
                        f"Second-hand items save about {thrift_share:.0%} of a new purchase",
                        total_co2e_kg * thrift_share, "medium"),
            _suggestion("shopping-local", category, "Shop locally",
                        "Local purchases skip delivery emissions",
                        factors.shopping_co2e_per_item["online_delivery"]),
        ]

    if category == "flights":
        train_per_km = factors.transport_g_co2e_per_km["local_train"] / GRAMS_PER_KG
        share = 1 - train_per_km / factors.flight_co2e_per_km["short_haul_economy"]
        return [
            _suggestion("flights-train", category, "Replace a short flight with a train",
                        f"Rail emits about {share:.0%} less per km than a short-haul flight",
                        total_co2e_kg * share, "hard"),
        ]

    if category == "materials":
        per_use = factors.materials_saved_kg["used_reusable_item"]
        return [
            _suggestion("materials-reusable", category, "Swap single-use items for reusables",
                        f"Each reusable use saves about {per_use:g} kg CO2e",
                        total_co2e_kg),
        ]

    return []


def general_suggestions(factors: FactorTable = DEFAULT_FACTORS) -> List[Suggestion]:
    walk_per_km = factors.transport_g_co2e_per_km[factors.baseline_transport_mode] / GRAMS_PER_KG
    return [
        _suggestion("general-walk", "transport", "Walk for short trips",
                    "Trips under 1 km? Walking is faster than you think.", walk_per_km),
        _suggestion("general-bottle", "waste", "Carry a reusable bottle",
                    "Avoid single-use plastic bottles. Refill instead.",
                    factors.waste_actions["refill_bottle"].avoided_co2e_kg),
        _suggestion("general-unplug", "energy", "Unplug idle chargers",
                    "Chargers draw power even when not charging", UNPLUG_CO2E_KG),
    ]


def generate_smart_suggestions(
    activities: Iterable[ActivityLog], factors: FactorTable = DEFAULT_FACTORS
) -> List[Suggestion]:
    """Two suggestions for the top emitter, one each for the next two, padded with general ones."""
    activities = list(activities)
    totals = category_totals(activities)
    drivers = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)[:TOP_DRIVERS]

    suggestions: List[Suggestion] = []
    for rank, (category, total) in enumerate(drivers):
        options = category_suggestions(category, total, activities, factors)
        suggestions.extend(options[: 2 if rank == 0 else 1])

    if len(suggestions) < MIN_SUGGESTIONS:
        suggestions.extend(general_suggestions(factors))
    return suggestions[:MAX_SUGGESTIONS]


def detect_missing_activities(activities: Iterable[ActivityLog]) -> MissingActivities:
    logged = {_category(a.activity_type) for a in activities}
    return MissingActivities(
        missing=[c for c in ("transport", "food", "energy") if c not in logged],
        has_commute="transport" in logged,
        has_meals="food" in logged,
        has_energy="energy" in logged,
    )

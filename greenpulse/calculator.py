# greenpulse/calculator.py
# Impact calculator: one activity in, one CalculatedImpact out. Factors come
# from the injected FactorTable; unknown activities come back with confidence 0.
import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from .factors import DEFAULT_FACTORS, GRAMS_PER_KG, WATTS_PER_KW, FactorTable
from .schemas import CalculatedImpact
from .validation import EXTENDED_ACTIVITY_TYPES

logger = logging.getLogger(__name__)

PRECISION = 4


def _round(value: float) -> float:
    return round(value, PRECISION)


def _fmt(value: float) -> str:
    text = f"{value:.{PRECISION}f}".rstrip("0").rstrip(".")
    return text or "0"


def _label(subtype: str) -> str:
    return subtype.replace("_", " ")


def unsupported(explanation: str) -> CalculatedImpact:
    return CalculatedImpact(confidence=0.0, explanation=explanation)


class ImpactCalculator:
    """Maps ``(activity_type, subtype, quantity, unit)`` to a CalculatedImpact.

    ``activity_types`` restricts which activity types are calculated; anything
    outside it is answered with a zero-confidence result. The backend and the
    preview path share this class and differ only in that set.
    """

    def __init__(self, factors: FactorTable = DEFAULT_FACTORS, activity_types: Iterable[str] = EXTENDED_ACTIVITY_TYPES):
        self.factors = factors
        self.activity_types = frozenset(activity_types)
        self._handlers: Dict[str, Callable[[str, float, Mapping[str, Any]], CalculatedImpact]] = {
            "electricity": self._electricity,
            "energy": self._electricity,
            "water": self._water,
            "waste": self._waste,
            "materials": self._materials,
            "flights": self._flights,
            "transport": self._transport,
            "food": self._food,
            "shopping": self._shopping,
            "micro_action": self._micro_action,
        }

    def calculate(self, activity_type, subtype, quantity, unit=None, metadata: Optional[Mapping[str, Any]] = None) -> CalculatedImpact:
        handler = self._handlers.get(activity_type)
        if handler is None or activity_type not in self.activity_types:
            logger.debug("unsupported activity type %r", activity_type)
            return unsupported(f"Unknown activity type: {activity_type}")

        try:
            amount = float(quantity)
        except (TypeError, ValueError):
            return unsupported(f"Quantity for {activity_type} is not numeric: {quantity!r}")
        if not math.isfinite(amount):
            return unsupported(f"Quantity for {activity_type} is not finite: {quantity!r}")
        if amount < 0:
            logger.warning("negative quantity %s for %s/%s treated as 0", amount, activity_type, subtype)
            amount = 0.0

        return handler(subtype or "", amount, metadata or {})

    # -----------------
    # Electricity
    # -----------------
    def _electricity(self, subtype: str, hours: float, metadata) -> CalculatedImpact:
        watts = self.factors.device_watts.get(subtype)
        if watts is None:
            return unsupported(f"Unknown electricity subtype: {subtype}")
        grid = self.factors.grid_co2e_per_kwh
        kwh = _round(watts * hours / WATTS_PER_KW)
        co2e = _round(kwh * grid)
        return CalculatedImpact(
            co2e_kg=co2e,
            kwh=kwh,
            confidence=self.factors.confidence["electricity"],
            explanation=(
                f"{_label(subtype).upper()} used for {_fmt(hours)} hours: {_fmt(watts)} W x {_fmt(hours)} h "
                f"= {_fmt(kwh)} kWh x {_fmt(grid)} kg/kWh = {_fmt(co2e)} kg CO2e"
            ),
        )

    # -----------------
    # Water
    # -----------------
    def _water(self, subtype: str, quantity: float, metadata) -> CalculatedImpact:
        rate = self.factors.water_liters_per_unit.get(subtype)
        if rate is None:
            return unsupported(f"Unknown water subtype: {subtype}")
        liters = _round(quantity * rate)
        if subtype in self.factors.water_per_minute:
            explanation = f"{_label(subtype).capitalize()}: {_fmt(quantity)} min x {_fmt(rate)} L/min = {_fmt(liters)} L"
        else:
            explanation = f"{_label(subtype).capitalize()}: {_fmt(quantity)} use(s) x {_fmt(rate)} L = {_fmt(liters)} L"

        saved = 0.0
        baseline = self.factors.baseline_shower_minutes
        if subtype == "shower" and quantity < baseline:
            saved = _round((baseline - quantity) * rate)
            explanation += f" | Saved {_fmt(saved)} L vs {_fmt(baseline)}-min shower"

        return CalculatedImpact(
            water_l=liters,
            water_saved_l=saved,
            confidence=self.factors.confidence["water"],
            explanation=explanation,
        )

    # -----------------
    # Waste: plastic disposal or diversion
    # -----------------
    def _waste(self, subtype: str, quantity: float, metadata) -> CalculatedImpact:
        item_kg = self.factors.plastic_item_kg.get(subtype)
        if item_kg is not None:
            multiplier = self.factors.plastic_co2e_multiplier
            waste_kg = _round(quantity * item_kg)
            co2e = _round(waste_kg * multiplier)
            return CalculatedImpact(
                co2e_kg=co2e,
                waste_kg=waste_kg,
                confidence=self.factors.confidence["waste"],
                explanation=(
                    f"Disposed {_fmt(quantity)} {_label(subtype)}(s): {_fmt(quantity)} x {_fmt(item_kg)} kg "
                    f"= {_fmt(waste_kg)} kg plastic waste x {_fmt(multiplier)} = {_fmt(co2e)} kg CO2e"
                ),
            )

        action = self.factors.waste_actions.get(subtype)
        if action is None:
            return unsupported(f"Unknown waste subtype: {subtype}")
        avoided = _round(quantity * action.avoided_co2e_kg)
        return CalculatedImpact(
            avoided_co2e_kg=avoided,
            waste_diverted=quantity,
            confidence=action.confidence,
            explanation=(
                f"{_label(subtype).capitalize()}: {_fmt(quantity)} item(s) x {_fmt(action.avoided_co2e_kg)} kg "
                f"= avoided {_fmt(avoided)} kg CO2e"
            ),
        )

    # -----------------
    # Materials
    # -----------------
    def _materials(self, subtype: str, quantity: float, metadata) -> CalculatedImpact:
        confidence = self.factors.confidence["materials"]
        impact = self.factors.materials_impact_kg.get(subtype)
        if impact is not None:
            co2e = _round(quantity * impact)
            return CalculatedImpact(
                co2e_kg=co2e,
                confidence=confidence,
                explanation=f"Used {_fmt(quantity)} plastic item(s) x {_fmt(impact)} kg = {_fmt(co2e)} kg CO2e",
            )

        saved_per_use = self.factors.materials_saved_kg.get(subtype)
        if saved_per_use is not None:
            saved = _round(quantity * saved_per_use)
            return CalculatedImpact(
                saved_co2e_kg=saved,
                avoided_co2e_kg=saved,
                confidence=confidence,
                explanation=(
                    f"Used reusable item(s) {_fmt(quantity)} time(s) x {_fmt(saved_per_use)} kg "
                    f"= saved {_fmt(saved)} kg CO2e"
                ),
            )

        return unsupported(f"Unknown materials subtype: {subtype}")

    # -----------------
    # Flights
    # -----------------
    def _flights(self, subtype: str, distance_km: float, metadata) -> CalculatedImpact:
        factor = self.factors.flight_co2e_per_km.get(subtype)
        if factor is None:
            return unsupported(f"Unknown flights subtype: {subtype}")
        return_trip = bool(metadata.get("return_trip"))
        distance = distance_km * 2 if return_trip else distance_km
        co2e = _round(distance * factor)
        trip = f"{_fmt(distance_km)} km x 2 (return)" if return_trip else f"{_fmt(distance)} km"
        return CalculatedImpact(
            co2e_kg=co2e,
            confidence=self.factors.confidence["flights"],
            explanation=f"Flight ({_label(subtype)}): {trip} x {_fmt(factor)} kg CO2e/km = {_fmt(co2e)} kg CO2e",
        )

    # -----------------
    # Transport (non-flight)
    # -----------------
    def _transport_co2e(self, mode: str, distance_km: float) -> float:
        return _round(distance_km * self.factors.transport_g_co2e_per_km[mode] / GRAMS_PER_KG)

    def _transport(self, mode: str, distance_km: float, metadata) -> CalculatedImpact:
        factor = self.factors.transport_g_co2e_per_km.get(mode)
        if factor is None:
            return unsupported(f"Unknown transport mode: {mode}")
        co2e = self._transport_co2e(mode, distance_km)
        explanation = f"{_label(mode).capitalize()}: {_fmt(distance_km)} km x {_fmt(factor)} gCO2e/km = {_fmt(co2e)} kg CO2e"

        alternative = metadata.get("alternative")
        if alternative in self.factors.transport_g_co2e_per_km:
            baseline_mode = alternative
        elif mode in self.factors.low_carbon_modes:
            baseline_mode = self.factors.baseline_transport_mode
        else:
            baseline_mode = None

        avoided = 0.0
        if baseline_mode is not None:
            avoided = _round(max(0.0, self._transport_co2e(baseline_mode, distance_km) - co2e))
            if avoided > 0:
                explanation += f" | Avoided {_fmt(avoided)} kg CO2e vs {_label(baseline_mode)}"

        return CalculatedImpact(
            co2e_kg=co2e,
            avoided_co2e_kg=avoided,
            confidence=self.factors.transport_confidence.get(mode, 0.0),
            explanation=explanation,
        )

    # -----------------
    # Food
    # -----------------
    def _food(self, meal: str, servings: float, metadata) -> CalculatedImpact:
        factor = self.factors.food_co2e_per_serving.get(meal)
        if factor is None:
            return unsupported(f"Unknown food type: {meal}")
        co2e = _round(servings * factor)
        explanation = f"{_label(meal).capitalize()} meal: {_fmt(servings)} serving(s) x {_fmt(factor)} kg CO2e = {_fmt(co2e)} kg CO2e"

        avoided = 0.0
        if meal in self.factors.plant_based_meals:
            baseline = self.factors.baseline_meal
            baseline_co2e = _round(servings * self.factors.food_co2e_per_serving[baseline])
            avoided = _round(max(0.0, baseline_co2e - co2e))
            if avoided > 0:
                explanation += f" | Avoided {_fmt(avoided)} kg CO2e vs {_label(baseline)}"

        return CalculatedImpact(
            co2e_kg=co2e,
            avoided_co2e_kg=avoided,
            confidence=self.factors.confidence["food"],
            explanation=explanation,
        )

    # -----------------
    # Shopping
    # -----------------
    def _shopping(self, kind: str, quantity: float, metadata) -> CalculatedImpact:
        per_item = self.factors.shopping_co2e_per_item.get(kind)
        if per_item is None:
            return unsupported(f"Unknown shopping type: {kind}")
        co2e = _round(quantity * per_item)
        explanation = f"{_label(kind).capitalize()}: {_fmt(quantity)} item(s) x {_fmt(per_item)} kg CO2e = {_fmt(co2e)} kg CO2e"

        avoided = 0.0
        confidence = self.factors.confidence["shopping"]
        if kind in self.factors.low_impact_shopping:
            confidence = self.factors.confidence["shopping_low_impact"]
            baseline = self.factors.shopping_baseline_per_item
            avoided = _round(max(0.0, _round(quantity * baseline) - co2e))
            if avoided > 0:
                explanation += f" | Avoided {_fmt(avoided)} kg CO2e vs new purchase at {_fmt(baseline)} kg/item"

        return CalculatedImpact(
            co2e_kg=co2e,
            avoided_co2e_kg=avoided,
            confidence=confidence,
            explanation=explanation,
        )

    # -----------------
    # Micro actions
    # -----------------
    def _micro_action(self, action_name: str, quantity: float, metadata) -> CalculatedImpact:
        action = self.factors.waste_actions.get(action_name)
        if action is None:
            return unsupported(f"Unknown micro action: {action_name}")
        avoided = _round(quantity * action.avoided_co2e_kg)
        return CalculatedImpact(
            avoided_co2e_kg=avoided,
            confidence=action.confidence,
            explanation=f"{_label(action_name).capitalize()}: {_fmt(quantity)} x {_fmt(action.avoided_co2e_kg)} kg = avoided {_fmt(avoided)} kg CO2e",
        )


DEFAULT_CALCULATOR = ImpactCalculator()


def calculate_impact(activity_type, subtype, quantity, unit=None, metadata=None) -> CalculatedImpact:
    return DEFAULT_CALCULATOR.calculate(activity_type, subtype, quantity, unit, metadata)


# (name, activity_type, subtype, quantity, unit, expected fields)
SELF_CHECK_CASES: Tuple[Tuple[str, str, str, float, str, Dict[str, float]], ...] = (
    ("AC 2 hours", "electricity", "ac", 2, "hours", {"kwh": 3, "co2e_kg": 2.1}),
    ("Shower 6 min", "water", "shower", 6, "minutes", {"water_l": 54}),
    ("2 bottles", "waste", "plastic_bottle", 2, "count", {"waste_kg": 0.04, "co2e_kg": 0.1}),
    ("Reusable item", "materials", "used_reusable_item", 1, "count", {"saved_co2e_kg": 0.04}),
    ("Flight 500km", "flights", "domestic_economy", 500, "km", {"co2e_kg": 127.5}),
)
COMBINED_DAY_EXPECTED = {"kwh": 3, "water_l": 54, "waste_kg": 0.04, "co2e_kg": 2.2}


def verify_calculations(calculator: ImpactCalculator = DEFAULT_CALCULATOR) -> List[str]:
    """Run the reference scenarios; return one message per mismatch (empty when all pass)."""
    failures = []
    for name, activity_type, subtype, quantity, unit, expected in SELF_CHECK_CASES:
        impact = calculator.calculate(activity_type, subtype, quantity, unit)
        for field_name, want in expected.items():
            got = getattr(impact, field_name)
            if got is None or not math.isclose(got, want, abs_tol=1e-9):
                failures.append(f"{name}: {field_name} should be {want}, got {got}")

    # combined day: AC 2h + shower 6 min + 2 bottles
    day = [calculator.calculate(*case[1:5]) for case in SELF_CHECK_CASES[:3]]
    for field_name, want in COMBINED_DAY_EXPECTED.items():
        got = 0.0
        for impact in day:
            got = _round(got + getattr(impact, field_name))
        if not math.isclose(got, want, abs_tol=1e-9):
            failures.append(f"Combined day: {field_name} should be {want}, got {got}")
    return failures

# greenpulse/factors.py
# Emission and consumption factors. The calculators read every number from a
# FactorTable; swap the table (not the code) to model another region.
from dataclasses import dataclass, fields
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping

FACTOR_VERSION = "v1.0"

# unit conversions
WATTS_PER_KW = 1000.0
GRAMS_PER_KG = 1000.0


@dataclass(frozen=True)
class WasteAction:
    points: int
    avoided_co2e_kg: float
    confidence: float


@dataclass(frozen=True)
class FactorTable:
    """Immutable, versioned lookup table of emission and consumption factors.

    Mapping fields are frozen on construction, so a table handed to a
    calculator cannot drift while the process runs.
    """

    version: str
    grid_co2e_per_kwh: float
    device_watts: Mapping[str, float]
    water_liters_per_unit: Mapping[str, float]
    water_per_minute: FrozenSet[str]
    baseline_shower_minutes: float
    plastic_item_kg: Mapping[str, float]
    plastic_co2e_multiplier: float
    materials_impact_kg: Mapping[str, float]
    materials_saved_kg: Mapping[str, float]
    flight_co2e_per_km: Mapping[str, float]
    transport_g_co2e_per_km: Mapping[str, float]
    transport_confidence: Mapping[str, float]
    baseline_transport_mode: str
    low_carbon_modes: FrozenSet[str]
    food_co2e_per_serving: Mapping[str, float]
    baseline_meal: str
    plant_based_meals: FrozenSet[str]
    shopping_co2e_per_item: Mapping[str, float]
    shopping_baseline_per_item: float
    low_impact_shopping: FrozenSet[str]
    waste_actions: Mapping[str, WasteAction]
    confidence: Mapping[str, float]

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Mapping):
                object.__setattr__(self, f.name, MappingProxyType(dict(value)))
            elif isinstance(value, (set, list, tuple)):
                object.__setattr__(self, f.name, frozenset(value))

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if f.name == "waste_actions":
                value = {
                    k: {"points": a.points, "avoided_co2e_kg": a.avoided_co2e_kg, "confidence": a.confidence}
                    for k, a in value.items()
                }
            elif isinstance(value, Mapping):
                value = dict(value)
            elif isinstance(value, frozenset):
                value = sorted(value)
            out[f.name] = value
        return out


DEFAULT_FACTORS = FactorTable(
    version=FACTOR_VERSION,
    # India-average grid intensity, kg CO2e per kWh
    grid_co2e_per_kwh=0.7,
    # nameplate draw in watts
    device_watts={
        "fan": 60,
        "led_bulb": 10,
        "laptop": 60,
        "ac": 1500,
        "geyser": 2000,
        "cfl_bulb": 20,
        "incandescent_bulb": 60,
        "ac_inverter": 1000,
        "desktop": 200,
        "tv": 100,
        "tv_led": 80,
        "tv_old": 150,
        "wifi_router": 15,
        "microwave": 1200,
        "induction_cooktop": 2000,
        "kettle": 1500,
        "refrigerator": 150,
        "washing_machine": 500,
        "iron": 1000,
        "hair_dryer": 1500,
        "vacuum_cleaner": 1400,
    },
    # liters per minute for metered subtypes, liters per use otherwise
    water_liters_per_unit={
        "shower": 9,
        "bucket": 15,
        "tap": 6,
        "washing_machine": 50,
        "dishwasher": 15,
        "toilet_flush": 6,
        "car_wash": 150,
        "garden_watering": 20,
    },
    water_per_minute={"shower", "tap", "garden_watering"},
    baseline_shower_minutes=10,
    # kg per disposed item
    plastic_item_kg={
        "plastic_bottle": 0.02,
        "plastic_bag": 0.005,
        "plastic_container": 0.03,
    },
    # embodied-carbon proxy: kg CO2e per kg plastic
    plastic_co2e_multiplier=2.5,
    materials_impact_kg={"used_plastic_item": 0.05},
    materials_saved_kg={"used_reusable_item": 0.04},
    # kg CO2e per passenger-km, radiative forcing included
    flight_co2e_per_km={
        "domestic_economy": 0.255,
        "domestic_business": 0.382,
        "short_haul_economy": 0.156,
        "short_haul_business": 0.234,
        "long_haul_economy": 0.150,
        "long_haul_business": 0.430,
        "long_haul_first": 0.600,
    },
    # g CO2e per km
    transport_g_co2e_per_km={
        "walk": 0,
        "cycle": 0,
        "metro": 35,
        "bus": 80,
        "local_train": 25,
        "car_solo": 180,
        "cab_solo": 200,
        "carpool": 90,
        "bike": 100,
        "auto": 120,
    },
    transport_confidence={
        "walk": 1.0,
        "cycle": 1.0,
        "metro": 0.9,
        "bus": 0.85,
        "local_train": 0.9,
        "car_solo": 0.85,
        "cab_solo": 0.8,
        "carpool": 0.85,
        "bike": 0.85,
        "auto": 0.8,
    },
    baseline_transport_mode="car_solo",
    low_carbon_modes={"walk", "cycle", "metro", "bus"},
    # kg CO2e per serving
    food_co2e_per_serving={
        "veg": 0.7,
        "egg": 1.0,
        "chicken": 2.5,
        "mutton": 5.0,
        "beef": 5.5,
        "fish": 2.0,
        "dairy_high": 0.5,
        "dairy_low": 0.2,
        "vegan": 0.5,
    },
    baseline_meal="chicken",
    plant_based_meals={"veg", "vegan"},
    # kg CO2e per item or order
    shopping_co2e_per_item={
        "online_delivery": 0.8,
        "packaging": 0.3,
        "thrift": 0.1,
        "local": 0.2,
        "fast_fashion": 6.0,
        "fresh_product": 0.05,
        "other": 0.5,
    },
    # new purchase with delivery
    shopping_baseline_per_item=1.5,
    low_impact_shopping={"thrift", "local"},
    waste_actions={
        "compost": WasteAction(25, 0.1, 0.7),
        "recycle": WasteAction(15, 0.08, 0.75),
        "refuse": WasteAction(10, 0.02, 0.9),
        "refuse_plastic": WasteAction(10, 0.02, 0.9),
        "reuse": WasteAction(15, 0.05, 0.8),
        "reuse_container": WasteAction(15, 0.05, 0.8),
        "donate": WasteAction(20, 0.15, 0.7),
        "refill_bottle": WasteAction(10, 0.05, 0.9),
        "cloth_bag": WasteAction(10, 0.03, 0.85),
        "no_cutlery": WasteAction(10, 0.02, 0.9),
    },
    confidence={
        "electricity": 0.95,
        "water": 0.9,
        "waste": 0.85,
        "materials": 0.9,
        "flights": 0.8,
        "food": 0.8,
        "shopping": 0.6,
        "shopping_low_impact": 0.7,
    },
)

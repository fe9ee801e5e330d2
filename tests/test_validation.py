import pytest

from greenpulse.errors import ActivityValidationError
from greenpulse.validation import (
    EXTENDED_ACTIVITY_TYPES,
    STRICT_ACTIVITY_TYPES,
    VALID_SUBTYPES,
    VALID_UNITS,
    validate_activity,
    validate_preview,
)


def _body(**overrides):
    body = {"user_id": "u1", "activity_type": "water", "subtype": "shower", "quantity": 6, "unit": "minutes"}
    body.update(overrides)
    return body


def test_vocabulary():
    assert STRICT_ACTIVITY_TYPES == ("electricity", "water", "waste", "materials", "flights")
    assert set(EXTENDED_ACTIVITY_TYPES) - set(STRICT_ACTIVITY_TYPES) == {
        "transport", "food", "shopping", "micro_action", "energy",
    }
    assert VALID_SUBTYPES["electricity"] == ("ac", "fan", "laptop", "led_bulb", "geyser")
    assert VALID_UNITS["water"] == ("minutes", "count")
    assert VALID_UNITS["flights"] == ("km",)


def test_valid_body_passes():
    validate_activity(_body())
    validate_activity(_body(activity_type="flights", subtype="long_haul_first", quantity=0, unit="km"))


@pytest.mark.parametrize("field", ["user_id", "activity_type", "subtype", "quantity", "unit"])
def test_missing_field(field):
    body = _body()
    del body[field]
    with pytest.raises(ActivityValidationError, match=f"{field} is required"):
        validate_activity(body)


def test_extended_type_is_not_persistable():
    with pytest.raises(ActivityValidationError, match="Invalid activity_type"):
        validate_activity(_body(activity_type="transport", subtype="bus", unit="km"))


def test_subtype_must_match_type():
    with pytest.raises(ActivityValidationError) as err:
        validate_activity(_body(subtype="geyser"))
    assert err.value.message == 'Invalid subtype "geyser" for water. Must be one of: shower, bucket, tap'


def test_unit_must_match_type():
    with pytest.raises(ActivityValidationError, match='Invalid unit "km" for water'):
        validate_activity(_body(unit="km"))


@pytest.mark.parametrize("quantity", [-1, "6", True, float("nan"), float("inf")])
def test_quantity_must_be_non_negative_number(quantity):
    with pytest.raises(ActivityValidationError, match="quantity must be a non-negative number"):
        validate_activity(_body(quantity=quantity))


def test_preview_only_checks_presence_and_quantity():
    validate_preview({"activity_type": "transport", "subtype": "bus", "quantity": 10, "unit": "km"})
    with pytest.raises(ActivityValidationError, match="Missing required fields"):
        validate_preview({"activity_type": "transport", "subtype": "bus", "unit": "km"})
    with pytest.raises(ActivityValidationError):
        validate_preview({"activity_type": "transport", "subtype": "bus", "quantity": -3, "unit": "km"})

"""Tests for position value objects and the persisted-mapping boundary."""

from decimal import Decimal

import pytest

from stbvv_engines.fee_tables import FeeTableId
from stbvv_engines.positions import (
    BillingType,
    Discount,
    DiscountType,
    FlatRatePosition,
    HourlyPosition,
    ObjectValuePosition,
    TenthRate,
    discount_from_dict,
    parse_billing_type,
    position_from_dict,
    position_to_dict,
)


class TestTenthRate:
    """Tests for TenthRate."""

    def test_default_is_full_fee(self):
        assert TenthRate().factor == Decimal("1")

    def test_factor(self):
        assert TenthRate(6, 10).factor == Decimal("0.6")
        assert TenthRate(25, 20).factor == Decimal("1.25")

    def test_fractional_numerator(self):
        assert TenthRate(Decimal("17.5"), 10).factor == Decimal("1.75")

    def test_zero_denominator_degrades_to_zero(self):
        assert TenthRate(6, 0).factor == Decimal("0")

    def test_negative_numerator_degrades_to_zero(self):
        assert TenthRate(-6, 10).factor == Decimal("0")

    def test_str(self):
        assert str(TenthRate(6, 10)) == "6/10"
        assert str(TenthRate(Decimal("3.5"), 10)) == "3.5/10"


class TestPositionTypes:
    """Constructors coerce, never reject."""

    def test_object_value_defaults(self):
        pos = ObjectValuePosition(id="p1")
        assert pos.billing_type == BillingType.OBJECT_VALUE
        assert pos.object_value == Decimal("0")
        assert pos.fee_table == FeeTableId.A
        assert pos.tenth_rate == TenthRate()

    def test_numbers_coerced(self):
        pos = HourlyPosition(id="p1", hourly_rate="120.50", hours=2)
        assert pos.hourly_rate == Decimal("120.50")
        assert pos.hours == Decimal("2")

    def test_float_goes_through_str(self):
        pos = FlatRatePosition(id="p1", flat_rate=0.1)
        assert pos.flat_rate == Decimal("0.1")

    def test_negative_values_representable(self):
        pos = HourlyPosition(id="p1", hourly_rate=-5, hours=1)
        assert pos.hourly_rate == Decimal("-5")

    def test_fee_table_normalised(self):
        assert ObjectValuePosition(id="p1", fee_table="b").fee_table == FeeTableId.B

    def test_unknown_fee_table_kept_as_text(self):
        assert ObjectValuePosition(id="p1", fee_table="z").fee_table == "Z"

    def test_tenth_rate_from_mapping(self):
        pos = ObjectValuePosition(id="p1", tenth_rate={"numerator": 6, "denominator": 10})
        assert pos.tenth_rate == TenthRate(6, 10)

    def test_tenth_rate_mapping_extra_keys(self):
        pos = ObjectValuePosition(
            id="p1", tenth_rate={"numerator": 6, "denominator": 10, "label": "6/10"}
        )
        assert pos.tenth_rate == TenthRate(6, 10)

    def test_tenth_rate_mapping_missing_key(self):
        pos = ObjectValuePosition(id="p1", tenth_rate={"numerator": 6})
        assert pos.tenth_rate.factor == Decimal("0")

    @pytest.mark.parametrize("raw", ["6/10", 0.6, [6, 10]])
    def test_tenth_rate_other_shapes_zero_factor(self, raw):
        pos = ObjectValuePosition(id="p1", tenth_rate=raw)
        assert isinstance(pos.tenth_rate, TenthRate)
        assert pos.tenth_rate.factor == Decimal("0")

    def test_effective_quantity(self):
        assert FlatRatePosition(id="p1", quantity=3).effective_quantity == Decimal("3")
        assert FlatRatePosition(id="p1", quantity=0).effective_quantity == Decimal("0")
        assert FlatRatePosition(id="p1", quantity=-2).effective_quantity == Decimal("0")
        assert FlatRatePosition(id="p1", quantity="x").effective_quantity == Decimal("0")

    def test_frozen(self):
        pos = FlatRatePosition(id="p1", flat_rate=10)
        with pytest.raises(AttributeError):
            pos.flat_rate = Decimal("20")


class TestPositionFromDict:
    """Persisted camelCase mappings."""

    def test_hourly(self):
        pos = position_from_dict({
            "id": "p1",
            "activity": "Beratung",
            "billingType": "hourly",
            "hourlyRate": 100,
            "hours": 2,
            "quantity": 1,
            "applyExpenseFee": False,
        })
        assert isinstance(pos, HourlyPosition)
        assert pos.hourly_rate == Decimal("100")

    def test_object_value(self):
        pos = position_from_dict({
            "id": "p2",
            "billingType": "objectValue",
            "objectValue": 10000,
            "feeTable": "A",
            "tenthRate": {"numerator": 6, "denominator": 10},
            "applyExpenseFee": True,
        })
        assert isinstance(pos, ObjectValuePosition)
        assert pos.tenth_rate.factor == Decimal("0.6")
        assert pos.apply_expense_fee is True

    def test_irrelevant_fields_ignored(self):
        pos = position_from_dict({
            "id": "p3",
            "billingType": "flatRate",
            "flatRate": 50,
            "objectValue": 99999,
            "hourlyRate": 300,
        })
        assert isinstance(pos, FlatRatePosition)
        assert not hasattr(pos, "object_value")

    def test_missing_billing_type_means_object_value(self):
        assert isinstance(position_from_dict({"id": "p4"}), ObjectValuePosition)

    def test_missing_amount_defaults_to_zero(self):
        pos = position_from_dict({"id": "p5", "billingType": "hourly"})
        assert pos.hourly_rate == Decimal("0")
        assert pos.hours == Decimal("0")

    def test_unknown_billing_type_raises(self):
        with pytest.raises(ValueError, match="Unknown billing type"):
            position_from_dict({"id": "p6", "billingType": "barter"})

    @pytest.mark.parametrize(
        "raw,expected",
        [
            (True, True),
            (False, False),
            ("true", True),
            (" TRUE ", True),
            ("false", False),
            ("yes", False),
            (1, False),
            (None, False),
        ],
    )
    def test_expense_flag_parsing(self, raw, expected):
        pos = position_from_dict({"id": "p9", "billingType": "flatRate", "applyExpenseFee": raw})
        assert pos.apply_expense_fee is expected

    def test_snake_case_keys_accepted(self):
        pos = position_from_dict({"id": "p7", "billing_type": "flatRate", "flat_rate": 5})
        assert pos.flat_rate == Decimal("5")

    def test_to_dict_inverse(self):
        original = ObjectValuePosition(
            id="p8",
            activity="Einkommensteuererklärung",
            object_value=Decimal("35000"),
            tenth_rate=TenthRate(6, 10),
            fee_table=FeeTableId.A,
            apply_expense_fee=True,
        )
        data = position_to_dict(original)
        assert data["billingType"] == "objectValue"
        assert data["feeTable"] == "A"
        assert position_from_dict(data) == original

    def test_parse_billing_type(self):
        assert parse_billing_type("flatRate") is BillingType.FLAT_RATE
        assert parse_billing_type("nope") is None


class TestDiscount:
    """Tests for Discount."""

    def test_coerces(self):
        discount = Discount(type="percentage", value="10")
        assert discount.type is DiscountType.PERCENTAGE
        assert discount.value == Decimal("10")

    def test_from_dict(self):
        assert discount_from_dict({"type": "fixed", "value": 25}) == Discount(DiscountType.FIXED, Decimal("25"))

    def test_from_dict_none(self):
        assert discount_from_dict(None) is None

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError):
            Discount(type="bogus", value=1)

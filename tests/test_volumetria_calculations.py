from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from app.shared.schemas.volumetria import (
    VolumetryProductData, ShelfData, PlanogramSlotData, StockReadingData,
    SupplyStatus, SupplyThresholds, RuptureType
)
from app.shared.services.volumetria_calculations import (
    calculate_max_facings,
    calculate_max_depth_units,
    calculate_max_layers,
    calculate_slot_capacity,
    calculate_slot_occupancy,
    classify_supply,
    analyze_slot_supply,
    is_total_rupture,
    is_functional_rupture,
    detect_rupture_type,
    calculate_rupture_rate,
    calculate_average_hourly_sales,
    calculate_rupture_duration,
    calculate_units_not_sold,
    calculate_revenue_lost,
    calculate_margin_lost,
    calculate_loss_metrics,
)


def make_product(**overrides):
    data = dict(
        product_id="P1", ean="789", description="Lata",
        width_cm=6.6, height_cm=12.2, depth_cm=6.6,
        stackable=True, max_vertical_layers=2, sale_price=4.5, margin_percent=20
    )
    data.update(overrides)
    return VolumetryProductData(**data)


def make_shelf(**overrides):
    data = dict(shelf_id="S1", usable_depth_cm=40, free_height_cm=30)
    data.update(overrides)
    return ShelfData(**data)


def make_slot(**overrides):
    data = dict(slot_id="SL1", slot_width_cm=40)
    data.update(overrides)
    return PlanogramSlotData(**data)


class TestSlotCapacity:
    def test_facings_floor(self):
        assert calculate_max_facings(40, 6.6) == 6
        assert calculate_max_facings(39.9, 10) == 3

    def test_facings_product_wider_than_slot(self):
        assert calculate_max_facings(5, 6.6) == 0

    def test_zero_product_dimension_gives_zero(self):
        assert calculate_max_facings(40, 0) == 0
        assert calculate_max_depth_units(40, 0) == 0

    def test_depth_units(self):
        assert calculate_max_depth_units(40, 10) == 4

    def test_not_stackable_is_single_layer(self):
        assert calculate_max_layers(100, 10, stackable=False) == 1
        assert calculate_max_layers(100, 10, stackable=False, max_vertical_layers=5) == 1

    def test_stackable_layers_capped(self):
        assert calculate_max_layers(30, 12.2, stackable=True) == 2
        assert calculate_max_layers(100, 10, stackable=True, max_vertical_layers=3) == 3
        assert calculate_max_layers(100, 10, stackable=True, max_vertical_layers=0) == 10

    def test_stackable_product_taller_than_shelf(self):
        assert calculate_max_layers(10, 12.2, stackable=True) == 0

    def test_capacity_is_product_of_dimensions(self):
        capacity = calculate_slot_capacity(make_product(), make_shelf(), make_slot())

        assert capacity.max_facings == 6
        assert capacity.max_depth_units == 6
        assert capacity.max_layers == 2
        assert capacity.total_capacity == 72

    def test_capacity_non_decreasing_with_slot_width(self):
        product, shelf = make_product(), make_shelf()
        capacities = [
            calculate_slot_capacity(product, shelf, make_slot(slot_width_cm=w)).total_capacity
            for w in (0, 5, 13.2, 20, 40, 80)
        ]
        assert capacities == sorted(capacities)
        assert all(c >= 0 for c in capacities)

    def test_capacity_non_decreasing_with_shelf_dimensions(self):
        product, slot = make_product(max_vertical_layers=None), make_slot()
        by_depth = [
            calculate_slot_capacity(product, make_shelf(usable_depth_cm=d), slot).total_capacity
            for d in (0, 6, 6.6, 20, 45)
        ]
        by_height = [
            calculate_slot_capacity(product, make_shelf(free_height_cm=h), slot).total_capacity
            for h in (0, 12.2, 24.4, 50, 100)
        ]

        assert by_depth == sorted(by_depth)
        assert by_height == sorted(by_height)


class TestSupplyClassification:
    def test_occupancy_with_zero_capacity(self):
        assert calculate_slot_occupancy(10, 0) == 0.0

    def test_occupancy_fraction(self):
        assert calculate_slot_occupancy(36, 72) == pytest.approx(0.5)

    @pytest.mark.parametrize("occupancy,expected", [
        (1.2, SupplyStatus.BOM),
        (0.70, SupplyStatus.BOM),
        (0.69, SupplyStatus.REGULAR),
        (0.40, SupplyStatus.REGULAR),
        (0.39, SupplyStatus.RUIM),
        (0.0, SupplyStatus.RUIM),
    ])
    def test_default_bands(self, occupancy, expected):
        assert classify_supply(occupancy) == expected

    def test_custom_thresholds(self):
        thresholds = SupplyThresholds(good_min=0.9, regular_min=0.5, critical_max=0.2)

        assert classify_supply(0.8, thresholds) == SupplyStatus.REGULAR
        assert classify_supply(0.45, thresholds) == SupplyStatus.RUIM

    def test_thresholds_must_be_ordered(self):
        with pytest.raises(ValidationError):
            SupplyThresholds(good_min=0.3, regular_min=0.4, critical_max=0.1)
        with pytest.raises(ValidationError):
            SupplyThresholds(good_min=0.7, regular_min=0.4, critical_max=0.5)

    def test_analyze_slot_supply(self):
        read_at = datetime(2024, 3, 10, 9, 0)
        reading = StockReadingData(
            store_id="L1", slot_id="SL1", product_id="P1", current_quantity=18, read_at=read_at
        )

        status = analyze_slot_supply(reading, 72)

        assert status.slot_id == "SL1"
        assert status.total_capacity == 72
        assert status.occupancy == pytest.approx(0.25)
        assert status.supply_status == SupplyStatus.RUIM
        assert status.read_at == read_at


class TestRuptureDetection:
    def test_total_rupture(self):
        assert is_total_rupture(0)
        assert not is_total_rupture(1)
        assert detect_rupture_type(0, 72) == RuptureType.TOTAL

    def test_total_rupture_without_known_capacity(self):
        assert detect_rupture_type(0, 0) == RuptureType.TOTAL
        assert detect_rupture_type(3, 0) is None

    def test_functional_rupture_bounds(self):
        assert not is_functional_rupture(0.0)
        assert is_functional_rupture(0.05)
        assert not is_functional_rupture(0.10)

    def test_functional_rupture(self):
        assert detect_rupture_type(5, 72) == RuptureType.FUNCIONAL
        assert detect_rupture_type(8, 72) is None

    def test_functional_rupture_custom_critical(self):
        assert detect_rupture_type(10, 72, critical_max=0.2) == RuptureType.FUNCIONAL
        assert detect_rupture_type(10, 72, critical_max=0.1) is None

    def test_rupture_rate(self):
        assert calculate_rupture_rate(0, 0) == 0.0
        assert calculate_rupture_rate(3, 12) == pytest.approx(0.25)


class TestLossMetrics:
    def test_average_hourly_sales(self):
        assert calculate_average_hourly_sales(140, 28) == pytest.approx(5.0)
        assert calculate_average_hourly_sales(140, 0) == 0.0

    def test_rupture_duration_hours(self):
        start = datetime(2024, 3, 10, 8, 0)
        assert calculate_rupture_duration(start, start + timedelta(hours=6, minutes=30)) == pytest.approx(6.5)

    def test_loss_chain(self):
        units = calculate_units_not_sold(2.0, 6)
        revenue = calculate_revenue_lost(units, 4.5)

        assert units == pytest.approx(12)
        assert revenue == pytest.approx(54)
        assert calculate_margin_lost(revenue, 20) == pytest.approx(10.8)

    def test_loss_metrics(self):
        start = datetime(2024, 3, 10, 8, 0)
        loss = calculate_loss_metrics(start, start + timedelta(hours=4), 2.5, 10.0, 30)

        assert loss.outage_hours == pytest.approx(4)
        assert loss.units_not_sold == pytest.approx(10)
        assert loss.revenue_lost == pytest.approx(100)
        assert loss.margin_lost == pytest.approx(30)

    def test_loss_metrics_without_margin(self):
        start = datetime(2024, 3, 10, 8, 0)
        loss = calculate_loss_metrics(start, start + timedelta(hours=4), 2.5, 10.0)

        assert loss.margin_lost is None

    def test_loss_is_linear_in_duration(self):
        start = datetime(2024, 3, 10, 8, 0)
        short = calculate_loss_metrics(start, start + timedelta(hours=2), 3, 5.0, 10)
        long = calculate_loss_metrics(start, start + timedelta(hours=6), 3, 5.0, 10)

        assert long.revenue_lost == pytest.approx(short.revenue_lost * 3)
        assert long.margin_lost == pytest.approx(short.margin_lost * 3)

    def test_loss_is_linear_in_price(self):
        start = datetime(2024, 3, 10, 8, 0)
        end = start + timedelta(hours=5)
        cheap = calculate_loss_metrics(start, end, 2, 4.0, 25)
        expensive = calculate_loss_metrics(start, end, 2, 12.0, 25)

        assert expensive.units_not_sold == pytest.approx(cheap.units_not_sold)
        assert expensive.revenue_lost == pytest.approx(cheap.revenue_lost * 3)
        assert expensive.margin_lost == pytest.approx(cheap.margin_lost * 3)

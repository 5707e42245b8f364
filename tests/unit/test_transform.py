"""Unit tests for the overcommit resource transform."""

import pytest

from overcommit_webhook.constants import MIB
from overcommit_webhook.overcommit.quantity import (
    BINARY_SI,
    DECIMAL_SI,
    Quantity,
    ResourceKind,
    format_quantity,
    parse_quantity,
)
from overcommit_webhook.overcommit.transform import (
    OvercommitPolicy,
    adjust,
    adjust_cpu_milli,
    adjust_memory_bytes,
)

CPU = ResourceKind.CPU
MEMORY = ResourceKind.MEMORY


class TestCpuAdjustment:
    """Tests for adjust_cpu_milli."""

    @pytest.mark.parametrize(
        "original,ratio,expected",
        [
            (1000, 2, 500),
            (2000, 1.5, 1333),
            (1000, 20, 100),  # floored at 100m
            (150, 10, 100),
            (5, 2, 2),
            (50, 100, 5),  # keeps a tenth of small requests
            (1, 2, 1),  # never below 1m
            (9, 50, 1),
        ],
    )
    def test_scenarios(self, original, ratio, expected):
        assert adjust_cpu_milli(original, ratio) == expected

    @pytest.mark.parametrize("ratio", [1.1, 1.5, 2, 3.7, 10, 100, 1000])
    def test_floors_hold_for_any_ratio(self, ratio):
        for original in [1, 3, 10, 99, 100, 101, 250, 1000, 4000, 64000]:
            result = adjust_cpu_milli(original, ratio)
            assert 0 < result <= original
            assert result >= original // 10
            if original >= 100:
                assert result >= 100


class TestMemoryAdjustment:
    """Tests for adjust_memory_bytes."""

    @pytest.mark.parametrize(
        "original,ratio,expected",
        [
            (100 * MIB, 2, 50 * MIB),
            (100 * MIB, 10, 10 * MIB),
            (40 * MIB, 10, 4 * MIB),  # boundary: a tenth equals the 4Mi floor
            (100 * MIB, 100, 10 * MIB),  # keeps a tenth of the original
            (8 * MIB, 4, 4 * MIB),  # floored at 4Mi
            (2 * MIB, 4, 1 * MIB),  # small requests floored at 1Mi
            (512, 2, 1 * MIB),
        ],
    )
    def test_scenarios(self, original, ratio, expected):
        assert adjust_memory_bytes(original, ratio) == expected

    @pytest.mark.parametrize("ratio", [1.1, 1.5, 2, 3.7, 10, 100, 1000])
    def test_floors_hold_for_any_ratio(self, ratio):
        for original in [4 * MIB, 5 * MIB, 40 * MIB, 128 * MIB, 1024 * MIB, 64 * 1024 * MIB]:
            result = adjust_memory_bytes(original, ratio)
            assert result <= original
            assert result >= 4 * MIB
            assert result >= original // 10

    def test_small_requests_never_below_one_mib(self):
        for original in [1, 1000, MIB, 3 * MIB]:
            assert adjust_memory_bytes(original, 1000) >= MIB

    def test_sub_mib_request_is_raised_only_when_shrinking(self):
        assert adjust(Quantity(512), 2, MEMORY).value == MIB
        assert adjust(Quantity(512), 1, MEMORY).value == 512


class TestAdjust:
    """Tests for the adjust dispatcher and its ratio handling."""

    def test_missing_request_is_not_written(self):
        assert adjust(None, 2, CPU) is None

    def test_zero_request_is_not_written(self):
        assert adjust(Quantity(0), 2, MEMORY) is None

    @pytest.mark.parametrize("ratio", [0, -1, -0.5])
    def test_non_positive_ratio_disables(self, ratio):
        assert adjust(Quantity(1000), ratio, CPU) is None

    @pytest.mark.parametrize("ratio", [0.5, 1, 1.0])
    def test_ratio_up_to_one_passes_through(self, ratio):
        original = Quantity(128 * MIB, BINARY_SI)
        assert adjust(original, ratio, MEMORY) == original

    def test_format_is_kept(self):
        adjusted = adjust(Quantity(100 * MIB, BINARY_SI), 10, MEMORY)
        assert adjusted == Quantity(10 * MIB, BINARY_SI)

    def test_end_to_end_rendering(self):
        """Parse, shrink and render a few typical requests."""
        cases = [
            ("1000m", CPU, 2, "500m"),
            ("1", CPU, 20, "100m"),
            ("5m", CPU, 2, "2m"),
            ("100Mi", MEMORY, 10, "10Mi"),
            ("40Mi", MEMORY, 10, "4Mi"),
            ("128M", MEMORY, 2, "64M"),
        ]
        for raw, kind, ratio, expected in cases:
            adjusted = adjust(parse_quantity(raw, kind), ratio, kind)
            assert format_quantity(adjusted, kind) == expected, raw


class TestOvercommitPolicy:
    """Tests for OvercommitPolicy."""

    def test_ratio_for(self):
        policy = OvercommitPolicy(cpu_ratio=2.0, memory_ratio=1.5)
        assert policy.ratio_for(CPU) == 2.0
        assert policy.ratio_for(MEMORY) == 1.5

    def test_transform_uses_per_resource_ratio(self):
        policy = OvercommitPolicy(cpu_ratio=4.0, memory_ratio=2.0)
        assert policy.transform(Quantity(1000, DECIMAL_SI), CPU).value == 250
        assert policy.transform(Quantity(100 * MIB, BINARY_SI), MEMORY).value == 50 * MIB

    def test_policy_is_immutable(self):
        policy = OvercommitPolicy(cpu_ratio=2.0, memory_ratio=2.0)
        with pytest.raises(AttributeError):
            policy.cpu_ratio = 3.0

"""Tests for dcsclient.types."""

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from dcsclient.types import DCSValue, EntityKind, ValueSeries, ValueType, to_unix_seconds


class TestValueType:
    def test_wire_codes(self):
        assert [int(t) for t in ValueType] == [1, 2, 3, 4, 5]

    def test_sizes_match_struct_formats(self):
        import struct

        for t in ValueType:
            assert struct.calcsize(">" + t.struct_format) == t.size

    def test_entity_kind_codes(self):
        assert EntityKind.ALIAS == 0
        assert EntityKind.DP_NAME == 1


class TestDCSValue:
    def test_defaults_to_float(self):
        assert DCSValue(1, 2.0).value_type is ValueType.FLOAT

    def test_time(self):
        assert DCSValue(1190000000, 1.0).time == datetime(2007, 9, 17, 3, 33, 20, tzinfo=timezone.utc)

    def test_frozen(self):
        v = DCSValue(1, 2.0)
        with pytest.raises(AttributeError):
            v.value = 3.0

    def test_equality(self):
        assert DCSValue(1, 2.0) == DCSValue(1, 2.0, ValueType.FLOAT)
        assert DCSValue(1, 2.0) != DCSValue(1, 2.0, ValueType.INT)

    def test_repr(self):
        assert repr(DCSValue(5, True, ValueType.BOOL)) == "DCSValue(5, True, BOOL)"


class TestToUnixSeconds:
    def test_int(self):
        assert to_unix_seconds(1190000000) == 1190000000

    def test_float_truncated(self):
        assert to_unix_seconds(1190000000.9) == 1190000000

    def test_naive_datetime_is_utc(self):
        assert to_unix_seconds(datetime(2007, 9, 17, 3, 33, 20)) == 1190000000

    def test_aware_datetime(self):
        tz = timezone(timedelta(hours=2))
        assert to_unix_seconds(datetime(2007, 9, 17, 5, 33, 20, tzinfo=tz)) == 1190000000

    @pytest.mark.parametrize("bad", ["1190000000", None, True])
    def test_rejects_other_types(self, bad):
        with pytest.raises(TypeError):
            to_unix_seconds(bad)


class TestValueSeries:
    def test_from_values(self, sample_values):
        series = ValueSeries.from_values(sample_values)
        assert len(series) == 3
        assert series.times.dtype == np.int64
        assert series.values.dtype == np.float64
        np.testing.assert_array_equal(series.times, [1190000000, 1190000060, 1190000120])
        np.testing.assert_array_equal(series.values, [1.5, 2.5, 3.25])

    def test_bools_become_floats(self):
        series = ValueSeries.from_values([DCSValue(1, True, ValueType.BOOL), DCSValue(2, False, ValueType.BOOL)])
        np.testing.assert_array_equal(series.values, [1.0, 0.0])

    def test_empty(self):
        series = ValueSeries.from_values([])
        assert len(series) == 0
        assert repr(series) == "ValueSeries(empty)"

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="length"):
            ValueSeries(np.array([1, 2]), np.array([1.0]))

    def test_repr(self, sample_values):
        assert repr(ValueSeries.from_values(sample_values)) == "ValueSeries(3 values, 1190000000..1190000120)"

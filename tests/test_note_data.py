"""Tests for the boundary value types exchanged with the song model."""

import pytest

from vocaroll.core.note_data import CurveData, CurveType, EnvelopeData, MutateResponse


class TestCurveType:
    def test_codes_match_utau_shapes(self):
        assert CurveType.S.value == ""
        assert CurveType.J.value == "j"
        assert CurveType.R.value == "r"
        assert CurveType.LINEAR.value == "s"

    def test_from_code_is_case_insensitive(self):
        assert CurveType.from_code("J") is CurveType.J
        assert CurveType.from_code(" r ") is CurveType.R
        assert CurveType.from_code("") is CurveType.S

    def test_unknown_code_raises(self):
        with pytest.raises(ValueError):
            CurveType.from_code("x")


class TestEnvelopeData:
    def test_values_coerced_to_float_tuples(self):
        env = EnvelopeData([0, 5, 35, 0, 0], [0, 100, 100, 0, 100])
        assert env.widths == (0.0, 5.0, 35.0, 0.0, 0.0)
        assert isinstance(env.heights, tuple)

    @pytest.mark.parametrize("widths,heights", [
        ((0, 5, 35, 0), (0, 100, 100, 0, 100)),
        ((0, 5, 35, 0, 0), (0, 100, 100, 0, 100, 0)),
    ])
    def test_wrong_arity_rejected(self, widths, heights):
        with pytest.raises(ValueError):
            EnvelopeData(widths, heights)

    def test_height_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            EnvelopeData((0, 5, 35, 0, 0), (0, 100, 201, 0, 100))

    def test_with_timing_replaces_overrides_only(self):
        env = EnvelopeData.default().with_timing(30.0, 510.0)
        assert env.preutterance == 30.0
        assert env.length == 510.0
        assert env.widths == EnvelopeData.default().widths

    def test_default_has_no_timing(self):
        env = EnvelopeData.default()
        assert env.preutterance is None
        assert env.length is None

    def test_is_immutable(self):
        env = EnvelopeData.default()
        with pytest.raises(AttributeError):
            env.length = 10.0


class TestCurveData:
    def test_default_single_s_segment(self):
        data = CurveData.default()
        assert data.start_offset_ms == -25.0
        assert data.widths == (50.0,)
        assert data.heights == ()
        assert data.shapes == (CurveType.S,)

    def test_shape_codes_parsed(self):
        data = CurveData(-10, (20, 30), (5,), ("", "j"))
        assert data.shapes == (CurveType.S, CurveType.J)
        assert data.segment_count == 2
        assert data.total_width == 50.0

    @pytest.mark.parametrize("widths,heights,shapes", [
        ((20,), (5,), (CurveType.S,)),                      # too many heights
        ((20, 30), (), (CurveType.S, CurveType.J)),         # too few heights
        ((20,), (), (CurveType.S, CurveType.J)),            # too few widths
        ((), (), ()),                                       # no segments
    ])
    def test_length_mismatch_rejected(self, widths, heights, shapes):
        with pytest.raises(ValueError):
            CurveData(0, widths, heights, shapes)

    def test_negative_width_rejected(self):
        with pytest.raises(ValueError):
            CurveData(0, (-1,), (), (CurveType.S,))

    def test_equal_data_compares_equal(self):
        assert CurveData(-25, (50,), (), ("",)) == CurveData.default()


class TestMutateResponse:
    def test_empty_by_default(self):
        r = MutateResponse()
        assert r.notes == ()
        assert r.prev is None
        assert r.next is None
        assert r.removed == ()

"""Tests for the editable portamento CurveModel."""

import pytest

from vocaroll.core.curve import CurveModel
from vocaroll.core.errors import ControlPointLimitExceeded, InvalidMerge
from vocaroll.core.events import ChangeKind
from vocaroll.core.note_data import CurveData, CurveType
from vocaroll.core.scaler import Scaler


@pytest.fixture
def events():
    return []


@pytest.fixture
def curve(events):
    """Default portamento on a D4 note at 1000 ms coming from C4."""
    return CurveModel.from_data(1000, 36, 38, CurveData.default(), Scaler(), sink=events.append)


def xs(curve):
    return [x for x, _ in curve.points]


class TestFromData:
    def test_endpoints_sit_on_pitches(self, curve):
        s = Scaler()
        (x0, y0), (x1, y1) = curve.points
        assert x0 == pytest.approx(s.scale_pos(975))
        assert x1 == pytest.approx(s.scale_pos(1025))
        assert y0 == s.row_to_y(36)
        assert y1 == s.row_to_y(38)

    def test_single_segment(self, curve):
        assert curve.segment_count == 1
        assert curve.point_count == 2
        assert curve.shapes == [CurveType.S]

    def test_interior_heights_relative_to_end(self):
        data = CurveData(-30, (20, 40), (-10,), ("", "j"))
        c = CurveModel.from_data(1000, 36, 38, data, Scaler())
        # -10 tenths = one semitone below the target pitch
        assert c.points[1][1] == pytest.approx(Scaler().row_to_y(37))

    def test_decreasing_points_rejected(self):
        with pytest.raises(ValueError):
            CurveModel(0, [(10, 0), (5, 0)], [CurveType.S])

    def test_type_count_must_match(self):
        with pytest.raises(ValueError):
            CurveModel(0, [(0, 0), (5, 0)], [CurveType.S, CurveType.J])


class TestSplit:
    def test_split_inserts_midpoint(self, curve, events):
        (x0, y0), (x1, y1) = curve.points
        new_index = curve.split_at(0)
        assert new_index == 1
        assert curve.point_count == 3
        assert curve.points[1] == pytest.approx(((x0 + x1) / 2, (y0 + y1) / 2))
        assert len(events) == 1
        assert events[0].kind is ChangeKind.CURVE_CHANGED
        assert events[0].position == 1000

    def test_both_halves_inherit_type(self, curve):
        curve.retype(0, CurveType.J)
        curve.split_at(0)
        assert curve.shapes == [CurveType.J, CurveType.J]

    def test_split_event_carries_before_and_after(self, curve, events):
        before = curve.to_data()
        curve.split_at(0)
        assert events[0].before == before
        assert events[0].after == curve.to_data()
        assert events[0].after.segment_count == 2

    def test_split_respects_point_limit(self, events):
        c = CurveModel.from_data(0, 36, 36, CurveData.default(), sink=events.append, max_points=3)
        assert c.can_split()
        c.split_at(0)
        assert not c.can_split()
        with pytest.raises(ControlPointLimitExceeded):
            c.split_at(1)
        assert c.point_count == 3
        assert len(events) == 1

    def test_split_index_out_of_range(self, curve):
        with pytest.raises(IndexError):
            curve.split_at(1)

    def test_x_stays_strictly_increasing(self, curve):
        for i in range(6):
            curve.split_at(i % curve.segment_count)
        values = xs(curve)
        assert all(a < b for a, b in zip(values, values[1:]))


class TestMerge:
    def test_merge_undoes_split(self, curve):
        """merge(split(c, i), i + 1) == c, compared as canonical data."""
        original = curve.to_data()
        new_index = curve.split_at(0)
        curve.merge_at(new_index)
        assert curve.to_data() == original

    def test_merge_keeps_first_segment_type(self, curve):
        curve.split_at(0)
        curve.retype(1, CurveType.R)
        curve.merge_at(1)
        assert curve.shapes == [CurveType.S]

    @pytest.mark.parametrize("index", [0, 1])
    def test_merge_on_boundary_rejected(self, curve, events, index):
        before = curve.points
        with pytest.raises(InvalidMerge):
            curve.merge_at(index)
        assert curve.points == before
        assert events == []

    def test_merge_index_out_of_range(self, curve):
        with pytest.raises(IndexError):
            curve.merge_at(5)

    def test_can_merge(self, curve):
        curve.split_at(0)
        assert curve.can_merge(1)
        assert not curve.can_merge(0)
        assert not curve.can_merge(2)


class TestRetype:
    def test_retype_emits(self, curve, events):
        curve.retype(0, CurveType.LINEAR)
        assert curve.shapes == [CurveType.LINEAR]
        assert events[-1].after.shapes == (CurveType.LINEAR,)

    def test_retype_to_same_type_is_silent(self, curve, events):
        curve.retype(0, CurveType.S)
        assert events == []

    def test_retype_out_of_range(self, curve):
        with pytest.raises(IndexError):
            curve.retype(3, CurveType.J)

    def test_segment_for_point(self, curve):
        curve.split_at(0)
        assert curve.segment_for_point(0) == 0
        assert curve.segment_for_point(1) == 1
        assert curve.segment_for_point(2) == 1


class TestDrag:
    def test_interior_point_moves_freely(self, curve, events):
        curve.split_at(0)
        events.clear()
        (x0, _), _, _ = curve.points
        state = curve.begin_drag(1)
        assert curve.drag_to(state, x0 + 1, 500)
        assert curve.points[1] == (x0 + 1, 500)
        event = curve.end_drag(state)
        assert event is not None
        assert event.before == state.start_data
        assert len(events) == 1

    def test_x_cannot_pass_neighbours(self, curve):
        curve.split_at(0)
        before = curve.points[1]
        _, _, (x2, _) = curve.points
        state = curve.begin_drag(1)
        assert not curve.drag_to(state, x2 + 1, before[1])
        assert curve.points[1] == before

    def test_endpoints_keep_their_pitch(self, curve):
        x0, y0 = curve.points[0]
        state = curve.begin_drag(0)
        assert curve.drag_to(state, x0 - 2, y0 - 100)
        assert curve.points[0] == (x0 - 2, y0)

    def test_y_must_stay_inside_grid(self, curve):
        curve.split_at(0)
        before = curve.points[1]
        state = curve.begin_drag(1)
        assert not curve.drag_to(state, before[0], -1)
        assert not curve.drag_to(state, before[0], Scaler().grid_height + 1)

    def test_max_x_bounds_last_point(self):
        c = CurveModel(0, [(10, 100), (20, 100)], [CurveType.S], max_x=25)
        state = c.begin_drag(1)
        assert not c.drag_to(state, 26, 100)
        assert c.drag_to(state, 24, 100)

    def test_drag_without_movement_emits_nothing(self, curve, events):
        state = curve.begin_drag(1)
        x, y = curve.points[1]
        curve.drag_to(state, x, y)
        assert curve.end_drag(state) is None
        assert events == []


class TestCanonicalData:
    def test_default_round_trip(self, curve):
        assert curve.to_data() == CurveData.default()

    @pytest.mark.parametrize("scaler", [Scaler(), Scaler(0.37, 1.3), Scaler(1.0, 0.5)])
    def test_round_trip_law(self, scaler):
        """to_data(from_data(d)) == d for canonical data."""
        data = CurveData(-30.5, (20.0, 40.25, 12.0), (-12.5, 7.0), ("", "j", "r"))
        c = CurveModel.from_data(2000, 40, 42, data, scaler)
        assert c.to_data() == data

    def test_canonicalisation_is_idempotent(self, curve):
        curve.split_at(0)
        curve.split_at(1)
        state = curve.begin_drag(2)
        x, y = curve.points[2]
        curve.drag_to(state, x + 0.123456, y - 7.891)
        once = curve.to_data()
        rebuilt = CurveModel.from_data(1000, 36, 38, once, Scaler())
        assert rebuilt.to_data() == once

    def test_heights_in_tenths_of_semitone(self):
        data = CurveData(-25, (25, 25), (0,), ("", ""))
        c = CurveModel.from_data(1000, 36, 38, data, Scaler())
        state = c.begin_drag(1)
        c.drag_to(state, c.points[1][0], Scaler().row_to_y(39))
        assert c.to_data().heights == (10.0,)

    def test_to_data_relative_to_other_note_start(self, curve):
        assert curve.to_data(note_start_ms=900).start_offset_ms == 75.0

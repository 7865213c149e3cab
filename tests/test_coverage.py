import logging

import pytest

from bodystitch.coverage import find_gaps, report_coverage, stitching_ranges


class TestStitchingRanges:
    def test_ranges_in_input_order(self, make_volume, ramps):
        volumes = [
            make_volume(ramps[0], origin=(0.0, 0.0, 20.0)),
            make_volume(ramps[0], origin=(0.0, 0.0, -5.0), spacing=(1.0, 1.0, 2.0)),
        ]
        ranges = stitching_ranges(volumes)

        assert [r[0] for r in ranges] == [0, 1]
        assert ranges[0][1:] == pytest.approx((20.0, 30.0))
        assert ranges[1][1:] == pytest.approx((-5.0, 15.0))


class TestFindGaps:
    def test_gap_overlap_adjacent(self):
        ranges = [
            (0, 100.0, 200.0),
            (1, -50.0, 40.0),
            (2, 40.0, 120.0),
        ]
        relations = find_gaps(ranges)

        assert [r[:3] for r in relations] == [('adjacent', 1, 2), ('overlap', 2, 0)]
        assert relations[1][3] == pytest.approx(20.0)

    def test_gap_size(self):
        relations = find_gaps([(0, 0.0, 10.0), (1, 15.0, 25.0)])
        assert relations == [('gap', 0, 1, pytest.approx(5.0))]

    def test_single_range(self):
        assert find_gaps([(0, 0.0, 10.0)]) == []


class TestReportCoverage:
    def test_warns_on_gap(self, make_volume, ramps, caplog):
        volumes = [
            make_volume(ramps[0], origin=(0.0, 0.0, 0.0)),
            make_volume(ramps[0], origin=(0.0, 0.0, 15.0)),
        ]
        with caplog.at_level(logging.INFO, logger="bodystitch.coverage"):
            relations = report_coverage(volumes)

        assert relations[0][0] == 'gap'
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "GAP" in warnings[0].getMessage()

    def test_overlap_is_info(self, two_volumes, caplog):
        with caplog.at_level(logging.INFO, logger="bodystitch.coverage"):
            relations = report_coverage(list(two_volumes))

        assert relations == [('overlap', 1, 0, pytest.approx(6.0))]
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

import numpy as np
import pytest

from pyffs.errors import ConfigInconsistency
from pyffs.ffs.ffs_interface import Interface, Ladder


class TestInterface:
    @pytest.fixture
    def interface(self):
        return Interface(0.0, 1.0, ntrials=4, pprune=0.25, nbins=10)

    def test_defaults(self, interface):
        assert interface.nstates == 4, "Ensemble capacity should default to the number of trials"
        assert interface.histogram.shape == (10,)
        assert interface.survival_boost() == pytest.approx(4.0 / 3.0)

    @pytest.mark.parametrize("kwargs", [
        {"lambda_min": 1.0, "lambda_max": 1.0},
        {"lambda_min": 0.0, "lambda_max": 1.0, "ntrials": 0},
        {"lambda_min": 0.0, "lambda_max": 1.0, "pprune": 1.0},
        {"lambda_min": 0.0, "lambda_max": 1.0, "pprune": -0.1},
        {"lambda_min": 0.0, "lambda_max": 1.0, "nbins": 0},
        {"lambda_min": 0.0, "lambda_max": 1.0, "nstates": 2, "nstates_min": 3},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigInconsistency):
            Interface(**kwargs)

    def test_bin_of(self, interface):
        assert interface.bin_of(-0.01) == -1, "Below the interface there is no bin"
        assert interface.bin_of(0.0) == 0
        assert interface.bin_of(0.55) == 5
        assert interface.bin_of(1.0) == 9, "lambda_max belongs to the last bin"
        assert interface.bin_of(7.0) == 9

    def test_log_histogram_is_cumulative(self, interface):
        max_bin = interface.log_histogram(0.35, 1.0, -1)
        assert max_bin == 3
        np.testing.assert_array_equal(interface.histogram, [1, 1, 1, 1, 0, 0, 0, 0, 0, 0])
        # going back down adds nothing
        assert interface.log_histogram(0.1, 1.0, max_bin) == 3
        np.testing.assert_array_equal(interface.histogram, [1, 1, 1, 1, 0, 0, 0, 0, 0, 0])
        # going further only fills the new bins
        assert interface.log_histogram(0.62, 0.5, max_bin) == 6
        np.testing.assert_array_almost_equal(interface.histogram, [1, 1, 1, 1, 0.5, 0.5, 0.5, 0, 0, 0])

    def test_log_histogram_below(self, interface):
        assert interface.log_histogram(-3.0, 1.0, -1) == -1
        assert interface.histogram.sum() == 0.0

    def test_reset(self, interface):
        interface.log_histogram(0.5, 1.0, -1)
        interface.forward_weight = 3.0
        interface.npruned = 2
        interface.reset()
        assert interface.histogram.sum() == 0.0
        assert interface.forward_weight == 0.0
        assert interface.npruned == 0


class TestLadder:
    def test_contiguous(self):
        ladder = Ladder([Interface(0.0, 1.0), Interface(1.0, 2.5), Interface(2.5, 3.0)])
        assert ladder.lambda_a == 0.0
        assert ladder.lambda_b == 3.0
        assert ladder.boundaries() == [0.0, 1.0, 2.5, 3.0]
        assert len(ladder) == 3

    def test_within_epsilon(self):
        ladder = Ladder([Interface(0.0, 1.0), Interface(1.0 + 1e-10, 2.0)], epsilon=1e-8)
        assert len(ladder) == 2

    def test_gap_rejected(self):
        with pytest.raises(ConfigInconsistency):
            Ladder([Interface(0.0, 1.0), Interface(1.1, 2.0)])

    def test_overlap_rejected(self):
        with pytest.raises(ConfigInconsistency):
            Ladder([Interface(0.0, 1.0), Interface(0.9, 2.0)])

    def test_gap_tolerance(self):
        with pytest.raises(ConfigInconsistency):
            Ladder([Interface(0.0, 1.0), Interface(1.001, 2.0)], epsilon=1e-4)
        assert len(Ladder([Interface(0.0, 1.0), Interface(1.001, 2.0)], epsilon=1e-2)) == 2

    def test_empty_rejected(self):
        with pytest.raises(ConfigInconsistency):
            Ladder([])

    def test_lower_bound(self):
        ladder = Ladder([Interface(0.0, 1.0), Interface(1.0, 2.0), Interface(2.0, 3.0)])
        assert ladder.lower_bound(0) == 0.0, "The first interface falls back to lambda_a"
        assert ladder.lower_bound(1) == 0.0
        assert ladder.lower_bound(2) == 1.0

    def test_reset_clears_accumulators(self):
        ladder = Ladder([Interface(0.0, 1.0)])
        ladder.ncross = 4
        ladder.time = 2.0
        ladder.success_weight = 1.5
        ladder[0].sum_weight = 3.0
        ladder.reset()
        assert (ladder.ncross, ladder.time, ladder.success_weight, ladder[0].sum_weight) == (0, 0.0, 0.0, 0.0)

    def test_describe(self):
        ladder = Ladder([Interface(0.0, 1.0, 5), Interface(1.0, 2.0, 7)])
        df = ladder.describe()
        assert list(df["ntrials"]) == [5, 7]
        assert list(df.index) == [0, 1]

import pytest

from conftest import make_flux, make_ladder
from pyffs.ffs.ffs_rosenbluth import RosenbluthSampler


def rosenbluth(model, ladder, init_ntrials, seed=0, nstepmax=10000):
    return RosenbluthSampler(model, ladder, make_flux(model, ladder, init_ntrials), seed=seed, nstepmax=nstepmax)


class TestRosenbluthSampler:
    def test_counter(self, counter_model, counter_ladder):
        sampler = rosenbluth(counter_model, counter_ladder, 4)
        result = sampler.run()
        assert result.probability == pytest.approx(1.0)
        assert sampler.success_from == pytest.approx([1.0] * 4)
        # all but one success is dropped at every interface
        assert [interface.ndropped for interface in counter_ladder] == [8, 4, 12]
        assert [interface.nstart for interface in counter_ladder] == [12, 8, 16]

    def test_timeout_pruned(self, counter_model, wide_ladder):
        sampler = rosenbluth(counter_model, wide_ladder, 3, nstepmax=2)
        result = sampler.run()
        assert result.probability == pytest.approx(1.0)
        assert sampler.success_from == pytest.approx([1.0] * 3)
        assert wide_ladder[2].ntimeout == 3

    def test_gamblers_ruin(self, walk_model, walk_ladder):
        result = rosenbluth(walk_model, walk_ladder, 3000, seed=6).run()
        assert result.probability == pytest.approx(0.2, abs=0.035)
        assert result.probability_error > 0.0

    def test_choose_by_weight(self, counter_model, counter_ladder):
        sampler = rosenbluth(counter_model, counter_ladder, 1)
        sampler.run()
        picks = [sampler.choose([("a", 0.0), ("b", 1.0)]) for _ in range(50)]
        assert set(picks) == {1}, "A success without weight was followed"

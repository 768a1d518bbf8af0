import pytest

from conftest import CounterModel, CounterState, make_flux
from pyffs.errors import ConfigInconsistency, FFSError
from pyffs.ffs.ffs_flux import FluxCollector, NEQ_FAILSAFE
from pyffs.rng import LaggedFibonacciRNG


class StuckInBModel(CounterModel):
    def initialize(self):
        return CounterState(100)


class TestFluxCollector:
    def test_counter_flux(self, counter_model, counter_ladder):
        flux = make_flux(counter_model, counter_ladder, 4)
        points = list(flux.starting_points(7))
        assert [n for n, _ in points] == [0, 1, 2, 3]
        assert all(state.n == 3 for _, state in points), "Starting points must sit just past lambda_a"
        assert counter_ladder.ncross == 4
        assert counter_ladder.time == 12.0
        assert flux.flux() == pytest.approx(1.0 / 3.0)

    def test_starting_points_are_copies(self, counter_model, counter_ladder):
        flux = make_flux(counter_model, counter_ladder, 2)
        points = [state for _, state in flux.starting_points(0)]
        points[0].n = 50
        assert points[1].n == 3

    def test_skip_and_overshoot(self, counter_model, counter_ladder):
        """
        with init_nskip 2 the first crossing is rejected; the counter then overshoots into B,
        is re-equilibrated and crosses again. The time spent on the way to B still counts.
        """
        flux = make_flux(counter_model, counter_ladder, 3, init_nskip=2)
        points = list(flux.starting_points(0))
        assert len(points) == 3
        assert counter_ladder.ncross == 6
        assert counter_ladder.time == 27.0
        assert counter_ladder.neq == 6, "One equilibration per point plus one per overshoot"
        assert flux.flux() == pytest.approx(2.0 / 9.0)

    def test_dependent_points(self, counter_model, counter_ladder):
        flux = make_flux(counter_model, counter_ladder, 3)
        flux.init_independent = False
        points = list(flux.starting_points(0))
        assert len(points) == 3
        assert counter_ladder.ncross == 3
        assert counter_ladder.time == 15.0
        assert counter_ladder.neq == 3

    def test_timeouts(self, counter_ladder):
        flux = FluxCollector(CounterModel(ceiling=2), counter_ladder, 3, init_nstepmax=20)
        assert list(flux.starting_points(0)) == []
        assert counter_ladder.init_ntimeout == 3
        assert counter_ladder.ncross == 0
        assert counter_ladder.time == 60.0
        assert flux.flux() == 0.0

    def test_no_time(self, counter_model, counter_ladder):
        flux = make_flux(counter_model, counter_ladder, 1)
        assert flux.flux() != flux.flux(), "Flux without any elapsed time should be NaN"

    def test_acceptance_probability(self, walk_model, walk_ladder):
        flux = make_flux(walk_model, walk_ladder, 200, init_prob_accept=0.5)
        points = list(flux.starting_points(3))
        assert len(points) == 200
        assert walk_ladder.ncross > 250, "Rejected crossings still count toward the flux"

    def test_equilibration_failsafe(self, counter_ladder):
        flux = make_flux(StuckInBModel(), counter_ladder, 1)
        with pytest.raises(FFSError):
            flux.equilibrate(LaggedFibonacciRNG())
        assert counter_ladder.neq == NEQ_FAILSAFE

    @pytest.mark.parametrize("kwargs", [
        {"init_ntrials": 0},
        {"init_ntrials": 1, "init_nskip": 0},
        {"init_ntrials": 1, "init_prob_accept": 1.5},
    ])
    def test_invalid(self, counter_model, counter_ladder, kwargs):
        with pytest.raises(ConfigInconsistency):
            FluxCollector(counter_model, counter_ladder, **kwargs)

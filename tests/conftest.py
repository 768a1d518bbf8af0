from dataclasses import dataclass, field

import pytest

from pyffs.ffs.ffs_flux import FluxCollector
from pyffs.ffs.ffs_interface import Interface, Ladder
from pyffs.model import SimulationModel


@dataclass
class CounterState:
    n: int = field(default=0)


class CounterModel(SimulationModel):
    """
    Deterministic: the order parameter goes up by one every step, optionally stopping at a ceiling
    """
    def __init__(self, ceiling=None):
        self.ceiling = ceiling
        self.released = 0

    def initialize(self):
        return CounterState(0)

    def step(self, state, rng):
        if self.ceiling is None or state.n < self.ceiling:
            state.n += 1
        return state

    def order_parameter(self, state):
        return float(state.n)

    def release(self, state):
        self.released += 1


@dataclass
class WalkState:
    x: int = field(default=0)


class RandomWalkModel(SimulationModel):
    """
    Symmetric random walk on the non-negative integers, reflected at zero
    """
    def initialize(self):
        return WalkState(0)

    def step(self, state, rng):
        state.x = abs(state.x + (1 if rng.random() < 0.5 else -1))
        return state

    def order_parameter(self, state):
        return float(state.x)

    def observables(self, state):
        return {"x": state.x}


def make_ladder(boundaries, ntrials, pprune=0.0, nbins=4, nstates=None, nstates_min=1):
    n = len(boundaries) - 1
    ntrials = ntrials if isinstance(ntrials, list) else [ntrials] * n
    pprune = pprune if isinstance(pprune, list) else [pprune] * n
    nstates = nstates if isinstance(nstates, list) else [nstates] * n
    return Ladder([Interface(boundaries[i], boundaries[i + 1], ntrials[i], pprune[i], nbins, nstates[i], nstates_min)
                   for i in range(n)])


def make_flux(model, ladder, init_ntrials, **kwargs):
    return FluxCollector(model, ladder, init_ntrials, init_nstepmax=10000, init_independent=True,
                         init_teq=0.0, **kwargs)


@pytest.fixture
def counter_model():
    return CounterModel()


@pytest.fixture
def walk_model():
    return RandomWalkModel()


@pytest.fixture
def counter_ladder():
    # the counter crosses 2.5 after 3 steps, then one interface every step
    return make_ladder([2.5, 3.5, 4.5, 5.5], [3, 2, 4], pprune=0.5)


@pytest.fixture
def walk_ladder():
    # gambler's ruin: from 1, reach 5 before 0 with probability 1/5
    return make_ladder([1.0, 2.0, 3.0, 4.0, 5.0], 2, pprune=0.5)


@pytest.fixture
def wide_ladder():
    # the last interface is three counter steps wide
    return make_ladder([2.5, 3.5, 4.5, 7.5], 1, pprune=0.0)

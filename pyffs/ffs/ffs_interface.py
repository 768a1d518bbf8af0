"""
Interfaces for forward flux sampling
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Union

import numpy as np
import pandas as pd

from ..errors import ConfigInconsistency

# tolerance used when checking that neighbouring interfaces share a boundary
DEFAULT_EPSILON = 1e-8


@dataclass
class Interface:
    """
    One rung of the ladder, the slab lambda_min <= lambda < lambda_max.
    Trials fired from a state that has just crossed lambda_min try to reach lambda_max.
    The accumulators are only modified by the sampler that is running; afterwards they
    are read by the results.
    """
    lambda_min: float = field()
    lambda_max: float = field()
    ntrials: int = field(default=1)
    pprune: float = field(default=0.0)
    nbins: int = field(default=10)
    # capacity of the ensemble of states generated at lambda_max (direct ffs only)
    nstates: Union[int, None] = field(default=None)
    nstates_min: int = field(default=1)

    histogram: np.ndarray = field(init=False, repr=False)
    forward_weight: float = field(init=False, default=0.0)
    sum_weight: float = field(init=False, default=0.0)
    nstart: int = field(init=False, default=0)
    nsuccess: int = field(init=False, default=0)
    npruned: int = field(init=False, default=0)
    ntimeout: int = field(init=False, default=0)
    ndropped: int = field(init=False, default=0)

    def __post_init__(self):
        if self.lambda_max <= self.lambda_min:
            raise ConfigInconsistency(f"Interface lambda_max {self.lambda_max} <= lambda_min {self.lambda_min}")
        if self.ntrials < 1:
            raise ConfigInconsistency(f"Invalid number of trials {self.ntrials}")
        if not 0.0 <= self.pprune < 1.0:
            raise ConfigInconsistency(f"Pruning probability {self.pprune} not in [0, 1)")
        if self.nbins < 1:
            raise ConfigInconsistency(f"Invalid number of histogram bins {self.nbins}")
        if self.nstates is None:
            self.nstates = self.ntrials
        if self.nstates < 1 or self.nstates_min > self.nstates:
            raise ConfigInconsistency(f"Invalid ensemble size {self.nstates} (minimum {self.nstates_min})")
        self.histogram = np.zeros(self.nbins)

    def reset(self):
        self.histogram = np.zeros(self.nbins)
        self.forward_weight = 0.0
        self.sum_weight = 0.0
        self.nstart = 0
        self.nsuccess = 0
        self.npruned = 0
        self.ntimeout = 0
        self.ndropped = 0

    @property
    def width(self) -> float:
        return self.lambda_max - self.lambda_min

    def bin_of(self, lam: float) -> int:
        """
        Index of the histogram bin containing lam; -1 below the interface,
        the last bin at or above lambda_max
        """
        if lam < self.lambda_min:
            return -1
        b = int((lam - self.lambda_min) / self.width * self.nbins)
        return min(b, self.nbins - 1)

    def log_histogram(self, lam: float, weight: float, max_bin: int) -> int:
        """
        Adds weight to every bin above max_bin up to the one containing lam, so that each
        bin holds the weight of paths which got at least that far. Returns the new maximum.
        """
        b = self.bin_of(lam)
        if b > max_bin:
            self.histogram[max_bin + 1:b + 1] += weight
            return b
        return max_bin

    def bin_edges(self) -> np.ndarray:
        return np.linspace(self.lambda_min, self.lambda_max, self.nbins + 1)

    def survival_boost(self) -> float:
        return 1.0 / (1.0 - self.pprune)


class Ladder:
    """
    Ordered, contiguous sequence of interfaces from the boundary of state A
    (lambda_a) to the boundary of state B (lambda_b)
    """
    interfaces: list[Interface]
    epsilon: float

    # flux phase
    ncross: int
    time: float
    nstarts: int
    init_ntimeout: int
    neq: int
    # weight delivered to B (branched and rosenbluth)
    success_weight: float

    def __init__(self, interfaces: list[Interface], epsilon: float = DEFAULT_EPSILON):
        if len(interfaces) < 1:
            raise ConfigInconsistency("At least one interface is required")
        self.interfaces = list(interfaces)
        self.epsilon = epsilon
        self.check()
        self.reset()

    def check(self):
        for n in range(1, len(self.interfaces)):
            prev, cur = self.interfaces[n - 1], self.interfaces[n]
            if abs(cur.lambda_min - prev.lambda_max) > self.epsilon:
                raise ConfigInconsistency(
                    f"Interface {n} lambda_min {cur.lambda_min} does not match interface {n - 1}"
                    f" lambda_max {prev.lambda_max}")
            if cur.lambda_max <= prev.lambda_max:
                raise ConfigInconsistency(f"Interface {n} is not above interface {n - 1}")

    def reset(self):
        for interface in self.interfaces:
            interface.reset()
        self.ncross = 0
        self.time = 0.0
        self.nstarts = 0
        self.init_ntimeout = 0
        self.neq = 0
        self.success_weight = 0.0

    def __len__(self) -> int:
        return len(self.interfaces)

    def __getitem__(self, item: int) -> Interface:
        return self.interfaces[item]

    def __iter__(self) -> Iterator[Interface]:
        return iter(self.interfaces)

    @property
    def lambda_a(self) -> float:
        return self.interfaces[0].lambda_min

    @property
    def lambda_b(self) -> float:
        return self.interfaces[-1].lambda_max

    def boundaries(self) -> list[float]:
        return [self.lambda_a] + [interface.lambda_max for interface in self.interfaces]

    def lower_bound(self, index: int) -> float:
        """
        Order parameter below which a trial fired from interface index has failed:
        the lambda_min of the previous interface, or lambda_a at the first interface
        """
        if index == 0:
            return self.lambda_a
        return self.interfaces[index - 1].lambda_min

    def is_lambda_a(self, lam: float) -> bool:
        return abs(lam - self.lambda_a) <= self.epsilon

    def describe(self) -> pd.DataFrame:
        return pd.DataFrame([{
            "index": n,
            "lambda_min": interface.lambda_min,
            "lambda_max": interface.lambda_max,
            "ntrials": interface.ntrials,
            "nstates": interface.nstates,
            "nbins": interface.nbins,
            "pprune": interface.pprune
        } for n, interface in enumerate(self.interfaces)]).set_index("index")

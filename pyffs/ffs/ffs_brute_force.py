"""
Brute force reference calculation: one long unbiased trajectory from state A, counting
transitions to B directly
"""
from __future__ import annotations

import time

from tqdm import tqdm

from .advancer import advance, elapsed_time
from .base_flux_sampler import BaseFluxSampler
from ..errors import ConfigInconsistency
from ..results import FFSResult
from ..rng import LaggedFibonacciRNG

DEFAULT_TMAX = 1.0e5


class BruteForceSampler(BaseFluxSampler):
    """
    A transition from A to B is counted when a trajectory last committed to A (lambda < lambda_a)
    first enters B (lambda >= lambda_b). The rate is the number of such transitions divided by
    the time spent committed to A. Forward crossings of lambda_a made while committed to A are
    counted as well, which gives the flux through the first interface.
    """
    method = "brute_force"

    tmax: float
    transitions: int
    time_in_a: float
    # times at which B was entered
    transition_times: list[float]

    def __init__(self, *args, tmax: float = DEFAULT_TMAX, **kwargs):
        super().__init__(*args, **kwargs)
        if tmax <= 0.0:
            raise ConfigInconsistency(f"Invalid brute force run time {tmax}")
        self.tmax = tmax
        self.transitions = 0
        self.time_in_a = 0.0
        self.transition_times = []

    def run(self) -> FFSResult:
        self.ladder.reset()
        self.transitions = 0
        self.time_in_a = 0.0
        self.transition_times = []
        lambda_a = self.ladder.lambda_a
        lambda_b = self.ladder.lambda_b

        rng = LaggedFibonacciRNG(self.seed)
        itime = time.time()
        self.logger.info(f"Starting brute force simulation for time {self.tmax:g}")

        state = self.flux.equilibrate(rng)
        t0 = self.model.time(state)
        committed_a = True
        lambda_old = self.model.order_parameter(state)
        tlast = 0.0
        nstep = 0
        with tqdm(total=self.tmax, desc="brute force", disable=not self.progress) as pbar:
            while tlast < self.tmax:
                state = advance(self.model, state, rng, self.nsteplambda)
                nstep += self.nsteplambda
                t = elapsed_time(self.model, state, t0, nstep)
                lam = self.model.order_parameter(state)
                if committed_a:
                    self.time_in_a += t - tlast
                    if lambda_old < lambda_a <= lam:
                        self.ladder.ncross += 1

                if lam < lambda_a:
                    committed_a = True
                elif lam >= lambda_b and committed_a:
                    committed_a = False
                    self.transitions += 1
                    self.transition_times.append(t)
                    self.logger.info(f"Transition {self.transitions} to B at time {t:g}")

                pbar.update(min(t, self.tmax) - min(tlast, self.tmax))
                lambda_old = lam
                tlast = t
        self.model.release(state)

        self.ladder.time = self.time_in_a
        self.nstarts = 0
        self.timed("Brute force", itime)
        return self.result()

    def result(self) -> FFSResult:
        return FFSResult(self.method, self.ladder, self.nstarts,
                         transitions=self.transitions, time_in_a=self.time_in_a)

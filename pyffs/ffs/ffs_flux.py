"""
Forward flux sampling: generation of starting points at the first interface and of the
flux through it
"""
from __future__ import annotations

import logging
from typing import Any, Iterator, Union

from tqdm import tqdm

from .advancer import advance, elapsed_time, run_to_time
from .ffs_interface import Ladder
from ..errors import ConfigInconsistency, FFSError
from ..model import SimulationModel, TrialStatus
from ..rng import LaggedFibonacciRNG

# maximum number of recalls of the reference state during one equilibration
NEQ_FAILSAFE = 32


class FluxCollector:
    """
    Runs the model forward from state A and collects the configurations at which it crosses
    lambda_a going forward. Every crossing counts toward the flux; only every init_nskip-th
    crossing is eligible as a starting point, and an eligible crossing is accepted with
    probability init_prob_accept. The time spent between crossings (including time spent
    wandering off to B, after which the model is re-equilibrated) is the denominator
    of the flux.
    """
    model: SimulationModel
    ladder: Ladder
    init_ntrials: int
    init_nstepmax: int
    init_nskip: int
    init_prob_accept: float
    init_independent: bool
    init_teq: float
    nsteplambda: int

    reference: Any
    _state: Any

    logger: logging.Logger
    progress: bool

    def __init__(self,
                 model: SimulationModel,
                 ladder: Ladder,
                 init_ntrials: int,
                 init_nstepmax: int = 1000000,
                 init_nskip: int = 1,
                 init_prob_accept: float = 1.0,
                 init_independent: bool = True,
                 init_teq: float = 0.0,
                 nsteplambda: int = 1,
                 logger: Union[logging.Logger, None] = None,
                 progress: bool = False):
        if init_ntrials < 1:
            raise ConfigInconsistency(f"Invalid number of initial trials {init_ntrials}")
        if init_nskip < 1:
            raise ConfigInconsistency(f"Invalid skip factor {init_nskip}")
        if not 0.0 <= init_prob_accept <= 1.0:
            raise ConfigInconsistency(f"Acceptance probability {init_prob_accept} not in [0, 1]")
        self.model = model
        self.ladder = ladder
        self.init_ntrials = init_ntrials
        self.init_nstepmax = init_nstepmax
        self.init_nskip = init_nskip
        self.init_prob_accept = init_prob_accept
        self.init_independent = init_independent
        self.init_teq = init_teq
        self.nsteplambda = nsteplambda
        self.logger = logger if logger is not None else logging.getLogger("pyffs.flux")
        self.progress = progress
        self.reference = None
        self._state = None

    def equilibrate(self, rng: LaggedFibonacciRNG) -> Any:
        """
        Runs a copy of the reference state for init_teq, repeating until the result lies in A
        """
        if self.reference is None:
            self.reference = self.model.initialize()
        for _ in range(NEQ_FAILSAFE):
            state = self.model.clone(self.reference)
            result = run_to_time(self.model, state, rng, self.init_teq, self.init_nstepmax)
            self.ladder.neq += 1
            if result.status != TrialStatus.SUCCEEDED:
                self.logger.warning("Equilibration not complete")
            if result.lam < self.ladder.lambda_a:
                return result.state
            self.model.release(result.state)
        raise FFSError(f"Equilibration failed to end in state A after {NEQ_FAILSAFE} attempts")

    def collect(self, rng: LaggedFibonacciRNG, first: bool = False) -> Union[Any, None]:
        """
        Generates one starting point
        Returns: a state which has just crossed lambda_a, or None if init_nstepmax was exceeded
        """
        model = self.model
        lambda_a = self.ladder.lambda_a
        lambda_b = self.ladder.lambda_b

        if self._state is None or first or self.init_independent:
            if self._state is not None:
                model.release(self._state)
            self._state = self.equilibrate(rng)

        state = self._state
        lambda_old = model.order_parameter(state)
        t0 = model.time(state)
        nmark = 0
        t_elapsed = 0.0
        accepted = False

        nstep = 0
        while nstep < self.init_nstepmax:
            state = advance(model, state, rng, self.nsteplambda)
            nstep += self.nsteplambda
            lam = model.order_parameter(state)

            # overshot to B; time spent between A and B is still counted
            if lam >= lambda_b:
                t_elapsed += elapsed_time(model, state, t0, nstep - nmark)
                model.release(state)
                state = self.equilibrate(rng)
                t0 = model.time(state)
                nmark = nstep
                lambda_old = lam = model.order_parameter(state)

            if lambda_old < lambda_a <= lam:
                self.ladder.ncross += 1
                t_elapsed += elapsed_time(model, state, t0, nstep - nmark)
                t0 = model.time(state)
                nmark = nstep
                u = rng.random()
                if self.ladder.ncross % self.init_nskip == 0 and u < self.init_prob_accept:
                    accepted = True
                    break
            lambda_old = lam

        if not accepted:
            t_elapsed += elapsed_time(model, state, t0, nstep - nmark)
        self.ladder.time += t_elapsed
        self._state = state

        if not accepted:
            self.ladder.init_ntimeout += 1
            return None
        return model.clone(state)

    def starting_points(self, seed: int) -> Iterator[tuple[int, Any]]:
        """
        Generator over (starting point index, state) for the init_ntrials starting points
        which did not time out. The rng is reseeded with seed + n for starting point n.
        """
        rng = LaggedFibonacciRNG(seed)
        nstart = 0
        for n in tqdm(range(self.init_ntrials), desc="flux", disable=not self.progress):
            rng.seed(seed + n)
            state = self.collect(rng, first=(n == 0))
            if state is None:
                self.logger.info(f"Starting point {n} timed out after {self.init_nstepmax} steps")
                continue
            yield nstart, state
            nstart += 1
        if self._state is not None:
            self.model.release(self._state)
            self._state = None
        self.logger.info(f"Flux: {self.ladder.ncross} crossings of lambda_a in time {self.ladder.time:g}"
                         f" ({self.ladder.init_ntimeout} timed out, {self.ladder.neq} equilibrations)")

    def flux(self) -> float:
        if self.ladder.time <= 0.0:
            return float("nan")
        return self.ladder.ncross / self.ladder.time

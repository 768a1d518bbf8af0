"""
Rosenbluth forward flux sampling: from each point every trial is fired, the weight is scaled
by the fraction which succeeded and a single success, chosen in proportion to its weight, is
followed on to the next interface
"""
from __future__ import annotations

import time
from typing import Any

from tqdm import tqdm

from .advancer import prune_walk
from .base_flux_sampler import BaseFluxSampler
from .ensemble import Ensemble, WeightedPoint
from ..model import TrialStatus
from ..results import FFSResult
from ..rng import LaggedFibonacciRNG, spawn_seed


class RosenbluthSampler(BaseFluxSampler):
    method = "rosenbluth"

    rng: LaggedFibonacciRNG

    def run(self) -> FFSResult:
        self.ladder.reset()
        self.rng = LaggedFibonacciRNG(spawn_seed(self.seed))
        itime = time.time()
        for n, state in tqdm(self.flux.starting_points(self.seed), total=self.flux.init_ntrials,
                             desc="rosenbluth", disable=not self.progress):
            self.nstarts += 1
            self.attempt_from.append(1)
            self.success_from.append(self.follow(state))
        self.timed("Rosenbluth ffs", itime)
        self.log_tallies()
        return self.result()

    def follow(self, state: Any) -> float:
        """
        Follows one lineage from a starting point (which is consumed) to B or extinction.
        Returns: the weight delivered to B
        """
        weight = 1.0
        point = state
        for index, interface in enumerate(self.ladder):
            interface.sum_weight += weight
            successes = []
            for _ in range(interface.ntrials):
                interface.nstart += 1
                wt = weight / interface.ntrials
                result = self.fire(index, self.model.clone(point), self.rng, wt)
                interface.ntimeout += result.ntimeout
                if result.status in (TrialStatus.WENT_BACKWARDS, TrialStatus.TIMED_OUT):
                    result, wt, k = prune_walk(self.model, self.ladder, index, result.state, wt, self.rng,
                                               self.nstepmax, self.nsteplambda, max_bin=result.max_bin)
                    interface.ntimeout += result.ntimeout
                    if result.status == TrialStatus.WAS_PRUNED:
                        self.ladder[k].npruned += 1
                if result.status == TrialStatus.SUCCEEDED:
                    interface.nsuccess += 1
                    successes.append((result.state, wt))
                else:
                    self.model.release(result.state)
            self.model.release(point)

            if len(successes) == 0:
                return 0.0

            # weight of the lineage is scaled by the (weighted) fraction of successful trials
            weight = sum(wt for _, wt in successes)
            interface.forward_weight += weight
            chosen = self.choose(successes)
            for n, (s, _) in enumerate(successes):
                if n != chosen:
                    interface.ndropped += 1
                    self.model.release(s)
            point = successes[chosen][0]

        self.model.release(point)
        self.ladder.success_weight += weight
        return weight

    def choose(self, successes: list[tuple[Any, float]]) -> int:
        """
        Picks the success to follow with probability proportional to its weight
        """
        ensemble = Ensemble(len(successes))
        for s, wt in successes:
            ensemble.append(WeightedPoint(s, wt))
        return ensemble.select(self.rng)

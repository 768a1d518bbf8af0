"""
Branched (enrichment / pruning) forward flux sampling

Each starting point at lambda_a is the root of a tree of trials. At every interface the
incoming weight is split evenly over ntrials sub-trials; sub-trials which fall back are pruned
with probability pprune or survive with their weight boosted by 1 / (1 - pprune), so that the
weight delivered to B is an unbiased estimate of the probability of reaching it.
"""
from __future__ import annotations

import time
from typing import Any

from tqdm import tqdm

from .advancer import TrialResult, run_to_interface
from .base_flux_sampler import BaseFluxSampler
from ..model import TrialStatus
from ..results import FFSResult
from ..rng import LaggedFibonacciRNG, spawn_seed


class BranchedSampler(BaseFluxSampler):
    method = "branched"

    rng: LaggedFibonacciRNG
    # index of the starting point whose tree is being explored
    current_start: int

    def run(self) -> FFSResult:
        self.ladder.reset()
        self.rng = LaggedFibonacciRNG(spawn_seed(self.seed))
        itime = time.time()
        self.logger.info(f"Starting branched ffs on {len(self.ladder)} interfaces from"
                         f" {self.flux.init_ntrials} initial trials")
        for n, state in tqdm(self.flux.starting_points(self.seed), total=self.flux.init_ntrials,
                             desc="branched", disable=not self.progress):
            self.nstarts += 1
            self.current_start = n
            self.attempt_from.append(1)
            self.success_from.append(0.0)
            self.enrich(0, 1.0, state)
            self.model.release(state)
        self.timed("Branched ffs", itime)
        self.log_tallies()
        return self.result()

    def enrich(self, index: int, weight: float, point: Any, max_bin: int = -1, max_index: int = -1):
        """
        Fires ntrials sub-trials from point (which has just reached the lambda_min of interface
        index) toward the interface's lambda_max. The caller keeps ownership of point.
        """
        ladder = self.ladder
        if index > max_index:
            # first visit of this lineage
            if index < len(ladder):
                ladder[index].sum_weight += weight
            max_index = index

        if index == len(ladder):
            ladder.success_weight += weight
            self.success_from[self.current_start] += weight
            return

        interface = ladder[index]
        wtnow = weight / interface.ntrials
        for _ in range(interface.ntrials):
            interface.nstart += 1
            result = self.fire(index, self.model.clone(point), self.rng, wtnow, max_bin)
            interface.ntimeout += result.ntimeout

            if result.status == TrialStatus.SUCCEEDED:
                interface.nsuccess += 1
                interface.forward_weight += wtnow
                self.enrich(index + 1, wtnow, result.state, -1, max_index)
            else:
                # went backwards or timed out
                self.prune(index - 2, wtnow, result.state, ladder.lower_bound(index), result.max_bin,
                           index, max_index)
            self.model.release(result.state)

    def prune(self,
              index: int,
              weight: float,
              point: Any,
              fall_back_lambda: float,
              max_bin: int,
              target: int,
              max_index: int):
        """
        Deals with a trial aimed at interface target which has fallen back below
        fall_back_lambda, into interface index, or timed out above it.
        The caller keeps ownership of point.
        """
        ladder = self.ladder
        if ladder.is_lambda_a(fall_back_lambda):
            # back in A
            return

        pprune = ladder[index + 1].pprune
        if self.rng.random() < pprune:
            ladder[index + 1].npruned += 1
            return

        weight *= 1.0 / (1.0 - pprune)
        lower = ladder[index].lambda_min
        result = self.fire_from(target, self.model.clone(point), lower, weight, max_bin)
        ladder[target].ntimeout += result.ntimeout
        if result.status == TrialStatus.SUCCEEDED:
            ladder[target].nsuccess += 1
            ladder[target].forward_weight += weight
            self.enrich(target + 1, weight, result.state, -1, max_index)
        else:
            self.prune(index - 1, weight, result.state, lower, result.max_bin, target, max_index)
        self.model.release(result.state)

    def fire_from(self, target: int, state: Any, lower: float, weight: float, max_bin: int) -> TrialResult:
        """
        Re-runs a surviving trial toward the lambda_max of interface target with a lowered
        fall-back threshold
        """
        interface = self.ladder[target]
        return run_to_interface(self.model, state, lower, interface.lambda_max, self.rng, self.nstepmax,
                                self.nsteplambda, interface, weight, max_bin)

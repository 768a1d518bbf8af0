"""
Direct forward flux sampling

The starting points form the ensemble at lambda_a. From the ensemble at each interface,
ntrials attempts are made; each attempt picks a parent by weight, runs it toward the next
interface (with a backward pruning walk if it falls back) and, if it gets there, adds the end
point to the next ensemble. The seed of every successful attempt is recorded so that any path
in the final ensemble can be regenerated.
"""
from __future__ import annotations

import pickle
import time
from pathlib import Path
from typing import Any, Union

from tqdm import tqdm

from .advancer import prune_walk
from .base_flux_sampler import BaseFluxSampler
from .ensemble import Ensemble, PathSeedRecord, WeightedPoint, write_seed_records
from ..errors import InsufficientSamples
from ..model import TrialStatus
from ..results import FFSResult
from ..rng import LaggedFibonacciRNG, spawn_seed


def seeds_file_name(block: int) -> str:
    return f"seeds_block{block}.csv"


def start_states_file_name(block: int) -> str:
    return f"start_states_block{block}.pkl"


class DirectSampler(BaseFluxSampler):
    method = "direct"

    block: int
    # keep the order parameter history of every point (for diagnostics and tests)
    trace: bool

    master: LaggedFibonacciRNG
    rng: LaggedFibonacciRNG
    records: list[PathSeedRecord]
    start_states: list[Any]
    ensemble: Union[Ensemble, None]

    def __init__(self, *args, block: int = 0, trace: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self.block = block
        self.trace = trace
        self.records = []
        self.start_states = []
        self.ensemble = None

    def run(self) -> FFSResult:
        self.ladder.reset()
        self.records = []
        self.master = LaggedFibonacciRNG(spawn_seed(self.seed))
        self.rng = LaggedFibonacciRNG(spawn_seed(self.seed))
        itime = time.time()

        ensemble = self.initial_ensemble()
        self.timed("Initial ensemble", itime)
        for i in range(len(self.ladder)):
            self.logger.info(f"Direct trial from interface {i} ({len(ensemble)} states)")
            new = self.advance(i, ensemble)
            for point in ensemble:
                self.model.release(point.state)
            ensemble = new
        self.ensemble = ensemble
        self.timed("Direct ffs", itime)

        if self.tld() is not None:
            self.write()
        return self.result()

    def initial_ensemble(self) -> Ensemble:
        """
        Collects the starting points at lambda_a, each with weight 1
        """
        ensemble = Ensemble(self.flux.init_ntrials)
        self.start_states = []
        for n, state in self.flux.starting_points(self.seed):
            self.nstarts += 1
            self.start_states.append(self.model.clone(state))
            point = WeightedPoint(state, 1.0)
            if self.trace:
                point.trace = []
            ensemble.append(point)
        if len(ensemble) == 0:
            raise InsufficientSamples(-1, 0, 1)
        return ensemble

    def advance(self, index: int, old: Ensemble) -> Ensemble:
        """
        Makes ntrials attempts from the ensemble at the lambda_min of interface index.
        Returns: the ensemble at the interface's lambda_max
        """
        interface = self.ladder[index]
        new = Ensemble(interface.nstates)
        self.attempt_from = [0] * len(old)
        self.success_from = [0.0] * len(old)

        for _ in tqdm(range(interface.ntrials), desc=f"interface {index}", disable=not self.progress):
            seed = self.master.next_seed()
            point, parent = self.attempt(index, old, seed)
            if point is None:
                continue
            interface.forward_weight += point.weight
            if new.append(point):
                self.records.append(PathSeedRecord(self.block, index, point.path_id, parent, seed))
            else:
                interface.ndropped += 1
                self.model.release(point.state)

        self.log_tallies("parent_index")
        self.logger.info(f"Interface {index}: {interface.nsuccess} of {interface.nstart} attempts succeeded,"
                         f" {interface.npruned} pruned, {interface.ntimeout} timed out,"
                         f" {interface.ndropped} dropped")
        if len(new) < interface.nstates_min:
            raise InsufficientSamples(index, len(new), interface.nstates_min)
        return new

    def attempt(self, index: int, old: Ensemble, seed: int) -> tuple[Union[WeightedPoint, None], int]:
        """
        One attempt from the ensemble old at interface index, using the trial rng seeded
        with seed.
        Returns: the new point (None if the attempt was pruned or timed out) and the index of its parent
        """
        interface = self.ladder[index]
        self.rng.seed(seed)
        parent = old.select(self.rng)
        self.attempt_from[parent] += 1
        interface.nstart += 1

        trace = list(old[parent].trace) if old[parent].trace is not None else None
        observer = None if trace is None else (lambda state, lam: trace.append(lam))

        weight = 1.0
        result = self.fire(index, self.model.clone(old[parent].state), self.rng, weight,
                           observer=observer)
        interface.ntimeout += result.ntimeout
        if result.status in (TrialStatus.WENT_BACKWARDS, TrialStatus.TIMED_OUT):
            result, weight, k = prune_walk(self.model, self.ladder, index, result.state, weight, self.rng,
                                           self.nstepmax, self.nsteplambda, max_bin=result.max_bin,
                                           observer=observer)
            interface.ntimeout += result.ntimeout
            if result.status == TrialStatus.WAS_PRUNED:
                self.ladder[k].npruned += 1

        if result.status != TrialStatus.SUCCEEDED:
            self.model.release(result.state)
            return None, parent

        interface.nsuccess += 1
        self.success_from[parent] += weight
        return WeightedPoint(result.state, weight, trace=trace), parent

    def write(self, output_dir: Union[Path, None] = None):
        """
        Writes the seed records and the starting states of this block
        """
        output_dir = output_dir if output_dir is not None else self.tld()
        output_dir.mkdir(parents=True, exist_ok=True)
        write_seed_records(self.records, output_dir / seeds_file_name(self.block))
        with (output_dir / start_states_file_name(self.block)).open("wb") as f:
            pickle.dump(self.start_states, f)
        self.logger.info(f"Wrote {len(self.records)} seed records to {output_dir / seeds_file_name(self.block)}")

    def result(self) -> FFSResult:
        return FFSResult(self.method, self.ladder, self.nstarts)

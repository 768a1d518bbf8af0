"""
Regeneration of a single path found by direct forward flux sampling

A path in the final ensemble is identified by its block and its index. Its seed records are
followed backwards to a starting state, and each recorded attempt is then replayed forward
with the recorded seed. As every stochastic decision of an attempt is drawn from the trial rng,
the replay passes through exactly the same states as the original run.
"""
from __future__ import annotations

import logging
import pickle
from pathlib import Path
from typing import Any, Union

import pandas as pd

from .advancer import prune_walk, run_to_interface
from .ensemble import PathSeedRecord, read_seed_records
from .ffs_direct import seeds_file_name, start_states_file_name
from .ffs_interface import Ladder
from ..errors import PathTooLong, RegenerationError
from ..model import SimulationModel, TrialStatus
from ..rng import LaggedFibonacciRNG


class Regenerator:
    model: SimulationModel
    ladder: Ladder
    records: list[PathSeedRecord]
    start_states: list[Any]
    nstepmax: int
    nsteplambda: int
    logger: logging.Logger

    def __init__(self,
                 model: SimulationModel,
                 ladder: Ladder,
                 records: list[PathSeedRecord],
                 start_states: list[Any],
                 nstepmax: int,
                 nsteplambda: int = 1,
                 logger: Union[logging.Logger, None] = None):
        self.model = model
        self.ladder = ladder
        self.records = records
        self.start_states = start_states
        self.nstepmax = nstepmax
        self.nsteplambda = nsteplambda
        self.logger = logger if logger is not None else logging.getLogger("pyffs.regenerate")

    @classmethod
    def from_directory(cls,
                       model: SimulationModel,
                       ladder: Ladder,
                       directory: Path,
                       block: int,
                       nstepmax: int,
                       nsteplambda: int = 1,
                       logger: Union[logging.Logger, None] = None) -> Regenerator:
        """
        Loads the seed records and starting states written by a direct ffs run
        """
        seeds_file = directory / seeds_file_name(block)
        states_file = directory / start_states_file_name(block)
        for fp in (seeds_file, states_file):
            if not fp.exists():
                raise RegenerationError(f"Missing file {fp}")
        records = [r for r in read_seed_records(seeds_file) if r.block == block]
        with states_file.open("rb") as f:
            start_states = pickle.load(f)
        return cls(model, ladder, records, start_states, nstepmax, nsteplambda, logger)

    def chain(self, path: int) -> list[PathSeedRecord]:
        """
        The records leading to a path in the final ensemble, first interface first
        """
        lookup = {(r.interface, r.path): r for r in self.records}
        chain = []
        for index in range(len(self.ladder) - 1, -1, -1):
            if (index, path) not in lookup:
                raise RegenerationError(f"No seed record for path {path} at interface {index}")
            record = lookup[(index, path)]
            chain.append(record)
            path = record.parent
        if path >= len(self.start_states):
            raise RegenerationError(f"Starting state {path} not found ({len(self.start_states)} stored)")
        return chain[::-1]

    def regenerate(self, path: int) -> pd.DataFrame:
        """
        Replays path, recording the order parameter (and the model's observables) every time it
        is evaluated.
        Returns: data frame with columns interface, step, lambda and one column per observable
        """
        chain = self.chain(path)
        state = self.model.clone(self.start_states[chain[0].parent])
        rng = LaggedFibonacciRNG()
        rows = []
        for record in chain:
            index = record.interface

            def observer(s: Any, lam: float):
                rows.append({"interface": index, "step": len(rows), "lambda": lam, **self.model.observables(s)})

            rng.seed(record.seed)
            # the draw which selected the parent
            rng.random()
            result = run_to_interface(self.model, state, self.ladder.lower_bound(index),
                                      self.ladder[index].lambda_max, rng, self.nstepmax, self.nsteplambda,
                                      observer=observer)
            ntimeout = result.ntimeout
            if result.status in (TrialStatus.WENT_BACKWARDS, TrialStatus.TIMED_OUT):
                result, _, _ = prune_walk(self.model, self.ladder, index, result.state, 1.0, rng, self.nstepmax,
                                          self.nsteplambda, log_histogram=False, observer=observer)
                ntimeout += result.ntimeout
            if result.status != TrialStatus.SUCCEEDED and ntimeout > 0:
                raise PathTooLong(self.nstepmax, f"replaying path {record.path} at interface {index}")
            if result.status != TrialStatus.SUCCEEDED:
                raise RegenerationError(f"Path {record.path} at interface {index} did not replay to"
                                        f" lambda {self.ladder[index].lambda_max} (status {result.status.value})")
            state = result.state
            self.logger.info(f"Regenerated interface {index} (path {record.path}, seed {record.seed})")
        self.model.release(state)
        return pd.DataFrame(rows)

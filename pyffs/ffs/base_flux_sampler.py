from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Union

from .advancer import Observer, TrialResult, run_to_interface
from .ffs_flux import FluxCollector
from .ffs_interface import Ladder
from ..model import SimulationModel
from ..results import FFSResult
from ..rng import LaggedFibonacciRNG

DEFAULT_NSTEPMAX = 100000


class BaseFluxSampler(ABC):
    """
    Base class for the interface-by-interface samplers. Holds the model, the ladder (which
    carries every accumulator) and the flux collector which supplies starting points.
    """
    method: str = ""

    model: SimulationModel
    ladder: Ladder
    flux: FluxCollector
    seed: int
    nstepmax: int
    nsteplambda: int
    progress: bool

    logger: logging.Logger
    working_directory: Union[Path, None]

    # number of starting points the sampler has been handed by the flux collector
    nstarts: int
    # per starting point (or, in direct ffs, per parent) tallies
    attempt_from: list[int]
    success_from: list[float]

    def __init__(self,
                 model: SimulationModel,
                 ladder: Ladder,
                 flux: FluxCollector,
                 seed: int = 0,
                 nstepmax: int = DEFAULT_NSTEPMAX,
                 nsteplambda: int = 1,
                 output_dir: Union[Path, None] = None,
                 logger: Union[logging.Logger, None] = None,
                 progress: bool = False):
        self.model = model
        self.ladder = ladder
        self.flux = flux
        self.seed = seed
        self.nstepmax = nstepmax
        self.nsteplambda = nsteplambda
        self.working_directory = output_dir
        self.logger = logger if logger is not None else logging.getLogger(f"pyffs.{self.method or 'sampler'}")
        self.progress = progress
        self.nstarts = 0
        self.attempt_from = []
        self.success_from = []

    def tld(self) -> Union[Path, None]:
        return self.working_directory

    def set_tld(self, new_path: Path):
        self.working_directory = new_path

    @abstractmethod
    def run(self) -> FFSResult:
        pass

    def fire(self,
             index: int,
             state: Any,
             rng: LaggedFibonacciRNG,
             weight: float = 0.0,
             max_bin: int = -1,
             log_histogram: bool = True,
             observer: Union[Observer, None] = None) -> TrialResult:
        """
        Fires one trial from interface index toward its lambda_max. The trial has gone backwards
        if it drops below the lambda_min of the previous interface (lambda_a at interface 0).
        """
        interface = self.ladder[index]
        return run_to_interface(self.model,
                                state,
                                self.ladder.lower_bound(index),
                                interface.lambda_max,
                                rng,
                                self.nstepmax,
                                self.nsteplambda,
                                interface if log_histogram else None,
                                weight,
                                max_bin,
                                observer)

    def log_tallies(self, label: str = "conf_index"):
        """
        Logs the attempts and successes made from each starting point
        """
        self.logger.info(f"## log of success weights from each {label.split('_')[0]}")
        self.logger.info(f"{label} nsuccesses nattempts prob")
        for k, v in enumerate(self.success_from):
            txt = f"{k}    {v:g}    {self.attempt_from[k]}   "
            if self.attempt_from[k] > 0:
                txt += f"{float(v) / float(self.attempt_from[k]):g}"
            else:
                txt += "NA"
            self.logger.info(txt)

    def timed(self, phase: str, itime: float):
        self.logger.info(f"{phase} finished at {time.asctime(time.localtime())} ({time.time() - itime:.2f} sec)")

    def result(self) -> FFSResult:
        return FFSResult(self.method, self.ladder, self.nstarts, self.success_from)

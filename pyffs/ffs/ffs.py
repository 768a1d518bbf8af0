"""
top-level class and methods for forward flux sampling
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import pandas as pd

from .base_flux_sampler import BaseFluxSampler
from .ffs_branched import BranchedSampler
from .ffs_brute_force import BruteForceSampler
from .ffs_direct import DirectSampler
from .ffs_flux import FluxCollector
from .ffs_interface import Ladder
from .ffs_regenerate import Regenerator
from .ffs_rosenbluth import RosenbluthSampler
from ..errors import FFSError
from ..ffs_input import FFSInput
from ..ffslog import FFSLogHandler
from ..model import SimulationModel
from ..results import FFSResult

SAMPLERS: dict[str, type[BaseFluxSampler]] = {
    "branched": BranchedSampler,
    "direct": DirectSampler,
    "rosenbluth": RosenbluthSampler,
    "brute_force": BruteForceSampler
}


class ForwardFluxSampler:
    """
    top-level forward-flux-sampling class
    builds the ladder, model and sampler described by an input, runs it and writes the results
    """
    ffs_input: FFSInput
    model: SimulationModel
    ladder: Ladder
    output_dir: Path

    # the sampler of the most recent run
    last_sampler: Union[BaseFluxSampler, None]

    loghandler: Union[FFSLogHandler, None]
    logger: logging.Logger

    def __init__(self,
                 ffs_input: FFSInput,
                 model: Union[SimulationModel, None] = None,
                 output_dir: Union[Path, None] = None,
                 verbose: bool = True,
                 log: bool = True):
        self.ffs_input = ffs_input
        # the ladder is validated before anything else is done
        self.ladder = ffs_input.build_ladder()
        self.model = model if model is not None else ffs_input.build_model()
        self.output_dir = output_dir if output_dir is not None else ffs_input.output_dir
        self.last_sampler = None
        if log:
            self.loghandler = FFSLogHandler(ffs_input.get_str("log_file"), verbose, self.output_dir)
            self.logger = self.loghandler.spinoff("pyffs.main")
        else:
            self.loghandler = None
            self.logger = logging.getLogger("pyffs.main")

    def spinoff(self, name: str) -> logging.Logger:
        if self.loghandler is None:
            return logging.getLogger(f"pyffs.{name}")
        return self.loghandler.spinoff(f"pyffs.{name}")

    def flux_collector(self) -> FluxCollector:
        params = self.ffs_input
        return FluxCollector(self.model,
                             self.ladder,
                             params.get_int("init_ntrials"),
                             params.get_int("init_nstepmax"),
                             params.get_int("init_nskip"),
                             params.get_float("init_prob_accept"),
                             params.get_bool("init_independent"),
                             params.get_float("init_teq"),
                             params.get_int("nsteplambda"),
                             logger=self.spinoff("flux"),
                             progress=params.get_bool("progress"))

    def sampler(self) -> BaseFluxSampler:
        params = self.ffs_input
        method = params.method
        kwargs = {}
        if method == "direct":
            kwargs = {"block": params.get_int("block"), "trace": params.get_bool("trace")}
        elif method == "brute_force":
            kwargs = {"tmax": params.get_float("bf_tmax")}
        return SAMPLERS[method](self.model,
                                self.ladder,
                                self.flux_collector(),
                                seed=params.get_int("seed"),
                                nstepmax=params.get_int("nstepmax"),
                                nsteplambda=params.get_int("nsteplambda"),
                                output_dir=self.output_dir,
                                logger=self.spinoff(method),
                                progress=params.get_bool("progress"),
                                **kwargs)

    def run(self) -> FFSResult:
        self.ffs_input.write_input(self.output_dir)
        self.logger.info(f"Running {self.ffs_input.method} ffs, writing to {self.output_dir}")
        for line in self.ladder.describe().to_string().splitlines():
            self.logger.info(line)
        try:
            self.last_sampler = self.sampler()
            result = self.last_sampler.run()
        except FFSError as e:
            self.logger.error(f"{type(e).__name__}: {e}")
            raise
        result.log_table(self.logger)
        result.write(self.output_dir, self.ffs_input.get_bool("plot"))
        return result

    def regenerate(self, block: int, path: int, directory: Union[Path, None] = None) -> pd.DataFrame:
        directory = directory if directory is not None else self.output_dir
        regenerator = Regenerator.from_directory(self.model,
                                                 self.ladder,
                                                 directory,
                                                 block,
                                                 self.ffs_input.get_int("nstepmax"),
                                                 self.ffs_input.get_int("nsteplambda"),
                                                 self.spinoff("regenerate"))
        try:
            return regenerator.regenerate(path)
        except FFSError as e:
            self.logger.error(f"{type(e).__name__}: {e}")
            raise

    def close(self):
        if self.loghandler is not None:
            self.loghandler.close()

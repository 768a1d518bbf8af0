"""
Flux, probability and rate estimates from a finished forward flux sampling run
"""
from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Union

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from scipy.stats import sem

from .ffs.ffs_interface import Ladder

# methods whose probability is the weight delivered to B per starting point
WEIGHTED_METHODS = ("branched", "rosenbluth")


class FFSResult:
    """
    Reads the accumulators held by a ladder after a run. Nothing here modifies the ladder.
    """
    method: str
    ladder: Ladder
    nstarts: int
    # weight delivered to B from each starting point (branched and rosenbluth)
    start_success: np.ndarray
    # brute force only
    transitions: Union[int, None]
    time_in_a: Union[float, None]

    def __init__(self,
                 method: str,
                 ladder: Ladder,
                 nstarts: int,
                 start_success: Union[list[float], None] = None,
                 transitions: Union[int, None] = None,
                 time_in_a: Union[float, None] = None):
        self.method = method
        self.ladder = ladder
        self.nstarts = nstarts
        self.start_success = np.array(start_success if start_success is not None else [], dtype=float)
        self.transitions = transitions
        self.time_in_a = time_in_a

    @property
    def flux(self) -> float:
        if self.ladder.time <= 0.0:
            return math.nan
        return self.ladder.ncross / self.ladder.time

    def conditional_probabilities(self) -> np.ndarray:
        """
        Probability of reaching the lambda_max of each interface having reached its lambda_min
        """
        if self.method == "brute_force":
            return np.full(len(self.ladder), math.nan)
        if self.method in WEIGHTED_METHODS:
            arrived = [interface.sum_weight for interface in self.ladder] + [self.ladder.success_weight]
            return np.array([arrived[i + 1] / arrived[i] if arrived[i] > 0.0 else 0.0
                             for i in range(len(self.ladder))])
        return np.array([interface.forward_weight / interface.ntrials for interface in self.ladder])

    def cumulative_probabilities(self) -> np.ndarray:
        return np.cumprod(self.conditional_probabilities())

    @property
    def probability(self) -> float:
        if self.method == "brute_force":
            if self.transitions is None or not self.time_in_a or math.isnan(self.flux) or self.flux == 0.0:
                return math.nan
            return self.rate / self.flux
        if self.method in WEIGHTED_METHODS:
            if self.nstarts == 0:
                return math.nan
            return self.ladder.success_weight / self.nstarts
        return float(np.prod(self.conditional_probabilities()))

    @property
    def probability_error(self) -> float:
        """
        Standard error of the probability over starting points (branched and rosenbluth)
        """
        if self.method not in WEIGHTED_METHODS or len(self.start_success) < 2:
            return math.nan
        return float(sem(self.start_success))

    @property
    def rate(self) -> float:
        if self.method == "brute_force":
            if not self.time_in_a:
                return math.nan
            return self.transitions / self.time_in_a
        return self.flux * self.probability

    def summary(self) -> dict[str, Union[str, int, float, None]]:
        summary = {
            "method": self.method,
            "nlambda": len(self.ladder) + 1,
            "lambda_a": self.ladder.lambda_a,
            "lambda_b": self.ladder.lambda_b,
            "nstarts": self.nstarts,
            "init_ntimeout": self.ladder.init_ntimeout,
            "neq": self.ladder.neq,
            "ncross": self.ladder.ncross,
            "time": self.ladder.time,
            "flux": self.flux,
            "probability": self.probability,
            "probability_error": self.probability_error,
            "rate": self.rate
        }
        if self.method == "brute_force":
            summary["transitions"] = self.transitions
            summary["time_in_a"] = self.time_in_a
        return summary

    def interface_table(self) -> pd.DataFrame:
        conditional = self.conditional_probabilities()
        cumulative = self.cumulative_probabilities()
        return pd.DataFrame([{
            "interface": n,
            "lambda_min": interface.lambda_min,
            "lambda_max": interface.lambda_max,
            "ntrials": interface.ntrials,
            "pprune": interface.pprune,
            "nstart": interface.nstart,
            "nsuccess": interface.nsuccess,
            "npruned": interface.npruned,
            "ntimeout": interface.ntimeout,
            "ndropped": interface.ndropped,
            "sum_weight": interface.sum_weight,
            "forward_weight": interface.forward_weight,
            "probability": conditional[n],
            "cumulative": cumulative[n]
        } for n, interface in enumerate(self.ladder)]).set_index("interface")

    def plambda(self) -> pd.DataFrame:
        """
        P(lambda): probability that a path leaving lambda_a reaches at least lambda, one row per
        histogram bin (lambda is the lower edge of the bin). Column normalized is the histogram
        divided by its normalization count (ntrials of the interface in direct ffs, the number of
        starting points otherwise); in direct ffs plambda scales it by the probability of having
        reached the interface.
        """
        rows = []
        # probability of having reached the lambda_min of each interface
        reached = np.concatenate([[1.0], self.cumulative_probabilities()[:-1]])
        for n, interface in enumerate(self.ladder):
            if self.method in WEIGHTED_METHODS:
                norm = self.nstarts
                scale = 1.0
            else:
                norm = interface.ntrials
                scale = reached[n]
            normalized = interface.histogram / norm if norm > 0 else np.full(interface.nbins, math.nan)
            for b, lam in enumerate(interface.bin_edges()[:-1]):
                rows.append({"interface": n, "bin": b, "lambda": lam, "normalized": normalized[b],
                             "plambda": normalized[b] * scale})
        return pd.DataFrame(rows, columns=["interface", "bin", "lambda", "normalized", "plambda"])

    def plot_plambda(self, ax: Union[plt.Axes, None] = None) -> plt.Axes:
        if ax is None:
            fig, ax = plt.subplots(figsize=(6, 4))
        df = self.plambda()
        ax.semilogy(df["lambda"], df["plambda"], marker="o", markersize=3)
        for lam in self.ladder.boundaries():
            ax.axvline(lam, color="grey", linestyle="--", linewidth=0.5)
        ax.set_xlabel(r"$\lambda$")
        ax.set_ylabel(r"$P(\lambda)$")
        ax.set_title(f"{self.method} ffs")
        return ax

    def log_table(self, logger: Union[logging.Logger, None] = None):
        logger = logger if logger is not None else logging.getLogger("pyffs.results")
        logger.info("# SUMMARY")
        for key, value in self.summary().items():
            logger.info(f"{key:<20s} {value}")
        if self.method != "brute_force":
            for line in self.interface_table().to_string().splitlines():
                logger.info(line)

    def write(self, output_dir: Path, plot: bool = False):
        """
        Writes summary.json, interfaces.csv, plambda.csv and optionally plambda.png
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        with (output_dir / "summary.json").open("w") as f:
            json.dump(self.summary(), f, indent=4)
        if self.method != "brute_force":
            self.interface_table().to_csv(output_dir / "interfaces.csv")
            self.plambda().to_csv(output_dir / "plambda.csv", index=False)
            if plot:
                ax = self.plot_plambda()
                ax.figure.savefig(output_dir / "plambda.png", dpi=150, bbox_inches="tight")
                plt.close(ax.figure)

"""
Adapter between the sampling engine and a concrete simulation model
"""
from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Union

from .rng import LaggedFibonacciRNG


class TrialStatus(Enum):
    IN_PROGRESS = "in progress"
    SUCCEEDED = "succeeded"
    WENT_BACKWARDS = "went backwards"
    TIMED_OUT = "timed out"
    WAS_PRUNED = "was pruned"


class SimulationModel(ABC):
    """
    A model exposes one stochastic step and the order parameter of its state.
    States are opaque to the engine; they are cloned whenever a trajectory forks and
    released as soon as they are superseded. All randomness used by step() must come
    from the rng it is handed, otherwise paths cannot be regenerated.
    """

    @abstractmethod
    def initialize(self) -> Any:
        """
        Returns the reference state in basin A, used for every (re-)equilibration
        """

    @abstractmethod
    def step(self, state: Any, rng: LaggedFibonacciRNG) -> Any:
        """
        Advances the state by one step. May modify the state in place, but the
        returned object is the one the engine continues with.
        """

    @abstractmethod
    def order_parameter(self, state: Any) -> float:
        pass

    def clone(self, state: Any) -> Any:
        return copy.deepcopy(state)

    def release(self, state: Any):
        pass

    def time(self, state: Any) -> Union[float, None]:
        """
        Model time of the state, or None if time should be measured in steps
        """
        return None

    def observables(self, state: Any) -> dict[str, float]:
        """
        Per-step diagnostics written out when a path is regenerated
        """
        return {}

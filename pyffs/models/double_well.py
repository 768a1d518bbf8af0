"""
Overdamped Langevin particle in the double well potential V(x) = barrier * (x^2 - 1)^2
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field

from ..model import SimulationModel
from ..rng import LaggedFibonacciRNG


@dataclass
class DoubleWellState:
    x: float = field()
    t: float = field(default=0.0)


class DoubleWellModel(SimulationModel):
    """
    Euler-Maruyama integration of dx = -V'(x) dt / gamma + sqrt(2 kT dt / gamma) * N(0, 1).
    The order parameter is the position; state A is the well at x = -1, state B the well at x = +1.
    """
    barrier: float
    dt: float
    temperature: float
    gamma: float
    x0: float

    def __init__(self,
                 barrier: float = 4.0,
                 dt: float = 1e-3,
                 temperature: float = 1.0,
                 gamma: float = 1.0,
                 x0: float = -1.0):
        if dt <= 0.0 or temperature < 0.0 or gamma <= 0.0:
            raise ValueError(f"Invalid double well parameters dt={dt}, temperature={temperature}, gamma={gamma}")
        self.barrier = barrier
        self.dt = dt
        self.temperature = temperature
        self.gamma = gamma
        self.x0 = x0

    @classmethod
    def from_params(cls, params: dict[str, str]) -> DoubleWellModel:
        return cls(**{key: float(value) for key, value in params.items()})

    def potential(self, x: float) -> float:
        return self.barrier * (x * x - 1.0) ** 2

    def force(self, x: float) -> float:
        return -4.0 * self.barrier * x * (x * x - 1.0)

    def initialize(self) -> DoubleWellState:
        return DoubleWellState(self.x0)

    def step(self, state: DoubleWellState, rng: LaggedFibonacciRNG) -> DoubleWellState:
        noise = math.sqrt(2.0 * self.temperature * self.dt / self.gamma)
        state.x += self.force(state.x) * self.dt / self.gamma + noise * rng.gauss(0.0, 1.0)
        state.t += self.dt
        return state

    def order_parameter(self, state: DoubleWellState) -> float:
        return state.x

    def clone(self, state: DoubleWellState) -> DoubleWellState:
        return DoubleWellState(state.x, state.t)

    def time(self, state: DoubleWellState) -> float:
        return state.t

    def observables(self, state: DoubleWellState) -> dict[str, float]:
        return {
            "t": state.t,
            "energy": self.potential(state.x)
        }

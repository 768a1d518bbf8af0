"""
Well-mixed chemical reaction network simulated with the Gillespie direct method
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Union

import numpy as np

from ..errors import DegenerateDynamics
from ..model import SimulationModel
from ..rng import LaggedFibonacciRNG

# total propensity below which no reaction is considered possible
FLT_EPSILON = 1.1920929e-07

TERM_PATTERN = re.compile(r"^(\d*)\s*([A-Za-z_]\w*)$")


@dataclass(frozen=True)
class Reaction:
    rate: float = field()
    # species indices consumed, one entry per molecule (at most two)
    reactants: tuple[int, ...] = field()
    # (species index, number produced)
    products: tuple[tuple[int, int], ...] = field()

    def propensity(self, counts: np.ndarray) -> float:
        if len(self.reactants) == 0:
            return self.rate
        if len(self.reactants) == 1:
            return self.rate * counts[self.reactants[0]]
        i, j = self.reactants
        if i == j:
            return self.rate * counts[i] * (counts[i] - 1)
        return self.rate * counts[i] * counts[j]


def parse_side(side: str, species: list[str]) -> list[tuple[int, int]]:
    """
    Parses one side of a reaction, e.g. "A + 2 B", into (species index, count) pairs.
    An empty side or "0" means no species.
    """
    side = side.strip()
    if side in ("", "0"):
        return []
    terms = []
    for term in side.split("+"):
        match = TERM_PATTERN.match(term.strip())
        if match is None:
            raise ValueError(f"Cannot parse reaction term '{term}'")
        count = int(match.group(1)) if match.group(1) else 1
        name = match.group(2)
        if name not in species:
            raise ValueError(f"Unknown species {name}")
        terms.append((species.index(name), count))
    return terms


def parse_reaction(text: str, species: list[str]) -> Reaction:
    """
    Reads a reaction written as "rate : reactants -> products", e.g. "0.5 : A + B -> 2 C"
    """
    try:
        rate, equation = text.split(":")
        lhs, rhs = equation.split("->")
    except ValueError:
        raise ValueError(f"Cannot parse reaction '{text}'")
    reactants = []
    for index, count in parse_side(lhs, species):
        reactants.extend([index] * count)
    if len(reactants) > 2:
        raise ValueError(f"Reaction '{text}' has more than two reactants")
    return Reaction(float(rate), tuple(reactants), tuple(parse_side(rhs, species)))


@dataclass
class GillespieState:
    counts: np.ndarray = field()
    t: float = field(default=0.0)


class GillespieModel(SimulationModel):
    """
    The order parameter is a linear combination of the copy numbers of the species.
    """
    species: list[str]
    reactions: list[Reaction]
    initial: np.ndarray
    coefficients: np.ndarray

    def __init__(self,
                 species: list[str],
                 reactions: list[Union[str, Reaction]],
                 initial: list[int],
                 coefficients: list[float]):
        if len(initial) != len(species) or len(coefficients) != len(species):
            raise ValueError("Initial copy numbers and order parameter coefficients must be given for every species")
        self.species = list(species)
        self.reactions = [r if isinstance(r, Reaction) else parse_reaction(r, self.species) for r in reactions]
        self.initial = np.array(initial, dtype=np.int64)
        self.coefficients = np.array(coefficients, dtype=float)

    @classmethod
    def from_params(cls, params: dict[str, str]) -> GillespieModel:
        """
        Builds the model from an input block such as
            species = A B
            initial = 10 0
            lambda = 1 -1
            reaction1 = 1.0 : A -> B
            reaction2 = 1.0 : B -> A
        """
        species = params["species"].split()
        reactions = [params[key] for key in sorted((k for k in params if re.match(r"^reaction\d+$", k)),
                                                   key=lambda k: int(k[len("reaction"):]))]
        initial = [int(v) for v in params["initial"].split()]
        coefficients = [float(v) for v in params["lambda"].split()]
        return cls(species, reactions, initial, coefficients)

    def initialize(self) -> GillespieState:
        return GillespieState(self.initial.copy())

    def propensities(self, counts: np.ndarray) -> np.ndarray:
        return np.array([r.propensity(counts) for r in self.reactions], dtype=float)

    def step(self, state: GillespieState, rng: LaggedFibonacciRNG) -> GillespieState:
        a = self.propensities(state.counts)
        sum_a = a.sum()
        if sum_a < FLT_EPSILON:
            raise DegenerateDynamics(f"No reaction possible at t = {state.t} (counts {state.counts.tolist()})")

        # waiting time
        state.t += math.log(1.0 / rng.random_positive()) / sum_a

        # which reaction
        rs = rng.random_positive() * sum_a
        j = 0
        cumu_a = a[0]
        while cumu_a < rs and j < len(a) - 1:
            j += 1
            cumu_a += a[j]

        reaction = self.reactions[j]
        for i in reaction.reactants:
            state.counts[i] -= 1
        for i, change in reaction.products:
            state.counts[i] += change
        return state

    def order_parameter(self, state: GillespieState) -> float:
        return float(np.dot(self.coefficients, state.counts))

    def clone(self, state: GillespieState) -> GillespieState:
        return GillespieState(state.counts.copy(), state.t)

    def time(self, state: GillespieState) -> float:
        return state.t

    def observables(self, state: GillespieState) -> dict[str, float]:
        return {
            "t": state.t,
            **{name: int(state.counts[n]) for n, name in enumerate(self.species)}
        }

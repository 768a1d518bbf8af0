"""
Weighted ensembles of simulation states for direct forward flux sampling
"""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Union

import pandas as pd

from ..rng import LaggedFibonacciRNG


@dataclass
class WeightedPoint:
    """
    A simulation state together with its statistical weight
    """
    state: Any = field()
    weight: float = field(default=1.0)
    # index of this point within its ensemble
    path_id: int = field(default=-1)
    # order parameter values visited by this lineage (only kept when tracing is on)
    trace: Union[list[float], None] = field(default=None, repr=False)


@dataclass(frozen=True)
class PathSeedRecord:
    """
    Record of one successful attempt in direct ffs. The seed is the value the trial rng was
    seeded with immediately before the parent was chosen, so replaying the attempt with the
    same seed repeats both the choice of parent and the trajectory.
    """
    block: int = field()
    interface: int = field()
    # index of the new point in the ensemble at interface.lambda_max
    path: int = field()
    # index of the parent in the previous ensemble (the starting points for interface 0)
    parent: int = field()
    seed: int = field()


class Ensemble:
    """
    Ordered sequence of weighted points with a hard capacity
    """
    capacity: int
    points: list[WeightedPoint]

    def __init__(self, capacity: int):
        self.capacity = capacity
        self.points = []

    def __len__(self) -> int:
        return len(self.points)

    def __getitem__(self, item: int) -> WeightedPoint:
        return self.points[item]

    def __iter__(self) -> Iterator[WeightedPoint]:
        return iter(self.points)

    def is_full(self) -> bool:
        return len(self.points) >= self.capacity

    def append(self, point: WeightedPoint) -> bool:
        """
        Adds a point if there is room for it.
        Returns: True if the point was added, False if the ensemble was already full
        """
        if self.is_full():
            return False
        point.path_id = len(self.points)
        self.points.append(point)
        return True

    def total_weight(self) -> float:
        return sum(p.weight for p in self.points)

    def select(self, rng: LaggedFibonacciRNG) -> int:
        """
        Roulette-wheel selection: draws u uniformly on [0, total weight) and walks the
        ensemble until the running sum of weights exceeds u.
        Returns: index of the chosen point
        """
        if len(self.points) == 0:
            raise IndexError("Cannot select from an empty ensemble")
        u = rng.random() * self.total_weight()
        running = 0.0
        for n, point in enumerate(self.points):
            running += point.weight
            if running > u:
                return n
        # rounding can leave u at the very top of the wheel
        return len(self.points) - 1

    def states(self) -> list[Any]:
        return [p.state for p in self.points]


def write_seed_records(records: list[PathSeedRecord], fp: Path):
    pd.DataFrame([{
        "block": r.block,
        "interface": r.interface,
        "path": r.path,
        "parent": r.parent,
        "seed": r.seed
    } for r in records], columns=["block", "interface", "path", "parent", "seed"]).to_csv(fp, index=False)


def read_seed_records(fp: Path) -> list[PathSeedRecord]:
    df = pd.read_csv(fp, engine="pyarrow")
    return [PathSeedRecord(int(row.block), int(row.interface), int(row.path), int(row.parent), int(row.seed))
            for row in df.itertuples(index=False)]

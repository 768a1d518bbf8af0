"""
Exceptions raised by the forward flux sampling engine
"""
from __future__ import annotations


class FFSError(Exception):
    pass


class ConfigInconsistency(FFSError):
    """
    The input file describes an interface ladder (or run parameters) that cannot be sampled
    """


class InsufficientSamples(FFSError):
    interface: int
    population: int
    required: int

    def __init__(self, interface: int, population: int, required: int):
        self.interface = interface
        self.population = population
        self.required = required

    def __str__(self) -> str:
        return (f"Only {self.population} states reached the end of interface {self.interface}"
                f" ({self.required} required); cannot proceed to the next interface")


class PathTooLong(FFSError):
    nstepmax: int

    def __init__(self, nstepmax: int, detail: str = ""):
        self.nstepmax = nstepmax
        self.detail = detail

    def __str__(self) -> str:
        return f"Step ceiling of {self.nstepmax} steps exceeded {self.detail}".strip()


class DegenerateDynamics(FFSError):
    """
    The model cannot make any further transition (e.g. every propensity is zero)
    """


class RegenerationError(FFSError):
    """
    A stored seed chain does not replay to the interface it was recorded at
    """

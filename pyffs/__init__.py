from .errors import ConfigInconsistency, DegenerateDynamics, FFSError, InsufficientSamples, PathTooLong, \
    RegenerationError
from .ffs_input import FFSInput
from .model import SimulationModel, TrialStatus
from .rng import LaggedFibonacciRNG

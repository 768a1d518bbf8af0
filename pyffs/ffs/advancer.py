"""
Drives a simulation model between interfaces
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Union

from .ffs_interface import Interface, Ladder
from ..model import SimulationModel, TrialStatus
from ..rng import LaggedFibonacciRNG

# called with (state, lambda) every time the order parameter is evaluated
Observer = Callable[[Any, float], None]


@dataclass
class TrialResult:
    # the caller owns this state
    state: Any = field()
    status: TrialStatus = field()
    nstep: int = field(default=0)
    max_bin: int = field(default=-1)
    lam: float = field(default=0.0)
    # runs which hit nstepmax on the way to this result
    ntimeout: int = field(default=0)


def advance(model: SimulationModel, state: Any, rng: LaggedFibonacciRNG, nstep: int = 1) -> Any:
    """
    Takes nstep model steps, releasing every state that gets superseded
    """
    for _ in range(nstep):
        new_state = model.step(state, rng)
        if new_state is not state:
            model.release(state)
        state = new_state
    return state


def elapsed_time(model: SimulationModel, state: Any, t0: Union[float, None], nstep: int) -> float:
    """
    Time since t0 in model units, or the step count if the model has no clock
    """
    t = model.time(state)
    if t is None or t0 is None:
        return float(nstep)
    return t - t0


def run_to_interface(model: SimulationModel,
                     state: Any,
                     lambda_min: float,
                     lambda_max: float,
                     rng: LaggedFibonacciRNG,
                     nstepmax: int,
                     nsteplambda: int = 1,
                     interface: Union[Interface, None] = None,
                     weight: float = 0.0,
                     max_bin: int = -1,
                     observer: Union[Observer, None] = None) -> TrialResult:
    """
    Runs the model until the order parameter reaches lambda_max (success), drops below
    lambda_min (went backwards), or nstepmax steps have been taken (timed out).
    The order parameter is evaluated every nsteplambda steps. If interface is given, weight is
    logged into its histogram as the trajectory advances, starting above max_bin.
    """
    nstep = 0
    while True:
        lam = model.order_parameter(state)
        if observer is not None:
            observer(state, lam)
        if interface is not None:
            max_bin = interface.log_histogram(lam, weight, max_bin)

        if lam >= lambda_max:
            status = TrialStatus.SUCCEEDED
        elif lam < lambda_min:
            status = TrialStatus.WENT_BACKWARDS
        elif nstep >= nstepmax:
            status = TrialStatus.TIMED_OUT
        else:
            status = TrialStatus.IN_PROGRESS

        if status != TrialStatus.IN_PROGRESS:
            return TrialResult(state, status, nstep, max_bin, lam, int(status == TrialStatus.TIMED_OUT))

        state = advance(model, state, rng, nsteplambda)
        nstep += nsteplambda


def run_to_time(model: SimulationModel,
                state: Any,
                rng: LaggedFibonacciRNG,
                teq: float,
                nstepmax: int) -> TrialResult:
    """
    Runs the model for teq time units (steps, if the model keeps no time)
    """
    t0 = model.time(state)
    nstep = 0
    status = TrialStatus.SUCCEEDED
    while elapsed_time(model, state, t0, nstep) < teq:
        if nstep > nstepmax:
            status = TrialStatus.TIMED_OUT
            break
        state = advance(model, state, rng)
        nstep += 1
    return TrialResult(state, status, nstep, -1, model.order_parameter(state))


def prune_walk(model: SimulationModel,
               ladder: Ladder,
               index: int,
               state: Any,
               weight: float,
               rng: LaggedFibonacciRNG,
               nstepmax: int,
               nsteplambda: int = 1,
               log_histogram: bool = True,
               max_bin: int = -1,
               observer: Union[Observer, None] = None) -> tuple[TrialResult, float, int]:
    """
    Backward pruning walk for a trial fired from interface index that went backwards or timed
    out. Walking down k = index - 1, ..., 1 the trial is discarded with probability pprune of
    interface k; a survivor has its weight multiplied by 1 / (1 - pprune) and is re-run, from
    wherever it stopped, toward the same target with interface k - 1's lambda_min as its new
    lower bound. A re-run which falls back or times out again carries on down the ladder.
    A trial falling back past interface 1 reaches state A and is pruned.

    Returns: the final trial result (SUCCEEDED, WAS_PRUNED, or TIMED_OUT if the last re-run
    timed out), the final weight and the interface at which the walk ended. The result's
    ntimeout counts the re-runs which timed out.
    """
    lambda_max = ladder[index].lambda_max
    interface = ladder[index] if log_histogram else None
    result = TrialResult(state, TrialStatus.WAS_PRUNED, 0, max_bin)
    ntimeout = 0
    k = index - 1
    while k > 0:
        pprune = ladder[k].pprune
        if rng.random() < pprune:
            result.status = TrialStatus.WAS_PRUNED
            break
        weight *= 1.0 / (1.0 - pprune)
        result = run_to_interface(model, result.state, ladder[k - 1].lambda_min, lambda_max, rng,
                                  nstepmax, nsteplambda, interface, weight, result.max_bin, observer)
        ntimeout += result.ntimeout
        if result.status == TrialStatus.SUCCEEDED:
            break
        k -= 1

    if result.status == TrialStatus.WENT_BACKWARDS:
        result.status = TrialStatus.WAS_PRUNED
    result.ntimeout = ntimeout
    return result, weight, max(k, 0)

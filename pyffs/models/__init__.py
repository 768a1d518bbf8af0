from __future__ import annotations

from ..errors import ConfigInconsistency
from ..model import SimulationModel
from .double_well import DoubleWellModel
from .gillespie import GillespieModel

MODELS = {
    "double_well": DoubleWellModel,
    "gillespie": GillespieModel
}


def get_model(name: str, params: dict[str, str]) -> SimulationModel:
    if name not in MODELS:
        raise ConfigInconsistency(f"Unknown model {name}; available models are {', '.join(MODELS)}")
    try:
        return MODELS[name].from_params(params)
    except (KeyError, ValueError, TypeError) as e:
        raise ConfigInconsistency(f"Invalid parameters for model {name}: {e}") from e

"""
Input files for forward flux sampling runs

An input file is a list of "key = value" lines. Anything after a '#' is ignored. A value of
'{' opens a block of key = value lines which is closed by a line holding only '}'.
Interfaces are given either on one line,
    interface1 = lambda_min lambda_max ntrials [nbins [pprune]]
or as a block with the keys lambda_min, lambda_max, ntrials, nbins, pprune, nstates and
nstates_min. Keys missing from the file take their values from the defaults of the method.
"""
from __future__ import annotations

import re
from json import dump
from pathlib import Path
from typing import Any, Union

from .defaults import METHODS, DefaultInput, get_default_input
from .errors import ConfigInconsistency
from .ffs.ffs_interface import DEFAULT_EPSILON, Interface, Ladder
from .model import SimulationModel
from .models import get_model

InputValue = Union[str, dict[str, Any]]

INTERFACE_KEY = re.compile(r"^interface(\d+)$")


def parse_input(text: str) -> dict[str, InputValue]:
    root: dict[str, InputValue] = {}
    stack = [root]
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        if line == "}":
            if len(stack) == 1:
                raise ConfigInconsistency(f"Unmatched '}}' on line {lineno}")
            stack.pop()
            continue
        if "=" not in line:
            raise ConfigInconsistency(f"Expected 'key = value' on line {lineno}, found '{line}'")
        key, value = [s.strip() for s in line.split("=", 1)]
        if value == "{":
            block: dict[str, InputValue] = {}
            stack[-1][key] = block
            stack.append(block)
        else:
            stack[-1][key] = value
    if len(stack) > 1:
        raise ConfigInconsistency("Input ended inside a '{' block")
    return root


def read_input_file(fp: Path) -> dict[str, InputValue]:
    with fp.open("r") as f:
        return parse_input(f.read())


class FFSInput:
    """
    Parameters of one run: the values read from the input file on top of the defaults of
    the chosen method
    """
    input_dict: dict[str, InputValue]
    default_input: DefaultInput

    def __init__(self, input_dict: Union[dict[str, InputValue], None] = None):
        self.input_dict = dict(input_dict) if input_dict is not None else {}
        method = self.input_dict.get("method", "direct")
        if method not in METHODS:
            raise ConfigInconsistency(f"Unknown method {method}; choose one of {', '.join(METHODS)}")
        self.default_input = get_default_input(method)

    @classmethod
    def from_file(cls, fp: Union[Path, str]) -> FFSInput:
        fp = Path(fp)
        if not fp.exists():
            raise ConfigInconsistency(f"No input file {fp}")
        return cls(read_input_file(fp))

    def swap_default_input(self, default_type: str):
        if default_type not in METHODS:
            raise ConfigInconsistency(f"Unknown method {default_type}; choose one of {', '.join(METHODS)}")
        self.default_input = get_default_input(default_type)
        self.input_dict["method"] = default_type

    def get_dict(self) -> dict[str, InputValue]:
        return {
            **self.default_input.get_dict(),
            **self.input_dict
        }

    def modify_input(self, parameters: dict[str, InputValue]):
        for k, v in parameters.items():
            self[k] = v

    def __getitem__(self, item: str) -> InputValue:
        if item in self.input_dict:
            return self.input_dict[item]
        if item in self.default_input:
            return self.default_input[item]
        raise ConfigInconsistency(f"Missing required key {item}")

    def __setitem__(self, key: str, value: Union[InputValue, float, int, bool]):
        if key == "method":
            self.swap_default_input(str(value))
        elif isinstance(value, dict):
            self.input_dict[key] = value
        elif isinstance(value, bool):
            self.input_dict[key] = str(int(value))
        else:
            self.input_dict[key] = str(value)

    def __contains__(self, item: str) -> bool:
        return item in self.input_dict or item in self.default_input

    def get_str(self, key: str) -> str:
        value = self[key]
        if isinstance(value, dict):
            raise ConfigInconsistency(f"Expected a value for {key}, found a block")
        return value

    def get_int(self, key: str) -> int:
        value = self.get_str(key)
        try:
            number = float(value)
        except ValueError:
            raise ConfigInconsistency(f"Expected an integer for {key}, found '{value}'")
        # allows e.g. 1e6
        if not number.is_integer():
            raise ConfigInconsistency(f"Expected an integer for {key}, found '{value}'")
        return int(number)

    def get_float(self, key: str) -> float:
        value = self.get_str(key)
        try:
            return float(value)
        except ValueError:
            raise ConfigInconsistency(f"Expected a number for {key}, found '{value}'")

    def get_bool(self, key: str) -> bool:
        value = self.get_str(key).lower()
        if value in ("1", "true", "yes", "on"):
            return True
        if value in ("0", "false", "no", "off"):
            return False
        raise ConfigInconsistency(f"Expected a boolean for {key}, found '{value}'")

    def get_block(self, key: str) -> dict[str, str]:
        if key not in self.input_dict:
            return {}
        value = self.input_dict[key]
        if not isinstance(value, dict):
            raise ConfigInconsistency(f"Expected a '{{' block for {key}")
        return {k: v for k, v in value.items() if isinstance(v, str)}

    @property
    def method(self) -> str:
        return self.get_str("method")

    @property
    def output_dir(self) -> Path:
        return Path(self.get_str("output_dir"))

    @property
    def epsilon(self) -> float:
        return self.get_float("epsilon") if "epsilon" in self else DEFAULT_EPSILON

    def default_pprune(self, ntrials: int) -> float:
        """
        pprune_default if given, otherwise 1 - 1 / ntrials, for which the weight of a trial
        surviving a pruning test is multiplied by ntrials
        """
        if "pprune_default" in self:
            return self.get_float("pprune_default")
        if ntrials < 1:
            raise ConfigInconsistency(f"Invalid number of trials {ntrials}")
        return 1.0 - 1.0 / ntrials

    def read_interface(self, n: int) -> Interface:
        key = f"interface{n}"
        value = self[key]
        try:
            if isinstance(value, dict):
                fields = {k: v for k, v in value.items() if isinstance(v, str)}
                lambda_min = float(fields["lambda_min"])
                lambda_max = float(fields["lambda_max"])
                ntrials = int(fields["ntrials"]) if "ntrials" in fields else self.get_int("ntrials_default")
                nbins = int(fields["nbins"]) if "nbins" in fields else self.get_int("nbins_default")
                pprune = float(fields["pprune"]) if "pprune" in fields else self.default_pprune(ntrials)
                nstates = int(fields["nstates"]) if "nstates" in fields else self.default_nstates(ntrials)
                nstates_min = int(fields["nstates_min"]) if "nstates_min" in fields \
                    else self.get_int("nstates_min_default")
            else:
                words = value.split()
                if not 3 <= len(words) <= 5:
                    raise ConfigInconsistency(f"{key} should read 'lambda_min lambda_max ntrials [nbins [pprune]]'")
                lambda_min = float(words[0])
                lambda_max = float(words[1])
                ntrials = int(words[2])
                nbins = int(words[3]) if len(words) > 3 else self.get_int("nbins_default")
                pprune = float(words[4]) if len(words) > 4 else self.default_pprune(ntrials)
                nstates = self.default_nstates(ntrials)
                nstates_min = self.get_int("nstates_min_default")
        except KeyError as e:
            raise ConfigInconsistency(f"Missing {e.args[0]} for {key}")
        except ValueError as e:
            raise ConfigInconsistency(f"Invalid value for {key}: {e}")
        return Interface(lambda_min, lambda_max, ntrials, pprune, nbins, nstates, nstates_min)

    def default_nstates(self, ntrials: int) -> int:
        if "nstates_default" in self:
            return self.get_int("nstates_default")
        return ntrials

    def build_ladder(self) -> Ladder:
        numbers = sorted(int(m.group(1)) for m in (INTERFACE_KEY.match(k) for k in self.input_dict) if m)
        if len(numbers) == 0:
            raise ConfigInconsistency("No interfaces given")
        if numbers != list(range(1, len(numbers) + 1)):
            raise ConfigInconsistency(f"Interfaces must be numbered 1 to {len(numbers)}, found {numbers}")
        if "nlambda" in self and self.get_int("nlambda") != len(numbers) + 1:
            raise ConfigInconsistency(f"nlambda = {self.get_int('nlambda')} but {len(numbers)} interfaces"
                                      f" ({len(numbers) + 1} boundaries) are given")
        ladder = Ladder([self.read_interface(n) for n in numbers], self.epsilon)
        for key, expected in (("lambda_a", ladder.lambda_a), ("lambda_b", ladder.lambda_b)):
            if key in self and abs(self.get_float(key) - expected) > ladder.epsilon:
                raise ConfigInconsistency(f"{key} = {self.get_float(key)} does not match the interfaces ({expected})")
        return ladder

    def build_model(self) -> SimulationModel:
        if "model" not in self:
            raise ConfigInconsistency("Missing required key model")
        return get_model(self.get_str("model"), self.get_block("model_params"))

    def write_input(self, output_dir: Path):
        """
        Writes the full set of parameters used, defaults included, to input.json
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        with (output_dir / "input.json").open("w") as f:
            dump(self.get_dict(), f, indent=4)

METHODS = ["branched", "direct", "rosenbluth", "brute_force"]


class DefaultInput:
    _input: dict[str, str]

    def __init__(self):
        self.direct()

    def swap_default_input(self, default_type: str):
        if default_type == "branched":
            self.branched()
        elif default_type == "direct":
            self.direct()
        elif default_type == "rosenbluth":
            self.rosenbluth()
        elif default_type == "brute_force":
            self.brute_force()
        else:
            raise ValueError(f"Invalid default_type {default_type}")

    def common(self) -> dict[str, str]:
        return {
            "seed": "0",
            "block": "0",
            "nstepmax": "100000",
            "nsteplambda": "1",
            "init_ntrials": "100",
            "init_nstepmax": "1000000",
            "init_nskip": "1",
            "init_prob_accept": "1.0",
            "init_independent": "1",
            "init_teq": "0.0",
            "ntrials_default": "10",
            "nbins_default": "10",
            "nstates_min_default": "1",
            "epsilon": "1e-8",
            "output_dir": "ffs_out",
            "log_file": "ffs",
            "progress": "0",
            "plot": "0",
            "trace": "0"
        }

    def branched(self):
        self._input = {
            **self.common(),
            "method": "branched"
        }

    def direct(self):
        self._input = {
            **self.common(),
            "method": "direct",
            "init_ntrials": "1000"
        }

    def rosenbluth(self):
        self._input = {
            **self.common(),
            "method": "rosenbluth"
        }

    def brute_force(self):
        self._input = {
            **self.common(),
            "method": "brute_force",
            "init_ntrials": "1",
            "bf_tmax": "100000"
        }

    def get_dict(self) -> dict[str, str]:
        """
        Returns: the values
        """
        return {
            key: str(self._input[key]) for key in self._input
        }

    def __getitem__(self, item: str) -> str:
        return str(self._input[item])

    def __contains__(self, item: str) -> bool:
        return item in self._input


def get_default_input(default_type: str) -> DefaultInput:
    default_input = DefaultInput()
    default_input.swap_default_input(default_type)
    return default_input

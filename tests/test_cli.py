import json

import pandas as pd
import pytest

from pyffs.cli import cli_parser, main
from pyffs.ffs.ffs import ForwardFluxSampler
from pyffs.ffs_input import FFSInput

INPUT = """
method = {method}
seed = 3
nstepmax = 100000
init_ntrials = 5
init_teq = 0.1
trace = 1
nlambda = 3
interface1 = -0.8 -0.4 30 5 0.5
interface2 = -0.4 0.0 30 5 0.5
model = double_well
model_params = {{
    barrier = 1.0
    dt = 0.01
}}
output_dir = {output_dir}
bf_tmax = 20.0
"""


@pytest.fixture
def write_input(tmp_path):
    def write(method="direct"):
        fp = tmp_path / f"{method}.txt"
        fp.write_text(INPUT.format(method=method, output_dir=tmp_path / f"{method}_out"))
        return fp
    return write


class TestCli:
    def test_parser(self):
        args = cli_parser().parse_args(["regenerate", "input.txt", "-b", "2", "-p", "7"])
        assert (args.command, args.input, args.block, args.path, args.output) == \
            ("regenerate", "input.txt", 2, 7, None)
        args = cli_parser().parse_args(["run", "input.txt", "-o", "out", "-q"])
        assert (args.output_dir, args.quiet) == ("out", True)

    def test_parser_requires_command(self):
        with pytest.raises(SystemExit):
            cli_parser().parse_args([])

    @pytest.mark.parametrize("method", ["direct", "branched", "rosenbluth", "brute_force"])
    def test_run(self, write_input, tmp_path, method, capsys):
        assert main(["run", str(write_input(method)), "-q"]) == 0
        out = tmp_path / f"{method}_out"
        with (out / "summary.json").open() as f:
            summary = json.load(f)
        assert summary["method"] == method
        assert summary["rate"] > 0.0 or method == "brute_force"
        assert (out / "input.json").exists()
        assert (out / "ffs.log").exists()
        assert "rate =" in capsys.readouterr().out

    def test_output_dir_override(self, write_input, tmp_path):
        assert main(["run", str(write_input()), "-q", "-o", str(tmp_path / "elsewhere")]) == 0
        assert (tmp_path / "elsewhere" / "summary.json").exists()
        assert (tmp_path / "elsewhere" / "seeds_block0.csv").exists()

    def test_regenerate(self, write_input, tmp_path):
        fp = write_input()
        assert main(["run", str(fp), "-q"]) == 0
        assert main(["regenerate", str(fp), "-p", "0", "-q"]) == 0
        df = pd.read_csv(tmp_path / "direct_out" / "path_block0_0.csv")
        assert list(df.columns) == ["interface", "step", "lambda", "t", "energy"]
        assert df["lambda"].iloc[-1] >= 0.0

    def test_regenerate_matches_trace(self, write_input, tmp_path):
        ffs = ForwardFluxSampler(FFSInput.from_file(write_input()), verbose=False)
        try:
            ffs.run()
            sampler_ensemble = ffs.last_sampler.ensemble
            df = ffs.regenerate(0, 1)
        finally:
            ffs.close()
        assert df["lambda"].tolist() == sampler_ensemble[1].trace

    def test_regenerate_without_run(self, write_input, capsys):
        assert main(["regenerate", str(write_input()), "-p", "0", "-q"]) == 1
        assert "RegenerationError" in capsys.readouterr().err

    def test_bad_input(self, tmp_path, capsys):
        fp = tmp_path / "bad.txt"
        fp.write_text("method = direct\ninterface1 = 0.0 1.0 5\ninterface2 = 1.5 2.0 5\n")
        assert main(["run", str(fp), "-q"]) == 1
        assert "ConfigInconsistency" in capsys.readouterr().err

    def test_missing_input(self, tmp_path):
        assert main(["run", str(tmp_path / "nothing.txt")]) == 1

import pandas as pd
import pytest

from conftest import CounterModel, make_flux, make_ladder
from pyffs.errors import PathTooLong, RegenerationError
from pyffs.ffs.ensemble import PathSeedRecord
from pyffs.ffs.ffs_direct import DirectSampler
from pyffs.ffs.ffs_regenerate import Regenerator
from pyffs.models.double_well import DoubleWellModel


def traced_run(model, ladder, init_ntrials, output_dir, seed=0, nstepmax=100000):
    sampler = DirectSampler(model, ladder, make_flux(model, ladder, init_ntrials), seed=seed, nstepmax=nstepmax,
                            output_dir=output_dir, trace=True)
    sampler.run()
    return sampler


class TestRegenerator:
    def test_random_walk(self, walk_model, tmp_path):
        ladder = make_ladder([1.0, 2.0, 3.0, 4.0, 5.0], 20, pprune=0.5)
        sampler = traced_run(walk_model, ladder, 10, tmp_path, seed=31)
        regenerator = Regenerator.from_directory(walk_model, ladder, tmp_path, 0, 100000)
        for path in range(len(sampler.ensemble)):
            df = regenerator.regenerate(path)
            assert df["lambda"].tolist() == sampler.ensemble[path].trace, f"Path {path} did not replay"
            assert df["lambda"].iloc[-1] >= ladder.lambda_b

    def test_columns(self, walk_model, tmp_path):
        ladder = make_ladder([1.0, 2.0, 3.0], 10, pprune=0.5)
        traced_run(walk_model, ladder, 5, tmp_path, seed=2)
        df = Regenerator.from_directory(walk_model, ladder, tmp_path, 0, 100000).regenerate(0)
        assert list(df.columns) == ["interface", "step", "lambda", "x"]
        assert df["step"].tolist() == list(range(len(df)))
        assert df["interface"].is_monotonic_increasing
        assert set(df["interface"]) == {0, 1}

    def test_double_well(self, tmp_path):
        model = DoubleWellModel(barrier=2.0, dt=0.01)
        ladder = make_ladder([-0.8, -0.4, 0.0, 0.4, 0.8], [60, 30, 30, 30], pprune=0.5)
        sampler = traced_run(model, ladder, 5, tmp_path, seed=77)
        regenerator = Regenerator.from_directory(model, ladder, tmp_path, 0, 100000)
        for path in (0, len(sampler.ensemble) - 1):
            df = regenerator.regenerate(path)
            assert df["lambda"].tolist() == sampler.ensemble[path].trace
            assert df["t"].iloc[-1] == pytest.approx(sampler.ensemble[path].state.t)

    def test_chain(self, counter_model, counter_ladder, tmp_path):
        sampler = traced_run(counter_model, counter_ladder, 3, tmp_path)
        chain = Regenerator.from_directory(counter_model, counter_ladder, tmp_path, 0, 100).chain(3)
        assert [r.interface for r in chain] == [0, 1, 2]
        assert chain[-1].path == 3
        assert chain[0].parent < len(sampler.start_states)

    def test_missing_files(self, counter_model, counter_ladder, tmp_path):
        with pytest.raises(RegenerationError):
            Regenerator.from_directory(counter_model, counter_ladder, tmp_path, 0, 100)

    def test_missing_record(self, counter_model, counter_ladder):
        records = [PathSeedRecord(0, 0, 0, 0, 5), PathSeedRecord(0, 1, 0, 0, 6)]
        regenerator = Regenerator(counter_model, counter_ladder, records, [counter_model.initialize()], 100)
        with pytest.raises(RegenerationError):
            regenerator.regenerate(0)

    def test_missing_start_state(self, counter_model, counter_ladder):
        records = [PathSeedRecord(0, 0, 0, 4, 5), PathSeedRecord(0, 1, 0, 0, 6), PathSeedRecord(0, 2, 0, 0, 7)]
        regenerator = Regenerator(counter_model, counter_ladder, records, [counter_model.initialize()], 100)
        with pytest.raises(RegenerationError):
            regenerator.chain(0)

    def test_timed_out_trial(self, counter_model, wide_ladder, tmp_path):
        sampler = traced_run(counter_model, wide_ladder, 3, tmp_path, nstepmax=2)
        df = Regenerator.from_directory(counter_model, wide_ladder, tmp_path, 0, 2).regenerate(0)
        assert df["lambda"].tolist() == sampler.ensemble[0].trace
        assert df["lambda"].tolist() == [3.0, 4.0, 4.0, 5.0, 5.0, 6.0, 7.0, 7.0, 8.0]

    def test_replay_too_long(self, counter_model, counter_ladder, tmp_path):
        traced_run(counter_model, counter_ladder, 3, tmp_path)
        regenerator = Regenerator.from_directory(CounterModel(ceiling=3), counter_ladder, tmp_path, 0, 10)
        with pytest.raises(PathTooLong):
            regenerator.regenerate(0)

    def test_other_block_ignored(self, counter_model, counter_ladder, tmp_path):
        traced_run(counter_model, counter_ladder, 3, tmp_path)
        seeds = tmp_path / "seeds_block0.csv"
        df = pd.read_csv(seeds)
        df["block"] = 1
        df.to_csv(seeds, index=False)
        with pytest.raises(RegenerationError):
            Regenerator.from_directory(counter_model, counter_ladder, tmp_path, 0, 100).regenerate(0)

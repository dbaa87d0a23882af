import numpy as np
import pandas as pd
import pytest

from run import main
from utils import import_config, parse_args, training_settings


def write_csv(path, seed, n=20):
    rng = np.random.default_rng(seed)
    df = pd.DataFrame(
        rng.integers(1, 5, size=(n, 8)), columns=[f"w{i}" for i in range(8)]
    )
    df["topic"] = rng.choice(["sports", "politics"], size=n)
    df.to_csv(path, index=False)


def write_config(path):
    path.write_text(
        "training:\n"
        "  iterations: 3\n"
        "  alpha: 0.5\n"
        "  debug: False\n"
        "  e_step_iterations: 5\n"
    )


def test_parse_args():
    args = parse_args(["-d", "train.csv", "-k", "5", "-v", "fast", "--seed", "3"])

    assert args.data == "train.csv"
    assert args.n_topics == 5
    assert args.variant == "fast"
    assert args.seed == 3
    assert args.iterations is None
    assert args.label is None


def test_command_line_overrides_config(tmp_path):
    config = tmp_path / "config.yml"
    write_config(config)
    args = parse_args(["-d", "train.csv", "-k", "2", "-i", "7"])

    settings = training_settings(args, import_config(config))

    assert settings["iterations"] == 7
    assert settings["alpha"] == 0.5
    assert settings["debug"] is False
    assert "seed" not in settings


def test_training_settings_without_config():
    args = parse_args(["-d", "train.csv", "-k", "2"])

    assert training_settings(args) == {}


def test_main_scores_the_test_set(tmp_path):
    train, test, config = tmp_path / "train.csv", tmp_path / "test.csv", tmp_path / "config.yml"
    write_csv(train, 0)
    write_csv(test, 1)
    write_config(config)

    results = main(
        ["-d", str(train), "-e", str(test), "-y", "topic", "-k", "2",
         "-v", "correspondence", "-c", str(config), "--seed", "1"]
    )

    assert 0 <= results["stats"]["accuracy"] <= 1
    assert set(results["objects"]["eta"].columns) == {"sports", "politics"}


def test_main_unsupervised_scores_the_training_set(tmp_path):
    train = tmp_path / "train.csv"
    write_csv(train, 2)
    pd.read_csv(train).drop(columns="topic").to_csv(train, index=False)

    results = main(["-d", str(train), "-k", "3", "-i", "2", "--seed", "1"])

    assert results["stats"]["likelihood"] < 0
    assert results["objects"]["beta"].shape == (3, 8)


def test_test_set_columns_are_aligned_with_training(tmp_path):
    train, test, shuffled = tmp_path / "train.csv", tmp_path / "test.csv", tmp_path / "shuffled.csv"
    write_csv(train, 3)
    write_csv(test, 4)
    df = pd.read_csv(test)
    df[list(reversed(df.columns))].to_csv(shuffled, index=False)

    argv = ["-d", str(train), "-y", "topic", "-k", "2", "-v", "multinomial", "-i", "2", "--seed", "1"]
    expected = main(argv + ["-e", str(test)])
    results = main(argv + ["-e", str(shuffled)])

    assert results["stats"]["likelihood"] == pytest.approx(expected["stats"]["likelihood"])
    assert results["stats"]["accuracy"] == expected["stats"]["accuracy"]

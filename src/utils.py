import argparse

from ruamel.yaml import YAML

from lda import VARIANTS


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Supervised and unsupervised LDA with variational EM"
    )
    parser.add_argument(
        "-d",
        "--data",
        dest="data",
        type=str,
        help="CSV file with one row per document and one column per word.",
        required=True,
    )
    parser.add_argument(
        "-y",
        "--label",
        dest="label",
        type=str,
        help="Name of the column with the class of each document. Required by the supervised variants.",
        required=False,
    )
    parser.add_argument(
        "-e",
        "--test",
        dest="test_set",
        type=str,
        help="Optional CSV file, with the same columns as data, to score the model on.",
        required=False,
    )
    parser.add_argument(
        "-k",
        "--topics",
        dest="n_topics",
        type=int,
        help="Number of topics",
        required=True,
    )
    parser.add_argument(
        "-v",
        "--variant",
        dest="variant",
        type=str,
        choices=VARIANTS,
        default="unsupervised",
        help="Which model to fit.",
    )
    parser.add_argument(
        "-i",
        "--iterations",
        type=int,
        dest="iterations",
        default=None,
        help="How many EM iterations should I do?",
    )
    parser.add_argument(
        "-c",
        "--config",
        dest="config",
        type=str,
        default=None,
        help="YAML file with a 'training' section of extra model settings.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        dest="seed",
        default=None,
        help="If you'd like, set a random seed.",
    )

    return parser.parse_args(argv)


def import_config(path_="config.yml"):
    yaml = YAML()
    yaml.default_flow_style = False
    yaml.preserve_quotes = True
    yaml.boolean_representation = ["False", "True"]

    with open(path_, "r") as yml_file:
        cfg = yaml.load(yml_file)

    return cfg


def training_settings(args, cfg=None):
    """Merges the 'training' section of the config with the command line,
    the latter taking precedence."""
    settings = dict(cfg["training"]) if cfg is not None and "training" in cfg else {}

    if args.iterations is not None:
        settings["iterations"] = args.iterations
    if args.seed is not None:
        settings["seed"] = args.seed

    return settings

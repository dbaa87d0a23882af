import pandas as pd

from corpus import corpus_from_dataframe
from lda import LDA
from utils import import_config, parse_args, training_settings


def main(argv=None):
    args = parse_args(argv)
    cfg = import_config(args.config) if args.config is not None else None

    train = corpus_from_dataframe(pd.read_csv(args.data), label_column=args.label)

    model = LDA(
        n_topics=args.n_topics,
        variant=args.variant,
        **training_settings(args, cfg),
    )
    model.fit(train)

    if args.test_set is not None:
        test = corpus_from_dataframe(
            pd.read_csv(args.test_set),
            label_column=args.label,
            labels_dict=getattr(train, "labels_dict", None),
            vocabulary=train.vocabulary,
        )
    else:
        test = train

    return model.score(test)


if __name__ == "__main__":
    main()

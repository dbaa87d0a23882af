# benchmark_lda.py
import argparse
import time

import numpy as np

from corpus import ClassificationCorpus
from lda import LDA, VARIANTS


# ------------------------------ helpers ---------------------------------

def mock_corpus(seed: int = 0,
                n_docs: int = 1_000,
                n_words: int = 500,
                n_classes: int = 5) -> ClassificationCorpus:
    """Generate a random labelled corpus like the unit-tests.

    Word counts are exponentially distributed, labels uniform.
    """
    rng = np.random.default_rng(seed)

    return ClassificationCorpus(
        rng.exponential(scale=2.0, size=(n_docs, n_words)).astype(np.int64),
        rng.integers(0, n_classes, size=n_docs),
        n_classes=n_classes,
    )


# ------------------------------ benchmark --------------------------------

def main():
    parser = argparse.ArgumentParser(description="Benchmark LDA training and inference speed.")
    parser.add_argument("--n_docs", type=int, default=1_000, help="Number of documents to simulate.")
    parser.add_argument("--n_words", type=int, default=500, help="Vocabulary size.")
    parser.add_argument("--iterations", type=int, default=5, help="EM iterations.")
    parser.add_argument("--topics", type=int, default=10, help="Number of topics.")
    parser.add_argument("--variant", type=str, default="unsupervised", choices=VARIANTS, help="Model variant.")
    parser.add_argument("--backend", type=str, default="numpy", help="Backend to use. Options: numpy, numba.")
    args = parser.parse_args()

    # Generate data
    corpus = mock_corpus(n_docs=args.n_docs, n_words=args.n_words)

    model = LDA(
        args.topics,
        variant=args.variant,
        iterations=args.iterations,
        seed=0,
        backend=args.backend,
        compute_likelihood=0.1,
    )

    # --- training time ---------------------------------------------------
    t0 = time.perf_counter()
    model.fit(corpus, silent=True)
    train_time = time.perf_counter() - t0

    # --- inference time --------------------------------------------------
    t1 = time.perf_counter()
    _ = model.transform(corpus)
    transform_time = time.perf_counter() - t1

    print(
        f"Training time:   {train_time:8.3f} s\n"
        f"Inference time:  {transform_time:8.3f} s\n"
        f"Total time:      {train_time + transform_time:8.3f} s"
    )


if __name__ == "__main__":
    main()

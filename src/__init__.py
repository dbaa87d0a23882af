from lda import LDA, build_steps
from expectation_maximization import ExpectationMaximization
from e_steps import (
    UnsupervisedEStep,
    MultinomialSupervisedEStep,
    CorrespondenceSupervisedEStep,
    FastSupervisedEStep,
)
from m_steps import (
    UnsupervisedMStep,
    MultinomialSupervisedMStep,
    CorrespondenceSupervisedMStep,
    FastSupervisedMStep,
    FastOnlineSupervisedMStep,
)
from parameters import ModelParameters, SupervisedModelParameters, VariationalParameters
from corpus import Corpus, ClassificationCorpus, corpus_from_dataframe

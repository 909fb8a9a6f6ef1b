"""
GrammarGen Evaluation System

This module implements fitness scoring of grammar trees against the
training corpus. A grammar earns 1.0 for every line it fully matches and
partial credit (its count of literal sub-matches) for every line it does
not, summed over the corpus without normalization.
"""

import logging
from concurrent.futures import ProcessPoolExecutor
from typing import Iterable, List, Optional, Sequence, Tuple

from .core import GrammarTree

logger = logging.getLogger(__name__)


def evaluate_grammar(tree: GrammarTree, corpus: Iterable[str]) -> float:
    """
    Score a grammar against every line of a corpus.

    Args:
        tree: Grammar to score
        corpus: Example strings

    Returns:
        Sum of ``tree.evaluate(line)`` over all lines
    """
    return sum(tree.evaluate(line) for line in corpus)


def match_rate(tree: GrammarTree, corpus: Sequence[str]) -> float:
    """Fraction of corpus lines the grammar fully matches."""
    if not corpus:
        return 0.0
    return sum(1 for line in corpus if tree.match(line)) / len(corpus)


# Corpus installed in each worker process by _init_worker
_worker_corpus: Tuple[str, ...] = ()


def _init_worker(lines: Tuple[str, ...]) -> None:
    global _worker_corpus
    _worker_corpus = lines


def _evaluate_in_worker(tree: GrammarTree) -> float:
    return evaluate_grammar(tree, _worker_corpus)


class FitnessEvaluator:
    """
    Scores grammars against a fixed, read-only corpus.

    With ``workers > 1`` a batch of grammars is scored in a process pool.
    The pool is started on the first batch and reused until ``close()``;
    each worker receives the corpus once, when it starts. Workers only read
    the trees and the corpus, and scores come back in input order, so
    parallel evaluation never changes the outcome of a run.
    """

    def __init__(self, corpus: Iterable[str], workers: int = 1):
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.corpus: Tuple[str, ...] = tuple(corpus)
        self.workers = workers
        self.total_evaluations = 0
        self._executor: Optional[ProcessPoolExecutor] = None

    def __enter__(self) -> 'FitnessEvaluator':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def evaluate(self, tree: GrammarTree) -> float:
        """Score one grammar."""
        self.total_evaluations += 1
        return evaluate_grammar(tree, self.corpus)

    def evaluate_many(self, trees: Sequence[GrammarTree]) -> List[float]:
        """
        Score a batch of grammars.

        Returns:
            Scores in the same order as ``trees``
        """
        if self.workers == 1 or len(trees) < 2:
            return [self.evaluate(tree) for tree in trees]

        if self._executor is None:
            logger.debug(f"Starting evaluation pool with {self.workers} workers")
            self._executor = ProcessPoolExecutor(max_workers=self.workers,
                                                 initializer=_init_worker,
                                                 initargs=(self.corpus,))
        scores = list(self._executor.map(_evaluate_in_worker, trees))
        self.total_evaluations += len(trees)
        return scores

    @property
    def running(self) -> bool:
        """True while a worker pool is alive."""
        return self._executor is not None

    def close(self) -> None:
        """Shut down the worker pool, if one was started."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

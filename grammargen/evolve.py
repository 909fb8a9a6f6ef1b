"""
GrammarGen Evolution System

This module implements the generational genetic-programming loop that
searches for grammars explaining a corpus. Each generation is scored,
ranked, and rebuilt from elites, point mutants and crossover offspring,
chosen with linear rank-weighted roulette selection. The search stops once
the best fitness has stagnated for long enough.
"""

import itertools
import logging
import math
import random
import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, TextIO, Tuple

import numpy as np

from .builder import DEFAULT_ALPHABET, create_initial_population
from .config import GrammarGenConfig
from .core import GrammarTree
from .corpus import Corpus, read_corpus
from .eval import FitnessEvaluator
from .mutation import create_crossed_tree, mutate_tree, optimize_tree
from .verify import MAX_DEPTH

logger = logging.getLogger(__name__)


class EngineState(Enum):
    """Lifecycle of a search."""
    CREATED = "created"
    INITIALIZED = "initialized"
    EVALUATED = "evaluated"
    ADVANCED = "advanced"
    CONVERGED = "converged"


@dataclass
class Individual:
    """Represents an individual (one grammar) in the population."""
    grammar: GrammarTree
    fitness: Optional[float] = None
    generation: int = 0
    origin: str = "init"
    parent_ids: Tuple[int, ...] = ()
    individual_id: Optional[int] = None

    def __post_init__(self):
        if self.individual_id is None:
            self.individual_id = id(self)

    def size(self) -> int:
        """Return the number of nodes in the grammar."""
        return self.grammar.node_count()

    def cost(self) -> int:
        """Return the structural cost of the grammar."""
        return self.grammar.size()


def rank_weights(n: int) -> np.ndarray:
    """
    Linear rank weights for a fitness-sorted population.

    The best individual gets weight ``n`` and the worst weight 1, so
    selection pressure does not depend on the scale of the raw fitness.
    """
    return np.arange(n, 0, -1, dtype=float)


def rank_select(individuals: Sequence[Individual], weights: Sequence[float],
                rng: random.Random) -> Individual:
    """
    Roulette-wheel selection over rank weights.

    Draws ``r`` uniformly in [0, sum(weights)] and walks the list subtracting
    each weight until ``r <= 0``. If all weights are zero a uniformly random
    individual is returned instead.

    Raises:
        ValueError: If ``individuals`` is empty or lengths differ
    """
    if not individuals:
        raise ValueError("Cannot select from an empty set of individuals")
    if len(individuals) != len(weights):
        raise ValueError(f"Got {len(weights)} weights for {len(individuals)} individuals")

    total = float(sum(weights))
    if total <= 0.0:
        logger.debug("All selection weights are zero, falling back to a uniform pick")
        return rng.choice(individuals)

    r = rng.uniform(0.0, total)
    for individual, weight in zip(individuals, weights):
        r -= weight
        if r <= 0.0:
            return individual
    return individuals[-1]


def slot_counts(population_size: int, elite_ratio: float,
                mutation_ratio: float) -> Tuple[int, int, int]:
    """
    Split a generation into elite, mutation and crossover slots.

    Elite and mutation counts are ``floor(ratio * population_size)``
    (truncated, never rounded); crossover fills whatever remains.

    Returns:
        Tuple of (elites, mutants, crossover offspring)
    """
    elites = min(population_size, math.floor(elite_ratio * population_size))
    mutants = min(population_size - elites, math.floor(mutation_ratio * population_size))
    return elites, mutants, population_size - elites - mutants


class EvolutionEngine:
    """
    Generational genetic programming over grammar trees.

    One generation (``update``):
    1. Evaluate every individual against the corpus
    2. Sort by fitness, best first, and assign linear rank weights
    3. Carry over the top ``elite_ratio`` share unchanged
    4. Fill ``mutation_ratio`` share with point mutants of rank-selected parents
    5. Fill the rest with crossover offspring of rank-selected parent pairs

    Offspring deeper than ``max_depth`` are replaced by a copy of their
    (first) parent, so every saved population can be loaded back.

    ``run`` repeats generations until the best fitness has not changed for
    more than ``max_unmodified_count`` consecutive generations.

    Parsing explores every branch of every alternation and optional, so
    grammars with many optionals under concatenations can take time
    exponential in their depth to evaluate.
    """

    def __init__(self, population_size: int = 10, node_budget: int = 100,
                 elite_ratio: float = 0.05, mutation_ratio: float = 0.05,
                 max_unmodified_count: int = 10, max_generations: Optional[int] = None,
                 seed: Optional[int] = None, alphabet: str = DEFAULT_ALPHABET,
                 workers: int = 1, max_depth: int = MAX_DEPTH,
                 rng: Optional[random.Random] = None):
        """
        Initialize the evolution engine.

        Args:
            population_size: Number of individuals per generation
            node_budget: Node budget for each initial random grammar
            elite_ratio: Share of each generation carried over unchanged
            mutation_ratio: Share of each generation produced by mutation
            max_unmodified_count: Stagnant generations tolerated before stopping
            max_generations: Optional hard cap on generations (None = unbounded)
            seed: Random seed for reproducibility (ignored if rng is given)
            alphabet: Characters random literals are drawn from
            workers: Processes used for fitness evaluation
            max_depth: Deepest offspring admitted into the population
            rng: Explicit random number generator
        """
        if population_size < 1:
            raise ValueError(f"population_size must be at least 1, got {population_size}")
        if node_budget < 1:
            raise ValueError(f"node_budget must be at least 1, got {node_budget}")
        if max_generations is not None and max_generations < 1:
            raise ValueError(f"max_generations must be at least 1, got {max_generations}")
        if not alphabet:
            raise ValueError("alphabet must not be empty")
        if max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {max_depth}")

        self.population_size = population_size
        self.node_budget = node_budget
        self.elite_ratio = elite_ratio
        self.mutation_ratio = mutation_ratio
        self.max_unmodified_count = max_unmodified_count
        self.max_generations = max_generations
        self.alphabet = alphabet
        self.workers = workers
        self.max_depth = max_depth

        # Set up random number generator
        self.rng = rng if rng is not None else random.Random(seed)

        # Search state
        self.corpus = Corpus()
        self.evaluator: Optional[FitnessEvaluator] = None
        self.population: List[Individual] = []
        self.generation = 0
        self.state = EngineState.CREATED
        self.best_individual: Optional[Individual] = None
        self.unmodified_count = 0
        self.history: List[Dict] = []
        self._ids = itertools.count()

        # Statistics
        self.total_mutations = 0
        self.total_crossovers = 0
        self.total_rejected = 0

        logger.info(f"Initialized evolution engine: population={population_size}, "
                    f"nodes={node_budget}, elite_ratio={elite_ratio}, "
                    f"mutation_ratio={mutation_ratio}, max_unmodified={max_unmodified_count}")

    @classmethod
    def from_config(cls, config: GrammarGenConfig) -> 'EvolutionEngine':
        """Build an engine from a validated configuration."""
        search = config.search
        search.validate()
        return cls(population_size=search.population_size,
                   node_budget=search.node_budget,
                   elite_ratio=search.elite_ratio,
                   mutation_ratio=search.mutation_ratio,
                   max_unmodified_count=search.max_unmodified_count,
                   max_generations=search.max_generations,
                   seed=search.seed,
                   alphabet=config.grammar.literal_alphabet,
                   workers=search.workers,
                   max_depth=search.max_depth)

    # Validated settings

    @property
    def elite_ratio(self) -> float:
        return self._elite_ratio

    @elite_ratio.setter
    def elite_ratio(self, value: float) -> None:
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"elite_ratio must be in [0, 1], got {value}")
        self._elite_ratio = value

    @property
    def mutation_ratio(self) -> float:
        return self._mutation_ratio

    @mutation_ratio.setter
    def mutation_ratio(self, value: float) -> None:
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"mutation_ratio must be in [0, 1], got {value}")
        self._mutation_ratio = value

    @property
    def max_unmodified_count(self) -> int:
        return self._max_unmodified_count

    @max_unmodified_count.setter
    def max_unmodified_count(self, value: int) -> None:
        if value < 0:
            raise ValueError(f"max_unmodified_count must be non-negative, got {value}")
        self._max_unmodified_count = value

    @property
    def converged(self) -> bool:
        return self.state is EngineState.CONVERGED

    # Corpus

    def read_input(self, path) -> None:
        """Append every line of a text file to the corpus."""
        read_corpus(path, self.corpus)

    def append_input(self, line: str) -> None:
        """Append one example string to the corpus."""
        self.corpus.append(line)

    # Population

    def _new_individual(self, grammar: GrammarTree, origin: str,
                        parents: Iterable[Individual] = (),
                        fitness: Optional[float] = None) -> Individual:
        return Individual(grammar=grammar,
                          fitness=fitness,
                          generation=self.generation,
                          origin=origin,
                          parent_ids=tuple(p.individual_id for p in parents),
                          individual_id=next(self._ids))

    def initialize_population(self, population_size: Optional[int] = None,
                              node_budget: Optional[int] = None) -> None:
        """
        Fill the population with random, canonicalized grammars.

        Args:
            population_size: Overrides the engine's population size
            node_budget: Overrides the engine's node budget
        """
        if population_size is not None:
            if population_size < 1:
                raise ValueError(f"population_size must be at least 1, got {population_size}")
            self.population_size = population_size
        if node_budget is not None:
            if node_budget < 1:
                raise ValueError(f"node_budget must be at least 1, got {node_budget}")
            self.node_budget = node_budget

        trees = create_initial_population(self.population_size, self.node_budget,
                                          self.rng, self.alphabet)
        self.generation = 0
        self.population = [
            self._new_individual(optimize_tree(tree, self.rng, self.alphabet), "init")
            for tree in trees
        ]
        self.state = EngineState.INITIALIZED

        logger.info(f"Initialized population with {len(self.population)} individuals")

    def set_population(self, grammars: Iterable[GrammarTree]) -> None:
        """
        Replace the population with the given grammars (copied).

        Used to resume a search from saved grammars.
        """
        population = [self._new_individual(tree.clone(), "init") for tree in grammars]
        if not population:
            raise ValueError("Population must contain at least one grammar")
        self.population = population
        self.population_size = len(population)
        self.state = EngineState.INITIALIZED

    # Generation step

    def evaluate_population(self) -> None:
        """
        Score every individual that has no fitness yet.

        Elites keep the fitness they were carried over with; evaluation is
        deterministic so re-scoring them would give the same value.
        """
        if self.evaluator is None:
            if len(self.corpus) == 0:
                logger.warning("Evaluating against an empty corpus; every fitness will be 0")
            self.corpus.freeze()
            self.evaluator = FitnessEvaluator(self.corpus, workers=self.workers)

        pending = [ind for ind in self.population if ind.fitness is None]
        scores = self.evaluator.evaluate_many([ind.grammar for ind in pending])
        for individual, score in zip(pending, scores):
            individual.fitness = score
            logger.debug(f"Evaluated individual {individual.individual_id}: F={score:.4f} "
                         f"{individual.grammar.render()}")

        self.state = EngineState.EVALUATED

    def update(self) -> Dict:
        """
        Evolve one generation.

        Returns:
            Statistics of the generation that was just evaluated

        Raises:
            RuntimeError: If the population has not been initialized
        """
        if not self.population:
            raise RuntimeError("Population is empty; call initialize_population() first")

        start_time = time.time()
        self.evaluate_population()

        # Stable sort keeps ties in population order
        ranked = sorted(self.population, key=lambda ind: ind.fitness, reverse=True)
        weights = rank_weights(len(ranked))
        self.best_individual = ranked[0]
        stats = self._generation_stats(ranked)

        n_elite, n_mutation, n_crossover = slot_counts(
            len(ranked), self.elite_ratio, self.mutation_ratio
        )

        self.generation += 1
        next_population: List[Individual] = []

        for elite in ranked[:n_elite]:
            next_population.append(self._new_individual(
                elite.grammar.clone(), "elite", [elite], fitness=elite.fitness
            ))

        for _ in range(n_mutation):
            parent = rank_select(ranked, weights, self.rng)
            child = mutate_tree(parent.grammar, self.rng, self.alphabet)
            child = self._admit(child, parent)
            next_population.append(self._new_individual(child, "mutation", [parent]))
            self.total_mutations += 1

        for _ in range(n_crossover):
            first = rank_select(ranked, weights, self.rng)
            second = rank_select(ranked, weights, self.rng)
            child, _ = create_crossed_tree(first.grammar, second.grammar, self.rng)
            optimize_tree(child, self.rng, self.alphabet)
            child = self._admit(child, first)
            next_population.append(self._new_individual(child, "crossover", [first, second]))
            self.total_crossovers += 1

        stats.update({
            'elites': n_elite,
            'mutants': n_mutation,
            'crossovers': n_crossover,
            'generation_time': time.time() - start_time,
        })
        self.history.append(stats)

        self.population = next_population
        self.state = EngineState.ADVANCED

        logger.info(f"Generation {stats['generation']}: "
                    f"best_F={stats['best_fitness']:.4f}, "
                    f"median_F={stats['median_fitness']:.4f}, "
                    f"best_size={stats['best_size']}")
        return stats

    def _admit(self, child: GrammarTree, parent: Individual) -> GrammarTree:
        """Return ``child``, or a copy of its parent if the child is too deep."""
        depth = child.depth()
        if depth <= self.max_depth:
            return child
        self.total_rejected += 1
        logger.debug(f"Rejected offspring of depth {depth} (max {self.max_depth}), "
                     f"keeping parent {parent.individual_id}")
        return parent.grammar.clone()

    def _generation_stats(self, ranked: List[Individual]) -> Dict:
        fitnesses = np.array([ind.fitness for ind in ranked], dtype=float)
        sizes = np.array([ind.size() for ind in ranked], dtype=float)
        best = ranked[0]
        return {
            'generation': self.generation,
            'best_fitness': best.fitness,
            'median_fitness': float(np.median(fitnesses)),
            'mean_fitness': float(np.mean(fitnesses)),
            'worst_fitness': float(fitnesses[-1]),
            'fitness_std': float(np.std(fitnesses)),
            'best_size': best.size(),
            'best_cost': best.cost(),
            'mean_size': float(np.mean(sizes)),
            'best_grammar': best.grammar.render(),
            'total_evaluations': self.evaluator.total_evaluations,
        }

    # Search loop

    def run(self, progress_callback: Optional[Callable[[int, Dict], None]] = None) -> List[Dict]:
        """
        Run generations until the best fitness stagnates.

        The best fitness of each completed generation is compared (exactly)
        with the previous generation's. Equal values increment the
        stagnation counter; anything else resets it and logs the new best
        grammar. The run stops once the counter exceeds
        ``max_unmodified_count``, or after ``max_generations`` if set. The
        evaluation worker pool is shut down when the loop exits.

        Args:
            progress_callback: Optional callback(generation, stats)

        Returns:
            List of generation statistics
        """
        if not self.population:
            self.initialize_population()

        logger.info(f"Starting grammar search on {len(self.corpus)} corpus lines")

        previous_best: Optional[float] = None
        self.unmodified_count = 0
        generations = 0

        try:
            while True:
                stats = self.update()
                generations += 1
                best = stats['best_fitness']

                if previous_best is not None and best == previous_best:
                    self.unmodified_count += 1
                else:
                    self.unmodified_count = 0
                    logger.info(f"New best F={best:.4f} at generation {stats['generation']}: "
                                f"{stats['best_grammar']}")
                previous_best = best

                if progress_callback:
                    progress_callback(stats['generation'], stats)

                if self.unmodified_count > self.max_unmodified_count:
                    self.state = EngineState.CONVERGED
                    logger.info(f"Converged after {generations} generations "
                                f"({self.unmodified_count} without improvement)")
                    break

                if self.max_generations is not None and generations >= self.max_generations:
                    logger.info(f"Stopping at generation cap of {self.max_generations}")
                    break
        finally:
            self.close()

        return self.history

    def close(self) -> None:
        """Release the evaluation worker pool. ``run`` calls this on exit."""
        if self.evaluator is not None:
            self.evaluator.close()

    # Reporting

    def get_best_individual(self) -> Optional[Individual]:
        """Get the best individual of the last evaluated generation."""
        return self.best_individual

    def get_population_summary(self) -> Dict:
        """Get summary statistics of the current population."""
        if not self.population:
            return {}

        fitnesses = np.array([ind.fitness for ind in self.population
                              if ind.fitness is not None], dtype=float)
        sizes = np.array([ind.size() for ind in self.population])
        origins: Dict[str, int] = {}
        for ind in self.population:
            origins[ind.origin] = origins.get(ind.origin, 0) + 1

        summary = {
            'population_size': len(self.population),
            'generation': self.generation,
            'state': self.state.value,
            'evaluated': int(fitnesses.size),
            'mean_size': float(sizes.mean()),
            'size_range': (int(sizes.min()), int(sizes.max())),
            'origins': origins,
        }
        if fitnesses.size:
            summary.update({
                'best_fitness': float(fitnesses.max()),
                'worst_fitness': float(fitnesses.min()),
                'mean_fitness': float(fitnesses.mean()),
                'fitness_std': float(fitnesses.std()),
            })
        return summary

    def format_population(self) -> List[str]:
        """Render every grammar in the population, in population order."""
        return [ind.grammar.render() for ind in self.population]

    def print_population(self, out: Optional[TextIO] = None) -> None:
        """Write one grammar rendering per line."""
        out = out if out is not None else sys.stdout
        for line in self.format_population():
            out.write(line + "\n")


def run_grammar_search(lines: Iterable[str], population_size: int = 10,
                       node_budget: int = 100, elite_ratio: float = 0.05,
                       mutation_ratio: float = 0.05, max_unmodified_count: int = 10,
                       max_generations: Optional[int] = None,
                       seed: Optional[int] = None) -> Dict:
    """
    Run a complete grammar search over the given example strings.

    Returns:
        Results dictionary with best individual and statistics
    """
    engine = EvolutionEngine(population_size=population_size, node_budget=node_budget,
                             elite_ratio=elite_ratio, mutation_ratio=mutation_ratio,
                             max_unmodified_count=max_unmodified_count,
                             max_generations=max_generations, seed=seed)
    for line in lines:
        engine.append_input(line)

    engine.initialize_population()
    history = engine.run()

    return {
        'best_individual': engine.get_best_individual(),
        'final_population': engine.population,
        'history': history,
        'summary': engine.get_population_summary(),
        'converged': engine.converged,
        'total_evaluations': engine.evaluator.total_evaluations,
    }

"""
GrammarGen Metrics

Per-generation metrics logging to CSV and JSON, with plateau detection
over a sliding window of best-fitness values.
"""

import csv
import json
import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, List

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class GenerationMetrics:
    """Metrics for a single generation."""
    generation: int
    timestamp: float

    # Fitness metrics
    best_fitness: float
    median_fitness: float
    mean_fitness: float
    fitness_std: float

    # Population metrics
    best_size: int
    best_cost: int
    mean_size: float

    # Breeding
    elites: int
    mutants: int
    crossovers: int

    # Performance metrics
    total_evaluations: int
    generation_time: float

    @classmethod
    def from_stats(cls, stats: Dict) -> 'GenerationMetrics':
        """Build metrics from an ``EvolutionEngine.update`` statistics dict."""
        return cls(
            generation=stats['generation'],
            timestamp=time.time(),
            best_fitness=stats['best_fitness'],
            median_fitness=stats['median_fitness'],
            mean_fitness=stats['mean_fitness'],
            fitness_std=stats['fitness_std'],
            best_size=stats['best_size'],
            best_cost=stats['best_cost'],
            mean_size=stats['mean_size'],
            elites=stats['elites'],
            mutants=stats['mutants'],
            crossovers=stats['crossovers'],
            total_evaluations=stats['total_evaluations'],
            generation_time=stats['generation_time'],
        )


class MetricsLogger:
    """
    Metrics logging system.

    Appends one CSV row per generation and rewrites a JSON file holding the
    full history.
    """

    def __init__(self, log_dir: str = "logs", experiment_name: str = "grammargen_run",
                 plateau_window: int = 10, plateau_threshold: float = 1e-9):
        """
        Initialize metrics logger.

        Args:
            log_dir: Directory for log files
            experiment_name: Prefix of the log file names
            plateau_window: Generations considered by plateau detection
            plateau_threshold: Best-fitness standard deviation below which
                the window counts as a plateau
        """
        self.log_dir = Path(log_dir)
        self.experiment_name = experiment_name
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.csv_path = self.log_dir / f"{experiment_name}_metrics.csv"
        self.json_path = self.log_dir / f"{experiment_name}_metrics.json"

        self.metrics_history: List[GenerationMetrics] = []
        self.plateau_window = plateau_window
        self.plateau_threshold = plateau_threshold

        self._init_csv()
        logger.info(f"Metrics logger initialized: {self.log_dir}")

    def _init_csv(self):
        """Initialize CSV file with headers."""
        if not self.csv_path.exists():
            fields = list(GenerationMetrics.__dataclass_fields__.keys())
            with open(self.csv_path, 'w', newline='') as f:
                writer = csv.writer(f)
                writer.writerow(fields)

    def log_generation(self, metrics: GenerationMetrics) -> None:
        """
        Log metrics for a generation.

        Args:
            metrics: Generation metrics to log
        """
        self.metrics_history.append(metrics)

        with open(self.csv_path, 'a', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(asdict(metrics).values())

        self._update_json()

        if self.detect_plateau():
            logger.info(f"Plateau detected at generation {metrics.generation}")

    def log_stats(self, generation: int, stats: Dict) -> None:
        """Progress-callback adapter for ``EvolutionEngine.run``."""
        self.log_generation(GenerationMetrics.from_stats(stats))

    def _update_json(self):
        """Update JSON file with all metrics."""
        data = {
            'experiment_name': self.experiment_name,
            'timestamp': time.time(),
            'total_generations': len(self.metrics_history),
            'metrics': [asdict(m) for m in self.metrics_history]
        }

        with open(self.json_path, 'w') as f:
            json.dump(data, f, indent=2)

    def detect_plateau(self) -> bool:
        """Detect if best fitness has been flat over the last window."""
        if len(self.metrics_history) < self.plateau_window:
            return False

        recent = [m.best_fitness for m in self.metrics_history[-self.plateau_window:]]
        return float(np.std(recent)) < self.plateau_threshold

    def summary(self) -> Dict:
        """Summarize the logged history."""
        if not self.metrics_history:
            return {}
        best = np.array([m.best_fitness for m in self.metrics_history])
        return {
            'generations': len(self.metrics_history),
            'final_best_fitness': float(best[-1]),
            'peak_best_fitness': float(best.max()),
            'total_time': float(sum(m.generation_time for m in self.metrics_history)),
        }

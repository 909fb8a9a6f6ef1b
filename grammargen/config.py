"""
GrammarGen Configuration

This module provides configuration settings for the grammar search,
random grammar generation and logging.
"""

import logging
import string
from dataclasses import dataclass
from typing import Optional

from .verify import MAX_DEPTH


@dataclass
class SearchConfig:
    """Configuration for the generational search."""
    population_size: int = 10
    node_budget: int = 100
    elite_ratio: float = 0.05
    mutation_ratio: float = 0.05
    max_unmodified_count: int = 10
    max_generations: Optional[int] = None
    seed: Optional[int] = None
    workers: int = 1
    max_depth: int = MAX_DEPTH

    def validate(self) -> None:
        """
        Check every setting is in range.

        Raises:
            ValueError: On the first out-of-range setting
        """
        if self.population_size < 1:
            raise ValueError(f"population_size must be at least 1, got {self.population_size}")
        if self.node_budget < 1:
            raise ValueError(f"node_budget must be at least 1, got {self.node_budget}")
        if not 0.0 <= self.elite_ratio <= 1.0:
            raise ValueError(f"elite_ratio must be in [0, 1], got {self.elite_ratio}")
        if not 0.0 <= self.mutation_ratio <= 1.0:
            raise ValueError(f"mutation_ratio must be in [0, 1], got {self.mutation_ratio}")
        if self.max_unmodified_count < 0:
            raise ValueError(f"max_unmodified_count must be non-negative, got {self.max_unmodified_count}")
        if self.max_generations is not None and self.max_generations < 1:
            raise ValueError(f"max_generations must be at least 1, got {self.max_generations}")
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be at least 1, got {self.max_depth}")


@dataclass
class GrammarConfig:
    """Configuration for random grammar generation."""
    literal_alphabet: str = string.printable


@dataclass
class GrammarGenConfig:
    """Main configuration for the GrammarGen system."""
    search: SearchConfig = None
    grammar: GrammarConfig = None
    log_level: str = "INFO"

    def __post_init__(self):
        if self.search is None:
            self.search = SearchConfig()
        if self.grammar is None:
            self.grammar = GrammarConfig()


# Global configuration instance
_config: Optional[GrammarGenConfig] = None


def get_config() -> GrammarGenConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = GrammarGenConfig()
    return _config


def set_config(config: GrammarGenConfig) -> None:
    """Set the global configuration instance."""
    global _config
    config.search.validate()
    _config = config


def setup_logging(level: str = "INFO") -> None:
    """Setup logging for GrammarGen."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

"""
GrammarGen Reproducibility Bundle

Saves everything needed to inspect or resume a grammar search in one
folder:
- config.json: search configuration
- population.json: every grammar of the final population
- best_grammar.txt: rendering of the best grammar
- metadata.json: run statistics and environment information

Grammars are stored as JSON arena records, one object per node with its
kind, payload and child indices.
"""

import json
import logging
import time
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from .core import GrammarNode, GrammarTree, NodeKind
from .utils import collect_run_metadata
from .verify import verify_tree

logger = logging.getLogger(__name__)

BUNDLE_FORMAT_VERSION = 1


def grammar_to_dict(tree: GrammarTree) -> Dict[str, Any]:
    """Serialize a grammar as its compacted arena."""
    compact = tree.clone()
    return {
        'root': compact.root,
        'nodes': [
            {
                'kind': node.kind.value,
                'payload': node.payload,
                'first': node.first,
                'second': node.second,
            }
            for node in compact.nodes
        ],
    }


def grammar_from_dict(data: Dict[str, Any]) -> GrammarTree:
    """
    Rebuild a grammar from ``grammar_to_dict`` output.

    Raises:
        ValueError: If the data is malformed or the grammar fails verification
    """
    try:
        nodes = [
            GrammarNode(NodeKind(record['kind']), record.get('payload'),
                        record.get('first'), record.get('second'))
            for record in data['nodes']
        ]
        tree = GrammarTree(nodes, data['root'])
    except (AttributeError, KeyError, TypeError) as e:
        raise ValueError(f"Malformed grammar record: {e}") from e

    is_valid, errors = verify_tree(tree)
    if not is_valid:
        raise ValueError(f"Invalid grammar: {'; '.join(errors)}")
    return tree


def save_grammars(path: Union[str, Path], grammars: Iterable[GrammarTree]) -> None:
    """Write grammars to a JSON file."""
    data = {
        'bundle_format_version': BUNDLE_FORMAT_VERSION,
        'grammars': [grammar_to_dict(tree) for tree in grammars],
    }
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump(data, f, indent=2)


def load_grammars(path: Union[str, Path]) -> List[GrammarTree]:
    """
    Read grammars written by ``save_grammars``.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a valid grammar file
    """
    with open(path, 'r') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in grammar file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Grammar file {path} must hold a JSON object, got {type(data).__name__}")

    version = data.get('bundle_format_version')
    if version != BUNDLE_FORMAT_VERSION:
        raise ValueError(f"Unsupported grammar file version: {version}")

    return [grammar_from_dict(record) for record in data.get('grammars', [])]


class ReproBundle:
    """
    Reproducibility bundle for a grammar search.

    Saves all information needed to inspect a finished run and to resume
    the search from its final population.
    """

    def __init__(self, bundle_dir: Union[str, Path]):
        """
        Initialize reproducibility bundle.

        Args:
            bundle_dir: Directory to store bundle files
        """
        self.bundle_dir = Path(bundle_dir)

        self.config_path = self.bundle_dir / "config.json"
        self.population_path = self.bundle_dir / "population.json"
        self.best_grammar_path = self.bundle_dir / "best_grammar.txt"
        self.metadata_path = self.bundle_dir / "metadata.json"

    def save_run(self, engine, config: Any, final_stats: Dict[str, Any]) -> Path:
        """
        Save a complete search run.

        Args:
            engine: EvolutionEngine with final state
            config: Configuration used for the run (dataclass or dict)
            final_stats: Final statistics from the run

        Returns:
            Path to the bundle directory
        """
        self.bundle_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Saving reproducibility bundle to {self.bundle_dir}")

        config_data = asdict(config) if is_dataclass(config) else dict(config)
        with open(self.config_path, 'w') as f:
            json.dump(config_data, f, indent=2)

        save_grammars(self.population_path, [ind.grammar for ind in engine.population])

        best = engine.get_best_individual()
        if best is not None:
            with open(self.best_grammar_path, 'w') as f:
                f.write(best.grammar.render() + "\n")

        metadata = collect_run_metadata()
        metadata['timestamp'] = time.strftime("%Y-%m-%d %H:%M:%S UTC", time.gmtime())
        metadata.update({
            'bundle_format_version': BUNDLE_FORMAT_VERSION,
            'generations': engine.generation,
            'converged': engine.converged,
            'corpus_lines': len(engine.corpus),
            'best_fitness': best.fitness if best is not None else None,
            'final_stats': final_stats,
        })
        with open(self.metadata_path, 'w') as f:
            json.dump(metadata, f, indent=2, default=str)

        return self.bundle_dir

    def _load_object(self, path: Path) -> Dict[str, Any]:
        with open(path, 'r') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{path.name} must hold a JSON object, got {type(data).__name__}")
        return data

    def load_config(self) -> Dict[str, Any]:
        return self._load_object(self.config_path)

    def load_metadata(self) -> Dict[str, Any]:
        return self._load_object(self.metadata_path)

    def load_population(self) -> List[GrammarTree]:
        """Load and verify the saved population."""
        return load_grammars(self.population_path)

    def load_best_grammar_text(self) -> str:
        with open(self.best_grammar_path, 'r') as f:
            return f.read().strip()

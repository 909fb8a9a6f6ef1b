"""
GrammarGen: grammar induction by genetic programming.

This package evolves small grammars, expressed as trees of parsing
combinators (literal, concatenation, alternation, optional), that best
explain a corpus of example strings.
"""

__version__ = "0.1.0"

from .core import GrammarNode, GrammarTree, NodeKind, ParseContext, word, cat, alt, opt, render, clone_grammar
from .builder import generate_node, generate_tree
from .mutation import iter_nodes, random_select_node, mutate_node, optimize_tree, create_crossed_tree
from .eval import evaluate_grammar, FitnessEvaluator
from .evolve import EvolutionEngine, Individual
from .verify import verify_tree

__all__ = [
    "GrammarNode", "GrammarTree", "NodeKind", "ParseContext",
    "word", "cat", "alt", "opt", "render", "clone_grammar",
    "generate_node", "generate_tree",
    "iter_nodes", "random_select_node", "mutate_node", "optimize_tree", "create_crossed_tree",
    "evaluate_grammar", "FitnessEvaluator", "EvolutionEngine", "Individual", "verify_tree",
]

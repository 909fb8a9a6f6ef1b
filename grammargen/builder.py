"""
GrammarGen Tree Builder

Random construction of grammar nodes and whole grammar trees.
"""

import logging
import random
import string
from typing import List, Tuple

from .core import GrammarNode, GrammarTree, NodeKind

logger = logging.getLogger(__name__)

# Characters a randomly generated literal may carry
DEFAULT_ALPHABET = string.printable

# Kinds generate_node picks from, uniformly
NODE_KINDS = (NodeKind.JOIN, NodeKind.OR, NodeKind.LITERAL, NodeKind.OPTIONAL)


def generate_node(rng: random.Random, alphabet: str = DEFAULT_ALPHABET) -> GrammarNode:
    """
    Create one randomly chosen node with empty child slots.

    Args:
        rng: Random number generator
        alphabet: Characters a literal payload is drawn from

    Returns:
        A fresh concatenation, alternation, optional or one-character literal
    """
    kind = rng.choice(NODE_KINDS)
    if kind is NodeKind.LITERAL:
        if not alphabet:
            raise ValueError("Literal alphabet must not be empty")
        return GrammarNode(kind, rng.choice(alphabet))
    return GrammarNode(kind)


def _open_slots(index: int, node: GrammarNode) -> List[Tuple[int, str]]:
    """Child slots of a freshly created node, per its arity."""
    return [(index, slot) for slot in ("first", "second")[:node.arity]]


def generate_tree(node_budget: int, rng: random.Random,
                  alphabet: str = DEFAULT_ALPHABET) -> GrammarTree:
    """
    Grow a random grammar tree of up to ``node_budget`` nodes.

    Starting from a random root, repeatedly fills a uniformly chosen open
    child slot with a fresh node and adds that node's own slots to the
    worklist. Stops early once no open slot remains, which happens when
    every branch has ended in a literal. Slots still open when the budget
    runs out are left empty; ``optimize_tree`` fills them.

    Args:
        node_budget: Maximum number of nodes
        rng: Random number generator
        alphabet: Characters literal payloads are drawn from

    Returns:
        The generated tree

    Raises:
        ValueError: If node_budget is zero
    """
    if node_budget <= 0:
        raise ValueError("node_budget must be greater than zero")

    root = generate_node(rng, alphabet)
    tree = GrammarTree([root], 0)
    open_slots = _open_slots(0, root)

    for _ in range(node_budget - 1):
        if not open_slots:
            break
        parent, slot = open_slots.pop(rng.randrange(len(open_slots)))
        node = generate_node(rng, alphabet)
        index = len(tree.nodes)
        tree.nodes.append(node)
        setattr(tree.nodes[parent], slot, index)
        open_slots.extend(_open_slots(index, node))

    logger.debug(f"Generated tree with {len(tree.nodes)} nodes "
                 f"({len(open_slots)} open slots, budget {node_budget})")
    return tree


def create_initial_population(size: int, node_budget: int, rng: random.Random,
                              alphabet: str = DEFAULT_ALPHABET) -> List[GrammarTree]:
    """
    Create an initial population of random grammar trees.

    Args:
        size: Number of trees to create
        node_budget: Node budget per tree
        rng: Random number generator
        alphabet: Characters literal payloads are drawn from

    Returns:
        List of raw (not yet canonicalized) trees
    """
    return [generate_tree(node_budget, rng, alphabet) for _ in range(size)]

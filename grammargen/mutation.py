"""
GrammarGen Tree Editor

This module implements the genetic operators on grammar trees: node
enumeration and selection, point mutation, arity canonicalization and
subtree-swap crossover.
"""

import logging
import random
from typing import Iterator, Optional, Tuple

from .builder import DEFAULT_ALPHABET, generate_node
from .core import GrammarNode, GrammarTree, NodeKind

logger = logging.getLogger(__name__)


def iter_nodes(tree: GrammarTree) -> Iterator[Tuple[Optional[int], Optional[str], int]]:
    """
    Generator that yields (parent, slot, index) for every reachable node.

    This performs a depth-first pre-order traversal: the root, then the
    subtree in ``first``, then the subtree in ``second``. Populated slots
    are followed whether or not the node's arity uses them.

    Args:
        tree: The grammar tree to traverse

    Yields:
        Tuple of (parent, slot, index) where:
        - parent: Arena index of the parent node (None for root)
        - slot: 'first' or 'second' (None for root)
        - index: Arena index of the current node

    Example:
        >>> tree = cat(word("a"), word("b"))
        >>> list(iter_nodes(tree))
        [(None, None, 0), (0, 'first', 1), (0, 'second', 2)]
    """
    stack = [(None, None, tree.root)]
    while stack:
        parent, slot, index = stack.pop()
        yield (parent, slot, index)
        node = tree.nodes[index]
        if node.second is not None:
            stack.append((index, "second", node.second))
        if node.first is not None:
            stack.append((index, "first", node.first))


def random_select_node(tree: GrammarTree, rng: random.Random) -> int:
    """Pick the arena index of a uniformly random reachable node."""
    indices = [index for _, _, index in iter_nodes(tree)]
    return indices[rng.randrange(len(indices))]


def mutate_node(tree: GrammarTree, index: int, rng: random.Random,
                alphabet: str = DEFAULT_ALPHABET) -> None:
    """
    Point mutation: give the node at ``index`` a fresh random kind and payload.

    Existing children are kept verbatim, so the subtree beneath is not
    disturbed. The tree may violate the arity invariant afterwards until
    ``optimize_tree`` is applied.
    """
    fresh = generate_node(rng, alphabet)
    node = tree.nodes[index]
    old_kind = node.kind
    node.kind = fresh.kind
    node.payload = fresh.payload
    logger.debug(f"Mutated node {index}: {old_kind.value} -> {fresh.kind.value}")


def optimize_tree(tree: GrammarTree, rng: random.Random,
                  alphabet: str = DEFAULT_ALPHABET) -> GrammarTree:
    """
    Restore the arity invariant top-down and compact the arena.

    A 0-arity node has both slots cleared, a 1-arity node keeps only
    ``first`` and a 2-arity node keeps both. A slot the arity requires but
    which is empty is filled with a fresh random literal.

    Args:
        tree: Tree to canonicalize in place
        rng: Random number generator for filling empty required slots
        alphabet: Characters fill-in literals are drawn from

    Returns:
        The same tree, for chaining
    """
    filled = 0
    stack = [tree.root]
    while stack:
        node = tree.nodes[stack.pop()]
        arity = node.arity
        if arity < 2:
            node.second = None
        if arity < 1:
            node.first = None
        for slot in ("first", "second")[:arity]:
            if getattr(node, slot) is None:
                tree.nodes.append(GrammarNode(NodeKind.LITERAL, rng.choice(alphabet)))
                setattr(node, slot, len(tree.nodes) - 1)
                filled += 1
            stack.append(getattr(node, slot))

    tree.compact()
    if filled:
        logger.debug(f"Filled {filled} empty slots while canonicalizing")
    return tree


def mutate_tree(tree: GrammarTree, rng: random.Random,
                alphabet: str = DEFAULT_ALPHABET) -> GrammarTree:
    """
    Clone a tree, point-mutate one random node of the clone and canonicalize.

    Args:
        tree: Parent tree (left unchanged)
        rng: Random number generator
        alphabet: Characters literal payloads are drawn from

    Returns:
        The mutated, canonical offspring
    """
    mutated = tree.clone()
    index = random_select_node(mutated, rng)
    mutate_node(mutated, index, rng, alphabet)
    return optimize_tree(mutated, rng, alphabet)


def create_crossed_tree(first: GrammarTree, second: GrammarTree,
                        rng: random.Random) -> Tuple[GrammarTree, GrammarTree]:
    """
    Subtree-swap crossover.

    Both parents are cloned, one uniformly random node is chosen in each
    clone and the two subtrees rooted there are exchanged in place.
    The offspring are not canonicalized.

    Args:
        first: First parent (left unchanged)
        second: Second parent (left unchanged)
        rng: Random number generator

    Returns:
        Tuple of the two offspring
    """
    child_a = first.clone()
    child_b = second.clone()

    index_a = random_select_node(child_a, rng)
    index_b = random_select_node(child_b, rng)

    subtree_a = child_a.subtree(index_a)
    subtree_b = child_b.subtree(index_b)

    child_a.replace_subtree(index_a, subtree_b)
    child_b.replace_subtree(index_b, subtree_a)

    logger.debug(f"Crossover swapped {subtree_a.node_count()}-node and "
                 f"{subtree_b.node_count()}-node subtrees")
    return child_a, child_b

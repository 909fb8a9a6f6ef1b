"""
GrammarGen Verification System

This module implements structural verification for grammar trees,
ensuring they are canonical and well-formed before being evaluated or
loaded from disk.
"""

from typing import List, Set, Tuple

from .core import GrammarTree, NodeKind
from .mutation import iter_nodes

# Limits applied when no others are given. Parsing and rendering recurse once
# per level, so MAX_DEPTH stays well below the interpreter recursion limit.
MAX_DEPTH = 200
MAX_NODES = 10000


def check_references(tree: GrammarTree) -> Tuple[bool, List[str]]:
    """
    Check that the root and every child slot point inside the arena and that
    no node is reachable twice (no sharing, no cycles).

    Args:
        tree: The grammar tree to check

    Returns:
        Tuple of (is_valid, error_messages)
    """
    errors = []
    size = len(tree.nodes)

    if not isinstance(tree.root, int) or not 0 <= tree.root < size:
        return False, [f"Root index {tree.root} outside arena of {size} nodes"]

    seen: Set[int] = set()
    stack = [tree.root]
    while stack:
        index = stack.pop()
        if index in seen:
            errors.append(f"Node {index} is reachable more than once")
            continue
        seen.add(index)
        node = tree.nodes[index]
        for slot in (node.first, node.second):
            if slot is None:
                continue
            if not isinstance(slot, int) or not 0 <= slot < size:
                errors.append(f"Node {index} has child index {slot} outside arena")
            else:
                stack.append(slot)

    return len(errors) == 0, errors


def check_arity(tree: GrammarTree) -> Tuple[bool, List[str]]:
    """
    Check that every reachable node's populated child slots match its arity
    and that literals carry a string payload.

    Args:
        tree: The grammar tree to check

    Returns:
        Tuple of (is_valid, error_messages)
    """
    errors = []

    for parent, slot, index in iter_nodes(tree):
        node = tree.nodes[index]

        if not isinstance(node.kind, NodeKind):
            errors.append(f"Unknown node kind: {node.kind}")
            continue

        if node.kind is NodeKind.LITERAL and not isinstance(node.payload, str):
            errors.append(f"Literal node {index} has no string payload")

        expected = node.arity
        if expected >= 1 and node.first is None:
            errors.append(f"'{node.kind.value}' node {index} is missing its first child")
        if expected >= 2 and node.second is None:
            errors.append(f"'{node.kind.value}' node {index} is missing its second child")
        if expected < 1 and node.first is not None:
            errors.append(f"'{node.kind.value}' node {index} has an unexpected first child")
        if expected < 2 and node.second is not None:
            errors.append(f"'{node.kind.value}' node {index} has an unexpected second child")

    return len(errors) == 0, errors


def check_depth(tree: GrammarTree, max_depth: int = MAX_DEPTH) -> Tuple[bool, List[str]]:
    """
    Check that the tree depth doesn't exceed the maximum allowed.

    Args:
        tree: The grammar tree to check
        max_depth: Maximum allowed depth

    Returns:
        Tuple of (is_valid, error_messages)
    """
    errors = []

    actual_depth = tree.depth()
    if actual_depth > max_depth:
        errors.append(f"Tree depth {actual_depth} exceeds maximum allowed depth {max_depth}")

    return len(errors) == 0, errors


def check_node_count(tree: GrammarTree, max_nodes: int = MAX_NODES) -> Tuple[bool, List[str]]:
    """
    Check that the tree doesn't have too many nodes (resource hint).

    Args:
        tree: The grammar tree to check
        max_nodes: Maximum allowed number of nodes

    Returns:
        Tuple of (is_valid, error_messages)
    """
    errors = []

    node_count = tree.node_count()
    if node_count > max_nodes:
        errors.append(f"Tree has {node_count} nodes, exceeds maximum allowed {max_nodes}")

    return len(errors) == 0, errors


def verify_tree(tree: GrammarTree, max_depth: int = MAX_DEPTH,
                max_nodes: int = MAX_NODES) -> Tuple[bool, List[str]]:
    """
    Perform comprehensive verification of a grammar tree.

    Reference checks run first; the remaining checks traverse the tree and
    are only meaningful once references are known to be sound.

    Args:
        tree: The grammar tree to verify
        max_depth: Maximum allowed depth
        max_nodes: Maximum allowed number of nodes

    Returns:
        Tuple of (is_valid, error_messages)
    """
    if not isinstance(tree, GrammarTree):
        return False, ["Grammar must be a GrammarTree"]

    is_valid, errors = check_references(tree)
    if not is_valid:
        return False, errors

    all_errors = []
    checks = [
        check_arity(tree),
        check_depth(tree, max_depth),
        check_node_count(tree, max_nodes),
    ]

    for is_valid, errors in checks:
        if not is_valid:
            all_errors.extend(errors)

    return len(all_errors) == 0, all_errors

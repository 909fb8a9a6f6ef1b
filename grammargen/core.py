"""
GrammarGen Core

This module implements the grammar-expression data model for GrammarGen:
a closed set of parsing combinators (literal, concatenation, alternation,
optional) stored in an index-addressed arena, together with their
nondeterministic parsing semantics, structural cost and diagnostic rendering.
"""

import json
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional


# Structural cost of a literal. Kept well above 1 so literal-heavy,
# overfitted trees are not free.
LITERAL_COST = 16


class NodeKind(Enum):
    """The four grammar node kinds. Values are the rendering symbols."""
    LITERAL = "word"
    JOIN = "cat"
    OR = "or"
    OPTIONAL = "opt"

    @property
    def arity(self) -> int:
        """Number of child slots this kind requires (0, 1 or 2)."""
        return _ARITY[self]


_ARITY = {
    NodeKind.LITERAL: 0,
    NodeKind.JOIN: 2,
    NodeKind.OR: 2,
    NodeKind.OPTIONAL: 1,
}


@dataclass
class GrammarNode:
    """
    One record in a grammar arena.

    ``payload`` is only meaningful for literals. ``first`` and ``second``
    hold arena indices of the children, or None for an empty slot.
    """
    kind: NodeKind
    payload: Optional[str] = None
    first: Optional[int] = None
    second: Optional[int] = None

    @property
    def arity(self) -> int:
        return self.kind.arity


@dataclass
class ParseContext:
    """Counters threaded through a single parse call tree."""
    match_count: int = 0
    compare_count: int = 0
    costs: Dict[int, int] = field(default_factory=dict, repr=False)


class GrammarTree:
    """
    A grammar expression tree stored as an arena of ``GrammarNode`` records.

    Nodes refer to their children by index into ``nodes``; ``root`` is the
    index of the top-level node. A tree exclusively owns its records: every
    operation that moves structure between trees copies records, so two
    trees never share a node.

    Records that are no longer reachable from ``root`` (left behind by
    subtree replacement) are ignored by every query and dropped by
    ``compact()``.
    """

    def __init__(self, nodes: Optional[List[GrammarNode]] = None, root: int = 0):
        self.nodes: List[GrammarNode] = nodes if nodes is not None else []
        self.root = root

    def __repr__(self):
        return f"GrammarTree({self.render()})"

    def __str__(self):
        return self.render()

    def __eq__(self, other):
        if not isinstance(other, GrammarTree):
            return NotImplemented
        return self.render() == other.render()

    __hash__ = None

    # Parsing

    def parse(self, text: str, ctx: Optional[ParseContext] = None) -> List[str]:
        """
        Parse a prefix of ``text`` in every possible way.

        Args:
            text: Input string
            ctx: Counters to update (a fresh context is used if None)

        Returns:
            All residual suffixes reachable by some successful decomposition,
            in exploration order, duplicates included
        """
        if ctx is None:
            ctx = ParseContext()
        return [text[pos:] for pos in self._parse(self.root, text, 0, ctx)]

    def _parse(self, index: Optional[int], text: str, pos: int, ctx: ParseContext) -> List[int]:
        # Residuals are tracked as offsets into ``text``.
        if index is None:
            return []

        node = self.nodes[index]
        kind = node.kind

        if kind is NodeKind.LITERAL:
            ctx.compare_count += LITERAL_COST
            if text.startswith(node.payload, pos):
                ctx.match_count += 1
                return [pos + len(node.payload)]
            return []

        if kind is NodeKind.JOIN:
            if index not in ctx.costs:
                ctx.costs[index] = self._size(index)
            ctx.compare_count += ctx.costs[index]
            residuals = []
            for rest in self._parse(node.first, text, pos, ctx):
                residuals.extend(self._parse(node.second, text, rest, ctx))
            return residuals

        if kind is NodeKind.OR:
            # Both branches are always explored.
            return (self._parse(node.first, text, pos, ctx) +
                    self._parse(node.second, text, pos, ctx))

        if kind is NodeKind.OPTIONAL:
            return self._parse(node.first, text, pos, ctx) + [pos]

        raise ValueError(f"Unknown node kind: {kind}")

    def match(self, text: str) -> bool:
        """Return True if the grammar can consume the whole of ``text``."""
        return "" in self.parse(text)

    def evaluate(self, text: str) -> float:
        """
        Score this grammar against one corpus line.

        Returns 1.0 on a full match, otherwise the number of successful
        literal sub-matches seen while exploring every branch. The partial
        credit is an un-normalized heuristic, not a probability.
        """
        ctx = ParseContext()
        residuals = self._parse(self.root, text, 0, ctx)
        if len(text) in residuals:
            return 1.0
        return float(ctx.match_count)

    # Structure

    def size(self, index: Optional[int] = None) -> int:
        """
        Structural cost of the subtree at ``index`` (the root by default).

        Literals cost LITERAL_COST, binary nodes 1 + both children, and an
        optional 1 + twice its child. Empty slots cost nothing.
        """
        if index is None:
            index = self.root
        return self._size(index)

    def _size(self, index: Optional[int]) -> int:
        if index is None:
            return 0
        node = self.nodes[index]
        if node.kind is NodeKind.LITERAL:
            return LITERAL_COST
        if node.kind is NodeKind.OPTIONAL:
            return 1 + 2 * self._size(node.first)
        return 1 + self._size(node.first) + self._size(node.second)

    def node_count(self) -> int:
        """Number of nodes reachable from the root through populated slots."""
        count = 0
        stack = [self.root]
        while stack:
            node = self.nodes[stack.pop()]
            count += 1
            if node.second is not None:
                stack.append(node.second)
            if node.first is not None:
                stack.append(node.first)
        return count

    def depth(self, index: Optional[int] = None) -> int:
        """Height of the subtree at ``index``; a lone node has depth 1."""
        if index is None:
            index = self.root
        deepest = 0
        stack = [(index, 1)]
        while stack:
            current, level = stack.pop()
            deepest = max(deepest, level)
            node = self.nodes[current]
            for child in (node.first, node.second):
                if child is not None:
                    stack.append((child, level + 1))
        return deepest

    # Copying

    def clone(self) -> 'GrammarTree':
        """
        Create a fully independent copy of this tree.

        Only reachable records are copied, so the clone is also compact.
        """
        nodes: List[GrammarNode] = []
        root = copy_subtree(self, self.root, nodes)
        return GrammarTree(nodes, root)

    def subtree(self, index: int) -> 'GrammarTree':
        """Return an independent copy of the subtree rooted at ``index``."""
        nodes: List[GrammarNode] = []
        root = copy_subtree(self, index, nodes)
        return GrammarTree(nodes, root)

    def replace_subtree(self, index: int, subtree: 'GrammarTree') -> None:
        """
        Replace the subtree rooted at ``index`` with a copy of ``subtree``.

        The record at ``index`` is overwritten in place, so the parent's
        reference stays valid. The previous descendants become unreachable.
        """
        new_root = copy_subtree(subtree, subtree.root, self.nodes)
        self.nodes[index] = replace(self.nodes[new_root])

    def compact(self) -> None:
        """Drop unreachable records and renumber the arena in pre-order."""
        compacted = self.clone()
        self.nodes = compacted.nodes
        self.root = compacted.root

    # Rendering

    def render(self, index: Optional[int] = None) -> str:
        """
        Render the subtree at ``index`` as fully parenthesized text.

        Example:
            >>> render(cat(word("foo"), word("bar")))
            '(cat (word "foo") (word "bar"))'
        """
        if index is None:
            index = self.root
        node = self.nodes[index]
        if node.kind is NodeKind.LITERAL:
            return f"({node.kind.value} {json.dumps(node.payload)})"
        parts = [node.kind.value]
        if node.first is not None:
            parts.append(self.render(node.first))
        if node.second is not None:
            parts.append(self.render(node.second))
        return "(" + " ".join(parts) + ")"


def copy_subtree(source: GrammarTree, index: int, dest: List[GrammarNode]) -> int:
    """
    Append fresh copies of the subtree at ``source.nodes[index]`` to ``dest``.

    Records are appended in pre-order with child indices remapped to their
    new positions.

    Returns:
        Index in ``dest`` of the copied subtree root
    """
    new_root = len(dest)
    stack = [(index, None, None)]
    while stack:
        current, parent, slot = stack.pop()
        node = source.nodes[current]
        new_index = len(dest)
        dest.append(GrammarNode(node.kind, node.payload))
        if parent is not None:
            setattr(dest[parent], slot, new_index)
        if node.second is not None:
            stack.append((node.second, new_index, "second"))
        if node.first is not None:
            stack.append((node.first, new_index, "first"))
    return new_root


# Helper functions for creating grammar trees
def word(text: str) -> GrammarTree:
    """Create a literal grammar."""
    return GrammarTree([GrammarNode(NodeKind.LITERAL, text)], 0)

def _combine(kind: NodeKind, *operands: GrammarTree) -> GrammarTree:
    nodes = [GrammarNode(kind)]
    slots = []
    for operand in operands:
        slots.append(copy_subtree(operand, operand.root, nodes))
    if slots:
        nodes[0].first = slots[0]
    if len(slots) > 1:
        nodes[0].second = slots[1]
    return GrammarTree(nodes, 0)

def cat(first: GrammarTree, second: GrammarTree) -> GrammarTree:
    """Create a concatenation: ``first`` followed by ``second``."""
    return _combine(NodeKind.JOIN, first, second)

def alt(first: GrammarTree, second: GrammarTree) -> GrammarTree:
    """Create an alternation of two grammars."""
    return _combine(NodeKind.OR, first, second)

def opt(first: GrammarTree) -> GrammarTree:
    """Create an optional grammar."""
    return _combine(NodeKind.OPTIONAL, first)


def render(tree: GrammarTree) -> str:
    """Render a grammar tree as fully parenthesized text."""
    return tree.render()


def clone_grammar(tree: GrammarTree) -> GrammarTree:
    """
    Create a deep copy of a grammar tree.

    This is essential for safe mutation and crossover, ensuring that
    the parent still present in the population remains unchanged.
    """
    return tree.clone()

#!/usr/bin/env python3
"""
Unit tests for GrammarGen core functionality.

These tests verify the parsing semantics of each grammar node kind,
structural cost, rendering and arena copying.
"""

import unittest
from grammargen import (
    GrammarNode, GrammarTree, NodeKind, ParseContext,
    word, cat, alt, opt, render, clone_grammar
)
from grammargen.core import LITERAL_COST


class TestLiteral(unittest.TestCase):
    """Test cases for literal nodes."""

    def test_literal_consumes_prefix(self):
        """A literal leaves exactly the input past its payload."""
        self.assertEqual(word("foo").parse("foobar"), ["bar"])
        self.assertEqual(word("foo").parse("foo"), [""])

    def test_literal_rejects_mismatch(self):
        """A literal produces nothing unless the input starts with it."""
        self.assertEqual(word("foo").parse("fo"), [])
        self.assertEqual(word("foo").parse("xfoo"), [])
        self.assertEqual(word("foo").parse(""), [])

    def test_literal_prefix_property(self):
        """parse is non-empty iff the input starts with the payload."""
        payloads = ["a", "ab", " ", "\t", "xyz"]
        inputs = ["", "a", "ab", "abc", " a", "\tq", "xyzxyz", "b"]
        for payload in payloads:
            for text in inputs:
                residuals = word(payload).parse(text)
                if text.startswith(payload):
                    self.assertEqual(residuals, [text[len(payload):]])
                else:
                    self.assertEqual(residuals, [])

    def test_literal_counters(self):
        """Literals count their match and their cost."""
        ctx = ParseContext()
        word("a").parse("a", ctx)
        self.assertEqual(ctx.match_count, 1)
        self.assertEqual(ctx.compare_count, LITERAL_COST)

        ctx = ParseContext()
        word("a").parse("b", ctx)
        self.assertEqual(ctx.match_count, 0)
        self.assertEqual(ctx.compare_count, LITERAL_COST)


class TestCombinators(unittest.TestCase):
    """Test cases for concatenation, alternation and optional."""

    def test_concatenation_examples(self):
        """foo followed by bar matches foobar only."""
        grammar = cat(word("foo"), word("bar"))
        self.assertTrue(grammar.match("foobar"))
        self.assertFalse(grammar.match("foo"))
        self.assertFalse(grammar.match("foobarx"))
        self.assertEqual(grammar.parse("foobarx"), ["x"])

    def test_optional_examples(self):
        """An optional literal matches the literal and the empty string."""
        grammar = opt(word("a"))
        self.assertTrue(grammar.match("a"))
        self.assertTrue(grammar.match(""))
        self.assertFalse(grammar.match("b"))
        self.assertEqual(grammar.parse("b"), ["b"])
        self.assertEqual(grammar.parse("a"), ["", "a"])

    def test_alternation_is_exhaustive(self):
        """Both branches are explored even when the first already matched."""
        self.assertEqual(alt(word("a"), word("a")).parse("a"), ["", ""])
        self.assertEqual(alt(word("a"), cat(word("a"), word("b"))).parse("ab"), ["b", ""])

    def test_concatenation_keeps_duplicates(self):
        """Every decomposition contributes its own residual."""
        grammar = cat(opt(word("a")), opt(word("a")))
        self.assertEqual(grammar.parse("aa"), ["", "a", "a", "aa"])
        self.assertTrue(grammar.match("aa"))
        self.assertTrue(grammar.match("a"))
        self.assertTrue(grammar.match(""))
        self.assertFalse(grammar.match("aaa"))

    def test_concatenation_counts_cost(self):
        """Concatenation adds its own cost before recursing."""
        grammar = cat(word("a"), word("b"))
        ctx = ParseContext()
        grammar.parse("ab", ctx)
        self.assertEqual(ctx.compare_count, grammar.size() + 2 * LITERAL_COST)
        self.assertEqual(ctx.match_count, 2)

    def test_missing_children_produce_nothing(self):
        """Empty child slots contribute no residuals."""
        self.assertEqual(GrammarTree([GrammarNode(NodeKind.JOIN)]).parse("x"), [])
        self.assertEqual(GrammarTree([GrammarNode(NodeKind.OR)]).parse("x"), [])
        self.assertEqual(GrammarTree([GrammarNode(NodeKind.OPTIONAL)]).parse("x"), ["x"])

    def test_literal_ignores_stale_children(self):
        """A literal that still holds children parses as a plain literal."""
        tree = GrammarTree([
            GrammarNode(NodeKind.LITERAL, "a", 1, 2),
            GrammarNode(NodeKind.LITERAL, "b"),
            GrammarNode(NodeKind.LITERAL, "c"),
        ])
        self.assertEqual(tree.parse("abc"), ["bc"])


class TestEvaluate(unittest.TestCase):
    """Test cases for per-line scoring."""

    def test_full_match_scores_one(self):
        """A full match is worth exactly 1.0."""
        grammar = cat(word("foo"), opt(word("bar")))
        for text in ["foo", "foobar"]:
            self.assertTrue(grammar.match(text))
            self.assertEqual(grammar.evaluate(text), 1.0)

    def test_partial_credit_is_match_count(self):
        """Without a full match the score is the literal match count."""
        grammar = cat(word("a"), word("b"))
        self.assertEqual(grammar.evaluate("ac"), 1.0)
        self.assertEqual(grammar.evaluate("xx"), 0.0)

        grammar = alt(alt(word("a"), word("a")), word("a"))
        self.assertFalse(grammar.match("ab"))
        self.assertEqual(grammar.evaluate("ab"), 3.0)

    def test_no_match_without_literal_hits(self):
        """A grammar with no literal hits scores zero."""
        grammar = alt(word("x"), word("y"))
        self.assertFalse(grammar.match("z"))
        self.assertEqual(grammar.evaluate("z"), 0.0)


def optional_chain(depth):
    """Nested optionals ending in a literal, built directly in the arena."""
    nodes = [GrammarNode(NodeKind.OPTIONAL, None, i + 1) for i in range(depth - 1)]
    nodes.append(GrammarNode(NodeKind.LITERAL, "a"))
    return GrammarTree(nodes)


class TestStructure(unittest.TestCase):
    """Test cases for cost, counts, rendering and copying."""

    def test_size(self):
        """Structural cost follows the per-kind formulas."""
        self.assertEqual(word("a").size(), LITERAL_COST)
        self.assertEqual(cat(word("a"), word("b")).size(), 1 + 2 * LITERAL_COST)
        self.assertEqual(alt(word("a"), word("b")).size(), 1 + 2 * LITERAL_COST)
        self.assertEqual(opt(word("a")).size(), 1 + 2 * LITERAL_COST)
        self.assertEqual(alt(opt(word("a")), word("b")).size(), 1 + (1 + 2 * LITERAL_COST) + LITERAL_COST)

    def test_node_count_and_depth(self):
        """Counting and depth follow populated slots."""
        grammar = cat(word("a"), opt(alt(word("b"), word("c"))))
        self.assertEqual(grammar.node_count(), 6)
        self.assertEqual(grammar.depth(), 4)
        self.assertEqual(word("a").depth(), 1)

    def test_render(self):
        """Rendering is fully parenthesized with quoted literals."""
        self.assertEqual(cat(word("foo"), word("bar")).render(), '(cat (word "foo") (word "bar"))')
        self.assertEqual(render(opt(word("a"))), '(opt (word "a"))')
        self.assertEqual(str(alt(word("a"), word("b"))), '(or (word "a") (word "b"))')
        self.assertEqual(word("\x07").render(), '(word "\\u0007")')
        self.assertEqual(word('"').render(), '(word "\\"")')

    def test_clone_is_independent(self):
        """A clone renders identically and shares no node with the source."""
        original = cat(word("foo"), opt(word("bar")))
        copy = clone_grammar(original)

        self.assertEqual(copy.render(), original.render())
        self.assertEqual(copy, original)
        self.assertFalse({id(n) for n in copy.nodes} & {id(n) for n in original.nodes})

        copy.nodes[copy.root].kind = NodeKind.OR
        copy.nodes[copy.nodes[copy.root].first].payload = "baz"
        self.assertEqual(original.render(), '(cat (word "foo") (opt (word "bar")))')
        self.assertNotEqual(copy, original)

    def test_builders_copy_operands(self):
        """Combining trees does not alias the operands."""
        leaf = word("a")
        combined = cat(leaf, leaf)
        leaf.nodes[0].payload = "z"
        self.assertEqual(combined.render(), '(cat (word "a") (word "a"))')

    def test_replace_subtree(self):
        """Replacing a subtree keeps the parent reference valid."""
        grammar = cat(word("a"), word("b"))
        second = grammar.nodes[grammar.root].second
        grammar.replace_subtree(second, opt(word("c")))
        self.assertEqual(grammar.render(), '(cat (word "a") (opt (word "c")))')
        self.assertTrue(grammar.match("ac"))
        self.assertTrue(grammar.match("a"))

        grammar.compact()
        self.assertEqual(len(grammar.nodes), 4)
        self.assertEqual(grammar.render(), '(cat (word "a") (opt (word "c")))')

    def test_subtree_copy(self):
        """subtree() returns an independent copy rooted at the index."""
        grammar = cat(word("a"), opt(word("b")))
        second = grammar.nodes[grammar.root].second
        sub = grammar.subtree(second)
        self.assertEqual(sub.render(), '(opt (word "b"))')
        sub.nodes[sub.root].kind = NodeKind.LITERAL
        self.assertEqual(grammar.render(), '(cat (word "a") (opt (word "b")))')

    def test_deep_trees_copy_without_recursion(self):
        """Cloning, counting and measuring work far past the recursion limit."""
        tree = optional_chain(1500)
        copy = tree.clone()
        self.assertEqual(copy.node_count(), 1500)
        self.assertEqual(copy.depth(), 1500)
        self.assertEqual(copy.nodes[-1].payload, "a")

        sub = tree.subtree(tree.nodes[0].first)
        self.assertEqual(sub.depth(), 1499)

    def test_node_kind_arity(self):
        """Each kind reports its arity."""
        self.assertEqual(NodeKind.LITERAL.arity, 0)
        self.assertEqual(NodeKind.OPTIONAL.arity, 1)
        self.assertEqual(NodeKind.JOIN.arity, 2)
        self.assertEqual(NodeKind.OR.arity, 2)


if __name__ == '__main__':
    unittest.main()

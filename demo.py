#!/usr/bin/env python3
"""
GrammarGen Demo

This script demonstrates parsing with hand-built grammars and a short
grammar search over a small corpus.
"""

import sys

from grammargen import EvolutionEngine, ParseContext, word, cat, alt, opt
from grammargen.eval import match_rate

DEMO_CORPUS = ["foobar", "foo", "foobar", "foobaz", "bar"]


def demo_basic_examples():
    """Demonstrate what each node kind matches."""

    print("🧩 GrammarGen Demo - Basic Examples")
    print("=" * 50)

    examples = [
        ("Concatenation", cat(word("foo"), word("bar")), ["foobar", "foo", "foobarx"]),
        ("Optional", opt(word("a")), ["a", "", "b"]),
        ("Alternation", alt(word("foo"), word("bar")), ["foo", "bar", "baz"]),
        ("Mixed", cat(word("foo"), opt(alt(word("bar"), word("baz")))), ["foo", "foobaz", "fooqux"]),
    ]

    for i, (name, grammar, inputs) in enumerate(examples, 1):
        print(f"\n{i}. {name}: {grammar.render()}")
        print(f"   Cost: {grammar.size()}")
        for text in inputs:
            ctx = ParseContext()
            residuals = grammar.parse(text, ctx)
            print(f"   {text!r:10} match={grammar.match(text)!s:5} "
                  f"score={grammar.evaluate(text):.1f} residuals={residuals} "
                  f"work={ctx.compare_count}")


def demo_search(lines):
    """Run a short search and show the population before and after."""

    print("\n\n🧬 GrammarGen Demo - Grammar Search")
    print("=" * 50)

    engine = EvolutionEngine(population_size=10, node_budget=30, seed=0,
                             max_generations=50)
    for line in lines:
        engine.append_input(line)
    engine.initialize_population()

    print(f"\nCorpus: {list(engine.corpus)}")
    print("\nInitial population:")
    engine.print_population()

    engine.run()
    best = engine.get_best_individual()

    print(f"\nStopped after {engine.generation} generations "
          f"({'converged' if engine.converged else 'generation cap'})")
    print(f"Best fitness: {best.fitness:.1f}")
    print(f"Full-match rate: {match_rate(best.grammar, engine.corpus.lines):.0%}")
    print(f"Best grammar: {best.grammar.render()}")


if __name__ == "__main__":
    demo_basic_examples()

    if len(sys.argv) > 1:
        from grammargen.corpus import read_corpus
        corpus_lines = read_corpus(sys.argv[1]).lines
    else:
        corpus_lines = DEMO_CORPUS
    demo_search(corpus_lines)

    print("\n\n✨ Demo completed successfully!")

#!/usr/bin/env python3
"""
GrammarGen Performance Analysis

This script profiles parsing cost, genetic operators and whole generations,
and tracks memory usage over an extended search.
"""

import gc
import os
import random
import time
import tracemalloc

import psutil

from grammargen import (
    EvolutionEngine, ParseContext, word, cat, alt, opt,
    generate_tree, mutate_node, optimize_tree, create_crossed_tree, random_select_node
)
from grammargen.config import setup_logging
from grammargen.verify import verify_tree


def measure_memory():
    """Get current memory usage in MB."""
    process = psutil.Process(os.getpid())
    return process.memory_info().rss / 1024 / 1024


def optional_chain(length):
    """cat(opt a, cat(opt a, ...)): every prefix split is explored."""
    grammar = opt(word("a"))
    for _ in range(length - 1):
        grammar = cat(opt(word("a")), grammar)
    return grammar


def profile_parse_cost():
    """Profile parse work as grammars grow."""

    print("🔬 GrammarGen Performance Analysis")
    print("=" * 50)

    print("\n📊 Parse Cost by Grammar Shape")
    print("-" * 50)

    literal_chain = word("a")
    for _ in range(7):
        literal_chain = cat(word("a"), literal_chain)

    test_cases = [
        ("Literal", word("foobar"), "foobar"),
        ("Concatenation", cat(word("foo"), word("bar")), "foobar"),
        ("Alternation", alt(alt(word("x"), word("y")), word("foobar")), "foobar"),
        ("Literal chain x8", literal_chain, "a" * 8),
    ]
    for length in (4, 8, 12):
        test_cases.append((f"Optional chain x{length}", optional_chain(length), "a" * length))

    for name, grammar, text in test_cases:
        ctx = ParseContext()
        start_time = time.time()
        residuals = grammar.parse(text, ctx)
        elapsed = (time.time() - start_time) * 1000

        print(f"{name}: {elapsed:.2f}ms, {len(residuals)} residuals, "
              f"compare_count={ctx.compare_count}, cost={grammar.size()}")


def profile_operators():
    """Profile mutation and crossover throughput."""

    print("\n\n🧬 Genetic Operator Throughput")
    print("-" * 50)

    rng = random.Random(0)
    trees = [optimize_tree(generate_tree(100, rng), rng) for _ in range(50)]

    start_time = time.time()
    for tree in trees:
        child = tree.clone()
        mutate_node(child, random_select_node(child, rng), rng)
        optimize_tree(child, rng)
    mutation_time = (time.time() - start_time) * 1000 / len(trees)

    start_time = time.time()
    for first, second in zip(trees, reversed(trees)):
        create_crossed_tree(first, second, rng)
    crossover_time = (time.time() - start_time) * 1000 / len(trees)

    start_time = time.time()
    failures = sum(1 for tree in trees if not verify_tree(tree)[0])
    verify_time = (time.time() - start_time) * 1000 / len(trees)

    print(f"  Mutation: {mutation_time:.3f}ms per tree")
    print(f"  Crossover: {crossover_time:.3f}ms per pair")
    print(f"  Verification: {verify_time:.3f}ms per tree ({failures} failures)")


def profile_extended_search():
    """Profile an extended search for time per generation and memory growth."""

    print("\n\n⏱️  Extended Search Analysis")
    print("-" * 50)

    engine = EvolutionEngine(population_size=30, node_budget=20, seed=1,
                             max_unmodified_count=1000, max_generations=100)
    for line in ["foobar", "foo", "foobaz", "barfoo", "bar"]:
        engine.append_input(line)
    engine.initialize_population()

    memory_usage = []
    times = []

    def track(gen, stats):
        times.append(stats['generation_time'] * 1000)
        memory_usage.append(measure_memory())
        if gen % 20 == 19:
            avg_time = sum(times[-20:]) / 20
            print(f"  Gen {gen + 1}: {avg_time:.2f}ms avg, {memory_usage[-1]:.2f}MB, "
                  f"best F={stats['best_fitness']:.1f}, mean size={stats['mean_size']:.1f}")
            gc.collect()

    print(f"Initial memory: {measure_memory():.2f}MB")
    engine.run(track)

    current, peak = tracemalloc.get_traced_memory()
    print(f"\n📈 Extended Search Results:")
    print(f"  Generations: {engine.generation}")
    print(f"  Evaluations: {engine.evaluator.total_evaluations}")
    print(f"  Average generation time: {sum(times) / len(times):.2f}ms")
    print(f"  Traced peak: {peak / 1024 / 1024:.2f}MB")

    if len(memory_usage) > 10:
        recent_memory = sum(memory_usage[-10:]) / 10
        early_memory = sum(memory_usage[:10]) / 10
        memory_trend = recent_memory - early_memory

        if memory_trend > 5:
            print(f"  ⚠️  Memory grew by {memory_trend:.2f}MB (grammar bloat?)")
        else:
            print(f"  ✅ Memory usage stable: {memory_trend:.2f}MB trend")


if __name__ == "__main__":
    print("Starting GrammarGen Performance Analysis...")
    setup_logging("ERROR")
    tracemalloc.start()

    try:
        profile_parse_cost()
        profile_operators()
        profile_extended_search()

        print("\n\n✅ Performance analysis complete!")

    except KeyboardInterrupt:
        print("\n\n⏹️  Analysis interrupted by user")

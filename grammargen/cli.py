#!/usr/bin/env python3
"""Command-line interface for GrammarGen."""

import argparse
import json
import sys
import time

from .config import GrammarConfig, GrammarGenConfig, SearchConfig, setup_logging
from .corpus import read_corpus
from .eval import evaluate_grammar, match_rate
from .evolve import EvolutionEngine
from .metrics import MetricsLogger
from .repro import ReproBundle, load_grammars
from .utils import collect_run_metadata, format_metadata_summary
from .verify import MAX_DEPTH


def build_config(args: argparse.Namespace) -> GrammarGenConfig:
    """Translate parsed evolve arguments into a configuration."""
    search = SearchConfig(
        population_size=args.population,
        node_budget=args.nodes,
        elite_ratio=args.elite_ratio,
        mutation_ratio=args.mutation_ratio,
        max_unmodified_count=args.max_unmodified,
        max_generations=args.max_generations,
        seed=args.seed,
        workers=args.workers,
        max_depth=args.max_depth,
    )
    grammar = GrammarConfig()
    if args.alphabet:
        grammar.literal_alphabet = args.alphabet
    return GrammarGenConfig(search=search, grammar=grammar,
                            log_level="DEBUG" if args.verbose else "INFO")


def evolve_main(argv=None):
    """Main entry point for grammargen-evolve command."""
    parser = argparse.ArgumentParser(description="Evolve grammars that explain a corpus")
    parser.add_argument("--corpus", required=True, help="Text file, one example per line")
    parser.add_argument("--population", type=int, default=10, help="Population size")
    parser.add_argument("--nodes", type=int, default=100, help="Node budget per initial grammar")
    parser.add_argument("--elite-ratio", type=float, default=0.05, help="Share of elites kept")
    parser.add_argument("--mutation-ratio", type=float, default=0.05, help="Share of mutants")
    parser.add_argument("--max-unmodified", type=int, default=10,
                        help="Stagnant generations tolerated before stopping")
    parser.add_argument("--max-generations", type=int, default=None,
                        help="Hard cap on generations")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--workers", type=int, default=1,
                        help="Processes used for fitness evaluation")
    parser.add_argument("--max-depth", type=int, default=MAX_DEPTH,
                        help="Deepest grammar admitted into the population")
    parser.add_argument("--alphabet", help="Characters random literals are drawn from")
    parser.add_argument("--resume", help="Population JSON to start from instead of random grammars")
    parser.add_argument("--save-bundle", help="Save results bundle to directory")
    parser.add_argument("--log-dir", help="Write per-generation metrics to this directory")
    parser.add_argument("--print-population", action="store_true",
                        help="Print every grammar before and after the search")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    args = parser.parse_args(argv)
    config = build_config(args)
    setup_logging(config.log_level)

    try:
        engine = EvolutionEngine.from_config(config)
        read_corpus(args.corpus, engine.corpus)
        if args.resume:
            engine.set_population(load_grammars(args.resume))
        else:
            engine.initialize_population()
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    print("GrammarGen Evolution")
    print(f"Corpus: {args.corpus} ({len(engine.corpus)} lines)")
    print(f"Population: {engine.population_size}, nodes={engine.node_budget}")
    print(f"Elite ratio: {engine.elite_ratio}, mutation ratio: {engine.mutation_ratio}")
    print(f"Max unmodified: {engine.max_unmodified_count}")
    print(f"Seed: {args.seed}")
    print("-" * 40)

    if args.print_population:
        engine.print_population()
        print("-" * 40)

    metrics_logger = MetricsLogger(args.log_dir) if args.log_dir else None

    def progress_callback(gen, stats):
        if metrics_logger is not None:
            metrics_logger.log_stats(gen, stats)
        if args.verbose or gen % 10 == 0:
            print(f"Gen {gen:4d}: F_best={stats['best_fitness']:.4f}, "
                  f"F_med={stats['median_fitness']:.4f}, "
                  f"size={stats['best_size']}")

    start_time = time.time()
    try:
        engine.run(progress_callback)
    except KeyboardInterrupt:
        print("\nEvolution interrupted by user")

    elapsed = time.time() - start_time
    best = engine.get_best_individual()

    print(f"\nGenerations: {engine.generation} ({'converged' if engine.converged else 'stopped'})")
    print(f"Time elapsed: {elapsed:.1f}s")
    if best is not None:
        print(f"Best fitness: {best.fitness:.4f}")
        print(f"Full-match rate: {match_rate(best.grammar, engine.corpus.lines):.2%}")
        print(f"Best grammar: {best.grammar.render()}")

    if args.print_population:
        print("-" * 40)
        engine.print_population()

    if args.save_bundle:
        bundle = ReproBundle(args.save_bundle)
        final_stats = engine.history[-1] if engine.history else {}
        final_stats = dict(final_stats, elapsed_time=elapsed)
        bundle.save_run(engine, config.search, final_stats)
        print(f"Bundle saved to: {args.save_bundle}")


def replay_main(argv=None):
    """Main entry point for grammargen-replay command."""
    parser = argparse.ArgumentParser(description="Inspect a GrammarGen bundle")
    parser.add_argument("--bundle", required=True, help="Bundle directory to replay")
    parser.add_argument("--corpus", help="Re-score the saved population on this corpus")

    args = parser.parse_args(argv)

    bundle = ReproBundle(args.bundle)
    try:
        config = bundle.load_config()
        metadata = bundle.load_metadata()
        grammars = bundle.load_population()
    except FileNotFoundError as e:
        print(f"Error: Bundle file not found: {e.filename}")
        sys.exit(1)
    except (json.JSONDecodeError, ValueError) as e:
        print(f"Error: Invalid bundle {args.bundle}: {e}")
        sys.exit(1)

    print("GrammarGen Replay")
    print(f"Bundle: {args.bundle}")
    print(f"Version: {metadata.get('grammargen_version', 'unknown')}")
    print("-" * 40)

    print("Configuration:")
    for key, value in config.items():
        print(f"  {key}: {value}")

    print("\nResults:")
    for key in ("generations", "converged", "corpus_lines", "best_fitness"):
        print(f"  {key}: {metadata.get(key)}")

    print(f"\nPopulation ({len(grammars)} grammars):")
    if args.corpus:
        try:
            corpus = read_corpus(args.corpus)
        except OSError as e:
            print(f"Error: {e}")
            sys.exit(1)
        scored = sorted(((evaluate_grammar(tree, corpus), tree) for tree in grammars),
                        key=lambda pair: pair[0], reverse=True)
        for fitness, tree in scored:
            print(f"  F={fitness:.4f} {tree.render()}")
    else:
        for tree in grammars:
            print(f"  {tree.render()}")


def info_main(argv=None):
    """Main entry point for grammargen-info command."""
    parser = argparse.ArgumentParser(description="Show GrammarGen system information")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    args = parser.parse_args(argv)

    metadata = collect_run_metadata()

    if args.json:
        print(json.dumps(metadata, indent=2))
    else:
        print(format_metadata_summary(metadata))


if __name__ == "__main__":
    if len(sys.argv) > 1:
        if sys.argv[1] == "replay":
            sys.argv.pop(1)
            replay_main()
        elif sys.argv[1] == "info":
            sys.argv.pop(1)
            info_main()
        else:
            evolve_main()
    else:
        evolve_main()

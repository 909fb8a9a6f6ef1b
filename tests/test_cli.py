#!/usr/bin/env python3
"""
Tests for the GrammarGen command-line entry points.
"""

import io
import json
import os
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout
from grammargen.cli import evolve_main, info_main, replay_main


class TestCLI(unittest.TestCase):
    """Test cases for evolve, replay and info."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.corpus_path = os.path.join(self.temp_dir, "corpus.txt")
        with open(self.corpus_path, "w") as f:
            f.write("ab\na\nab\n")
        self.bundle_dir = os.path.join(self.temp_dir, "bundle")

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def run_main(self, main, argv):
        out = io.StringIO()
        with redirect_stdout(out):
            main(argv)
        return out.getvalue()

    def evolve(self, *extra):
        argv = ["--corpus", self.corpus_path, "--population", "4", "--nodes", "6",
                "--max-generations", "2", "--seed", "3", "--alphabet", "ab"]
        return self.run_main(evolve_main, argv + list(extra))

    def test_evolve(self):
        """A short run reports the best grammar and saves outputs."""
        log_dir = os.path.join(self.temp_dir, "logs")
        output = self.evolve("--save-bundle", self.bundle_dir, "--log-dir", log_dir)

        self.assertIn("GrammarGen Evolution", output)
        self.assertIn("Corpus: {} (3 lines)".format(self.corpus_path), output)
        self.assertIn("Best grammar: (", output)
        self.assertIn("Full-match rate:", output)
        self.assertTrue(os.path.exists(os.path.join(self.bundle_dir, "population.json")))
        self.assertTrue(os.path.exists(os.path.join(log_dir, "grammargen_run_metrics.csv")))

    def test_evolve_prints_population(self):
        """--print-population lists every grammar before and after."""
        output = self.evolve("--print-population")
        grammar_lines = [line for line in output.splitlines() if line.startswith("(")]
        self.assertEqual(len(grammar_lines), 8)

    def test_evolve_missing_corpus(self):
        """A missing corpus file exits with status 1."""
        out = io.StringIO()
        with redirect_stdout(out), self.assertRaises(SystemExit) as cm:
            evolve_main(["--corpus", os.path.join(self.temp_dir, "absent.txt")])
        self.assertEqual(cm.exception.code, 1)
        self.assertIn("Error:", out.getvalue())

    def test_evolve_invalid_setting(self):
        """Out-of-range settings exit with status 1."""
        out = io.StringIO()
        with redirect_stdout(out), self.assertRaises(SystemExit) as cm:
            evolve_main(["--corpus", self.corpus_path, "--elite-ratio", "2"])
        self.assertEqual(cm.exception.code, 1)

    def test_resume_and_replay(self):
        """A saved population can be replayed and used to resume a run."""
        self.evolve("--save-bundle", self.bundle_dir)

        output = self.run_main(replay_main, ["--bundle", self.bundle_dir,
                                             "--corpus", self.corpus_path])
        self.assertIn("GrammarGen Replay", output)
        self.assertIn("Population (4 grammars):", output)
        self.assertEqual(sum(1 for line in output.splitlines() if line.startswith("  F=")), 4)

        population = os.path.join(self.bundle_dir, "population.json")
        output = self.evolve("--resume", population)
        self.assertIn("Best grammar:", output)

    def test_replay_missing_bundle(self):
        """Replaying a directory without a bundle exits with status 1."""
        out = io.StringIO()
        with redirect_stdout(out), self.assertRaises(SystemExit) as cm:
            replay_main(["--bundle", self.bundle_dir])
        self.assertEqual(cm.exception.code, 1)

    def test_replay_non_object_bundle(self):
        """A bundle file holding a JSON list is reported, not raised."""
        self.evolve("--save-bundle", self.bundle_dir)
        with open(os.path.join(self.bundle_dir, "config.json"), "w") as f:
            json.dump(["not", "a", "config"], f)

        out = io.StringIO()
        with redirect_stdout(out), self.assertRaises(SystemExit) as cm:
            replay_main(["--bundle", self.bundle_dir])
        self.assertEqual(cm.exception.code, 1)
        self.assertIn("Error: Invalid bundle", out.getvalue())

    def test_info_json(self):
        """info --json prints the environment metadata."""
        metadata = json.loads(self.run_main(info_main, ["--json"]))
        self.assertIn("grammargen_version", metadata)
        self.assertIn("python", metadata)

    def test_info_text(self):
        output = self.run_main(info_main, [])
        self.assertTrue(output.startswith("GrammarGen v"))
        self.assertIn("Environment:", output)
        self.assertIn("Grammar limits:", output)


if __name__ == '__main__':
    unittest.main()

"""Tests for the seedtree command-line entry point."""

from __future__ import annotations

import tempfile
import unittest
from io import StringIO
from pathlib import Path
from unittest.mock import patch

from seedtree.cli import main

SEED = "0dafd00a785bd3d2cb36722c29f0dd23497833b0"
CHILD = "5ba93c9db0cff93f52b521d7420e43f6eda2784f"
OTHER = "ffffff9db0cff93f52b521d7420e43f6eda2784f"


class CLITestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)

        self.graph_file = self.root / "mutation_graph.txt"
        self.graph_file.write_text(
            f'"{SEED}"\n'
            f'"{CHILD}"\n'
            f'"{SEED}" -> "{CHILD}" [label="ChangeByte-"];\n'
            f'"{OTHER}"\n'
            f'"{SEED}" -> "{OTHER}" [label="CrossOver-"];\n'
        )

        self.afl_dir = self.root / "out" / "default"
        (self.afl_dir / "queue").mkdir(parents=True)
        (self.afl_dir / "crashes").mkdir()
        (self.afl_dir / "in").mkdir()
        (self.afl_dir / "in" / "seed.bin").write_bytes(b"A")
        (self.afl_dir / "queue" / "id:000000,time:0,execs:0,orig:seed.bin").write_bytes(b"A")
        (self.afl_dir / "queue" / "id:000001,src:000000,time:5,execs:9,op:havoc,rep:2").write_bytes(b"B")
        (self.afl_dir / "crashes" / "id:000000,sig:11,src:000001,time:9,execs:20,op:flip1,pos:0").write_bytes(b"C")

    def tearDown(self):
        self.temp_dir.cleanup()

    def run_main(self, argv: list[str]) -> tuple[int, str, str]:
        stdout, stderr = StringIO(), StringIO()
        with patch("sys.stdout", stdout), patch("sys.stderr", stderr):
            code = main(argv)
        return code, stdout.getvalue(), stderr.getvalue()


class TestQueries(CLITestCase):
    def test_no_command_shows_help(self):
        with patch("argparse.ArgumentParser.print_help") as mock_help:
            code, _, _ = self.run_main(["--mutation-graph-file", str(self.graph_file)])
        self.assertEqual(code, 0)
        mock_help.assert_called_once()

    def test_leaves_sorted(self):
        code, out, _ = self.run_main(["--mutation-graph-file", str(self.graph_file), "leaves"])
        self.assertEqual(code, 0)
        self.assertEqual(out.splitlines(), sorted([CHILD, OTHER]))

    def test_pred_chain(self):
        code, out, _ = self.run_main(["--afl-dir", str(self.afl_dir), "pred", "crash-000000"])
        self.assertEqual(code, 0)
        self.assertEqual(out.splitlines(), ["crash-000000", "000001", "000000", "seed.bin"])

    def test_repeated_afl_dir_keeps_one_parent(self):
        afl_dir = str(self.afl_dir)
        code, out, _ = self.run_main(
            ["--afl-dir", afl_dir, "--afl-dir", afl_dir, "parse"]
        )
        self.assertEqual(code, 0)
        edge_lines = [line for line in out.splitlines() if line.startswith("000000 -> 000001")]
        self.assertEqual(edge_lines, ["000000 -> 000001\t[havoc]"])

    def test_pred_missing_ancestor_reported(self):
        # The orig: seed file name is not a node, so the chain cannot complete.
        (self.afl_dir / "in" / "seed.bin").unlink()
        code, out, err = self.run_main(["--afl-dir", str(self.afl_dir), "pred", "000000"])
        self.assertEqual(code, 1)
        self.assertIn("seed.bin", err)
        self.assertEqual(out, "")

    def test_pred_direct(self):
        code, out, _ = self.run_main(
            ["--mutation-graph-file", str(self.graph_file), "pred", CHILD, "--direct"]
        )
        self.assertEqual(code, 0)
        self.assertEqual(out.splitlines(), [SEED])

    def test_pred_direct_of_root(self):
        code, out, err = self.run_main(
            ["--mutation-graph-file", str(self.graph_file), "pred", SEED, "--direct"]
        )
        self.assertEqual(code, 0)
        self.assertEqual(out, "")
        self.assertIn("does not have predecessors", err)

    def test_pred_unknown_node(self):
        code, _, err = self.run_main(["--mutation-graph-file", str(self.graph_file), "pred", "nope"])
        self.assertEqual(code, 1)
        self.assertIn("[!]", err)

    def test_pred_exists_in(self):
        corpus = self.root / "corpus"
        corpus.mkdir()
        (corpus / SEED).write_bytes(b"seed")
        (corpus / CHILD).write_bytes(b"seeds")
        code, out, _ = self.run_main(
            ["--mutation-graph-file", str(self.graph_file), "pred", CHILD, "--exists-in", str(corpus)]
        )
        self.assertEqual(code, 0)
        self.assertEqual(out.splitlines(), [CHILD, SEED])

    def test_pred_diff_in_not_enough(self):
        corpus = self.root / "corpus"
        corpus.mkdir()
        (corpus / CHILD).write_bytes(b"seeds")
        code, _, err = self.run_main(
            ["--mutation-graph-file", str(self.graph_file), "pred", CHILD, "--diff-in", str(corpus)]
        )
        self.assertEqual(code, 1)
        self.assertIn("fewer than two predecessors", err)

    def test_pred_diff_in(self):
        corpus = self.root / "corpus"
        corpus.mkdir()
        (corpus / SEED).write_bytes(b"seed")
        (corpus / CHILD).write_bytes(b"seeds")
        code, out, _ = self.run_main(
            ["--mutation-graph-file", str(self.graph_file), "pred", CHILD, "--diff-in", str(corpus)]
        )
        self.assertEqual(code, 0)
        self.assertIn(f"{CHILD} -> {SEED}", out)
        self.assertIn("\tDelete(", out)

    def test_parse(self):
        code, out, _ = self.run_main(["--afl-dir", str(self.afl_dir), "parse"])
        self.assertEqual(code, 0)
        self.assertIn("crash-000000\tcrashed=True", out)
        self.assertIn("000001 -> crash-000000\t[flip1]", out)

    def test_parse_error(self):
        bad = self.root / "bad.txt"
        bad.write_text("not a graph\n")
        code, _, err = self.run_main(["--mutation-graph-file", str(bad), "leaves"])
        self.assertEqual(code, 1)
        self.assertIn("Failed to parse", err)


class TestFilterAndPlot(CLITestCase):
    def test_filter_prints_dot(self):
        code, out, _ = self.run_main(
            ["--mutation-graph-file", str(self.graph_file), "filter", CHILD]
        )
        self.assertEqual(code, 0)
        self.assertIn("digraph mutation_graph", out)
        self.assertIn(f'"{SEED}" -> "{CHILD}"', out)
        self.assertNotIn(OTHER, out)

    def test_filter_with_leaves(self):
        code, out, _ = self.run_main(
            ["--mutation-graph-file", str(self.graph_file), "filter", CHILD, "--leaves"]
        )
        self.assertEqual(code, 0)
        self.assertIn(OTHER, out)

    def test_filter_conflicting_highlights(self):
        code, _, err = self.run_main(
            [
                "--mutation-graph-file",
                str(self.graph_file),
                "filter",
                CHILD,
                "--highlight",
                CHILD,
                "--highlight",
                OTHER,
            ]
        )
        self.assertEqual(code, 1)
        self.assertIn(CHILD, err)
        self.assertIn(OTHER, err)

    def test_filter_with_directives(self):
        code, out, _ = self.run_main(
            [
                "--afl-dir",
                str(self.afl_dir),
                "filter",
                "crash-000000",
                "--highlight-crash-input",
                "--notate",
                "000001",
                "interesting",
                "--red",
                "000001",
                "crash-000000",
            ]
        )
        self.assertEqual(code, 0)
        self.assertIn("interesting", out)
        self.assertIn('"000001" -> "crash-000000" [label="flip1", color="#dc3545"', out)
        self.assertIn('fillcolor="#dc3545"', out)

    @patch("seedtree.dot.render_graphviz", return_value=True)
    def test_plot_default_formats(self, mock_render):
        code, _, err = self.run_main(["--mutation-graph-file", str(self.graph_file), "plot"])
        self.assertEqual(code, 0)
        outputs = [c.args[1] for c in mock_render.call_args_list]
        self.assertEqual(outputs, [self.root / "mutation_graph.svg", self.root / "mutation_graph.png"])
        self.assertIn("Rendered to", err)

    @patch("seedtree.dot.render_graphviz", return_value=True)
    def test_plot_highlight(self, mock_render):
        code, _, _ = self.run_main(
            [
                "--mutation-graph-file",
                str(self.graph_file),
                "plot",
                "--format",
                "pdf",
                "--highlight",
                CHILD,
                "--blue",
                SEED,
                OTHER,
            ]
        )
        self.assertEqual(code, 0)
        dot_text = mock_render.call_args.args[0]
        self.assertIn("#fd7e14", dot_text)
        self.assertIn("#007bff", dot_text)

    def test_plot_afl_requires_output(self):
        code, _, err = self.run_main(["--afl-dir", str(self.afl_dir), "plot"])
        self.assertEqual(code, 1)
        self.assertIn("--output", err)


if __name__ == "__main__":
    unittest.main()

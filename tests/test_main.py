"""Tests for the command-line interface."""
import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout

from eca_discovery.main import build_parser, main
from eca_discovery.storage import RuleCatalog


def run_cli(*argv):
    buf = io.StringIO()
    with redirect_stdout(buf):
        main(list(argv))
    return buf.getvalue()


# ─────────────────────────────────────────────────────────────────────────────
class TestArguments(unittest.TestCase):

    def test_defaults(self):
        args = build_parser().parse_args(["run"])
        self.assertEqual((args.rule, args.width, args.generations), (110, 79, 40))

    def test_bad_values_fall_back(self):
        parser = build_parser()
        args = parser.parse_args(["run", "999", "abc", "-3"])
        self.assertEqual((args.rule, args.width, args.generations), (110, 79, 40))
        args = parser.parse_args(["infer", "30", "50", "20", "1.5"])
        self.assertEqual(args.noise, 0.0)
        args = parser.parse_args(["dependency-infer", "x"])
        self.assertEqual(args.rule, 90)

    def test_no_command_exits(self):
        with redirect_stdout(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                main([])
        self.assertEqual(ctx.exception.code, 1)


class TestCommands(unittest.TestCase):

    def test_run(self):
        out = run_cli("run", "90", "7", "2")
        self.assertIn("Rule 90\n-------\n   #   \n  # #  \n #   # \n-------", out)
        self.assertIn("transition table", out)

    def test_cycle(self):
        out = run_cli("cycle", "0", "7", "100")
        self.assertIn("Analyzing Rule 0", out)
        self.assertIn("Died: yes", out)
        self.assertIn("Class: dies", out)

    def test_cycle_unresolved(self):
        out = run_cli("cycle", "170", "7", "3")
        self.assertIn("not found within 3 steps", out)

    def test_entropy(self):
        out = run_cli("entropy", "30", "31", "12")
        self.assertIn("Max possible entropy: 3.000 bits", out)
        self.assertIn("Mean entropy:", out)

    def test_compress(self):
        out = run_cli("compress", "0")
        self.assertIn("Raw size:        15879 bits", out)
        self.assertIn("Class:           trivial", out)

    def test_infer(self):
        out = run_cli("infer", "110")
        self.assertIn("Inferred rule: 110", out)
        self.assertIn("Match:         EXACT", out)
        self.assertIn("Rule recovery successful", out)

    def test_infer_full_noise(self):
        out = run_cli("infer", "110", "50", "20", "1.0")
        self.assertIn("Inferred rule: 145", out)
        self.assertIn("MISMATCH", out)

    def test_radius(self):
        out = run_cli("radius", "110")
        self.assertIn("-> Inferred radius: 1", out)
        self.assertIn("matches the 3-cell neighborhood", out)

    def test_dependency(self):
        out = run_cli("dependency")
        self.assertIn("all three: 218 rules", out)
        self.assertIn("Rule  90: f(l,r) = 0110 (XOR)", out)

    def test_dependency_infer(self):
        out = run_cli("dependency-infer", "90")
        self.assertIn("-> Inferred dependencies: left + right", out)
        self.assertIn("Match: YES", out)
        self.assertIn("CENTER does NOT matter", out)

    def test_evaluate(self):
        out = run_cli("evaluate", "0", "20", "10")
        self.assertIn("Lambda parameter:   0.0000", out)
        self.assertIn("Final density:      0.0000", out)


class TestCatalogCommands(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.db = os.path.join(self.tmp.name, "catalog.json")

    def tearDown(self):
        self.tmp.cleanup()

    def test_empty_leaderboard(self):
        out = run_cli("leaderboard", "--database", self.db)
        self.assertIn("No rules recorded yet", out)

    def test_evaluate_then_leaderboard(self):
        run_cli("evaluate", "30", "31", "40", "--database", self.db)
        run_cli("evaluate", "0", "31", "40", "--database", self.db)
        out = run_cli("leaderboard", "--database", self.db)
        self.assertIn("Top 2 rules by compression_ratio", out)
        lines = out.splitlines()
        first = next(line for line in lines if line.startswith("1 "))
        self.assertTrue(first.split()[1] == "30")

    def test_dependency_records_all_rules(self):
        run_cli("dependency", "--database", self.db)
        catalog = RuleCatalog(self.db)
        self.assertEqual(len(catalog), 256)
        self.assertEqual(catalog.get(110).metrics["dependency_class"], "all three")

    def test_export(self):
        run_cli("evaluate", "90", "21", "10", "--database", self.db)
        out_csv = os.path.join(self.tmp.name, "rules.csv")
        out = run_cli("export", "--database", self.db, "-o", out_csv)
        self.assertIn("Exported 1 rules", out)
        self.assertTrue(os.path.exists(out_csv))

    def test_export_empty(self):
        out = run_cli("export", "--database", self.db)
        self.assertIn("No rules to export.", out)


if __name__ == "__main__":
    unittest.main()

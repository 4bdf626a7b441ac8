"""Tests for block entropy, compression ratio and combined metrics."""
import io
import unittest
import zlib
from contextlib import redirect_stdout

import numpy as np

from eca_discovery.automaton import Rule
from eca_discovery.metrics import (
    COMPRESSION_CLASSES, CompressionResult, block_counts, block_entropy,
    classify_compression, classify_entropy, compression_ratio, compression_survey,
    deflate, entropy_profile, entropy_survey, evaluate_rule, pack_spacetime,
    temporal_change_rate,
)


def row(text):
    return np.array([int(c) for c in text], dtype=np.uint8)


# ─────────────────────────────────────────────────────────────────────────────
class TestBlockEntropy(unittest.TestCase):

    def test_de_bruijn_row_is_maximal(self):
        """00010111 contains every 3-bit window exactly once (cyclically)."""
        self.assertAlmostEqual(block_entropy(row("00010111"), 3), 3.0)

    def test_uniform_row_is_zero(self):
        self.assertEqual(block_entropy(np.zeros(20, dtype=np.uint8), 3), 0.0)
        self.assertEqual(block_entropy(np.ones(20, dtype=np.uint8), 3), 0.0)

    def test_alternating_row(self):
        self.assertAlmostEqual(block_entropy(row("01010101"), 1), 1.0)
        self.assertAlmostEqual(block_entropy(row("01010101"), 2), 1.0)

    def test_bounds(self):
        state = row("0110100110010110")
        for k in range(1, 6):
            h = block_entropy(state, k)
            self.assertGreaterEqual(h, 0.0)
            self.assertLessEqual(h, k + 1e-9)

    def test_degenerate_block_sizes(self):
        self.assertEqual(block_entropy(row("0101"), 0), 0.0)
        self.assertEqual(block_entropy(row("0101"), 5), 0.0)

    def test_block_counts_wrap(self):
        """Windows of 1011: 10, 01, 11, and 11 wrapping to the start."""
        self.assertEqual(block_counts(row("1011"), 2), {"01": 1, "10": 1, "11": 2})


class TestEntropyProfile(unittest.TestCase):

    def test_rule_0_goes_flat(self):
        profile = entropy_profile(Rule(0), width=20, generations=10)
        self.assertEqual(len(profile.entropies), 11)
        self.assertGreater(profile.entropies[0], 0.0)
        self.assertEqual(profile.entropies[1:], [0.0] * 10)
        self.assertEqual(profile.densities[-1], 0.0)

    def test_identity_is_constant(self):
        profile = entropy_profile(Rule(204), width=20, generations=10)
        self.assertAlmostEqual(profile.std, 0.0)
        self.assertEqual(profile.min, profile.max)

    def test_skip_discards_transient(self):
        full = entropy_profile(Rule(30), width=41, generations=20)
        skipped = entropy_profile(Rule(30), width=41, generations=10, skip=10)
        self.assertEqual(skipped.entropies, full.entropies[10:])

    def test_classify_thresholds(self):
        self.assertEqual(classify_entropy(0.01, 0.0), "dead")
        self.assertEqual(classify_entropy(0.2, 0.01), "periodic")
        self.assertEqual(classify_entropy(0.5, 0.2), "fractal")
        self.assertEqual(classify_entropy(0.9, 0.05), "chaotic")
        self.assertEqual(classify_entropy(0.5, 0.05), "complex")

    def test_to_dict(self):
        data = entropy_profile(Rule(0), width=20, generations=10).to_dict()
        self.assertEqual(set(data), {"mean_entropy", "std_entropy", "normalized_entropy", "entropy_class"})

    def test_survey(self):
        profiles = entropy_survey(width=20, generations=10, skip=5, rules=[0, 204])
        self.assertEqual(sorted(profiles), [0, 204])
        self.assertEqual(profiles[0].classify(), "dead")


# ─────────────────────────────────────────────────────────────────────────────
class TestCompression(unittest.TestCase):

    def test_pack_msb_first(self):
        """101111 padded to 10111100."""
        self.assertEqual(pack_spacetime(np.array([[1, 0, 1], [1, 1, 1]])), bytes([188]))

    def test_deflate_is_raw_stream(self):
        data = bytes(range(50)) * 10
        self.assertEqual(zlib.decompress(deflate(data), -15), data)

    def test_custom_compressor(self):
        """An identity compressor on a byte-aligned diagram gives ratio 1."""
        result = compression_ratio(Rule(30), width=8, generations=3, compressor=lambda b: b)
        self.assertEqual(result.raw_bits, 32)
        self.assertEqual(result.compressed_bits, 32)
        self.assertEqual(result.ratio, 1.0)

    def test_zero_raw_bits(self):
        self.assertEqual(CompressionResult(raw_bits=0, compressed_bits=16).ratio, 0.0)

    def test_rule_0_is_trivial(self):
        result = compression_ratio(Rule(0))
        self.assertEqual(result.raw_bits, 79 * 201)
        self.assertEqual(classify_compression(result.ratio), "trivial")

    def test_chaos_compresses_worse(self):
        self.assertGreater(compression_ratio(Rule(30)).ratio, 5 * compression_ratio(Rule(0)).ratio)

    def test_deterministic(self):
        self.assertEqual(compression_ratio(Rule(110)), compression_ratio(Rule(110)))

    def test_classify_thresholds(self):
        self.assertEqual(classify_compression(0.01), "trivial")
        self.assertEqual(classify_compression(0.1), "periodic")
        self.assertEqual(classify_compression(0.3), "structured")
        self.assertEqual(classify_compression(0.6), "complex")
        self.assertEqual(classify_compression(0.9), "chaotic")
        self.assertEqual(len(COMPRESSION_CLASSES), 5)

    def test_survey_sorted(self):
        results = compression_survey(width=31, generations=40, rules=[30, 0, 90, 204])
        ratios = [r.ratio for _, r in results]
        self.assertEqual(ratios, sorted(ratios))
        self.assertEqual(sorted(n for n, _ in results), [0, 30, 90, 204])

    def test_surveys_accept_generators(self):
        """Progress lines need the rule count, so generators are materialized."""
        with redirect_stdout(io.StringIO()) as out:
            results = compression_survey(width=8, generations=4, rules=(n for n in range(64)), verbose=True)
            profiles = entropy_survey(width=8, generations=4, skip=0, rules=(n for n in range(64)), verbose=True)
        self.assertEqual(len(results), 64)
        self.assertEqual(len(profiles), 64)
        self.assertEqual(out.getvalue().count("Surveyed 64/64 rules..."), 2)


# ─────────────────────────────────────────────────────────────────────────────
class TestEvaluate(unittest.TestCase):

    def test_temporal_change_rate(self):
        history = [row("00"), row("10"), row("11")]
        self.assertEqual(temporal_change_rate(history), 0.5)
        self.assertEqual(temporal_change_rate([row("01")]), 0.0)

    def test_rule_0(self):
        """Only the seed cell changes, once, over 10 steps."""
        m = evaluate_rule(Rule(0), width=20, generations=10)
        self.assertEqual(m.lambda_param, 0.0)
        self.assertEqual(m.final_density, 0.0)
        self.assertEqual(m.block_entropy, 0.0)
        self.assertAlmostEqual(m.temporal_change, (1 / 20) / 10)

    def test_matches_compression_ratio(self):
        m = evaluate_rule(Rule(110), width=40, generations=50)
        self.assertAlmostEqual(m.compression_ratio, compression_ratio(Rule(110), 40, 50).ratio)

    def test_custom_compressor_ratio(self):
        """Byte-aligned diagram with an identity compressor: ratio 1."""
        m = evaluate_rule(Rule(30), width=8, generations=3, compressor=lambda b: b)
        self.assertEqual(m.compression_ratio, 1.0)

    def test_to_dict(self):
        data = evaluate_rule(Rule(90), width=20, generations=10).to_dict()
        self.assertEqual(data["lambda_param"], 0.5)
        self.assertIn("compression_ratio", data)


if __name__ == "__main__":
    unittest.main()

"""Tests for rule inference and out-of-distribution generalization."""
import unittest

import numpy as np

from eca_discovery.automaton import Rule, apply_rule, seeded_cells
from eca_discovery.inference import (
    CorrelationalBaseline, InferenceResult, collect_transitions, infer_rule,
    majority_rule, noise_flip, ood_rows, trajectory_error, training_seed,
)


# ─────────────────────────────────────────────────────────────────────────────
class TestInferRule(unittest.TestCase):

    def test_every_rule_recovered_without_noise(self):
        for n in range(256):
            result = infer_rule(Rule(n), validate=False)
            self.assertEqual(result.inferred_rule, n)
            self.assertTrue(result.exact)
            self.assertTrue(result.fully_observed)

    def test_observation_total(self):
        result = infer_rule(Rule(110), width=50, generations=20, num_trials=10, validate=False)
        self.assertEqual(sum(result.observations), 50 * 20 * 10)

    def test_probabilities_are_zero_or_one_without_noise(self):
        result = infer_rule(Rule(30), validate=False)
        for code in range(8):
            self.assertEqual(result.probability(code), Rule(30).output(code))

    def test_full_noise_inverts_rule(self):
        """Every outcome flipped: the majority picks the complement of each bit."""
        result = infer_rule(Rule(110), noise=1.0, validate=False)
        self.assertEqual(result.inferred_rule, 255 - 110)
        self.assertFalse(result.exact)

    def test_moderate_noise_still_recovers(self):
        for n in (30, 90, 110):
            self.assertTrue(infer_rule(Rule(n), noise=0.1, validate=False).exact)

    def test_noise_is_deterministic(self):
        a = infer_rule(Rule(54), noise=0.3, validate=False)
        b = infer_rule(Rule(54), noise=0.3, validate=False)
        self.assertEqual(a.outcomes, b.outcomes)
        self.assertEqual(a.inferred_rule, b.inferred_rule)

    def test_noise_counter_read_after_increment(self):
        """Seed 67890 at width 5 is all dead, so five samples of code 000.

        Cell i is the (i+1)-th sample, giving (67890 + i + (i+1)) % 1000 =
        891, 893, 895, 897, 899; three fall under 0.8965 and flip to live.
        """
        result = infer_rule(Rule(0), width=5, generations=1, num_trials=1, noise=0.8965, validate=False)
        self.assertEqual(result.observations, [5, 0, 0, 0, 0, 0, 0, 0])
        self.assertEqual(result.outcomes, [3, 0, 0, 0, 0, 0, 0, 0])
        self.assertEqual(result.inferred_rule, 1)

    def test_noisy_outcomes_known_values(self):
        result = infer_rule(Rule(110), noise=0.3, validate=False)
        self.assertEqual(result.outcomes, [926, 522, 314, 744, 174, 460, 746, 361])

    def test_no_data_reports_unseen_codes(self):
        result = infer_rule(Rule(110), num_trials=0, validate=False)
        self.assertEqual(result.inferred_rule, 0)
        self.assertFalse(result.fully_observed)
        self.assertEqual(len(result.notes), 1)
        self.assertEqual(result.probability(3), 0.5)

    def test_to_dict(self):
        data = infer_rule(Rule(90)).to_dict()
        self.assertTrue(data["exact_match"])
        self.assertEqual(data["causal_sparse_error"], 0.0)
        self.assertIn("correlational_dense_error", data)


class TestGeneralization(unittest.TestCase):

    def test_exact_inference_has_zero_causal_error(self):
        g = infer_rule(Rule(110)).generalization
        self.assertEqual(g.causal_sparse, 0.0)
        self.assertEqual(g.causal_dense, 0.0)

    def test_local_model_beats_baseline_on_chaotic_rule(self):
        g = infer_rule(Rule(30)).generalization
        self.assertGreater(g.correlational_sparse + g.correlational_dense, 0.0)
        self.assertGreater(g.causal_advantage, 0.0)

    def test_trajectory_error_extremes(self):
        rows = ood_rows(20, sparse=True)
        self.assertEqual(trajectory_error(Rule(30), Rule(30), rows, 5), 0.0)
        self.assertEqual(trajectory_error(Rule(0), Rule(255), rows, 5), 1.0)
        self.assertEqual(trajectory_error(Rule(0), Rule(255), [], 5), 0.0)

    def test_ood_rows(self):
        sparse = ood_rows(100, sparse=True)
        dense = ood_rows(100, sparse=False)
        self.assertEqual(len(sparse), 5)
        self.assertEqual(len(dense), 5)
        self.assertLess(np.mean(sparse), 0.5)
        self.assertGreater(np.mean(dense), 0.5)
        np.testing.assert_array_equal(sparse[0], seeded_cells(100, 11111, 10))
        np.testing.assert_array_equal(dense[1], seeded_cells(100, 77777 + 33333, 90))


# ─────────────────────────────────────────────────────────────────────────────
class TestHelpers(unittest.TestCase):

    def test_training_seed(self):
        self.assertEqual(training_seed(0), 67890)
        self.assertEqual(training_seed(2), 2 * 12345 + 67890)

    def test_collect_transitions(self):
        transitions = collect_transitions(Rule(110), width=12, generations=4, num_trials=3)
        self.assertEqual(len(transitions), 12)
        for t in transitions:
            expected = apply_rule(Rule(110), np.array(t.before, dtype=np.uint8))
            self.assertEqual(t.after, tuple(int(c) for c in expected))
        # consecutive steps chain within a trial
        self.assertEqual(transitions[0].after, transitions[1].before)

    def test_noise_flip(self):
        self.assertFalse(noise_flip(0, 0, 1, 0.0))
        self.assertTrue(noise_flip(0, 0, 1, 0.5))
        self.assertFalse(noise_flip(0, 0, 600, 0.5))
        self.assertTrue(noise_flip(123, 45, 678, 1.0))

    def test_majority_ties_go_dead(self):
        observations = np.array([2, 3, 0, 1, 1, 1, 1, 1])
        outcomes = np.array([1, 2, 0, 1, 0, 1, 0, 1])
        self.assertEqual(majority_rule(observations, outcomes), Rule.from_table([0, 1, 0, 1, 0, 1, 0, 1]))

    def test_baseline_learns_own_cell(self):
        baseline = CorrelationalBaseline()
        before = np.array([1, 1, 0, 0, 1, 0, 1, 0, 1, 0], dtype=np.uint8)
        baseline.observe(before, before.copy())
        self.assertEqual(baseline.bucket(before), 5)
        np.testing.assert_array_equal(baseline.predict(before), before)

    def test_baseline_unseen_bucket_predicts_dead(self):
        baseline = CorrelationalBaseline()
        dense = np.ones(10, dtype=np.uint8)
        self.assertEqual(baseline.bucket(dense), 9)
        self.assertFalse(np.any(baseline.predict(dense)))

    def test_result_probability(self):
        result = InferenceResult(true_rule=1, inferred_rule=1, noise=0.0,
                                 observations=[4, 0, 0, 0, 0, 0, 0, 0], outcomes=[3, 0, 0, 0, 0, 0, 0, 0])
        self.assertEqual(result.probability(0), 0.75)
        self.assertEqual(result.probability(1), 0.5)


if __name__ == "__main__":
    unittest.main()

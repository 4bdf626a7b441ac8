"""Recover an elementary rule from observed transitions.

The learner sees only (before, after) row pairs produced by a hidden rule and
tallies, for each of the 8 neighborhood codes, how often the next cell was
live. Majority vote per code gives the inferred rule. Because the model is
the true local mechanism, it should keep working on initial conditions far
from the training distribution, unlike a baseline that only knows global
statistics (row density) and the cell's own value.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .automaton import ElementaryAutomaton, Rule, apply_rule, density, neighborhood_codes, seeded_cells

# Training rows: seed = trial * TRAIN_SEED_STEP + TRAIN_SEED_BASE at 50% density
TRAIN_SEED_STEP = 12345
TRAIN_SEED_BASE = 67890
TRAIN_DENSITY = 50

# Out-of-distribution test rows
SPARSE_SEED_STEP, SPARSE_SEED_BASE, SPARSE_DENSITY = 99999, 11111, 10
DENSE_SEED_STEP, DENSE_SEED_BASE, DENSE_DENSITY = 77777, 33333, 90
TEST_TRIALS = 5

DENSITY_BUCKETS = 10


@dataclass(frozen=True)
class Transition:
    """One observed generation step: the row before and the row after."""
    before: Tuple[int, ...]
    after: Tuple[int, ...]

    @classmethod
    def from_arrays(cls, before: np.ndarray, after: np.ndarray) -> "Transition":
        return cls(tuple(int(c) for c in before), tuple(int(c) for c in after))


def training_seed(trial: int) -> int:
    return trial * TRAIN_SEED_STEP + TRAIN_SEED_BASE


def collect_transitions(
    rule: Rule,
    width: int = 50,
    generations: int = 20,
    num_trials: int = 10,
    density_percent: int = TRAIN_DENSITY,
) -> List[Transition]:
    """Sample `generations` steps from each of `num_trials` seeded rows."""
    transitions = []
    for trial in range(num_trials):
        cells = seeded_cells(width, training_seed(trial), density_percent)
        for _ in range(generations):
            after = apply_rule(rule, cells)
            transitions.append(Transition.from_arrays(cells, after))
            cells = after
    return transitions


def noise_flip(seed: int, position: int, counter: int, noise: float) -> bool:
    """Deterministic stand-in for a coin flip with probability `noise`."""
    return noise > 0 and ((seed + position + counter) % 1000) / 1000.0 < noise


def majority_rule(observations: np.ndarray, outcomes: np.ndarray) -> Rule:
    """Rule whose bit c is set iff P(live | code c) > 0.5; unseen codes give 0."""
    bits = [
        1 if observations[code] > 0 and outcomes[code] / observations[code] > 0.5 else 0
        for code in range(8)
    ]
    return Rule.from_table(bits)


class CorrelationalBaseline:
    """Predict the next cell from (row density decile, own value) only.

    This captures how a cell tends to evolve in rows of a given density but
    knows nothing about its neighbors.
    """

    def __init__(self, buckets: int = DENSITY_BUCKETS):
        self.buckets = buckets
        self.counts = np.zeros((buckets, 2), dtype=np.int64)
        self.ones = np.zeros((buckets, 2), dtype=np.int64)

    def bucket(self, cells: np.ndarray) -> int:
        return min(int(density(cells) * self.buckets), self.buckets - 1)

    def observe(self, before: np.ndarray, after: np.ndarray):
        b = self.bucket(before)
        for own in (0, 1):
            mask = before == own
            self.counts[b, own] += int(np.count_nonzero(mask))
            self.ones[b, own] += int(np.count_nonzero(after[mask]))

    def predict(self, before: np.ndarray) -> np.ndarray:
        b = self.bucket(before)
        table = np.array(
            [
                1 if self.counts[b, own] > 0 and self.ones[b, own] > self.counts[b, own] // 2 else 0
                for own in (0, 1)
            ],
            dtype=np.uint8,
        )
        return table[np.asarray(before, dtype=np.uint8)]


def ood_rows(width: int, sparse: bool) -> List[np.ndarray]:
    """The fixed out-of-distribution test rows (10% or 90% density)."""
    if sparse:
        step, base, pct = SPARSE_SEED_STEP, SPARSE_SEED_BASE, SPARSE_DENSITY
    else:
        step, base, pct = DENSE_SEED_STEP, DENSE_SEED_BASE, DENSE_DENSITY
    return [seeded_cells(width, trial * step + base, pct) for trial in range(TEST_TRIALS)]


def trajectory_error(true_rule: Rule, inferred: Rule, rows: List[np.ndarray], generations: int) -> float:
    """Fraction of cells where the two rules' trajectories disagree."""
    errors = 0
    total = 0
    for cells in rows:
        ca_true = ElementaryAutomaton.from_cells(cells, true_rule)
        ca_inferred = ElementaryAutomaton.from_cells(cells, inferred)
        for _ in range(generations):
            ca_true.step()
            ca_inferred.step()
            errors += int(np.count_nonzero(ca_true.cells != ca_inferred.cells))
            total += len(cells)
    return errors / total if total else 0.0


def baseline_error(true_rule: Rule, baseline: CorrelationalBaseline, rows: List[np.ndarray], generations: int) -> float:
    """One-step-ahead error of the baseline along the true trajectories."""
    errors = 0
    total = 0
    for cells in rows:
        for _ in range(generations):
            predicted = baseline.predict(cells)
            cells = apply_rule(true_rule, cells)
            errors += int(np.count_nonzero(predicted != cells))
            total += len(cells)
    return errors / total if total else 0.0


@dataclass
class GeneralizationReport:
    """Error rates on sparse (10%) and dense (90%) initial rows."""
    causal_sparse: float
    causal_dense: float
    correlational_sparse: float
    correlational_dense: float

    @property
    def causal_advantage(self) -> float:
        """Mean error reduction of the local model over the baseline."""
        return ((self.correlational_sparse - self.causal_sparse)
                + (self.correlational_dense - self.causal_dense)) / 2

    def to_dict(self) -> Dict:
        return {
            "causal_sparse_error": self.causal_sparse,
            "causal_dense_error": self.causal_dense,
            "correlational_sparse_error": self.correlational_sparse,
            "correlational_dense_error": self.correlational_dense,
        }


@dataclass
class InferenceResult:
    true_rule: int
    inferred_rule: int
    noise: float
    observations: List[int]  # samples per neighborhood code
    outcomes: List[int]  # live outcomes per neighborhood code
    generalization: Optional[GeneralizationReport] = None
    notes: List[str] = field(default_factory=list)

    @property
    def exact(self) -> bool:
        return self.inferred_rule == self.true_rule

    @property
    def fully_observed(self) -> bool:
        return all(count > 0 for count in self.observations)

    def probability(self, code: int) -> float:
        """Observed P(live | code), 0.5 when the code was never seen."""
        if self.observations[code] == 0:
            return 0.5
        return self.outcomes[code] / self.observations[code]

    def to_dict(self) -> Dict:
        data = {
            "inferred_rule": self.inferred_rule,
            "noise": self.noise,
            "exact_match": self.exact,
        }
        if self.generalization is not None:
            data.update(self.generalization.to_dict())
        return data


def infer_rule(
    rule: Rule,
    width: int = 50,
    generations: int = 20,
    num_trials: int = 10,
    noise: float = 0.0,
    validate: bool = True,
) -> InferenceResult:
    """Infer `rule` from seeded runs, optionally with label noise, and validate it.

    With noise p > 0 each observed outcome is flipped by a deterministic
    decision derived from (trial seed, cell position, running count of the
    cell's neighborhood code), so repeated runs give identical results.
    """
    observations = np.zeros(8, dtype=np.int64)
    outcomes = np.zeros(8, dtype=np.int64)
    baseline = CorrelationalBaseline()

    for trial in range(num_trials):
        seed = training_seed(trial)
        cells = seeded_cells(width, seed, TRAIN_DENSITY)
        for _ in range(generations):
            codes = neighborhood_codes(cells)
            after = apply_rule(rule, cells)
            baseline.observe(cells, after)

            if noise > 0:
                for i, code in enumerate(codes):
                    observations[code] += 1
                    outcome = bool(after[i])
                    if noise_flip(seed, i, int(observations[code]), noise):
                        outcome = not outcome
                    if outcome:
                        outcomes[code] += 1
            else:
                observations += np.bincount(codes, minlength=8)
                outcomes += np.bincount(codes[after == 1], minlength=8)

            cells = after

    inferred = majority_rule(observations, outcomes)
    result = InferenceResult(
        true_rule=rule.number,
        inferred_rule=inferred.number,
        noise=noise,
        observations=[int(c) for c in observations],
        outcomes=[int(c) for c in outcomes],
    )
    if not result.fully_observed:
        unseen = [code for code in range(8) if observations[code] == 0]
        result.notes.append(f"neighborhood codes never observed: {unseen}")

    if validate:
        result.generalization = evaluate_generalization(rule, inferred, baseline, width, generations)
    return result


def evaluate_generalization(
    true_rule: Rule,
    inferred: Rule,
    baseline: CorrelationalBaseline,
    width: int,
    generations: int,
) -> GeneralizationReport:
    sparse = ood_rows(width, sparse=True)
    dense = ood_rows(width, sparse=False)
    return GeneralizationReport(
        causal_sparse=trajectory_error(true_rule, inferred, sparse, generations),
        causal_dense=trajectory_error(true_rule, inferred, dense, generations),
        correlational_sparse=baseline_error(true_rule, baseline, sparse, generations),
        correlational_dense=baseline_error(true_rule, baseline, dense, generations),
    )

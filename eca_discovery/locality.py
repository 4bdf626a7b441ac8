"""Infer how far a rule "sees" from its observed transitions.

For a candidate radius r, every cell's next value should be a function of
the 2r+1 cells centered on it. Radius r is consistent when no observed
window led to both a dead and a live cell. Windows of radius r+1 refine
those of radius r, so once a radius is consistent every larger one is too
and the scan can stop at the first hit.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .automaton import Rule
from .inference import Transition, collect_transitions

# Every elementary rule is radius 1 by construction
TRUE_RADIUS = 1


def window_matrix(before: np.ndarray, radius: int) -> np.ndarray:
    """Shape (n, 2r+1): row i holds cells i-r .. i+r, wrapping around."""
    return np.stack([np.roll(before, radius - j) for j in range(2 * radius + 1)], axis=1)


def window_table(transitions: Sequence[Transition], radius: int) -> Dict[str, Tuple[int, int]]:
    """Map each observed window pattern to (times next cell was dead, times live)."""
    table: Dict[str, List[int]] = {}
    for t in transitions:
        before = np.array(t.before, dtype=np.uint8)
        if before.size == 0:
            continue
        after = np.array(t.after, dtype=np.uint8)
        patterns, inverse = np.unique(window_matrix(before, radius), axis=0, return_inverse=True)
        inverse = np.asarray(inverse).ravel()
        live = np.bincount(inverse, weights=after, minlength=len(patterns)).astype(int)
        seen = np.bincount(inverse, minlength=len(patterns))
        for pattern, n_live, n_seen in zip(patterns, live, seen):
            key = "".join(str(int(b)) for b in pattern)
            counts = table.setdefault(key, [0, 0])
            counts[0] += int(n_seen - n_live)
            counts[1] += int(n_live)
    return {key: (zeros, ones) for key, (zeros, ones) in table.items()}


@dataclass
class RadiusCheck:
    """Consistency of the observed transitions with one candidate radius."""
    radius: int
    unique_windows: int
    inconsistent: Dict[str, Tuple[int, int]]

    @property
    def window_size(self) -> int:
        return 2 * self.radius + 1

    @property
    def possible_windows(self) -> int:
        return 1 << self.window_size

    @property
    def consistent(self) -> bool:
        return not self.inconsistent

    @property
    def consistency_rate(self) -> float:
        if self.unique_windows == 0:
            return 1.0
        return (self.unique_windows - len(self.inconsistent)) / self.unique_windows

    def examples(self, limit: int = 3) -> List[Tuple[str, int, int]]:
        """A few (pattern, zeros, ones) witnesses of inconsistency, in pattern order."""
        return [(p, z, o) for p, (z, o) in sorted(self.inconsistent.items())[:limit]]


def check_radius(transitions: Sequence[Transition], radius: int) -> RadiusCheck:
    table = window_table(transitions, radius)
    inconsistent = {
        pattern: (zeros, ones)
        for pattern, (zeros, ones) in table.items()
        if zeros > 0 and ones > 0
    }
    return RadiusCheck(radius=radius, unique_windows=len(table), inconsistent=inconsistent)


@dataclass
class RadiusResult:
    """Outcome of scanning radii 0..max_radius."""
    max_radius: int
    radius: Optional[int]  # None if no candidate was consistent
    checks: List[RadiusCheck] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.radius is not None

    def verdict(self) -> str:
        """Compare the inferred radius against TRUE_RADIUS."""
        if self.radius is None:
            return f"not found within radius {self.max_radius}"
        if self.radius == TRUE_RADIUS:
            return "matches the 3-cell neighborhood"
        if self.radius < TRUE_RADIUS:
            return "smaller than 1: some neighbors never matter"
        return "larger than 1: sampling left the neighborhood ambiguous"


def infer_radius(transitions: Sequence[Transition], max_radius: int = 4) -> RadiusResult:
    """Smallest radius in 0..max_radius under which the transitions are a function."""
    result = RadiusResult(max_radius=max_radius, radius=None)
    for r in range(max_radius + 1):
        check = check_radius(transitions, r)
        result.checks.append(check)
        if check.consistent:
            result.radius = r
            break
    return result


def center_function(rule: Rule) -> Optional[str]:
    """Name the rule if its output is a function of the center cell alone.

    Returns "constant 0", "constant 1", "identity" or "NOT", or None when
    the left or right neighbor also affects the output.
    """
    f0 = {rule.output(code) for code in range(8) if not (code >> 1) & 1}
    f1 = {rule.output(code) for code in range(8) if (code >> 1) & 1}
    if len(f0) != 1 or len(f1) != 1:
        return None
    names = {
        (0, 0): "constant 0",
        (1, 1): "constant 1",
        (0, 1): "identity",
        (1, 0): "NOT",
    }
    return names[(f0.pop(), f1.pop())]


@dataclass
class RadiusSurvey:
    radii: Dict[int, Optional[int]] = field(default_factory=dict)

    def rules_with_radius(self, radius: int) -> List[int]:
        return [rule for rule, r in self.radii.items() if r == radius]

    def rules_beyond(self, radius: int) -> List[int]:
        """Rules whose radius exceeded `radius` or was not found."""
        return [rule for rule, r in self.radii.items() if r is None or r > radius]


def radius_survey(
    width: int = 50,
    generations: int = 20,
    num_trials: int = 5,
    max_radius: int = 2,
    rules: Iterable[int] = range(256),
    verbose: bool = False,
) -> RadiusSurvey:
    """Effective radius of every rule from its own seeded transitions."""
    survey = RadiusSurvey()
    rules = list(rules)
    for i, number in enumerate(rules):
        transitions = collect_transitions(Rule(number), width, generations, num_trials)
        survey.radii[number] = infer_radius(transitions, max_radius).radius
        if verbose and (i + 1) % 64 == 0:
            print(f"Surveyed {i + 1}/{len(rules)} rules...")
    return survey

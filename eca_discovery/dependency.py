"""Which neighborhood positions does a rule's output actually depend on?

Two independent answers are computed. Direct inspection reads the rule
table: a position matters if flipping it alone ever changes the output.
Statistical inference sees only sampled transitions: a position matters if,
with the other two positions held fixed, the majority outcome differs
between its two values. Given enough samples they agree; with finite or
biased samples they may not, and that disagreement is reported rather than
hidden.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .automaton import Rule, neighborhood_codes
from .inference import Transition, collect_transitions

POSITIONS = ("left", "center", "right")

# Bit weight of each position in a neighborhood code
_WEIGHT = {"left": 4, "center": 2, "right": 1}

CLASS_NAMES = {
    (False, False, False): "none (constant)",
    (False, True, False): "center only",
    (True, False, False): "left only",
    (False, False, True): "right only",
    (True, True, False): "left + center",
    (False, True, True): "center + right",
    (True, False, True): "left + right (symmetric)",
    (True, True, True): "all three",
}

# Truth table of f(l, r) read as f(0,0) f(0,1) f(1,0) f(1,1)
BOOLEAN_FUNCTIONS = {
    "0000": "FALSE",
    "0001": "AND",
    "0010": "l AND NOT r",
    "0011": "l",
    "0100": "NOT l AND r",
    "0101": "r",
    "0110": "XOR",
    "0111": "OR",
    "1000": "NOR",
    "1001": "XNOR",
    "1010": "NOT r",
    "1011": "l OR NOT r",
    "1100": "NOT l",
    "1101": "NOT l OR r",
    "1110": "NAND",
    "1111": "TRUE",
}


@dataclass(frozen=True)
class Dependencies:
    left: bool
    center: bool
    right: bool

    def as_tuple(self) -> Tuple[bool, bool, bool]:
        return (self.left, self.center, self.right)

    @property
    def class_name(self) -> str:
        return CLASS_NAMES[self.as_tuple()]

    @property
    def positions(self) -> List[str]:
        return [name for name, matters in zip(POSITIONS, self.as_tuple()) if matters]

    def describe(self) -> str:
        return " + ".join(self.positions) if self.positions else "CONSTANT"


def _pairs(position: str):
    """Yield (code with position=0, code with position=1) for the 4 settings of the other two."""
    weight = _WEIGHT[position]
    for code in range(8):
        if not code & weight:
            yield code, code | weight


def position_matters(rule: Rule, position: str) -> bool:
    return any(rule.output(c0) != rule.output(c1) for c0, c1 in _pairs(position))


def rule_dependencies(rule: Rule) -> Dependencies:
    """Dependencies read straight from the rule table."""
    return Dependencies(*(position_matters(rule, p) for p in POSITIONS))


def boolean_function(rule: Rule) -> Tuple[str, str]:
    """Truth table and name of f(l, r) = rule(l, 0, r).

    Only meaningful when the center cell does not matter.
    """
    table = "".join(str(rule.output((l << 2) | r)) for l in (0, 1) for r in (0, 1))
    return table, BOOLEAN_FUNCTIONS[table]


def neighborhood_counts(transitions: Sequence[Transition]) -> np.ndarray:
    """Shape (8, 2): [code] -> (dead outcomes, live outcomes) across all samples."""
    counts = np.zeros((8, 2), dtype=np.int64)
    for t in transitions:
        before = np.array(t.before, dtype=np.uint8)
        if before.size == 0:
            continue
        after = np.array(t.after, dtype=np.uint8)
        codes = neighborhood_codes(before)
        counts[:, 1] += np.bincount(codes[after == 1], minlength=8)
        counts[:, 0] += np.bincount(codes[after == 0], minlength=8)
    return counts


@dataclass
class DependencyInference:
    """Dependencies inferred from samples, with the evidence per position."""
    dependencies: Dependencies
    # position -> [(other-two setting, majority for position=0, for position=1)], None if unseen
    differences: Dict[str, List[Tuple[str, Optional[bool], Optional[bool]]]] = field(default_factory=dict)
    samples: int = 0


def _majority(counts: np.ndarray, code: int) -> Optional[bool]:
    zeros, ones = counts[code]
    if zeros + ones == 0:
        return None
    return bool(ones > zeros)


def _setting_label(position: str, code: int) -> str:
    others = [p for p in POSITIONS if p != position]
    return ", ".join(f"{p[0]}={(code >> (2 - POSITIONS.index(p))) & 1}" for p in others)


def infer_dependencies(transitions: Sequence[Transition]) -> DependencyInference:
    """Dependencies judged from majority outcomes in the samples alone.

    An unobserved neighborhood has no majority (None). A setting where one
    value of the tested position was seen and the other was not counts as
    a difference; settings never seen on either side do not.
    """
    counts = neighborhood_counts(transitions)
    differences: Dict[str, List[Tuple[str, Optional[bool], Optional[bool]]]] = {p: [] for p in POSITIONS}
    for position in POSITIONS:
        for c0, c1 in _pairs(position):
            out0 = _majority(counts, c0)
            out1 = _majority(counts, c1)
            if out0 != out1:
                differences[position].append((_setting_label(position, c0), out0, out1))

    deps = Dependencies(*(bool(differences[p]) for p in POSITIONS))
    return DependencyInference(dependencies=deps, differences=differences, samples=int(counts.sum()))


@dataclass
class DependencyComparison:
    rule: int
    inferred: DependencyInference
    actual: Dependencies

    @property
    def agree(self) -> bool:
        return self.inferred.dependencies == self.actual


def compare_dependencies(
    rule: Rule,
    width: int = 50,
    generations: int = 30,
    num_trials: int = 10,
) -> DependencyComparison:
    """Infer dependencies from seeded runs of `rule` and check them against the table."""
    transitions = collect_transitions(rule, width, generations, num_trials)
    return DependencyComparison(
        rule=rule.number,
        inferred=infer_dependencies(transitions),
        actual=rule_dependencies(rule),
    )


def dependency_survey(rules: Sequence[int] = range(256)) -> Dict[str, List[int]]:
    """Group rules by dependency class, in CLASS_NAMES order."""
    groups: Dict[str, List[int]] = {name: [] for name in CLASS_NAMES.values()}
    for number in rules:
        groups[rule_dependencies(Rule(number)).class_name].append(number)
    return groups

"""Cycle and period detection for elementary automata on a finite ring."""

import numpy as np
from dataclasses import dataclass, field, asdict
from typing import Dict, Iterable, List, Optional, Sequence

from .automaton import Rule, apply_rule, density, is_dead, single_seed

# Periods up to this length count as "short cycle"
SHORT_CYCLE_LIMIT = 10

CYCLE_CLASSES = ("dies", "short cycle", "long cycle", "unresolved")


@dataclass(frozen=True)
class CycleAnalysis:
    """Outcome of iterating a rule until its state repeats.

    A period of 0 means no repeat was seen within the step budget; it says
    nothing about the automaton itself, since every finite ring eventually
    cycles. A state that dies reports period 1 (the dead row is its own
    fixed point).
    """
    transient: int  # Steps before the cycle is entered
    period: int  # Cycle length, 0 if unresolved
    died: bool  # Reached the all-dead row
    final_density: float

    @property
    def resolved(self) -> bool:
        return self.period > 0

    def to_dict(self) -> Dict:
        return asdict(self)


def find_cycle(
    rule: Rule,
    width: int = 31,
    max_steps: int = 1000,
    initial: Optional[Sequence[int]] = None,
) -> CycleAnalysis:
    """Step `rule` from `initial` (default: single center cell) until a state repeats.

    Every visited state is kept twice: in `history` for its position and in
    `seen` (keyed on the raw bytes) for constant-time membership.
    """
    state = single_seed(width) if initial is None else np.array(initial, dtype=np.uint8)
    history: List[bytes] = [state.tobytes()]
    seen = {history[0]}

    for step in range(max_steps):
        state = apply_rule(rule, state)

        if is_dead(state):
            return CycleAnalysis(transient=step + 1, period=1, died=True, final_density=0.0)

        key = state.tobytes()
        if key in seen:
            cycle_start = history.index(key)
            return CycleAnalysis(
                transient=cycle_start,
                period=step + 1 - cycle_start,
                died=False,
                final_density=density(state),
            )

        seen.add(key)
        history.append(key)

    return CycleAnalysis(transient=max_steps, period=0, died=False, final_density=density(state))


def classify_cycle(analysis: CycleAnalysis) -> str:
    """Bucket an analysis into one of CYCLE_CLASSES."""
    if analysis.died:
        return "dies"
    if 0 < analysis.period <= SHORT_CYCLE_LIMIT:
        return "short cycle"
    if analysis.period > SHORT_CYCLE_LIMIT:
        return "long cycle"
    return "unresolved"


@dataclass
class CycleSurvey:
    """Cycle analyses for every rule, plus how many fell in each class."""
    width: int
    max_steps: int
    analyses: Dict[int, CycleAnalysis] = field(default_factory=dict)

    @property
    def class_counts(self) -> Dict[str, int]:
        counts = {name: 0 for name in CYCLE_CLASSES}
        for analysis in self.analyses.values():
            counts[classify_cycle(analysis)] += 1
        return counts

    def notable(self) -> List[int]:
        """Rules that do something other than die on the first step."""
        return [
            rule for rule, a in self.analyses.items()
            if not a.died or a.transient > 1
        ]


def cycle_survey(
    width: int = 31,
    max_steps: int = 1000,
    rules: Iterable[int] = range(256),
    verbose: bool = False,
) -> CycleSurvey:
    """Run find_cycle for each rule from the single-seed start."""
    survey = CycleSurvey(width=width, max_steps=max_steps)
    rules = list(rules)
    for i, number in enumerate(rules):
        survey.analyses[number] = find_cycle(Rule(number), width, max_steps)
        if verbose and (i + 1) % 64 == 0:
            print(f"Surveyed {i + 1}/{len(rules)} rules...")
    return survey


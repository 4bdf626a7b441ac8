"""1D elementary cellular automaton engine with toroidal boundaries."""

import numpy as np
from dataclasses import dataclass
from functools import cached_property
from typing import List, Optional, Sequence

# Seeds are multiplied as unsigned 64-bit machine words
_WORD_MASK = (1 << 64) - 1

DEFAULT_RULE = 110

LIVE_GLYPH = "#"
DEAD_GLYPH = " "


@dataclass(frozen=True)
class Rule:
    """Elementary rule in Wolfram numbering (0-255).

    Bit i of the rule number is the next state of a cell whose neighborhood
    (left, center, right) reads as the integer i = left*4 + center*2 + right.
    """
    number: int

    def __post_init__(self):
        if not 0 <= self.number <= 255:
            raise ValueError(f"rule number must be between 0 and 255, got {self.number}")

    @classmethod
    def from_table(cls, bits: Sequence[int]) -> "Rule":
        """Build a rule from 8 output bits indexed by neighborhood code."""
        if len(bits) != 8:
            raise ValueError("a rule table needs exactly 8 entries")
        return cls(sum(1 << i for i, bit in enumerate(bits) if bit))

    @cached_property
    def table(self) -> np.ndarray:
        """Lookup table of shape (8,): table[code] is the output bit. Read-only."""
        table = np.array([(self.number >> i) & 1 for i in range(8)], dtype=np.uint8)
        table.flags.writeable = False
        return table

    def output(self, code: int) -> int:
        """Output bit for neighborhood code 0-7."""
        return (self.number >> code) & 1

    def to_string(self) -> str:
        return f"Rule {self.number}"

    def to_binary(self) -> str:
        return f"{self.number:08b}"

    def lambda_parameter(self) -> float:
        """Langton's lambda: fraction of neighborhoods mapping to a live cell."""
        return bin(self.number).count("1") / 8.0

    def transitions(self) -> List[tuple]:
        """(pattern, output) pairs from neighborhood 111 down to 000."""
        return [(neighborhood_pattern(code), self.output(code)) for code in range(7, -1, -1)]


def neighborhood_pattern(code: int) -> str:
    """Render neighborhood code as its 'lcr' bit string, e.g. 6 -> '110'."""
    return f"{(code >> 2) & 1}{(code >> 1) & 1}{code & 1}"


def neighborhood_codes(state: np.ndarray) -> np.ndarray:
    """Neighborhood code (left*4 + center*2 + right) of every cell, with wraparound."""
    state = np.asarray(state, dtype=np.uint8)
    left = np.roll(state, 1)
    right = np.roll(state, -1)
    return (left << 2) | (state << 1) | right


def apply_rule(rule: Rule, state: np.ndarray) -> np.ndarray:
    """Next generation of `state` under `rule`. The input is left untouched."""
    state = np.asarray(state, dtype=np.uint8)
    if state.size == 0:
        return state.copy()
    return rule.table[neighborhood_codes(state)]


def single_seed(width: int) -> np.ndarray:
    """All-dead row with one live cell at width // 2."""
    cells = np.zeros(width, dtype=np.uint8)
    if width > 0:
        cells[width // 2] = 1
    return cells


def seeded_cells(width: int, seed: int, density_percent: int = 50) -> np.ndarray:
    """Deterministic pseudo-random row.

    Cell i is live iff ((seed * (i + 1)) mod 2**64) mod 100 < density_percent.
    The scheme is plain multiplicative arithmetic rather than a statistical
    generator; inference results depend on exactly which rows it produces.
    """
    return np.array(
        [((seed * (i + 1)) & _WORD_MASK) % 100 < density_percent for i in range(width)],
        dtype=np.uint8,
    )


def is_dead(state: np.ndarray) -> bool:
    return not np.any(state)


def density(state: np.ndarray) -> float:
    """Fraction of live cells (0.0 for an empty row)."""
    if len(state) == 0:
        return 0.0
    return float(np.count_nonzero(state)) / len(state)


class ElementaryAutomaton:
    """Elementary (radius-1, two-state) cellular automaton on a ring of cells."""

    def __init__(self, width: int = 79, rule: Optional[Rule] = None):
        if width < 1:
            raise ValueError(f"width must be positive, got {width}")
        self.width = width
        self.rule = rule or Rule(DEFAULT_RULE)
        self.cells = single_seed(width)
        self.generation = 0
        self._history: List[np.ndarray] = []

    @classmethod
    def from_cells(cls, cells: Sequence[int], rule: Rule) -> "ElementaryAutomaton":
        """Create an automaton starting from an explicit row of cells."""
        ca = cls(width=len(cells), rule=rule)
        ca.set_cells(cells)
        return ca

    def set_cells(self, cells: Sequence[int]):
        """Replace the current row. Its length must match the width."""
        cells = np.array(cells, dtype=np.uint8)
        if cells.shape != (self.width,):
            raise ValueError(f"expected {self.width} cells, got {cells.shape}")
        self.cells = (cells != 0).astype(np.uint8)
        self.generation = 0
        self._history = []

    def seed_center(self):
        """Reset to a single live cell in the middle."""
        self.set_cells(single_seed(self.width))

    def randomize(self, density: float = 0.5, rng: Optional[np.random.Generator] = None):
        """Fill the row with random cells at the given density."""
        if rng is None:
            rng = np.random.default_rng()
        self.set_cells((rng.random(self.width) < density).astype(np.uint8))

    def step(self, record_history: bool = False):
        """Advance simulation by one generation."""
        if record_history:
            self._history.append(self.cells.copy())
        self.cells = apply_rule(self.rule, self.cells)
        self.generation += 1

    def run(self, steps: int, record_history: bool = False) -> List[np.ndarray]:
        """Run simulation for multiple steps."""
        for _ in range(steps):
            self.step(record_history=record_history)
        if record_history:
            self._history.append(self.cells.copy())
        return self._history

    def get_history(self) -> List[np.ndarray]:
        """Get recorded history."""
        return self._history

    def spacetime(self, generations: int) -> np.ndarray:
        """Run `generations` steps and return rows 0..generations stacked."""
        rows = [self.cells.copy()]
        for _ in range(generations):
            self.step()
            rows.append(self.cells.copy())
        return np.stack(rows)

    def population(self) -> int:
        """Count live cells."""
        return int(np.count_nonzero(self.cells))

    def density(self) -> float:
        """Calculate population density."""
        return self.population() / self.width

    def is_dead(self) -> bool:
        return self.population() == 0

    def __str__(self):
        return "".join(LIVE_GLYPH if c else DEAD_GLYPH for c in self.cells)


# Wolfram class 3 (chaotic) and class 4 (complex) rules worth a closer look
INTERESTING_RULES = (
    30,   # class 3
    45,   # class 3
    60,   # class 3, XOR of left and center
    73,   # class 4
    89,   # class 4
    90,   # class 3, Sierpinski triangle
    105,  # class 3
    106,  # class 4
    110,  # class 4, Turing complete
    124,  # class 4
    137,  # class 4
    150,  # class 3
)

"""Spatial entropy and compression-based complexity of elementary automata."""

import numpy as np
import zlib
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from scipy.stats import entropy as shannon

from .automaton import ElementaryAutomaton, Rule, density

Compressor = Callable[[bytes], bytes]


def _windows(state: np.ndarray, k: int) -> np.ndarray:
    """Array of shape (n, k); row i is the wraparound window starting at cell i."""
    return np.stack([np.roll(state, -j) for j in range(k)], axis=1)


def block_counts(state: np.ndarray, k: int) -> Dict[str, int]:
    """How often each length-k window occurs, keyed by its '0'/'1' pattern."""
    state = np.asarray(state, dtype=np.uint8)
    if k < 1 or k > len(state):
        return {}
    patterns, counts = np.unique(_windows(state, k), axis=0, return_counts=True)
    return {
        "".join(str(int(b)) for b in pattern): int(count)
        for pattern, count in zip(patterns, counts)
    }


def block_entropy(state: np.ndarray, k: int) -> float:
    """Shannon entropy (bits) of the length-k window distribution of one row.

    One window per starting cell, wrapping around, so there are always
    len(state) samples. Lies in [0, k]; k = 0 or k > width gives 0.
    """
    state = np.asarray(state, dtype=np.uint8)
    if k < 1 or k > len(state):
        return 0.0
    _, counts = np.unique(_windows(state, k), axis=0, return_counts=True)
    return float(shannon(counts, base=2))


@dataclass
class EntropyProfile:
    """Block entropy of each generation of one run, with summary statistics."""
    rule: int
    block_size: int
    entropies: List[float]
    densities: List[float]

    @property
    def mean(self) -> float:
        return float(np.mean(self.entropies))

    @property
    def std(self) -> float:
        return float(np.std(self.entropies))

    @property
    def min(self) -> float:
        return float(np.min(self.entropies))

    @property
    def max(self) -> float:
        return float(np.max(self.entropies))

    @property
    def normalized_mean(self) -> float:
        return self.mean / self.block_size

    @property
    def normalized_std(self) -> float:
        return self.std / self.block_size

    def classify(self) -> str:
        return classify_entropy(self.normalized_mean, self.normalized_std)

    def to_dict(self) -> Dict:
        return {
            "mean_entropy": self.mean,
            "std_entropy": self.std,
            "normalized_entropy": self.normalized_mean,
            "entropy_class": self.classify(),
        }


def entropy_profile(
    rule: Rule,
    width: int = 79,
    generations: int = 100,
    block_size: int = 3,
    skip: int = 0,
) -> EntropyProfile:
    """Track block entropy over `generations` steps from the single-seed start.

    The first `skip` generations are run but not recorded.
    """
    ca = ElementaryAutomaton(width=width, rule=rule)
    ca.run(skip)

    entropies = [block_entropy(ca.cells, block_size)]
    densities = [ca.density()]
    for _ in range(generations):
        ca.step()
        entropies.append(block_entropy(ca.cells, block_size))
        densities.append(ca.density())

    return EntropyProfile(rule=rule.number, block_size=block_size, entropies=entropies, densities=densities)


def classify_entropy(norm_mean: float, norm_std: float) -> str:
    """Name the dynamics class suggested by normalized entropy mean and spread."""
    if norm_mean < 0.05:
        return "dead"
    if norm_std < 0.02 and norm_mean < 0.3:
        return "periodic"
    if norm_std > 0.15:
        return "fractal"
    if norm_mean > 0.75 and norm_std < 0.1:
        return "chaotic"
    return "complex"


ENTROPY_CLASSES = ("dead", "periodic", "fractal", "complex", "chaotic")


def entropy_survey(
    width: int = 79,
    generations: int = 100,
    block_size: int = 3,
    skip: int = 50,
    rules: Iterable[int] = range(256),
    verbose: bool = False,
) -> Dict[int, EntropyProfile]:
    """Entropy profile of every rule after a `skip`-generation transient."""
    profiles = {}
    rules = list(rules)
    for i, number in enumerate(rules):
        profiles[number] = entropy_profile(Rule(number), width, generations, block_size, skip)
        if verbose and (i + 1) % 64 == 0:
            print(f"Surveyed {i + 1}/{len(rules)} rules...")
    return profiles


def deflate(data: bytes) -> bytes:
    """Raw DEFLATE stream (no zlib header or checksum) at maximum compression."""
    compressor = zlib.compressobj(9, zlib.DEFLATED, -15)
    return compressor.compress(data) + compressor.flush()


def pack_spacetime(spacetime: np.ndarray) -> bytes:
    """Pack rows of cells row-major, most significant bit first, zero-padded."""
    return np.packbits(np.asarray(spacetime, dtype=np.uint8).ravel()).tobytes()


@dataclass(frozen=True)
class CompressionResult:
    raw_bits: int
    compressed_bits: int

    @property
    def ratio(self) -> float:
        """Compressed over raw size: near 0 is highly structured, near 1 incompressible."""
        if self.raw_bits == 0:
            return 0.0
        return self.compressed_bits / self.raw_bits

    def to_dict(self) -> Dict:
        return {
            "raw_bits": self.raw_bits,
            "compressed_bits": self.compressed_bits,
            "compression_ratio": self.ratio,
            "compression_class": classify_compression(self.ratio),
        }


def compression_ratio(
    rule: Rule,
    width: int = 79,
    generations: int = 200,
    compressor: Optional[Compressor] = None,
) -> CompressionResult:
    """Compress the spacetime diagram of generations 0..N from the single-seed start.

    `compressor` must be lossless and deterministic; raw DEFLATE by default.
    """
    compressor = compressor or deflate
    ca = ElementaryAutomaton(width=width, rule=rule)
    packed = pack_spacetime(ca.spacetime(generations))
    compressed = compressor(packed)
    return CompressionResult(raw_bits=width * (generations + 1), compressed_bits=8 * len(compressed))


def classify_compression(ratio: float) -> str:
    if ratio < 0.05:
        return "trivial"  # nearly empty or constant
    if ratio < 0.20:
        return "periodic"
    if ratio < 0.50:
        return "structured"
    if ratio < 0.80:
        return "complex"
    return "chaotic"  # nearly incompressible


COMPRESSION_CLASSES = ("trivial", "periodic", "structured", "complex", "chaotic")


def compression_survey(
    width: int = 79,
    generations: int = 200,
    rules: Iterable[int] = range(256),
    compressor: Optional[Compressor] = None,
    verbose: bool = False,
) -> List[Tuple[int, CompressionResult]]:
    """Compression result for every rule, most compressible first."""
    results = []
    rules = list(rules)
    for i, number in enumerate(rules):
        results.append((number, compression_ratio(Rule(number), width, generations, compressor)))
        if verbose and (i + 1) % 64 == 0:
            print(f"Surveyed {i + 1}/{len(rules)} rules...")
    return sorted(results, key=lambda item: item[1].ratio)


def temporal_change_rate(history: List[np.ndarray]) -> float:
    """Average fraction of cells that flip between consecutive generations."""
    if len(history) < 2:
        return 0.0

    changes = []
    for i in range(1, len(history)):
        changes.append(np.count_nonzero(history[i] != history[i - 1]) / len(history[i]))

    return float(np.mean(changes))


@dataclass
class MetricsResult:
    """Summary of one rule's behaviour from the single-seed start."""
    rule: int
    lambda_param: float
    block_entropy: float
    temporal_change: float
    compression_ratio: float
    final_density: float

    def to_dict(self) -> Dict:
        return {
            "lambda_param": self.lambda_param,
            "block_entropy": self.block_entropy,
            "temporal_change": self.temporal_change,
            "compression_ratio": self.compression_ratio,
            "final_density": self.final_density,
        }


def evaluate_rule(
    rule: Rule,
    width: int = 79,
    generations: int = 200,
    block_size: int = 3,
    compressor: Optional[Compressor] = None,
) -> MetricsResult:
    """Evaluate a rule on every single-run metric at once."""
    ca = ElementaryAutomaton(width=width, rule=rule)
    history = ca.run(generations, record_history=True)
    spacetime = np.stack(history)
    compressed = (compressor or deflate)(pack_spacetime(spacetime))
    compression = CompressionResult(raw_bits=width * (generations + 1), compressed_bits=8 * len(compressed))

    return MetricsResult(
        rule=rule.number,
        lambda_param=rule.lambda_parameter(),
        block_entropy=block_entropy(history[-1], block_size),
        temporal_change=temporal_change_rate(history),
        compression_ratio=compression.ratio,
        final_density=density(history[-1]),
    )

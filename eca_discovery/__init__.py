"""Elementary Automata Discovery - simulate and analyze the 256 elementary cellular automata."""

from .automaton import ElementaryAutomaton, Rule, apply_rule, INTERESTING_RULES
from .cycles import CycleAnalysis, find_cycle
from .metrics import block_entropy, compression_ratio
from .inference import infer_rule
from .locality import infer_radius
from .dependency import rule_dependencies, infer_dependencies

__all__ = [
    "ElementaryAutomaton", "Rule", "apply_rule", "INTERESTING_RULES",
    "CycleAnalysis", "find_cycle",
    "block_entropy", "compression_ratio",
    "infer_rule", "infer_radius",
    "rule_dependencies", "infer_dependencies",
]

"""Text and image rendering for elementary cellular automata."""

import numpy as np
from pathlib import Path
from typing import List, Optional, Sequence

try:
    import matplotlib.pyplot as plt
    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False

try:
    from PIL import Image
    HAS_PIL = True
except ImportError:
    HAS_PIL = False

from .automaton import DEAD_GLYPH, LIVE_GLYPH, ElementaryAutomaton, Rule


def render_row(cells: Sequence[int]) -> str:
    """One generation as text: '#' for live cells, space for dead ones."""
    return "".join(LIVE_GLYPH if c else DEAD_GLYPH for c in cells)


def render_trace(rule: Rule, width: int = 79, generations: int = 40) -> List[str]:
    """Generations 0..N from a single center cell, framed by dashed rules."""
    ca = ElementaryAutomaton(width=width, rule=rule)
    history = ca.run(generations, record_history=True)
    border = "-" * width
    return [rule.to_string(), border] + [render_row(row) for row in history] + [border]


def render_transition_table(rule: Rule) -> List[str]:
    lines = [f"{rule.to_string()} transition table:", "  neighborhood -> next"]
    for pattern, output in rule.transitions():
        lines.append(f"      {pattern}      ->  {output}")
    return lines


def format_table(headers: Sequence[str], rows: Sequence[Sequence], widths: Sequence[int],
                 align_left: Sequence[int] = ()) -> List[str]:
    """Fixed-column text table with a dashed separator under the header.

    Columns are right-aligned unless their index is in `align_left`.
    """
    def fmt(values):
        cells = []
        for i, (value, w) in enumerate(zip(values, widths)):
            cells.append(f"{value!s:<{w}}" if i in align_left else f"{value!s:>{w}}")
        return " ".join(cells).rstrip()

    total = sum(widths) + len(widths) - 1
    return [fmt(headers), "-" * total] + [fmt(row) for row in rows]


def format_rule_columns(rules: Sequence[int], per_line: int = 8, indent: int = 4) -> List[str]:
    """Rule numbers in rows of `per_line`, each right-aligned to width 4."""
    lines = []
    for start in range(0, len(rules), per_line):
        chunk = rules[start:start + per_line]
        lines.append(" " * indent + "".join(f"{r:>4}" for r in chunk))
    return lines


def render_spacetime(spacetime: np.ndarray, cell_size: int = 4) -> np.ndarray:
    """Rows of cells as an RGB image array, time running downward."""
    spacetime = np.asarray(spacetime, dtype=np.uint8)

    # Dark gray background, white live cells
    img = np.full((spacetime.shape[0] * cell_size, spacetime.shape[1] * cell_size, 3), 30, dtype=np.uint8)
    upscaled = np.repeat(np.repeat(spacetime, cell_size, axis=0), cell_size, axis=1)
    img[upscaled == 1] = 255

    return img


def save_spacetime_image(
    rule: Rule,
    filepath: str,
    width: int = 79,
    generations: int = 40,
    cell_size: int = 4,
) -> str:
    """Save the single-seed spacetime diagram of a rule as PNG."""
    if not HAS_PIL:
        raise ImportError("PIL/Pillow required for saving images. Install with: pip install pillow")

    ca = ElementaryAutomaton(width=width, rule=rule)
    img = Image.fromarray(render_spacetime(ca.spacetime(generations), cell_size))
    Path(filepath).parent.mkdir(parents=True, exist_ok=True)
    img.save(filepath)
    return filepath


def plot_entropy(
    entropies: Sequence[float],
    block_size: int,
    title: str = "Block entropy",
    output_path: Optional[str] = None,
):
    """Plot entropy per generation against its k-bit ceiling."""
    if not HAS_MATPLOTLIB:
        raise ImportError("Matplotlib required for plotting. Install with: pip install matplotlib")

    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(range(len(entropies)), entropies, linewidth=1.2)
    ax.axhline(block_size, linestyle="--", color="gray", linewidth=0.8)
    ax.set_xlabel("Generation")
    ax.set_ylabel(f"H_{block_size} (bits)")
    ax.set_ylim(0, block_size * 1.05)
    ax.set_title(title)
    fig.tight_layout()

    if output_path:
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path)
        plt.close(fig)
    else:
        plt.show()

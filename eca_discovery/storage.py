"""Persistence layer for analysis results of elementary rules."""

import csv
import json
from pathlib import Path
from datetime import datetime
from typing import Dict, List, Optional
from dataclasses import dataclass, asdict, field

from .automaton import Rule

CSV_COLUMNS = [
    "rule", "lambda_param", "period", "transient", "died", "cycle_class",
    "mean_entropy", "entropy_class", "compression_ratio", "compression_class",
    "effective_radius", "dependency_class",
]


@dataclass
class CatalogEntry:
    """Everything recorded about one rule, merged across analyses."""
    rule: int
    metrics: Dict = field(default_factory=dict)
    updated_at: str = ""
    notes: str = ""

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "CatalogEntry":
        return cls(**data)

    def get_rule(self) -> Rule:
        return Rule(self.rule)


class RuleCatalog:
    """JSON-based storage of per-rule analysis results."""

    def __init__(self, filepath: str = "eca_catalog.json", autosave: bool = True):
        self.filepath = Path(filepath)
        self.autosave = autosave
        self.entries: Dict[int, CatalogEntry] = {}
        self._load()

    def _load(self):
        """Load entries from file."""
        if self.filepath.exists():
            try:
                with open(self.filepath, "r") as f:
                    data = json.load(f)
                    entries = [CatalogEntry.from_dict(e) for e in data.get("entries", [])]
                    self.entries = {e.rule: e for e in entries}
            except (json.JSONDecodeError, KeyError, TypeError):
                self.entries = {}
        else:
            self.entries = {}

    def save(self):
        """Save entries to file."""
        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "version": "1.0",
            "updated_at": datetime.now().isoformat(),
            "entries": [self.entries[rule].to_dict() for rule in sorted(self.entries)],
        }
        with open(self.filepath, "w") as f:
            json.dump(data, f, indent=2)

    def record(self, rule: int, metrics: Dict, notes: str = "") -> CatalogEntry:
        """Merge `metrics` into the entry for `rule`, creating it if needed."""
        lambda_param = Rule(rule).lambda_parameter()
        entry = self.entries.get(rule)
        if entry is None:
            entry = CatalogEntry(rule=rule, metrics={"lambda_param": lambda_param})
            self.entries[rule] = entry
        entry.metrics.update(metrics)
        entry.updated_at = datetime.now().isoformat()
        if notes:
            entry.notes = notes
        if self.autosave:
            self.save()
        return entry

    def record_many(self, results: Dict[int, Dict]):
        """Record one metrics dict per rule and save once."""
        autosave, self.autosave = self.autosave, False
        try:
            for rule, metrics in results.items():
                self.record(rule, metrics)
        finally:
            self.autosave = autosave
        if self.autosave:
            self.save()

    def get(self, rule: int) -> Optional[CatalogEntry]:
        return self.entries.get(rule)

    def get_leaderboard(self, metric: str = "compression_ratio", top_n: int = 20,
                        ascending: bool = False) -> List[CatalogEntry]:
        """Top N entries ranked by a numeric metric; entries without it are skipped."""
        ranked = [e for e in self.entries.values() if isinstance(e.metrics.get(metric), (int, float))]
        return sorted(ranked, key=lambda e: e.metrics[metric], reverse=not ascending)[:top_n]

    def remove(self, rule: int) -> bool:
        """Remove a rule from the catalog."""
        if rule in self.entries:
            del self.entries[rule]
            self.save()
            return True
        return False

    def clear(self):
        """Clear all entries."""
        self.entries = {}
        self.save()

    def export_csv(self, filepath: str):
        """Export entries to CSV, one row per rule."""
        with open(filepath, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(CSV_COLUMNS + ["updated_at", "notes"])
            for rule in sorted(self.entries):
                e = self.entries[rule]
                row = [rule] + [_format_cell(e.metrics.get(col, "")) for col in CSV_COLUMNS[1:]]
                writer.writerow(row + [e.updated_at, e.notes])

    def __len__(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries[rule] for rule in sorted(self.entries))


def _format_cell(value) -> str:
    if isinstance(value, float):
        return f"{value:.4f}"
    return str(value)


def load_catalog(filepath: str = "eca_catalog.json") -> RuleCatalog:
    """Load or create a rule catalog."""
    return RuleCatalog(filepath)

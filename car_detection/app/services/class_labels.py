"""Class index to label lookup for the car detector."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional

import yaml

LOGGER = logging.getLogger(__name__)

UNKNOWN_LABEL = "unknown"

DEFAULT_CLASS_LABELS: Mapping[int, str] = {
    0: "car",
    1: "car-tire",
}


class ClassLabelTable(Mapping[int, str]):
    """Closed vocabulary of detector classes; unmapped indices read as ``unknown``."""

    def __init__(self, labels: Optional[Mapping[int, str]] = None, unknown_label: str = UNKNOWN_LABEL) -> None:
        source = DEFAULT_CLASS_LABELS if labels is None else labels
        self._labels: Dict[int, str] = {int(index): str(name) for index, name in source.items()}
        self.unknown_label = unknown_label

    @classmethod
    def from_yaml(cls, path: Path) -> "ClassLabelTable":
        """Load a table from YAML, either a ``labels`` mapping or a list ordered by index."""

        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle)
        if isinstance(payload, dict) and "labels" in payload:
            payload = payload["labels"]
        if isinstance(payload, list):
            labels = {index: str(name) for index, name in enumerate(payload)}
        elif isinstance(payload, dict) and payload:
            labels = {int(index): str(name) for index, name in payload.items()}
        else:
            raise ValueError(f"No class labels found in {path}")
        LOGGER.info("Loaded %d class labels from %s", len(labels), path)
        return cls(labels)

    def label_for(self, class_index: int) -> str:
        return self._labels.get(class_index, self.unknown_label)

    def with_labels(self, extra: Mapping[int, str]) -> "ClassLabelTable":
        """Return a copy extended (or overridden) with ``extra`` entries."""

        merged = dict(self._labels)
        merged.update({int(index): str(name) for index, name in extra.items()})
        return ClassLabelTable(merged, unknown_label=self.unknown_label)

    def __getitem__(self, class_index: int) -> str:
        return self._labels[class_index]

    def __iter__(self) -> Iterator[int]:
        return iter(self._labels)

    def __len__(self) -> int:
        return len(self._labels)

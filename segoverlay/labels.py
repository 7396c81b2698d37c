"""
Class label table.

Responsibility:
    Load the class-id → name mapping from a YAML or JSON file and look
    names up. The table is built once and never mutated.

Accepted file contents:
    - A list of names, indexed by position:   ["boat", "buoy", "person"]
    - A mapping of id to name:                {0: boat, 1: buoy, 2: person}
    - Either of the above under a "names" key (Ultralytics data.yaml style).
"""

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Sequence, Union

import yaml

from segoverlay.config import get_project_root

logger = logging.getLogger(__name__)


class LabelTable:
    """Immutable class-id → human-readable name lookup.

    Unknown ids resolve to "class_<id>" so that a detection from an
    unlabelled class can still be drawn.
    """

    def __init__(self, names: Union[Sequence[str], Mapping[int, str], None] = None) -> None:
        if names is None:
            mapping = {}
        elif isinstance(names, Mapping):
            mapping = {int(k): str(v) for k, v in names.items()}
        else:
            mapping = {i: str(name) for i, name in enumerate(names)}
        self._names = MappingProxyType(mapping)

    def name(self, class_id: int) -> str:
        return self._names.get(int(class_id), f"class_{int(class_id)}")

    def __getitem__(self, class_id: int) -> str:
        return self.name(class_id)

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"LabelTable({dict(self._names)!r})"


def load_labels(path: Optional[str] = None) -> LabelTable:
    """Load a label table from disk.

    Args:
        path: YAML (.yaml/.yml) or JSON file. Relative paths are resolved
              against the project root. None returns an empty table.

    Returns:
        The loaded LabelTable.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file holds neither a list nor a mapping.
    """
    if path is None:
        return LabelTable()

    resolved = Path(path)
    if not resolved.is_absolute():
        resolved = get_project_root() / resolved

    if not resolved.is_file():
        raise FileNotFoundError(
            f"Label file not found: {resolved}. "
            f"Provide a valid path or update 'visualization.labels_path'."
        )

    with open(resolved, "r", encoding="utf-8") as f:
        if resolved.suffix.lower() == ".json":
            raw = json.load(f)
        else:
            raw = yaml.safe_load(f)

    if isinstance(raw, dict) and "names" in raw:
        raw = raw["names"]

    if not isinstance(raw, (list, dict)):
        raise ValueError(
            f"Label file {resolved} must contain a list or a mapping of names, "
            f"got {type(raw).__name__}."
        )

    table = LabelTable(raw)
    logger.info("Loaded %d class labels from %s", len(table), resolved)
    return table

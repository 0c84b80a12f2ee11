# gridpath/core/presets.py
#!/usr/bin/env python3
"""
Named start/goal/walls bundles used to bulk-initialise a Grid.

Presets live as JSON map files next to the package:

    {"name": "Maze", "start": [8, 4], "goal": [0, 9], "walls": [[1, 0], ...]}

Bounds are checked against a concrete grid by Grid.apply_preset().
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Tuple

from gridpath.core.errors import InvalidPreset
from gridpath.core.types import Coordinate

MAP_DIR = Path(__file__).resolve().parents[1] / "maps"


@dataclass(frozen=True)
class Preset:
    name: str
    start: Coordinate
    goal: Coordinate
    walls: Tuple[Coordinate, ...] = ()

    @classmethod
    def build(cls, name: str, start, goal, walls: Iterable = ()) -> "Preset":
        """Accepts Coordinates or plain (x, y) pairs."""
        def as_coord(v):
            return v if isinstance(v, Coordinate) else Coordinate.from_seq(v)
        return cls(name, as_coord(start), as_coord(goal), tuple(as_coord(w) for w in walls))


def load_preset(path: Path) -> Preset:
    path = Path(path)
    try:
        with open(path, "r") as f:
            data = json.load(f)
        return Preset.build(
            str(data.get("name", path.stem)),
            data["start"],
            data["goal"],
            data.get("walls", []),
        )
    except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as ex:
        raise InvalidPreset(f"cannot load preset from {path}: {ex}") from ex


def load_presets(directory: Path = MAP_DIR) -> Dict[str, Preset]:
    """Every *.json map in `directory`, keyed by preset name, in file-name order."""
    presets: Dict[str, Preset] = {}
    for path in sorted(Path(directory).glob("*.json")):
        preset = load_preset(path)
        presets[preset.name] = preset
    return presets


def find_preset(presets: Dict[str, Preset], name: str) -> Preset:
    for key, preset in presets.items():
        if key.lower() == str(name).strip().lower():
            return preset
    raise InvalidPreset(f"unknown preset {name!r} (available: {', '.join(presets)})")

# gridpath/core/config.py
#!/usr/bin/env python3
"""
Runtime settings.

Resolution order (last wins): defaults -> GRIDPATH_* environment -> --key=value argv.

    GRIDPATH_SIZE       --size=10          grid is size x size
    GRIDPATH_ALGORITHM  --algo=Dijkstra    Dijkstra | A*
    GRIDPATH_HEURISTIC  --heuristic=Manhattan
    GRIDPATH_PRESET     --preset=Clean     name of a map in gridpath/maps
    GRIDPATH_SPEED      --speed=8          expansions per second in the viewer
    GRIDPATH_LOG_LEVEL  --log-level=INFO
"""

import logging
import os
import sys
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from gridpath.core.types import Algorithm, Heuristic

_KEYS = {
    # argv flag     env var               field
    "size":        ("GRIDPATH_SIZE",      "size"),
    "algo":        ("GRIDPATH_ALGORITHM", "algorithm"),
    "heuristic":   ("GRIDPATH_HEURISTIC", "heuristic"),
    "preset":      ("GRIDPATH_PRESET",    "preset"),
    "speed":       ("GRIDPATH_SPEED",     "steps_per_sec"),
    "log-level":   ("GRIDPATH_LOG_LEVEL", "log_level"),
}


@dataclass
class Settings:
    size: int = 10
    algorithm: Algorithm = Algorithm.DIJKSTRA
    heuristic: Heuristic = Heuristic.MANHATTAN
    preset: str = "Clean"
    steps_per_sec: int = 8
    log_level: str = "INFO"


def _coerce(field_name: str, raw: str, source: str):
    try:
        if field_name == "size":
            value = int(raw)
            if value < 2:
                raise ValueError("must be at least 2")
            return value
        if field_name == "steps_per_sec":
            return max(1, min(60, int(raw)))
        if field_name == "algorithm":
            return Algorithm.parse(raw)
        if field_name == "heuristic":
            return Heuristic.parse(raw)
        if field_name == "log_level":
            level = raw.strip().upper()
            if not isinstance(logging.getLevelName(level), int):
                raise ValueError("not a logging level")
            return level
        return raw.strip()
    except ValueError as ex:
        raise ValueError(f"invalid {source}={raw!r}: {ex}") from None


def resolve_settings(argv: Optional[Sequence[str]] = None,
                     environ: Optional[Mapping[str, str]] = None) -> Settings:
    argv = sys.argv[1:] if argv is None else argv
    environ = os.environ if environ is None else environ
    settings = Settings()

    for flag, (env_name, field_name) in _KEYS.items():
        if env_name in environ:
            setattr(settings, field_name, _coerce(field_name, environ[env_name], env_name))

    for arg in argv:
        if not arg.startswith("--") or "=" not in arg:
            continue
        flag, raw = arg[2:].split("=", 1)
        if flag in _KEYS:
            _, field_name = _KEYS[flag]
            setattr(settings, field_name, _coerce(field_name, raw, f"--{flag}"))
    return settings


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )

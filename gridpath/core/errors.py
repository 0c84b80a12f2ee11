# gridpath/core/errors.py
#!/usr/bin/env python3
"""
Error kinds raised by the grid and the search engine.

Everything is returned to the caller; the viewer decides what to show.
A run that finds no path is NOT an error (see PathResult.not_found).
"""


class PathfinderError(Exception):
    """Base class for every recoverable grid/search error."""


# -------------------- grid --------------------

class GridError(PathfinderError):
    pass


class InvalidPreset(GridError, ValueError):
    """Preset coordinates out of bounds, start == goal, or a malformed map file."""


class GridLocked(GridError):
    """A search run owns the grid; role edits must wait for it to finish or be reset."""


# -------------------- search --------------------

class SearchError(PathfinderError):
    pass


class InvalidSearchState(SearchError):
    """Missing/duplicate Start or Goal, or Start == Goal, at run start."""


class SearchAlreadyRunning(SearchError):
    pass


class BrokenParentChain(AssertionError):
    """Parent walk did not end on the Start cell. A defect, never caught by the engine."""

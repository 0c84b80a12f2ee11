# gridpath/core/events.py
#!/usr/bin/env python3
"""
Tag-change hand-off between the search engine and a renderer.

Subscribe a TagChannel to an engine; the engine calls it with
(Coordinate, SearchTag) on every tag change, and the renderer drains the
queued events in order from its own loop/thread.
"""

import queue
from typing import List, Optional, Tuple

from gridpath.core.types import Coordinate, SearchTag

TagEvent = Tuple[Coordinate, SearchTag]


class TagChannel:
    def __init__(self, maxsize: int = 0):
        self._queue: "queue.Queue[TagEvent]" = queue.Queue(maxsize)

    def __call__(self, coord: Coordinate, tag: SearchTag) -> None:
        self._queue.put((coord, tag))

    def __len__(self) -> int:
        return self._queue.qsize()

    def get(self, timeout: Optional[float] = None) -> TagEvent:
        return self._queue.get(timeout=timeout)

    def drain(self, limit: Optional[int] = None) -> List[TagEvent]:
        """Pop every pending event (or at most `limit`) without blocking."""
        out: List[TagEvent] = []
        while limit is None or len(out) < limit:
            try:
                out.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return out

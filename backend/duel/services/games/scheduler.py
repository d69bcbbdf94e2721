import heapq
import itertools
from typing import Callable, Dict, List, Tuple

from duel.models import Match


class PhaseScheduler:
    """Min-heap of match deadlines.

    Every deadline change pushes a fresh entry tagged with the match's
    ``deadline_version``; entries whose version no longer matches, or whose
    match is gone, are discarded when popped.
    """

    def __init__(self):
        self._heap: List[Tuple[int, int, str, int]] = []
        self._seq = itertools.count()

    def schedule(self, match: Match, deadline: int) -> None:
        match.set_deadline(deadline)
        heapq.heappush(self._heap, (deadline, next(self._seq), match.id, match.deadline_version))

    def pop_due(self, now: int, registry: Dict[str, Match]) -> List[Match]:
        """Pop every match whose current deadline is at or before ``now``.

        Each match is returned at most once, so a caller performing one
        transition per returned match advances each match by a single phase
        per tick; deadlines pushed while handling them wait for the next tick.
        """
        due: List[Match] = []
        seen = set()
        while self._heap and self._heap[0][0] <= now:
            _, _, match_id, version = heapq.heappop(self._heap)
            match = registry.get(match_id)
            if match is None or match.deadline_version != version or match_id in seen:
                continue
            seen.add(match_id)
            due.append(match)
        return due

    def run_due(self, now: int, registry: Dict[str, Match], advance: Callable[[Match, int], None]) -> int:
        count = 0
        for match in self.pop_due(now, registry):
            # an earlier transition in this tick may have destroyed it
            if registry.get(match.id) is not match:
                continue
            advance(match, now)
            count += 1
        return count

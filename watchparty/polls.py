from typing import Callable, Dict, List, Optional
import itertools
import logging

from .events import (
    POLL_ENDED,
    POLL_STARTED,
    POLL_VOTE,
    BroadcastRouter,
    Event,
    PollEnded,
    PollVoteCast,
)
from .models import Poll, Vote

logger = logging.getLogger(__name__)


class PollEngine:
    """Single-slot poll: at most one poll is active at a time."""

    def __init__(self, router: BroadcastRouter, clock: Callable[[], int]):
        self.router = router
        self.clock = clock
        self.poll: Optional[Poll] = None
        # connection id -> vote, in first-vote order
        self.votes: Dict[str, Vote] = {}
        self._ids = itertools.count(1)

    @property
    def active(self) -> bool:
        return self.poll is not None

    def start(self, options: List[str]) -> Poll:
        if self.poll is not None:
            logger.info(f"🗳️ Poll {self.poll.id} replaced by a new poll ({len(self.votes)} votes discarded)")

        self.poll = Poll(id=f"poll-{next(self._ids)}", options=list(options), start_time=self.clock())
        self.votes.clear()
        logger.info(f"🗳️ Poll {self.poll.id} started with {len(options)} options")
        self.router.to_all(Event(POLL_STARTED, self.poll))
        return self.poll

    def vote(self, connection_id: str, poll_id: str, option: str, username: str):
        if self.poll is None or poll_id != self.poll.id:
            logger.debug(f"🗳️ Dropped vote from {connection_id} for stale poll {poll_id}")
            return
        if option not in self.poll.options:
            logger.debug(f"🗳️ Dropped vote from {connection_id} for unknown option {option!r}")
            return

        self.votes[connection_id] = Vote(username=username, option=option)
        self.router.to_all(Event(POLL_VOTE, PollVoteCast(user=username, option=option)))

    def results(self) -> List[PollVoteCast]:
        return [PollVoteCast(user=v.username, option=v.option) for v in self.votes.values()]

    def end(self):
        if self.poll is None:
            return

        logger.info(f"🗳️ Poll {self.poll.id} ended with {len(self.votes)} votes")
        self.router.to_all(Event(POLL_ENDED, PollEnded(results=self.results())))
        self.poll = None
        self.votes.clear()

    def replay_to(self, connection_id: str):
        if self.poll is None:
            return
        self.router.to_one(connection_id, Event(POLL_STARTED, self.poll))
        for cast in self.results():
            self.router.to_one(connection_id, Event(POLL_VOTE, cast))

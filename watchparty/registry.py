from typing import Callable, Dict, List, Optional
import logging

from .events import SYSTEM_MESSAGE, USER_COUNT, BroadcastRouter, Event, SystemMessage, UserCount
from .models import JoinPayload, Participant

logger = logging.getLogger(__name__)

FALLBACK_NAME = "Someone"


class SessionRegistry:
    """Connected participants keyed by connection id."""

    def __init__(self, router: BroadcastRouter, clock: Callable[[], int]):
        self.router = router
        self.clock = clock
        self._participants: Dict[str, Participant] = {}

    def join(self, connection_id: str, user_data: JoinPayload):
        participant = Participant(connection_id=connection_id, username=user_data.username)
        self._participants[connection_id] = participant
        logger.info(f"🏠 User {participant.username} ({connection_id}) joined the session")

        self.announce(f"{participant.username} joined the watch party! 💕")
        self.broadcast_count()

    def leave(self, connection_id: str):
        participant = self._participants.get(connection_id)
        if participant is None:
            return

        logger.info(f"🚪 User {participant.username} left the session")
        self.announce(f"{participant.username} left the watch party 😢")
        del self._participants[connection_id]
        self.broadcast_count()

    def lookup(self, connection_id: str) -> Optional[Participant]:
        return self._participants.get(connection_id)

    def display_name(self, connection_id: str) -> str:
        participant = self._participants.get(connection_id)
        return participant.username if participant else FALLBACK_NAME

    def count(self) -> int:
        return len(self._participants)

    def participants(self) -> List[Participant]:
        return list(self._participants.values())

    def announce(self, message: str):
        self.router.to_all(Event(SYSTEM_MESSAGE, SystemMessage(message=message, timestamp=self.clock())))

    def broadcast_count(self):
        self.router.to_all(Event(USER_COUNT, UserCount(count=self.count())))

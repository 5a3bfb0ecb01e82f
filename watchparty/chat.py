from collections import deque
from typing import Callable, Deque, List
import logging

from .events import NEW_MESSAGE, TRIGGER_EFFECT, BroadcastRouter, Event, TriggerEffect
from .models import ChatMessage

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50

TRIGGER_WORDS = (
    "heart", "love", "lol", "lmao", "haha", "cute", "beautiful", "amazing",
    "wow", "fire", "based", "cringe", "poggers", "nice", "wholesome",
)


def find_triggers(content: str) -> List[str]:
    """Vocabulary words contained anywhere in the message, in vocabulary order."""
    lowered = content.lower()
    return [trigger for trigger in TRIGGER_WORDS if trigger in lowered]


class ChatLog:
    def __init__(self, router: BroadcastRouter, clock: Callable[[], int]):
        self.router = router
        self.clock = clock
        self.history: Deque[ChatMessage] = deque(maxlen=HISTORY_LIMIT)

    def append(self, content: str, username: str, sender_id: str) -> ChatMessage:
        message = ChatMessage(
            content=content,
            username=username,
            timestamp=self.clock(),
            sender_id=sender_id,
        )
        # deque drops the oldest entry once full
        self.history.append(message)
        self.router.to_all(Event(NEW_MESSAGE, message))

        for trigger in find_triggers(content):
            logger.debug(f"✨ Trigger '{trigger}' from {username}")
            self.router.to_all(Event(TRIGGER_EFFECT, TriggerEffect(trigger=trigger, user=username)))
        return message

    def replay_to(self, connection_id: str):
        for message in self.history:
            self.router.to_one(connection_id, Event(NEW_MESSAGE, message))

"""The watch-together session: one roster, one chat, one video, one poll.

Handlers are plain synchronous methods. They mutate state and queue their
fan-out before returning, so events from different connections never
interleave mid-update on the event loop.
"""
from typing import Any, Callable, Dict, Optional, Tuple, Type, Union
import json
import logging
import time

from pydantic import ValidationError

from .chat import ChatLog
from .events import (
    AWARD_GIVEN,
    ERROR,
    SURPRISE_POPUP,
    USER_TYPING,
    AwardGiven,
    BroadcastRouter,
    ErrorFrame,
    Event,
    SurprisePopup,
    UserTyping,
)
from .models import (
    AwardPayload,
    EmptyPayload,
    InboundFrame,
    JoinPayload,
    LoadVideoPayload,
    PlayPausePayload,
    PollVotePayload,
    ProgressPayload,
    SeekPayload,
    SendMessagePayload,
    StartPollPayload,
    SurprisePayload,
    SyncRequestPayload,
    WireModel,
)
from .playback import PlaybackState
from .polls import PollEngine
from .registry import SessionRegistry

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class InvalidFrame(Exception):
    """Inbound frame that could not be parsed or validated."""


class WatchSession:
    def __init__(self, router: BroadcastRouter, clock: Callable[[], int] = now_ms):
        self.router = router
        self.clock = clock
        self.registry = SessionRegistry(router, clock)
        self.chat = ChatLog(router, clock)
        self.playback = PlaybackState(router, clock)
        self.polls = PollEngine(router, clock)

        self._handlers: Dict[str, Tuple[Type[WireModel], Callable[[str, Any], None]]] = {
            "join": (JoinPayload, self.join),
            "send-message": (SendMessagePayload, self.send_message),
            "load-video": (LoadVideoPayload, self.load_video),
            "set-playpause": (PlayPausePayload, self.set_play_pause),
            "report-progress": (ProgressPayload, self.report_progress),
            "seek": (SeekPayload, self.seek),
            "sync-request": (SyncRequestPayload, self.sync_request),
            "give-award": (AwardPayload, self.give_award),
            "surprise-me": (SurprisePayload, self.surprise_me),
            "typing-start": (EmptyPayload, self.typing_start),
            "typing-stop": (EmptyPayload, self.typing_stop),
            "start-poll": (StartPollPayload, self.start_poll),
            "poll-vote": (PollVotePayload, self.poll_vote),
            "poll-end": (EmptyPayload, self.end_poll),
        }

    # ------------------------------------------------------------------
    # Inbound frames
    # ------------------------------------------------------------------

    def parse(self, raw: Union[str, bytes, None]) -> Tuple[str, WireModel]:
        """Decode and validate one text frame into (event type, payload)."""
        if not isinstance(raw, str):
            raise InvalidFrame("Only text frames are accepted")
        try:
            frame = InboundFrame.model_validate(json.loads(raw))
        except json.JSONDecodeError:
            raise InvalidFrame("Malformed JSON")
        except ValidationError:
            raise InvalidFrame("Frame must be an object with a 'type'")

        if frame.type not in self._handlers:
            raise InvalidFrame(f"Unknown event type: {frame.type}")

        model, _ = self._handlers[frame.type]
        try:
            payload = model.model_validate(frame.data or {})
        except ValidationError as e:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) or "data" for err in e.errors())
            raise InvalidFrame(f"Invalid {frame.type} payload: {fields}")
        return frame.type, payload

    def handle(self, connection_id: str, raw: Union[str, bytes, None]):
        """Process one inbound frame; invalid frames only earn the sender an error."""
        try:
            event_type, payload = self.parse(raw)
        except InvalidFrame as e:
            logger.warning(f"⚠️ Rejected frame from {connection_id}: {e}")
            self.router.to_one(connection_id, Event(ERROR, ErrorFrame(message=str(e))))
            return

        logger.info(f"📨 Received {event_type} from {connection_id}")
        _, handler = self._handlers[event_type]
        handler(connection_id, payload)

    # ------------------------------------------------------------------
    # Roster
    # ------------------------------------------------------------------

    def join(self, connection_id: str, payload: JoinPayload):
        self.registry.join(connection_id, payload)
        self.playback.replay_to(connection_id)
        self.chat.replay_to(connection_id)
        self.polls.replay_to(connection_id)

    def disconnect(self, connection_id: str):
        self.registry.leave(connection_id)

    # ------------------------------------------------------------------
    # Chat and reactions
    # ------------------------------------------------------------------

    def send_message(self, connection_id: str, payload: SendMessagePayload):
        username = payload.username or self.registry.display_name(connection_id)
        self.chat.append(payload.content, username, connection_id)

    def give_award(self, connection_id: str, payload: AwardPayload):
        user = self.registry.display_name(connection_id)
        self.router.to_all(Event(AWARD_GIVEN, AwardGiven(award=payload.award, user=user)))

    def surprise_me(self, connection_id: str, payload: SurprisePayload):
        user = self.registry.display_name(connection_id)
        self.router.to_all(Event(SURPRISE_POPUP, SurprisePopup(message=payload.message, user=user)))

    def _typing(self, connection_id: str, is_typing: bool):
        participant = self.registry.lookup(connection_id)
        if participant is None:
            return
        self.router.to_all_except(connection_id, Event(
            USER_TYPING, UserTyping(username=participant.username, is_typing=is_typing),
        ))

    def typing_start(self, connection_id: str, payload: EmptyPayload):
        self._typing(connection_id, True)

    def typing_stop(self, connection_id: str, payload: EmptyPayload):
        self._typing(connection_id, False)

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def load_video(self, connection_id: str, payload: LoadVideoPayload):
        self.playback.load_video(
            payload.url, payload.video_id, self.registry.display_name(connection_id),
            embed_url=payload.embed_url, extra=payload.model_extra,
        )

    def set_play_pause(self, connection_id: str, payload: PlayPausePayload):
        self.playback.set_play_pause(
            connection_id, payload.is_playing, payload.current_time,
            self.registry.display_name(connection_id),
        )

    def report_progress(self, connection_id: str, payload: ProgressPayload):
        self.playback.report_progress(connection_id, payload.current_time)

    def seek(self, connection_id: str, payload: SeekPayload):
        self.playback.seek(connection_id, payload.current_time, self.registry.display_name(connection_id))

    def sync_request(self, connection_id: str, payload: SyncRequestPayload):
        self.playback.sync_request(
            self.registry.display_name(connection_id),
            current_time=payload.current_time,
            is_playing=payload.is_playing,
        )

    # ------------------------------------------------------------------
    # Polls
    # ------------------------------------------------------------------

    def start_poll(self, connection_id: str, payload: StartPollPayload):
        self.polls.start(payload.options)

    def poll_vote(self, connection_id: str, payload: PollVotePayload):
        username = payload.user or self.registry.display_name(connection_id)
        self.polls.vote(connection_id, payload.poll_id, payload.option, username)

    def end_poll(self, connection_id: str, payload: EmptyPayload):
        self.polls.end()

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def get_debug_info(self) -> dict:
        poll: Optional[dict] = self.polls.poll.to_wire() if self.polls.poll else None
        return {
            "users": [p.to_wire() for p in self.registry.participants()],
            "user_count": self.registry.count(),
            "video": self.playback.snapshot().to_wire(),
            "messages": len(self.chat.history),
            "poll": poll,
            "votes": [v.to_wire() for v in self.polls.results()],
        }

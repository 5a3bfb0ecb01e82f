"""Outbound event vocabulary and the fan-out interface components talk to."""
import json
from dataclasses import dataclass
from typing import List, Protocol, Union

from pydantic import ConfigDict

from .models import ChatMessage, PlaybackSnapshot, Poll, WireModel

SYSTEM_MESSAGE = "system-message"
USER_COUNT = "user-count"
NEW_MESSAGE = "new-message"
TRIGGER_EFFECT = "trigger-effect"
VIDEO_LOADED = "video-loaded"
VIDEO_SYNC = "video-sync"
VIDEO_PLAYPAUSE_SYNC = "video-playpause-sync"
VIDEO_PROGRESS_SYNC = "video-progress-sync"
VIDEO_SEEK = "video-seek"
SYNC_REQUESTED = "sync-requested"
AWARD_GIVEN = "award-given"
SURPRISE_POPUP = "surprise-popup"
USER_TYPING = "user-typing"
POLL_STARTED = "poll-started"
POLL_VOTE = "poll-vote"
POLL_ENDED = "poll-ended"
ERROR = "error"


class SystemMessage(WireModel):
    message: str
    timestamp: int


class UserCount(WireModel):
    count: int


class TriggerEffect(WireModel):
    trigger: str
    user: str


class VideoLoaded(WireModel):
    """Echoes the loader's payload, unknown fields included."""

    model_config = ConfigDict(extra="allow")

    url: str
    video_id: str
    embed_url: str = ""
    user: str


class PlayPauseSync(WireModel):
    is_playing: bool
    current_time: float
    user: str


class ProgressSync(WireModel):
    current_time: float


class VideoSeek(WireModel):
    current_time: float
    user: str


class SyncRequested(WireModel):
    user: str


class AwardGiven(WireModel):
    award: str
    user: str


class SurprisePopup(WireModel):
    message: str
    user: str


class UserTyping(WireModel):
    username: str
    is_typing: bool


class PollVoteCast(WireModel):
    user: str
    option: str


class PollEnded(WireModel):
    results: List[PollVoteCast]


class ErrorFrame(WireModel):
    message: str


Payload = Union[
    SystemMessage, UserCount, ChatMessage, TriggerEffect, VideoLoaded,
    PlaybackSnapshot, PlayPauseSync, ProgressSync, VideoSeek, SyncRequested,
    AwardGiven, SurprisePopup, UserTyping, Poll, PollVoteCast, PollEnded,
    ErrorFrame,
]


@dataclass(frozen=True)
class Event:
    type: str
    payload: Payload

    def to_json(self) -> str:
        return json.dumps({"type": self.type, "data": self.payload.to_wire()})


class BroadcastRouter(Protocol):
    def to_all(self, event: Event) -> None: ...

    def to_all_except(self, connection_id: str, event: Event) -> None: ...

    def to_one(self, connection_id: str, event: Event) -> None: ...

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Dict, List, Optional


class WireModel(BaseModel):
    """Base for everything that crosses the socket (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class Participant(WireModel):
    connection_id: str
    username: str


class PlaybackSnapshot(WireModel):
    url: str = ""
    video_id: str = ""
    embed_url: str = ""
    is_playing: bool = False
    current_time: float = Field(default=0.0, ge=0)
    last_update: int = 0


class ChatMessage(WireModel):
    model_config = ConfigDict(frozen=True)

    content: str
    username: str
    timestamp: int
    sender_id: str


class Poll(WireModel):
    id: str
    options: List[str]
    start_time: int


class Vote(WireModel):
    username: str
    option: str


# Inbound payloads


class InboundFrame(BaseModel):
    type: str
    data: Optional[Dict] = None


class JoinPayload(WireModel):
    model_config = ConfigDict(extra="allow")

    username: str = Field(min_length=1)


class SendMessagePayload(WireModel):
    content: str = Field(min_length=1)
    username: Optional[str] = None


class LoadVideoPayload(WireModel):
    model_config = ConfigDict(extra="allow")

    url: str
    video_id: str = Field(min_length=1)
    embed_url: str = ""


class PlayPausePayload(WireModel):
    is_playing: bool
    current_time: float = Field(ge=0, allow_inf_nan=False)


class ProgressPayload(WireModel):
    current_time: float = Field(ge=0, allow_inf_nan=False)


class SeekPayload(WireModel):
    current_time: float = Field(ge=0, allow_inf_nan=False)


class SyncRequestPayload(WireModel):
    current_time: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    is_playing: Optional[bool] = None


class AwardPayload(WireModel):
    award: str = Field(min_length=1)


class SurprisePayload(WireModel):
    message: str


class EmptyPayload(WireModel):
    pass


class StartPollPayload(WireModel):
    options: List[str] = Field(min_length=1)


class PollVotePayload(WireModel):
    poll_id: str
    option: str
    user: Optional[str] = None

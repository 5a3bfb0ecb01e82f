"""Shared video state.

There is one snapshot per session, mutated in place in the order events are
processed. Whatever arrives last wins; client timestamps are not compared.
"""
from typing import Callable, Optional
import logging

from .events import (
    SYNC_REQUESTED,
    SYSTEM_MESSAGE,
    VIDEO_LOADED,
    VIDEO_PLAYPAUSE_SYNC,
    VIDEO_PROGRESS_SYNC,
    VIDEO_SEEK,
    VIDEO_SYNC,
    BroadcastRouter,
    Event,
    PlayPauseSync,
    ProgressSync,
    SyncRequested,
    SystemMessage,
    VideoLoaded,
    VideoSeek,
)
from .models import PlaybackSnapshot

logger = logging.getLogger(__name__)


class PlaybackState:
    def __init__(self, router: BroadcastRouter, clock: Callable[[], int]):
        self.router = router
        self.clock = clock
        self.state = PlaybackSnapshot()

    @property
    def loaded(self) -> bool:
        return bool(self.state.video_id)

    def snapshot(self) -> PlaybackSnapshot:
        """Copy of the current state, safe to hand to the router."""
        return self.state.model_copy()

    def _touch(self):
        self.state.last_update = self.clock()

    def _broadcast_snapshot(self):
        self.router.to_all(Event(VIDEO_SYNC, self.snapshot()))

    def load_video(self, url: str, video_id: str, user: str, embed_url: str = "", extra: Optional[dict] = None):
        """Reset to a paused video at 0s. Unknown loader fields ride along on video-loaded."""
        self.state.url = url
        self.state.video_id = video_id
        self.state.embed_url = embed_url
        self.state.is_playing = False
        self.state.current_time = 0.0
        self._touch()
        logger.info(f"🎬 {user} loaded video {video_id}")

        loaded = VideoLoaded.model_validate({
            **(extra or {}), "url": url, "videoId": video_id, "embedUrl": embed_url, "user": user,
        })
        self.router.to_all(Event(VIDEO_LOADED, loaded))
        self._broadcast_snapshot()

    def set_play_pause(self, sender_id: str, is_playing: bool, current_time: float, user: str):
        self.state.is_playing = is_playing
        self.state.current_time = current_time
        self._touch()

        self.router.to_all_except(sender_id, Event(
            VIDEO_PLAYPAUSE_SYNC,
            PlayPauseSync(is_playing=is_playing, current_time=current_time, user=user),
        ))
        action = "played ▶️" if is_playing else "paused ⏸️"
        self.router.to_all(Event(SYSTEM_MESSAGE, SystemMessage(
            message=f"{user} {action} the video.",
            timestamp=self.state.last_update,
        )))

    def report_progress(self, sender_id: str, current_time: float):
        # Heartbeat: no announcement, no snapshot
        self.state.current_time = current_time
        self._touch()
        self.router.to_all_except(sender_id, Event(VIDEO_PROGRESS_SYNC, ProgressSync(current_time=current_time)))

    def seek(self, sender_id: str, current_time: float, user: str):
        self.state.current_time = current_time
        self._touch()
        self.router.to_all_except(sender_id, Event(VIDEO_SEEK, VideoSeek(current_time=current_time, user=user)))

    def sync_request(self, user: str, current_time: Optional[float] = None, is_playing: Optional[bool] = None):
        """Resync everyone, adopting the requester's view of the player if given."""
        if current_time is not None:
            self.state.current_time = current_time
        if is_playing is not None:
            self.state.is_playing = is_playing
        if current_time is not None or is_playing is not None:
            self._touch()
            logger.info(f"🔄 {user} corrected playback to {self.state.current_time}s (playing={self.state.is_playing})")

        self.router.to_all(Event(SYNC_REQUESTED, SyncRequested(user=user)))
        self._broadcast_snapshot()

    def replay_to(self, connection_id: str):
        if self.loaded:
            self.router.to_one(connection_id, Event(VIDEO_SYNC, self.snapshot()))

"""Tests for watchparty.session — frame validation, dispatch and the join flow."""

from __future__ import annotations

import json

import pytest

from watchparty.session import InvalidFrame


def _frame(event_type: str, data: dict | None = None) -> str:
    frame: dict = {"type": event_type}
    if data is not None:
        frame["data"] = data
    return json.dumps(frame)


def _join(session, router, cid: str, username: str) -> None:
    router.connect(cid)
    session.handle(cid, _frame("join", {"username": username}))


class TestParse:
    def test_valid_frame(self, session) -> None:
        event_type, payload = session.parse(_frame("seek", {"currentTime": 4}))
        assert event_type == "seek"
        assert payload.current_time == 4.0

    def test_missing_data_for_empty_payload(self, session) -> None:
        event_type, _ = session.parse(_frame("typing-start"))
        assert event_type == "typing-start"

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            json.dumps(["join"]),
            json.dumps({"data": {}}),
            _frame("dance"),
            _frame("join", {}),
            _frame("join", {"username": ""}),
            _frame("seek", {"currentTime": -1}),
            _frame("seek", {"currentTime": "soon"}),
            _frame("set-playpause", {"currentTime": 1}),
            _frame("load-video", {"url": "u"}),
            _frame("start-poll", {"options": []}),
            _frame("poll-vote", {"option": "x"}),
        ],
    )
    def test_invalid_frames(self, session, raw: str) -> None:
        with pytest.raises(InvalidFrame):
            session.parse(raw)

    def test_binary_frame_rejected(self, session) -> None:
        with pytest.raises(InvalidFrame, match="text frames"):
            session.parse(b'{"type": "poll-end"}')

    def test_non_finite_time_rejected(self, session) -> None:
        with pytest.raises(InvalidFrame):
            session.parse('{"type": "report-progress", "data": {"currentTime": NaN}}')


class TestHandleInvalid:
    def test_error_goes_only_to_sender(self, session, router) -> None:
        _join(session, router, "a", "Alice")
        _join(session, router, "b", "Bob")
        router.clear()

        session.handle("a", _frame("seek", {"currentTime": -5}))

        assert router.types("a") == ["error"]
        assert "currentTime" in router.of_type("a", "error")[0]["message"]
        assert router.inbox["b"] == []
        assert session.playback.state.current_time == 0.0

    def test_unknown_type_message(self, session, router) -> None:
        router.connect("a")
        session.handle("a", _frame("dance"))
        assert router.of_type("a", "error") == [{"message": "Unknown event type: dance"}]


class TestJoinFlow:
    def test_join_replays_state_to_newcomer_only(self, session, router) -> None:
        _join(session, router, "a", "Alice")
        session.handle("a", _frame("send-message", {"content": "hi"}))
        session.handle("a", _frame("load-video", {"url": "u", "videoId": "v1"}))
        session.handle("a", _frame("start-poll", {"options": ["x", "y"]}))
        router.clear()

        _join(session, router, "b", "Bob")

        assert router.types("b") == [
            "system-message", "user-count", "video-sync", "new-message", "poll-started",
        ]
        assert router.types("a") == ["system-message", "user-count"]

    def test_join_without_video_sends_no_snapshot(self, session, router) -> None:
        _join(session, router, "a", "Alice")
        assert "video-sync" not in router.types("a")

    def test_history_replay_after_overflow(self, session, router) -> None:
        _join(session, router, "a", "Alice")
        for i in range(51):
            session.handle("a", _frame("send-message", {"content": f"m{i}"}))

        _join(session, router, "b", "Bob")

        replay = [m["content"] for m in router.of_type("b", "new-message")]
        assert len(replay) == 50
        assert "m0" not in replay
        assert replay[0] == "m1"

    def test_disconnect_cleans_up(self, session, router) -> None:
        _join(session, router, "a", "Alice")
        _join(session, router, "b", "Bob")
        router.clear()

        session.disconnect("a")

        assert session.registry.count() == 1
        assert router.of_type("b", "user-count") == [{"count": 1}]


class TestStatelessEvents:
    def test_award_and_surprise(self, session, router) -> None:
        _join(session, router, "a", "Alice")
        router.connect("b")
        router.clear()

        session.handle("a", _frame("give-award", {"award": "gold"}))
        session.handle("a", _frame("surprise-me", {"message": "boo"}))

        for cid in ("a", "b"):
            assert router.of_type(cid, "award-given") == [{"award": "gold", "user": "Alice"}]
            assert router.of_type(cid, "surprise-popup") == [{"message": "boo", "user": "Alice"}]

    def test_unjoined_sender_is_someone(self, session, router) -> None:
        router.connect("x")
        session.handle("x", _frame("give-award", {"award": "gold"}))
        assert router.of_type("x", "award-given") == [{"award": "gold", "user": "Someone"}]

    def test_typing_goes_to_others(self, session, router) -> None:
        _join(session, router, "a", "Alice")
        _join(session, router, "b", "Bob")
        router.clear()

        session.handle("a", _frame("typing-start"))
        session.handle("a", _frame("typing-stop"))

        assert router.inbox["a"] == []
        assert router.of_type("b", "user-typing") == [
            {"username": "Alice", "isTyping": True},
            {"username": "Alice", "isTyping": False},
        ]

    def test_typing_from_unjoined_is_ignored(self, session, router) -> None:
        router.connect("x", "a")
        session.handle("x", _frame("typing-start"))
        assert router.inbox == {}


class TestPollDispatch:
    def test_vote_uses_payload_user_or_registry(self, session, router) -> None:
        _join(session, router, "a", "Alice")
        _join(session, router, "b", "Bob")
        session.handle("a", _frame("start-poll", {"options": ["x", "y"]}))
        poll_id = session.polls.poll.id
        router.clear()

        session.handle("a", _frame("poll-vote", {"pollId": poll_id, "option": "x"}))
        session.handle("b", _frame("poll-vote", {"pollId": poll_id, "option": "y", "user": "Bobby"}))
        session.handle("b", _frame("poll-vote", {"pollId": "poll-0", "option": "x"}))
        session.handle("a", _frame("poll-end"))

        assert router.of_type("a", "poll-ended") == [{"results": [
            {"user": "Alice", "option": "x"},
            {"user": "Bobby", "option": "y"},
        ]}]
        assert len(router.of_type("a", "poll-vote")) == 2


class TestScenario:
    def test_two_users_watch_together(self, session, router) -> None:
        _join(session, router, "A", "A")
        assert router.of_type("A", "system-message")[0]["message"].startswith("A joined")
        assert router.of_type("A", "user-count") == [{"count": 1}]

        _join(session, router, "B", "B")
        assert router.of_type("B", "system-message")[0]["message"].startswith("B joined")
        assert router.of_type("A", "user-count")[-1] == {"count": 2}
        router.clear()

        session.handle("A", _frame("send-message", {"content": "this is so fire", "username": "A"}))
        for cid in ("A", "B"):
            assert router.of_type(cid, "new-message")[0]["content"] == "this is so fire"
            assert router.of_type(cid, "trigger-effect") == [{"trigger": "fire", "user": "A"}]
        router.clear()

        session.handle("A", _frame("load-video", {"url": "https://example.com/v1", "videoId": "v1"}))
        for cid in ("A", "B"):
            assert router.types(cid) == ["video-loaded", "video-sync"]
            snapshot = router.of_type(cid, "video-sync")[0]
            assert (snapshot["videoId"], snapshot["isPlaying"], snapshot["currentTime"]) == ("v1", False, 0)
        router.clear()

        session.handle("B", _frame("set-playpause", {"isPlaying": True, "currentTime": 0}))
        assert router.of_type("A", "video-playpause-sync") == [{"isPlaying": True, "currentTime": 0.0, "user": "B"}]
        assert router.of_type("B", "video-playpause-sync") == []
        for cid in ("A", "B"):
            assert router.of_type(cid, "system-message")[0]["message"] == "B played ▶️ the video."


class TestDebugInfo:
    def test_reports_state(self, session, router) -> None:
        _join(session, router, "a", "Alice")
        info = session.get_debug_info()
        assert info["user_count"] == 1
        assert info["users"] == [{"connectionId": "a", "username": "Alice"}]
        assert info["poll"] is None
        assert info["video"]["videoId"] == ""


class TestLoadVideoDispatch:
    def test_loader_fields_pass_through(self, session, router) -> None:
        _join(session, router, "a", "Alice")
        router.clear()

        session.handle("a", _frame("load-video", {
            "url": "https://example.com/v1", "videoId": "v1",
            "embedUrl": "https://example.com/embed/v1", "title": "Pilot",
        }))

        assert router.of_type("a", "video-loaded") == [{
            "url": "https://example.com/v1",
            "videoId": "v1",
            "embedUrl": "https://example.com/embed/v1",
            "user": "Alice",
            "title": "Pilot",
        }]
        assert router.of_type("a", "video-sync")[0]["embedUrl"] == "https://example.com/embed/v1"

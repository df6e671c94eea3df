"""
Announcement poller tests.

Most tests run workers synchronously (``_launch`` patched) so every outcome
is delivered before the assertion; TestWorkerThread starts real threads.
"""
import json
import threading
import time
from unittest.mock import MagicMock

import pytest
import requests

from media_audit.core.dto import Announcement
from media_audit.core.errors import ParseError
from media_audit.core.poller import (
    AnnouncementPoller,
    FetchStatus,
    FixedIntervalSchedule,
    PollSchedule,
    fetch_announcements,
    parse_announcements,
)
from media_audit.core.state_store import StateStore

URL = "https://feed.example.com/api/announcements.json"


class ManualSchedule(PollSchedule):
    def __init__(self):
        super().__init__()
        self._active = False
        self.starts = 0

    def start(self):
        self._active = True
        self.starts += 1

    def stop(self):
        self._active = False

    @property
    def active(self):
        return self._active


def _response(text, status=200):
    resp = MagicMock()
    resp.ok = 200 <= status < 400
    resp.status_code = status
    resp.text = text
    return resp


def _session(*responses):
    session = MagicMock()
    session.get.side_effect = list(responses)
    return session


def _feed(*items):
    return _response(json.dumps({"announcements": list(items)}))


@pytest.fixture
def store(db):
    return StateStore(db)


@pytest.fixture
def schedule():
    return ManualSchedule()


def _poller(store, session, schedule, **kwargs):
    poller = AnnouncementPoller(
        store, lambda: session, url=URL, timeout_ms=10000, schedule=schedule, **kwargs
    )
    poller._launch = lambda worker: worker.run()
    return poller


class TestParseAnnouncements:

    def test_valid_payload(self):
        items = parse_announcements(json.dumps({"announcements": [
            {"title": "v2 released", "message": "See changelog", "timestamp": "2024-05-01"},
            {"title": "Only title"},
        ]}))
        assert items == [
            Announcement("v2 released", "See changelog", "2024-05-01"),
            Announcement(title="Only title"),
        ]

    def test_missing_key_is_empty(self):
        assert parse_announcements("{}") == []

    @pytest.mark.parametrize("body", [
        "not json",
        "",
        "[]",
        json.dumps({"announcements": "nope"}),
        json.dumps({"announcements": [1, 2]}),
        pytest.param("[" * 100000 + "]" * 100000, id="deeply-nested"),
    ])
    def test_malformed_payloads(self, body):
        with pytest.raises(ParseError):
            parse_announcements(body)


class TestFetchAnnouncements:

    def test_success(self):
        session = _session(_feed({"title": "Hello"}))

        result = fetch_announcements(session, URL, 10.0)

        assert result.success
        assert result.announcements == (Announcement(title="Hello"),)
        session.get.assert_called_once_with(URL, timeout=10.0)

    def test_timeout(self):
        session = _session(requests.Timeout("read timed out"))
        result = fetch_announcements(session, URL, 10.0)
        assert result.status == FetchStatus.TIMEOUT

    def test_network_error(self):
        session = _session(requests.ConnectionError("connection refused"))
        result = fetch_announcements(session, URL, 10.0)
        assert result.status == FetchStatus.NETWORK_ERROR
        assert "connection refused" in result.error_message

    def test_http_error(self):
        session = _session(_response("Service Unavailable", status=503))
        result = fetch_announcements(session, URL, 10.0)
        assert result.status == FetchStatus.HTTP_ERROR
        assert result.http_status == 503

    def test_parse_error(self):
        session = _session(_response("<html>oops</html>"))
        result = fetch_announcements(session, URL, 10.0)
        assert result.status == FetchStatus.PARSE_ERROR
        assert not result.success

    def test_deeply_nested_body_is_parse_error(self):
        session = _session(_response("[" * 100000 + "]" * 100000))
        result = fetch_announcements(session, URL, 10.0)
        assert result.status == FetchStatus.PARSE_ERROR


class TestAnnouncementPoller:

    def test_success_updates_store_and_notifies(self, store, schedule, db):
        poller = _poller(store, _session(_feed({"title": "Welcome", "message": "Hi"})), schedule)
        updates = []
        poller.announcements_updated.connect(updates.append)

        assert poller.fetch() is True

        expected = [Announcement(title="Welcome", message="Hi")]
        assert store.announcements == expected
        assert updates == [expected]
        assert store.state.last_update is not None
        assert StateStore(db).announcements == expected

    def test_invalid_json_leaves_announcements_unchanged(self, store, schedule, db):
        store.update_announcements([{"title": "Keep me"}])
        stored_before = db.get_config(store.storage_key)
        poller = _poller(store, _session(_response("{broken")), schedule)
        updates = []
        poller.announcements_updated.connect(updates.append)

        poller.fetch()

        assert store.announcements == [Announcement(title="Keep me")]
        assert db.get_config(store.storage_key) == stored_before
        assert updates == []

    @pytest.mark.parametrize("failure", [
        requests.Timeout("slow"),
        requests.ConnectionError("down"),
        _response("nope", status=500),
    ])
    def test_transport_failures_leave_state_alone(self, store, schedule, failure):
        store.update_announcements([{"title": "Old"}])
        last_update = store.state.last_update
        poller = _poller(store, _session(failure), schedule)

        poller.fetch()

        assert store.announcements == [Announcement(title="Old")]
        assert store.state.last_update == last_update

    def test_missing_key_clears_announcements(self, store, schedule):
        store.update_announcements([{"title": "Old"}])
        poller = _poller(store, _session(_response("{}")), schedule)

        poller.fetch()

        assert store.announcements == []

    def test_start_fetches_immediately_then_schedules(self, store, schedule):
        session = _session(_feed(), _feed({"title": "tick"}))
        poller = _poller(store, session, schedule)

        poller.start()
        assert session.get.call_count == 1
        assert schedule.active
        assert poller.running

        schedule.tick.emit()
        assert session.get.call_count == 2
        assert store.announcements == [Announcement(title="tick")]

    def test_start_twice_does_not_double_fetch(self, store, schedule):
        session = _session(_feed(), _feed())
        poller = _poller(store, session, schedule)

        poller.start()
        poller.start()

        assert session.get.call_count == 1
        assert schedule.starts == 1

    def test_stop_cancels_schedule(self, store, schedule):
        poller = _poller(store, _session(_feed()), schedule)
        poller.start()

        poller.stop()

        assert not schedule.active
        assert not poller.running

    def test_tick_skipped_while_request_in_flight(self, store, schedule):
        session = _session(_feed({"title": "first"}), _feed({"title": "second"}))
        poller = _poller(store, session, schedule)
        pending = []
        poller._launch = pending.append

        assert poller.fetch() is True
        assert poller.fetch() is False
        assert poller.in_flight == 1

        pending[0].run()

        assert poller.in_flight == 0
        assert store.announcements == [Announcement(title="first")]
        assert session.get.call_count == 1

    def test_stop_does_not_cancel_in_flight_fetch(self, store, schedule):
        poller = _poller(store, _session(_feed(), _feed({"title": "late"})), schedule)
        poller.start()
        pending = []
        poller._launch = pending.append

        schedule.tick.emit()
        poller.stop()
        pending[0].run()

        assert store.announcements == [Announcement(title="late")]

    def test_overlap_allowed_last_completion_wins(self, store, schedule):
        session = _session(_feed({"title": "first"}), _feed({"title": "second"}))
        poller = _poller(store, session, schedule, allow_overlap=True)
        pending = []
        poller._launch = pending.append

        assert poller.fetch() is True
        assert poller.fetch() is True
        assert poller.in_flight == 2

        pending[1].run()
        pending[0].run()

        assert store.announcements == [Announcement(title="first")]

    def test_subscribe_receives_tagged_results(self, store, schedule):
        poller = _poller(
            store, _session(requests.Timeout("slow"), _response("bad json")), schedule
        )
        results = []
        subscription = poller.subscribe(results.append)

        poller.fetch()
        poller.fetch()
        subscription.cancel()
        poller._session_provider = lambda: _session(_feed())
        poller.fetch()

        assert [r.status for r in results] == [FetchStatus.TIMEOUT, FetchStatus.PARSE_ERROR]

    def test_unexpected_worker_error_releases_slot(self, store, schedule):
        session = _session(RuntimeError("adapter exploded"), _feed({"title": "recovered"}))
        poller = _poller(store, session, schedule)
        results = []
        poller.subscribe(results.append)

        assert poller.fetch() is True
        assert results[0].status == FetchStatus.INTERNAL_ERROR
        assert "adapter exploded" in results[0].error_message
        assert poller.in_flight == 0

        assert poller.fetch() is True
        assert store.announcements == [Announcement(title="recovered")]

    def test_deeply_nested_feed_does_not_block_next_tick(self, store, schedule):
        session = _session(_response("[" * 100000 + "]" * 100000), _feed({"title": "next"}))
        poller = _poller(store, session, schedule)

        poller.fetch()
        assert poller.in_flight == 0
        poller.fetch()

        assert store.announcements == [Announcement(title="next")]


def _pump_until(qapp, condition, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not condition() and time.monotonic() < deadline:
        qapp.processEvents()
        time.sleep(0.01)
    return condition()


class TestWorkerThread:

    def test_result_arrives_on_event_loop_thread(self, qapp, store, schedule):
        poller = AnnouncementPoller(
            store, lambda: _session(_feed({"title": "threaded"})),
            url=URL, timeout_ms=10000, schedule=schedule,
        )
        updates = []
        poller.announcements_updated.connect(updates.append)
        main_thread = threading.get_ident()
        seen_on = []
        poller.fetch_completed.connect(lambda _result: seen_on.append(threading.get_ident()))

        assert poller.fetch() is True
        assert poller.in_flight == 1

        assert _pump_until(qapp, lambda: poller.in_flight == 0)
        assert store.announcements == [Announcement(title="threaded")]
        assert updates == [[Announcement(title="threaded")]]
        assert seen_on == [main_thread]

    def test_wait_for_idle_blocks_until_worker_finishes(self, qapp, store, schedule):
        release = threading.Event()

        def slow_get(url, timeout):
            release.wait(5)
            return _feed({"title": "slow"})

        session = MagicMock()
        session.get.side_effect = slow_get
        poller = AnnouncementPoller(
            store, lambda: session, url=URL, timeout_ms=10000, schedule=schedule,
        )
        poller.fetch()
        worker = next(iter(poller._workers.values()))
        assert worker.isRunning() or not worker.isFinished()

        threading.Timer(0.1, release.set).start()
        assert poller.wait_for_idle(timeout_ms=5000) is True
        assert worker.isFinished()

        assert _pump_until(qapp, lambda: poller.in_flight == 0)
        assert store.announcements == [Announcement(title="slow")]


class TestFixedIntervalSchedule:

    def test_timer_lifecycle(self):
        schedule = FixedIntervalSchedule(interval_ms=250)

        assert schedule.interval_ms == 250
        assert not schedule.active
        schedule.start()
        assert schedule.active
        schedule.stop()
        assert not schedule.active

    def test_default_interval_is_five_minutes(self):
        assert FixedIntervalSchedule().interval_ms == 300000

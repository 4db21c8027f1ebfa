"""
Tests for the scheduler loop, using fake collaborators throughout.
"""

from dataclasses import replace
from unittest.mock import Mock

import pytest

from vam_rpc.agent import PresenceAgent
from vam_rpc.models import EnrichedMetadata, PlaybackState, Track
from vam_rpc.settings import DEFAULT_SETTINGS
from vam_rpc.status import StatusReporter

TRACK = Track(name="No Way", artist="Roo", album="Broken", duration=203, position=1)


class FakeReader:
    def __init__(self, *states):
        self.states = list(states)

    def read_state(self):
        if len(self.states) > 1:
            return self.states.pop(0)
        return self.states[0]


class FakeEnricher:
    def __init__(self, result=None):
        self.result = result or EnrichedMetadata()
        self.calls = []

    def enrich(self, track, include_artist=True):
        self.calls.append((track, include_artist))
        return self.result


@pytest.fixture
def reporter(tmp_path):
    return StatusReporter(tmp_path / "status.txt")


@pytest.fixture
def publisher():
    return Mock()


def make_agent(publisher, reporter, reader, enricher=None, settings=DEFAULT_SETTINGS, sleep=None):
    loader = settings if callable(settings) else (lambda: settings)
    return PresenceAgent(
        publisher,
        reader=reader,
        enricher=enricher or FakeEnricher(),
        reporter=reporter,
        settings_loader=loader,
        sleep=sleep or Mock(),
    )


def test_stopped_clears_presence_and_reports_idle(publisher, reporter):
    agent = make_agent(publisher, reporter, FakeReader(PlaybackState.stopped()))
    agent.run_once()
    publisher.publish.assert_called_once_with(None)
    assert reporter.read() == "Idle"


def test_paused_without_track_is_idle(publisher, reporter):
    agent = make_agent(publisher, reporter, FakeReader(PlaybackState.paused()))
    agent.run_once()
    publisher.publish.assert_called_once_with(None)
    assert reporter.read() == "Idle"


def test_playing_publishes_activity(publisher, reporter):
    enricher = FakeEnricher(EnrichedMetadata(album_artwork_url="https://art.jpg"))
    agent = make_agent(publisher, reporter, FakeReader(PlaybackState.playing(TRACK)), enricher)
    agent.run_once()

    activity = publisher.publish.call_args[0][0]
    assert activity.details == "No Way"
    assert activity.state == "by Roo"
    assert activity.large_image == "https://art.jpg"
    assert activity.start is not None
    assert reporter.read() == "Playing: No Way"


def test_paused_publishes_without_timestamps(publisher, reporter):
    agent = make_agent(publisher, reporter, FakeReader(PlaybackState.paused(TRACK)))
    agent.run_once()
    activity = publisher.publish.call_args[0][0]
    assert activity.start is None and activity.end is None
    assert reporter.read() == "Paused: No Way"


def test_artist_lookup_only_for_artist_art(publisher, reporter):
    enricher = FakeEnricher()
    settings = replace(DEFAULT_SETTINGS, small_image_source="artistArt")
    agent = make_agent(publisher, reporter, FakeReader(PlaybackState.playing(TRACK)), enricher, settings)
    agent.run_once()
    assert enricher.calls == [(TRACK, True)]

    enricher.calls.clear()
    agent = make_agent(publisher, reporter, FakeReader(PlaybackState.playing(TRACK)), enricher)
    agent.run_once()
    assert enricher.calls == [(TRACK, False)]


def test_publish_failure_is_reported_and_loop_continues(publisher, reporter):
    publisher.publish.side_effect = [RuntimeError("pipe closed"), None]
    sleep = Mock()
    agent = make_agent(publisher, reporter, FakeReader(PlaybackState.playing(TRACK)), sleep=sleep)

    agent.run_forever(max_ticks=1)
    assert reporter.read() == "Error: pipe closed"

    agent.run_forever(max_ticks=1)
    assert reporter.read() == "Playing: No Way"
    assert sleep.call_count == 2


def test_enrichment_error_is_tick_scoped(publisher, reporter):
    enricher = Mock()
    enricher.enrich.side_effect = ValueError("bad data")
    agent = make_agent(publisher, reporter, FakeReader(PlaybackState.playing(TRACK)), enricher)
    agent.run_once()
    publisher.publish.assert_not_called()
    assert reporter.read() == "Error: bad data"


def test_settings_reloaded_every_tick(publisher, reporter):
    loaded = iter([replace(DEFAULT_SETTINGS, refresh_interval=2), replace(DEFAULT_SETTINGS, refresh_interval=9)])
    loader = Mock(side_effect=lambda: next(loaded))
    sleep = Mock()
    agent = make_agent(publisher, reporter, FakeReader(PlaybackState.stopped()), settings=loader, sleep=sleep)

    agent.run_forever(max_ticks=2)
    assert loader.call_count == 2
    assert [c.args[0] for c in sleep.call_args_list] == [2, 9]


def test_zero_interval_falls_back(publisher, reporter):
    sleep = Mock()
    settings = replace(DEFAULT_SETTINGS, refresh_interval=0)
    agent = make_agent(publisher, reporter, FakeReader(PlaybackState.stopped()), settings=settings, sleep=sleep)
    agent.run_forever(max_ticks=1)
    sleep.assert_called_once_with(5)


def test_template_changes_apply_next_tick(publisher, reporter):
    loaded = iter([DEFAULT_SETTINGS, replace(DEFAULT_SETTINGS, details_template="{name} / {album}")])
    agent = make_agent(
        publisher,
        reporter,
        FakeReader(PlaybackState.playing(TRACK)),
        settings=lambda: next(loaded),
    )
    agent.run_forever(max_ticks=2)
    first, second = [c.args[0] for c in publisher.publish.call_args_list]
    assert first.details == "No Way"
    assert second.details == "No Way / Broken"


def test_state_transitions_update_status(publisher, reporter):
    reader = FakeReader(PlaybackState.playing(TRACK), PlaybackState.paused(TRACK), PlaybackState.stopped())
    agent = make_agent(publisher, reporter, reader)
    seen = []
    for _ in range(3):
        agent.run_once()
        seen.append(reporter.read())
    assert seen == ["Playing: No Way", "Paused: No Way", "Idle"]


def test_shutdown_clears_presence(publisher, reporter):
    agent = make_agent(publisher, reporter, FakeReader(PlaybackState.stopped()))
    agent.shutdown()
    publisher.publish.assert_called_once_with(None)
    assert reporter.read() == "Idle"


def test_settings_load_failure_is_reported_and_loop_continues(publisher, reporter):
    loaded = iter([replace(DEFAULT_SETTINGS, refresh_interval=3)])

    def loader():
        settings = next(loaded, None)
        if settings is None:
            raise OverflowError("cannot convert float infinity to integer")
        return settings

    sleep = Mock()
    agent = make_agent(publisher, reporter, FakeReader(PlaybackState.stopped()), settings=loader, sleep=sleep)

    agent.run_forever(max_ticks=2)
    assert reporter.read() == "Error: cannot convert float infinity to integer"
    assert publisher.publish.call_count == 1
    assert [c.args[0] for c in sleep.call_args_list] == [3, 3]


def test_settings_load_failure_on_first_tick_uses_defaults(publisher, reporter):
    sleep = Mock()
    loader = Mock(side_effect=RuntimeError("disk gone"))
    agent = make_agent(publisher, reporter, FakeReader(PlaybackState.stopped()), settings=loader, sleep=sleep)
    agent.run_forever(max_ticks=1)
    assert reporter.read() == "Error: disk gone"
    sleep.assert_called_once_with(5)


def test_error_without_message_reports_exception_name(publisher, reporter):
    class PipeClosed(Exception):
        pass

    publisher.publish.side_effect = PipeClosed()
    agent = make_agent(publisher, reporter, FakeReader(PlaybackState.stopped()))
    agent.run_once()
    assert reporter.read() == "Error: PipeClosed"

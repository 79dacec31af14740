"""
Tests for lofi/live/transport: state machine, one-shot playback instances, clock math.
"""
import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from lofi.live.transport import TransportClock, PlaybackState


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakePlayback:
    def __init__(self, offset):
        self.offset = offset
        self.stopped = False

    def stop(self):
        self.stopped = True


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def made():
    return []


@pytest.fixture
def transport(clock, made):
    def factory(offset):
        pb = FakePlayback(offset)
        made.append(pb)
        return pb

    return TransportClock(factory, clock, duration=120.0)


# -----------------------------------------------------------------------------
# Scenario
# -----------------------------------------------------------------------------

def test_play_pause_resume(transport, clock, made):
    transport.play(10)
    clock.advance(5)
    transport.pause()
    assert transport.state is PlaybackState.PAUSED
    assert transport.current_time() == pytest.approx(15.0)

    transport.play()
    assert made[-1].offset == pytest.approx(15.0)
    clock.advance(2)
    assert transport.current_time() == pytest.approx(17.0)


def test_initial_state(transport):
    assert transport.state is PlaybackState.IDLE
    assert transport.current_time() == 0.0
    assert not transport.is_playing


# -----------------------------------------------------------------------------
# One-shot instances
# -----------------------------------------------------------------------------

def test_each_play_builds_fresh_instance(transport, made):
    transport.play(0)
    transport.pause()
    transport.play()
    assert len(made) == 2
    assert made[0] is not made[1]
    assert made[0].stopped
    assert not made[1].stopped


def test_play_while_playing_is_ignored(transport, made):
    transport.play(0)
    transport.play(30)
    assert len(made) == 1


def test_pause_when_not_playing_is_noop(transport, made):
    transport.pause()
    assert transport.state is PlaybackState.IDLE
    assert made == []


# -----------------------------------------------------------------------------
# Seek
# -----------------------------------------------------------------------------

def test_seek_while_playing_resumes_at_target(transport, clock, made):
    transport.play(0)
    clock.advance(3)
    transport.seek_to(42)
    assert transport.state is PlaybackState.PLAYING
    assert made[0].stopped
    assert made[-1].offset == pytest.approx(42.0)
    clock.advance(1)
    assert transport.current_time() == pytest.approx(43.0)


def test_seek_while_paused_stays_paused(transport, made):
    transport.play(0)
    transport.pause()
    transport.seek_to(50)
    assert transport.state is PlaybackState.PAUSED
    assert transport.current_time() == 50.0
    assert len(made) == 1


def test_seek_from_idle(transport, made):
    transport.seek_to(7)
    assert transport.state is PlaybackState.PAUSED
    assert transport.current_time() == 7.0
    assert made == []


def test_positions_clamped_to_timeline(transport, clock):
    transport.seek_to(-5)
    assert transport.current_time() == 0.0
    transport.seek_to(500)
    assert transport.current_time() == 120.0
    transport.play(110)
    clock.advance(30)
    assert transport.current_time() == 120.0


# -----------------------------------------------------------------------------
# End / teardown
# -----------------------------------------------------------------------------

def test_finish_parks_at_end(transport, made):
    transport.play(100)
    transport.finish()
    assert transport.state is PlaybackState.PAUSED
    assert transport.current_time() == 120.0
    assert made[0].stopped


def test_stop_returns_to_idle(transport, made):
    transport.play(10)
    transport.stop()
    assert transport.state is PlaybackState.IDLE
    assert transport.current_time() == 0.0
    assert made[0].stopped

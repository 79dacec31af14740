"""
Tests for lofi/params/mapper: slider -> coefficient formulas, clamping, render length.
Run from project root: python -m pytest tests/test_mapper.py -v
"""
import sys
import os
import math

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import pytest
from lofi.params.settings import EffectsSettings
from lofi.params.mapper import (
    lowpass_frequency,
    lowpass_q,
    highpass_frequency,
    compressor_threshold,
    compressor_ratio,
    dry_gain,
    wet_gain,
    playback_rate,
    crush_intensity,
    map_settings,
    render_frames,
)


# -----------------------------------------------------------------------------
# Shape of the mappings
# -----------------------------------------------------------------------------

def test_lowpass_frequency_monotonic_and_bounded():
    values = [lowpass_frequency(lp) for lp in range(0, 101)]
    for a, b in zip(values, values[1:]):
        assert b <= a
    assert all(100.0 <= v <= 20000.0 for v in values)
    assert values[0] == 20000.0
    assert values[-1] == 100.0


def test_playback_rate_linear_over_slider_range():
    rates = [playback_rate(s) for s in range(70, 101)]
    assert rates[0] == pytest.approx(0.7)
    assert rates[-1] == pytest.approx(1.0)
    # constant step -> linear; strictly increasing -> one-to-one
    steps = [b - a for a, b in zip(rates, rates[1:])]
    assert all(step == pytest.approx(0.01) for step in steps)
    assert len(set(rates)) == len(rates)


def test_outputs_clamped_outside_slider_range():
    assert lowpass_frequency(-20) == 20000.0
    assert lowpass_frequency(180) == 100.0
    assert lowpass_q(500) == 6.0
    assert highpass_frequency(-1) == 20.0
    assert playback_rate(40) == 0.7
    assert playback_rate(140) == 1.0
    assert wet_gain(250) == pytest.approx(0.6)
    assert dry_gain(250) == 0.0
    assert compressor_threshold(300, 300) == -36.0
    assert compressor_ratio(-50, -50) == 4.0
    assert crush_intensity(120) == 1.0


# -----------------------------------------------------------------------------
# Concrete scenarios
# -----------------------------------------------------------------------------

def test_default_panel_settings():
    c = map_settings(EffectsSettings(slowdown=85, reverb=30, lowpass=50))
    assert c.lowpass_hz == pytest.approx(10050.0)
    assert c.lowpass_q == pytest.approx(3.5)
    assert c.highpass_hz == pytest.approx(120.0)
    assert c.avg_intensity == pytest.approx(0.4)
    assert c.compressor_threshold_db == pytest.approx(-28.8)
    assert c.compressor_ratio == pytest.approx(7.2)
    assert c.dry_gain == pytest.approx(0.7)
    assert c.wet_gain == pytest.approx(0.18)
    assert c.playback_rate == pytest.approx(0.85)
    assert c.crush_intensity == pytest.approx(0.5)


def test_neutral_settings_reduce_to_pass_through():
    c = map_settings(EffectsSettings(slowdown=100, reverb=0, lowpass=0))
    assert c.lowpass_hz == 20000.0
    assert c.wet_gain == 0.0
    assert c.dry_gain == 1.0
    assert c.playback_rate == 1.0
    assert render_frames(44100, 100) == 44100


def test_same_settings_map_identically():
    s = EffectsSettings(slowdown=77, reverb=64, lowpass=33)
    assert map_settings(s) == map_settings(EffectsSettings(slowdown=77, reverb=64, lowpass=33))


# -----------------------------------------------------------------------------
# Render length
# -----------------------------------------------------------------------------

@pytest.mark.parametrize("frames", [0, 1, 2, 999, 44100, 123457])
@pytest.mark.parametrize("slowdown", [70, 71, 80, 85, 99, 100])
def test_render_frames_matches_rounded_stretch(frames, slowdown):
    assert render_frames(frames, slowdown) == int(math.floor(frames * 100.0 / slowdown + 0.5))


def test_render_frames_rounds_half_up():
    # 2 * 100 / 80 = 2.5
    assert render_frames(2, 80) == 3

"""
Tests for tools/render.py: render and coefficients subcommands, preview session setup.
"""
import sys
import os
import io
import json
import argparse
import importlib.util

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import numpy as np
import pytest
import soundfile as sf
import torch
from lofi.core.config import EngineConfig
from lofi.dsp.impulse import generate_impulse_response
from lofi.params.mapper import render_frames

TOOL_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "tools", "render.py"))
SR = 8000


def _load_tool():
    spec = importlib.util.spec_from_file_location("lofi_render_tool", TOOL_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def tool():
    return _load_tool()


@pytest.fixture
def track(tmp_path):
    path = tmp_path / "track.wav"
    t = np.arange(1600) / SR
    tone = (0.3 * np.sin(2 * np.pi * 330 * t)).astype(np.float32)
    sf.write(str(path), np.stack([tone, tone], axis=1), SR)
    return str(path)


def _args(**overrides):
    values = dict(
        input=None, output=None, slowdown=None, reverb=None, lowpass=None, settings=None,
        ambient=None, ambient_volume=None, seed=None, start=0.0,
    )
    values.update(overrides)
    return argparse.Namespace(**values)


# -----------------------------------------------------------------------------
# render / coefficients
# -----------------------------------------------------------------------------

def test_render_writes_wav(tool, track, tmp_path):
    out = tmp_path / "out.wav"
    code = tool.cmd_render(_args(input=track, output=str(out), slowdown=80, seed=2), EngineConfig())
    assert code == 0
    data, sr = sf.read(str(out), always_2d=True)
    assert sr == SR
    assert data.shape == (render_frames(1600, 80), 2)


def test_settings_file_overridden_by_flags(tool, tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"reverb": 10, "lowpass": 90}))
    settings = tool._settings_from_args(_args(settings=str(path), lowpass=20))
    assert settings.reverb == 10
    assert settings.lowpass == 20
    assert settings.slowdown == 85


def test_coefficients_prints_json(tool, capsys):
    assert tool.cmd_coefficients(_args(slowdown=100), EngineConfig()) == 0
    body = json.loads(capsys.readouterr().out)
    assert body["settings"]["slowdown"] == 100
    assert body["coefficients"]["playback_rate"] == pytest.approx(1.0)


# -----------------------------------------------------------------------------
# preview
# -----------------------------------------------------------------------------

def test_preview_seed_selects_reverb_tail(tool, track):
    session = tool._preview_session(_args(input=track, seed=7, reverb=60), EngineConfig(ir_seed=1))
    try:
        assert session.config.ir_seed == 7
        assert session.settings.reverb == 60
        assert torch.equal(session._impulse, generate_impulse_response(SR, 2, seed=7))
    finally:
        session.close()


def test_preview_without_seed_keeps_config(tool, track):
    session = tool._preview_session(_args(input=track), EngineConfig(ir_seed=3))
    try:
        assert session.config.ir_seed == 3
    finally:
        session.close()

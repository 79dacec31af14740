#!/usr/bin/env python3
"""
Lofi render / preview tool.

Usage:
    python tools/render.py <subcommand> [options]

Subcommands:
    render <input> [output]      Render a lofi WAV of <input> (default: <input>_lofi.wav)
    preview <input>              Play the lofi chain live through the sound card
    coefficients                 Print the mapped DSP values for the given settings

Options:
    --slowdown <70-100>   Playback speed in percent (default: 85)
    --reverb <0-100>      Reverb amount (default: 30)
    --lowpass <0-100>     Low-pass / crush intensity (default: 50)
    --settings <json>     JSON file with settings (flags override it)
    --ambient <path|url>  Ambient loop mixed underneath
    --ambient-volume <v>  Ambient gain 0..1 (default: config)
    --seed <int>          Fixed reverb seed (default: random)
"""
import sys
import dataclasses
import os
import json
import time
import asyncio
import argparse
from pathlib import Path

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from lofi.core.config import EngineConfig
from lofi.core.errors import LofiError
from lofi.core.io import AudioIO
from lofi.live.session import LofiSession
from lofi.params.mapper import map_settings
from lofi.params.settings import resolve_settings
from lofi.render.offline import OfflineRenderer


def _settings_from_args(args):
    raw = {}
    if args.settings:
        with open(args.settings, "r") as f:
            raw = json.load(f)
    for key in ("slowdown", "reverb", "lowpass"):
        value = getattr(args, key)
        if value is not None:
            raw[key] = value
    return resolve_settings(raw)


def _load_ambient(source, config):
    if not source:
        return None
    if source.startswith(("http://", "https://")):
        return AudioIO.decode(AudioIO.fetch(source, config.fetch_timeout))
    return AudioIO.load(source)


def cmd_render(args, config):
    settings = _settings_from_args(args)
    asset = AudioIO.load(args.input)
    ambient = _load_ambient(args.ambient, config)
    output = Path(args.output) if args.output else Path(args.input).with_name(f"{Path(args.input).stem}_lofi.wav")

    ambient_volume = args.ambient_volume if args.ambient_volume is not None else config.ambient_volume
    renderer = OfflineRenderer(config.render_block_size)
    wav_bytes = renderer.render_wav(
        asset, settings, ambient=ambient, ambient_gain=ambient_volume, seed=args.seed
    )
    if wav_bytes is None:
        print("Error: render failed (see log)")
        return 1
    output.write_bytes(wav_bytes)

    print(f"\n=== Render Complete ===")
    print(f"Input: {args.input} ({asset.channels} ch, {asset.sample_rate} Hz, {asset.duration:.2f}s)")
    print(f"Settings: {settings.to_dict()}")
    print(f"Output: {output} ({len(wav_bytes)} bytes)")
    return 0


def _preview_session(args, config):
    """Session loaded with the track, settings and ambient from the command line."""
    if args.seed is not None:
        config = dataclasses.replace(config, ir_seed=args.seed)
    session = LofiSession(config)
    session.load_primary(AudioIO.load(args.input))
    session.set_effects(_settings_from_args(args))
    if args.ambient:
        if args.ambient.startswith(("http://", "https://")):
            asyncio.run(session.load_ambient(args.ambient))
        else:
            session.load_ambient_asset(AudioIO.load(args.ambient))
    if args.ambient_volume is not None:
        session.set_ambient_volume(args.ambient_volume)
    return session


def cmd_preview(args, config):
    # sounddevice needs PortAudio; only the preview path imports it
    from lofi.live.output import LiveOutput

    session = _preview_session(args, config)
    output = LiveOutput(session, block_size=session.config.block_size)
    output.start()
    session.play(args.start)
    print(f"Playing {args.input} ({session.duration():.1f}s processed). Ctrl+C to stop.")
    try:
        while session.is_playing():
            time.sleep(0.25)
    except KeyboardInterrupt:
        pass
    finally:
        session.pause()
        output.stop()
        session.close()
    return 0


def cmd_coefficients(args, config):
    settings = _settings_from_args(args)
    print(json.dumps({
        "settings": settings.to_dict(),
        "coefficients": map_settings(settings).to_dict(),
    }, indent=2))
    return 0


def main():
    parser = argparse.ArgumentParser(description="Lofi effect chain: offline render and live preview")
    subparsers = parser.add_subparsers(dest="command", help="Subcommand")

    # Common arguments
    def add_common_args(p):
        p.add_argument("--slowdown", type=int, default=None, help="Playback speed percent (70-100)")
        p.add_argument("--reverb", type=int, default=None, help="Reverb amount (0-100)")
        p.add_argument("--lowpass", type=int, default=None, help="Low-pass intensity (0-100)")
        p.add_argument("--settings", type=str, help="JSON file with settings")

    def add_audio_args(p):
        p.add_argument("input", help="Audio file to process")
        p.add_argument("--ambient", type=str, help="Ambient loop (path or URL)")
        p.add_argument("--ambient-volume", type=float, default=None, help="Ambient gain 0..1")
        p.add_argument("--seed", type=int, default=None, help="Fixed reverb seed (default: random)")

    p_render = subparsers.add_parser("render", help="Render a lofi WAV")
    add_audio_args(p_render)
    p_render.add_argument("output", nargs="?", help="Output WAV path")
    add_common_args(p_render)

    p_preview = subparsers.add_parser("preview", help="Live preview through the sound card")
    add_audio_args(p_preview)
    p_preview.add_argument("--start", type=float, default=0.0, help="Start position (processed seconds)")
    add_common_args(p_preview)

    p_coeff = subparsers.add_parser("coefficients", help="Print mapped DSP values")
    add_common_args(p_coeff)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    config = EngineConfig.from_env()
    try:
        if args.command == "render":
            return cmd_render(args, config)
        elif args.command == "preview":
            return cmd_preview(args, config)
        elif args.command == "coefficients":
            return cmd_coefficients(args, config)
    except LofiError as e:
        print(f"Error: {e}")
        return 1
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())

"""Core transcript model, timestamp codec, and format normalizers.

WHY: The core package is the stable heart of transcript handling — the
canonical dataclasses and the pure functions that turn raw provider
payloads into them. Providers, cache and CLI all depend on it.

HOW: ir.py defines the data structures, timestamps.py converts time
representations, parse.py normalizes VTT and JSON payloads, youtube.py
reads ids and inline config out of YouTube URLs and pages.

RULES:
- Everything here is pure: no network, no process, no disk
- IR dataclasses are the contract — change with care
"""

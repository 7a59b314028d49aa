"""
replay-harness — package root

File: src/replay_harness/__init__.py
Last updated: 2026-10-18

Purpose
- Deterministic replay regression-testing engine: capture scenario traces under
  baseline/candidate profiles, normalize them, diff them, and gate CI on drift.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

__version__ = "0.4.0"

__all__ = ["__version__"]

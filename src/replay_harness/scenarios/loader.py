"""
replay-harness — scenario suite loader

File: src/replay_harness/scenarios/loader.py
Last updated: 2026-10-18

Purpose
- Read a scenario suite file from disk and hand it to the schema normalizer.

Functional requirements
- ``.json`` files are decoded with ``json``; ``.yaml``/``.yml`` with ``yaml.safe_load``.
- Unreadable or undecodable files raise ``SchemaValidationError`` naming the path.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Final

import yaml

from replay_harness.domain.errors import SchemaValidationError
from replay_harness.scenarios.schema import ScenarioSuite, parse_scenario_suite

logger = logging.getLogger(__name__)

YAML_SUFFIXES: Final[frozenset[str]] = frozenset({".yaml", ".yml"})


def read_scenario_document(path: str | Path) -> object:
    """Decode the raw suite document at ``path`` without validating it."""

    suite_path = Path(path).expanduser().resolve()
    try:
        text = suite_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise SchemaValidationError(f"scenario suite not found: {suite_path}") from exc
    except OSError as exc:
        raise SchemaValidationError(f"unable to read scenario suite {suite_path}: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise SchemaValidationError(
            f"scenario suite {suite_path} is not valid UTF-8: {exc}"
        ) from exc

    if suite_path.suffix.lower() in YAML_SUFFIXES:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise SchemaValidationError(f"invalid YAML in {suite_path}: {exc}") from exc

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaValidationError(f"invalid JSON in {suite_path}: {exc}") from exc


def load_scenario_suite(path: str | Path) -> ScenarioSuite:
    """Load, validate, and normalize the scenario suite at ``path``."""

    suite = parse_scenario_suite(read_scenario_document(path))
    logger.debug(
        "scenario_suite_loaded",
        extra={"suite_path": str(path), "scenario_count": len(suite.scenarios)},
    )
    return suite


__all__ = ["YAML_SUFFIXES", "load_scenario_suite", "read_scenario_document"]

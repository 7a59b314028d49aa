"""
replay-harness — comparator profile

File: src/replay_harness/comparison/profile.py
Last updated: 2026-10-18

Purpose
- Tunables for the comparator checks, with deterministic defaults.

Functional requirements
- Absent sections and fields fall back to defaults.
- Profiles load from ``.json``, ``.yaml``/``.yml`` or ``.toml`` documents.
"""

from __future__ import annotations

import json
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

import yaml

from replay_harness.utils.stable_json import JSONValue

DEFAULT_PROFILE_NAME: Final[str] = "default-replay-profile"
DEFAULT_HANDOFF_TARGET: Final[str] = "Coordinator"


class ComparatorProfileError(ValueError):
    """Raised when a comparator profile document cannot be read or is malformed."""


@dataclass(frozen=True, slots=True)
class ToolOrderSettings:
    strict_default: bool = True
    ignore_optional_tools: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class AuthorizationSettings:
    compare_reason_class: bool = True


@dataclass(frozen=True, slots=True)
class FlowSettings:
    require_handoff_before_complete: bool = True
    require_confirmation_before_gated_updates: bool = True
    required_handoff_target: str = DEFAULT_HANDOFF_TARGET


@dataclass(frozen=True, slots=True)
class SuccessSignatureSettings:
    require_all: bool = True


@dataclass(frozen=True, slots=True)
class ComparatorProfile:
    profile_name: str = DEFAULT_PROFILE_NAME
    tool_order: ToolOrderSettings = field(default_factory=ToolOrderSettings)
    authorization: AuthorizationSettings = field(default_factory=AuthorizationSettings)
    flow: FlowSettings = field(default_factory=FlowSettings)
    success_signatures: SuccessSignatureSettings = field(default_factory=SuccessSignatureSettings)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, object] | None) -> ComparatorProfile:
        if payload is None:
            return cls()
        if not isinstance(payload, Mapping):
            raise ComparatorProfileError(
                f"comparator profile: expected object, got {type(payload).__name__}"
            )
        tool_order = _section(payload, "tool_order")
        authorization = _section(payload, "authorization")
        flow = _section(payload, "flow")
        signatures = _section(payload, "success_signatures")

        ignored = tool_order.get("ignore_optional_tools")
        return cls(
            profile_name=_text(payload.get("profile_name"), DEFAULT_PROFILE_NAME, "profile_name"),
            tool_order=ToolOrderSettings(
                strict_default=_flag(
                    tool_order.get("strict_default"), True, "tool_order.strict_default"
                ),
                ignore_optional_tools=tuple(
                    item for item in ignored if isinstance(item, str)
                )
                if isinstance(ignored, list)
                else (),
            ),
            authorization=AuthorizationSettings(
                compare_reason_class=_flag(
                    authorization.get("compare_reason_class"),
                    True,
                    "authorization.compare_reason_class",
                )
            ),
            flow=FlowSettings(
                require_handoff_before_complete=_flag(
                    flow.get("require_handoff_before_complete"),
                    True,
                    "flow.require_handoff_before_complete",
                ),
                require_confirmation_before_gated_updates=_flag(
                    flow.get("require_confirmation_before_gated_updates"),
                    True,
                    "flow.require_confirmation_before_gated_updates",
                ),
                required_handoff_target=_text(
                    flow.get("required_handoff_target"),
                    DEFAULT_HANDOFF_TARGET,
                    "flow.required_handoff_target",
                ),
            ),
            success_signatures=SuccessSignatureSettings(
                require_all=_flag(
                    signatures.get("require_all"), True, "success_signatures.require_all"
                )
            ),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "profile_name": self.profile_name,
            "tool_order": {
                "strict_default": self.tool_order.strict_default,
                "ignore_optional_tools": list(self.tool_order.ignore_optional_tools),
            },
            "authorization": {"compare_reason_class": self.authorization.compare_reason_class},
            "flow": {
                "require_handoff_before_complete": self.flow.require_handoff_before_complete,
                "require_confirmation_before_gated_updates": (
                    self.flow.require_confirmation_before_gated_updates
                ),
                "required_handoff_target": self.flow.required_handoff_target,
            },
            "success_signatures": {"require_all": self.success_signatures.require_all},
        }


def load_comparator_profile(path: str | Path | None) -> ComparatorProfile:
    """Load a profile document, or return the default profile when ``path`` is empty."""

    if path is None or str(path) == "":
        return ComparatorProfile()

    profile_path = Path(path).expanduser().resolve()
    try:
        text = profile_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ComparatorProfileError(
            f"unable to read comparator profile {profile_path}: {exc}"
        ) from exc

    suffix = profile_path.suffix.lower()
    try:
        if suffix in {".yaml", ".yml"}:
            document = yaml.safe_load(text)
        elif suffix == ".toml":
            document = tomllib.loads(text)
        else:
            document = json.loads(text)
    except (yaml.YAMLError, tomllib.TOMLDecodeError, json.JSONDecodeError) as exc:
        raise ComparatorProfileError(f"invalid comparator profile {profile_path}: {exc}") from exc

    return ComparatorProfile.from_mapping(document)


def _section(payload: Mapping[str, object], key: str) -> Mapping[str, object]:
    value = payload.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ComparatorProfileError(f"comparator profile.{key}: expected object")
    return value


def _flag(value: object, default: bool, path: str) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ComparatorProfileError(f"comparator profile.{path}: expected boolean")
    return value


def _text(value: object, default: str, path: str) -> str:
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ComparatorProfileError(f"comparator profile.{path}: expected non-empty string")
    return value


__all__ = [
    "DEFAULT_HANDOFF_TARGET",
    "DEFAULT_PROFILE_NAME",
    "AuthorizationSettings",
    "ComparatorProfile",
    "ComparatorProfileError",
    "FlowSettings",
    "SuccessSignatureSettings",
    "ToolOrderSettings",
    "load_comparator_profile",
]

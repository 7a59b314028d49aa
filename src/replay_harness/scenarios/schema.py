"""
replay-harness — scenario schema validation and normalization

File: src/replay_harness/scenarios/schema.py
Last updated: 2026-10-18

Purpose
- Turn arbitrary decoded JSON/YAML into canonical, immutable ``Scenario`` records.

What should be included in this file
- Typed scenario records (steps, expectations, checks, stabilization, thresholds).
- ``validate_scenario`` returning a tagged ``Ok``/``Err`` result.
- ``normalize_scenario`` and ``parse_scenario_suite`` raising ``SchemaValidationError``.
- Content digest computation over the stable serializer.

Functional requirements
- Field coercion and defaulting are deterministic and idempotent: normalizing the
  ``to_dict`` output of a normalized scenario yields the same scenario and digest.
- The first structural problem aborts the scenario; suites report every duplicate id.

Non-functional requirements
- Pure functions; no filesystem access (see ``loader``).
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from typing import Final, Literal, TypeAlias

from replay_harness.constants import (
    DEFAULT_WAIT_MS,
    SCENARIO_DRIVER,
    SCENARIO_SCHEMA_VERSION,
)
from replay_harness.domain.errors import SchemaValidationError
from replay_harness.utils.hashing import sha256_json
from replay_harness.utils.stable_json import JSONValue, to_stable_value

SCENARIO_ID_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[A-Z][A-Z0-9_]*$")
_ID_SEPARATOR_RE: Final[re.Pattern[str]] = re.compile(r"[^A-Z0-9]+")
_TAG_INVALID_RE: Final[re.Pattern[str]] = re.compile(r"[^a-z0-9._:-]+")

StepKind = Literal["user", "tool", "wait"]
CheckType = Literal["tool_order", "auth_outcome", "flow", "success_signature"]

STEP_KINDS: Final[tuple[str, ...]] = ("user", "tool", "wait")
CHECK_TYPES: Final[tuple[str, ...]] = ("tool_order", "auth_outcome", "flow", "success_signature")
CHECK_SEVERITIES: Final[tuple[str, ...]] = ("low", "medium", "high")
AUTH_EXPECTATIONS: Final[tuple[str, ...]] = ("allowed", "allowed_with_warning", "blocked")
TERMINAL_SURFACES: Final[tuple[str, ...]] = ("memory_terminal", "memory_terminal_interactive", "auto")
DETERMINISM_LEVELS: Final[tuple[str, ...]] = ("strict", "moderate", "loose")
RISK_LEVELS: Final[tuple[str, ...]] = ("p0", "p1", "p2")
PRIORITY_LEVELS: Final[tuple[str, ...]] = ("high", "medium", "low")
NORMALIZATION_FLAGS: Final[tuple[str, ...]] = (
    "mask_ids",
    "canonicalize_timestamps",
    "canonicalize_paths",
    "strip_nondeterministic_text",
)
THRESHOLD_FIELDS: Final[tuple[str, ...]] = (
    "max_total_drifts",
    "max_high_severity_drifts",
    "max_medium_severity_drifts",
    "max_low_severity_drifts",
)


@dataclass(frozen=True, slots=True)
class WorkspaceRef:
    workspace_path: str
    workspace_id: str

    def to_dict(self) -> dict[str, JSONValue]:
        return {"workspace_path": self.workspace_path, "workspace_id": self.workspace_id}


@dataclass(frozen=True, slots=True)
class RuntimeConfig:
    mode: Literal["headless", "interactive"] = "headless"
    terminal_surface: str = "auto"

    def to_dict(self) -> dict[str, JSONValue]:
        return {"mode": self.mode, "terminal_surface": self.terminal_surface}


@dataclass(frozen=True, slots=True)
class ScenarioStep:
    """One scripted step; kind-specific fields are ``None`` for other kinds."""

    kind: StepKind
    id: str
    prompt: str | None = None
    tool: str | None = None
    action: str | None = None
    args: dict[str, JSONValue] | None = None
    wait_ms: int | float | None = None
    expect_auth: str | None = None
    metadata: dict[str, JSONValue] | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        return _without_none(
            {
                "kind": self.kind,
                "id": self.id,
                "prompt": self.prompt,
                "tool": self.tool,
                "action": self.action,
                "args": self.args,
                "wait_ms": self.wait_ms,
                "expect_auth": self.expect_auth,
                "metadata": self.metadata,
            }
        )


@dataclass(frozen=True, slots=True)
class CheckSpec:
    id: str
    type: CheckType
    severity: str = "medium"
    required: bool = True
    strict_order: bool | None = None
    expected: str | tuple[str, ...] | None = None
    metadata: dict[str, JSONValue] | None = None

    @property
    def expected_values(self) -> tuple[str, ...]:
        """Expected values as a tuple regardless of declared shape."""

        if self.expected is None:
            return ()
        if isinstance(self.expected, str):
            return (self.expected,)
        return self.expected

    def to_dict(self) -> dict[str, JSONValue]:
        expected: JSONValue
        if isinstance(self.expected, tuple):
            expected = list(self.expected)
        else:
            expected = self.expected
        return _without_none(
            {
                "id": self.id,
                "type": self.type,
                "severity": self.severity,
                "required": self.required,
                "strict_order": self.strict_order,
                "expected": expected,
                "metadata": self.metadata,
            }
        )


@dataclass(frozen=True, slots=True)
class SuccessSignature:
    must_include: tuple[str, ...]
    allow_missing: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, JSONValue]:
        return {"must_include": list(self.must_include), "allow_missing": list(self.allow_missing)}


@dataclass(frozen=True, slots=True)
class Expectations:
    success_signature: SuccessSignature
    checks: tuple[CheckSpec, ...] = ()

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "success_signature": self.success_signature.to_dict(),
            "checks": [check.to_dict() for check in self.checks],
        }


@dataclass(frozen=True, slots=True)
class TagMetadata:
    domain: str | None = None
    surface: str | None = None
    risk: str | None = None
    priority: str | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        return _without_none(
            {
                "domain": self.domain,
                "surface": self.surface,
                "risk": self.risk,
                "priority": self.priority,
            }
        )


@dataclass(frozen=True, slots=True)
class StabilizationControls:
    fixture_seed: int | None = None
    frozen_clock_delta_ms: int | None = None
    wait_budget_ms: int | None = None
    resolver_fixture_tree: str | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        return _without_none(
            {
                "fixture_seed": self.fixture_seed,
                "frozen_clock_delta_ms": self.frozen_clock_delta_ms,
                "wait_budget_ms": self.wait_budget_ms,
                "resolver_fixture_tree": self.resolver_fixture_tree,
            }
        )


@dataclass(frozen=True, slots=True)
class AcceptanceThresholds:
    max_total_drifts: int | None = None
    max_high_severity_drifts: int | None = None
    max_medium_severity_drifts: int | None = None
    max_low_severity_drifts: int | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        return _without_none({name: getattr(self, name) for name in THRESHOLD_FIELDS})


@dataclass(frozen=True, slots=True)
class TimeoutConfig:
    run_timeout_ms: int | None = None
    step_timeout_ms: int | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        return _without_none(
            {"run_timeout_ms": self.run_timeout_ms, "step_timeout_ms": self.step_timeout_ms}
        )


@dataclass(frozen=True, slots=True)
class NormalizationConfig:
    """Per-scenario normalizer flags; ``None`` means the normalizer default (enabled)."""

    mask_ids: bool | None = None
    canonicalize_timestamps: bool | None = None
    canonicalize_paths: bool | None = None
    strip_nondeterministic_text: bool | None = None

    def to_dict(self) -> dict[str, JSONValue]:
        return _without_none({name: getattr(self, name) for name in NORMALIZATION_FLAGS})


@dataclass(frozen=True, slots=True)
class Scenario:
    """A canonical, validated scenario. Build through ``normalize_scenario``."""

    scenario_id: str
    title: str
    intent: str
    workspace: WorkspaceRef
    runtime: RuntimeConfig
    steps: tuple[ScenarioStep, ...]
    expectations: Expectations
    tags: tuple[str, ...] = ()
    tag_metadata: TagMetadata | None = None
    stabilization: StabilizationControls | None = None
    acceptance_thresholds: AcceptanceThresholds | None = None
    source_refs: tuple[str, ...] = ()
    determinism: str = "strict"
    timeouts: TimeoutConfig | None = None
    normalization: NormalizationConfig | None = None
    metadata: dict[str, JSONValue] | None = None
    schema_version: str = SCENARIO_SCHEMA_VERSION
    driver: str = SCENARIO_DRIVER
    scenario_digest: str | None = None

    @property
    def checks(self) -> tuple[CheckSpec, ...]:
        return self.expectations.checks

    @property
    def run_timeout_ms(self) -> int | None:
        return self.timeouts.run_timeout_ms if self.timeouts is not None else None

    def to_dict(self, *, include_digest: bool = True) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue | None] = {
            "schema_version": self.schema_version,
            "scenario_id": self.scenario_id,
            "title": self.title,
            "intent": self.intent,
            "driver": self.driver,
            "workspace": self.workspace.to_dict(),
            "runtime": self.runtime.to_dict(),
            "steps": [step.to_dict() for step in self.steps],
            "expectations": self.expectations.to_dict(),
            "tags": list(self.tags),
            "tag_metadata": _dict_or_none(self.tag_metadata),
            "stabilization": _dict_or_none(self.stabilization),
            "acceptance_thresholds": _dict_or_none(self.acceptance_thresholds),
            "source_refs": list(self.source_refs),
            "determinism": self.determinism,
            "timeouts": _dict_or_none(self.timeouts),
            "normalization": _dict_or_none(self.normalization),
            "metadata": self.metadata,
            "scenario_digest": self.scenario_digest if include_digest else None,
        }
        return _without_none(payload)


@dataclass(frozen=True, slots=True)
class Ok:
    value: Scenario


@dataclass(frozen=True, slots=True)
class Err:
    error: SchemaValidationError


ScenarioValidationResult: TypeAlias = Ok | Err


@dataclass(frozen=True, slots=True)
class ScenarioSuite:
    scenarios: tuple[Scenario, ...]
    schema_version: str = SCENARIO_SCHEMA_VERSION

    @property
    def scenario_ids(self) -> tuple[str, ...]:
        return tuple(scenario.scenario_id for scenario in self.scenarios)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "schema_version": self.schema_version,
            "scenarios": [scenario.to_dict() for scenario in self.scenarios],
        }


def compute_scenario_digest(scenario: Scenario) -> str:
    """SHA-256 over the stable serialization of ``scenario`` minus its digest."""

    return sha256_json(scenario.to_dict(include_digest=False))


def normalize_scenario_id(raw: str) -> str:
    normalized = _ID_SEPARATOR_RE.sub("_", raw.strip().upper()).strip("_")
    if not SCENARIO_ID_PATTERN.fullmatch(normalized):
        raise SchemaValidationError(
            f"scenario_id '{raw}' cannot be normalized to a valid uppercase snake-case ID."
        )
    return normalized


def normalize_tag(raw: str) -> str:
    return _TAG_INVALID_RE.sub("-", raw.strip().lower()).strip("-")


def validate_scenario(raw: object, index: int = 0) -> ScenarioValidationResult:
    """Validate one raw scenario entry without raising."""

    try:
        return Ok(_build_scenario(raw, index))
    except SchemaValidationError as exc:
        return Err(exc)


def normalize_scenario(raw: object, index: int = 0) -> Scenario:
    """Validate and normalize one raw scenario entry, raising on failure."""

    result = validate_scenario(raw, index)
    if isinstance(result, Err):
        raise result.error
    return result.value


def parse_scenario_suite(raw: object) -> ScenarioSuite:
    """
    Normalize every scenario in ``raw`` and enforce suite-wide id uniqueness.

    The first malformed scenario aborts the load. Duplicate ids are collected
    across the whole suite before raising so the message lists all of them.
    """

    source = _require_object(raw, "scenario suite")
    entries = source.get("scenarios")
    if not isinstance(entries, list):
        raise SchemaValidationError("scenario suite must include a scenarios array.")

    scenarios = tuple(normalize_scenario(entry, index) for index, entry in enumerate(entries))

    seen: set[str] = set()
    duplicates: list[str] = []
    for scenario in scenarios:
        if scenario.scenario_id in seen and scenario.scenario_id not in duplicates:
            duplicates.append(scenario.scenario_id)
        seen.add(scenario.scenario_id)
    if duplicates:
        raise SchemaValidationError(f"duplicate scenario_id values found: {', '.join(duplicates)}")

    return ScenarioSuite(scenarios=scenarios)


def _build_scenario(raw: object, index: int) -> Scenario:
    source = _require_object(raw, f"scenarios[{index}]")
    scenario_id = normalize_scenario_id(
        _require_str(source.get("scenario_id"), f"scenarios[{index}].scenario_id")
    )

    workspace_raw = _require_object(source.get("workspace"), f"{scenario_id}.workspace")
    runtime_raw = _require_object(source.get("runtime"), f"{scenario_id}.runtime")
    expectations_raw = _require_object(source.get("expectations"), f"{scenario_id}.expectations")
    signature_raw = _require_object(
        expectations_raw.get("success_signature"),
        f"{scenario_id}.expectations.success_signature",
    )

    must_include = tuple(
        item
        for item in _list_or_empty(signature_raw.get("must_include"))
        if isinstance(item, str) and item
    )
    if not must_include:
        raise SchemaValidationError(f"{scenario_id} must include at least one success signature.")

    tag_metadata = _normalize_tag_metadata(source.get("tag_metadata"))
    stabilization = _normalize_stabilization(source.get("stabilization"))

    steps = _normalize_steps(source.get("steps"), scenario_id)
    if stabilization is not None and stabilization.wait_budget_ms:
        budget = stabilization.wait_budget_ms
        steps = tuple(
            replace(step, wait_ms=min(step.wait_ms or DEFAULT_WAIT_MS, budget))
            if step.kind == "wait"
            else step
            for step in steps
        )

    runtime_mode = "interactive" if runtime_raw.get("mode") == "interactive" else "headless"
    terminal_surface = runtime_raw.get("terminal_surface")
    determinism = source.get("determinism")

    scenario = Scenario(
        scenario_id=scenario_id,
        title=_require_str(source.get("title"), f"{scenario_id}.title"),
        intent=_require_str(source.get("intent"), f"{scenario_id}.intent"),
        workspace=WorkspaceRef(
            workspace_path=_require_str(
                workspace_raw.get("workspace_path"), f"{scenario_id}.workspace.workspace_path"
            ),
            workspace_id=_require_str(
                workspace_raw.get("workspace_id"), f"{scenario_id}.workspace.workspace_id"
            ),
        ),
        runtime=RuntimeConfig(
            mode=runtime_mode,
            terminal_surface=terminal_surface if terminal_surface in TERMINAL_SURFACES else "auto",
        ),
        steps=steps,
        expectations=Expectations(
            success_signature=SuccessSignature(
                must_include=must_include,
                allow_missing=tuple(
                    item
                    for item in _list_or_empty(signature_raw.get("allow_missing"))
                    if isinstance(item, str)
                ),
            ),
            checks=_normalize_checks(expectations_raw.get("checks"), scenario_id),
        ),
        tags=_normalize_tags(source.get("tags"), tag_metadata),
        tag_metadata=tag_metadata,
        stabilization=stabilization,
        acceptance_thresholds=_normalize_thresholds(source.get("acceptance_thresholds")),
        source_refs=tuple(
            item
            for item in _list_or_empty(source.get("source_refs"))
            if isinstance(item, str) and item
        ),
        determinism=determinism if determinism in DETERMINISM_LEVELS else "strict",
        timeouts=_normalize_timeouts(source.get("timeouts")),
        normalization=_normalize_normalization(source.get("normalization")),
        metadata=_optional_json_object(source.get("metadata"), f"{scenario_id}.metadata"),
    )
    return replace(scenario, scenario_digest=compute_scenario_digest(scenario))


def _normalize_steps(value: object, scenario_id: str) -> tuple[ScenarioStep, ...]:
    if not isinstance(value, list) or not value:
        raise SchemaValidationError(f"{scenario_id} must declare at least one step.")

    steps: list[ScenarioStep] = []
    for index, entry in enumerate(value):
        path = f"{scenario_id}.steps[{index}]"
        step = _require_object(entry, path)
        kind = _require_str(step.get("kind"), f"{path}.kind")
        if kind not in STEP_KINDS:
            raise SchemaValidationError(f"{path} has unsupported kind '{kind}'.")

        step_id = step.get("id")
        normalized = ScenarioStep(
            kind=kind,  # type: ignore[arg-type]
            id=step_id if isinstance(step_id, str) else f"step_{index + 1}",
            metadata=_optional_json_object(step.get("metadata"), f"{path}.metadata"),
        )

        if kind == "user":
            normalized = replace(normalized, prompt=_require_str(step.get("prompt"), f"{path}.prompt"))
        elif kind == "tool":
            action = step.get("action")
            expect_auth = step.get("expect_auth")
            normalized = replace(
                normalized,
                tool=_require_str(step.get("tool"), f"{path}.tool"),
                action=action if isinstance(action, str) else "run",
                args=_optional_json_object(step.get("args"), f"{path}.args"),
                expect_auth=expect_auth if expect_auth in AUTH_EXPECTATIONS else None,
            )
        else:
            wait_ms = step.get("wait_ms")
            if not _is_finite_number(wait_ms) or wait_ms <= 0:  # type: ignore[operator]
                wait_ms = DEFAULT_WAIT_MS
            normalized = replace(normalized, wait_ms=wait_ms)  # type: ignore[arg-type]

        steps.append(normalized)
    return tuple(steps)


def _normalize_checks(value: object, scenario_id: str) -> tuple[CheckSpec, ...]:
    if not isinstance(value, list):
        return ()

    checks: list[CheckSpec] = []
    for index, entry in enumerate(value):
        check = _require_object(entry, f"checks[{index}]")
        raw_id = check.get("id")
        check_id = _require_str(
            f"CHECK_{index + 1}" if raw_id is None else raw_id, f"checks[{index}].id"
        )
        check_type = _require_str(check.get("type"), f"checks[{index}].type")
        raw_severity = check.get("severity")
        severity = _require_str(
            "medium" if raw_severity is None else raw_severity, f"checks[{index}].severity"
        )

        if check_type not in CHECK_TYPES:
            raise SchemaValidationError(
                f"checks[{index}] in {scenario_id} has unsupported type '{check_type}'."
            )
        if severity not in CHECK_SEVERITIES:
            raise SchemaValidationError(
                f"checks[{index}] in {scenario_id} has unsupported severity '{severity}'."
            )

        expected_raw = check.get("expected")
        expected: str | tuple[str, ...] | None
        if isinstance(expected_raw, str):
            expected = expected_raw
        elif isinstance(expected_raw, list):
            expected = tuple(item for item in expected_raw if isinstance(item, str))
        else:
            expected = None

        required = check.get("required")
        strict_order = check.get("strict_order")
        checks.append(
            CheckSpec(
                id=check_id,
                type=check_type,  # type: ignore[arg-type]
                severity=severity,
                required=required if isinstance(required, bool) else True,
                strict_order=strict_order if isinstance(strict_order, bool) else None,
                expected=expected,
                metadata=_optional_json_object(check.get("metadata"), f"checks[{index}].metadata"),
            )
        )
    return tuple(checks)


def _normalize_tag_metadata(value: object) -> TagMetadata | None:
    if not isinstance(value, Mapping):
        return None
    domain = value.get("domain")
    surface = value.get("surface")
    risk = value.get("risk")
    priority = value.get("priority")
    return TagMetadata(
        domain=domain.strip() if isinstance(domain, str) else None,
        surface=surface.strip() if isinstance(surface, str) else None,
        risk=risk if risk in RISK_LEVELS else None,
        priority=priority if priority in PRIORITY_LEVELS else None,
    )


def _normalize_tags(value: object, tag_metadata: TagMetadata | None) -> tuple[str, ...]:
    tags: list[str] = []
    for item in _list_or_empty(value):
        if isinstance(item, str):
            token = normalize_tag(item)
            if token:
                tags.append(token)

    if tag_metadata is not None:
        for prefix in ("domain", "surface", "risk", "priority"):
            field_value = getattr(tag_metadata, prefix)
            if field_value:
                token = normalize_tag(f"{prefix}:{field_value}")
                if token:
                    tags.append(token)

    return tuple(dict.fromkeys(tags))


def _normalize_stabilization(value: object) -> StabilizationControls | None:
    if not isinstance(value, Mapping):
        return None
    tree = value.get("resolver_fixture_tree")
    return StabilizationControls(
        fixture_seed=_non_negative_int(value.get("fixture_seed")),
        frozen_clock_delta_ms=_non_negative_int(value.get("frozen_clock_delta_ms")),
        wait_budget_ms=_non_negative_int(value.get("wait_budget_ms")),
        resolver_fixture_tree=tree.strip() if isinstance(tree, str) else None,
    )


def _normalize_thresholds(value: object) -> AcceptanceThresholds | None:
    if not isinstance(value, Mapping):
        return None
    return AcceptanceThresholds(
        **{name: _non_negative_int(value.get(name)) for name in THRESHOLD_FIELDS}
    )


def _normalize_timeouts(value: object) -> TimeoutConfig | None:
    if not isinstance(value, Mapping):
        return None
    return TimeoutConfig(
        run_timeout_ms=_positive_int(value.get("run_timeout_ms")),
        step_timeout_ms=_positive_int(value.get("step_timeout_ms")),
    )


def _normalize_normalization(value: object) -> NormalizationConfig | None:
    if not isinstance(value, Mapping):
        return None
    return NormalizationConfig(
        **{
            name: bool(value[name]) if value.get(name) is not None else None
            for name in NORMALIZATION_FLAGS
        }
    )


def _require_object(value: object, context: str) -> Mapping[str, object]:
    if not isinstance(value, Mapping):
        raise SchemaValidationError(f"{context} must be an object.")
    return value


def _require_str(value: object, context: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise SchemaValidationError(f"{context} must be a non-empty string.")
    return value.strip()


def _list_or_empty(value: object) -> Sequence[object]:
    return value if isinstance(value, list) else ()


def _optional_json_object(value: object, context: str) -> dict[str, JSONValue] | None:
    if not isinstance(value, Mapping):
        return None
    try:
        normalized = to_stable_value(value, path=context)
    except ValueError as exc:
        raise SchemaValidationError(str(exc)) from exc
    if not isinstance(normalized, dict):
        raise SchemaValidationError(f"{context} must be an object.")
    return normalized


def _is_finite_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _non_negative_int(value: object) -> int | None:
    if not _is_finite_number(value) or value < 0:  # type: ignore[operator]
        return None
    return math.floor(value)  # type: ignore[arg-type]


def _positive_int(value: object) -> int | None:
    if not _is_finite_number(value) or value <= 0:  # type: ignore[operator]
        return None
    return math.floor(value)  # type: ignore[arg-type]


def _dict_or_none(
    record: TagMetadata
    | StabilizationControls
    | AcceptanceThresholds
    | TimeoutConfig
    | NormalizationConfig
    | None,
) -> dict[str, JSONValue] | None:
    return record.to_dict() if record is not None else None


def _without_none(payload: Mapping[str, JSONValue | None]) -> dict[str, JSONValue]:
    return {key: value for key, value in payload.items() if value is not None}


__all__ = [
    "CHECK_TYPES",
    "SCENARIO_ID_PATTERN",
    "AcceptanceThresholds",
    "CheckSpec",
    "Err",
    "Expectations",
    "NormalizationConfig",
    "Ok",
    "RuntimeConfig",
    "Scenario",
    "ScenarioStep",
    "ScenarioSuite",
    "ScenarioValidationResult",
    "StabilizationControls",
    "SuccessSignature",
    "TagMetadata",
    "TimeoutConfig",
    "WorkspaceRef",
    "compute_scenario_digest",
    "normalize_scenario",
    "normalize_scenario_id",
    "normalize_tag",
    "parse_scenario_suite",
    "validate_scenario",
]

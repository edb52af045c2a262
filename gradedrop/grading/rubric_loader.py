# rubric_loader.py

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..errors import ConfigError
from ..logging_utils import log_function
from .criterion import Criterion
from .deadline import DEADLINE_FORMAT, DeadlinePolicy
from .rubric import Rubric

logger = logging.getLogger(__name__)

RUBRIC_KEYS = frozenset({
    "name", "desc", "total", "deadline", "final_deadline", "allow_late",
    "late_penalty", "late_penalty_per_day", "criteria",
})
CRITERION_KEYS = frozenset({"stub", "index", "desc", "worth", "messages", "hide"})


def _load_raw(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"Rubric file not found: {path}")
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Bad JSON in {path.name} at line {e.lineno}, column {e.colno}: {e.msg}") from e
    if path.suffix.lower() in {".yaml", ".yml"}:
        return _parse_yaml(text)
    raise ValueError(f"Unsupported rubric file extension: {path.suffix}")


def _parse_yaml(text: str) -> Any:
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        if mark is not None:
            raise ConfigError(f"Bad YAML at line {mark.line + 1}, column {mark.column + 1}") from e
        raise ConfigError(f"Bad YAML: {e}") from e


def _optional(raw: Dict[str, Any], key: str, kind: type, where: str) -> Any:
    value = raw.get(key)
    if value is None:
        return None
    # bool is an int subclass, don't let `worth: true` through
    if kind is int and isinstance(value, bool):
        raise ConfigError(f"{where}: '{key}' must be an integer, got {value!r}")
    if not isinstance(value, kind):
        raise ConfigError(f"{where}: '{key}' must be {kind.__name__}, got {value!r}")
    return value


def parse_timestamp(value: Any, key: str = "deadline") -> Optional[datetime]:
    """Parse a `YYYY-MM-DD HH:MM:SS` config value in the local offset.

    PyYAML already turns unquoted timestamps into (naive) datetimes, so
    both forms are accepted.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        raise ConfigError(f"'{key}' needs a time of day: expected {DEADLINE_FORMAT}, got {value}")
    elif isinstance(value, str):
        try:
            parsed = datetime.strptime(value.strip(), DEADLINE_FORMAT)
        except ValueError as e:
            raise ConfigError(f"Bad '{key}' format: expected YYYY-MM-DD HH:MM:SS, got {value!r}") from e
    else:
        raise ConfigError(f"Bad '{key}' value: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def _build_criterion(name: Any, raw: Any) -> Criterion:
    where = f"criterion '{name}'"
    if not isinstance(name, str):
        raise ConfigError(f"Criterion names must be strings, got {name!r}")
    if not isinstance(raw, dict):
        raise ConfigError(f"{where} must be a mapping")

    unknown = set(raw) - CRITERION_KEYS
    if unknown:
        logger.debug(f"Ignoring unknown keys in {where}: {sorted(unknown)}")

    worth = _optional(raw, "worth", int, where)
    if worth is None:
        raise ConfigError(f"{where} is missing required field 'worth'")

    messages = raw.get("messages")
    if messages is not None:
        if (not isinstance(messages, (list, tuple)) or len(messages) != 2
                or not all(isinstance(m, str) for m in messages)):
            raise ConfigError(f"{where}: 'messages' must be a list of two strings [pass, fail]")

    kwargs: Dict[str, Any] = {
        "name": name,
        "worth": worth,
        "stub": _optional(raw, "stub", str, where) or "",
        "index": _optional(raw, "index", int, where),
        "description": _optional(raw, "desc", str, where),
        "hidden": bool(_optional(raw, "hide", bool, where)),
    }
    if messages is not None:
        kwargs["messages"] = tuple(messages)
    return Criterion(**kwargs)


def build_rubric(raw: Any) -> Rubric:
    """Validate deserialized config data and build a Rubric from it."""
    if not isinstance(raw, dict):
        raise ConfigError("Rubric config must be a mapping")

    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ConfigError("Rubric is missing required field 'name'")

    unknown = set(raw) - RUBRIC_KEYS
    if unknown:
        logger.debug(f"Ignoring unknown rubric keys: {sorted(unknown)}")

    criteria = raw.get("criteria")
    if not isinstance(criteria, dict):
        raise ConfigError("Rubric is missing required mapping 'criteria'")

    allow_late = _optional(raw, "allow_late", bool, "rubric")
    policy = DeadlinePolicy(
        deadline=parse_timestamp(raw.get("deadline"), "deadline"),
        final_deadline=parse_timestamp(raw.get("final_deadline"), "final_deadline"),
        allow_late=True if allow_late is None else allow_late,
        late_penalty_flat=_optional(raw, "late_penalty", int, "rubric"),
        late_penalty_per_day=_optional(raw, "late_penalty_per_day", int, "rubric"),
    )

    rubric = Rubric(
        name=name,
        description=_optional(raw, "desc", str, "rubric"),
        declared_total=_optional(raw, "total", int, "rubric"),
        deadline_policy=policy,
    )
    for crit_name, crit_raw in criteria.items():
        rubric.add(_build_criterion(crit_name, crit_raw))

    _warn_inconsistencies(rubric)
    return rubric


def _warn_inconsistencies(rubric: Rubric) -> None:
    if rubric.declared_total is not None and rubric.declared_total != rubric.total_points():
        logger.warning(
            f"Rubric total does not match criteria total: "
            f"rubric = {rubric.declared_total}, criteria = {rubric.total_points()}"
        )
    if rubric.deadline_policy.double_penalty:
        logger.warning(
            "Both late_penalty and late_penalty_per_day are set; "
            "late submissions will be charged both"
        )
    policy = rubric.deadline_policy
    if policy.final_deadline is not None and policy.deadline is not None \
            and policy.final_deadline < policy.deadline:
        logger.warning("final_deadline is earlier than deadline")


def rubric_from_yaml(text: str) -> Rubric:
    return build_rubric(_parse_yaml(text))


@log_function
def load_rubric(path: str | Path) -> Rubric:
    return build_rubric(_load_raw(Path(path)))

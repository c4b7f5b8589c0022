"""Configuration loading from YAML + environment variables."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

from .core.rules import DAYS_OF_WEEK, parse_time_range
from .core.slots import DEFAULT_SLOT_GRANULARITY_MINUTES
from .errors import InvalidConfigError
from .models import AvailabilityRule, DateOverride, EventType, TimeRange


@dataclass
class OwnerConfig:
    name: str = "Owner"


@dataclass
class EngineConfig:
    timezone: str = "UTC"
    slot_granularity_minutes: int = DEFAULT_SLOT_GRANULARITY_MINUTES


@dataclass
class DatabaseConfig:
    path: str = "slotbook.db"


@dataclass
class MCPConfig:
    transport: str = "stdio"  # stdio | streamable-http


@dataclass
class Config:
    owner: OwnerConfig = field(default_factory=OwnerConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    mcp: MCPConfig = field(default_factory=MCPConfig)
    event_types: list[EventType] = field(default_factory=list)


def _resolve_env_vars(value: str) -> str:
    """Replace ${VAR} with environment variable values."""
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))
    return re.sub(r"\$\{(\w+)\}", replacer, value)


def _resolve(value):
    """Recursively resolve env vars in nested dicts and lists."""
    if isinstance(value, str):
        return _resolve_env_vars(value)
    if isinstance(value, dict):
        return {k: _resolve(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_resolve(v) for v in value]
    return value


def _section(raw: dict, name: str) -> dict:
    data = raw.get(name) or {}
    if not isinstance(data, dict):
        raise InvalidConfigError(f"'{name}' must be a mapping, got {type(data).__name__}")
    return data


def _day_of_week(value) -> int:
    """Accept 0..6 (Sunday = 0) or a day name."""
    if isinstance(value, str) and not value.isdigit():
        name = value.strip().lower()
        names = {day: i for i, day in enumerate(DAYS_OF_WEEK)}
        names.update({day[:3]: i for i, day in enumerate(DAYS_OF_WEEK)})
        if name not in names:
            raise InvalidConfigError(f"Unknown day of week: {value!r}")
        return names[name]
    return int(value)


def _times(data: dict) -> tuple[str, str]:
    """Start/end either as start_time/end_time or a 'hours: HH:MM-HH:MM' shorthand."""
    if "hours" in data:
        try:
            return parse_time_range(str(data["hours"]))
        except ValueError as e:
            raise InvalidConfigError(str(e)) from e
    return str(data.get("start_time", "")), str(data.get("end_time", ""))


def _rule_from_dict(data) -> AvailabilityRule:
    if not isinstance(data, dict):
        raise InvalidConfigError(f"Availability rule must be a mapping, got {data!r}")
    start_time, end_time = _times(data)
    return AvailabilityRule(
        day_of_week=_day_of_week(data.get("day_of_week", data.get("day", 0))),
        start_time=start_time,
        end_time=end_time,
    )


def _override_from_dict(data) -> DateOverride:
    if not isinstance(data, dict) or "date" not in data:
        raise InvalidConfigError(f"Date override needs a 'date': {data!r}")
    ranges = []
    for r in data.get("time_ranges") or []:
        if not isinstance(r, dict):
            raise InvalidConfigError(f"Time range must be a mapping, got {r!r}")
        start_time, end_time = _times(r)
        ranges.append(TimeRange(start_time=start_time, end_time=end_time))
    return DateOverride(date=str(data["date"]), time_ranges=ranges)


def event_type_from_dict(data: dict) -> EventType:
    """Build an EventType from a plain mapping. Missing fields take defaults."""
    if not isinstance(data, dict):
        raise InvalidConfigError(f"Event type must be a mapping, got {data!r}")
    return EventType(
        id=str(data.get("id", "")),
        name=data.get("name", ""),
        duration=data.get("duration", 30),
        description=data.get("description", ""),
        color=data.get("color", ""),
        buffer_before=data.get("buffer_before", 0),
        buffer_after=data.get("buffer_after", 0),
        minimum_scheduling_notice=data.get("minimum_scheduling_notice", 0),
        booking_horizon_days=data.get("booking_horizon_days"),
        availability=[_rule_from_dict(r) for r in data.get("availability") or []],
        unavailability=[_rule_from_dict(r) for r in data.get("unavailability") or []],
        unavailable_dates=[_override_from_dict(o) for o in data.get("unavailable_dates") or []],
        mode=data.get("mode", "online"),
        location=data.get("location", ""),
        conferencing_link=data.get("conferencing_link", ""),
    )


def load_config(config_path: str | Path, env_path: str | Path | None = None) -> Config:
    """Load config from YAML file with env var resolution."""
    config_path = Path(config_path).resolve()
    config_dir = config_path.parent

    if env_path:
        load_dotenv(env_path)
    else:
        # Look for .env next to config file first, then CWD
        env_beside_config = config_dir / ".env"
        if env_beside_config.exists():
            load_dotenv(env_beside_config)
        else:
            load_dotenv()

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise InvalidConfigError(f"Config root must be a mapping: {config_path}")
    raw = _resolve(raw)

    owner_data = _section(raw, "owner")
    owner = OwnerConfig(name=owner_data.get("name", "Owner"))

    engine_data = _section(raw, "engine")
    engine = EngineConfig(
        timezone=engine_data.get("timezone", "UTC"),
        slot_granularity_minutes=int(
            engine_data.get("slot_granularity_minutes", DEFAULT_SLOT_GRANULARITY_MINUTES)
        ),
    )

    db_data = _section(raw, "database")
    database = DatabaseConfig(
        path=os.environ.get("DATABASE_PATH") or db_data.get("path", "slotbook.db"),
    )

    mcp_data = _section(raw, "mcp")
    mcp = MCPConfig(transport=mcp_data.get("transport", "stdio"))

    event_types_data = raw.get("event_types") or []
    if not isinstance(event_types_data, list):
        raise InvalidConfigError("'event_types' must be a list")
    event_types = [event_type_from_dict(e) for e in event_types_data]

    return Config(
        owner=owner,
        engine=engine,
        database=database,
        mcp=mcp,
        event_types=event_types,
    )

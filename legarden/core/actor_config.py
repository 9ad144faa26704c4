from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..domain.errors import ConfigurationInvalid
from ..domain.models import Actor, Schedule, TimeWindow
from .timeutil import parse_hhmm

logger = logging.getLogger(__name__)


class WindowIn(BaseModel):
    start: str  # "HH:MM"
    end: str    # "HH:MM"

    @field_validator("start", "end")
    @classmethod
    def _check_hhmm(cls, v: str) -> str:
        parse_hhmm(v)
        return v

    @model_validator(mode="after")
    def _check_not_empty(self) -> "WindowIn":
        if parse_hhmm(self.start) == parse_hhmm(self.end):
            raise ValueError(f"window {self.start}-{self.end} is empty (start == end)")
        return self

    def to_window(self) -> TimeWindow:
        return TimeWindow(start=parse_hhmm(self.start), end=parse_hhmm(self.end))


class ActorIn(BaseModel):
    label: str = ""
    windows: List[WindowIn] = Field(min_length=1)
    output: dict[str, Any] = Field(default_factory=dict)


def build_actor(actor_id: str, raw: Any) -> Actor:
    """Validate one actor definition. Raises ConfigurationInvalid."""
    if not actor_id or not str(actor_id).strip():
        raise ConfigurationInvalid("empty actor identity")
    try:
        spec = ActorIn.model_validate(raw)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'actor'}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationInvalid(errors, actor_id) from e

    return Actor(
        actor_id=actor_id,
        schedule=Schedule(windows=tuple(w.to_window() for w in spec.windows)),
        label=spec.label,
        output=dict(spec.output),
    )


def parse_actors(data: Any) -> tuple[list[Actor], dict[str, str]]:
    """Build actors from a decoded configuration document.

    Returns (actors in document order, {actor_id: reason} for rejected ones).
    A malformed document as a whole raises ConfigurationInvalid.
    """
    if isinstance(data, dict) and "configuration" in data:
        data = data["configuration"]
    if not isinstance(data, dict) or not isinstance(data.get("actors"), dict):
        raise ConfigurationInvalid("configuration must contain an 'actors' mapping")

    actors: list[Actor] = []
    rejected: dict[str, str] = {}
    for actor_id, raw in data["actors"].items():
        try:
            actors.append(build_actor(actor_id, raw))
        except ConfigurationInvalid as e:
            rejected[actor_id] = e.reason
            logger.error("Actor excluded from scheduling: %s", e)

    logger.info("Loaded %d actor(s), rejected %d", len(actors), len(rejected))
    return actors, rejected


def load_actors(path: str | Path) -> tuple[list[Actor], dict[str, str]]:
    p = Path(path)
    try:
        data = json.loads(p.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationInvalid(f"cannot read actor configuration {p}: {e}") from e
    return parse_actors(data)

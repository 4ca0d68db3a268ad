from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .points import (
    DEFAULT_DIVING_PLACES,
    DEFAULT_INDIVIDUAL_PLACES,
    DEFAULT_RELAY_PLACES,
    HIGH_SCHOOL_DUAL,
    PlaceCounts,
    PointSystem,
    PointSystems,
)

DIVING_EVENT_NAME = "Diving"
RELAY_MARKER = "Relay"

MAX_TEAM_NAME = 50
MAX_EVENT_NAME = 100
MAX_TEMPLATE_NAME = 50

_TAG_PATTERN = re.compile(r"<[^>]*>")


class EventCategory(str, Enum):
    INDIVIDUAL = "individual"
    RELAY = "relay"
    DIVING = "diving"


class Gender(str, Enum):
    GIRLS = "girls"
    BOYS = "boys"

    @classmethod
    def parse(cls, value: Any) -> Optional["Gender"]:
        if isinstance(value, Gender):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


def classify_event_name(name: str | None) -> EventCategory:
    """Derive a category from a legacy event name.

    Diving requires the exact name; relays only need the marker somewhere
    in the name ("200 Medley Relay").
    """

    if name == DIVING_EVENT_NAME:
        return EventCategory.DIVING
    if name and RELAY_MARKER in name:
        return EventCategory.RELAY
    return EventCategory.INDIVIDUAL


@dataclass(frozen=True)
class Result:
    """Teams recorded at one place. More than one team id is a tie."""

    place: int
    team_ids: tuple = ()

    @property
    def is_scorable(self) -> bool:
        return bool(self.place) and self.place >= 1 and len(self.team_ids) > 0

    @property
    def is_tie(self) -> bool:
        return len(self.team_ids) > 1

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Result":
        try:
            place = int(raw.get("place") or 0)
        except (TypeError, ValueError):
            place = 0
        team_ids = raw.get("teamIds")
        if not isinstance(team_ids, (list, tuple)):
            legacy = raw.get("teamId")
            team_ids = [legacy] if legacy not in (None, "") else []
        return cls(place=place, team_ids=tuple(str(team_id) for team_id in team_ids if team_id not in (None, "")))

    def to_dict(self) -> Dict[str, Any]:
        return {"place": self.place, "teamIds": list(self.team_ids)}


@dataclass(frozen=True)
class Event:
    id: str
    name: str
    gender: Optional[Gender]
    category: EventCategory
    results: tuple = ()

    @classmethod
    def create(cls, id: str, name: str, gender: Any, results=()) -> "Event":
        """Create an event, fixing its category from the name once."""

        return cls(
            id=str(id),
            name=name,
            gender=Gender.parse(gender),
            category=classify_event_name(name),
            results=tuple(results),
        )

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Event":
        name = str(raw.get("name") or "")
        category_raw = raw.get("category")
        try:
            category = EventCategory(category_raw) if category_raw else classify_event_name(name)
        except ValueError:
            category = classify_event_name(name)
        results = raw.get("results")
        if not isinstance(results, list):
            results = []
        return cls(
            id=str(raw.get("id") or ""),
            name=name,
            gender=Gender.parse(raw.get("gender")),
            category=category,
            results=tuple(Result.from_dict(item) for item in results if isinstance(item, dict)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "gender": self.gender.value if self.gender else None,
            "category": self.category.value,
            "results": [result.to_dict() for result in self.results],
        }


def is_diving(event: Event | None) -> bool:
    return event is not None and event.category is EventCategory.DIVING


def is_relay(event: Event | None) -> bool:
    return event is not None and event.category is EventCategory.RELAY


@dataclass(frozen=True)
class Team:
    id: str
    name: str

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Team":
        return cls(id=str(raw.get("id") or ""), name=str(raw.get("name") or ""))

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class ScoringConfig:
    """Settings threaded into every scoring call.

    ``heat_lock_enabled`` and ``a_relay_only`` are display rules; they are
    kept here so templates round-trip but never change a score. Stored
    settings without a team place limit flag load with the limit on.
    """

    point_systems: PointSystems = HIGH_SCHOOL_DUAL
    place_counts: PlaceCounts = field(default_factory=PlaceCounts)
    team_place_limit_enabled: bool = False
    heat_lock_enabled: bool = False
    a_relay_only: bool = False

    @classmethod
    def from_dict(cls, raw: Dict[str, Any] | None) -> "ScoringConfig":
        raw = raw or {}
        default = cls()

        def _flag(key: str, fallback: bool) -> bool:
            value = raw.get(key)
            return value if isinstance(value, bool) else fallback

        def _system(key: str, fallback: PointSystem) -> PointSystem:
            value = raw.get(key)
            return PointSystem.from_mapping(value) if isinstance(value, dict) else fallback

        return cls(
            point_systems=PointSystems(
                individual=_system("individualPointSystem", default.point_systems.individual),
                relay=_system("relayPointSystem", default.point_systems.relay),
                diving=_system("divingPointSystem", default.point_systems.diving),
            ),
            place_counts=PlaceCounts.clamped(
                raw.get("numIndividualPlaces", DEFAULT_INDIVIDUAL_PLACES),
                raw.get("numRelayPlaces", DEFAULT_RELAY_PLACES),
                raw.get("numDivingPlaces", DEFAULT_DIVING_PLACES),
            ),
            team_place_limit_enabled=_flag("teamPlaceLimitEnabled", True),
            heat_lock_enabled=_flag("heatLockEnabled", False),
            a_relay_only=_flag("aRelayOnly", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "numIndividualPlaces": self.place_counts.individual,
            "numRelayPlaces": self.place_counts.relay,
            "numDivingPlaces": self.place_counts.diving,
            "individualPointSystem": self.point_systems.individual.to_dict(),
            "relayPointSystem": self.point_systems.relay.to_dict(),
            "divingPointSystem": self.point_systems.diving.to_dict(),
            "teamPlaceLimitEnabled": self.team_place_limit_enabled,
            "heatLockEnabled": self.heat_lock_enabled,
            "aRelayOnly": self.a_relay_only,
        }


@dataclass
class Meet:
    teams: List[Team] = field(default_factory=list)
    events: List[Event] = field(default_factory=list)
    config: ScoringConfig = field(default_factory=ScoringConfig)
    active_template: Optional[str] = None


# ----------------------------------------------------------------------
# Name validation


def _validate_text(name: Any, label: str, limit: int, allow_tags: bool = False) -> str:
    trimmed = str(name or "").strip()
    if not trimmed:
        raise ValueError(f"{label} name cannot be empty")
    if len(trimmed) > limit:
        raise ValueError(f"{label} name must be {limit} characters or less")
    if not allow_tags and _TAG_PATTERN.search(trimmed):
        raise ValueError(f"{label} name contains invalid characters")
    return trimmed


def validate_team_name(name: Any) -> str:
    return _validate_text(name, "Team", MAX_TEAM_NAME)


def validate_event_name(name: Any, category: EventCategory | None = None) -> str:
    if category is EventCategory.DIVING:
        return DIVING_EVENT_NAME
    return _validate_text(name, "Event", MAX_EVENT_NAME)


def validate_template_name(name: Any) -> str:
    return _validate_text(name, "Template", MAX_TEMPLATE_NAME, allow_tags=True)


def validate_roster(teams: List[Team]) -> List[Team]:
    """Validate every team name and reject case-insensitive duplicates."""

    seen: Dict[str, str] = {}
    cleaned: List[Team] = []
    for team in teams:
        if not team.id:
            raise ValueError("Team id is required")
        name = validate_team_name(team.name)
        key = name.lower()
        if key in seen:
            raise ValueError(f"A team named '{name}' already exists.")
        seen[key] = team.id
        cleaned.append(Team(id=team.id, name=name))
    return cleaned

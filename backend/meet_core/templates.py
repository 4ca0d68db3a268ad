"""Built-in meet templates and helpers for user-saved templates."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .models import (
    DIVING_EVENT_NAME,
    Event,
    Gender,
    Meet,
    ScoringConfig,
    Team,
    validate_template_name,
)
from .points import (
    CHAMPIONSHIP_INDIVIDUAL,
    CONFERENCE_RELAY,
    HIGH_SCHOOL_DUAL,
    SECTIONALS_RELAY,
    USA_SWIMMING_LANES,
    PlaceCounts,
    PointSystem,
    PointSystems,
    usa_swimming,
)

MAX_SAVED_TEMPLATES = 20

IdFactory = Callable[[], str]

# Order swum at a standard high school / championship meet. Diving sits
# between the 50 Freestyle and the 100 Butterfly.
STANDARD_EVENT_ORDER: Tuple[str, ...] = (
    "200 Medley Relay",
    "200 Freestyle",
    "200 IM",
    "50 Freestyle",
    DIVING_EVENT_NAME,
    "100 Butterfly",
    "100 Freestyle",
    "500 Freestyle",
    "200 Freestyle Relay",
    "100 Backstroke",
    "100 Breaststroke",
    "400 Freestyle Relay",
)


def standard_events(include_diving: bool = True) -> List[Tuple[str, Gender]]:
    """Event names paired with genders, girls swimming first."""

    events = []
    for name in STANDARD_EVENT_ORDER:
        if name == DIVING_EVENT_NAME and not include_diving:
            continue
        events.append((name, Gender.GIRLS))
        events.append((name, Gender.BOYS))
    return events


@dataclass(frozen=True)
class MeetTemplate:
    key: str
    label: str
    description: str
    team_names: Tuple[str, ...]
    events: Tuple[Tuple[str, Gender], ...]
    config: ScoringConfig

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "description": self.description,
            "teams": [{"name": name} for name in self.team_names],
            "events": [{"name": name, "gender": gender.value} for name, gender in self.events],
            "settings": self.config.to_dict(),
        }


def _numbered_teams(count: int) -> Tuple[str, ...]:
    return tuple(f"Team {index}" for index in range(1, count + 1))


def _high_school() -> MeetTemplate:
    return MeetTemplate(
        key="high_school",
        label="HS Dual Meet",
        description="2 teams · 5 places",
        team_names=("Home Team", "Away Team"),
        events=tuple(standard_events()),
        config=ScoringConfig(
            point_systems=HIGH_SCHOOL_DUAL,
            place_counts=PlaceCounts(individual=5, relay=3, diving=3),
            team_place_limit_enabled=True,
        ),
    )


def _conference() -> MeetTemplate:
    championship = PointSystem.from_list(CHAMPIONSHIP_INDIVIDUAL)
    return MeetTemplate(
        key="conference",
        label="Conference",
        description="8 teams · 16 places",
        team_names=_numbered_teams(8),
        events=tuple(standard_events()),
        config=ScoringConfig(
            point_systems=PointSystems(
                individual=championship,
                relay=PointSystem.from_list(CONFERENCE_RELAY),
                diving=championship,
            ),
            place_counts=PlaceCounts(individual=16, relay=8, diving=16),
            heat_lock_enabled=True,
            a_relay_only=True,
        ),
    )


def _sectionals() -> MeetTemplate:
    championship = PointSystem.from_list(CHAMPIONSHIP_INDIVIDUAL)
    team_names = _numbered_teams(10)
    return MeetTemplate(
        key="sectionals",
        label="Sectionals",
        description="10 teams · 16 places",
        team_names=team_names,
        events=tuple(standard_events()),
        config=ScoringConfig(
            point_systems=PointSystems(
                individual=championship,
                relay=PointSystem.from_list(SECTIONALS_RELAY),
                diving=championship,
            ),
            # A-relay only: one relay per team, so every team's relay can place.
            place_counts=PlaceCounts(individual=16, relay=len(team_names), diving=16),
            heat_lock_enabled=True,
            a_relay_only=True,
        ),
    )


def _usa_swimming(lanes: int) -> MeetTemplate:
    return MeetTemplate(
        key=f"usa_swimming_{lanes}",
        label=f"USA Swimming {lanes}-Lane",
        description=f"{lanes} teams · {lanes} places",
        team_names=_numbered_teams(lanes),
        events=tuple(standard_events(include_diving=False)),
        config=ScoringConfig(
            point_systems=usa_swimming(lanes),
            place_counts=PlaceCounts(individual=lanes, relay=lanes, diving=lanes),
        ),
    )


def builtin_templates() -> Dict[str, MeetTemplate]:
    templates = [_high_school(), _conference(), _sectionals()]
    templates.extend(_usa_swimming(lanes) for lanes in USA_SWIMMING_LANES)
    return {template.key: template for template in templates}


def _new_id() -> str:
    return uuid.uuid4().hex


def _instantiate(
    team_names: Sequence[str],
    events: Sequence[Tuple[str, Gender]],
    config: ScoringConfig,
    active_template: Optional[str],
    id_factory: IdFactory,
) -> Meet:
    return Meet(
        teams=[Team(id=id_factory(), name=name) for name in team_names],
        events=[Event.create(id_factory(), name, gender) for name, gender in events],
        config=config,
        active_template=active_template,
    )


def build_meet(key: str, id_factory: IdFactory = _new_id) -> Meet:
    """Fresh meet for a built-in template. Unknown keys raise ``KeyError``."""

    template = builtin_templates()[key]
    return _instantiate(template.team_names, template.events, template.config, template.key, id_factory)


def default_meet() -> Meet:
    """The high school dual meet with the stable ids used on first launch."""

    template = builtin_templates()["high_school"]
    return Meet(
        teams=[Team(id=str(index), name=name) for index, name in enumerate(template.team_names, start=1)],
        events=[
            Event.create(str(index), name, gender) for index, (name, gender) in enumerate(template.events, start=1)
        ],
        config=template.config,
        active_template=template.key,
    )


# ----------------------------------------------------------------------
# User-saved templates


@dataclass
class SavedTemplate:
    id: str
    name: str
    config: ScoringConfig
    events: List[Tuple[str, Gender]] = field(default_factory=list)
    team_names: List[str] = field(default_factory=list)

    @classmethod
    def from_meet(cls, name: str, meet: Meet, id_factory: IdFactory = _new_id) -> "SavedTemplate":
        return cls(
            id=id_factory(),
            name=validate_template_name(name),
            config=meet.config,
            events=[(event.name, event.gender) for event in meet.events if event.name and event.gender],
            team_names=[team.name for team in meet.teams if team.name],
        )

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "SavedTemplate":
        events = []
        for item in raw.get("events") or []:
            if not isinstance(item, dict) or not item.get("name"):
                continue
            gender = Gender.parse(item.get("gender"))
            if gender is not None:
                events.append((str(item["name"]), gender))
        teams = [str(item["name"]) for item in raw.get("teams") or [] if isinstance(item, dict) and item.get("name")]
        return cls(
            id=str(raw.get("id") or ""),
            name=str(raw.get("name") or ""),
            config=ScoringConfig.from_dict(raw),
            events=events,
            team_names=teams,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = {"id": self.id, "name": self.name}
        payload.update(self.config.to_dict())
        payload["events"] = [{"name": name, "gender": gender.value} for name, gender in self.events]
        payload["teams"] = [{"name": name} for name in self.team_names]
        return payload

    def build_meet(self, id_factory: IdFactory = _new_id) -> Meet:
        return _instantiate(self.team_names, self.events, self.config, f"custom_{self.id}", id_factory)


def add_saved_template(existing: Sequence[SavedTemplate], template: SavedTemplate) -> List[SavedTemplate]:
    """Append ``template`` after checking the name is free and the cap is not hit."""

    lowered = template.name.lower()
    if any(item.name.lower() == lowered for item in existing):
        raise ValueError("A template with this name already exists.")
    if len(existing) >= MAX_SAVED_TEMPLATES:
        raise ValueError(f"Maximum of {MAX_SAVED_TEMPLATES} templates allowed.")
    return [*existing, template]

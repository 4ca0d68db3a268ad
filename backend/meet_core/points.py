from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping

logger = logging.getLogger(__name__)

MAX_PLACES = 20

DEFAULT_INDIVIDUAL_PLACES = 5
DEFAULT_RELAY_PLACES = 3
DEFAULT_DIVING_PLACES = 3


@dataclass(frozen=True)
class PointSystem:
    """Place to points table for one event category.

    Lookups never fail: any place without a listed value scores 0. Zero
    entries are not stored, so two tables that score alike compare equal.
    """

    values: Dict[int, int] = field(default_factory=dict)

    def __getitem__(self, place: int) -> int:
        return self.values.get(place, 0)

    def __len__(self) -> int:
        return len(self.values)

    def __bool__(self) -> bool:
        return any(self.values.values())

    @classmethod
    def from_mapping(cls, raw: Mapping[Any, Any] | None) -> "PointSystem":
        """Build from a sparse mapping, tolerating JSON string keys."""

        if not raw:
            return cls()
        values: Dict[int, int] = {}
        for key, value in raw.items():
            try:
                place = int(key)
                points = int(value)
            except (TypeError, ValueError):
                logger.debug("Ignoring point system entry %r=%r", key, value)
                continue
            if 1 <= place <= MAX_PLACES and points:
                values[place] = points
        return cls(values=values)

    @classmethod
    def from_list(cls, points: Iterable[int]) -> "PointSystem":
        return cls(values={index + 1: int(value) for index, value in enumerate(points) if index < MAX_PLACES and value})

    @classmethod
    def coerce(cls, raw: Any) -> "PointSystem":
        if isinstance(raw, PointSystem):
            return raw
        if isinstance(raw, Mapping):
            return cls.from_mapping(raw)
        return cls()

    def to_dict(self, full: bool = True) -> Dict[str, int]:
        if full:
            return {str(place): self[place] for place in range(1, MAX_PLACES + 1)}
        return {str(place): points for place, points in sorted(self.values.items())}


def clamp_place_count(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(1, min(MAX_PLACES, number))


@dataclass(frozen=True)
class PointSystems:
    individual: PointSystem = field(default_factory=PointSystem)
    relay: PointSystem = field(default_factory=PointSystem)
    diving: PointSystem = field(default_factory=PointSystem)

    def for_category(self, category) -> PointSystem:
        return getattr(self, category.value)


@dataclass(frozen=True)
class PlaceCounts:
    individual: int = DEFAULT_INDIVIDUAL_PLACES
    relay: int = DEFAULT_RELAY_PLACES
    diving: int = DEFAULT_DIVING_PLACES

    def for_category(self, category) -> int:
        return getattr(self, category.value)

    @classmethod
    def clamped(cls, individual: Any, relay: Any, diving: Any) -> "PlaceCounts":
        return cls(
            individual=clamp_place_count(individual, DEFAULT_INDIVIDUAL_PLACES),
            relay=clamp_place_count(relay, DEFAULT_RELAY_PLACES),
            diving=clamp_place_count(diving, DEFAULT_DIVING_PLACES),
        )


# ----------------------------------------------------------------------
# Presets

HIGH_SCHOOL_DUAL = PointSystems(
    individual=PointSystem.from_list([6, 4, 3, 2, 1]),
    relay=PointSystem.from_list([8, 4, 2]),
    diving=PointSystem.from_list([5, 3, 1]),
)

CHAMPIONSHIP_INDIVIDUAL: List[int] = [20, 17, 16, 15, 14, 13, 12, 11, 9, 7, 6, 5, 4, 3, 2, 1]
CONFERENCE_RELAY: List[int] = [40, 34, 32, 30, 28, 26, 24, 22]
# Sectionals relays score all 20 places so up to 20 teams can enter one relay each.
SECTIONALS_RELAY: List[int] = [40, 34, 32, 30, 28, 26, 24, 22, 18, 14, 12, 10, 8, 6, 4, 2, 1, 1, 1, 1]

USA_SWIMMING_LANES = range(4, 11)


def usa_swimming_individual(lanes: int) -> List[int]:
    """USA Swimming individual points for a pool with ``lanes`` lanes.

    First place is worth ``lanes + 1``; the rest count down from
    ``lanes - 1`` to 1 (4 lanes -> 5, 3, 2, 1).
    """

    if lanes not in USA_SWIMMING_LANES:
        raise ValueError(f"USA Swimming scoring is defined for 4-10 lanes, not {lanes}")
    return [lanes + 1] + list(range(lanes - 1, 0, -1))


def usa_swimming(lanes: int) -> PointSystems:
    individual = usa_swimming_individual(lanes)
    return PointSystems(
        individual=PointSystem.from_list(individual),
        relay=PointSystem.from_list([points * 2 for points in individual]),
        diving=PointSystem.from_list(individual),
    )


def preset_catalogue() -> Dict[str, Any]:
    """Serialisable view of the built-in point systems."""

    return {
        "highSchoolDual": {
            "individual": HIGH_SCHOOL_DUAL.individual.to_dict(full=False),
            "relay": HIGH_SCHOOL_DUAL.relay.to_dict(full=False),
            "diving": HIGH_SCHOOL_DUAL.diving.to_dict(full=False),
        },
        "usaSwimming": {
            str(lanes): {
                "individual": usa_swimming(lanes).individual.to_dict(full=False),
                "relay": usa_swimming(lanes).relay.to_dict(full=False),
            }
            for lanes in USA_SWIMMING_LANES
        },
    }

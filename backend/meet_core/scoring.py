from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from .models import Event, EventCategory, Gender, Meet, Result, Team
from .points import PlaceCounts, PointSystem, PointSystems

logger = logging.getLogger(__name__)

SCORING_MODES = ("combined", "girls", "boys")


@dataclass(frozen=True)
class TeamScore:
    score: float = 0.0
    girls_score: float = 0.0
    boys_score: float = 0.0

    def for_mode(self, mode: str) -> float:
        if mode == "girls":
            return self.girls_score
        if mode == "boys":
            return self.boys_score
        return self.score

    def to_dict(self) -> Dict[str, float]:
        return {"score": self.score, "girlsScore": self.girls_score, "boysScore": self.boys_score}


@dataclass
class ValidationReport:
    valid: bool = True
    errors: List[str] = field(default_factory=list)


def _round_points(value: float) -> float:
    # Half-up on the fractional part of the scaled value: 0.125 -> 0.13.
    scaled = value * 100
    whole = math.floor(scaled)
    if scaled - whole >= 0.5:
        whole += 1
    return whole / 100


def tie_points(start_place: int, num_tied: int, point_system: PointSystem | None, max_place: int) -> float:
    """Points each team receives when ``num_tied`` teams share ``start_place``.

    The tied teams pool the points of every place they occupy and split
    them evenly. Places past ``max_place`` contribute nothing, so a 3-way tie
    for 4th in a 5 place event shares only the 4th and 5th place points.

    Example with points 6, 4, 3, 2, 1: a 3-way tie for 1st pools
    6 + 4 + 3 = 13 and each team gets 13 / 3.
    """

    if point_system is None or num_tied <= 0 or start_place > max_place:
        return 0
    system = PointSystem.coerce(point_system)
    if not system:
        return 0

    total = 0
    for offset in range(num_tied):
        place = start_place + offset
        if place > max_place:
            break
        total += system[place]
    return total / num_tied


def _results_by_place(results: Iterable[Result]) -> Dict[int, Sequence[str]]:
    by_place: Dict[int, Sequence[str]] = {}
    for result in results:
        if not isinstance(result, Result) or not result.is_scorable:
            logger.debug("Skipping unscorable result %r", result)
            continue
        by_place[result.place] = result.team_ids
    return by_place


def calculate_scores(
    teams: Sequence[Team] | None,
    events: Sequence[Event] | None,
    point_systems: PointSystems,
    place_counts: PlaceCounts,
    team_place_limit_enabled: bool = False,
) -> Dict[str, TeamScore]:
    """Rebuild every team's totals from the recorded results.

    Each event walks its places from 1 up to the category's place count.
    A place with ``n`` teams recorded consumes ``n`` places; the tied teams
    split the pooled points. With the team place limit switched on, a team
    may score at most ``max(1, places - 1)`` places in a single relay; once a
    team reaches that cap it is left out of any later place's award and the
    remaining tied teams split the points among themselves. The limit never
    applies to individual or diving events.

    Totals are rounded to two decimals once, after all events are summed.
    Result ids that are not in ``teams`` are accepted and dropped from the
    output.
    """

    if not isinstance(teams, (list, tuple)) or not isinstance(events, (list, tuple)):
        return {}

    scores: Dict[str, float] = defaultdict(float)
    girls_scores: Dict[str, float] = defaultdict(float)
    boys_scores: Dict[str, float] = defaultdict(float)

    for event in events:
        if not isinstance(event, Event) or not event.results:
            continue

        point_system = point_systems.for_category(event.category)
        max_place = place_counts.for_category(event.category)
        apply_limit = bool(team_place_limit_enabled) and event.category is EventCategory.RELAY
        max_team_places = max(1, max_place - 1) if apply_limit else max_place

        places_scored: Dict[str, int] = defaultdict(int)
        by_place = _results_by_place(event.results)

        current_place = 1
        while current_place <= max_place:
            teams_at_place = by_place.get(current_place)
            if not teams_at_place:
                current_place += 1
                continue

            num_tied = len(teams_at_place)
            if apply_limit:
                eligible = [team_id for team_id in teams_at_place if places_scored[team_id] < max_team_places]
            else:
                eligible = list(teams_at_place)

            if eligible:
                points = tie_points(current_place, len(eligible), point_system, max_place)
                for team_id in eligible:
                    scores[team_id] += points
                    if event.gender is Gender.GIRLS:
                        girls_scores[team_id] += points
                    elif event.gender is Gender.BOYS:
                        boys_scores[team_id] += points
                    places_scored[team_id] += 1

            current_place += num_tied

    totals: Dict[str, TeamScore] = {}
    for team in teams:
        if not isinstance(team, Team) or not team.id:
            continue
        totals[team.id] = TeamScore(
            score=_round_points(scores.get(team.id, 0.0)),
            girls_score=_round_points(girls_scores.get(team.id, 0.0)),
            boys_score=_round_points(boys_scores.get(team.id, 0.0)),
        )
    return totals


def score_meet(meet: Meet) -> Dict[str, TeamScore]:
    config = meet.config
    return calculate_scores(
        meet.teams,
        meet.events,
        config.point_systems,
        config.place_counts,
        config.team_place_limit_enabled,
    )


def _sorted_scorable(results: Iterable[Result] | None) -> List[Result]:
    return sorted(
        (result for result in results or () if isinstance(result, Result) and result.is_scorable),
        key=lambda result: result.place,
    )


def consumed_place_count(results: Sequence[Result] | None, up_to_place: int) -> int:
    """Number of placements recorded at or before ``up_to_place``.

    A tie counts once per tied team, so a 3-way tie for 1st consumes 3.
    """

    if not isinstance(results, (list, tuple)):
        return 0
    consumed = 0
    for result in _sorted_scorable(results):
        if result.place > up_to_place:
            break
        consumed += len(result.team_ids)
    return consumed


def consumed_places(results: Sequence[Result] | None, num_places: int) -> Set[int]:
    """Places that belong to an earlier tie and cannot take a new result."""

    consumed: Set[int] = set()
    for result in _sorted_scorable(results):
        for offset in range(1, len(result.team_ids)):
            place = result.place + offset
            if place > num_places:
                break
            consumed.add(place)
    return consumed


def validate_results(results: Sequence[Result] | None) -> ValidationReport:
    """Report results that land inside an earlier tie's span."""

    if not isinstance(results, (list, tuple)):
        return ValidationReport()

    errors: List[str] = []
    next_valid_place = 1
    for result in _sorted_scorable(results):
        if result.place < next_valid_place:
            errors.append(
                f"Place {result.place} conflicts with earlier tie (next valid place is {next_valid_place})"
            )
        else:
            next_valid_place = result.place + len(result.team_ids)
    return ValidationReport(valid=not errors, errors=errors)


def standings(
    teams: Sequence[Team],
    scores: Dict[str, TeamScore],
    mode: str = "combined",
) -> List[Dict[str, Any]]:
    """Teams ordered by the selected total, highest first."""

    if mode not in SCORING_MODES:
        raise ValueError(f"Unknown scoring mode '{mode}'")

    empty = TeamScore()
    rows = []
    for team in teams:
        team_score: Optional[TeamScore] = scores.get(team.id)
        rows.append((team, team_score or empty))
    rows.sort(key=lambda row: row[1].for_mode(mode), reverse=True)

    return [
        {"rank": index + 1, "team": team, "points": team_score.for_mode(mode), "totals": team_score}
        for index, (team, team_score) in enumerate(rows)
    ]

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List

from .models import Event, EventCategory, Result, ScoringConfig

B_FINALS_PLACES = range(9, 17)
A_FINALS_PLACES = range(1, 9)


class TeamPlaceLimitError(ValueError):
    """Raised when a relay place would exceed a team's place allowance."""

    def __init__(self, max_team_places: int, relay_places: int) -> None:
        super().__init__(
            f"Team limit reached: A team can only occupy {max_team_places} of {relay_places} relay places."
        )
        self.max_team_places = max_team_places
        self.relay_places = relay_places


def _team_places_elsewhere(event: Event, team_id: str, place: int) -> int:
    return sum(1 for result in event.results if result.place != place and team_id in result.team_ids)


def update_event_result(
    event: Event,
    place: int,
    team_id: str,
    checked: bool,
    config: ScoringConfig,
) -> Event:
    """Return a copy of ``event`` with ``team_id`` added to or removed from ``place``.

    Adding a second team at a place turns it into a tie. Removing the last
    team drops the place entirely.
    """

    if not place or place < 1:
        raise ValueError("Place must be 1 or greater")
    team_id = str(team_id or "")
    if not team_id:
        raise ValueError("Team id is required")

    if checked and config.team_place_limit_enabled and event.category is EventCategory.RELAY:
        relay_places = config.place_counts.relay
        max_team_places = max(1, relay_places - 1)
        if _team_places_elsewhere(event, team_id, place) >= max_team_places:
            raise TeamPlaceLimitError(max_team_places, relay_places)

    results: List[Result] = list(event.results)
    index = next((i for i, result in enumerate(results) if result.place == place), None)

    if index is None:
        if checked:
            results.append(Result(place=place, team_ids=(team_id,)))
        return replace(event, results=tuple(results))

    team_ids = list(results[index].team_ids)
    if checked and team_id not in team_ids:
        team_ids.append(team_id)
    elif not checked and team_id in team_ids:
        team_ids.remove(team_id)

    if team_ids:
        results[index] = Result(place=place, team_ids=tuple(team_ids))
    else:
        del results[index]
    return replace(event, results=tuple(results))


def replace_event_results(event: Event, results: Iterable[Result]) -> Event:
    return replace(event, results=tuple(result for result in results if result.is_scorable))


def needs_b_finals_reminder(event: Event, place: int, config: ScoringConfig) -> bool:
    """True when an A-final place was just scored but the B final is still empty.

    Only meaningful with heat lock on and more than 10 individual places.
    Diving shares the individual heat layout; relays never get a B final.
    """

    if not config.heat_lock_enabled or event.category is EventCategory.RELAY:
        return False
    if config.place_counts.individual <= 10 or place not in A_FINALS_PLACES:
        return False
    return not any(result.place in B_FINALS_PLACES and result.team_ids for result in event.results)

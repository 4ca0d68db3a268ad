"""Swim meet scoring domain: teams, events, results and the scoring engine."""

from .models import Event, EventCategory, Gender, Meet, Result, ScoringConfig, Team
from .points import PlaceCounts, PointSystem, PointSystems
from .scoring import TeamScore, ValidationReport, calculate_scores, tie_points, validate_results
from .loader import DataStore

__all__ = [
    "DataStore",
    "Event",
    "EventCategory",
    "Gender",
    "Meet",
    "PlaceCounts",
    "PointSystem",
    "PointSystems",
    "Result",
    "ScoringConfig",
    "Team",
    "TeamScore",
    "ValidationReport",
    "calculate_scores",
    "tie_points",
    "validate_results",
]

from __future__ import annotations

import logging
from dataclasses import replace
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from meet_core import DataStore, Event, EventCategory, Gender, Meet, Result, ScoringConfig, Team
from meet_core.models import validate_event_name, validate_roster
from meet_core.points import MAX_PLACES, preset_catalogue
from meet_core.results import TeamPlaceLimitError, needs_b_finals_reminder, update_event_result
from meet_core.scoring import (
    SCORING_MODES,
    TeamScore,
    consumed_place_count,
    consumed_places,
    score_meet,
    standings,
    validate_results,
)
from meet_core.templates import build_meet, builtin_templates

app = FastAPI(title="Swim Meet Score API", version="4.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger(__name__)


class ResultModel(BaseModel):
    place: Optional[int] = None
    team_ids: Optional[List[str]] = Field(default=None, alias="teamIds")
    team_id: Optional[str] = Field(default=None, alias="teamId", description="Legacy single-team field")

    model_config = ConfigDict(populate_by_name=True)

    def to_core(self) -> Result:
        return Result.from_dict(self.model_dump(by_alias=True, exclude_none=True))


class TeamModel(BaseModel):
    id: str
    name: str = ""


class EventModel(BaseModel):
    id: str
    name: str
    gender: Optional[str] = None
    category: Optional[EventCategory] = None
    results: List[ResultModel] = Field(default_factory=list)

    def to_core(self) -> Event:
        payload = self.model_dump(exclude={"results"})
        payload["category"] = self.category.value if self.category else None
        event = Event.from_dict(payload)
        return replace(event, results=tuple(result.to_core() for result in self.results))


class SettingsModel(BaseModel):
    num_individual_places: int = Field(default=5, alias="numIndividualPlaces")
    num_relay_places: int = Field(default=3, alias="numRelayPlaces")
    num_diving_places: int = Field(default=3, alias="numDivingPlaces")
    individual_point_system: Optional[Dict[str, int]] = Field(default=None, alias="individualPointSystem")
    relay_point_system: Optional[Dict[str, int]] = Field(default=None, alias="relayPointSystem")
    diving_point_system: Optional[Dict[str, int]] = Field(default=None, alias="divingPointSystem")
    team_place_limit_enabled: bool = Field(default=True, alias="teamPlaceLimitEnabled")
    heat_lock_enabled: bool = Field(default=False, alias="heatLockEnabled")
    a_relay_only: bool = Field(default=False, alias="aRelayOnly")

    model_config = ConfigDict(populate_by_name=True)

    def to_core(self) -> ScoringConfig:
        return ScoringConfig.from_dict(self.model_dump(by_alias=True, exclude_none=True))


class TeamScoreModel(BaseModel):
    score: float
    girls_score: float = Field(alias="girlsScore")
    boys_score: float = Field(alias="boysScore")

    model_config = ConfigDict(populate_by_name=True)


class StandingModel(BaseModel):
    rank: int
    team_id: str = Field(alias="teamId")
    name: str
    points: float

    model_config = ConfigDict(populate_by_name=True)


class ScoreRequest(BaseModel):
    teams: List[TeamModel]
    events: List[EventModel]
    settings: SettingsModel = Field(default_factory=SettingsModel)
    mode: str = "combined"


class ScoreResponse(BaseModel):
    scores: Dict[str, TeamScoreModel]
    standings: List[StandingModel]


class ValidateRequest(BaseModel):
    results: Optional[List[ResultModel]] = None
    num_places: Optional[int] = Field(default=None, alias="numPlaces", ge=1)

    model_config = ConfigDict(populate_by_name=True)


class ValidateResponse(BaseModel):
    valid: bool
    errors: List[str]
    consumed_count: int = Field(alias="consumedCount")
    consumed_places: List[int] = Field(alias="consumedPlaces")

    model_config = ConfigDict(populate_by_name=True)


class MeetTeamModel(BaseModel):
    id: str
    name: str
    score: float
    girls_score: float = Field(alias="girlsScore")
    boys_score: float = Field(alias="boysScore")

    model_config = ConfigDict(populate_by_name=True)


class MeetEventModel(BaseModel):
    id: str
    name: str
    gender: Optional[str] = None
    category: EventCategory
    results: List[Dict[str, Any]]


class MeetPayload(BaseModel):
    teams: List[TeamModel]
    events: List[EventModel]
    settings: SettingsModel = Field(default_factory=SettingsModel)
    active_template: Optional[str] = Field(default=None, alias="activeTemplate")

    model_config = ConfigDict(populate_by_name=True)


class MeetResponse(BaseModel):
    teams: List[MeetTeamModel]
    events: List[MeetEventModel]
    settings: Dict[str, Any]
    active_template: Optional[str] = Field(default=None, alias="activeTemplate")

    model_config = ConfigDict(populate_by_name=True)


class ResultUpdateRequest(BaseModel):
    event_id: str = Field(alias="eventId")
    place: int = Field(ge=1)
    team_id: str = Field(alias="teamId")
    checked: bool = True

    model_config = ConfigDict(populate_by_name=True)


class ResultUpdateResponse(BaseModel):
    meet: MeetResponse
    reminder: Optional[str] = None


class SavedTemplateCreate(BaseModel):
    name: str


class SavedTemplateListResponse(BaseModel):
    templates: List[Dict[str, Any]]


@lru_cache(maxsize=1)
def store() -> DataStore:
    return DataStore()


def _team_score_model(team_score: TeamScore) -> TeamScoreModel:
    return TeamScoreModel(
        score=team_score.score,
        girlsScore=team_score.girls_score,
        boysScore=team_score.boys_score,
    )


def _meet_response(meet: Meet) -> MeetResponse:
    scores = score_meet(meet)
    empty = TeamScore()
    return MeetResponse(
        teams=[
            MeetTeamModel(
                id=team.id,
                name=team.name,
                score=scores.get(team.id, empty).score,
                girlsScore=scores.get(team.id, empty).girls_score,
                boysScore=scores.get(team.id, empty).boys_score,
            )
            for team in meet.teams
        ],
        events=[MeetEventModel(**event.to_dict()) for event in meet.events],
        settings=meet.config.to_dict(),
        activeTemplate=meet.active_template,
    )


def _meet_from_payload(payload: MeetPayload) -> Meet:
    teams = validate_roster([Team(id=item.id, name=item.name) for item in payload.teams])
    events = []
    for item in payload.events:
        event = item.to_core()
        event = replace(event, name=validate_event_name(event.name, event.category))
        if event.gender is None:
            raise ValueError(f"Event '{event.name}' must be girls or boys")
        events.append(event)
    return Meet(teams=teams, events=events, config=payload.settings.to_core(), active_template=payload.active_template)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/reference")
def reference() -> dict:
    return {
        "categories": [category.value for category in EventCategory],
        "genders": [gender.value for gender in Gender],
        "scoringModes": list(SCORING_MODES),
        "pointSystems": preset_catalogue(),
        "templates": [
            {"key": template.key, "label": template.label, "description": template.description}
            for template in builtin_templates().values()
        ],
    }


@app.post("/score", response_model=ScoreResponse)
def score(payload: ScoreRequest):
    if payload.mode not in SCORING_MODES:
        raise HTTPException(status_code=400, detail=f"Unknown scoring mode '{payload.mode}'")

    teams = [Team(id=item.id, name=item.name) for item in payload.teams]
    meet = Meet(
        teams=teams,
        events=[item.to_core() for item in payload.events],
        config=payload.settings.to_core(),
    )
    scores = score_meet(meet)
    ranked = standings(teams, scores, payload.mode)

    return ScoreResponse(
        scores={team_id: _team_score_model(team_score) for team_id, team_score in scores.items()},
        standings=[
            StandingModel(rank=row["rank"], teamId=row["team"].id, name=row["team"].name, points=row["points"])
            for row in ranked
        ],
    )


@app.post("/validate", response_model=ValidateResponse)
def validate(payload: ValidateRequest):
    results = None if payload.results is None else [item.to_core() for item in payload.results]
    report = validate_results(results)
    num_places = payload.num_places or MAX_PLACES
    return ValidateResponse(
        valid=report.valid,
        errors=report.errors,
        consumedCount=consumed_place_count(results, num_places),
        consumedPlaces=sorted(consumed_places(results, num_places)),
    )


@app.get("/templates")
def list_builtin_templates() -> dict:
    return {"templates": [template.to_dict() for template in builtin_templates().values()]}


@app.get("/templates/{key}")
def get_builtin_template(key: str) -> dict:
    template = builtin_templates().get(key)
    if template is None:
        raise HTTPException(status_code=404, detail=f"Unknown template '{key}'")
    return template.to_dict()


@app.post("/templates/{key}/load", response_model=MeetResponse)
def load_builtin_template(key: str):
    try:
        meet = build_meet(key)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown template '{key}'") from exc
    try:
        store().save_meet(meet)
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _meet_response(meet)


@app.get("/meet", response_model=MeetResponse)
def get_meet():
    return _meet_response(store().load_meet())


@app.put("/meet", response_model=MeetResponse)
def put_meet(payload: MeetPayload):
    try:
        meet = _meet_from_payload(payload)
        store().save_meet(meet)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except RuntimeError as exc:
        logger.exception("Failed to save meet")
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _meet_response(meet)


@app.post("/meet/results", response_model=ResultUpdateResponse)
def update_result(payload: ResultUpdateRequest):
    meet = store().load_meet()
    if not any(team.id == payload.team_id for team in meet.teams):
        raise HTTPException(status_code=400, detail=f"Unknown team '{payload.team_id}'")

    index = next((i for i, event in enumerate(meet.events) if event.id == payload.event_id), None)
    if index is None:
        raise HTTPException(status_code=404, detail="Event not found")

    try:
        event = update_event_result(meet.events[index], payload.place, payload.team_id, payload.checked, meet.config)
    except TeamPlaceLimitError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    meet.events[index] = event
    try:
        store().save_meet(meet)
    except RuntimeError as exc:
        logger.exception("Failed to save result update for event %s", event.id)
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    reminder = None
    if payload.checked and needs_b_finals_reminder(event, payload.place, meet.config):
        reminder = f"Don't forget to score Heat 1 (B Finals) in places 9th-16th for {event.name}."
    return ResultUpdateResponse(meet=_meet_response(meet), reminder=reminder)


@app.get("/saved-templates", response_model=SavedTemplateListResponse)
def list_saved_templates():
    return SavedTemplateListResponse(templates=[item.to_dict() for item in store().list_templates()])


@app.post("/saved-templates", status_code=201)
def create_saved_template(payload: SavedTemplateCreate) -> dict:
    try:
        template = store().save_template(payload.name, store().load_meet())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return template.to_dict()


@app.post("/saved-templates/{template_id}/load", response_model=MeetResponse)
def load_saved_template(template_id: str):
    try:
        meet = store().get_template(template_id).build_meet()
        store().save_meet(meet)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _meet_response(meet)


@app.delete("/saved-templates/{template_id}", status_code=204)
def delete_saved_template(template_id: str):
    try:
        store().delete_template(template_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except RuntimeError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List

from .models import Event, Meet, ScoringConfig, Team
from .results import replace_event_results
from .templates import SavedTemplate, add_saved_template, default_meet

logger = logging.getLogger(__name__)

# Version 4 stores ties as a teamIds list on each result.
CURRENT_VERSION = 4
TIE_SUPPORT_VERSION = 4
EVENT_ORDER_VERSION = 3


def migrate_snapshot(raw: Dict[str, Any] | None) -> Meet:
    """Turn a stored snapshot of any supported version into a ``Meet``.

    Snapshots older than version 3 predate the current event order and are
    replaced by the default meet. Version 3 stored a single ``teamId`` per
    result; that becomes a one-element ``teamIds`` list. Event categories
    are derived from the event names here, once. Any stored scores are
    ignored; they are always recomputed from results.
    """

    if not isinstance(raw, dict):
        return default_meet()

    fallback = default_meet()
    try:
        version = int(raw.get("version") or 1)
    except (TypeError, ValueError):
        version = 1

    raw_teams = raw.get("teams")
    teams: List[Team] = []
    if isinstance(raw_teams, list):
        teams = [Team.from_dict(item) for item in raw_teams if isinstance(item, dict) and item.get("id")]
    if not teams:
        teams = fallback.teams

    raw_events = raw.get("events")
    if version < EVENT_ORDER_VERSION or not isinstance(raw_events, list):
        logger.info("Stored events at version %s replaced with the default meet", version)
        events = fallback.events
    else:
        events = [
            Event.from_dict(item)
            for item in raw_events
            if isinstance(item, dict) and item.get("id") and item.get("name") and isinstance(item.get("results"), list)
        ]
        if version < TIE_SUPPORT_VERSION:
            logger.info("Migrated %d events from single teamId results to teamIds", len(events))
        events = [replace_event_results(event, event.results) for event in events]
        if not events:
            events = fallback.events

    settings = raw.get("settings")
    config = ScoringConfig.from_dict(settings) if isinstance(settings, dict) else fallback.config
    active_template = raw.get("activeTemplate")
    return Meet(
        teams=teams,
        events=events,
        config=config,
        active_template=str(active_template) if active_template else None,
    )


def snapshot(meet: Meet) -> Dict[str, Any]:
    return {
        "version": CURRENT_VERSION,
        "teams": [team.to_dict() for team in meet.teams],
        "events": [event.to_dict() for event in meet.events],
        "settings": meet.config.to_dict(),
        "activeTemplate": meet.active_template,
    }


class DataStore:
    """Keeps the current meet and saved templates as local JSON files."""

    def __init__(self, data_dir: Path | None = None) -> None:
        env_dir = os.getenv("MEET_DATA_DIR", "")
        self.data_dir = data_dir or (Path(env_dir) if env_dir else Path(__file__).parent.parent / "data")
        self.meet_path = self.data_dir / "meet_local.json"
        self.templates_path = self.data_dir / "templates_local.json"

    def load_meet(self) -> Meet:
        return migrate_snapshot(self._read_json_file(self.meet_path, None))

    def save_meet(self, meet: Meet) -> None:
        self._write_json_file(self.meet_path, snapshot(meet))

    def list_templates(self) -> List[SavedTemplate]:
        raw = self._read_json_file(self.templates_path, [])
        if not isinstance(raw, list):
            logger.warning("Ignoring malformed template store %s", self.templates_path)
            return []
        return [SavedTemplate.from_dict(item) for item in raw if isinstance(item, dict) and item.get("id")]

    def save_template(self, name: str, meet: Meet) -> SavedTemplate:
        template = SavedTemplate.from_meet(name, meet)
        templates = add_saved_template(self.list_templates(), template)
        self._write_json_file(self.templates_path, [item.to_dict() for item in templates])
        return template

    def get_template(self, template_id: str) -> SavedTemplate:
        for template in self.list_templates():
            if template.id == template_id:
                return template
        raise ValueError("Template not found")

    def delete_template(self, template_id: str) -> None:
        templates = self.list_templates()
        remaining = [item for item in templates if item.id != template_id]
        if len(remaining) == len(templates):
            raise ValueError("Template not found")
        self._write_json_file(self.templates_path, [item.to_dict() for item in remaining])

    def _read_json_file(self, path: Path, default: Any) -> Any:
        try:
            if not path.exists():
                return default
            with path.open("r", encoding="utf-8") as handle:
                return json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Falling back to default for %s due to read error: %s", path, exc)
            return default

    def _write_json_file(self, path: Path, data: Any) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2, sort_keys=True)
        except OSError as exc:
            raise RuntimeError(f"Failed to write local data store {path}") from exc

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app import main
from meet_core import DataStore


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> TestClient:
    data_store = DataStore(data_dir=tmp_path)
    monkeypatch.setattr(main, "store", lambda: data_store)
    return TestClient(main.app)


def _post_result(client: TestClient, event_id: str, place: int, team_id: str, checked: bool = True):
    return client.post(
        "/meet/results",
        json={"eventId": event_id, "place": place, "teamId": team_id, "checked": checked},
    )


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_reference_lists_templates_and_modes(client: TestClient) -> None:
    payload = client.get("/reference").json()

    assert payload["categories"] == ["individual", "relay", "diving"]
    assert payload["scoringModes"] == ["combined", "girls", "boys"]
    keys = [item["key"] for item in payload["templates"]]
    assert keys[:3] == ["high_school", "conference", "sectionals"]
    assert "usa_swimming_10" in keys


def test_score_splits_tie_and_ranks_by_mode(client: TestClient) -> None:
    response = client.post(
        "/score",
        json={
            "teams": [{"id": "a", "name": "Alpha"}, {"id": "b", "name": "Bravo"}],
            "events": [
                {
                    "id": "1",
                    "name": "100 Freestyle",
                    "gender": "girls",
                    "results": [{"place": 1, "teamIds": ["a", "b"]}],
                },
                {
                    "id": "2",
                    "name": "200 Freestyle Relay",
                    "gender": "boys",
                    "results": [{"place": 1, "teamId": "b"}],
                },
            ],
            "mode": "boys",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["scores"]["a"] == {"score": 5.0, "girlsScore": 5.0, "boysScore": 0.0}
    assert body["scores"]["b"] == {"score": 13.0, "girlsScore": 5.0, "boysScore": 8.0}
    assert [row["teamId"] for row in body["standings"]] == ["b", "a"]
    assert body["standings"][0]["points"] == 8.0


def test_score_rejects_unknown_mode(client: TestClient) -> None:
    response = client.post("/score", json={"teams": [], "events": [], "mode": "mixed"})

    assert response.status_code == 400


def test_validate_reports_tie_conflicts(client: TestClient) -> None:
    response = client.post(
        "/validate",
        json={
            "results": [{"place": 1, "teamIds": ["a", "b"]}, {"place": 2, "teamIds": ["c"]}],
            "numPlaces": 3,
        },
    )

    body = response.json()
    assert body["valid"] is False
    assert body["errors"] == ["Place 2 conflicts with earlier tie (next valid place is 3)"]
    assert body["consumedCount"] == 3
    assert body["consumedPlaces"] == [2]


def test_validate_without_results_is_valid(client: TestClient) -> None:
    body = client.post("/validate", json={}).json()

    assert body == {"valid": True, "errors": [], "consumedCount": 0, "consumedPlaces": []}


def test_get_meet_defaults_to_high_school(client: TestClient) -> None:
    body = client.get("/meet").json()

    assert body["activeTemplate"] == "high_school"
    assert [team["score"] for team in body["teams"]] == [0.0, 0.0]
    assert len(body["events"]) == 24
    assert body["events"][0]["category"] == "relay"


def test_result_update_scores_and_persists(client: TestClient) -> None:
    response = _post_result(client, "3", 1, "1")

    assert response.status_code == 200
    home = response.json()["meet"]["teams"][0]
    assert home["score"] == 6.0
    assert home["girlsScore"] == 6.0
    assert client.get("/meet").json()["teams"][0]["score"] == 6.0

    untoggled = _post_result(client, "3", 1, "1", checked=False).json()
    assert untoggled["meet"]["teams"][0]["score"] == 0.0


def test_result_update_enforces_relay_team_limit(client: TestClient) -> None:
    assert _post_result(client, "1", 1, "1").status_code == 200
    assert _post_result(client, "1", 2, "1").status_code == 200

    response = _post_result(client, "1", 3, "1")

    assert response.status_code == 409
    assert response.json()["detail"] == "Team limit reached: A team can only occupy 2 of 3 relay places."


def test_result_update_unknown_targets(client: TestClient) -> None:
    assert _post_result(client, "1", 1, "ghost").status_code == 400
    assert _post_result(client, "missing", 1, "1").status_code == 404


def test_conference_template_sends_b_finals_reminder(client: TestClient) -> None:
    meet = client.post("/templates/conference/load").json()
    assert len(meet["teams"]) == 8
    event = meet["events"][2]
    team_id = meet["teams"][0]["id"]

    response = _post_result(client, event["id"], 1, team_id)

    assert response.json()["reminder"] == (
        "Don't forget to score Heat 1 (B Finals) in places 9th-16th for 200 Freestyle."
    )
    assert response.json()["meet"]["teams"][0]["score"] == 20.0


def test_unknown_builtin_template(client: TestClient) -> None:
    assert client.get("/templates/nope").status_code == 404
    assert client.post("/templates/nope/load").status_code == 404


def test_put_meet_validates_names(client: TestClient) -> None:
    payload = {
        "teams": [{"id": "1", "name": "Sharks"}, {"id": "2", "name": "sharks"}],
        "events": [{"id": "1", "name": "100 Freestyle", "gender": "girls", "results": []}],
    }
    assert client.put("/meet", json=payload).status_code == 400

    payload["teams"][1]["name"] = "Dolphins"
    payload["events"].append({"id": "2", "name": "Springboard", "gender": "boys", "category": "diving"})
    response = client.put("/meet", json=payload)

    assert response.status_code == 200
    assert [event["name"] for event in response.json()["events"]] == ["100 Freestyle", "Diving"]


def test_saved_template_lifecycle(client: TestClient) -> None:
    client.post("/templates/usa_swimming_8/load")

    created = client.post("/saved-templates", json={"name": "Eight lanes"})
    assert created.status_code == 201
    template_id = created.json()["id"]
    assert client.post("/saved-templates", json={"name": "eight lanes"}).status_code == 400

    client.post("/templates/high_school/load")
    loaded = client.post(f"/saved-templates/{template_id}/load").json()
    assert len(loaded["teams"]) == 8
    assert loaded["activeTemplate"] == f"custom_{template_id}"

    assert client.delete(f"/saved-templates/{template_id}").status_code == 204
    assert client.get("/saved-templates").json() == {"templates": []}
    assert client.delete(f"/saved-templates/{template_id}").status_code == 404


def test_validate_without_num_places_covers_whole_tie_span(client: TestClient) -> None:
    body = client.post("/validate", json={"results": [{"place": 1, "teamIds": ["a", "b", "c"]}]}).json()

    assert body["valid"] is True
    assert body["consumedCount"] == 3
    assert body["consumedPlaces"] == [2, 3]


def test_score_settings_default_to_relay_place_limit(client: TestClient) -> None:
    relay = {
        "id": "1",
        "name": "400 Freestyle Relay",
        "gender": "girls",
        "results": [{"place": 1, "teamIds": ["a"]}, {"place": 2, "teamIds": ["a"]}, {"place": 3, "teamIds": ["a"]}],
    }

    body = client.post("/score", json={"teams": [{"id": "a", "name": "Alpha"}], "events": [relay]}).json()

    assert body["scores"]["a"]["score"] == 12.0

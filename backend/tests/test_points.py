import pytest

from meet_core import EventCategory, PlaceCounts, PointSystem
from meet_core.points import (
    HIGH_SCHOOL_DUAL,
    SECTIONALS_RELAY,
    USA_SWIMMING_LANES,
    clamp_place_count,
    preset_catalogue,
    usa_swimming,
)


def test_point_system_is_total_over_places() -> None:
    system = PointSystem.from_mapping({"1": 6, "2": "4", "25": 9, "x": 1, "3": None})

    assert system[1] == 6
    assert system[2] == 4
    assert system[3] == 0
    assert system[20] == 0
    assert 25 not in system.values


def test_point_system_to_dict_fills_all_places() -> None:
    full = PointSystem.from_list([8, 4, 2]).to_dict()

    assert len(full) == 20
    assert full["1"] == 8
    assert full["20"] == 0
    assert PointSystem.from_list([8, 4, 2]).to_dict(full=False) == {"1": 8, "2": 4, "3": 2}


def test_high_school_dual_presets() -> None:
    assert [HIGH_SCHOOL_DUAL.individual[place] for place in range(1, 6)] == [6, 4, 3, 2, 1]
    assert [HIGH_SCHOOL_DUAL.relay[place] for place in range(1, 4)] == [8, 4, 2]
    assert [HIGH_SCHOOL_DUAL.diving[place] for place in range(1, 4)] == [5, 3, 1]
    assert HIGH_SCHOOL_DUAL.for_category(EventCategory.RELAY) is HIGH_SCHOOL_DUAL.relay


def test_usa_swimming_six_lane_points() -> None:
    systems = usa_swimming(6)

    assert systems.individual.to_dict(full=False) == {"1": 7, "2": 5, "3": 4, "4": 3, "5": 2, "6": 1}
    assert systems.relay[1] == 14


@pytest.mark.parametrize("lanes", list(USA_SWIMMING_LANES))
def test_usa_swimming_relays_double_individual_points(lanes: int) -> None:
    systems = usa_swimming(lanes)

    assert len(systems.individual) == lanes
    for place in range(1, lanes + 1):
        assert systems.relay[place] == systems.individual[place] * 2
    assert systems.diving == systems.individual


def test_usa_swimming_rejects_unknown_lane_count() -> None:
    with pytest.raises(ValueError):
        usa_swimming(3)


def test_sectionals_relay_covers_every_place() -> None:
    assert len(SECTIONALS_RELAY) == 20


def test_clamp_place_count() -> None:
    assert clamp_place_count("7", 5) == 7
    assert clamp_place_count(0, 5) == 1
    assert clamp_place_count(99, 5) == 20
    assert clamp_place_count("abc", 3) == 3
    assert clamp_place_count(None, 3) == 3


def test_place_counts_clamped_defaults() -> None:
    counts = PlaceCounts.clamped(None, "x", 40)

    assert counts == PlaceCounts(individual=5, relay=3, diving=20)
    assert counts.for_category(EventCategory.DIVING) == 20


def test_preset_catalogue_lists_every_lane_count() -> None:
    catalogue = preset_catalogue()

    assert catalogue["highSchoolDual"]["relay"] == {"1": 8, "2": 4, "3": 2}
    assert sorted(catalogue["usaSwimming"], key=int) == [str(lanes) for lanes in USA_SWIMMING_LANES]

from datetime import datetime, timedelta

from quest_academy.game_maps import map_rules

NOW = datetime(2024, 6, 1, 12, 0)


def test_empty_layers_shape():
    layers = map_rules.empty_layers(3, 2)
    assert set(layers) == {"ground", "obstacles", "decorations"}
    assert layers["ground"] == [[0, 0, 0], [0, 0, 0]]
    assert map_rules.layer_matches(layers["ground"], 3, 2)
    assert not map_rules.layer_matches(layers["ground"], 2, 3)


def test_one_time_chest_never_respawns():
    entry = map_rules.completion_entry("chest", NOW, map_rules.chest_respawn({"is_one_time": True}))
    assert entry["can_respawn"] is False
    assert not map_rules.is_available(entry, NOW + timedelta(days=30))


def test_repeatable_chest_respawns_after_a_day():
    entry = map_rules.completion_entry("chest", NOW, map_rules.chest_respawn({"is_one_time": False}))
    assert not map_rules.is_available(entry, NOW + timedelta(hours=23))
    assert map_rules.is_available(entry, NOW + timedelta(hours=24))


def test_monster_respawn_seconds():
    assert map_rules.monster_respawn({"respawn_time": 0}) is None
    assert map_rules.monster_respawn({"respawn_time": 90}) == timedelta(seconds=90)


def test_available_objects_filters_completed():
    objects = [{"id": "a"}, {"id": "b"}]
    state = {"completed_objects": [map_rules.completion_entry("a", NOW, None)]}
    assert map_rules.available_objects(objects, state, NOW) == [{"id": "b"}]


def test_with_completion_replaces_previous_entry():
    old = map_rules.completion_entry("m", NOW - timedelta(hours=2), timedelta(hours=1))
    state = {"completed_objects": [old, map_rules.completion_entry("x", NOW, None)]}
    new = map_rules.completion_entry("m", NOW, timedelta(hours=1))
    completed = map_rules.with_completion(state, new)
    assert [c["object_id"] for c in completed] == ["x", "m"]
    assert completed[-1]["completed_at"] == NOW


def test_unlock_status():
    game_map = {"requirements": {"level_required": 3, "previous_map_id": "m1"}}
    assert map_rules.unlock_status(game_map, 2, {"m1"}) == (False, "Requires level 3")
    assert map_rules.unlock_status(game_map, 3, set())[0] is False
    assert map_rules.unlock_status(game_map, 3, {"m1"}) == (True, "")


def test_battle_rewards_scale_with_score():
    assert map_rules.battle_rewards({"exp": 30, "gold": 15}, 3, 4) == {"exp": 23, "gold": 11}
    assert map_rules.battle_rewards({"exp": 30, "gold": 15}, 0, 0) == {"exp": 0, "gold": 0}

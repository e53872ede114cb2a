"""Tests for group key helpers."""

from metric_threshold import groups


def test_group_key_round_trips_to_field_mapping() -> None:
    key = groups.build_group_key(["web-01", "eu-west-1"])
    assert key == "web-01, eu-west-1"
    mapping = groups.group_by_object(["host.name", "cloud.region"], [key])
    assert mapping[key] == {"host": {"name": "web-01"}, "cloud": {"region": "eu-west-1"}}


def test_single_group_by_keeps_whole_key() -> None:
    mapping = groups.group_by_object("labels.team", ["a, b"])
    assert mapping == {"a, b": {"labels": {"team": "a, b"}}}


def test_no_group_by_gives_empty_mapping() -> None:
    assert groups.build_group_key([]) == groups.UNGROUPED_KEY
    assert groups.group_by_object(None, ["*"]) == {}


def test_has_additional_context() -> None:
    assert groups.has_additional_context("host.name")
    assert groups.has_additional_context(["service.name", "tags"])
    assert not groups.has_additional_context(["service.name"])
    assert not groups.has_additional_context(None)


def test_flatten_context() -> None:
    flat = groups.flatten_context({"host": {"name": "a", "os": {"family": "linux"}}, "tags": ["x"]})
    assert flat == {"host.name": "a", "host.os.family": "linux", "tags": ["x"]}

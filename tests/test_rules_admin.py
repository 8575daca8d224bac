from __future__ import annotations

import pytest

from adapters.sqlite_storage import SQLiteStorage
from core.errors import RuleNotFoundError, RuleValidationError
from core.models import NewRule, RuleUpdate
from core.rules_admin import RuleService
from core.seeding import DEFAULT_RULES


def _service(tmp_path) -> tuple[RuleService, SQLiteStorage]:
    storage = SQLiteStorage(str(tmp_path / "router.db"))
    storage.init_db()
    return RuleService(storage), storage


def _new_rule(**overrides) -> NewRule:
    fields = {
        "name": "Flight Delay",
        "keywords": ["delay", "late"],
        "priority": 6,
        "response_template": "Sorry for the delay.",
        "is_active": True,
    }
    fields.update(overrides)
    return NewRule(**fields)


def test_seeding_twice_keeps_three_rules(tmp_path) -> None:
    service, storage = _service(tmp_path)

    first = service.initialize_defaults()
    second = service.initialize_defaults()

    assert first.success is True
    assert len(first.created) == 3
    assert second.success is False
    assert second.message == "Rules already exist"
    assert storage.count_rules() == 3
    assert [r.name for r in storage.list_rules()] == [r.name for r in DEFAULT_RULES]
    assert all(r.is_active for r in storage.list_rules())


def test_seeding_skips_when_any_rule_exists(tmp_path) -> None:
    service, storage = _service(tmp_path)
    service.create_rule(_new_rule(is_active=False))

    assert service.initialize_defaults().success is False
    assert storage.count_rules() == 1


def test_create_rule_strips_and_keeps_order(tmp_path) -> None:
    service, storage = _service(tmp_path)

    rule_id = service.create_rule(_new_rule(name=" Delay ", keywords=[" late", "delay "]))

    rule = storage.get_rule(rule_id)
    assert rule.name == "Delay"
    assert rule.keywords == ["late", "delay"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"name": "   "},
        {"keywords": []},
        {"keywords": ["ok", ""]},
        {"priority": 0},
        {"priority": 11},
        {"priority": True},
        {"response_template": " "},
    ],
)
def test_create_rule_rejects_malformed_fields(tmp_path, overrides) -> None:
    service, storage = _service(tmp_path)

    with pytest.raises(RuleValidationError):
        service.create_rule(_new_rule(**overrides))
    assert storage.count_rules() == 0


def test_update_validates_only_supplied_fields(tmp_path) -> None:
    service, storage = _service(tmp_path)
    rule_id = service.create_rule(_new_rule())

    service.update_rule(rule_id, RuleUpdate(response_template="New text"))
    with pytest.raises(RuleValidationError):
        service.update_rule(rule_id, RuleUpdate(keywords=[""]))

    rule = storage.get_rule(rule_id)
    assert rule.response_template == "New text"
    assert rule.keywords == ["delay", "late"]


def test_toggle_rule_flips_active_flag(tmp_path) -> None:
    service, storage = _service(tmp_path)
    rule_id = service.create_rule(_new_rule())

    assert service.toggle_rule(rule_id) is False
    assert storage.list_active_rules() == []
    assert service.toggle_rule(rule_id) is True

    with pytest.raises(RuleNotFoundError):
        service.toggle_rule(12345)


def test_delete_rule(tmp_path) -> None:
    service, storage = _service(tmp_path)
    rule_id = service.create_rule(_new_rule())

    service.delete_rule(rule_id)

    assert storage.count_rules() == 0
    with pytest.raises(RuleNotFoundError):
        service.delete_rule(rule_id)


def test_list_rules_by_priority(tmp_path) -> None:
    service, _ = _service(tmp_path)
    service.initialize_defaults()

    assert [r.priority for r in service.list_rules_by_priority()] == [10, 8, 6]


def test_text_tester_uses_active_rules_only(tmp_path) -> None:
    service, storage = _service(tmp_path)
    service.initialize_defaults()
    medical = next(r for r in storage.list_rules() if r.name == "Medical Refund")
    service.toggle_rule(medical.id)

    best, matches = service.test_text("I was sick and my flight was late")

    assert best.name == "Flight Delay"
    assert [r.name for r in matches] == ["Flight Delay"]
    assert service.test_text("all good")[0] is None

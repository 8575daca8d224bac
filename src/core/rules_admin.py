"""Rule administration with validation at the boundary.

The store accepts whatever it is given; this service is where malformed rules
(blank names, empty keywords, out-of-range priorities) are refused before they
reach matching.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from core.errors import RuleNotFoundError, RuleValidationError
from core.models import NewRule, RoutingRule, RuleUpdate, SeedResult
from core.ports import StoragePort
from core.rules_engine import match_rules, rank_rules
from core.seeding import initialize_default_rules

LOGGER = logging.getLogger(__name__)

MIN_PRIORITY = 1
MAX_PRIORITY = 10


def clean_keywords(keywords: List[str]) -> List[str]:
    """Strip keywords, keeping order; reject blanks and empty lists."""

    cleaned: List[str] = []
    for keyword in keywords:
        if not isinstance(keyword, str):
            raise RuleValidationError(f"keyword must be a string, got {type(keyword).__name__}")
        value = keyword.strip()
        if not value:
            raise RuleValidationError("keywords must not be blank")
        cleaned.append(value)
    if not cleaned:
        raise RuleValidationError("at least one keyword is required")
    return cleaned


def _clean_name(name: str) -> str:
    value = name.strip()
    if not value:
        raise RuleValidationError("name is required")
    return value


def _check_priority(priority: int) -> int:
    # bool is an int subclass; True is not a priority.
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise RuleValidationError("priority must be an integer")
    if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
        raise RuleValidationError(f"priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}")
    return priority


def _check_template(template: str) -> str:
    if not template.strip():
        raise RuleValidationError("response template is required")
    return template


def validate_new_rule(rule: NewRule) -> NewRule:
    return NewRule(
        name=_clean_name(rule.name),
        keywords=clean_keywords(rule.keywords),
        priority=_check_priority(rule.priority),
        response_template=_check_template(rule.response_template),
        is_active=bool(rule.is_active),
    )


def validate_rule_update(update: RuleUpdate) -> RuleUpdate:
    """Validate only the supplied fields of a partial update."""

    return RuleUpdate(
        name=_clean_name(update.name) if update.name is not None else None,
        keywords=clean_keywords(update.keywords) if update.keywords is not None else None,
        priority=_check_priority(update.priority) if update.priority is not None else None,
        response_template=(
            _check_template(update.response_template) if update.response_template is not None else None
        ),
        is_active=update.is_active,
    )


class RuleService:
    """Admin operations on routing rules."""

    def __init__(self, storage: StoragePort) -> None:
        self._storage = storage

    def list_rules(self) -> List[RoutingRule]:
        return self._storage.list_rules()

    def list_rules_by_priority(self) -> List[RoutingRule]:
        return rank_rules(self._storage.list_rules())

    def create_rule(self, rule: NewRule) -> int:
        rule_id = self._storage.insert_rule(validate_new_rule(rule))
        LOGGER.info("Created rule %s (%s)", rule_id, rule.name)
        return rule_id

    def update_rule(self, rule_id: int, update: RuleUpdate) -> None:
        self._storage.patch_rule(rule_id, validate_rule_update(update))
        LOGGER.info("Updated rule %s (%s)", rule_id, ", ".join(sorted(update.changes())) or "timestamp only")

    def delete_rule(self, rule_id: int) -> None:
        self._storage.delete_rule(rule_id)
        LOGGER.info("Deleted rule %s", rule_id)

    def toggle_rule(self, rule_id: int) -> bool:
        """Flip is_active and return the new value."""

        with self._storage.transaction():
            rule = self._storage.get_rule(rule_id)
            if rule is None:
                raise RuleNotFoundError(rule_id)
            is_active = not rule.is_active
            self._storage.patch_rule(rule_id, RuleUpdate(is_active=is_active))
        LOGGER.info("Rule %s is now %s", rule_id, "active" if is_active else "inactive")
        return is_active

    def initialize_defaults(self) -> SeedResult:
        with self._storage.transaction():
            return initialize_default_rules(self._storage)

    def test_text(self, text: str) -> Tuple[Optional[RoutingRule], List[RoutingRule]]:
        """Dry-run the active rules against text; nothing is written.

        Returns the rule routing would pick plus every matching rule ranked.
        """

        matches = rank_rules(match_rules(text, self._storage.list_active_rules()))
        return (matches[0] if matches else None), matches

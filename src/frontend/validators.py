"""Validation helpers for the rule editor form."""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import RuleValidationError
from core.models import NewRule
from core.rules_admin import validate_new_rule


@dataclass
class RuleFormInfo:
    rule: NewRule | None
    error: str | None = None


def parse_keywords(raw_value: str) -> list[str]:
    """Split one-per-line keywords, dropping blanks.

    Commas are kept: a keyword such as "delayed, again" is matched as written.
    """

    return [line.strip() for line in raw_value.splitlines() if line.strip()]


def parse_priority(raw_value: str) -> int | None:
    try:
        return int(raw_value.strip())
    except ValueError:
        return None


def parse_rule_form(
    name: str,
    priority: str,
    keywords: str,
    template: str,
    is_active: bool,
) -> RuleFormInfo:
    parsed_priority = parse_priority(priority)
    if parsed_priority is None:
        return RuleFormInfo(None, "priority must be a whole number")
    try:
        rule = validate_new_rule(
            NewRule(
                name=name,
                keywords=parse_keywords(keywords),
                priority=parsed_priority,
                response_template=template,
                is_active=bool(is_active),
            )
        )
    except RuleValidationError as exc:
        return RuleFormInfo(None, str(exc))
    return RuleFormInfo(rule)

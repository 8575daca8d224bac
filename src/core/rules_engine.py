"""Rule matching logic (core domain)."""

from __future__ import annotations

from typing import Iterable, List, Optional

from core.models import RoutingRule


def rule_matches(lowered_text: str, rule: RoutingRule) -> bool:
    """Return True if any keyword of the rule occurs in the lowered text."""

    return any(keyword.lower() in lowered_text for keyword in rule.keywords)


def match_rules(text: str, rules: Iterable[RoutingRule]) -> List[RoutingRule]:
    """Return every rule whose keywords intersect the text, in input order.

    Matching is plain case-insensitive substring containment, so "bag" also
    hits "baggage". An empty keyword is contained in any text and therefore
    matches everything; the admin layer refuses to store one.
    """

    if not text:
        return []
    lowered = text.lower()
    return [rule for rule in rules if rule_matches(lowered, rule)]


def rank_rules(rules: Iterable[RoutingRule]) -> List[RoutingRule]:
    """Order rules by priority (highest first), then name.

    The sort is stable, so rules equal on both keep their input order.
    """

    return sorted(rules, key=lambda rule: (-rule.priority, rule.name.casefold()))


def select_rule(text: str, rules: Iterable[RoutingRule]) -> Optional[RoutingRule]:
    """Return the highest-priority rule matching the text, or None.

    ``rules`` is the caller's snapshot of active rules; this function never
    reads the store, so the same inputs always give the same answer.
    """

    matches = match_rules(text, rules)
    if not matches:
        return None
    return rank_rules(matches)[0]

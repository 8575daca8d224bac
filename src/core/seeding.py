"""One-time bootstrap of the starter rule set."""

from __future__ import annotations

import logging
from typing import List

from core.models import NewRule, SeedResult
from core.ports import StoragePort

LOGGER = logging.getLogger(__name__)

DEFAULT_RULES: List[NewRule] = [
    NewRule(
        name="Medical Refund",
        keywords=[
            "medical",
            "sickness",
            "not fit to fly",
            "sick",
            "hospital",
            "humanitarian",
            "health",
            "doctor",
            "emergency",
            "illness",
        ],
        priority=10,
        response_template=(
            "Dear passenger, we understand you're facing a medical situation. "
            "Please DM us your booking reference (PNR) and medical documents for refund assistance. ^Team IndiGo"
        ),
    ),
    NewRule(
        name="Baggage Issue",
        keywords=["baggage", "luggage", "lost bag", "damaged bag", "missing luggage"],
        priority=8,
        response_template=(
            "Dear passenger, we apologize for the baggage inconvenience. "
            "Please share your PNR and file reference via DM. ^Team IndiGo"
        ),
    ),
    NewRule(
        name="Flight Delay",
        keywords=["delay", "cancelled", "late", "missed connection", "rescheduled"],
        priority=6,
        response_template=(
            "Dear passenger, we apologize for the delay. "
            "Please share your flight number and PNR via DM. ^Team IndiGo"
        ),
    ),
]


def initialize_default_rules(storage: StoragePort) -> SeedResult:
    """Insert the starter rules unless any rule already exists.

    The existence check and the inserts are not guarded against a second
    caller racing the first; this is meant to be run once by an operator.
    """

    if storage.count_rules() > 0:
        LOGGER.info("Default rules not seeded: rules already exist")
        return SeedResult(success=False, message="Rules already exist")

    created = storage.insert_rules(list(DEFAULT_RULES))
    LOGGER.info("Seeded %s default rules", len(created))
    return SeedResult(success=True, message="Default rules initialized", created=created)

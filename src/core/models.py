"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any storage-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Dict, List, Optional

STATUS_PENDING = "pending"
STATUS_ROUTED = "routed"
STATUS_SKIPPED = "skipped"
STATUS_ALREADY_PROCESSED = "already_processed"

RESPONSE_PENDING = "pending"


@dataclass(frozen=True)
class RoutingRule:
    """A named keyword-triggered response template."""

    id: int
    name: str
    keywords: List[str]
    priority: int
    response_template: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class NewRule:
    """Field set for inserting a rule; timestamps are set by the store."""

    name: str
    keywords: List[str]
    priority: int
    response_template: str
    is_active: bool = True


def _supplied(update: Any) -> Dict[str, Any]:
    return {f.name: getattr(update, f.name) for f in fields(update) if getattr(update, f.name) is not None}


@dataclass(frozen=True)
class RuleUpdate:
    """Partial rule update. ``None`` means the field was not supplied."""

    name: Optional[str] = None
    keywords: Optional[List[str]] = None
    priority: Optional[int] = None
    response_template: Optional[str] = None
    is_active: Optional[bool] = None

    def changes(self) -> Dict[str, Any]:
        return _supplied(self)


@dataclass(frozen=True)
class Tweet:
    """Tweet as seen by the router; ingestion owns everything but routing."""

    id: int
    tweet_id: str
    text: str
    author: Optional[str]
    created_at: datetime
    routing_status: Optional[str] = None
    matched_rule_id: Optional[int] = None

    @property
    def is_unrouted(self) -> bool:
        return not self.routing_status or self.routing_status == STATUS_PENDING


@dataclass(frozen=True)
class NewTweet:
    tweet_id: str
    text: str
    author: Optional[str] = None
    # Posting time on the network; the store uses "now" when omitted.
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class TweetUpdate:
    routing_status: Optional[str] = None
    matched_rule_id: Optional[int] = None

    def changes(self) -> Dict[str, Any]:
        return _supplied(self)


@dataclass(frozen=True)
class TweetResponse:
    """Queued reply; ``response_text`` is a snapshot of the rule template."""

    id: int
    original_tweet_id: str
    routing_rule_id: int
    response_text: str
    status: str
    created_at: datetime


@dataclass(frozen=True)
class RoutingResult:
    """Outcome of routing a single tweet id within a batch."""

    tweet_id: int
    success: bool
    status: Optional[str] = None
    error: Optional[str] = None
    matched_rule: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"tweetId": self.tweet_id, "success": self.success}
        if self.status is not None:
            payload["status"] = self.status
        if self.error is not None:
            payload["error"] = self.error
        if self.matched_rule is not None:
            payload["matchedRule"] = self.matched_rule
        return payload


@dataclass(frozen=True)
class RoutedTweet:
    """A tweet enriched with its matched rule and queued response, if any."""

    tweet: Tweet
    matched_rule: Optional[Dict[str, str]] = None
    pending_response: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.tweet.id,
            "tweetId": self.tweet.tweet_id,
            "text": self.tweet.text,
            "author": self.tweet.author,
            "createdAt": self.tweet.created_at.isoformat(),
            "routingStatus": self.tweet.routing_status,
            "matchedRuleId": self.tweet.matched_rule_id,
            "matchedRule": self.matched_rule,
            "pendingResponse": self.pending_response,
        }


@dataclass(frozen=True)
class SeedResult:
    success: bool
    message: str
    created: List[int] = field(default_factory=list)

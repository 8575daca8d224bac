"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage so that the core can be reused
with different backends.
"""

from __future__ import annotations

from typing import ContextManager, List, Optional, Protocol

from core.models import (
    NewRule,
    NewTweet,
    RoutingRule,
    RuleUpdate,
    Tweet,
    TweetResponse,
    TweetUpdate,
)


class StoragePort(Protocol):
    """Storage operations required by the core pipeline.

    ``transaction()`` is a precondition for idempotent routing: every call made
    inside it on the current thread must form one atomic unit that no other
    writer can interleave with. A backend that cannot promise this still works,
    but two concurrent batches for the same tweet may then both route it and
    queue two responses.
    """

    def transaction(self) -> ContextManager[None]:
        ...

    def list_rules(self) -> List[RoutingRule]:
        ...

    def list_active_rules(self) -> List[RoutingRule]:
        ...

    def get_rule(self, rule_id: int) -> Optional[RoutingRule]:
        ...

    def count_rules(self) -> int:
        ...

    def insert_rule(self, rule: NewRule) -> int:
        ...

    def insert_rules(self, rules: List[NewRule]) -> List[int]:
        ...

    def patch_rule(self, rule_id: int, update: RuleUpdate) -> None:
        ...

    def delete_rule(self, rule_id: int) -> None:
        ...

    def insert_tweet(self, tweet: NewTweet) -> int:
        ...

    def get_tweet(self, tweet_id: int) -> Optional[Tweet]:
        ...

    def patch_tweet(self, tweet_id: int, update: TweetUpdate) -> None:
        ...

    def list_tweets(self, status: Optional[str] = None) -> List[Tweet]:
        ...

    def insert_response(
        self,
        original_tweet_id: str,
        routing_rule_id: int,
        response_text: str,
        status: str,
    ) -> int:
        ...

    def find_response_by_original_tweet(self, original_tweet_id: str) -> Optional[TweetResponse]:
        ...

    def list_responses(self, status: Optional[str] = None) -> List[TweetResponse]:
        ...

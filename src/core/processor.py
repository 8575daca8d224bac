"""Core batch routing pipeline.

This module is storage-agnostic. It only relies on the storage port, so the
router can run against SQLite in production and plain fakes in tests.

Per tweet the router enforces a strict order inside one store transaction:
1) Load the tweet (missing -> per-item failure)
2) Idempotency guard on routing_status
3) Match against a snapshot of the active rules
4) Queue a response and mark the tweet routed, or mark it skipped
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from core.models import (
    RESPONSE_PENDING,
    STATUS_ALREADY_PROCESSED,
    STATUS_ROUTED,
    STATUS_SKIPPED,
    RoutedTweet,
    RoutingResult,
    TweetUpdate,
)
from core.ports import StoragePort
from core.rules_engine import select_rule

LOGGER = logging.getLogger(__name__)

TWEET_NOT_FOUND = "Tweet not found"


class BatchRouter:
    """Routes batches of tweet ids to response templates, once per tweet."""

    def __init__(self, storage: StoragePort) -> None:
        self._storage = storage

    def route_batch(self, tweet_ids: Iterable[int]) -> List[RoutingResult]:
        """Route every id in order and return one result per id.

        A failure on one tweet (missing record, store error) is reported in
        that tweet's result and never stops the rest of the batch.
        """

        results: List[RoutingResult] = []
        for tweet_id in tweet_ids:
            try:
                with self._storage.transaction():
                    result = self._route_one(tweet_id)
            except Exception as exc:
                LOGGER.exception("Routing failed for tweet %s", tweet_id)
                result = RoutingResult(tweet_id=tweet_id, success=False, error=str(exc) or type(exc).__name__)
            results.append(result)

        LOGGER.info(
            "Batch routed: tweets=%s, routed=%s, skipped=%s, failed=%s",
            len(results),
            sum(1 for r in results if r.status == STATUS_ROUTED),
            sum(1 for r in results if r.status == STATUS_SKIPPED),
            sum(1 for r in results if not r.success),
        )
        return results

    def _route_one(self, tweet_id: int) -> RoutingResult:
        tweet = self._storage.get_tweet(tweet_id)
        if tweet is None:
            return RoutingResult(tweet_id=tweet_id, success=False, error=TWEET_NOT_FOUND)

        # Anything past "pending" was finalized earlier, by us or upstream.
        if not tweet.is_unrouted:
            return RoutingResult(tweet_id=tweet_id, success=True, status=STATUS_ALREADY_PROCESSED)

        rule = select_rule(tweet.text, self._storage.list_active_rules())
        if rule is None:
            self._storage.patch_tweet(tweet_id, TweetUpdate(routing_status=STATUS_SKIPPED))
            LOGGER.info("Tweet %s skipped (no matching rule)", tweet.tweet_id)
            return RoutingResult(tweet_id=tweet_id, success=True, status=STATUS_SKIPPED)

        self._storage.insert_response(
            original_tweet_id=tweet.tweet_id,
            routing_rule_id=rule.id,
            response_text=rule.response_template,
            status=RESPONSE_PENDING,
        )
        self._storage.patch_tweet(
            tweet_id,
            TweetUpdate(routing_status=STATUS_ROUTED, matched_rule_id=rule.id),
        )
        LOGGER.info("Tweet %s routed to %s", tweet.tweet_id, rule.name)
        return RoutingResult(tweet_id=tweet_id, success=True, status=STATUS_ROUTED, matched_rule=rule.name)


def list_routed_tweets(storage: StoragePort, status: Optional[str] = None) -> List[RoutedTweet]:
    """Return tweets (newest first) with their matched rule and queued response.

    Rules can be deleted after routing; a dangling matched_rule_id simply
    yields no rule details.
    """

    enriched: List[RoutedTweet] = []
    for tweet in storage.list_tweets(status):
        matched_rule = None
        if tweet.matched_rule_id is not None:
            rule = storage.get_rule(tweet.matched_rule_id)
            if rule is not None:
                matched_rule = {"name": rule.name, "template": rule.response_template}

        pending_response = None
        response = storage.find_response_by_original_tweet(tweet.tweet_id)
        if response is not None:
            pending_response = {"id": response.id, "status": response.status, "text": response.response_text}

        enriched.append(RoutedTweet(tweet=tweet, matched_rule=matched_rule, pending_response=pending_response))
    return enriched

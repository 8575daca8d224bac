"""Exceptions raised by the core and its adapters."""

from __future__ import annotations


class TweetRouterError(Exception):
    """Base class for tweetrouter errors."""


class NotFoundError(TweetRouterError):
    """A referenced record does not exist at read time."""


class RuleNotFoundError(NotFoundError):
    def __init__(self, rule_id: int) -> None:
        super().__init__(f"Rule not found: {rule_id}")
        self.rule_id = rule_id


class TweetNotFoundError(NotFoundError):
    def __init__(self, tweet_id: int) -> None:
        super().__init__(f"Tweet not found: {tweet_id}")
        self.tweet_id = tweet_id


class RuleValidationError(TweetRouterError, ValueError):
    """Rule fields rejected at the admin boundary."""

"""Application entry point for tweetrouter."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from art import tprint

import settings
from client import build_storage
from core.models import NewTweet
from core.processor import BatchRouter, list_routed_tweets
from core.rules_admin import RuleService

NAME = "TWEETROUTER"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    # Console logs go to stderr so JSON on stdout stays pipeable.
    if config.get("console", True):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/tweetrouter.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.CONFIG_DIR, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _route(tweet_ids: list[int]) -> None:
    router = BatchRouter(build_storage())
    results = router.route_batch(tweet_ids)
    _print_json([result.to_dict() for result in results])


def _seed() -> None:
    result = RuleService(build_storage()).initialize_defaults()
    _print_json({"success": result.success, "message": result.message})


def _list_rules() -> None:
    service = RuleService(build_storage())
    rules = service.list_rules_by_priority()
    if not rules:
        print("No rules configured. Run `seed` to add the defaults.")
        return
    for rule in rules:
        state = "active" if rule.is_active else "inactive"
        print(f"{rule.id}. [{rule.priority}] {rule.name} ({state}) | {', '.join(rule.keywords)}")


def _add_tweet(tweet_id: str, text: str, author: Optional[str]) -> None:
    storage = build_storage()
    record_id = storage.insert_tweet(NewTweet(tweet_id=tweet_id, text=text, author=author))
    logging.getLogger(__name__).info("Stored tweet %s as %s", tweet_id, record_id)
    _print_json({"id": record_id, "tweetId": tweet_id})


def _list_tweets(status: Optional[str]) -> None:
    tweets = list_routed_tweets(build_storage(), status)
    _print_json([tweet.to_dict() for tweet in tweets])


def _list_responses(status: Optional[str]) -> None:
    responses = build_storage().list_responses(status)
    _print_json(
        [
            {
                "id": response.id,
                "originalTweetId": response.original_tweet_id,
                "routingRuleId": response.routing_rule_id,
                "responseText": response.response_text,
                "status": response.status,
                "createdAt": response.created_at.isoformat(),
            }
            for response in responses
        ]
    )


def _setup() -> None:
    _print_banner()
    from frontend.app import AdminPanelApp

    AdminPanelApp().run()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="tweetrouter")
    subparsers = parser.add_subparsers(dest="command")

    route_parser = subparsers.add_parser("route", help="Route a batch of stored tweets by id")
    route_parser.add_argument("tweet_ids", nargs="+", type=int)

    subparsers.add_parser("seed", help="Create the default rules (only when none exist)")
    subparsers.add_parser("rules", help="List rules by priority")

    add_parser = subparsers.add_parser("add-tweet", help="Store a tweet for routing")
    add_parser.add_argument("--tweet-id", required=True)
    add_parser.add_argument("--text", required=True)
    add_parser.add_argument("--author")

    tweets_parser = subparsers.add_parser("tweets", help="Show tweets with routing details")
    tweets_parser.add_argument("--status")

    responses_parser = subparsers.add_parser("responses", help="Show queued responses")
    responses_parser.add_argument("--status")

    subparsers.add_parser("config", help="Launch the admin TUI")

    args = parser.parse_args(argv)
    if args.command == "config":
        _setup()
        return

    _configure_logging()
    if args.command == "route":
        _route(args.tweet_ids)
    elif args.command == "seed":
        _seed()
    elif args.command == "rules":
        _list_rules()
    elif args.command == "add-tweet":
        _add_tweet(args.tweet_id, args.text, args.author)
    elif args.command == "tweets":
        _list_tweets(args.status)
    elif args.command == "responses":
        _list_responses(args.status)
    else:
        _print_banner()
        parser.print_help()


if __name__ == "__main__":
    main()

from __future__ import annotations

import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

import adapters.sqlite_storage as sqlite_storage
from adapters.sqlite_storage import SQLiteStorage
from core.errors import RuleNotFoundError, TweetNotFoundError
from core.models import NewRule, NewTweet, RuleUpdate, TweetUpdate
from core.processor import BatchRouter, list_routed_tweets


def _storage(tmp_path) -> SQLiteStorage:
    storage = SQLiteStorage(str(tmp_path / "router.db"))
    storage.init_db()
    return storage


def _rule(name: str = "Baggage Issue", keywords: list[str] | None = None, **kwargs) -> NewRule:
    return NewRule(
        name=name,
        keywords=keywords if keywords is not None else ["baggage", "lost bag"],
        priority=kwargs.get("priority", 8),
        response_template=kwargs.get("response_template", "Please DM your PNR."),
        is_active=kwargs.get("is_active", True),
    )


def test_rule_round_trip_keeps_keyword_order(tmp_path) -> None:
    storage = _storage(tmp_path)

    rule_id = storage.insert_rule(_rule(keywords=["b", "a"]))
    rule = storage.get_rule(rule_id)

    assert rule.keywords == ["b", "a"]
    assert rule.priority == 8
    assert rule.is_active is True
    assert rule.created_at == rule.updated_at
    assert rule.created_at.tzinfo is not None


def test_active_listing_hides_inactive_rules(tmp_path) -> None:
    storage = _storage(tmp_path)
    active_id = storage.insert_rule(_rule("Active"))
    inactive_id = storage.insert_rule(_rule("Inactive", is_active=False))

    assert [r.id for r in storage.list_rules()] == [active_id, inactive_id]
    assert [r.id for r in storage.list_active_rules()] == [active_id]
    assert storage.count_rules() == 2


def test_patch_rule_only_touches_supplied_fields(tmp_path, monkeypatch) -> None:
    storage = _storage(tmp_path)
    rule_id = storage.insert_rule(_rule())
    before = storage.get_rule(rule_id)
    later = before.updated_at + timedelta(minutes=5)
    monkeypatch.setattr(sqlite_storage, "_now", lambda: later.isoformat())

    storage.patch_rule(rule_id, RuleUpdate(priority=3))
    after = storage.get_rule(rule_id)

    assert after.priority == 3
    assert after.name == before.name
    assert after.keywords == before.keywords
    assert after.response_template == before.response_template
    assert after.is_active == before.is_active
    assert after.created_at == before.created_at
    assert after.updated_at == later


def test_empty_patch_still_refreshes_updated_at(tmp_path, monkeypatch) -> None:
    storage = _storage(tmp_path)
    rule_id = storage.insert_rule(_rule())
    later = datetime(2030, 1, 1, tzinfo=timezone.utc)
    monkeypatch.setattr(sqlite_storage, "_now", lambda: later.isoformat())

    storage.patch_rule(rule_id, RuleUpdate())

    assert storage.get_rule(rule_id).updated_at == later


def test_patch_and_delete_missing_rule_raise(tmp_path) -> None:
    storage = _storage(tmp_path)

    with pytest.raises(RuleNotFoundError):
        storage.patch_rule(404, RuleUpdate(name="x"))
    with pytest.raises(RuleNotFoundError):
        storage.delete_rule(404)


def test_delete_rule_leaves_history_dangling(tmp_path) -> None:
    storage = _storage(tmp_path)
    rule_id = storage.insert_rule(_rule())
    tweet_id = storage.insert_tweet(NewTweet(tweet_id="1001", text="my baggage is gone"))
    BatchRouter(storage).route_batch([tweet_id])

    storage.delete_rule(rule_id)

    assert storage.get_rule(rule_id) is None
    assert storage.get_tweet(tweet_id).matched_rule_id == rule_id
    assert storage.find_response_by_original_tweet("1001").routing_rule_id == rule_id


def test_patch_missing_tweet_raises(tmp_path) -> None:
    storage = _storage(tmp_path)

    with pytest.raises(TweetNotFoundError):
        storage.patch_tweet(5, TweetUpdate(routing_status="skipped"))


def test_tweets_list_newest_first_and_filter_by_status(tmp_path) -> None:
    storage = _storage(tmp_path)
    base = datetime(2024, 5, 1, tzinfo=timezone.utc)
    old_id = storage.insert_tweet(NewTweet(tweet_id="1", text="a", created_at=base))
    new_id = storage.insert_tweet(NewTweet(tweet_id="2", text="b", created_at=base + timedelta(hours=1)))
    storage.patch_tweet(old_id, TweetUpdate(routing_status="skipped"))

    assert [t.id for t in storage.list_tweets()] == [new_id, old_id]
    assert [t.id for t in storage.list_tweets("skipped")] == [old_id]
    assert storage.get_tweet(new_id).routing_status is None


def test_pending_filter_includes_freshly_ingested_tweets(tmp_path) -> None:
    storage = _storage(tmp_path)
    fresh_id = storage.insert_tweet(NewTweet(tweet_id="1", text="flight delayed"))
    skipped_id = storage.insert_tweet(NewTweet(tweet_id="2", text="nice crew"))
    marked_id = storage.insert_tweet(NewTweet(tweet_id="3", text="lost bag"))
    storage.patch_tweet(skipped_id, TweetUpdate(routing_status="skipped"))
    storage.patch_tweet(marked_id, TweetUpdate(routing_status="pending"))

    pending = {t.id for t in storage.list_tweets("pending")}
    assert pending == {fresh_id, marked_id}
    assert {routed.tweet.id for routed in list_routed_tweets(storage, "pending")} == {fresh_id, marked_id}


def test_tweets_with_mixed_offsets_list_by_instant(tmp_path) -> None:
    storage = _storage(tmp_path)
    ist = timezone(timedelta(hours=5, minutes=30))
    # 10:00 IST is 04:30 UTC, earlier than 06:00 UTC.
    older_id = storage.insert_tweet(NewTweet(tweet_id="1", text="a", created_at=datetime(2024, 5, 1, 10, 0, tzinfo=ist)))
    newer_id = storage.insert_tweet(
        NewTweet(tweet_id="2", text="b", created_at=datetime(2024, 5, 1, 6, 0, tzinfo=timezone.utc))
    )

    assert [t.id for t in storage.list_tweets()] == [newer_id, older_id]
    assert storage.get_tweet(older_id).created_at == datetime(2024, 5, 1, 4, 30, tzinfo=timezone.utc)


def test_naive_created_at_is_stored_as_utc(tmp_path) -> None:
    storage = _storage(tmp_path)
    tweet_id = storage.insert_tweet(NewTweet(tweet_id="1", text="a", created_at=datetime(2024, 5, 1, 6, 0)))

    created_at = storage.get_tweet(tweet_id).created_at
    assert created_at.utcoffset() == timedelta(0)
    assert created_at == datetime(2024, 5, 1, 6, 0, tzinfo=timezone.utc)


def test_transaction_rolls_back_on_error(tmp_path) -> None:
    storage = _storage(tmp_path)

    with pytest.raises(RuntimeError):
        with storage.transaction():
            storage.insert_rule(_rule())
            raise RuntimeError("boom")

    assert storage.count_rules() == 0


def test_insert_rules_is_one_unit(tmp_path) -> None:
    storage = _storage(tmp_path)

    ids = storage.insert_rules([_rule("A"), _rule("B")])

    assert [r.name for r in storage.list_rules()] == ["A", "B"]
    assert ids == [r.id for r in storage.list_rules()]


def test_batch_routing_end_to_end(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.insert_rule(_rule("Medical Refund", ["sick"], priority=10, response_template="Get well"))
    storage.insert_rule(_rule("Baggage Issue", ["lost bag"], priority=8))
    skip_id = storage.insert_tweet(NewTweet(tweet_id="t2", text="great crew today"))
    route_id = storage.insert_tweet(NewTweet(tweet_id="t3", text="lost bag and I feel sick"))

    results = BatchRouter(storage).route_batch([9999, skip_id, route_id])

    assert [r.to_dict() for r in results] == [
        {"tweetId": 9999, "success": False, "error": "Tweet not found"},
        {"tweetId": skip_id, "success": True, "status": "skipped"},
        {"tweetId": route_id, "success": True, "status": "routed", "matchedRule": "Medical Refund"},
    ]
    responses = storage.list_responses("pending")
    assert len(responses) == 1
    assert responses[0].original_tweet_id == "t3"
    assert responses[0].response_text == "Get well"


class _SlowStorage(SQLiteStorage):
    """Widens the window between the status check and the writes."""

    def list_active_rules(self):
        rules = super().list_active_rules()
        time.sleep(0.05)
        return rules


def test_concurrent_batches_route_a_tweet_once(tmp_path) -> None:
    storage = _SlowStorage(str(tmp_path / "router.db"))
    storage.init_db()
    storage.insert_rule(_rule("Medical Refund", ["sick"], priority=10))
    tweet_id = storage.insert_tweet(NewTweet(tweet_id="race", text="sick"))
    router = BatchRouter(storage)
    barrier = threading.Barrier(2)
    results = []
    lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        batch = router.route_batch([tweet_id])
        with lock:
            results.extend(batch)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    statuses = sorted(r.status for r in results)
    assert statuses == ["already_processed", "routed"]
    assert len(storage.list_responses()) == 1

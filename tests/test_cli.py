"""Tests for the operator CLI."""

import json

import pytest
from redis.exceptions import ConnectionError
from rich.console import Console
from typer.testing import CliRunner

from storefront_queue import Job, JobType, QueueKeys, QueueStore
from storefront_runtime import cli, wiring

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_env(monkeypatch, redis_client):
    monkeypatch.delenv("PIPELINE_CONFIG", raising=False)
    monkeypatch.setattr(wiring, "connect_redis", lambda settings: redis_client)
    monkeypatch.setattr(cli, "setup_logging", lambda settings: None)
    monkeypatch.setattr(cli, "console", Console(width=200))


def test_emit_queues_event(store) -> None:
    result = runner.invoke(
        cli.app, ["emit", '{"type": "product.viewed", "sessionId": "s1", "productId": 5}']
    )

    assert result.exit_code == 0, result.output
    [raw] = store.scan_all(QueueKeys.EVENTS)
    event = json.loads(raw)
    assert event["productId"] == 5
    assert event["id"]
    assert event["timestamp"] > 0


def test_emit_rejects_invalid_event(store) -> None:
    result = runner.invoke(cli.app, ["emit", "--no-fill", '{"type": "product.viewed"}'])

    assert result.exit_code == 1
    assert store.length(QueueKeys.EVENTS) == 0


def test_emit_fails_when_event_is_not_queued(store, monkeypatch) -> None:
    def broken_push(self, queue, item):
        raise ConnectionError("redis down")

    monkeypatch.setattr(QueueStore, "push", broken_push)

    result = runner.invoke(cli.app, ["emit", '{"type": "product.viewed", "sessionId": "s"}'])

    assert result.exit_code == 1
    assert "not queued" in result.output
    assert "Emitted" not in result.output
    assert store.length(QueueKeys.EVENTS) == 0


def test_emit_from_file(store, tmp_path) -> None:
    path = tmp_path / "event.json"
    path.write_text('{"type": "user.login", "userId": "u1", "sessionId": "s"}', encoding="utf-8")

    result = runner.invoke(cli.app, ["emit", "--file", str(path)])

    assert result.exit_code == 0, result.output
    assert store.length(QueueKeys.EVENTS) == 1


def test_enqueue_and_run_once(store, tmp_path) -> None:
    config = tmp_path / "settings.yaml"
    config.write_text("processor:\n  pop_timeout: 0\n", encoding="utf-8")

    result = runner.invoke(
        cli.app, ["enqueue", "persist.memgraph", "--data", '{"productId": 1}']
    )
    assert result.exit_code == 0, result.output
    assert store.length(QueueKeys.JOBS) == 1

    result = runner.invoke(cli.app, ["--config", str(config), "run", "--once"])

    assert result.exit_code == 0, result.output
    assert store.length(QueueKeys.JOBS) == 0
    assert "jobs:queue" in result.output


def test_enqueue_delayed(store) -> None:
    result = runner.invoke(cli.app, ["enqueue", "cleanup.old_data", "--delay-ms", "60000"])

    assert result.exit_code == 0, result.output
    assert store.length(QueueKeys.DELAYED) == 1


def test_enqueue_unknown_type(store) -> None:
    result = runner.invoke(cli.app, ["enqueue", "reindex.everything"])

    assert result.exit_code == 1
    assert store.length(QueueKeys.JOBS) == 0


def test_stats(store) -> None:
    store.push(QueueKeys.EVENTS, "{}")

    result = runner.invoke(cli.app, ["stats"])

    assert result.exit_code == 0, result.output
    assert "events:queue" in result.output
    assert "jobs:failed" in result.output


def test_failed_and_retry_failed(store) -> None:
    dead = Job(type=JobType.PERSIST_VECTOR, data={}, attempts=3)
    store.push(QueueKeys.FAILED, dead.to_json())

    listed = runner.invoke(cli.app, ["failed"])
    assert listed.exit_code == 0, listed.output
    assert "persist.qdrant" in listed.output

    replayed = runner.invoke(cli.app, ["retry-failed"])
    assert replayed.exit_code == 0, replayed.output
    assert store.length(QueueKeys.FAILED) == 0
    assert Job.from_json(store.scan_all(QueueKeys.JOBS)[0]).attempts == 0


def test_failed_when_empty(store) -> None:
    result = runner.invoke(cli.app, ["failed"])

    assert result.exit_code == 0
    assert "No dead-lettered jobs" in result.output

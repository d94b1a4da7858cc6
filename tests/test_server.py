from unittest import mock

import pytest
import redis

from bullscows.server import Application, ApplicationConfig, main


@pytest.fixture
def env(monkeypatch):
    for name in ("DB_MATCHES", "DB_MATCHES_PWD", "DB_MATCHES_DB", "ALLOWED_HOST", "API_ADDR"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_create_app_connects_with_environment(env):
    env.setenv("DB_MATCHES", "cache.example.com:6380")
    env.setenv("DB_MATCHES_DB", "2")
    with mock.patch("redis.Redis") as redis_cls:
        app = Application(ApplicationConfig()).create_app()
    redis_cls.assert_called_once_with(
        host="cache.example.com", port=6380, password=None, db=2, decode_responses=True
    )
    redis_cls.return_value.ping.assert_called_once_with()
    rules = {rule.rule for rule in app.url_map.iter_rules()}
    assert "/api/v1/matches/create" in rules
    assert "/api/v1/matches/join/<room_id>" in rules or any(
        rule.startswith("/api/v1/matches/join/") for rule in rules
    )


def test_created_app_serves_create_room(env):
    with mock.patch("redis.Redis") as redis_cls:
        client = Application(ApplicationConfig()).create_app().test_client()
        response = client.post("/api/v1/matches/create", json={"username": "alice"})
    assert response.status_code == 200
    data = response.get_json()
    assert len(data["room_id"]) == 7
    stored_key = redis_cls.return_value.hset.call_args.args[0]
    assert stored_key == f"room:{data['room_id']}"


def test_created_app_allows_configured_origin(env):
    origin = "http://app.example.com"
    env.setenv("ALLOWED_HOST", origin)
    with mock.patch("redis.Redis"):
        client = Application(ApplicationConfig()).create_app().test_client()
    allowed = client.options(
        "/api/v1/matches/create",
        headers={"Origin": origin, "Access-Control-Request-Method": "POST"},
    )
    denied = client.options(
        "/api/v1/matches/create",
        headers={"Origin": "http://other.example.com", "Access-Control-Request-Method": "POST"},
    )
    assert allowed.headers["Access-Control-Allow-Origin"] == origin
    assert "Access-Control-Allow-Origin" not in denied.headers


def test_create_app_raises_when_database_is_down(env):
    with mock.patch("redis.Redis") as redis_cls:
        redis_cls.return_value.ping.side_effect = redis.ConnectionError("down")
        with pytest.raises(redis.ConnectionError):
            Application(ApplicationConfig()).create_app()


def test_run_fails_before_serving_when_database_is_down(env):
    with mock.patch("redis.Redis") as redis_cls:
        redis_cls.return_value.ping.side_effect = redis.ConnectionError("down")
        with pytest.raises(redis.ConnectionError):
            Application(ApplicationConfig(addr="127.0.0.1:0")).run()


def test_main_reports_failure_when_database_is_down(env):
    with mock.patch("redis.Redis") as redis_cls:
        redis_cls.return_value.ping.side_effect = redis.ConnectionError("down")
        assert main([]) == 1


def test_main_rejects_unknown_arguments(env):
    with pytest.raises(SystemExit) as excinfo:
        main(["--unknown"])
    assert excinfo.value.code == 2
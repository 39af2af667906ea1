from datetime import timedelta

import pytest

from craftsman_hub.core.config import Settings, parse_duration
from craftsman_hub.core.errors import BadRequest
from craftsman_hub.core.query_options import pagination, resolve_query_options


def test_defaults():
    options = resolve_query_options([])

    assert options.filter == {}
    assert options.sort == []
    assert options.fields == []
    assert (options.page, options.page_limit) == (1, 100)


def test_reserved_keys_and_filters():
    options = resolve_query_options([
        ("page", "3"),
        ("limit", "20"),
        ("sort", "-rating, name"),
        ("fields", "name,-photo"),
        ("role", "craftsman"),
    ])

    assert options.page == 3
    assert options.page_limit == 20
    assert options.sort == ["-rating", "name"]
    assert options.fields == ["name", "-photo"]
    assert options.filter == {"role": "craftsman"}


def test_operator_filters():
    options = resolve_query_options([
        ("rating[gte]", "4"),
        ("rating[lt]", "5"),
        ("role[in]", "client,craftsman"),
    ])

    assert options.filter == {
        "rating": {"gte": "4", "lt": "5"},
        "role": {"in": ["client", "craftsman"]},
    }


def test_plain_and_operator_filter_on_same_field():
    options = resolve_query_options([("rating", "4"), ("rating[ne]", "3")])

    assert options.filter == {"rating": {"eq": "4", "ne": "3"}}


def test_unknown_operator():
    with pytest.raises(BadRequest):
        resolve_query_options([("rating[regex]", ".*")])


@pytest.mark.parametrize("key,value", [("page", "0"), ("page", "two"), ("limit", "-5")])
def test_invalid_paging(key, value):
    with pytest.raises(BadRequest):
        resolve_query_options([(key, value)])


def test_pagination_rounds_up():
    assert pagination(2, 10, 25) == {"page": 2, "page_limit": 10, "total_count": 25, "total_pages": 3}
    assert pagination(1, 10, 0)["total_pages"] == 0
    assert pagination(1, 10, 10)["total_pages"] == 1


@pytest.mark.parametrize("value,expected", [
    ("90d", timedelta(days=90)),
    ("12h", timedelta(hours=12)),
    ("30m", timedelta(minutes=30)),
    ("45s", timedelta(seconds=45)),
    ("600", timedelta(seconds=600)),
    (60, timedelta(seconds=60)),
])
def test_parse_duration(value, expected):
    assert parse_duration(value) == expected


def test_parse_duration_rejects_garbage():
    with pytest.raises(ValueError):
        parse_duration("ninety days")


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "from-env")
    monkeypatch.setenv("JWT_EXPIRES_IN", "1h")
    monkeypatch.setenv("APP_MODE", "development")

    settings = Settings.from_env()

    assert settings.secret_key == "from-env"
    assert settings.jwt_expires_in == timedelta(hours=1)
    assert settings.is_development


def test_settings_require_secret(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)

    with pytest.raises(RuntimeError):
        Settings.from_env()

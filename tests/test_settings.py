import pytest

from routers.settings import (
    get_batch_delay_seconds,
    get_batch_size,
    get_geocode_user_agent,
    get_top_n,
)
from settings_helper import get_setting_value, set_setting_value


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def test_defaults_when_unset(db):
    assert get_geocode_user_agent(db) == "LocalGuide/1.0"
    assert get_batch_size(db) == 30
    assert get_batch_delay_seconds(db) == 2.0
    assert get_top_n(db) == 4


def test_stored_values_are_typed(db):
    set_setting_value(db, 'geocode', 'batch_size', '10', 'number')
    set_setting_value(db, 'geocode', 'batch_delay_ms', '1500', 'number')
    set_setting_value(db, 'geocode', 'user_agent', 'MyGuide/2.0 (me@example.com)')
    set_setting_value(db, 'nearby', 'top_n', '6', 'number')
    db.commit()

    assert get_batch_size(db) == 10
    assert get_batch_delay_seconds(db) == 1.5
    assert get_geocode_user_agent(db) == 'MyGuide/2.0 (me@example.com)'
    assert get_top_n(db) == 6


def test_bad_values_fall_back_to_defaults(db):
    set_setting_value(db, 'geocode', 'batch_size', '0', 'number')
    set_setting_value(db, 'geocode', 'batch_delay_ms', 'soon', 'string')
    set_setting_value(db, 'nearby', 'top_n', 'lots', 'number')
    db.commit()

    assert get_batch_size(db) == 30
    assert get_batch_delay_seconds(db) == 2.0
    assert get_top_n(db) == 4


def test_upsert_updates_existing_row(db):
    set_setting_value(db, 'nearby', 'top_n', '3', 'number')
    set_setting_value(db, 'nearby', 'top_n', '5', 'number')
    db.commit()
    assert get_setting_value(db, 'nearby', 'top_n') == 5


def test_json_and_boolean_values(db):
    set_setting_value(db, 'misc', 'flags', '{"a": 1}', 'json')
    set_setting_value(db, 'misc', 'enabled', 'yes', 'boolean')
    db.commit()
    assert get_setting_value(db, 'misc', 'flags') == {"a": 1}
    assert get_setting_value(db, 'misc', 'enabled') is True

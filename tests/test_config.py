from datetime import timedelta

import pytest
from pydantic import ValidationError

from rollingrequests.config import RollingConfig


def test_config_defaults():
    config = RollingConfig()

    assert config.simultaneous_limit == 1
    assert config.timeout == 30.0
    assert config.force_http2 is False
    assert config.auto_advance is True


def test_config_accepts_limit_alias_and_timedelta():
    config = RollingConfig(limit=5, timeout=timedelta(milliseconds=1))

    assert config.simultaneous_limit == 5
    assert config.timeout == pytest.approx(0.001)


@pytest.mark.parametrize("field,value", [("limit", 0), ("limit", -3), ("timeout", 0)])
def test_config_rejects_non_positive_values(field, value):
    with pytest.raises(ValidationError):
        RollingConfig(**{field: value})


def test_config_is_frozen():
    config = RollingConfig()

    with pytest.raises(ValidationError):
        config.simultaneous_limit = 3


@pytest.mark.parametrize("value", [True, False, 2.0, "3"])
def test_config_limit_requires_a_strict_integer(value):
    with pytest.raises(ValidationError):
        RollingConfig(limit=value)

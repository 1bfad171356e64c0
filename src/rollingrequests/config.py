"""
Executor configuration.
"""

from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, field_validator

DEFAULT_TIMEOUT_SECONDS = 30.0


class RollingConfig(BaseModel):
    """
    Configuration of a ``RollingRequests`` executor, fixed at construction.

    Parameters
    ----------
    simultaneous_limit : int
        Maximum number of requests dispatched concurrently per window.
    timeout : float
        Per-request transport timeout in seconds. A ``timedelta`` is accepted.
    force_http2 : bool
        Speak HTTP/2 only, without HTTP/1.1 fallback.
    auto_advance : bool
        Remove dispatched requests from the queue after each window. When
        ``False`` the caller advances with ``clear_processed_requests``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    # strict: a bool is not a limit
    simultaneous_limit: int = Field(default=1, alias="limit", strict=True, ge=1)
    timeout: PositiveFloat = DEFAULT_TIMEOUT_SECONDS
    force_http2: bool = False
    auto_advance: bool = True

    @field_validator("timeout", mode="before")
    @classmethod
    def coerce_timedelta(cls, value: object) -> object:
        if isinstance(value, timedelta):
            return value.total_seconds()
        return value

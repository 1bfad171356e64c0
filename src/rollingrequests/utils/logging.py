import logging
import typing as t
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager

import structlog

_DROP_LOG_FIELDS = frozenset(
    {
        "body",
        "content",
        "data",
        "files",
        "form",
        "headers",
        "post_data",
        "response_text",
    }
)


def drop_payload_fields(
    logger: t.Any, method_name: str, event_dict: MutableMapping[str, t.Any]
) -> MutableMapping[str, t.Any]:
    """
    Remove request/response payloads from log events.
    """
    for key in _DROP_LOG_FIELDS.intersection(event_dict):
        del event_dict[key]
    return event_dict


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(format="%(message)s", level=level, force=True)
    logging.getLogger("rollingrequests").setLevel(level)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            drop_payload_fields,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


@contextmanager
def logging_context(**required_context: t.Any) -> Iterator[None]:
    current = structlog.contextvars.get_contextvars()
    to_bind = {k: v for k, v in required_context.items() if k not in current}

    if to_bind:
        with structlog.contextvars.bound_contextvars(**to_bind):
            yield
    else:
        yield

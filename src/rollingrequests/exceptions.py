"""
Rollingrequests-specific runtime exceptions.
"""

from __future__ import annotations

import httpx

# curl-style error numbers reported in ``Request.response_errno``
ERRNO_UNKNOWN = 0
ERRNO_UNSUPPORTED_PROTOCOL = 1
ERRNO_URL_MALFORMAT = 3
ERRNO_COULDNT_RESOLVE_HOST = 6
ERRNO_COULDNT_CONNECT = 7
ERRNO_OPERATION_TIMEDOUT = 28
ERRNO_SSL_CONNECT_ERROR = 35
ERRNO_BAD_FUNCTION_ARGUMENT = 43
ERRNO_RECV_ERROR = 56


class ConfigurationError(RuntimeError):
    """
    Raised when the executor transport cannot be built.

    Notes
    -----
    This is a startup-time failure: it surfaces from the ``RollingRequests``
    constructor, before any request is queued.
    """


class RequestBuildError(ValueError):
    """
    Raised when a request descriptor cannot be turned into an HTTP request.
    """


class DispatchError(RuntimeError):
    """
    Stand-in error for a dispatch task that failed outside the HTTP layer.

    The original exception is kept as ``__cause__``.
    """


def is_timeout_error(*, error: BaseException | None) -> bool:
    """
    Detect whether an error, or anything in its cause chain, is a timeout.

    Parameters
    ----------
    error : BaseException | None
        Error to inspect.

    Returns
    -------
    bool
        ``True`` for ``httpx.TimeoutException`` and builtin ``TimeoutError``.
    """
    seen: set[int] = set()
    current = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, (httpx.TimeoutException, TimeoutError)):
            return True
        current = current.__cause__
    return False


def describe_error(*, error: BaseException) -> str:
    """
    Return the error message, or the error type name when the message is empty.
    """
    return str(object=error) or type(error).__name__


def transport_errno(*, error: BaseException) -> int:
    """
    Map an error to a curl-style error number.

    Parameters
    ----------
    error : BaseException
        Error captured for a dispatched request.

    Returns
    -------
    int
        Error number, ``0`` when the error has no transport meaning.
    """
    if is_timeout_error(error=error):
        return ERRNO_OPERATION_TIMEDOUT
    if isinstance(error, RequestBuildError):
        return ERRNO_BAD_FUNCTION_ARGUMENT
    if isinstance(error, httpx.InvalidURL):
        return ERRNO_URL_MALFORMAT
    if isinstance(error, httpx.UnsupportedProtocol):
        return ERRNO_UNSUPPORTED_PROTOCOL
    if isinstance(error, httpx.ConnectError):
        message = str(object=error).lower()
        if "ssl" in message or "certificate" in message:
            return ERRNO_SSL_CONNECT_ERROR
        if "name or service" in message or "nodename" in message or "resolve" in message:
            return ERRNO_COULDNT_RESOLVE_HOST
        return ERRNO_COULDNT_CONNECT
    if isinstance(error, httpx.TransportError):
        return ERRNO_RECV_ERROR
    return ERRNO_UNKNOWN

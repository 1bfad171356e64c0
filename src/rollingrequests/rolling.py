"""
Core engine executing queued HTTP requests in bounded-concurrency windows.

Requests are queued in FIFO order. Each call to ``execute_requests`` takes at
most ``simultaneous_limit`` requests from the head of the queue, sends them
concurrently through one shared ``httpx.AsyncClient`` and returns one
``Outcome`` per request, in queue order.
"""

from __future__ import annotations

import asyncio
import threading
import typing as t
import uuid
from collections.abc import AsyncIterator, Iterable

import httpx
import structlog

from rollingrequests.config import RollingConfig
from rollingrequests.exceptions import (
    ConfigurationError,
    DispatchError,
    RequestBuildError,
    describe_error,
)
from rollingrequests.models import Outcome
from rollingrequests.request import Request
from rollingrequests.utils.logging import logging_context

log = structlog.get_logger(__name__)

# Failures owned by a single request; anything else is a dispatch task failure.
_REQUEST_ERRORS = (httpx.HTTPError, httpx.InvalidURL, RequestBuildError)


class RollingRequests:
    """
    Queue HTTP requests and execute them in windows of limited concurrency.

    Windows are serialized: overlapping ``execute_requests`` calls wait for
    each other, so a queued request is never in flight twice at once.

    Notes
    -----
    With ``auto_advance`` (the default) the dispatched prefix is removed from
    the queue once its window completes, failures included. Otherwise the
    queue is left untouched and the caller advances it with
    ``clear_processed_requests``.
    """

    def __init__(
        self,
        config: RollingConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        **overrides: t.Any,
    ) -> None:
        """
        Initialize the executor and build its HTTP client.

        Parameters
        ----------
        config : RollingConfig | None, optional
            Executor configuration. Defaults to ``RollingConfig()``.
        transport : httpx.AsyncBaseTransport | None, optional
            Transport for the shared client, e.g. ``httpx.MockTransport``.
        **overrides : typing.Any
            ``RollingConfig`` fields overriding ``config``.

        Raises
        ------
        ConfigurationError
            If the HTTP client cannot be built.
        pydantic.ValidationError
            If the configuration values are invalid.
        """
        self._config = self._resolve_config(config=config, overrides=overrides)
        self._pending: list[Request] = []
        self._pending_lock = threading.Lock()
        self._window_lock = asyncio.Lock()
        self._client = self._build_client(transport=transport)

        log.debug(
            event="Initialized RollingRequests",
            simultaneous_limit=self._config.simultaneous_limit,
            timeout=self._config.timeout,
            force_http2=self._config.force_http2,
            auto_advance=self._config.auto_advance,
        )

    @staticmethod
    def _resolve_config(
        *, config: RollingConfig | None, overrides: dict[str, t.Any]
    ) -> RollingConfig:
        if config is not None and not overrides:
            return config
        if "simultaneous_limit" in overrides:
            overrides["limit"] = overrides.pop("simultaneous_limit")
        base = config.model_dump(by_alias=True) if config is not None else {}
        return RollingConfig.model_validate({**base, **overrides})

    def _build_client(self, *, transport: httpx.AsyncBaseTransport | None) -> httpx.AsyncClient:
        """
        Build the HTTP client shared by every dispatched request.

        Parameters
        ----------
        transport : httpx.AsyncBaseTransport | None
            Optional transport override.

        Returns
        -------
        httpx.AsyncClient
            Client configured with the executor timeout and protocol preference.
        """
        try:
            return httpx.AsyncClient(
                timeout=self._config.timeout,
                http1=not self._config.force_http2,
                http2=self._config.force_http2,
                transport=transport,
            )
        except ImportError as error:
            log.error(event="HTTP/2 transport unavailable", error=str(object=error))
            raise ConfigurationError(
                "force_http2 requires the 'h2' package (pip install 'httpx[http2]')"
            ) from error
        except (TypeError, ValueError) as error:
            log.error(event="Invalid transport configuration", error=str(object=error))
            raise ConfigurationError(f"Cannot build HTTP client: {error}") from error

    @property
    def config(self) -> RollingConfig:
        return self._config

    @property
    def simultaneous_limit(self) -> int:
        return self._config.simultaneous_limit

    @property
    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    @property
    def pending_requests(self) -> tuple[Request, ...]:
        """Snapshot of the queue, head first."""
        with self._pending_lock:
            return tuple(self._pending)

    def __len__(self) -> int:
        return self.pending_count

    def add_request(self, request: Request) -> None:
        """
        Append a request to the tail of the queue.

        Parameters
        ----------
        request : Request
            Request to queue. It is copied when dispatched, never mutated.
        """
        with self._pending_lock:
            self._pending.append(request)
            pending_count = len(self._pending)
        log.debug(
            event="Queued request",
            method=str(object=request.method),
            url=request.url,
            extra_info=request.extra_info,
            pending_count=pending_count,
        )

    def add_requests(self, requests: Iterable[Request]) -> None:
        """
        Append several requests to the queue, keeping their order.

        Parameters
        ----------
        requests : Iterable[Request]
            Requests to queue.
        """
        batch = list(requests)
        with self._pending_lock:
            self._pending.extend(batch)
            pending_count = len(self._pending)
        log.debug(event="Queued requests", added_count=len(batch), pending_count=pending_count)

    def _read_window(self) -> list[Request]:
        """
        Copy the head of the queue without removing it.

        Returns
        -------
        list[Request]
            Dispatch copies of at most ``simultaneous_limit`` queued requests.
        """
        with self._pending_lock:
            head = self._pending[: self._config.simultaneous_limit]
        return [request.dispatch_copy() for request in head]

    async def execute_requests(self) -> list[Outcome]:
        """
        Execute one window of queued requests concurrently.

        Returns
        -------
        list[Outcome]
            One outcome per dispatched request, in queue order. Empty when the
            queue is empty.

        Notes
        -----
        Request failures never abort the window: transport errors and failed
        dispatch tasks are returned as error outcomes in their slot.
        """
        async with self._window_lock:
            window = self._read_window()
            if not window:
                log.debug(event="No pending requests to execute")
                return []

            window_id = str(object=uuid.uuid4())
            with logging_context(window_id=window_id, window_size=len(window)):
                log.info(
                    event="Executing request window",
                    simultaneous_limit=self._config.simultaneous_limit,
                )
                tasks = [
                    asyncio.create_task(
                        coro=self._dispatch(request=request),
                        name=f"rolling_dispatch_{window_id}_{index}",
                    )
                    for index, request in enumerate(window)
                ]
                results = await asyncio.gather(*tasks, return_exceptions=True)
                outcomes = [
                    self._collect(request=request, result=result)
                    for request, result in zip(window, results, strict=True)
                ]

                if self._config.auto_advance:
                    self._advance_window(count=len(window))

                error_count = sum(1 for outcome in outcomes if not outcome.ok)
                log.info(
                    event="Request window completed",
                    success_count=len(outcomes) - error_count,
                    error_count=error_count,
                    pending_count=self.pending_count,
                )
        return outcomes

    def _collect(self, *, request: Request, result: Outcome | BaseException) -> Outcome:
        """
        Turn a gathered task result into the outcome for its slot.

        Parameters
        ----------
        request : Request
            Dispatch copy the task was given.
        result : Outcome | BaseException
            Task result or the exception that ended the task.

        Returns
        -------
        Outcome
            The task outcome, or a ``DispatchError`` outcome if the task failed.
        """
        if not isinstance(result, BaseException):
            return result
        log.error(
            event="Dispatch task failed",
            method=str(object=request.method),
            url=request.url,
            extra_info=request.extra_info,
            error=repr(result),
            exc_info=result,
        )
        error = DispatchError(f"Dispatch task failed for {request.url}: {result!r}")
        error.__cause__ = result
        return Outcome.from_error(request=request, error=error)

    async def _dispatch(self, *, request: Request) -> Outcome:
        """
        Send one request and capture its response or transport error.

        Parameters
        ----------
        request : Request
            Dispatch copy to send.

        Returns
        -------
        Outcome
            Success or error outcome for the request.
        """
        log.debug(
            event="Dispatching request",
            method=str(object=request.method),
            url=request.url,
            extra_info=request.extra_info,
        )
        try:
            http_request = self._build_http_request(request=request)
            response = await self._client.send(request=http_request)
        except _REQUEST_ERRORS as error:
            log.warning(
                event="Request failed",
                method=str(object=request.method),
                url=request.url,
                extra_info=request.extra_info,
                error_type=type(error).__name__,
                error=describe_error(error=error),
            )
            return Outcome.from_error(request=request, error=error)

        log.debug(
            event="Request completed",
            method=str(object=request.method),
            url=request.url,
            extra_info=request.extra_info,
            status_code=response.status_code,
        )
        return Outcome.from_response(request=request, response=response)

    def _build_http_request(self, *, request: Request) -> httpx.Request:
        """
        Build the httpx request for a descriptor.

        Parameters
        ----------
        request : Request
            Descriptor to convert.

        Returns
        -------
        httpx.Request
            Request ready to be sent by the shared client.

        Raises
        ------
        RequestBuildError
            If the descriptor has both a body and a multipart form, or carries
            headers httpx cannot encode.
        """
        if request.post_data is not None and request.form is not None:
            raise RequestBuildError(
                f"Request to {request.url} carries both post_data and a multipart form"
            )
        kwargs: dict[str, t.Any] = {}
        if request.headers:
            kwargs["headers"] = request.headers
        if request.form is not None:
            kwargs["files"] = request.form.to_httpx_files()
        elif request.post_data is not None:
            kwargs["content"] = request.post_data
        try:
            return self._client.build_request(
                method=str(object=request.method),
                url=request.url,
                **kwargs,
            )
        except (TypeError, ValueError) as error:
            raise RequestBuildError(f"Cannot build request to {request.url}: {error}") from error

    def _advance_window(self, *, count: int) -> None:
        """
        Remove a completed window from the head of the queue.

        Parameters
        ----------
        count : int
            Number of requests dispatched in the window.
        """
        with self._pending_lock:
            removed = min(count, len(self._pending))
            del self._pending[:removed]
        if removed < count:
            log.warning(
                event="Queue shorter than completed window",
                window_size=count,
                removed_count=removed,
            )

    def clear_processed_requests(self, count: int) -> None:
        """
        Remove processed requests from the head of the queue.

        Parameters
        ----------
        count : int
            Number of requests to remove, typically the length of the last
            ``execute_requests`` result.

        Raises
        ------
        ValueError
            If ``count`` is negative or larger than the queue. Nothing is
            removed in that case.
        """
        with self._pending_lock:
            pending_count = len(self._pending)
            if count < 0 or count > pending_count:
                raise ValueError(
                    f"Cannot clear {count} request(s): {pending_count} pending"
                )
            del self._pending[:count]
        log.debug(
            event="Cleared processed requests",
            cleared_count=count,
            pending_count=pending_count - count,
        )

    async def drain(self) -> AsyncIterator[list[Outcome]]:
        """
        Execute windows until the queue is empty.

        Yields
        ------
        list[Outcome]
            Outcomes of each window, in queue order.

        Notes
        -----
        When ``auto_advance`` is off, each window is cleared before it is
        yielded.
        """
        while self.pending_count:
            outcomes = await self.execute_requests()
            if not outcomes:
                return
            if not self._config.auto_advance:
                self.clear_processed_requests(len(outcomes))
            yield outcomes

    async def aclose(self) -> None:
        """
        Close the shared HTTP client. Queued requests are kept.
        """
        await self._client.aclose()
        log.debug(event="RollingRequests closed", pending_count=self.pending_count)

    async def __aenter__(self) -> RollingRequests:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: t.Any,
    ) -> None:
        await self.aclose()

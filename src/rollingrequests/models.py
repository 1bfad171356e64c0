import typing as t
from dataclasses import dataclass

import httpx

from rollingrequests.exceptions import describe_error, is_timeout_error, transport_errno
from rollingrequests.request import Request


@dataclass
class Outcome:
    """
    Result of one dispatched request: a response or an error, never both.

    ``request`` is the copy that was dispatched, with its ``response_*``
    fields filled in.
    """

    request: Request
    response: httpx.Response | None = None
    error: BaseException | None = None

    @classmethod
    def from_response(cls, request: Request, response: httpx.Response) -> "Outcome":
        request.set_response_text(response.text)
        request.set_response_info(
            f"{response.http_version} {response.status_code} {response.reason_phrase}".strip()
        )
        return cls(request=request, response=response)

    @classmethod
    def from_error(cls, request: Request, error: BaseException) -> "Outcome":
        request.set_response_error(describe_error(error=error))
        request.set_response_errno(transport_errno(error=error))
        return cls(request=request, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def is_timeout(self) -> bool:
        return is_timeout_error(error=self.error)

    @property
    def tag(self) -> str | None:
        return self.request.extra_info

    @property
    def status_code(self) -> int | None:
        return self.response.status_code if self.response is not None else None

    @property
    def text(self) -> str | None:
        return self.request.response_text

    def json(self) -> t.Any:
        """
        Decode the response body as JSON.

        Raises
        ------
        RuntimeError
            If the outcome is an error; the original error is chained.
        """
        if self.response is None:
            raise RuntimeError(f"No response for {self.request.url}") from self.error
        return self.response.json()

    def to_record(self) -> dict[str, t.Any]:
        """
        Flatten the outcome into a JSON-serializable record.

        Returns
        -------
        dict[str, typing.Any]
            Record written by the JSONL writer and the CLI.
        """
        return {
            "url": self.request.url,
            "method": str(object=self.request.method),
            "extra_info": self.request.extra_info,
            "ok": self.ok,
            "status_code": self.status_code,
            "response_text": self.request.response_text,
            "response_info": self.request.response_info,
            "response_error": self.request.response_error,
            "response_errno": self.request.response_errno,
        }

import typing as t
from http import HTTPMethod
from pathlib import Path

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class FormPart(BaseModel):
    """One field of a multipart form: either a text value or a file upload."""

    name: str
    value: str | None = None
    filename: str | None = None
    content: bytes | None = None
    content_type: str | None = None

    @property
    def is_file(self) -> bool:
        return self.content is not None


class MultipartForm(BaseModel):
    """
    Ordered multipart payload attached to a request.

    Parts are plain data, so a form can be copied and encoded again for every
    dispatch of the request it belongs to.
    """

    parts: list[FormPart] = Field(default_factory=list)

    def text(self, name: str, value: str) -> "MultipartForm":
        self.parts.append(FormPart(name=name, value=value))
        return self

    def file(
        self,
        name: str,
        content: bytes,
        filename: str,
        content_type: str | None = None,
    ) -> "MultipartForm":
        self.parts.append(
            FormPart(name=name, content=content, filename=filename, content_type=content_type)
        )
        return self

    def to_httpx_files(self) -> list[tuple[str, tuple[t.Any, ...]]]:
        """
        Render the form as the ``files`` argument of an httpx request.

        Text parts are rendered with a ``None`` filename so httpx encodes them
        as plain form fields, and the body is always ``multipart/form-data``
        even when the form has no file part.

        Returns
        -------
        list[tuple[str, tuple[typing.Any, ...]]]
            Ordered ``(name, (filename, content[, content_type]))`` entries.
        """
        files: list[tuple[str, tuple[t.Any, ...]]] = []
        for part in self.parts:
            if not part.is_file:
                files.append((part.name, (None, (part.value or "").encode("utf-8"))))
                continue
            filename = part.filename or part.name
            if part.content_type:
                files.append((part.name, (filename, part.content, part.content_type)))
            else:
                files.append((part.name, (filename, part.content)))
        return files


class Request(BaseModel):
    """
    Describe one outbound HTTP call and, once executed, its outcome.

    Setters return the instance so descriptors can be built fluently:

    >>> request = Request(url="http://example.com/post", method="POST")
    >>> request.set_post_data('{"key": "value"}').set_extra_info("row-1")
    """

    model_config = ConfigDict(validate_assignment=True, populate_by_name=True)

    url: str
    method: HTTPMethod = HTTPMethod.GET
    post_data: str | bytes | None = None
    headers: dict[str, str] | None = None
    options: dict[str, str] = Field(default_factory=dict)
    extra_info: str | None = Field(
        default=None, validation_alias=AliasChoices("extra_info", "tag")
    )
    response_text: str | None = None
    response_info: str | None = None
    response_error: str | None = None
    response_errno: int | None = None
    form: MultipartForm | None = None

    @field_validator("method", mode="before")
    @classmethod
    def normalize_method(cls, value: t.Any) -> t.Any:
        if isinstance(value, str):
            return value.upper()
        return value

    @property
    def tag(self) -> str | None:
        return self.extra_info

    @property
    def has_outcome(self) -> bool:
        return self.response_info is not None or self.response_error is not None

    def set_url(self, url: str) -> "Request":
        self.url = url
        return self

    def set_method(self, method: HTTPMethod | str) -> "Request":
        self.method = t.cast(HTTPMethod, method)
        return self

    def set_post_data(self, post_data: str | bytes | None) -> "Request":
        self.post_data = post_data
        return self

    def set_headers(self, headers: dict[str, str]) -> "Request":
        self.headers = dict(headers)
        return self

    def set_options(self, options: dict[str, str]) -> "Request":
        self.options = dict(options)
        return self

    def add_options(self, options: dict[str, str]) -> "Request":
        self.options = {**self.options, **options}
        return self

    def set_extra_info(self, extra_info: str) -> "Request":
        self.extra_info = extra_info
        return self

    def set_response_text(self, response_text: str) -> "Request":
        self.response_text = response_text
        return self

    def set_response_info(self, response_info: str) -> "Request":
        self.response_info = response_info
        return self

    def set_response_error(self, response_error: str) -> "Request":
        self.response_error = response_error
        return self

    def set_response_errno(self, response_errno: int) -> "Request":
        self.response_errno = response_errno
        return self

    def add_form_text(self, name: str, value: str) -> "Request":
        """
        Add a text field to the multipart form, creating the form if needed.

        Parameters
        ----------
        name : str
            Form field name.
        value : str
            Form field value.

        Returns
        -------
        Request
            This request.
        """
        form = self.form or MultipartForm()
        self.form = form.text(name=name, value=value)
        return self

    def add_form_file(
        self,
        name: str,
        file_path: str | Path,
        content_type: str | None = None,
    ) -> "Request":
        """
        Read a file and add it to the multipart form.

        Parameters
        ----------
        name : str
            Form field name.
        file_path : str | Path
            File to upload. It is read immediately.
        content_type : str | None, optional
            Part content type. httpx guesses it from the filename when omitted.

        Returns
        -------
        Request
            This request.

        Raises
        ------
        FileNotFoundError
            If ``file_path`` does not exist.
        """
        path = Path(file_path)
        content = path.read_bytes()
        form = self.form or MultipartForm()
        self.form = form.file(
            name=name,
            content=content,
            filename=path.name,
            content_type=content_type,
        )
        return self

    def set_multipart_form_data(self, form: MultipartForm) -> "Request":
        self.form = form
        return self

    def dispatch_copy(self) -> "Request":
        """
        Copy this request for one execution pass.

        The executor fills outcome fields on the copy only, so the caller's
        instance is never mutated while the request is in flight.
        """
        return self.model_copy(deep=True)


request_list_adapter = TypeAdapter(list[Request])

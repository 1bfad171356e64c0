import json
from collections.abc import Iterable
from pathlib import Path

from rollingrequests.models import Outcome
from rollingrequests.request import Request, request_list_adapter


def read_jsonl_file(file_path: str | Path) -> list[dict]:
    """Read a JSONL file and return its objects, skipping blank lines

    Args:
        file_path (str | Path): The path to the file to read
    """
    with open(file_path, "r") as f:
        return [json.loads(line) for line in f if line.strip()]


def load_requests(file_path: str | Path) -> list[Request]:
    """Load request descriptors from a JSONL file, one object per line

    Args:
        file_path (str | Path): The path to the file to read

    Raises:
        pydantic.ValidationError: If a line is not a valid request
    """
    return request_list_adapter.validate_python(read_jsonl_file(file_path))


def write_outcomes(file_path: str | Path, outcomes: Iterable[Outcome], append: bool = True) -> int:
    """Write outcomes as JSONL records and return how many were written

    Args:
        file_path (str | Path): The path to the file to write
        outcomes (Iterable[Outcome]): The outcomes to write
        append (bool): Append to the file instead of truncating it
    """
    written = 0
    with open(file_path, "a" if append else "w") as f:
        for outcome in outcomes:
            f.write(json.dumps(outcome.to_record()) + "\n")
            written += 1
    return written

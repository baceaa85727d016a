"""NDJSON record stream adapter used by the command line."""

from __future__ import annotations

import json
from itertools import islice
from typing import Any, Iterable, Iterator, List, TextIO


def iter_records(stream: TextIO) -> Iterator[Any]:
    """Yield one decoded record per non-blank line."""

    for line_number, line in enumerate(stream, start=1):
        if not line.strip():
            continue
        try:
            yield json.loads(line)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON on line {line_number}: {exc.msg}") from exc


def batched(records: Iterable[Any], size: int) -> Iterator[List[Any]]:
    if size < 1:
        raise ValueError("Batch size must be at least 1")
    iterator = iter(records)
    while True:
        batch = list(islice(iterator, size))
        if not batch:
            return
        yield batch


def write_records(stream: TextIO, records: Iterable[Any]) -> int:
    """Write records as NDJSON and return how many were written."""

    count = 0
    for record in records:
        stream.write(json.dumps(record, ensure_ascii=False))
        stream.write("\n")
        count += 1
    return count

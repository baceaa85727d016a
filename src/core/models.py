"""Core domain models.

Records flowing through a filter system can be any value the marshaller
understands. Transaction is the reference record used by the example
filters and tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Transaction:
    """Minimal chain transaction as seen by filter scripts."""

    chain: str
    # "from" is a Python keyword; scripts still see tx.from
    sender: str = field(metadata={"name": "from"})
    to: str
    amount: int

from __future__ import annotations
from typing import Iterable, List, Optional, Tuple
from flask import abort


def parse_sort(sort_expr: str | None, allowed: Iterable[str], tie_breaker: str) -> Optional[List[Tuple[str, bool]]]:
    """Turn a sort expression into a document store sort list.

    sort_expr: comma-separated field names, each optionally prefixed with '-'.
    allowed: field names callers may sort on.
    tie_breaker: field appended (ascending) for deterministic ordering.
    Returns None when no expression is given (store order).
    """
    if not sort_expr:
        return None
    allowed = set(allowed)
    clauses = []
    for raw in sort_expr.split(','):
        token = raw.strip()
        if not token:
            continue
        desc = token.startswith('-')
        key = token[1:] if desc else token
        if key not in allowed:
            abort(400, description=f'Invalid sort field {key}')
        clauses.append((key, desc))
    if tie_breaker not in {k for k, _ in clauses}:
        clauses.append((tie_breaker, False))
    return clauses

from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional, Tuple
from flask import request, abort, make_response
import hashlib
import os

DEFAULT_LIMIT = int(os.getenv('PAGINATION_DEFAULT_LIMIT', '50'))
MAX_LIMIT = int(os.getenv('PAGINATION_MAX_LIMIT', '200'))


def normalize_pagination(limit_raw, offset_raw) -> Tuple[int, int]:
    try:
        limit = int(limit_raw) if limit_raw is not None else DEFAULT_LIMIT
        offset = int(offset_raw) if offset_raw is not None else 0
    except ValueError:
        raise ValueError('limit/offset must be int')
    limit = max(1, min(limit, MAX_LIMIT))
    offset = max(0, offset)
    return limit, offset


def apply_pagination(rows: List[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], int, int, int]:
    try:
        limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        abort(400, description=str(e))
    return rows[offset:offset + limit], len(rows), limit, offset


def compute_etag(keys: Iterable[Any], total: int, limit: int, offset: int) -> str:
    seed = f"{list(keys)}|{total}|{limit}|{offset}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def document_etag(doc: Dict[str, Any]) -> str:
    """ETag of a single document; changes whenever its version does."""
    return compute_etag([(doc.get('id'), doc.get('version'))], 1, 1, 0)


def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }


def make_cached_list_response(rows: list, total: int, limit: int, offset: int):
    etag = compute_etag([(r.get('id'), r.get('version')) for r in rows], total, limit, offset)
    resp = make_response(build_list_payload(rows, total, limit, offset))
    resp.headers['ETag'] = etag
    return resp, etag


def _etag_tokens(header_val: Optional[str]) -> List[str]:
    if not header_val:
        return []
    tokens = []
    for raw in header_val.split(','):
        token = raw.strip()
        if token.startswith('W/'):
            token = token[2:]
        tokens.append(token.strip('"'))
    return tokens


def etag_matches(header_val: Optional[str], etag_value: str) -> bool:
    tokens = _etag_tokens(header_val)
    return '*' in tokens or etag_value in tokens


def handle_conditional(etag_value: str):
    """Return a 304 response when If-None-Match carries the current ETag, else None."""
    if etag_matches(request.headers.get('If-None-Match'), etag_value):
        resp = make_response('', 304)
        resp.headers['ETag'] = etag_value
        return resp
    return None


def list_response(rows: List[Dict[str, Any]]):
    """Paginate `rows` into the standard list envelope with ETag validators."""
    page, total, limit, offset = apply_pagination(rows)
    resp, etag = make_cached_list_response(page, total, limit, offset)
    cond = handle_conditional(etag)
    if cond:
        return cond
    return resp

from __future__ import annotations
"""Payload shape checks for the order endpoints.

The order service trusts its input; these helpers give callers consistent 400
errors before anything reaches it.
"""
from typing import Any, Dict, Optional
from flask import abort

# Matches the width of documents.doc_id
ID_MAX_LENGTH = 64


def _require_int(value: Any, field_name: str, minimum: Optional[int] = None) -> int:
    if isinstance(value, bool):
        abort(400, description=f'{field_name} must be int')
    try:
        value = int(value)
    except (TypeError, ValueError):
        abort(400, description=f'{field_name} must be int')
    if minimum is not None and value < minimum:
        abort(400, description=f'{field_name} must be >= {minimum}')
    return value


def _require_id(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        abort(400, description=f'{field_name} must be a non-empty string')
    if len(value) > ID_MAX_LENGTH:
        abort(400, description=f'{field_name} must be at most {ID_MAX_LENGTH} characters')
    return value


def validate_order_items(items: Any) -> list:
    if not isinstance(items, list):
        abort(400, description='orderItems must be a list')
    out = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            abort(400, description=f'orderItems[{idx}] must be an object')
        if not item.get('productId') or not item.get('vendorId'):
            abort(400, description=f'orderItems[{idx}] productId and vendorId required')
        _require_id(item['productId'], f'orderItems[{idx}].productId')
        _require_id(item['vendorId'], f'orderItems[{idx}].vendorId')
        out.append(dict(item, quantity=_require_int(item.get('quantity', 1), f'orderItems[{idx}].quantity', minimum=1)))
    return out


def validate_order_payload(data: Any, creating: bool = True) -> Dict[str, Any]:
    """Check an order body; identity fields are only required on create.

    Returns a shallow copy with normalized item quantities and orderCode.
    """
    if not isinstance(data, dict):
        abort(400, description='JSON object body required')
    out = dict(data)
    if creating:
        if not out.get('customerId'):
            abort(400, description='customerId required')
        _require_id(out['customerId'], 'customerId')
        if out.get('id') is not None:
            _require_id(out['id'], 'id')
        if out.get('orderCode') is None:
            abort(400, description='orderCode required')
    if out.get('orderCode') is not None:
        out['orderCode'] = _require_int(out['orderCode'], 'orderCode')
    out['orderItems'] = validate_order_items(out.get('orderItems', []))
    return out


def parse_version(value: Any) -> Optional[int]:
    if value is None:
        return None
    return _require_int(value, 'version', minimum=1)

__all__ = ['validate_order_items', 'validate_order_payload', 'parse_version']

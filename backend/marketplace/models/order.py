from __future__ import annotations
"""Order document shape.

Orders live as plain dicts in the `order` collection. Keys are camelCase to
match what the storefront clients send.
"""
from typing import Any, Dict

ORDER_COLLECTION = 'order'
PRODUCT_COLLECTION = 'product'
USER_COLLECTION = 'user'


class OrderStatus:
    PENDING = 'PENDING'
    CANCELLATION_REQUESTED = 'CANCELLATION_REQUESTED'
    # Cancellation approved: the order is voided
    APPROVED = 'APPROVED'
    ALL = (PENDING, CANCELLATION_REQUESTED, APPROVED)


class CancellationDecision:
    NOT_REQUESTED = 'NOT_REQUESTED'
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'
    ALL = (NOT_REQUESTED, PENDING, APPROVED, REJECTED)


# Joined from user/product on read, never stored
DERIVED_ORDER_FIELDS = ('customerFirstName', 'customerLastName')
DERIVED_ITEM_FIELDS = ('productName',)

# Only changed through lifecycle transitions
LIFECYCLE_FIELDS = ('status', 'isCancellationRequested', 'cancellationDecision', 'cancellationNote')
IMMUTABLE_FIELDS = ('id', 'orderCode', 'customerId')

LIFECYCLE_DEFAULTS: Dict[str, Any] = {
    'status': OrderStatus.PENDING,
    'isCancellationRequested': False,
    'cancellationDecision': CancellationDecision.NOT_REQUESTED,
    'cancellationNote': None,
}


def strip_derived(order: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of `order` without read-time join fields."""
    doc = {k: v for k, v in order.items() if k not in DERIVED_ORDER_FIELDS}
    items = order.get('orderItems')
    if isinstance(items, list):
        doc['orderItems'] = [
            {k: v for k, v in item.items() if k not in DERIVED_ITEM_FIELDS} if isinstance(item, dict) else item
            for item in items
        ]
    return doc

__all__ = [
    'ORDER_COLLECTION', 'PRODUCT_COLLECTION', 'USER_COLLECTION', 'OrderStatus', 'CancellationDecision',
    'DERIVED_ORDER_FIELDS', 'DERIVED_ITEM_FIELDS', 'LIFECYCLE_FIELDS', 'IMMUTABLE_FIELDS', 'LIFECYCLE_DEFAULTS',
    'strip_derived'
]

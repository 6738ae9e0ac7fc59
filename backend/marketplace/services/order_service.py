from __future__ import annotations
"""Order lifecycle: creation, role-scoped listings, full replace and the
cancellation state machine.

Cancellation lifecycle graph:
  PENDING -> CANCELLATION_REQUESTED -> APPROVED
  CANCELLATION_REQUESTED -> PENDING (request rejected)
  CANCELLATION_REQUESTED -> CANCELLATION_REQUESTED (re-request overwrites the note)

`cancellationDecision` records the outcome of the latest request:
NOT_REQUESTED -> PENDING -> APPROVED | REJECTED.

Missing-by-id lookups and transitions return None. Store failures propagate.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional

from marketplace.models.order import (
    ORDER_COLLECTION, PRODUCT_COLLECTION, USER_COLLECTION, OrderStatus, CancellationDecision,
    IMMUTABLE_FIELDS, LIFECYCLE_FIELDS, LIFECYCLE_DEFAULTS, strip_derived,
)
from marketplace.services.document_store import DocumentStore, Sort
from marketplace.utils.exceptions import ConflictError
from marketplace.utils.fsm import TransitionValidator

logger = logging.getLogger(__name__)

ORDER_FSM = TransitionValidator({
    OrderStatus.PENDING: {OrderStatus.CANCELLATION_REQUESTED},
    OrderStatus.CANCELLATION_REQUESTED: {OrderStatus.CANCELLATION_REQUESTED, OrderStatus.APPROVED, OrderStatus.PENDING},
    OrderStatus.APPROVED: set(),
})

Order = Dict[str, Any]


class OrderService:
    def __init__(self, store: DocumentStore, orders: str = ORDER_COLLECTION, products: str = PRODUCT_COLLECTION, users: str = USER_COLLECTION):
        self.store = store
        self.orders = orders
        self.products = products
        self.users = users

    # ---------- Create / replace ---------- #

    def create_order(self, order: Order) -> Order:
        """Insert a new order document.

        The id is generated only when the caller did not supply one. Every order
        starts PENDING: lifecycle fields in the payload are overwritten with
        their initial values. Item and customer references are not checked.
        """
        doc = strip_derived(order)
        if not doc.get('id'):
            doc['id'] = uuid.uuid4().hex
        doc.setdefault('orderItems', [])
        doc.update(LIFECYCLE_DEFAULTS)
        doc['version'] = 1
        stored = self.store.insert_one(self.orders, doc)
        logger.info('order %s created (orderCode=%s)', stored['id'], stored.get('orderCode'))
        return stored

    def update_order(self, order_id: str, updated: Order, expected_version: Optional[int] = None) -> Optional[Order]:
        """Replace an order by id.

        Identity fields and lifecycle fields are carried over from the stored
        document; those change only through the transitions below. The write is
        a compare-and-swap on `version`. A version mismatch raises ConflictError
        when the caller supplied `expected_version`, otherwise returns None.
        """
        current = self.store.find_one(self.orders, {'id': order_id})
        if current is None:
            return None
        if expected_version is not None and current.get('version') != expected_version:
            logger.warning('order %s update rejected: version %s != %s', order_id, expected_version, current.get('version'))
            raise ConflictError('Order version mismatch', {'id': order_id, 'expected': expected_version, 'actual': current.get('version')})
        doc = strip_derived(updated)
        for key in IMMUTABLE_FIELDS + LIFECYCLE_FIELDS:
            if key in current:
                doc[key] = current[key]
            else:
                doc.pop(key, None)
        doc['version'] = (current.get('version') or 0) + 1
        flt: Dict[str, Any] = {'id': order_id}
        if 'version' in current:
            flt['version'] = current['version']
        if self.store.replace_one(self.orders, flt, doc) != 1:
            if expected_version is not None:
                raise ConflictError('Order was modified concurrently', {'id': order_id})
            logger.warning('order %s update lost a concurrent write', order_id)
            return None
        logger.info('order %s replaced (version=%s)', order_id, doc['version'])
        return doc

    # ---------- Cancellation transitions ---------- #

    def request_cancellation(self, order_id: str, note: Optional[str]) -> Optional[Order]:
        return self._transition(order_id, OrderStatus.CANCELLATION_REQUESTED, {
            'isCancellationRequested': True,
            'cancellationDecision': CancellationDecision.PENDING,
            'cancellationNote': note,
        })

    def approve_cancellation(self, order_id: str) -> Optional[Order]:
        return self._transition(order_id, OrderStatus.APPROVED, {
            'cancellationDecision': CancellationDecision.APPROVED,
        })

    def reject_cancellation(self, order_id: str) -> Optional[Order]:
        return self._transition(order_id, OrderStatus.PENDING, {
            'cancellationDecision': CancellationDecision.REJECTED,
        })

    def _transition(self, order_id: str, target: str, changes: Dict[str, Any]) -> Optional[Order]:
        # Guard and write happen in one store call: the filter only matches allowed sources
        sources = list(ORDER_FSM.sources_for(target))
        update = {'$set': dict(changes, status=target), '$inc': {'version': 1}}
        updated = self.store.find_one_and_update(self.orders, {'id': order_id, 'status': {'$in': sources}}, update)
        if updated is not None:
            logger.info('order %s -> %s (decision=%s)', order_id, target, updated.get('cancellationDecision'))
            return updated
        current = self.store.find_one(self.orders, {'id': order_id})
        if current is None:
            return None
        logger.warning('order %s transition %s -> %s refused', order_id, current.get('status'), target)
        ORDER_FSM.assert_can_transition(current.get('status'), target)
        # Status moved into an allowed source between the two calls
        raise ConflictError('Order was modified concurrently', {'id': order_id})

    # ---------- Queries ---------- #

    def get_orders(self, filters: Optional[Dict[str, Any]] = None, sort: Optional[Sort] = None) -> List[Order]:
        return self._with_customer_names(self.store.find_many(self.orders, dict(filters or {}), sort=sort))

    def get_order_by_id(self, order_id: str) -> Optional[Order]:
        order = self.store.find_one(self.orders, {'id': order_id})
        if order is None:
            return None
        self._with_customer_names([order])
        self._with_product_names(order)
        return order

    def get_cancel_requests(self) -> List[Order]:
        return self.store.find_many(self.orders, {
            'isCancellationRequested': True,
            'cancellationDecision': CancellationDecision.PENDING,
        })

    def get_approved_cancellations(self) -> List[Order]:
        return self.store.find_many(self.orders, {
            'isCancellationRequested': True,
            'cancellationDecision': CancellationDecision.APPROVED,
        })

    def get_orders_by_vendor_id(self, vendor_id: str) -> List[Order]:
        return self._with_customer_names(self.store.find_many(self.orders, {'orderItems.vendorId': vendor_id}))

    def get_orders_by_customer_id(self, customer_id: str) -> List[Order]:
        # Callers already know the customer; no name join
        return self.store.find_many(self.orders, {'customerId': customer_id})

    def get_last_order(self) -> Optional[Order]:
        found = self.store.find_many(self.orders, sort=[('orderCode', True)], limit=1)
        return found[0] if found else None

    # ---------- Read-time joins ---------- #

    def _lookup(self, collection: str, ids) -> Dict[Any, Dict[str, Any]]:
        # Non-string references can never resolve; leave them unenriched
        ids = sorted({i for i in ids if isinstance(i, str)})
        if not ids:
            return {}
        return {doc.get('id'): doc for doc in self.store.find_many(collection, {'id': {'$in': ids}})}

    def _with_customer_names(self, orders: List[Order]) -> List[Order]:
        customers = self._lookup(self.users, (o.get('customerId') for o in orders))
        for order in orders:
            ref = order.get('customerId')
            customer = customers.get(ref) if isinstance(ref, str) else None
            if customer is None:
                logger.debug('order %s: customer %s not found', order.get('id'), order.get('customerId'))
                continue
            order['customerFirstName'] = customer.get('firstName')
            order['customerLastName'] = customer.get('lastName')
        return orders

    def _with_product_names(self, order: Order) -> Order:
        items = [i for i in order.get('orderItems') or [] if isinstance(i, dict)]
        products = self._lookup(self.products, (i.get('productId') for i in items))
        for item in items:
            ref = item.get('productId')
            product = products.get(ref) if isinstance(ref, str) else None
            if product is None:
                logger.debug('order %s: product %s not found', order.get('id'), item.get('productId'))
                continue
            item['productName'] = product.get('name')
        return order


__all__ = ['OrderService', 'ORDER_FSM']

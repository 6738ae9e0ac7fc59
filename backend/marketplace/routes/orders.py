from __future__ import annotations
from flask import Blueprint, request, abort, make_response, jsonify
from marketplace import get_store
from marketplace.models.order import ORDER_COLLECTION, OrderStatus, CancellationDecision
from marketplace.services.order_service import OrderService
from marketplace.decorators.audit import audit_log
from marketplace.utils.listing import list_response, handle_conditional, document_etag, etag_matches
from marketplace.utils.filters import build_filter
from marketplace.utils.sorting import parse_sort
from marketplace.utils.validation import validate_order_payload, parse_version

orders_bp = Blueprint('orders', __name__)

LIST_FILTERS = {
    'status': {'validate': lambda v: v in OrderStatus.ALL},
    'cancellationDecision': {'validate': lambda v: v in CancellationDecision.ALL},
    'customerId': {},
    'vendorId': {'field': 'orderItems.vendorId'},
}
SORTABLE = ('orderCode', 'status', 'customerId', 'id')
LIFECYCLE_DIFF = ['status', 'cancellationDecision', 'cancellationNote']


def _service() -> OrderService:
    return OrderService(get_store())


@orders_bp.get('/orders')
def list_orders():
    flt = build_filter(LIST_FILTERS, request.args)
    sort = parse_sort(request.args.get('sort'), SORTABLE, 'id')
    return list_response(_service().get_orders(flt, sort))


@orders_bp.post('/orders')
@audit_log('ORDER.CREATE', entity='Order', entity_id_key='id', meta_keys=['orderCode', 'customerId'])
def create_order():
    data = validate_order_payload(request.get_json(silent=True))
    return _service().create_order(data), 201


@orders_bp.get('/orders/last')
def get_last_order():
    o = _service().get_last_order()
    if o is None:
        abort(404, description='no orders')
    return o


@orders_bp.get('/orders/cancel-requests')
def list_cancel_requests():
    return list_response(_service().get_cancel_requests())


@orders_bp.get('/orders/cancellations/approved')
def list_approved_cancellations():
    return list_response(_service().get_approved_cancellations())


@orders_bp.get('/orders/vendor/<vendor_id>')
def list_vendor_orders(vendor_id: str):
    return list_response(_service().get_orders_by_vendor_id(vendor_id))


@orders_bp.get('/orders/customer/<customer_id>')
def list_customer_orders(customer_id: str):
    return list_response(_service().get_orders_by_customer_id(customer_id))


@orders_bp.route('/orders/<order_id>', methods=['GET', 'HEAD'])
def get_order(order_id: str):
    o = _service().get_order_by_id(order_id)
    if o is None:
        abort(404)
    etag = document_etag(o)
    cond = handle_conditional(etag)
    if cond:
        cond.set_data(b'')
        return cond
    resp = make_response(jsonify(o))
    resp.headers['ETag'] = etag
    if request.method == 'HEAD':
        resp.set_data(b'')
    return resp


@orders_bp.put('/orders/<order_id>')
@audit_log(
    'ORDER.UPDATE',
    entity='Order',
    entity_id_key='id',
    entity_id_arg='order_id',
    diff_keys=['orderItems'],
    pre_fetch=lambda a, kw: _prefetch_order(kw.get('order_id')),
    meta_keys=['version']
)
def update_order(order_id: str):
    data = validate_order_payload(request.get_json(silent=True), creating=False)
    svc = _service()
    expected_version = parse_version(data.pop('version', None))
    if_match = request.headers.get('If-Match')
    if if_match:
        current = svc.store.find_one(svc.orders, {'id': order_id})
        if current is None:
            abort(404)
        if not etag_matches(if_match, document_etag(current)):
            abort(412, description='ETag mismatch')
        if expected_version is None:
            expected_version = current.get('version')
    o = svc.update_order(order_id, data, expected_version=expected_version)
    if o is None:
        abort(404)
    return o


@orders_bp.patch('/orders/<order_id>/cancel')
@audit_log('ORDER.CANCEL.REQUEST', entity='Order', entity_id_key='id', entity_id_arg='order_id', diff_keys=LIFECYCLE_DIFF, pre_fetch=lambda a, kw: _prefetch_order(kw.get('order_id')), meta_keys=['cancellationNote'])
def request_cancellation(order_id: str):
    data = request.get_json(silent=True) or {}
    note = data.get('note')
    if note is not None and not isinstance(note, str):
        abort(400, description='note must be a string')
    o = _service().request_cancellation(order_id, note)
    if o is None:
        abort(404)
    return o


@orders_bp.patch('/orders/<order_id>/cancel/approve')
@audit_log('ORDER.CANCEL.APPROVE', entity='Order', entity_id_key='id', entity_id_arg='order_id', diff_keys=LIFECYCLE_DIFF, pre_fetch=lambda a, kw: _prefetch_order(kw.get('order_id')), meta_keys=['status'])
def approve_cancellation(order_id: str):
    o = _service().approve_cancellation(order_id)
    if o is None:
        abort(404)
    return o


@orders_bp.patch('/orders/<order_id>/cancel/reject')
@audit_log('ORDER.CANCEL.REJECT', entity='Order', entity_id_key='id', entity_id_arg='order_id', diff_keys=LIFECYCLE_DIFF, pre_fetch=lambda a, kw: _prefetch_order(kw.get('order_id')), meta_keys=['status'])
def reject_cancellation(order_id: str):
    o = _service().reject_cancellation(order_id)
    if o is None:
        abort(404)
    return o


def _prefetch_order(order_id: str):
    o = get_store().find_one(ORDER_COLLECTION, {'id': order_id})
    if not o:
        return {}
    return {k: o.get(k) for k in ['orderItems'] + LIFECYCLE_DIFF}

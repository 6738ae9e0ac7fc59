from marketplace.services.audit import list_audit, add_audit
from tests.test_utils_seed import unique, order_payload


def test_order_mutations_are_audited(client):
    oid = client.post('/orders', json=order_payload(701, unique('c'), [])).get_json()['id']
    client.patch(f'/orders/{oid}/cancel', json={'note': 'late delivery'})
    client.patch(f'/orders/{oid}/cancel/reject')
    actions = [e['action'] for e in list_audit(entity_id=oid)]
    assert actions == ['ORDER.CREATE', 'ORDER.CANCEL.REQUEST', 'ORDER.CANCEL.REJECT']
    create = list_audit(entity_id=oid, action='ORDER.CREATE')[0]
    assert create['meta']['orderCode'] == 701
    assert create['entity'] == 'Order'
    assert create['path'] == '/orders'
    request_entry = list_audit(entity_id=oid, action='ORDER.CANCEL.REQUEST')[0]
    assert request_entry['meta']['cancellationNote'] == 'late delivery'
    assert request_entry['meta']['changes']['status'] == {'before': 'PENDING', 'after': 'CANCELLATION_REQUESTED'}
    reject = list_audit(entity_id=oid, action='ORDER.CANCEL.REJECT')[0]
    assert reject['meta']['changes']['cancellationDecision'] == {'before': 'PENDING', 'after': 'REJECTED'}


def test_failed_mutation_is_not_audited(client):
    oid = client.post('/orders', json=order_payload(702, unique('c'), [])).get_json()['id']
    assert client.patch(f'/orders/{oid}/cancel/approve').status_code == 400
    assert list_audit(entity_id=oid, action='ORDER.CANCEL.APPROVE') == []


def test_add_audit_outside_request(memory_store):
    entry = add_audit('ORDER.IMPORT', 'Order', 'o-1', {'source': 'batch'}, store=memory_store)
    assert entry['path'] is None
    assert list_audit(entity_id='o-1', store=memory_store)[0]['meta'] == {'source': 'batch'}


def test_entity_id_falls_back_to_path_argument(app_instance):
    from marketplace.decorators.audit import audit_log

    @audit_log('ORDER.TOUCH', entity='Order', entity_id_key='id', entity_id_arg='order_id')
    def touch(order_id):
        return {'touched': True}

    @audit_log('ORDER.PURGE', entity='Order', entity_id_arg='order_id')
    def purge(order_id):
        return '', 204

    oid = unique('o')
    with app_instance.test_request_context(f'/orders/{oid}'):
        touch(order_id=oid)
        purge(order_id=oid)
    assert sorted(e['action'] for e in list_audit(entity_id=oid)) == ['ORDER.PURGE', 'ORDER.TOUCH']

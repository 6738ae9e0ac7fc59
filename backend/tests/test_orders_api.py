from marketplace import get_store
from tests.test_utils_seed import unique, ensure_user, ensure_product, order_payload


def _create(client, body, expected=201):
    resp = client.post('/orders', json=body)
    assert resp.status_code == expected, resp.get_json()
    return resp.get_json()


def test_create_get_and_enrich(client):
    store = get_store()
    cust, prod, vendor = unique('c'), unique('p'), unique('v')
    ensure_user(store, cust, 'Sam', 'Fox')
    ensure_product(store, prod, 'Cinnamon', vendor)
    order = _create(client, order_payload(101, cust, [(prod, vendor, 2)]))
    assert order['status'] == 'PENDING'
    assert order['version'] == 1
    resp = client.get(f"/orders/{order['id']}")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body['customerFirstName'] == 'Sam'
    assert body['orderItems'][0]['productName'] == 'Cinnamon'
    assert resp.headers.get('ETag')
    # Conditional GET
    again = client.get(f"/orders/{order['id']}", headers={'If-None-Match': resp.headers['ETag']})
    assert again.status_code == 304
    head = client.head(f"/orders/{order['id']}")
    assert head.status_code == 200 and head.data == b''


def test_create_validation(client):
    assert client.post('/orders', json={'orderCode': 1, 'orderItems': []}).status_code == 400
    assert client.post('/orders', json={'customerId': 'c', 'orderItems': []}).status_code == 400
    assert client.post('/orders', json={'customerId': 'c', 'orderCode': 'x'}).status_code == 400
    bad_item = order_payload(1, 'c', [('p', 'v', 0)])
    assert client.post('/orders', json=bad_item).status_code == 400
    assert client.post('/orders', data='nope', content_type='text/plain').status_code == 400


def test_duplicate_id_is_conflict(client):
    oid = unique('o')
    _create(client, order_payload(1, 'c', [], order_id=oid))
    resp = client.post('/orders', json=order_payload(2, 'c', [], order_id=oid))
    assert resp.status_code == 409
    assert resp.get_json()['error']['status'] == 409


def test_missing_order_is_404(client):
    missing = unique('missing')
    assert client.get(f'/orders/{missing}').status_code == 404
    assert client.put(f'/orders/{missing}', json={'orderItems': []}).status_code == 404
    assert client.patch(f'/orders/{missing}/cancel', json={'note': 'n'}).status_code == 404
    assert client.patch(f'/orders/{missing}/cancel/approve').status_code == 404
    assert client.patch(f'/orders/{missing}/cancel/reject').status_code == 404


def test_cancellation_flow(client):
    cust = unique('c')
    oid = _create(client, order_payload(201, cust, []))['id']
    # Approving before any request fails closed
    bad = client.patch(f'/orders/{oid}/cancel/approve')
    assert bad.status_code == 400
    assert bad.get_json()['error']['code'] == 'INVALID_TRANSITION'
    req = client.patch(f'/orders/{oid}/cancel', json={'note': 'wrong size'})
    assert req.status_code == 200
    assert req.get_json()['status'] == 'CANCELLATION_REQUESTED'
    assert req.get_json()['cancellationNote'] == 'wrong size'
    pending = client.get('/orders/cancel-requests?limit=200').get_json()['data']
    assert oid in [o['id'] for o in pending]
    approved = client.patch(f'/orders/{oid}/cancel/approve')
    assert approved.status_code == 200
    assert approved.get_json()['status'] == 'APPROVED'
    assert approved.get_json()['cancellationDecision'] == 'APPROVED'
    approved_list = client.get('/orders/cancellations/approved?limit=200').get_json()['data']
    assert oid in [o['id'] for o in approved_list]
    pending = client.get('/orders/cancel-requests?limit=200').get_json()['data']
    assert oid not in [o['id'] for o in pending]
    # Approved is final
    assert client.patch(f'/orders/{oid}/cancel', json={'note': 'again'}).status_code == 400


def test_reject_flow(client):
    oid = _create(client, order_payload(202, unique('c'), []))['id']
    client.patch(f'/orders/{oid}/cancel', json={'note': 'n'})
    rej = client.patch(f'/orders/{oid}/cancel/reject')
    assert rej.status_code == 200
    assert rej.get_json()['status'] == 'PENDING'
    assert rej.get_json()['cancellationDecision'] == 'REJECTED'
    approved_list = client.get('/orders/cancellations/approved?limit=200').get_json()['data']
    assert oid not in [o['id'] for o in approved_list]
    assert client.patch(f'/orders/{oid}/cancel', json={'note': 5}).status_code == 400


def test_update_with_version_and_if_match(client):
    oid = _create(client, order_payload(301, unique('c'), [('p1', 'v1', 1)]))['id']
    first = client.get(f'/orders/{oid}')
    etag = first.headers['ETag']
    resp = client.put(f'/orders/{oid}', json={'orderItems': [{'productId': 'p2', 'vendorId': 'v1', 'quantity': 4}]}, headers={'If-Match': etag})
    assert resp.status_code == 200
    assert resp.get_json()['version'] == 2
    assert resp.get_json()['orderCode'] == 301
    # Old ETag no longer matches
    stale = client.put(f'/orders/{oid}', json={'orderItems': []}, headers={'If-Match': etag})
    assert stale.status_code == 412
    # Stale version in body
    conflict = client.put(f'/orders/{oid}', json={'orderItems': [], 'version': 1})
    assert conflict.status_code == 409
    ok = client.put(f'/orders/{oid}', json={'orderItems': [], 'version': 2})
    assert ok.status_code == 200 and ok.get_json()['orderItems'] == []


def test_vendor_and_customer_listings(client):
    store = get_store()
    cust, v1, v2 = unique('c'), unique('v'), unique('v')
    ensure_user(store, cust, 'Kim', 'Ray')
    mixed = _create(client, order_payload(401, cust, [('p1', v1, 1), ('p2', v2, 1)]))['id']
    only_v2 = _create(client, order_payload(402, cust, [('p2', v2, 1)]))['id']
    by_v1 = client.get(f'/orders/vendor/{v1}').get_json()
    assert [o['id'] for o in by_v1['data']] == [mixed]
    assert by_v1['data'][0]['customerFirstName'] == 'Kim'
    by_v2 = client.get(f'/orders/vendor/{v2}').get_json()
    assert sorted(o['id'] for o in by_v2['data']) == sorted([mixed, only_v2])
    by_cust = client.get(f'/orders/customer/{cust}').get_json()
    assert by_cust['pagination']['total'] == 2
    assert all('customerFirstName' not in o for o in by_cust['data'])


def test_last_order(client):
    code = 10_000_000
    oid = _create(client, order_payload(code, unique('c'), []))['id']
    resp = client.get('/orders/last')
    assert resp.status_code == 200
    assert resp.get_json()['id'] == oid


def test_list_filters_sort_and_pagination(client):
    cust = unique('c')
    for code in (3, 1, 2):
        _create(client, order_payload(500 + code, cust, []))
    resp = client.get(f'/orders?customerId={cust}&sort=-orderCode&limit=2')
    assert resp.status_code == 200
    body = resp.get_json()
    assert [o['orderCode'] for o in body['data']] == [503, 502]
    assert body['pagination'] == {'total': 3, 'limit': 2, 'offset': 0, 'returned': 2}
    page2 = client.get(f'/orders?customerId={cust}&sort=-orderCode&limit=2&offset=2').get_json()
    assert [o['orderCode'] for o in page2['data']] == [501]
    etag = resp.headers['ETag']
    cached = client.get(f'/orders?customerId={cust}&sort=-orderCode&limit=2', headers={'If-None-Match': etag})
    assert cached.status_code == 304
    assert client.get('/orders?sort=bogus').status_code == 400
    assert client.get('/orders?status=SHIPPED').status_code == 400
    assert client.get('/orders?limit=abc').status_code == 400


def test_create_always_starts_pending(client):
    body = order_payload(601, unique('c'), [])
    body.update({'status': 'BOGUS', 'isCancellationRequested': True, 'cancellationDecision': 'APPROVED'})
    created = _create(client, body)
    assert created['status'] == 'PENDING'
    assert created['cancellationDecision'] == 'NOT_REQUESTED'
    approved_list = client.get('/orders/cancellations/approved?limit=200').get_json()['data']
    assert created['id'] not in [o['id'] for o in approved_list]
    assert client.patch(f"/orders/{created['id']}/cancel", json={'note': 'n'}).status_code == 200


def test_create_rejects_bad_ids(client):
    cust = unique('c')
    assert client.post('/orders', json=order_payload(1, cust, [], order_id=424242)).status_code == 400
    assert client.post('/orders', json=order_payload(1, cust, [], order_id='   ')).status_code == 400
    assert client.post('/orders', json=order_payload(1, cust, [], order_id='x' * 65)).status_code == 400
    assert client.post('/orders', json=order_payload(1, {'x': 1}, [])).status_code == 400
    assert client.post('/orders', json=order_payload(1, 'c' * 65, [])).status_code == 400
    assert client.post('/orders', json=order_payload(1, cust, [(7, 'v', 1)])).status_code == 400
    assert client.post('/orders', json=order_payload(1, cust, [('p', ['v'], 1)])).status_code == 400
    assert client.get('/orders?limit=1').status_code == 200
    oid = 'x' * 64
    assert _create(client, order_payload(1, cust, [], order_id=oid))['id'] == oid
    assert client.get(f'/orders/{oid}').status_code == 200

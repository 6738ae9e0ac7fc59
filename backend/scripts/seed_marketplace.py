#!/usr/bin/env python
"""Idempotent seed script for demo users, products and orders.

Usage:
    python backend/scripts/seed_marketplace.py              # seed normally
    python backend/scripts/seed_marketplace.py --orders 20  # number of demo orders to ensure
    python backend/scripts/seed_marketplace.py --show       # print collection counts afterwards
"""
from __future__ import annotations
import os, sys, argparse

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from marketplace import create_app, get_db, get_store  # noqa: E402
from marketplace.models.document import Base  # noqa: E402
from marketplace.models.order import ORDER_COLLECTION, PRODUCT_COLLECTION, USER_COLLECTION  # noqa: E402
from marketplace.services.order_service import OrderService  # noqa: E402

USERS = [
    {'id': 'u-1001', 'firstName': 'Nimal', 'lastName': 'Perera', 'role': 'CUSTOMER'},
    {'id': 'u-1002', 'firstName': 'Ayesha', 'lastName': 'Fernando', 'role': 'CUSTOMER'},
    {'id': 'v-2001', 'firstName': 'Kasun', 'lastName': 'Silva', 'role': 'VENDOR'},
    {'id': 'v-2002', 'firstName': 'Dilani', 'lastName': 'Jayasuriya', 'role': 'VENDOR'},
]

PRODUCTS = [
    {'id': 'p-3001', 'name': 'Ceylon Tea 500g', 'vendorId': 'v-2001', 'price': 1250},
    {'id': 'p-3002', 'name': 'Coconut Oil 1L', 'vendorId': 'v-2001', 'price': 980},
    {'id': 'p-3003', 'name': 'Batik Sarong', 'vendorId': 'v-2002', 'price': 4500},
]


def ensure_documents(store, collection, docs):
    created = 0
    for doc in docs:
        if store.find_one(collection, {'id': doc['id']}) is None:
            store.insert_one(collection, doc)
            created += 1
    return created


def ensure_orders(service: OrderService, count: int):
    created = 0
    for code in range(1, count + 1):
        order_id = f'o-{code:05d}'
        if service.store.find_one(service.orders, {'id': order_id}) is not None:
            continue
        customer = USERS[code % 2]
        first, second = PRODUCTS[code % len(PRODUCTS)], PRODUCTS[(code + 1) % len(PRODUCTS)]
        service.create_order({
            'id': order_id,
            'orderCode': code,
            'customerId': customer['id'],
            'orderItems': [
                {'productId': first['id'], 'vendorId': first['vendorId'], 'quantity': 1 + code % 3},
                {'productId': second['id'], 'vendorId': second['vendorId'], 'quantity': 1},
            ],
        })
        created += 1
    return created


def main(argv=None):
    parser = argparse.ArgumentParser(description='Seed demo marketplace data')
    parser.add_argument('--orders', type=int, default=10, help='number of demo orders to ensure')
    parser.add_argument('--show', action='store_true', help='print collection counts after seeding')
    args = parser.parse_args(argv)

    app = create_app()
    with app.app_context():
        Base.metadata.create_all(get_db().get_bind())
        store = get_store()
        users = ensure_documents(store, USER_COLLECTION, USERS)
        products = ensure_documents(store, PRODUCT_COLLECTION, PRODUCTS)
        orders = ensure_orders(OrderService(store), args.orders)
        print(f'[OK] users +{users}, products +{products}, orders +{orders}')
        if args.show:
            for collection in (USER_COLLECTION, PRODUCT_COLLECTION, ORDER_COLLECTION):
                print(f'  {collection}: {len(store.find_many(collection))}')
    return 0


if __name__ == '__main__':
    raise SystemExit(main())

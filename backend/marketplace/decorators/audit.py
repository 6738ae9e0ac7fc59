from __future__ import annotations
"""Audit logging decorator so route handlers do not call add_audit() by hand.

Usage examples:

@audit_log('ORDER.CREATE', entity='Order', entity_id_key='id', meta_keys=['orderCode'])
def create_order():
    ... return order, 201

@audit_log('ORDER.CANCEL.APPROVE', entity='Order', entity_id_key='id',
           diff_keys=['status'], pre_fetch=lambda a, kw: _prefetch_order(kw.get('order_id')))
def approve_cancellation(order_id): ...

Parameters:
  action: required audit action code (e.g. ORDER.CREATE)
  entity: optional entity label (Order)
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: name of the path parameter to use for entity_id (fallback if entity_id_key absent).
  meta_keys: list of keys to project from returned JSON into meta dict (shallow copy).
  diff_keys / pre_fetch: pre_fetch(args, kwargs) snapshots the entity before the call;
    differing diff_keys land in meta['changes'] as {'before', 'after'}.

Return handling:
  View functions return dict, (dict, status) or (dict, status, headers). The first
  element is inspected; the original return value is passed through untouched.
  Nothing is recorded when the view raises.
"""
import logging
from functools import wraps
from typing import Any, Callable, Iterable, Optional, Dict

from marketplace.services.audit import add_audit

logger = logging.getLogger(__name__)


def _extract_payload(rv: Any):
    """Return (data, original_rv) where data is the JSON-able dict for inspection."""
    if isinstance(rv, tuple) and rv:
        data = rv[0]
        return data, rv
    return rv, rv


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before_snapshot = None
            if diff_keys and pre_fetch:
                try:
                    before_snapshot = pre_fetch(args, kwargs)
                except Exception:
                    logger.warning('audit pre_fetch failed for %s', action, exc_info=True)
                    before_snapshot = None
            rv = fn(*args, **kwargs)
            try:
                data, _ = _extract_payload(rv)
                if not isinstance(data, dict):  # nothing to inspect
                    add_audit(action, entity, kwargs.get(entity_id_arg) if entity_id_arg else None, None)
                    return rv
                entity_id = None
                if entity_id_key and entity_id_key in data:
                    entity_id = data.get(entity_id_key)
                elif entity_id_arg and entity_id_arg in kwargs:
                    entity_id = kwargs.get(entity_id_arg)
                meta = None
                if meta_keys:
                    meta = {k: data.get(k) for k in meta_keys if k in data}
                if diff_keys and isinstance(before_snapshot, dict):
                    changes = {}
                    for k in diff_keys:
                        if k in before_snapshot and k in data and before_snapshot.get(k) != data.get(k):
                            changes[k] = {
                                'before': before_snapshot.get(k),
                                'after': data.get(k)
                            }
                    if changes:
                        if meta is None:
                            meta = {}
                        meta['changes'] = changes
                add_audit(action, entity, entity_id, meta)
            except Exception:
                # Audit must not interfere with the main response
                logger.warning('audit entry for %s not recorded', action, exc_info=True)
            return rv
        return wrapper
    return outer

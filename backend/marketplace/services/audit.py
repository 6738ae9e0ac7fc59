from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import uuid
from flask import has_request_context, request
from marketplace import get_store

AUDIT_COLLECTION = 'audit_log'


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None, meta: Optional[Dict[str, Any]] = None, store=None):
    """Append an audit entry to the `audit_log` collection.

    Parameters:
      action: short action code e.g. ORDER.CREATE, ORDER.CANCEL.APPROVE
      entity: optional entity name (Order)
      entity_id: optional document id
      meta: additional JSON-safe dictionary (will be shallow copied)
    """
    store = store or get_store()
    entry = {
        'id': uuid.uuid4().hex,
        'action': action,
        'entity': entity,
        'entityId': str(entity_id) if entity_id is not None else None,
        'meta': dict(meta or {}),
        'path': request.path if has_request_context() else None,
        'createdAt': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
    }
    return store.insert_one(AUDIT_COLLECTION, entry)


def list_audit(entity_id: Optional[str] = None, action: Optional[str] = None, store=None):
    store = store or get_store()
    flt: Dict[str, Any] = {}
    if entity_id is not None:
        flt['entityId'] = str(entity_id)
    if action is not None:
        flt['action'] = action
    return store.find_many(AUDIT_COLLECTION, flt, sort=[('createdAt', False)])

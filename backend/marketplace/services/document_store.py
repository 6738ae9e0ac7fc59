from __future__ import annotations
"""Document store capability used by the order service.

Two implementations share one filter/update language (a small Mongo-like subset):

  filter:  {'status': 'PENDING'}                      equality
           {'orderItems.vendorId': 'v1'}              dotted path, matches any list element
           {'id': {'$in': ['a', 'b']}}                membership
           {'status': {'$ne': 'APPROVED'}}            inequality (missing field matches)
  update:  {'$set': {...}, '$inc': {'version': 1}}
  sort:    [('orderCode', True), ('id', False)]       (field, descending); missing values last

SqlDocumentStore keeps one row per document in the `documents` table (JSON body)
and is the production store; InMemoryDocumentStore backs tests and local runs.
Documents handed in or out are always copies.
"""
import copy
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError

from marketplace.models.document import Document
from marketplace.utils.exceptions import ConflictError, StoreUnavailableError

logger = logging.getLogger(__name__)

Filter = Dict[str, Any]
Update = Dict[str, Dict[str, Any]]
Sort = Sequence[Tuple[str, bool]]


# ---------------- Filter / update evaluation ---------------- #

def _resolve(value: Any, parts: List[str]) -> List[Any]:
    if isinstance(value, list):
        out: List[Any] = []
        for element in value:
            out.extend(_resolve(element, parts))
        return out
    if not parts:
        return [value]
    if not isinstance(value, dict) or parts[0] not in value:
        return []
    return _resolve(value[parts[0]], parts[1:])


def _candidates(doc: Dict[str, Any], path: str) -> List[Any]:
    parts = path.split('.')
    if parts[0] not in doc:
        return []
    head = doc[parts[0]]
    if len(parts) == 1:
        # A list field matches on the whole value or any element
        return [head] + (list(head) if isinstance(head, list) else [])
    return _resolve(head, parts[1:])


def _match_condition(values: List[Any], cond: Any) -> bool:
    if isinstance(cond, dict) and cond and all(k.startswith('$') for k in cond):
        for op, arg in cond.items():
            if op == '$in':
                if not any(v in arg for v in values):
                    return False
            elif op == '$ne':
                if any(v == arg for v in values):
                    return False
            else:
                raise ValueError(f'Unsupported filter operator {op}')
        return True
    return any(v == cond for v in values)


def matches(doc: Dict[str, Any], flt: Optional[Filter]) -> bool:
    if not flt:
        return True
    return all(_match_condition(_candidates(doc, path), cond) for path, cond in flt.items())


def apply_update(doc: Dict[str, Any], update: Update) -> Dict[str, Any]:
    """Return a new document with `update` applied."""
    out = copy.deepcopy(doc)
    for op, fields in update.items():
        if op == '$set':
            for key, value in fields.items():
                if key == 'id':
                    raise ValueError('id is immutable')
                out[key] = copy.deepcopy(value)
        elif op == '$inc':
            for key, amount in fields.items():
                out[key] = (out.get(key) or 0) + amount
        else:
            raise ValueError(f'Unsupported update operator {op}')
    return out


def sort_documents(docs: List[Dict[str, Any]], sort: Optional[Sort]) -> List[Dict[str, Any]]:
    if not sort:
        return docs
    out = list(docs)
    # Least significant key first; list.sort is stable
    for field, descending in reversed(list(sort)):
        present = [d for d in out if d.get(field) is not None]
        missing = [d for d in out if d.get(field) is None]
        present.sort(key=lambda d: d[field], reverse=descending)
        out = present + missing
    return out


def _require_id(document: Dict[str, Any]) -> str:
    doc_id = document.get('id')
    if doc_id is None or doc_id == '':
        raise ValueError('document id required')
    return str(doc_id)


# ---------------- Capability ---------------- #

class DocumentStore(ABC):

    @abstractmethod
    def insert_one(self, collection: str, document: Dict[str, Any]) -> Dict[str, Any]:
        ...

    @abstractmethod
    def find_one(self, collection: str, flt: Filter) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def find_many(self, collection: str, flt: Optional[Filter] = None, sort: Optional[Sort] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def find_one_and_update(self, collection: str, flt: Filter, update: Update) -> Optional[Dict[str, Any]]:
        """Atomically update the first match; return the document after the update or None."""

    @abstractmethod
    def replace_one(self, collection: str, flt: Filter, document: Dict[str, Any]) -> int:
        """Replace the first match keeping its id; return the modified count."""


class InMemoryDocumentStore(DocumentStore):
    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.RLock()

    def _docs(self, collection: str) -> Dict[str, Dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    def _first(self, collection: str, flt: Filter) -> Optional[Dict[str, Any]]:
        for doc in self._docs(collection).values():
            if matches(doc, flt):
                return doc
        return None

    def insert_one(self, collection, document):
        doc_id = _require_id(document)
        with self._lock:
            docs = self._docs(collection)
            if doc_id in docs:
                raise ConflictError('document id exists', {'collection': collection, 'id': doc_id})
            docs[doc_id] = copy.deepcopy(document)
            return copy.deepcopy(document)

    def find_one(self, collection, flt):
        with self._lock:
            doc = self._first(collection, flt)
            return copy.deepcopy(doc) if doc is not None else None

    def find_many(self, collection, flt=None, sort=None, limit=None):
        with self._lock:
            found = [copy.deepcopy(d) for d in self._docs(collection).values() if matches(d, flt)]
        found = sort_documents(found, sort)
        return found[:limit] if limit is not None else found

    def find_one_and_update(self, collection, flt, update):
        with self._lock:
            doc = self._first(collection, flt)
            if doc is None:
                return None
            updated = apply_update(doc, update)
            self._docs(collection)[_require_id(doc)] = updated
            return copy.deepcopy(updated)

    def replace_one(self, collection, flt, document):
        with self._lock:
            doc = self._first(collection, flt)
            if doc is None:
                return 0
            replacement = copy.deepcopy(document)
            replacement['id'] = doc['id']
            if replacement == doc:
                return 0
            self._docs(collection)[_require_id(doc)] = replacement
            return 1


class SqlDocumentStore(DocumentStore):
    """Document store over the `documents` table.

    `session_factory` returns the SQLAlchemy session to use (the app passes
    `marketplace.get_db`, a thread-scoped session). Filters on `id` are pushed
    into SQL; the rest is evaluated on the loaded JSON bodies.
    """

    def __init__(self, session_factory: Callable[[], Any]):
        self._session_factory = session_factory

    @contextmanager
    def _session(self):
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            session.rollback()
            raise ConflictError('document id exists', {'error': str(e.orig)}) from e
        except DBAPIError as e:
            session.rollback()
            logger.error('document store failure: %s', e.orig)
            raise StoreUnavailableError(details={'error': str(e.orig)}) from e

    def _select(self, collection: str, flt: Optional[Filter], for_update: bool = False):
        q = select(Document).where(Document.collection == collection)
        doc_id = (flt or {}).get('id')
        if isinstance(doc_id, dict) and set(doc_id) == {'$in'}:
            q = q.where(Document.doc_id.in_([str(v) for v in doc_id['$in']]))
        elif doc_id is not None and not isinstance(doc_id, dict):
            q = q.where(Document.doc_id == str(doc_id))
        q = q.order_by(Document.id.asc()).execution_options(populate_existing=True)
        if for_update:
            q = q.with_for_update()
        return q

    def _matching_rows(self, session, collection: str, flt: Optional[Filter], for_update: bool = False) -> Iterable[Document]:
        for row in session.execute(self._select(collection, flt, for_update)).scalars():
            if matches(row.body, flt):
                yield row

    def insert_one(self, collection, document):
        doc_id = _require_id(document)
        with self._session() as session:
            session.add(Document(collection=collection, doc_id=doc_id, body=copy.deepcopy(document)))
            session.commit()
        return copy.deepcopy(document)

    def find_one(self, collection, flt):
        with self._session() as session:
            row = next(iter(self._matching_rows(session, collection, flt)), None)
            return copy.deepcopy(row.body) if row is not None else None

    def find_many(self, collection, flt=None, sort=None, limit=None):
        with self._session() as session:
            found = [copy.deepcopy(r.body) for r in self._matching_rows(session, collection, flt)]
        found = sort_documents(found, sort)
        return found[:limit] if limit is not None else found

    def find_one_and_update(self, collection, flt, update):
        with self._session() as session:
            row = next(iter(self._matching_rows(session, collection, flt, for_update=True)), None)
            if row is None:
                session.rollback()
                return None
            # Reassign so the JSON column is flagged dirty
            row.body = apply_update(row.body, update)
            session.commit()
            return copy.deepcopy(row.body)

    def replace_one(self, collection, flt, document):
        with self._session() as session:
            row = next(iter(self._matching_rows(session, collection, flt, for_update=True)), None)
            if row is None:
                session.rollback()
                return 0
            replacement = copy.deepcopy(document)
            replacement['id'] = row.body.get('id')
            if replacement == row.body:
                session.rollback()
                return 0
            row.body = replacement
            session.commit()
            return 1


__all__ = ['DocumentStore', 'InMemoryDocumentStore', 'SqlDocumentStore', 'matches', 'apply_update', 'sort_documents']

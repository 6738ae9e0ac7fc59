from __future__ import annotations
from typing import Any, Dict
from flask import abort


def build_filter(specs: Dict[str, Dict[str, Any]], params: Dict[str, Any]) -> Dict[str, Any]:
    """Generic document filter builder.

    specs: { param_name: { 'field': document path (defaults to param_name), 'coerce': type/func, 'validate': callable(optional) } }
    """
    flt: Dict[str, Any] = {}
    for name, meta in specs.items():
        if name not in params or params[name] is None:
            continue
        val = params[name]
        if 'coerce' in meta:
            try:
                val = meta['coerce'](val)
            except Exception:
                abort(400, description=f'{name} invalid')
        if 'validate' in meta and not meta['validate'](val):
            abort(400, description=f'{name} invalid')
        flt[meta.get('field', name)] = val
    return flt

"""Decoding of amoCRM's form-encoded webhook bodies.

amoCRM posts webhooks as application/x-www-form-urlencoded with PHP-style
bracketed keys, e.g. ``leads[add][0][id]=42``. They are unfolded here into
the same nested structure a JSON body would have; levels keyed only by
integers become lists.
"""

from __future__ import annotations

import re
from typing import Any, Iterable

_KEY_PART = re.compile(r"\[([^\]]*)\]")


def split_key(key: str) -> list[str]:
    """``"leads[add][0][id]"`` -> ``["leads", "add", "0", "id"]``."""
    head, _, rest = key.partition("[")
    if not rest:
        return [key]
    return [head, *_KEY_PART.findall("[" + rest)]


def _listify(node: Any) -> Any:
    if not isinstance(node, dict):
        return node
    converted = {k: _listify(v) for k, v in node.items()}
    if converted and all(k.isdigit() for k in converted):
        return [converted[k] for k in sorted(converted, key=int)]
    return converted


def unflatten_form(items: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    """Build a nested mapping from bracketed form keys."""
    root: dict[str, Any] = {}
    for key, value in items:
        parts = split_key(key)
        node = root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value
    return _listify(root)

# profast/repos/inmemory.py
import copy
import re
from collections import defaultdict
from typing import Any, Dict, List, Optional

from profast.db import new_id
from profast.repos.base import Filter, Sort

_MISSING = object()


def _get(doc: dict, path: str) -> Any:
    cur: Any = doc
    for part in path.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return _MISSING
        cur = cur[part]
    return cur


def _set(doc: dict, path: str, value: Any) -> None:
    parts = path.split(".")
    cur = doc
    for part in parts[:-1]:
        nxt = cur.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            cur[part] = nxt
        cur = nxt
    cur[parts[-1]] = value


def _unset(doc: dict, path: str) -> None:
    parts = path.split(".")
    cur = doc
    for part in parts[:-1]:
        cur = cur.get(part)
        if not isinstance(cur, dict):
            return
    cur.pop(parts[-1], None)


def _op_matches(value: Any, op: str, arg: Any, cond: dict) -> bool:
    present = value is not _MISSING
    v = value if present else None
    if op == "$eq":
        return v == arg
    if op == "$ne":
        return v != arg
    if op == "$in":
        return v in arg
    if op == "$nin":
        return v not in arg
    if op == "$exists":
        return present == bool(arg)
    if op == "$regex":
        flags = re.IGNORECASE if "i" in cond.get("$options", "") else 0
        return isinstance(v, str) and re.search(arg, v, flags) is not None
    if op == "$options":
        return True
    if op in ("$gt", "$gte", "$lt", "$lte"):
        if v is None:
            return False
        return {"$gt": v > arg, "$gte": v >= arg, "$lt": v < arg, "$lte": v <= arg}[op]
    raise ValueError(f"Unsupported query operator {op}")


def matches(doc: dict, filt: Optional[Filter]) -> bool:
    for key, cond in (filt or {}).items():
        if key == "$and":
            if not all(matches(doc, f) for f in cond):
                return False
            continue
        if key == "$or":
            if not any(matches(doc, f) for f in cond):
                return False
            continue
        value = _get(doc, key)
        if isinstance(cond, dict) and cond and all(k.startswith("$") for k in cond):
            if not all(_op_matches(value, op, arg, cond) for op, arg in cond.items()):
                return False
        elif (None if value is _MISSING else value) != cond:
            return False
    return True


def _sort_key(field: str):
    def key(doc):
        v = _get(doc, field)
        if v is _MISSING or v is None:
            return (0, 0)
        return (1, v)
    return key


def sort_docs(docs: List[dict], sort: Optional[Sort]) -> List[dict]:
    out = list(docs)
    # stable sorts applied from the least significant key
    for field, direction in reversed(list(sort or [])):
        out.sort(key=_sort_key(field), reverse=direction < 0)
    return out


def _group(docs: List[dict], spec: dict) -> List[dict]:
    id_expr = spec.get("_id")
    groups: Dict[Any, dict] = {}
    for d in docs:
        if isinstance(id_expr, str) and id_expr.startswith("$"):
            gid = _get(d, id_expr[1:])
            gid = None if gid is _MISSING else gid
        else:
            gid = id_expr
        row = groups.setdefault(gid, {"_id": gid, **{k: 0 for k in spec if k != "_id"}})
        for name, acc in spec.items():
            if name == "_id":
                continue
            arg = acc.get("$sum")
            if isinstance(arg, str) and arg.startswith("$"):
                val = _get(d, arg[1:])
                row[name] += val if isinstance(val, (int, float)) else 0
            else:
                row[name] += arg
    return list(groups.values())


class InMemoryRepo:
    """DocumentStore kept in process memory (dev runs and tests)."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = defaultdict(dict)

    def _col(self, name: str) -> Dict[str, dict]:
        return self.collections[name]

    async def find(self, collection: str, filter: Optional[Filter] = None,
                   sort: Optional[Sort] = None, limit: int = 0) -> List[dict]:
        docs = [d for d in self._col(collection).values() if matches(d, filter)]
        docs = sort_docs(docs, sort)
        if limit:
            docs = docs[:limit]
        return copy.deepcopy(docs)

    async def find_one(self, collection: str, filter: Filter) -> Optional[dict]:
        for d in self._col(collection).values():
            if matches(d, filter):
                return copy.deepcopy(d)
        return None

    async def insert_one(self, collection: str, doc: dict) -> str:
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", new_id())
        self._col(collection)[doc["_id"]] = doc
        return doc["_id"]

    async def update_one(self, collection: str, filter: Filter, update: dict) -> int:
        for d in self._col(collection).values():
            if not matches(d, filter):
                continue
            for op, fields in update.items():
                if op == "$set":
                    for path, value in fields.items():
                        _set(d, path, copy.deepcopy(value))
                elif op == "$unset":
                    for path in fields:
                        _unset(d, path)
                else:
                    raise ValueError(f"Unsupported update operator {op}")
            return 1
        return 0

    async def delete_one(self, collection: str, filter: Filter) -> int:
        col = self._col(collection)
        for _id, d in list(col.items()):
            if matches(d, filter):
                del col[_id]
                return 1
        return 0

    async def aggregate(self, collection: str, pipeline: List[dict]) -> List[dict]:
        docs = list(self._col(collection).values())
        for stage in pipeline:
            (name, spec), = stage.items()
            if name == "$match":
                docs = [d for d in docs if matches(d, spec)]
            elif name == "$group":
                docs = _group(docs, spec)
            elif name == "$sort":
                docs = sort_docs(docs, list(spec.items()))
            elif name == "$limit":
                docs = docs[:spec]
            else:
                raise ValueError(f"Unsupported pipeline stage {name}")
        return copy.deepcopy(docs)

    async def ensure_indexes(self) -> None:
        return None

    async def close(self) -> None:
        self.collections.clear()

from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

Filter = Dict[str, Any]
Sort = Sequence[Tuple[str, int]]


class DocumentStore(Protocol):
    """
    Minimal document-store contract the services are written against.

    Filters and update documents use the MongoDB query language (the subset
    the in-memory store understands). ``update_one`` returns the matched
    count and ``delete_one`` the deleted count, so callers can tell a miss
    from a write.
    """

    async def find(self, collection: str, filter: Optional[Filter] = None,
                   sort: Optional[Sort] = None, limit: int = 0) -> List[dict]: ...

    async def find_one(self, collection: str, filter: Filter) -> Optional[dict]: ...

    async def insert_one(self, collection: str, doc: dict) -> str: ...

    async def update_one(self, collection: str, filter: Filter, update: dict) -> int: ...

    async def delete_one(self, collection: str, filter: Filter) -> int: ...

    async def aggregate(self, collection: str, pipeline: List[dict]) -> List[dict]: ...

    async def ensure_indexes(self) -> None: ...

    async def close(self) -> None: ...

"""Converge a child collection onto incoming data without churning rows."""

from typing import Callable, Hashable, Iterable, List, MutableSequence, Optional, TypeVar

C = TypeVar("C")
D = TypeVar("D")


def update_children(
    collection: MutableSequence[C],
    incoming: Iterable[D],
    existing_key: Callable[[C], Hashable],
    incoming_key: Callable[[D], Hashable],
    build: Callable[[D], C],
    update: Optional[Callable[[C, D], None]] = None,
    pool: Optional[List[C]] = None,
) -> List[C]:
    """
    Diff ``collection`` against ``incoming`` by key.

    Each incoming item either updates the first unclaimed existing child
    with the same key or is built into a new child appended to the
    collection. Existing children never claimed are removed from the
    collection; with a ``delete-orphan`` cascade that deletes them on flush.

    ``pool`` restricts matching and removal to a subset of the collection
    (e.g. only one attribute key of a shared localized attribute table).

    Returns the removed children.
    """
    remaining = list(collection if pool is None else pool)
    for item in incoming:
        key = incoming_key(item)
        match = next((child for child in remaining if existing_key(child) == key), None)
        if match is None:
            collection.append(build(item))
            continue
        remaining.remove(match)
        if update is not None:
            update(match, item)
    for child in remaining:
        collection.remove(child)
    return remaining

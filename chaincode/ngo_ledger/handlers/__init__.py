"""
Record handlers for the NGO ledger.

Each handler takes an InvocationContext and the JSON argument blob, validates
the blob with a pydantic model and works through the context's store and
queries. build_registry() is the single table mapping operation names to
handlers.
"""

from ..dispatch import HandlerRegistry
from .entity import (
    create_entity,
    delete_entity,
    query_all_entities,
    query_entity,
    update_entity,
)
from .entry import (
    create_entry,
    query_all_entries,
    query_entries_by_entity,
    query_entries_by_order_id,
    query_entry,
)
from .ledger import init_ledger, query_history_for_key

OPERATIONS = {
    "initLedger": init_ledger,
    # Entities
    "createEntity": create_entity,
    "updateEntity": update_entity,
    "deleteEntity": delete_entity,
    "queryEntity": query_entity,
    "queryAllEntities": query_all_entities,
    # Entries
    "createEntry": create_entry,
    "queryEntry": query_entry,
    "queryAllEntries": query_all_entries,
    "queryEntriesByOrderId": query_entries_by_order_id,
    "queryEntriesByEntity": query_entries_by_entity,
    # Audit
    "queryHistoryForKey": query_history_for_key,
}


def build_registry() -> HandlerRegistry:
    """Create a registry holding every ledger operation."""
    registry = HandlerRegistry()
    for name, fn in OPERATIONS.items():
        registry.register(name, fn)
    return registry


__all__ = ["OPERATIONS", "build_registry"]

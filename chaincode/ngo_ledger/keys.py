"""
Key namespace scheme for ledger records.

A storage key is the record's docType immediately followed by its natural
identifier, with no separator:

    entity + "6322"      -> "entity6322"
    entry  + "12341234"  -> "entry12341234"

Range scans rely on keys of one docType sorting contiguously, which holds
while identifiers start with a character in the scan band (see
query.planner). Identifiers outside that band are accepted but logged,
since they would be invisible to list queries.
"""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)

ENTITY = "entity"
ENTRY = "entry"

DOC_TYPES: tuple[str, ...] = (ENTITY, ENTRY)

# Inclusive start and exclusive end of the identifier band
SCAN_LOW = "0"
SCAN_HIGH = "z"


def make_key(doc_type: str, identifier: str) -> str:
    """Build the storage key for a record.

    Args:
        doc_type: Record docType
        identifier: Type-specific natural identifier

    Returns:
        Storage key

    Raises:
        ValueError: If either part is empty
    """
    if not doc_type:
        raise ValueError("doc_type is required to build a key")
    identifier = str(identifier)
    if not identifier:
        raise ValueError(f"identifier is required to build a {doc_type} key")
    if not (SCAN_LOW <= identifier[0] < SCAN_HIGH):
        logger.warning(
            "Identifier starts outside the scan band and will not appear in list queries",
            extra={"doc_type": doc_type, "identifier": identifier},
        )
    return f"{doc_type}{identifier}"


def split_key(key: str, doc_types: tuple[str, ...] = DOC_TYPES) -> tuple[str, str]:
    """Split a storage key into (docType, identifier).

    The longest matching docType prefix wins.

    Raises:
        ValueError: If no known docType prefixes the key
    """
    for doc_type in sorted(doc_types, key=len, reverse=True):
        if key.startswith(doc_type) and len(key) > len(doc_type):
            return doc_type, key[len(doc_type):]
    raise ValueError(f"Key has no known docType prefix: {key}")


def entity_key(registration_number: str) -> str:
    return make_key(ENTITY, registration_number)


def entry_key(entry_id: str) -> str:
    return make_key(ENTRY, entry_id)

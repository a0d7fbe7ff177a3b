"""Document store abstraction and its SQL implementation."""

from cpq.store.base import (
    CollectionPath,
    DocumentRef,
    DocumentStore,
    Record,
    Transaction,
    clients_collection,
    counter_ref,
    quotes_collection,
)
from cpq.store.exceptions import DocumentNotFoundError, StoreError, TransactionAbortedError

__all__ = [
    "CollectionPath",
    "DocumentNotFoundError",
    "DocumentRef",
    "DocumentStore",
    "Record",
    "StoreError",
    "Transaction",
    "TransactionAbortedError",
    "clients_collection",
    "counter_ref",
    "quotes_collection",
]

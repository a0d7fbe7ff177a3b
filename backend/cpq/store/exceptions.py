"""Document store exceptions."""


class StoreError(Exception):
    """Base store exception (network, permission, driver failures)."""

    pass


class DocumentNotFoundError(StoreError):
    """Referenced document does not exist."""

    pass


class TransactionAbortedError(StoreError):
    """Transaction could not be committed after exhausting retries."""

    pass

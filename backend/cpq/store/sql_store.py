"""Document store backed by PostgreSQL through SQLModel / SQLAlchemy asyncio."""

from collections.abc import Awaitable, Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, TypeVar

import structlog
from sqlalchemy import delete, update
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import SQLModel, select
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from cpq.config import settings
from cpq.models.client import Client
from cpq.models.product import Product
from cpq.models.quote import Quote, QuoteCounter
from cpq.store.base import CLIENTS, COUNTERS, PRODUCTS, QUOTES, CollectionPath, DocumentRef, Record, Transaction
from cpq.store.exceptions import DocumentNotFoundError, StoreError, TransactionAbortedError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

COLLECTION_MODELS: dict[str, type[SQLModel]] = {
    QUOTES: Quote,
    CLIENTS: Client,
    PRODUCTS: Product,
    COUNTERS: QuoteCounter,
}

# serialization_failure, deadlock_detected
CONFLICT_SQLSTATES = frozenset({"40001", "40P01"})

# asyncpg raises plain OSError / TimeoutError when it cannot connect;
# SQLAlchemy only wraps errors from the DBAPI itself.
STORE_FAILURES: tuple[type[BaseException], ...] = (SQLAlchemyError, OSError, TimeoutError)


def _model_for(collection: CollectionPath) -> type[SQLModel]:
    try:
        return COLLECTION_MODELS[collection.name]
    except KeyError:
        raise StoreError(f"Unknown collection: {collection.name}") from None


def _collection_predicate(model: type[SQLModel], collection: CollectionPath) -> ColumnElement[bool]:
    return getattr(model, "tenant_id") == collection.tenant_id  # type: ignore[no-any-return]


def _document_predicates(model: type[SQLModel], ref: DocumentRef) -> list[ColumnElement[bool]]:
    return [
        _collection_predicate(model, ref.collection),
        getattr(model, "id") == ref.record_id,
    ]


def _to_record(row: SQLModel) -> Record:
    return row.model_dump()


def is_conflict_error(exc: BaseException) -> bool:
    """True for errors PostgreSQL expects the client to retry."""
    if not isinstance(exc, DBAPIError):
        return False
    sqlstate = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    return sqlstate in CONFLICT_SQLSTATES


@contextmanager
def _store_errors() -> Iterator[None]:
    """Translate driver and connection failures into StoreError."""
    try:
        yield
    except STORE_FAILURES as e:
        raise StoreError(str(e) or type(e).__name__) from e


class SqlTransaction:
    """Transaction handle bound to one session.

    Reads lock the row (SELECT ... FOR UPDATE) until the transaction ends,
    so a concurrent read-modify-write on the same record waits for this one.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, ref: DocumentRef) -> Record | None:
        model = _model_for(ref.collection)
        stmt = select(model).where(*_document_predicates(model, ref)).with_for_update()
        result = await self._session.execute(stmt)
        row = result.scalars().first()
        return _to_record(row) if row is not None else None

    async def update(self, ref: DocumentRef, patch: Mapping[str, Any]) -> None:
        model = _model_for(ref.collection)
        stmt = update(model).where(*_document_predicates(model, ref)).values(**patch)
        result = await self._session.execute(stmt)
        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise DocumentNotFoundError(f"{ref} not found")


class SqlDocumentStore:
    """DocumentStore implementation over an async session factory."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        *,
        max_attempts: int | None = None,
    ):
        self._session_maker = session_maker
        self._max_attempts = max_attempts or settings.store_transaction_max_attempts

    def _transaction_retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            retry=retry_if_exception(is_conflict_error),
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=0.05, min=0.05, max=1.0),
            reraise=True,
        )

    async def _run_once(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        async with self._session_maker() as session, session.begin():
            return await fn(SqlTransaction(session))

    async def run_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        try:
            async for attempt in self._transaction_retrying():
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(
                            "Retrying store transaction after conflict",
                            attempt=attempt.retry_state.attempt_number,
                            max_attempts=self._max_attempts,
                        )
                    result = await self._run_once(fn)
        except DBAPIError as e:
            if not is_conflict_error(e):
                raise StoreError(str(e)) from e
            raise TransactionAbortedError(f"Transaction aborted after {self._max_attempts} attempts") from e
        except STORE_FAILURES as e:
            raise StoreError(str(e) or type(e).__name__) from e
        return result

    async def get(self, ref: DocumentRef) -> Record | None:
        model = _model_for(ref.collection)
        with _store_errors():
            async with self._session_maker() as session:
                result = await session.execute(select(model).where(*_document_predicates(model, ref)))
                row = result.scalars().first()
        return _to_record(row) if row is not None else None

    async def create(self, collection: CollectionPath, data: Mapping[str, Any]) -> str:
        model = _model_for(collection)
        row = model(**{**data, "tenant_id": collection.tenant_id})
        record_id: str = getattr(row, "id")
        with _store_errors():
            async with self._session_maker() as session, session.begin():
                session.add(row)
        logger.debug("Created record", collection=str(collection), record_id=record_id)
        return record_id

    async def update_field(self, collection: CollectionPath, record_id: str, patch: Mapping[str, Any]) -> None:
        model = _model_for(collection)
        ref = collection.doc(record_id)
        with _store_errors():
            async with self._session_maker() as session, session.begin():
                stmt = update(model).where(*_document_predicates(model, ref)).values(**patch)
                result = await session.execute(stmt)
        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise DocumentNotFoundError(f"{ref} not found")

    async def delete(self, ref: DocumentRef) -> None:
        model = _model_for(ref.collection)
        with _store_errors():
            async with self._session_maker() as session, session.begin():
                result = await session.execute(delete(model).where(*_document_predicates(model, ref)))
        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise DocumentNotFoundError(f"{ref} not found")

    async def list_all(self, collection: CollectionPath) -> list[Record]:
        model = _model_for(collection)
        stmt = select(model).where(_collection_predicate(model, collection)).order_by(getattr(model, "id"))
        with _store_errors():
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                rows = result.scalars().all()
        return [_to_record(row) for row in rows]

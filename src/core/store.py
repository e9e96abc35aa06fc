"""Relational store access with a closed error taxonomy.

Every call returns a ``StoreResult`` holding either ``data`` or ``error``,
never both. Vendor error codes are translated into ``StoreErrorKind`` once,
here, so callers branch on the kind instead of matching PostgREST codes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Mapping, Protocol, Sequence, TypeVar

import httpx
from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client

from src.core.supabase import get_supabase_client

logger = logging.getLogger(__name__)

T = TypeVar("T")

Row = dict[str, Any]

# PostgREST / Postgres codes we translate explicitly
NO_ROWS_CODE = "PGRST116"
UNIQUE_VIOLATION_CODE = "23505"
UNAUTHORIZED_CODES = frozenset({"42501", "PGRST301", "PGRST302"})


class StoreErrorKind(str, Enum):
    """Closed set of failure kinds surfaced by the store layer."""

    NOT_FOUND = "not_found"
    EXPIRED = "expired"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    TRANSPORT = "transport"


@dataclass(frozen=True)
class StoreError:
    """A failed store call."""

    kind: StoreErrorKind
    message: str
    code: str | None = None

    @property
    def is_not_found(self) -> bool:
        """The row is unusable for the caller: missing or expired."""
        return self.kind in (StoreErrorKind.NOT_FOUND, StoreErrorKind.EXPIRED)

    @classmethod
    def not_found(cls, message: str = "Row not found") -> "StoreError":
        return cls(kind=StoreErrorKind.NOT_FOUND, message=message, code=NO_ROWS_CODE)

    @classmethod
    def expired(cls, message: str = "Row has expired") -> "StoreError":
        return cls(kind=StoreErrorKind.EXPIRED, message=message, code=NO_ROWS_CODE)

    @classmethod
    def from_postgrest(cls, exc: PostgrestAPIError) -> "StoreError":
        """Translate a PostgREST error into a store error."""
        code = exc.code
        message = exc.message or str(exc)
        if code == NO_ROWS_CODE:
            kind = StoreErrorKind.NOT_FOUND
        elif code == UNIQUE_VIOLATION_CODE:
            kind = StoreErrorKind.CONFLICT
        elif code in UNAUTHORIZED_CODES:
            kind = StoreErrorKind.UNAUTHORIZED
        else:
            kind = StoreErrorKind.TRANSPORT
        return cls(kind=kind, message=message, code=code)

    @classmethod
    def from_transport(cls, exc: Exception) -> "StoreError":
        return cls(kind=StoreErrorKind.TRANSPORT, message=str(exc) or exc.__class__.__name__)


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """Either a value or a ``StoreError``."""

    data: T | None = None
    error: StoreError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T) -> "StoreResult[T]":
        return cls(data=data)

    @classmethod
    def failure(cls, error: StoreError) -> "StoreResult[T]":
        return cls(error=error)


class Store(Protocol):
    """Backing interface required by the invitation and join services."""

    def insert(self, table: str, record: Mapping[str, Any]) -> StoreResult[Row]: ...

    def select_one(
        self, table: str, match: Mapping[str, Any], columns: str = "*"
    ) -> StoreResult[Row]: ...

    def select_many(
        self,
        table: str,
        match: Mapping[str, Any],
        order_by: str | None = None,
        desc: bool = True,
        columns: str = "*",
    ) -> StoreResult[list[Row]]: ...

    def update(
        self, table: str, match: Mapping[str, Any], patch: Mapping[str, Any]
    ) -> StoreResult[Row]: ...

    def delete(self, table: str, match: Mapping[str, Any]) -> StoreResult[None]: ...

    def upsert(
        self,
        table: str,
        record: Mapping[str, Any],
        conflict_keys: Sequence[str],
        ignore_duplicates: bool = False,
    ) -> StoreResult[Row]: ...

    def rpc(self, function: str, params: Mapping[str, Any] | None = None) -> StoreResult[Any]: ...


class SupabaseStore:
    """``Store`` implementation backed by the Supabase PostgREST client."""

    def __init__(self, client: Client | None = None) -> None:
        self.client = client or get_supabase_client()

    def _run(self, table: str, operation: str, build: Any) -> StoreResult[Any]:
        try:
            response = build()
        except PostgrestAPIError as e:
            error = StoreError.from_postgrest(e)
            logger.warning(
                "Store %s on %s failed: %s (%s)", operation, table, error.message, error.code
            )
            return StoreResult.failure(error)
        except httpx.HTTPError as e:
            logger.error("Store %s on %s transport failure: %s", operation, table, str(e))
            return StoreResult.failure(StoreError.from_transport(e))
        return StoreResult.success(response.data)

    @staticmethod
    def _first(result: StoreResult[Any]) -> StoreResult[Row]:
        if not result.ok:
            return result
        if not result.data:
            return StoreResult.failure(StoreError.not_found())
        return StoreResult.success(result.data[0])

    def _filtered(self, query: Any, match: Mapping[str, Any]) -> Any:
        for column, value in match.items():
            query = query.eq(column, value)
        return query

    def insert(self, table: str, record: Mapping[str, Any]) -> StoreResult[Row]:
        result = self._run(
            table, "insert", lambda: self.client.table(table).insert(dict(record)).execute()
        )
        return self._first(result)

    def select_one(
        self, table: str, match: Mapping[str, Any], columns: str = "*"
    ) -> StoreResult[Row]:
        result = self._run(
            table,
            "select",
            lambda: self._filtered(self.client.table(table).select(columns), match)
            .limit(1)
            .execute(),
        )
        return self._first(result)

    def select_many(
        self,
        table: str,
        match: Mapping[str, Any],
        order_by: str | None = None,
        desc: bool = True,
        columns: str = "*",
    ) -> StoreResult[list[Row]]:
        def build() -> Any:
            query = self._filtered(self.client.table(table).select(columns), match)
            if order_by:
                query = query.order(order_by, desc=desc)
            return query.execute()

        result = self._run(table, "select", build)
        if not result.ok:
            return result
        return StoreResult.success(list(result.data or []))

    def update(
        self, table: str, match: Mapping[str, Any], patch: Mapping[str, Any]
    ) -> StoreResult[Row]:
        result = self._run(
            table,
            "update",
            lambda: self._filtered(self.client.table(table).update(dict(patch)), match).execute(),
        )
        return self._first(result)

    def delete(self, table: str, match: Mapping[str, Any]) -> StoreResult[None]:
        result = self._run(
            table,
            "delete",
            lambda: self._filtered(self.client.table(table).delete(), match).execute(),
        )
        if not result.ok:
            return result
        return StoreResult.success(None)

    def upsert(
        self,
        table: str,
        record: Mapping[str, Any],
        conflict_keys: Sequence[str],
        ignore_duplicates: bool = False,
    ) -> StoreResult[Row]:
        """Insert or update on ``conflict_keys``.

        With ``ignore_duplicates`` an existing row is left alone and the
        result is NOT_FOUND, since nothing was written.
        """
        result = self._run(
            table,
            "upsert",
            lambda: self.client.table(table)
            .upsert(
                dict(record),
                on_conflict=",".join(conflict_keys),
                ignore_duplicates=ignore_duplicates,
            )
            .execute(),
        )
        return self._first(result)

    def rpc(self, function: str, params: Mapping[str, Any] | None = None) -> StoreResult[Any]:
        return self._run(
            function, "rpc", lambda: self.client.rpc(function, dict(params or {})).execute()
        )


def get_store() -> Store:
    """Return the default store for request handlers."""
    return SupabaseStore()

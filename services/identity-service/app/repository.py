"""Database repository for user accounts."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account, AuthProvider, PendingReset
from .domain.contracts import AccountLookup, CreateAccountInput

_COLUMNS = (
    "id, email, password_hash, firstname, lastname, is_active, auth_provider, "
    "activation_code, reset_code, reset_expire, deleted_at, birthday, phone, avatar, "
    "created_at, updated_at"
)

_UPDATABLE_COLUMNS = frozenset(
    {
        "firstname",
        "lastname",
        "password_hash",
        "auth_provider",
        "is_active",
        "activation_code",
        "reset_code",
        "reset_expire",
        "deleted_at",
    }
)


class AccountRepository:
    """Postgres-backed account persistence over the ``users`` table."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def find_one(self, lookup: AccountLookup) -> Account | None:
        """Return the most recently updated account matching every constraint of ``lookup``."""
        clauses = ["email = %s"]
        params: list[Any] = [lookup.email]

        if lookup.activation_code is not None:
            clauses.append("activation_code = %s")
            params.append(lookup.activation_code)
        if lookup.reset_code is not None:
            clauses.append("reset_code = %s")
            params.append(lookup.reset_code)
        if lookup.is_active is not None:
            clauses.append("is_active = %s")
            params.append(lookup.is_active)
        if lookup.deleted is True:
            clauses.append("deleted_at IS NOT NULL")
        elif lookup.deleted is False:
            clauses.append("deleted_at IS NULL")

        where_sql = " AND ".join(clauses)
        query = f"""
            SELECT {_COLUMNS}
            FROM users
            WHERE {where_sql}
            ORDER BY updated_at DESC
            LIMIT 1
        """
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(query, params)
                row = cur.fetchone()
                if not row:
                    return None
        return self._map_record(row)

    def create_account(self, payload: CreateAccountInput) -> Account:
        """Insert a new account row and return it."""
        account_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    f"""
                    INSERT INTO users (
                        id, email, password_hash, firstname, lastname, is_active,
                        auth_provider, activation_code, created_at, updated_at
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING {_COLUMNS}
                    """,
                    (
                        account_id,
                        payload.email,
                        payload.password_hash,
                        payload.firstname,
                        payload.lastname,
                        payload.is_active,
                        payload.auth_provider.value,
                        payload.activation_code,
                        now,
                        now,
                    ),
                )
                record = cur.fetchone()
                conn.commit()
        return self._map_record(record)

    def update_account(self, account_id: str, changes: Mapping[str, Any]) -> Account:
        """Apply column ``changes`` to the account and return the updated row.

        Raises
        ------
        ValueError
            When ``changes`` names a column that may not be updated.
        LookupError
            When no account with ``account_id`` exists.
        """
        unknown = set(changes) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"cannot update columns: {', '.join(sorted(unknown))}")

        assignments = [f"{column} = %s" for column in changes]
        params: list[Any] = [
            value.value if isinstance(value, Enum) else value for value in changes.values()
        ]
        assignments.append("updated_at = %s")
        params.append(datetime.now(timezone.utc))
        params.append(account_id)

        with self._pool.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    f"""
                    UPDATE users
                    SET {", ".join(assignments)}
                    WHERE id = %s
                    RETURNING {_COLUMNS}
                    """,
                    params,
                )
                record = cur.fetchone()
                conn.commit()
        if record is None:
            raise LookupError(f"account {account_id} not found")
        return self._map_record(record)

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        reset_code, reset_expire = row[8], row[9]
        return Account(
            account_id=str(row[0]),
            email=row[1],
            password_hash=row[2],
            firstname=row[3],
            lastname=row[4],
            is_active=row[5],
            auth_provider=AuthProvider(row[6]),
            activation_code=row[7],
            reset=PendingReset(reset_code, reset_expire) if reset_code is not None else None,
            deleted_at=row[10],
            birthday=row[11],
            phone=row[12],
            avatar=row[13],
            created_at=row[14],
            updated_at=row[15],
        )

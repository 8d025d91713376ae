# -*- coding: utf-8 -*-
"""Local store — SQLite helpers.

Mirrors the hosted tables so the service can run (and be tested) without the
hosted store. There are no row-level policies locally: every query in the
storage modules is already scoped by an explicit ``user_id``.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple
from uuid import uuid4

from .gateway import ConflictError, Filter, Row, StorageError, TableClient, check_filters

_JSON_COLUMNS = {"sets_json"}
_BOOL_COLUMNS = {"viewed", "is_custom", "onboarding_completed", "notifications_enabled"}

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS user_profiles (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL UNIQUE,
        email TEXT,
        onboarding_completed INTEGER NOT NULL DEFAULT 0,
        first_name TEXT,
        last_name TEXT,
        age INTEGER,
        height_value REAL,
        height_unit TEXT,
        weight_value REAL,
        weight_unit TEXT,
        target_weight_value REAL,
        target_weight_unit TEXT,
        activity_level TEXT,
        experience_level TEXT,
        goal TEXT,
        calorie_goal_value REAL,
        calorie_goal_unit TEXT,
        protein_ratio REAL,
        carbs_ratio REAL,
        fat_ratio REAL,
        protein_goal_g REAL,
        carbs_goal_g REAL,
        fat_goal_g REAL,
        gender TEXT,
        notifications_enabled INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS daily_diary (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        day_date TEXT NOT NULL,
        calorie_goal REAL NOT NULL DEFAULT 0,
        calories_consumed REAL NOT NULL DEFAULT 0,
        calories_burned REAL NOT NULL DEFAULT 0,
        protein_goal_g REAL NOT NULL DEFAULT 0,
        carbs_goal_g REAL NOT NULL DEFAULT 0,
        fat_goal_g REAL NOT NULL DEFAULT 0,
        protein_consumed_g REAL NOT NULL DEFAULT 0,
        carbs_consumed_g REAL NOT NULL DEFAULT 0,
        fat_consumed_g REAL NOT NULL DEFAULT 0,
        protein_ratio REAL,
        carbs_ratio REAL,
        fat_ratio REAL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE (user_id, day_date)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS food_diary_entry (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        day_id TEXT NOT NULL,
        food_id TEXT,
        food_name TEXT NOT NULL,
        brand TEXT,
        meal_type TEXT NOT NULL,
        serving_size REAL NOT NULL,
        serving_unit TEXT NOT NULL,
        calories REAL NOT NULL DEFAULT 0,
        protein REAL NOT NULL DEFAULT 0,
        carbs REAL NOT NULL DEFAULT 0,
        fat REAL NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY(day_id) REFERENCES daily_diary(id) ON DELETE CASCADE
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_food_diary_entry_day ON food_diary_entry(day_id, created_at ASC);",
    """
    CREATE TABLE IF NOT EXISTS activity_diary (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        start_at TEXT NOT NULL,
        end_at TEXT NOT NULL,
        bodyweight_kg REAL,
        notes TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS activity_diary_entry (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        diary_id TEXT NOT NULL,
        exercise_id TEXT NOT NULL,
        sets_json TEXT NOT NULL DEFAULT '[]',
        est_kcal REAL,
        notes TEXT,
        position INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY(diary_id) REFERENCES activity_diary(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS step_measurements (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        start_time TEXT NOT NULL,
        end_time TEXT NOT NULL,
        step_count INTEGER NOT NULL DEFAULT 0,
        source TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_step_measurements_user_start ON step_measurements(user_id, start_time DESC);",
    """
    CREATE TABLE IF NOT EXISTS ai_recommendations (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        analyzed_date TEXT NOT NULL,
        prompt_version INTEGER NOT NULL,
        prompt TEXT NOT NULL,
        response TEXT,
        model_used TEXT,
        error_message TEXT,
        viewed INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        UNIQUE (user_id, analyzed_date)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS user_weights (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        weight_value REAL NOT NULL,
        weight_unit TEXT NOT NULL,
        weight_kg REAL NOT NULL,
        measured_at TEXT NOT NULL,
        source TEXT,
        created_at TEXT NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_user_weights_user_measured ON user_weights(user_id, measured_at DESC);",
    """
    CREATE TABLE IF NOT EXISTS user_push_tokens (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        push_token TEXT NOT NULL,
        device_id TEXT,
        device_name TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS food_categories (
        id TEXT PRIMARY KEY,
        slug TEXT NOT NULL UNIQUE,
        name TEXT,
        created_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS foods (
        id TEXT PRIMARY KEY,
        food_category_id TEXT NOT NULL,
        food_name TEXT NOT NULL,
        energy_kcal REAL NOT NULL,
        energy_kj REAL,
        protein_g REAL NOT NULL,
        carbs_g REAL NOT NULL,
        fat_g REAL NOT NULL,
        fiber_g REAL,
        sugar_g REAL,
        salt_g REAL,
        barcode TEXT,
        created_by TEXT,
        is_custom INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY(food_category_id) REFERENCES food_categories(id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS food_translations (
        id TEXT PRIMARY KEY,
        food_id TEXT NOT NULL,
        locale TEXT NOT NULL,
        name TEXT NOT NULL,
        brand TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY(food_id) REFERENCES foods(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS food_portions (
        id TEXT PRIMARY KEY,
        food_id TEXT NOT NULL,
        portion_weight_g REAL NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY(food_id) REFERENCES foods(id) ON DELETE CASCADE
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS food_portions_translations (
        id TEXT PRIMARY KEY,
        food_portion_id TEXT NOT NULL,
        locale TEXT NOT NULL,
        name TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY(food_portion_id) REFERENCES food_portions(id) ON DELETE CASCADE
    );
    """,
]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def connect(db_path: Path) -> sqlite3.Connection:
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def init_app_db(db_path: Path) -> None:
    conn = connect(db_path)
    try:
        cur = conn.cursor()
        for statement in _SCHEMA:
            cur.execute(statement)
        conn.commit()
    finally:
        conn.close()


@contextmanager
def db_conn(db_path: Path) -> Iterator[sqlite3.Connection]:
    conn = connect(db_path)
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def _encode(column: str, value: Any) -> Any:
    if column in _JSON_COLUMNS and not isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    if isinstance(value, bool):
        return 1 if value else 0
    return value


def _decode_row(row: sqlite3.Row) -> Row:
    out: Row = dict(row)
    for key, value in out.items():
        if key in _JSON_COLUMNS and isinstance(value, str):
            try:
                out[key] = json.loads(value)
            except ValueError:
                out[key] = []
        elif key in _BOOL_COLUMNS and value is not None:
            out[key] = bool(value)
    return out


class SqliteTableClient(TableClient):
    """Blocking sqlite3 work runs in a worker thread (one connection per call)."""

    def __init__(self, backend: "SqliteBackend") -> None:
        self._backend = backend

    def _columns(self, conn: sqlite3.Connection, table: str) -> List[str]:
        cached = self._backend.columns.get(table)
        if cached is not None:
            return cached
        rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
        if not rows:
            raise StorageError(f"Unknown table: {table}")
        cols = [r["name"] for r in rows]
        self._backend.columns[table] = cols
        return cols

    def _where(self, columns: List[str], filters: Sequence[Filter]) -> Tuple[str, List[Any]]:
        check_filters(filters)
        clauses: List[str] = []
        args: List[Any] = []
        for f in filters:
            if f.column not in columns:
                raise StorageError(f"Unknown column: {f.column}")
            col = f'"{f.column}"'
            if f.op == "eq" and f.value is None:
                clauses.append(f"{col} IS NULL")
            elif f.op == "neq" and f.value is None:
                clauses.append(f"{col} IS NOT NULL")
            elif f.op == "in":
                if not f.value:
                    clauses.append("0")
                    continue
                marks = ", ".join("?" for _ in f.value)
                clauses.append(f"{col} IN ({marks})")
                args.extend(_encode(f.column, v) for v in f.value)
            elif f.op == "ilike":
                clauses.append(f"{col} LIKE ?")
                args.append(f.value)
            else:
                sql_op = {"eq": "=", "neq": "!=", "gt": ">", "gte": ">=", "lt": "<", "lte": "<="}[f.op]
                clauses.append(f"{col} {sql_op} ?")
                args.append(_encode(f.column, f.value))
        if not clauses:
            return "", args
        return " WHERE " + " AND ".join(clauses), args

    def _select_sql(
        self,
        conn: sqlite3.Connection,
        table: str,
        *,
        filters: Sequence[Filter],
        columns: str,
        order: Optional[str],
        desc: bool,
        limit: Optional[int],
        offset: Optional[int],
    ) -> List[Row]:
        table_cols = self._columns(conn, table)
        if columns.strip() == "*":
            col_sql = "*"
        else:
            wanted = [c.strip() for c in columns.split(",") if c.strip()]
            for c in wanted:
                if c not in table_cols:
                    raise StorageError(f"Unknown column: {c}")
            col_sql = ", ".join(f'"{c}"' for c in wanted)
        where, args = self._where(table_cols, filters)
        sql = f"SELECT {col_sql} FROM {table}{where}"
        if order:
            if order not in table_cols:
                raise StorageError(f"Unknown column: {order}")
            sql += f' ORDER BY "{order}" {"DESC" if desc else "ASC"}'
        if limit is not None or offset:
            sql += " LIMIT ? OFFSET ?"
            args.extend([-1 if limit is None else int(limit), int(offset or 0)])
        return [_decode_row(r) for r in conn.execute(sql, args).fetchall()]

    async def select(
        self,
        table: str,
        *,
        filters: Sequence[Filter] = (),
        columns: str = "*",
        order: Optional[str] = None,
        desc: bool = False,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Row]:
        return await asyncio.to_thread(
            self._select, table, filters, columns, order, desc, limit, offset
        )

    def _select(
        self,
        table: str,
        filters: Sequence[Filter],
        columns: str,
        order: Optional[str],
        desc: bool,
        limit: Optional[int],
        offset: Optional[int],
    ) -> List[Row]:
        with self._backend.conn() as conn:
            return self._select_sql(
                conn, table, filters=filters, columns=columns, order=order, desc=desc, limit=limit, offset=offset
            )

    async def count(self, table: str, *, filters: Sequence[Filter] = ()) -> int:
        return await asyncio.to_thread(self._count, table, filters)

    def _count(self, table: str, filters: Sequence[Filter]) -> int:
        with self._backend.conn() as conn:
            where, args = self._where(self._columns(conn, table), filters)
            row = conn.execute(f"SELECT COUNT(*) AS n FROM {table}{where}", args).fetchone()
            return int(row["n"])

    async def insert(self, table: str, values: Row | List[Row]) -> List[Row]:
        return await asyncio.to_thread(self._insert, table, values)

    def _insert(self, table: str, values: Row | List[Row]) -> List[Row]:
        rows = values if isinstance(values, list) else [values]
        now = _utc_now()
        ids: List[str] = []
        with self._backend.conn() as conn:
            table_cols = self._columns(conn, table)
            for raw in rows:
                record = dict(raw)
                record.setdefault("id", str(uuid4()))
                for stamp in ("created_at", "updated_at"):
                    if stamp in table_cols and not record.get(stamp):
                        record[stamp] = now
                unknown = [k for k in record if k not in table_cols]
                if unknown:
                    raise StorageError(f"Unknown column(s) for {table}: {', '.join(unknown)}")
                cols = list(record.keys())
                sql = "INSERT INTO {} ({}) VALUES ({})".format(
                    table,
                    ", ".join(f'"{c}"' for c in cols),
                    ", ".join("?" for _ in cols),
                )
                try:
                    conn.execute(sql, [_encode(c, record[c]) for c in cols])
                except sqlite3.IntegrityError as exc:
                    if "UNIQUE" in str(exc):
                        raise ConflictError(str(exc), code="23505") from exc
                    raise StorageError(str(exc)) from exc
                ids.append(str(record["id"]))
            return self._by_ids(conn, table, ids)

    def _by_ids(self, conn: sqlite3.Connection, table: str, ids: List[str]) -> List[Row]:
        if not ids:
            return []
        marks = ", ".join("?" for _ in ids)
        found = {
            r["id"]: _decode_row(r)
            for r in conn.execute(f"SELECT * FROM {table} WHERE id IN ({marks})", ids).fetchall()
        }
        return [found[i] for i in ids if i in found]

    async def update(self, table: str, values: Row, *, filters: Sequence[Filter]) -> List[Row]:
        if not filters:
            raise StorageError(f"Refusing unfiltered update on {table}")
        return await asyncio.to_thread(self._update, table, values, filters)

    def _update(self, table: str, values: Row, filters: Sequence[Filter]) -> List[Row]:
        with self._backend.conn() as conn:
            table_cols = self._columns(conn, table)
            record = dict(values)
            record.pop("id", None)
            if "updated_at" in table_cols and "updated_at" not in record:
                record["updated_at"] = _utc_now()
            unknown = [k for k in record if k not in table_cols]
            if unknown:
                raise StorageError(f"Unknown column(s) for {table}: {', '.join(unknown)}")
            where, args = self._where(table_cols, filters)
            ids = [r["id"] for r in conn.execute(f"SELECT id FROM {table}{where}", args).fetchall()]
            if not ids or not record:
                return self._by_ids(conn, table, ids)
            assignments = ", ".join(f'"{c}" = ?' for c in record)
            marks = ", ".join("?" for _ in ids)
            try:
                conn.execute(
                    f"UPDATE {table} SET {assignments} WHERE id IN ({marks})",
                    [_encode(c, v) for c, v in record.items()] + ids,
                )
            except sqlite3.IntegrityError as exc:
                if "UNIQUE" in str(exc):
                    raise ConflictError(str(exc), code="23505") from exc
                raise StorageError(str(exc)) from exc
            return self._by_ids(conn, table, ids)

    async def delete(self, table: str, *, filters: Sequence[Filter]) -> List[Row]:
        if not filters:
            raise StorageError(f"Refusing unfiltered delete on {table}")
        return await asyncio.to_thread(self._delete, table, filters)

    def _delete(self, table: str, filters: Sequence[Filter]) -> List[Row]:
        with self._backend.conn() as conn:
            table_cols = self._columns(conn, table)
            where, args = self._where(table_cols, filters)
            rows = [_decode_row(r) for r in conn.execute(f"SELECT * FROM {table}{where}", args).fetchall()]
            if rows:
                try:
                    conn.execute(f"DELETE FROM {table}{where}", args)
                except sqlite3.IntegrityError as exc:
                    raise StorageError(str(exc)) from exc
            return rows


class SqliteBackend:
    """Single-file local store; both credential modes share one connection path."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.columns: Dict[str, List[str]] = {}
        init_app_db(db_path)

    @contextmanager
    def conn(self) -> Iterator[sqlite3.Connection]:
        try:
            with db_conn(self.db_path) as conn:
                yield conn
        except sqlite3.Error as exc:
            raise StorageError(f"Local store error: {exc}") from exc

    def client(self, access_token: str) -> TableClient:  # noqa: ARG002
        return SqliteTableClient(self)

    def service_client(self) -> TableClient:
        return SqliteTableClient(self)

"""Database binding routes: schema, table browsing, queries, row mutations."""

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from edgedeck.gateway.pagination import parse_page
from edgedeck.gateway.resolver import backing_call
from edgedeck.gateway.routes._models import (
    QueryRequest,
    field,
    page_size,
    read_json,
    read_model,
    resolver,
)

router = APIRouter(prefix="/d1", tags=["d1"])

# Internal tables of sqlite and the emulator; `_` is escaped so it is literal
_SCHEMA_SQL = """
SELECT name FROM sqlite_master
WHERE type = 'table'
  AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\'
  AND name NOT LIKE '\\_cf\\_%' ESCAPE '\\'
  AND name NOT LIKE '\\_mf\\_%' ESCAPE '\\'
ORDER BY name
"""

_COLUMNS_SQL = 'SELECT name, type, "notnull", dflt_value, pk FROM pragma_table_info(?)'


def quote_identifier(name: str) -> str:
    """Quote a table or column name for interpolation into SQL."""
    return '"' + name.replace('"', '""') + '"'


def is_read_query(sql: str) -> bool:
    """Read/write split by leading keyword.

    A lexical heuristic, not a parser: ``WITH ... SELECT`` or a ``PRAGMA``
    counts as a write and is reported with a mutation summary.
    """
    return sql.strip().upper().startswith("SELECT")


def _coerce_id(row_id: str) -> int | str:
    return int(row_id) if row_id.lstrip("-").isdigit() else row_id


async def _all(db: Any, sql: str, *params: Any) -> list[dict[str, Any]]:
    result = await db.prepare(sql).bind(*params).all()
    return list(field(result, "results", []))


async def _describe_table(db: Any, table: str) -> dict[str, Any]:
    columns = [
        {
            "name": c["name"],
            "type": c["type"],
            "notnull": bool(c["notnull"]),
            "default": c["dflt_value"],
            "primary_key": bool(c["pk"]),
        }
        for c in await _all(db, _COLUMNS_SQL, table)
    ]
    if not columns:
        return {"table": table, "columns": [], "rowCount": None}
    counted = await _all(db, f"SELECT COUNT(*) AS count FROM {quote_identifier(table)}")
    return {"table": table, "columns": columns, "rowCount": counted[0]["count"] if counted else 0}


async def _column_values(request: Request) -> dict[str, Any]:
    values = await read_json(request)
    if not isinstance(values, dict):
        raise HTTPException(status_code=400, detail="Body must be a JSON object of column values")
    return values


def _mutation(result: Any) -> dict[str, Any]:
    meta = field(result, "meta", {}) or {}
    return {
        "success": bool(field(result, "success", True)),
        "meta": {
            "changes": meta.get("changes", 0),
            "last_row_id": meta.get("last_row_id"),
            "duration": meta.get("duration"),
        },
    }


# ═══════════════════════════════════════════════════════════════
# DISCOVERY
# ═══════════════════════════════════════════════════════════════


@router.get("/")
async def list_databases(request: Request) -> dict[str, Any]:
    """Declared database bindings."""
    return {
        "databases": [
            {"binding": e.binding, "database_name": e.database_name}
            for e in resolver(request).manifest.d1
        ]
    }


@router.get("/{binding}/schema")
async def get_schema(request: Request, binding: str) -> dict[str, Any]:
    """User tables with columns and row counts."""
    db = resolver(request).resolve("d1", binding)
    with backing_call("schema"):
        names = [row["name"] for row in await _all(db, _SCHEMA_SQL)]
        tables = []
        for name in names:
            described = await _describe_table(db, name)
            tables.append({
                "name": name,
                "columns": described["columns"],
                "rowCount": described["rowCount"],
            })
    return {"tables": tables}


@router.get("/{binding}/tables/{table}")
async def get_table(request: Request, binding: str, table: str) -> dict[str, Any]:
    db = resolver(request).resolve("d1", binding)
    with backing_call("describe table"):
        described = await _describe_table(db, table)
    if not described["columns"]:
        raise HTTPException(status_code=404, detail=f"Table '{table}' not found")
    return described


@router.get("/{binding}/tables/{table}/rows")
async def get_rows(
    request: Request,
    binding: str,
    table: str,
    limit: str | None = None,
    offset: str | None = None,
) -> dict[str, Any]:
    """One page of rows in storage order."""
    db = resolver(request).resolve("d1", binding)
    page = parse_page(limit, offset, page_size=page_size(request))
    with backing_call("read rows"):
        rows = await _all(
            db,
            f"SELECT * FROM {quote_identifier(table)} LIMIT ? OFFSET ?",
            page.limit,
            page.offset,
        )
    return {"rows": rows, "meta": {"limit": page.limit, "offset": page.offset}}


# ═══════════════════════════════════════════════════════════════
# QUERY
# ═══════════════════════════════════════════════════════════════


@router.post("/{binding}/query")
async def run_query(request: Request, binding: str) -> dict[str, Any]:
    """Run arbitrary SQL with positional parameters."""
    db = resolver(request).resolve("d1", binding)
    body = await read_model(request, QueryRequest)
    if not body.sql or not body.sql.strip():
        raise HTTPException(status_code=400, detail="SQL query is required")

    with backing_call("query"):
        statement = db.prepare(body.sql).bind(*body.params)
        if is_read_query(body.sql):
            result = await statement.all()
        else:
            result = await statement.run()

    meta = field(result, "meta", {}) or {}
    if is_read_query(body.sql):
        return {
            "success": bool(field(result, "success", True)),
            "results": list(field(result, "results", [])),
            "meta": {"changes": 0, "duration": meta.get("duration")},
        }
    return _mutation(result)


# ═══════════════════════════════════════════════════════════════
# ROW MUTATIONS
# Rows are addressed by their `id` column; names are not validated here,
# the database rejects what it does not know.
# ═══════════════════════════════════════════════════════════════


@router.post("/{binding}/tables/{table}/rows")
async def insert_row(request: Request, binding: str, table: str) -> dict[str, Any]:
    db = resolver(request).resolve("d1", binding)
    values = await _column_values(request)
    if not values:
        raise HTTPException(status_code=400, detail="At least one column value is required")

    columns = ", ".join(quote_identifier(c) for c in values)
    placeholders = ", ".join("?" for _ in values)
    sql = f"INSERT INTO {quote_identifier(table)} ({columns}) VALUES ({placeholders})"
    with backing_call("insert row"):
        result = await db.prepare(sql).bind(*values.values()).run()
    return _mutation(result)


@router.put("/{binding}/tables/{table}/rows/{row_id}")
async def update_row(request: Request, binding: str, table: str, row_id: str) -> dict[str, Any]:
    db = resolver(request).resolve("d1", binding)
    values = await _column_values(request)
    updates = {k: v for k, v in values.items() if k != "id"}
    if not updates:
        raise HTTPException(status_code=400, detail="At least one column value is required")

    assignments = ", ".join(f"{quote_identifier(c)} = ?" for c in updates)
    sql = f"UPDATE {quote_identifier(table)} SET {assignments} WHERE id = ?"
    with backing_call("update row"):
        result = await db.prepare(sql).bind(*updates.values(), _coerce_id(row_id)).run()
    return _mutation(result)


@router.delete("/{binding}/tables/{table}/rows/{row_id}")
async def delete_row(request: Request, binding: str, table: str, row_id: str) -> dict[str, Any]:
    db = resolver(request).resolve("d1", binding)
    sql = f"DELETE FROM {quote_identifier(table)} WHERE id = ?"
    with backing_call("delete row"):
        result = await db.prepare(sql).bind(_coerce_id(row_id)).run()
    return _mutation(result)

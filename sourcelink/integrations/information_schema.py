"""Pure normalization stages for information schema trees.

raw rows -> formatted tree -> tree with ``columns_id`` -> stripped tree.
Each stage returns a new value; persistence is left to the caller.
"""

from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from sourcelink.integrations.types import DataSourceType
from sourcelink.schemas.information_schema import Column, Database, Schema, Table

# Backends whose information schema has no real catalog level
CATALOGLESS_SOURCE_TYPES = frozenset({DataSourceType.MYSQL, DataSourceType.CLICKHOUSE})


def _lower_keys(row: Mapping[str, Any]) -> dict[str, Any]:
    return {str(key).lower(): value for key, value in row.items()}


def format_information_schema(
    raw: Sequence[Mapping[str, Any]],
    source_type: DataSourceType,
) -> list[Database]:
    """Group raw information-schema rows into a Database → Schema → Table → Column tree.

    Nodes keep the order in which they first appear in ``raw``. Row keys are
    matched case-insensitively since some warehouses return upper-case
    column names.

    Args:
        raw: Rows with table_catalog, table_schema, table_name, column_name,
            data_type and optionally field_path
        source_type: Backend type, used to build paths

    Returns:
        Formatted tree with no ``columns_id`` set

    """
    include_catalog = source_type not in CATALOGLESS_SOURCE_TYPES
    tree: dict[str, dict[str, dict[str, list[Column]]]] = {}
    table_paths: dict[tuple[str, str, str], str] = {}

    for row in raw:
        row = _lower_keys(row)
        catalog = str(row.get("table_catalog") or "")
        schema = str(row["table_schema"])
        table = str(row["table_name"])
        column_name = str(row.get("field_path") or row["column_name"])

        parts = [catalog, schema, table] if include_catalog and catalog else [schema, table]
        table_path = ".".join(parts)
        table_paths[(catalog, schema, table)] = table_path

        tree.setdefault(catalog, {}).setdefault(schema, {}).setdefault(table, []).append(
            Column(
                column_name=column_name,
                data_type=str(row.get("data_type") or ""),
                path=f"{table_path}.{column_name}",
            )
        )

    databases = []
    for catalog, schemas in tree.items():
        schema_nodes = []
        for schema, tables in schemas.items():
            table_nodes = [
                Table(
                    table_name=table,
                    path=table_paths[(catalog, schema, table)],
                    columns=columns,
                    num_of_columns=len(columns),
                )
                for table, columns in tables.items()
            ]
            schema_path = f"{catalog}.{schema}" if include_catalog and catalog else schema
            schema_nodes.append(Schema(schema_name=schema, path=schema_path, tables=table_nodes))
        databases.append(Database(database_name=catalog, path=catalog, schemas=schema_nodes))

    return databases


def iter_tables(tree: Sequence[Database]) -> Iterator[Table]:
    """Yield every table in tree order."""
    for database in tree:
        for schema in database.schemas:
            yield from schema.tables


def count_tables(tree: Sequence[Database]) -> int:
    return sum(1 for _ in iter_tables(tree))


def with_columns_ids(tree: Sequence[Database], columns_ids: Sequence[str]) -> list[Database]:
    """Return a copy of ``tree`` with ``columns_ids`` assigned to tables in tree order.

    Raises:
        ValueError: If the number of ids does not match the number of tables

    """
    total = count_tables(tree)
    if len(columns_ids) != total:
        raise ValueError(f"Expected {total} columns ids, got {len(columns_ids)}")

    ids = iter(columns_ids)
    return [
        database.model_copy(
            update={
                "schemas": [
                    schema.model_copy(
                        update={"tables": [table.model_copy(update={"columns_id": next(ids)}) for table in schema.tables]}
                    )
                    for schema in database.schemas
                ]
            }
        )
        for database in tree
    ]


def strip_columns(tree: Sequence[Database]) -> list[Database]:
    """Return a copy of ``tree`` without column lists; tables keep ``num_of_columns``."""
    return [
        database.model_copy(
            update={
                "schemas": [
                    schema.model_copy(
                        update={"tables": [table.model_copy(update={"columns": []}) for table in schema.tables]}
                    )
                    for schema in database.schemas
                ]
            }
        )
        for database in tree
    ]

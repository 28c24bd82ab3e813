"""Administrative CLI for inspecting and managing mapped tables."""
from __future__ import annotations

import argparse
import base64
import importlib
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import orjson

from lazyorm.config import load_settings
from lazyorm.errors import ConfigurationError, PersistenceError
from lazyorm.mapping.coder import looks_like_url, sql_type
from lazyorm.mapping.metadata import SemanticType, TypeDescriptor, describe, persistable_fields, primary_key_field
from lazyorm.mapping.naming import camel_to_snake
from lazyorm.mapping.proxy import unwrap
from lazyorm.observability.log import configure_logging
from lazyorm.storage.database import Database
from lazyorm.storage.reader import build_select_sql
from lazyorm.storage.schema import build_create_sql, build_drop_sql
from lazyorm.storage.writer import build_insert_sql


def resolve_type(spec: str) -> type:
    """Import ``package.module:ClassName`` and check it is a registered row type."""
    module_name, _, attr = spec.partition(":")
    if not module_name or not attr:
        raise ConfigurationError(f"Type must be given as module:ClassName, got {spec!r}")
    try:
        module = importlib.import_module(module_name)
        row_type = getattr(module, attr)
    except (ImportError, AttributeError) as exc:
        raise ConfigurationError(f"Cannot import {spec}: {exc}") from exc
    describe(row_type)
    return row_type


def describe_payload(descriptor: TypeDescriptor) -> Dict[str, Any]:
    key_field = primary_key_field(descriptor)
    payload: Dict[str, Any] = {
        "table": descriptor.name,
        "primary_key": key_field.name if key_field else None,
        "fields": [
            {
                "name": item.name,
                "column": camel_to_snake(item.name),
                "sql_type": sql_type(item.semantic_type, field_name=item.name),
                "semantic_type": SemanticType(item.semantic_type).value,
                "flags": sorted(flag.value for flag in item.flags),
            }
            for item in persistable_fields(descriptor)
        ],
        "create_sql": build_create_sql(descriptor),
        "drop_sql": build_drop_sql(descriptor),
        "insert_sql": build_insert_sql(descriptor),
    }
    if key_field is not None:
        payload["select_sql"] = build_select_sql(descriptor)
    return payload


def row_payload(row: Any) -> Dict[str, Any]:
    """JSON-friendly view of a loaded row's stored values; never fetches."""
    raw = unwrap(row)
    payload: Dict[str, Any] = {}
    for item in persistable_fields(describe(raw)):
        value = getattr(raw, item.name)
        if looks_like_url(value):
            value = {"url": bytes(value).decode("utf-8")}
        elif isinstance(value, (bytes, bytearray)):
            value = {"base64": base64.b64encode(value).decode("ascii")}
        payload[item.name] = value
    return payload


def parse_key(row_type: type, text: str) -> Any:
    key_field = primary_key_field(describe(row_type))
    if key_field is None:
        raise ConfigurationError(f"{row_type.__name__} has no single primary key")
    column_type = sql_type(key_field.semantic_type, field_name=key_field.name)
    if column_type == "INTEGER":
        try:
            return int(text)
        except ValueError as exc:
            raise ConfigurationError(f"Primary key {key_field.name} expects an integer, got {text!r}") from exc
    if column_type == "BLOB":
        return text.encode("utf-8")
    return text


def _emit(payload: Any) -> None:
    print(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode())


def cmd_describe(args: argparse.Namespace) -> None:
    _emit(describe_payload(describe(resolve_type(args.type))))


def cmd_create_table(args: argparse.Namespace, database: Database) -> None:
    sql = database.create_table(resolve_type(args.type))
    _emit({"executed": sql})


def cmd_drop_table(args: argparse.Namespace, database: Database) -> None:
    sql = database.drop_table(resolve_type(args.type))
    _emit({"executed": sql})


def cmd_load(args: argparse.Namespace, database: Database) -> None:
    row_type = resolve_type(args.type)
    row = database.load_by_key(row_type, parse_key(row_type, args.key))
    _emit(row_payload(row))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lazyorm", description="Inspect and manage mapped tables")
    parser.add_argument("--config", default="config/settings.toml", help="Path to settings TOML")
    parser.add_argument("--database", help="SQLite file, overrides the configured path")
    sub = parser.add_subparsers(dest="command", required=True)

    describe_cmd = sub.add_parser("describe", help="Show field metadata and generated SQL")
    describe_cmd.add_argument("type", help="Row type as module:ClassName")

    create = sub.add_parser("create-table", help="Create the table for a row type")
    create.add_argument("type")

    drop = sub.add_parser("drop-table", help="Drop the table for a row type")
    drop.add_argument("type")

    load = sub.add_parser("load", help="Load one row by primary key")
    load.add_argument("type")
    load.add_argument("--key", required=True)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_settings(Path(args.config))
    configure_logging(settings.logging.config_path, level=settings.logging.level)
    try:
        if args.command == "describe":
            cmd_describe(args)
            return 0
        with Database.open(args.database, settings=settings) as database:
            if args.command == "create-table":
                cmd_create_table(args, database)
            elif args.command == "drop-table":
                cmd_drop_table(args, database)
            elif args.command == "load":
                cmd_load(args, database)
    except PersistenceError as exc:
        print(orjson.dumps({"error": type(exc).__name__, "message": str(exc)}).decode(), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

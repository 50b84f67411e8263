"""Command line interface for composing and filling workbooks."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from tabulate import tabulate

from .composer import (
    build_multi_sheet_workbook,
    build_query_workbook,
    build_styled_workbook,
    compose_workbook,
)
from .config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from .database import QueryDatabase, ensure_safe_query, sample_rows, validate_query
from .errors import DatabaseError, NoDataError, UnsafeQueryError, ValidationError, XlComposeError
from .filler import fill_template
from .models import (
    parse_fill_request,
    parse_multi_sheet_request,
    parse_query_request,
    parse_styled_request,
    parse_workbook_spec,
)
from .templates import TemplateStore

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compose XLSX workbooks from JSON documents")
    parser.add_argument("--config", type=Path, help=f"Path to YAML configuration (default {DEFAULT_CONFIG_PATH})")
    parser.add_argument("--templates-dir", type=Path, help="Override the template directory")
    parser.add_argument("--database-url", help="Override the database URL (sqlite:<path>)")
    parser.add_argument("--output-dir", type=Path, help="Directory for generated workbooks")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING)")
    parser.add_argument("--quiet", action="store_true", help="Suppress console output")

    commands = parser.add_subparsers(dest="command", required=True)

    generate = commands.add_parser("generate", help="Compose a workbook from a JSON document")
    generate.add_argument("document", type=Path)
    generate.add_argument("--output", type=Path, help="Explicit output path")

    query = commands.add_parser("query", help="Export the rows of a SELECT query")
    query.add_argument("--sql", required=True)
    query.add_argument("--param", action="append", default=[], help="Positional query parameter")
    query.add_argument("--sheet-name")
    query.add_argument("--table-name")
    query.add_argument("--start-cell")
    query.add_argument("--filename")
    query.add_argument("--output", type=Path)

    fill = commands.add_parser("fill", help="Fill a stored template with JSON data")
    fill.add_argument("template")
    fill.add_argument("data", type=Path)
    fill.add_argument("--filename")
    fill.add_argument("--output", type=Path)

    multi = commands.add_parser("multi-sheet", help="One table per sheet from data or queries")
    multi.add_argument("document", type=Path)
    multi.add_argument("--output", type=Path)

    styled = commands.add_parser("styled", help="Styled tables with sheet formatting")
    styled.add_argument("document", type=Path)
    styled.add_argument("--output", type=Path)

    templates = commands.add_parser("templates", help="Manage stored templates")
    template_commands = templates.add_subparsers(dest="template_command", required=True)
    template_commands.add_parser("list")
    upload = template_commands.add_parser("upload")
    upload.add_argument("path", type=Path)
    upload.add_argument("--name", help="Stored file name (defaults to the source name)")
    delete = template_commands.add_parser("delete")
    delete.add_argument("name")

    check = commands.add_parser("validate-query", help="Run the query safety checks")
    check.add_argument("sql")

    schema = commands.add_parser("schema", help="List tables or the columns of one table")
    schema.add_argument("table", nargs="?")

    commands.add_parser("sample-data", help="Print the demonstration rows")
    return parser


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = _load_config(args.config)
        _apply_overrides(config, args)
    except Exception as exc:  # pragma: no cover - CLI validation
        logging.basicConfig(level=logging.INFO)
        logger.error("Failed to load configuration: %s", exc)
        return 1

    logging.basicConfig(
        level=getattr(logging, (args.log_level or config.log_level).upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    database: Optional[QueryDatabase] = None
    try:
        if config.database.url and args.command in {"query", "multi-sheet", "schema"}:
            database = _open_database(config.database.url, required=args.command == "schema")
        return _dispatch(args, config, database)
    except XlComposeError as exc:
        logger.error("%s failed (%s): %s", args.command, exc.classification, exc.message)
        return 1
    except Exception as exc:
        logger.exception("%s failed: %s", args.command, exc)
        return 1
    finally:
        if database is not None:
            database.close()


def _dispatch(args: argparse.Namespace, config: AppConfig, database: Optional[QueryDatabase]) -> int:
    store = TemplateStore.from_config(config.templates)

    if args.command == "generate":
        spec = parse_workbook_spec(_read_json(args.document))
        result = compose_workbook(spec, store, application_name=config.application_name)
        _write_result(config, args, result.filename, result.content)
        _report(args, f"Processed {result.sheet_count} sheets and {result.cell_count} cells")
        return 0

    if args.command == "query":
        payload: Dict[str, Any] = {"query": args.sql, "params": list(args.param)}
        for key, value in (
            ("sheetName", args.sheet_name),
            ("tableName", args.table_name),
            ("startCell", args.start_cell),
            ("filename", args.filename),
        ):
            if value is not None:
                payload[key] = value
        request = parse_query_request(payload)
        rows = fetch_rows(database, request.query, request.params)
        if not rows:
            raise NoDataError("Query returned no results")
        result = build_query_workbook(
            rows,
            sheet_name=request.sheet_name,
            table_name=request.table_name,
            start_cell=request.start_cell,
            style=request.style,
            filename=request.filename,
        )
        _write_result(config, args, result.filename, result.content)
        _report(args, f"Exported {len(rows)} rows")
        return 0

    if args.command == "fill":
        payload = {"template": args.template, "data": _read_json(args.data)}
        if args.filename:
            payload["filename"] = args.filename
        request = parse_fill_request(payload)
        filled = fill_template(store, request.template, request.data)
        _write_result(config, args, request.filename, filled.content)
        _report(args, f"Filled {filled.sheet_count} sheets ({filled.rows_added:+d} rows)")
        return 0

    if args.command == "multi-sheet":
        request = parse_multi_sheet_request(_read_json(args.document))
        result = build_multi_sheet_workbook(
            request, lambda sql, params: fetch_rows(database, sql, params)
        )
        _write_result(config, args, result.filename, result.content)
        _report(args, f"Processed {result.sheet_count} sheets")
        return 0

    if args.command == "styled":
        request = parse_styled_request(_read_json(args.document))
        result = build_styled_workbook(request)
        _write_result(config, args, result.filename, result.content)
        _report(args, f"Processed {result.sheet_count} sheets")
        return 0

    if args.command == "templates":
        return _templates_command(args, store)

    if args.command == "validate-query":
        rows = [
            {"check": "select_only", "passed": args.sql.strip().lower().startswith("select")},
            {"check": "no_dangerous_patterns", "passed": validate_query(args.sql)},
        ]
        _print_rows(args, rows)
        return 0 if all(row["passed"] for row in rows) else 1

    if args.command == "schema":
        if database is None:
            raise DatabaseError("No database configured")
        _print_rows(args, database.schema(args.table))
        return 0

    if args.command == "sample-data":
        _print_rows(args, sample_rows())
        return 0

    raise ValidationError(f"Unknown command '{args.command}'")  # pragma: no cover - argparse guards this


def fetch_rows(
    database: Optional[QueryDatabase], sql: str, params: Sequence[Any] = ()
) -> List[Mapping[str, Any]]:
    """Run a safe query, falling back to the sample rows when the database fails.

    Unsafe queries are always rejected, with or without a database.
    """

    ensure_safe_query(sql)
    if database is None:
        logger.warning("Database not available, using sample data")
        return sample_rows()
    try:
        return database.execute_safe(sql, params)
    except UnsafeQueryError:
        raise
    except DatabaseError as exc:
        logger.warning("Query failed (%s), using sample data", exc.message)
        return sample_rows()


def _templates_command(args: argparse.Namespace, store: TemplateStore) -> int:
    if args.template_command == "list":
        _print_rows(args, [info.to_dict() for info in store.list()])
        return 0
    if args.template_command == "upload":
        source = Path(args.path).expanduser()
        if not source.is_file():
            raise ValidationError(f"No template file at {source}")
        info = store.save(args.name or source.name, source.read_bytes())
        _report(args, f"Template uploaded: {info.filename} ({info.size} bytes)")
        return 0
    store.delete(args.name)
    _report(args, f"Template {args.name} deleted")
    return 0


def _open_database(url: str, required: bool) -> Optional[QueryDatabase]:
    try:
        return QueryDatabase(url).open()
    except DatabaseError:
        if required:
            raise
        logger.warning("Database features disabled for this run")
        return None


def _load_config(path: Optional[Path]) -> AppConfig:
    if path is not None:
        return load_config(path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return load_config(None)


def _apply_overrides(config: AppConfig, args: argparse.Namespace) -> None:
    if args.templates_dir:
        config.templates.directory = _resolve_override_path(args.templates_dir)
    if args.database_url:
        config.database.url = args.database_url
    if args.output_dir:
        config.output.directory = _resolve_override_path(args.output_dir)


def _resolve_override_path(path: Path) -> Path:
    path = Path(path).expanduser()
    if path.is_absolute():
        return path
    return (Path.cwd() / path).resolve()


def _read_json(path: Path) -> Any:
    try:
        with Path(path).expanduser().open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError:
        raise ValidationError(f"Input document {path} does not exist") from None
    except json.JSONDecodeError as exc:
        raise ValidationError(f"Input document {path} is not valid JSON: {exc}") from exc


def _write_result(config: AppConfig, args: argparse.Namespace, filename: str, content: bytes) -> Path:
    target = getattr(args, "output", None)
    if target is None:
        name = Path(filename or config.output.default_filename).name
        target = config.output.directory / name
    target = Path(target).expanduser()
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(content)
    logger.info("Wrote %s (%d bytes)", target, len(content))
    _report(args, f"Wrote {target}")
    return target


def _report(args: argparse.Namespace, message: str) -> None:
    if not args.quiet:
        print(message)


def _print_rows(args: argparse.Namespace, rows: Sequence[Mapping[str, Any]]) -> None:
    if args.quiet:
        return
    if not rows:
        print("No rows.")
        return
    print(tabulate(rows, headers="keys", tablefmt="github"))


__all__ = ["build_parser", "fetch_rows", "main"]


if __name__ == "__main__":  # pragma: no cover - manual execution entry point
    raise SystemExit(main())

from __future__ import annotations

import argparse
import itertools
import json
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Mapping, Sequence

from .client import AirtableClient
from .config import AirtableConfig
from .exceptions import (
    CodecError,
    ConfigurationError,
    DeleteFailedError,
    HTTPRequestError,
    SchemaError,
)
from .options import ListOptions, sort_by
from .records import DictRecord, Record, record_to_wire
from .table import Table

_DEFAULT_BASE_URL = "https://api.airtable.com/v0"
_DEFAULT_TIMEOUT_SECONDS = 30.0


def build_parser() -> argparse.ArgumentParser:
    shared = argparse.ArgumentParser(add_help=False)
    _add_global_args(shared)

    parser = argparse.ArgumentParser(
        prog="airtable",
        description="Airtable CLI powered by airtable-sdk",
        parents=[shared],
    )
    subparsers = parser.add_subparsers(dest="group")
    subparsers.required = True

    _build_records_commands(subparsers, shared)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    output_format = "human"
    try:
        args = parser.parse_args(argv)
        output_format = str(args.output_format)
        if bool(getattr(args, "verbose", False)):
            logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
        handler = getattr(args, "handler", None)
        if handler is None:
            raise ValueError("missing command handler")
        result = handler(args)
        _print_result(result, output_format=output_format)
        return 0
    except SystemExit as exc:
        return _system_exit_code(exc)
    except ConfigurationError as exc:
        return _print_error(str(exc), exit_code=2, output_format=output_format)
    except ValueError as exc:
        return _print_error(str(exc), exit_code=2, output_format=output_format)
    except HTTPRequestError as exc:
        message = _format_http_error(exc)
        return _print_error(
            message,
            exit_code=4,
            output_format=output_format,
            error_type=exc.error_type or type(exc).__name__,
        )
    except (DeleteFailedError, SchemaError, CodecError) as exc:
        return _print_error(str(exc), exit_code=3, output_format=output_format, error_type=type(exc).__name__)
    except Exception as exc:
        return _print_error(str(exc), exit_code=1, output_format=output_format, error_type=type(exc).__name__)


def _add_global_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=("human", "json"),
        default="human",
        help="Output format. Default: human",
    )
    parser.add_argument("--api-key", help="Airtable personal access token (or AIRTABLE_API_KEY)")
    parser.add_argument("--base-id", help="Airtable base id, e.g. appXXXXXXXXXXXXXX (or AIRTABLE_BASE_ID)")
    parser.add_argument("--base-url", help=f"Airtable API base url. Default: {_DEFAULT_BASE_URL}")
    parser.add_argument("--timeout", type=float, help=f"HTTP timeout seconds. Default: {_DEFAULT_TIMEOUT_SECONDS}")
    parser.add_argument("--verbose", action="store_true", help="Log HTTP requests and pages to stderr")


def _build_records_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    shared: argparse.ArgumentParser,
) -> None:
    records_parser = subparsers.add_parser("records", help="Record operations")
    records_sub = records_parser.add_subparsers(dest="records_command")
    records_sub.required = True

    get_parser = records_sub.add_parser("get", help="Get a record", parents=[shared])
    get_parser.add_argument("table", help="Table name or id")
    get_parser.add_argument("record_id", help="Record id")
    get_parser.set_defaults(handler=_cmd_records_get)

    list_parser = records_sub.add_parser("list", help="List records, following every page", parents=[shared])
    list_parser.add_argument("table", help="Table name or id")
    list_parser.add_argument("--view", help="View name or id")
    list_parser.add_argument("--formula", help="filterByFormula expression")
    list_parser.add_argument(
        "--field",
        dest="fields",
        action="append",
        default=[],
        help="Only return this field (repeatable)",
    )
    list_parser.add_argument(
        "--sort",
        action="append",
        default=[],
        help="Sort by field, prefix with '-' for descending, e.g. --sort=-Name (repeatable)",
    )
    list_parser.add_argument("--page-size", type=int, help="Records per page (1-100)")
    list_parser.add_argument("--max-records", type=int, help="Server-side cap on returned records")
    list_parser.add_argument("--limit", type=int, help="Stop after this many records")
    list_parser.set_defaults(handler=_cmd_records_list)

    create_parser = records_sub.add_parser("create", help="Create a record", parents=[shared])
    create_parser.add_argument("table", help="Table name or id")
    _add_fields_args(create_parser)
    create_parser.set_defaults(handler=_cmd_records_create)

    update_parser = records_sub.add_parser("update", help="Update fields of a record", parents=[shared])
    update_parser.add_argument("table", help="Table name or id")
    update_parser.add_argument("record_id", help="Record id")
    _add_fields_args(update_parser)
    update_parser.set_defaults(handler=_cmd_records_update)

    delete_parser = records_sub.add_parser("delete", help="Delete a record", parents=[shared])
    delete_parser.add_argument("table", help="Table name or id")
    delete_parser.add_argument("record_id", help="Record id")
    delete_parser.set_defaults(handler=_cmd_records_delete)


def _add_fields_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--fields-json", help="Fields JSON object string")
    parser.add_argument("--fields-file", help="Fields JSON file path")
    parser.add_argument("--fields-stdin", action="store_true", help="Read fields JSON from stdin")


def _cmd_records_get(args: argparse.Namespace) -> DictRecord:
    table = _build_table(args)
    return table.get(str(args.record_id), DictRecord)


def _cmd_records_list(args: argparse.Namespace) -> list[DictRecord]:
    limit = _validate_positive_int(getattr(args, "limit", None), name="limit")
    options = ListOptions(
        fields=list(getattr(args, "fields", []) or []) or None,
        filter_by_formula=getattr(args, "formula", None),
        max_records=getattr(args, "max_records", None),
        page_size=getattr(args, "page_size", None),
        sort=sort_by(*list(getattr(args, "sort", []) or [])),
        view=getattr(args, "view", None),
    )
    table = _build_table(args)
    records = table.iter_records(DictRecord, options)
    if limit is not None:
        records = itertools.islice(records, limit)
    return list(records)


def _cmd_records_create(args: argparse.Namespace) -> DictRecord:
    fields = _parse_fields(args)
    table = _build_table(args)
    return table.create(DictRecord(fields=fields))


def _cmd_records_update(args: argparse.Namespace) -> DictRecord:
    fields = _parse_fields(args)
    table = _build_table(args)
    return table.update(DictRecord(id=str(args.record_id), fields=fields))


def _cmd_records_delete(args: argparse.Namespace) -> Mapping[str, Any]:
    table = _build_table(args)
    record_id = str(args.record_id)
    table.delete(DictRecord(id=record_id))
    return {"deleted": True, "id": record_id}


def _build_config(args: argparse.Namespace) -> AirtableConfig:
    timeout_seconds = getattr(args, "timeout", None)
    if timeout_seconds is not None and timeout_seconds <= 0:
        raise ValueError("timeout must be greater than 0")
    config = AirtableConfig.from_env(
        api_key=getattr(args, "api_key", None),
        base_id=getattr(args, "base_id", None),
        base_url=getattr(args, "base_url", None),
        timeout_seconds=timeout_seconds,
    )
    return config


def _build_client(args: argparse.Namespace) -> AirtableClient:
    return AirtableClient(_build_config(args))


def _build_table(args: argparse.Namespace) -> Table:
    return Table(_build_client(args), str(args.table))


def _parse_fields(args: argparse.Namespace) -> dict[str, Any]:
    return _parse_json_object(
        json_text=getattr(args, "fields_json", None),
        file_path=getattr(args, "fields_file", None),
        stdin_enabled=bool(getattr(args, "fields_stdin", False)),
        name="fields",
        required=True,
    )


def _validate_positive_int(value: object, *, name: str) -> int | None:
    if value is None:
        return None
    try:
        parsed = int(str(value))
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if parsed <= 0:
        raise ValueError(f"{name} must be greater than 0")
    return parsed


def _parse_json_object(
    *,
    json_text: str | None,
    file_path: str | None,
    stdin_enabled: bool = False,
    name: str,
    required: bool,
) -> dict[str, Any]:
    source_count = int(bool(json_text)) + int(bool(file_path)) + int(bool(stdin_enabled))
    if source_count > 1:
        raise ValueError(
            f"only one of --{name}-json, --{name}-file or --{name}-stdin can be used"
        )
    if source_count == 0:
        if required:
            raise ValueError(
                f"one of --{name}-json, --{name}-file or --{name}-stdin is required"
            )
        return {}
    if json_text is not None:
        raw = json_text
    elif file_path is not None:
        raw = Path(str(file_path)).read_text(encoding="utf-8")
    else:
        raw = _read_stdin_text()
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{name} is not valid JSON: {exc}") from exc
    if not isinstance(parsed, Mapping):
        raise ValueError(f"{name} must be a JSON object")
    return {str(key): value for key, value in parsed.items()}


def _read_stdin_text() -> str:
    return sys.stdin.read()


def _print_result(result: Any, *, output_format: str) -> None:
    normalized = _to_jsonable(result)
    if output_format == "json":
        print(json.dumps(normalized, ensure_ascii=False, indent=2))
        return
    _print_human(normalized)


def _print_human(result: Any) -> None:
    if result is None:
        print("OK")
        return
    if isinstance(result, list):
        if not result:
            print("(no records)")
            return
        for index, item in enumerate(result, start=1):
            print(f"{index}. {_record_line(item)}")
        return
    if isinstance(result, Mapping) and isinstance(result.get("fields"), Mapping):
        print(f"id: {result.get('id', '')}")
        if result.get("createdTime"):
            print(f"createdTime: {result['createdTime']}")
        fields = result["fields"]
        width = max((len(str(key)) for key in fields), default=0)
        for key in sorted(fields):
            print(f"  {key:<{width}} = {_cell_text(fields[key])}")
        return
    if isinstance(result, Mapping):
        print(" ".join(f"{key}={value}" for key, value in result.items()) or "OK")
        return
    print(result)


def _record_line(item: Any) -> str:
    if isinstance(item, Mapping) and "id" in item:
        return f"{item['id']} {_cell_text(item.get('fields', {}))}"
    return str(item)


def _cell_text(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _print_error(
    message: str,
    *,
    exit_code: int,
    output_format: str,
    error_type: str | None = None,
) -> int:
    if output_format == "json":
        payload: dict[str, Any] = {"ok": False, "error": message, "exit_code": exit_code}
        if error_type:
            payload["error_type"] = error_type
        print(json.dumps(payload, ensure_ascii=False))
    else:
        print(f"{error_type or 'Error'}: {message}", file=sys.stderr)
    return exit_code


def _format_http_error(exc: HTTPRequestError) -> str:
    parts = [str(exc)]
    if exc.status_code is not None:
        parts.append(f"status_code={exc.status_code}")
    if exc.error_message:
        parts.append(f"message={exc.error_message}")
    elif exc.response_text:
        parts.append(f"response={exc.response_text[:500]}")
    if exc.status_code == 429:
        parts.append("hint=rate limited; wait 30 seconds before retrying")
    return "; ".join(parts)


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, Record):
        return record_to_wire(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(item) for item in value]
    return value


def _system_exit_code(exc: SystemExit) -> int:
    code = exc.code
    if code is None:
        return 0
    if isinstance(code, int):
        return code
    return 1


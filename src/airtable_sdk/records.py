"""Mapping between caller-defined record types and the Airtable wire schema.

A record is any object with an ``id`` string and a ``fields`` member. The
``fields`` member is either a dataclass instance, whose members name the
table's fields, or a plain mapping. The usual way to declare one::

    @dataclass
    class TaskFields:
        Name: str = ""
        Done: bool = False
        due: Optional[date] = field(default=None, metadata={"airtable": "Due Date"})

    @dataclass
    class Task(Record):
        fields: TaskFields = field(default_factory=TaskFields)
"""

import dataclasses
import functools
import re
import types
import typing
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Mapping, Optional, Type, TypeVar, Union

from .exceptions import (
    CodecError,
    FieldMappingError,
    MissingIdentifierError,
    MissingMemberError,
    TypeMismatchError,
)


FIELD_NAME_KEY = "airtable"

Fields = Dict[str, Any]

_MISSING = object()

_FRACTION = re.compile(r"\.(\d+)")


@dataclass
class Record:
    id: str = ""
    created_time: Optional[datetime] = None

    def record_id(self) -> str:
        return get_record_id(self)

    def fields_payload(self) -> Fields:
        return get_record_fields(self)


@dataclass
class DictRecord(Record):
    fields: Fields = field(default_factory=dict)


RecordT = TypeVar("RecordT")


def get_record_id(record: Any) -> str:
    value = getattr(record, "id", _MISSING)
    if value is _MISSING:
        raise MissingMemberError(f"{type(record).__name__} has no id member")
    if not isinstance(value, str):
        raise TypeMismatchError(f"{type(record).__name__}.id is not a string: {type(value).__name__}")
    return value


def require_record_id(record: Any) -> str:
    record_id = get_record_id(record)
    if not record_id:
        raise MissingIdentifierError(f"{type(record).__name__}.id is empty; create the record first")
    return record_id


def get_record_fields(record: Any) -> Fields:
    value = getattr(record, "fields", _MISSING)
    if value is _MISSING:
        raise MissingMemberError(f"{type(record).__name__} has no fields member")
    if _is_dataclass_instance(value):
        return fields_to_wire(value)
    if isinstance(value, Mapping):
        return {str(key): _to_wire(item) for key, item in value.items()}
    raise TypeMismatchError(
        f"{type(record).__name__}.fields is not a dataclass or mapping: {type(value).__name__}"
    )


def fields_to_wire(instance: Any) -> Fields:
    payload: Fields = {}
    for member in dataclasses.fields(instance):
        value = getattr(instance, member.name)
        if value is None:
            continue
        payload[_wire_name(member)] = _to_wire(value)
    return payload


def decode_record(
    record_type: Type[RecordT],
    payload: Mapping[str, Any],
    *,
    into: Optional[RecordT] = None,
) -> RecordT:
    """Build a ``record_type`` from a wire record, or fill ``into`` in place.

    Wire fields absent from ``payload`` keep their current value (``into``)
    or their declared default. Unknown wire fields are dropped for dataclass
    fields and kept for mapping fields.
    """
    if not isinstance(payload, Mapping):
        raise CodecError(f"record payload is not a json object: {type(payload).__name__}")
    hints = _type_hints(record_type)
    if "fields" not in hints:
        raise MissingMemberError(f"{record_type.__name__} has no fields member")

    wire_fields = payload.get("fields")
    if wire_fields is None:
        wire_fields = {}
    if not isinstance(wire_fields, Mapping):
        raise CodecError(f"record fields is not a json object: {type(wire_fields).__name__}")

    record_id = payload.get("id")
    if record_id is not None and not isinstance(record_id, str):
        raise CodecError(f"record id is not a string: {record_id!r}")
    created_time = parse_timestamp(payload.get("createdTime"))

    # Nothing on ``into`` changes until every value has been decoded.
    current = getattr(into, "fields", None) if into is not None else None
    fields_value = _decode_fields(hints["fields"], wire_fields, current, record_type.__name__)

    if into is None:
        try:
            return record_type(  # type: ignore[call-arg]
                id=record_id or "",
                created_time=created_time,
                fields=fields_value,
            )
        except TypeError as exc:
            raise CodecError(f"cannot build {record_type.__name__}: {exc}") from exc

    if record_id is not None:
        setattr(into, "id", record_id)
    if created_time is not None:
        setattr(into, "created_time", created_time)
    setattr(into, "fields", fields_value)
    return into


def new_record(container: RecordT, data: Mapping[str, Any]) -> RecordT:
    """Apply ad hoc ``data`` to ``container.fields`` in place.

    Every key of ``data`` must name a member of the fields dataclass and the
    value must be of the member's declared kind. A mismatch raises
    ``FieldMappingError``. Iteration is over ``data`` so misspelled keys are
    reported rather than ignored.
    """
    type_name = type(container).__name__
    target = getattr(container, "fields", _MISSING)
    if target is _MISSING:
        raise FieldMappingError(f"cannot find field {type_name}.fields")

    if isinstance(target, dict):
        target.update({str(key): value for key, value in data.items()})
        return container
    if not _is_dataclass_instance(target):
        raise FieldMappingError(f"{type_name}.fields is not a dataclass or dict: {type(target).__name__}")

    members = _members_by_name(type(target))
    hints = _type_hints(type(target))
    for key, value in data.items():
        member = members.get(key)
        if member is None:
            raise FieldMappingError(f"cannot find field {type_name}.{key}")
        declared = hints.get(member.name, Any)
        if not _kind_matches(declared, value):
            raise FieldMappingError(
                f"type error setting {type_name}.{key}: {_type_kind_name(declared)} != {_value_kind(value)}"
            )
        setattr(target, member.name, value)
    return container


def parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise CodecError(f"timestamp is not a string: {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat before 3.11 only takes 3 or 6 fractional digits.
    text = _FRACTION.sub(lambda match: "." + match.group(1)[:6].ljust(6, "0"), text, count=1)
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise CodecError(f"invalid RFC3339 timestamp: {value!r}") from exc


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is not None and value.utcoffset() == timezone.utc.utcoffset(None):
        return value.replace(tzinfo=None).isoformat() + "Z"
    return value.isoformat()


def _decode_fields(declared: Any, wire: Mapping[str, Any], current: Any, owner: str) -> Any:
    declared = _strip_optional(declared)
    if declared is Any or _is_mapping_type(declared):
        merged: Fields = dict(current) if isinstance(current, Mapping) else {}
        merged.update({str(key): value for key, value in wire.items()})
        return merged
    if not (isinstance(declared, type) and dataclasses.is_dataclass(declared)):
        raise TypeMismatchError(f"{owner}.fields is not a dataclass or mapping type: {declared!r}")
    return _decode_dataclass(declared, wire, current)


def _decode_dataclass(declared: type, wire: Mapping[str, Any], current: Any = None) -> Any:
    hints = _type_hints(declared)
    values: Dict[str, Any] = {}
    for member in dataclasses.fields(declared):
        wire_name = _wire_name(member)
        if wire_name not in wire:
            continue
        values[member.name] = _decode_value(
            hints.get(member.name, Any),
            wire[wire_name],
            f"{declared.__name__}.{member.name}",
        )
    if current is not None and isinstance(current, declared):
        for name, value in values.items():
            setattr(current, name, value)
        return current
    try:
        return declared(**values)
    except TypeError as exc:
        raise CodecError(f"cannot build {declared.__name__}: {exc}") from exc


def _decode_value(declared: Any, value: Any, path: str) -> Any:
    if value is None:
        return None
    declared = _strip_optional(declared)
    if declared is Any or _is_union(declared):
        return value
    origin = typing.get_origin(declared)
    if origin in (list, tuple, set, frozenset) or declared in (list, tuple):
        if not isinstance(value, list):
            raise CodecError(f"{path}: expected list, got {_value_kind(value)}")
        args = typing.get_args(declared)
        item_type = args[0] if args else Any
        return [_decode_value(item_type, item, path) for item in value]
    if _is_mapping_type(declared):
        if not isinstance(value, Mapping):
            raise CodecError(f"{path}: expected mapping, got {_value_kind(value)}")
        return dict(value)
    if isinstance(declared, type) and dataclasses.is_dataclass(declared):
        if not isinstance(value, Mapping):
            raise CodecError(f"{path}: expected object, got {_value_kind(value)}")
        return _decode_dataclass(declared, value)
    if declared is datetime:
        return parse_timestamp(value)
    if declared is date:
        if not isinstance(value, str):
            raise CodecError(f"{path}: expected date string, got {_value_kind(value)}")
        try:
            return date.fromisoformat(value)
        except ValueError as exc:
            raise CodecError(f"{path}: invalid date {value!r}") from exc
    if declared is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if isinstance(declared, type) and not isinstance(value, declared):
        raise CodecError(f"{path}: expected {declared.__name__}, got {_value_kind(value)}")
    if declared is int and isinstance(value, bool):
        raise CodecError(f"{path}: expected int, got boolean")
    return value


def _to_wire(value: Any) -> Any:
    if _is_dataclass_instance(value):
        return fields_to_wire(value)
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(key): _to_wire(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_wire(item) for item in value]
    return value


def _wire_name(member: "dataclasses.Field[Any]") -> str:
    alias = member.metadata.get(FIELD_NAME_KEY)
    if isinstance(alias, str) and alias:
        return alias
    return member.name


def _members_by_name(declared: type) -> Dict[str, "dataclasses.Field[Any]"]:
    # ad hoc data may use either the python member name or the wire name
    members: Dict[str, "dataclasses.Field[Any]"] = {}
    for member in dataclasses.fields(declared):
        members[member.name] = member
        members.setdefault(_wire_name(member), member)
    return members


@functools.lru_cache(maxsize=None)
def _type_hints(declared: type) -> Dict[str, Any]:
    try:
        return typing.get_type_hints(declared)
    except (NameError, TypeError):
        return dict(getattr(declared, "__annotations__", {}))


def _is_dataclass_instance(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def _is_union(declared: Any) -> bool:
    origin = typing.get_origin(declared)
    if origin is Union:
        return True
    union_type = getattr(types, "UnionType", None)
    return union_type is not None and origin is union_type


def _strip_optional(declared: Any) -> Any:
    if not _is_union(declared):
        return declared
    args = [arg for arg in typing.get_args(declared) if arg is not type(None)]
    if len(args) == 1:
        return args[0]
    return declared


def _is_mapping_type(declared: Any) -> bool:
    origin = typing.get_origin(declared) or declared
    return isinstance(origin, type) and issubclass(origin, Mapping)


def _kind_matches(declared: Any, value: Any) -> bool:
    if declared is Any:
        return True
    if _is_union(declared):
        return any(_kind_matches(arg, value) for arg in typing.get_args(declared))
    if declared is type(None):
        return value is None
    expected = _type_kind(declared)
    actual = _value_kind(value)
    if expected == actual:
        return True
    return expected == "number" and actual == "integer"


def _type_kind(declared: Any) -> str:
    origin = typing.get_origin(declared) or declared
    if origin is bool:
        return "boolean"
    if origin is int:
        return "integer"
    if origin is float:
        return "number"
    if origin is str:
        return "string"
    if origin in (list, tuple, set, frozenset):
        return "list"
    if _is_mapping_type(origin):
        return "mapping"
    if origin is datetime:
        return "datetime"
    if origin is date:
        return "date"
    if isinstance(origin, type) and dataclasses.is_dataclass(origin):
        return "record"
    return getattr(origin, "__name__", str(origin))


def _type_kind_name(declared: Any) -> str:
    if _is_union(declared):
        return " | ".join(_type_kind_name(arg) for arg in typing.get_args(declared))
    if declared is type(None):
        return "null"
    return _type_kind(declared)


def _value_kind(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple, set, frozenset)):
        return "list"
    if isinstance(value, Mapping):
        return "mapping"
    if isinstance(value, datetime):
        return "datetime"
    if isinstance(value, date):
        return "date"
    if _is_dataclass_instance(value):
        return "record"
    return type(value).__name__


def record_to_wire(record: Any) -> Fields:
    created_time = getattr(record, "created_time", None)
    return {
        "id": get_record_id(record),
        "createdTime": format_timestamp(created_time) if isinstance(created_time, datetime) else None,
        "fields": get_record_fields(record),
    }

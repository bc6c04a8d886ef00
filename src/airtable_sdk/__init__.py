from .client import AirtableClient, AsyncAirtableClient
from .codec import decode_object, encode_fields_body
from .config import AirtableConfig
from .exceptions import (
    CodecError,
    ConfigurationError,
    DeleteFailedError,
    FieldMappingError,
    HTTPRequestError,
    MissingIdentifierError,
    MissingMemberError,
    SchemaError,
    SDKError,
    TypeMismatchError,
)
from .http_client import AsyncHttpClient, HttpClient
from .options import ListOptions, SortSpec, sort_by
from .records import (
    DictRecord,
    Fields,
    Record,
    decode_record,
    get_record_fields,
    get_record_id,
    new_record,
    record_to_wire,
)
from .table import AsyncTable, Table, make_path
from .types import CellFormat, SortDirection

__all__ = [
    "AirtableClient",
    "AirtableConfig",
    "AsyncAirtableClient",
    "AsyncHttpClient",
    "AsyncTable",
    "CellFormat",
    "CodecError",
    "ConfigurationError",
    "DeleteFailedError",
    "DictRecord",
    "FieldMappingError",
    "Fields",
    "HTTPRequestError",
    "HttpClient",
    "ListOptions",
    "MissingIdentifierError",
    "MissingMemberError",
    "Record",
    "SDKError",
    "SchemaError",
    "SortDirection",
    "SortSpec",
    "Table",
    "TypeMismatchError",
    "decode_object",
    "decode_record",
    "encode_fields_body",
    "get_record_fields",
    "get_record_id",
    "make_path",
    "new_record",
    "record_to_wire",
    "sort_by",
]

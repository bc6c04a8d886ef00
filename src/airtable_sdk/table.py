import logging
from typing import Any, AsyncIterator, Iterator, List, Optional, Tuple, Type, TypeVar, Union
from urllib.parse import quote

from .client import AirtableClient, AsyncAirtableClient
from .codec import decode_object, encode_fields_body
from .exceptions import CodecError, DeleteFailedError, MissingIdentifierError
from .options import ListOptions
from .records import decode_record, get_record_fields, require_record_id


logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT")


def make_path(table_name: str, record_id: str = "") -> str:
    name = quote(table_name, safe="")
    if not record_id:
        return name
    return f"{name}/{quote(record_id, safe='')}"


def _decode_into(target: Union[RecordT, Type[RecordT]], raw: bytes) -> RecordT:
    payload = decode_object(raw)
    if isinstance(target, type):
        return decode_record(target, payload)
    return decode_record(type(target), payload, into=target)


def _decode_update(record: RecordT, record_id: str, raw: bytes) -> RecordT:
    payload = decode_object(raw)
    answered = payload.get("id")
    if answered and answered != record_id:
        raise CodecError(f"update of {record_id} answered for record {answered}")
    return decode_record(type(record), payload, into=record)


def _decode_page(record_type: Type[RecordT], raw: bytes) -> Tuple[List[RecordT], Optional[str]]:
    data = decode_object(raw)
    items = data.get("records")
    if items is None:
        items = []
    if not isinstance(items, list):
        raise CodecError("list response records is not a json array")
    offset = data.get("offset")
    if offset is not None and not isinstance(offset, str):
        raise CodecError(f"list response offset is not a string: {offset!r}")
    return [decode_record(record_type, item) for item in items], offset or None


def _check_deleted(record_id: str, raw: bytes) -> None:
    data = decode_object(raw)
    if data.get("deleted") is not True:
        raise DeleteFailedError(
            f"did not delete {record_id}: {raw.decode('utf-8', errors='replace')}",
            record_id=record_id,
            response=data,
        )


def _require_get_id(record_id: str) -> str:
    if not isinstance(record_id, str) or not record_id:
        raise MissingIdentifierError("record id must be a non-empty string")
    return record_id


class Table:
    """Typed CRUD access to a single table.

    Records are passed in and filled in place: ``create`` and ``update``
    copy the server's answer (id, created time, computed fields) back into
    the record they were given.
    """

    def __init__(self, client: AirtableClient, name: str) -> None:
        if not name:
            raise ValueError("table name must not be empty")
        self._client = client
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    def get(self, record_id: str, record: Union[RecordT, Type[RecordT]]) -> RecordT:
        path = make_path(self._name, _require_get_id(record_id))
        raw = self._client.request("GET", path)
        return _decode_into(record, raw)

    def create(self, record: RecordT) -> RecordT:
        body = encode_fields_body(get_record_fields(record))
        raw = self._client.request_with_body("POST", make_path(self._name), None, body)
        return _decode_into(record, raw)

    def update(self, record: RecordT) -> RecordT:
        record_id = require_record_id(record)
        body = encode_fields_body(get_record_fields(record))
        raw = self._client.request_with_body("PATCH", make_path(self._name, record_id), None, body)
        return _decode_update(record, record_id, raw)

    def delete(self, record: Any) -> None:
        record_id = require_record_id(record)
        raw = self._client.request("DELETE", make_path(self._name, record_id))
        _check_deleted(record_id, raw)

    def list(
        self,
        record_type: Type[RecordT],
        records: Optional[List[RecordT]] = None,
        options: Optional[ListOptions] = None,
    ) -> List[RecordT]:
        """Fetch every page and append its records to ``records``.

        There is no page limit: the loop ends only when the server stops
        returning an offset. Use ``iter_records`` to stop earlier. If a page
        fails, records from the pages before it stay in ``records``.
        """
        output: List[RecordT] = records if records is not None else []
        for record in self.iter_records(record_type, options):
            output.append(record)
        return output

    def iter_records(
        self,
        record_type: Type[RecordT],
        options: Optional[ListOptions] = None,
    ) -> Iterator[RecordT]:
        page_options = options or ListOptions()
        page = 0
        while True:
            page += 1
            raw = self._client.request("GET", make_path(self._name), page_options)
            items, offset = _decode_page(record_type, raw)
            logger.debug(
                "table %s page %d: %d records, offset=%s",
                self._name,
                page,
                len(items),
                offset,
            )
            yield from items
            if not offset:
                return
            page_options = page_options.with_offset(offset)


class AsyncTable:
    def __init__(self, client: AsyncAirtableClient, name: str) -> None:
        if not name:
            raise ValueError("table name must not be empty")
        self._client = client
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def get(self, record_id: str, record: Union[RecordT, Type[RecordT]]) -> RecordT:
        path = make_path(self._name, _require_get_id(record_id))
        raw = await self._client.request("GET", path)
        return _decode_into(record, raw)

    async def create(self, record: RecordT) -> RecordT:
        body = encode_fields_body(get_record_fields(record))
        raw = await self._client.request_with_body("POST", make_path(self._name), None, body)
        return _decode_into(record, raw)

    async def update(self, record: RecordT) -> RecordT:
        record_id = require_record_id(record)
        body = encode_fields_body(get_record_fields(record))
        raw = await self._client.request_with_body("PATCH", make_path(self._name, record_id), None, body)
        return _decode_update(record, record_id, raw)

    async def delete(self, record: Any) -> None:
        record_id = require_record_id(record)
        raw = await self._client.request("DELETE", make_path(self._name, record_id))
        _check_deleted(record_id, raw)

    async def list(
        self,
        record_type: Type[RecordT],
        records: Optional[List[RecordT]] = None,
        options: Optional[ListOptions] = None,
    ) -> List[RecordT]:
        output: List[RecordT] = records if records is not None else []
        async for record in self.iter_records(record_type, options):
            output.append(record)
        return output

    async def iter_records(
        self,
        record_type: Type[RecordT],
        options: Optional[ListOptions] = None,
    ) -> AsyncIterator[RecordT]:
        page_options = options or ListOptions()
        page = 0
        while True:
            page += 1
            raw = await self._client.request("GET", make_path(self._name), page_options)
            items, offset = _decode_page(record_type, raw)
            logger.debug(
                "table %s page %d: %d records, offset=%s",
                self._name,
                page,
                len(items),
                offset,
            )
            for item in items:
                yield item
            if not offset:
                return
            page_options = page_options.with_offset(offset)


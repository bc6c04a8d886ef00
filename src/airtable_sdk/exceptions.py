from typing import Any, Mapping, Optional


class SDKError(RuntimeError):
    pass


class ConfigurationError(SDKError):
    pass


class HTTPRequestError(SDKError):
    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        response_text: Optional[str] = None,
        response_headers: Optional[Mapping[str, str]] = None,
        error_type: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text
        self.response_headers = dict(response_headers or {})
        self.error_type = error_type
        self.error_message = error_message


class CodecError(SDKError):
    pass


class SchemaError(SDKError):
    pass


class MissingMemberError(SchemaError):
    pass


class TypeMismatchError(SchemaError):
    pass


class MissingIdentifierError(SchemaError):
    pass


class DeleteFailedError(SDKError):
    def __init__(
        self,
        message: str,
        *,
        record_id: Optional[str] = None,
        response: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.record_id = record_id
        self.response = dict(response or {})


class FieldMappingError(TypeError):
    """Raised by ``new_record`` when ad hoc data does not fit the record's fields.

    This is a programming error, so it deliberately sits outside the
    ``SDKError`` hierarchy.
    """

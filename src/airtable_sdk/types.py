from enum import Enum


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class CellFormat(str, Enum):
    JSON = "json"
    STRING = "string"

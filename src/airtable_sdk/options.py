from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence

from .types import CellFormat, SortDirection


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: str = SortDirection.ASC.value

    def __post_init__(self) -> None:
        direction = str(getattr(self.direction, "value", self.direction)).strip().lower()
        if direction not in {SortDirection.ASC.value, SortDirection.DESC.value}:
            raise ValueError("sort direction must be either 'asc' or 'desc'")
        object.__setattr__(self, "direction", direction)


@dataclass
class ListOptions:
    fields: Optional[Sequence[str]] = None
    filter_by_formula: Optional[str] = None
    max_records: Optional[int] = None
    page_size: Optional[int] = None
    sort: Sequence[SortSpec] = field(default_factory=list)
    view: Optional[str] = None
    cell_format: Optional[str] = None
    time_zone: Optional[str] = None
    user_locale: Optional[str] = None
    offset: Optional[str] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.page_size is not None and not 1 <= self.page_size <= 100:
            raise ValueError("page_size must be between 1 and 100")
        if self.max_records is not None and self.max_records < 1:
            raise ValueError("max_records must be greater than 0")
        if self.cell_format is not None:
            cell_format = str(getattr(self.cell_format, "value", self.cell_format)).strip().lower()
            if cell_format not in {CellFormat.JSON.value, CellFormat.STRING.value}:
                raise ValueError("cell_format must be either 'json' or 'string'")
            self.cell_format = cell_format
            if cell_format == CellFormat.STRING.value and not (self.time_zone and self.user_locale):
                raise ValueError("cell_format 'string' requires time_zone and user_locale")

    def with_offset(self, offset: Optional[str]) -> "ListOptions":
        return replace(self, offset=offset)

    def to_params(self) -> Dict[str, object]:
        params: Dict[str, object] = {}
        if self.fields:
            params["fields[]"] = list(self.fields)
        if self.filter_by_formula:
            params["filterByFormula"] = self.filter_by_formula
        if self.max_records is not None:
            params["maxRecords"] = self.max_records
        if self.page_size is not None:
            params["pageSize"] = self.page_size
        for index, spec in enumerate(self.sort):
            params[f"sort[{index}][field]"] = spec.field
            params[f"sort[{index}][direction]"] = spec.direction
        if self.view:
            params["view"] = self.view
        if self.cell_format:
            params["cellFormat"] = self.cell_format
        if self.time_zone:
            params["timeZone"] = self.time_zone
        if self.user_locale:
            params["userLocale"] = self.user_locale
        if self.offset:
            params["offset"] = self.offset
        return params


def sort_by(*fields: str) -> List[SortSpec]:
    """Build sort specs from field names; a leading ``-`` sorts descending."""
    specs = []
    for name in fields:
        if name.startswith("-"):
            specs.append(SortSpec(name[1:], SortDirection.DESC.value))
        else:
            specs.append(SortSpec(name))
    return specs

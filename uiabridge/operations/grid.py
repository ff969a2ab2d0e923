"""Grid and table operations."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from uiabridge.operations.base import ElementParams, PatternOperation


class GetGridInfo(PatternOperation):
    name = "GetGridInfo"
    description = "Row and column counts of a grid"
    pattern = "grid"
    action = "info"


class GridItemParams(ElementParams):
    row: int = Field(ge=0)
    column: int = Field(ge=0)


class GetGridItem(PatternOperation):
    name = "GetGridItem"
    description = "Cell of a grid by zero-based row and column"
    Params = GridItemParams
    pattern = "grid"
    action = "item"

    def arguments(self, params: GridItemParams) -> dict[str, Any]:
        return {"row": params.row, "column": params.column}


class GetTableInfo(PatternOperation):
    name = "GetTableInfo"
    description = "Table dimensions, major order and header counts"
    pattern = "table"
    action = "info"


class GetColumnHeaders(PatternOperation):
    name = "GetColumnHeaders"
    description = "Column header elements of a table"
    pattern = "table"
    action = "column_headers"


class GetRowHeaders(PatternOperation):
    name = "GetRowHeaders"
    description = "Row header elements of a table"
    pattern = "table"
    action = "row_headers"

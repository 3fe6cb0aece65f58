from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional

DataTypeName = Literal["text", "number", "date", "boolean", "option", "multiOption"]
ArityName = Literal["none", "single", "pair", "list"]


class PaginationMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    limit: int
    offset: int
    has_more: bool = Field(alias="hasMore")
    page_count: int = Field(alias="pageCount")


class PageEnvelope(BaseModel):
    success: bool = True
    total: int
    data: List[Dict[str, Any]] = Field(default_factory=list)
    pagination: PaginationMeta


class ErrorBody(BaseModel):
    code: str
    message: str
    retryable: bool = False
    details: Dict[str, Any] = Field(default_factory=dict)


class ErrorEnvelope(BaseModel):
    success: bool = False
    error: ErrorBody


class OperatorMeta(BaseModel):
    id: str
    arity: ArityName
    label: str


class ColumnMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    data_type: DataTypeName = Field(alias="dataType")
    label: str
    options: List[str] = Field(default_factory=list)
    operators: List[OperatorMeta] = Field(default_factory=list)


class TableColumns(BaseModel):
    table: str
    locale: Optional[str] = None
    columns: List[ColumnMeta] = Field(default_factory=list)

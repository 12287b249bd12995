from __future__ import annotations

import math
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.products import ProductOut

DEFAULT_PAGE_SIZE = 20


class SearchParams(BaseModel):
    """
    Query-string parameters for ``GET /search`` after parsing.

    Raw values arrive as strings; blank numeric values count as absent, everything
    else must parse (finite floats for prices, integers >= 1 for pagination).
    """

    q: str = Field("", description="Free-text query matched against name, description and tags.")
    minPrice: float | None = Field(None, description="Inclusive lower price bound.")
    maxPrice: float | None = Field(None, description="Inclusive upper price bound.")
    page: int = Field(1, ge=1, description="1-based page number.")
    limit: int = Field(DEFAULT_PAGE_SIZE, ge=1, description="Page size.")

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if key != "q" and isinstance(value, str):
                value = value.strip()
                if not value:
                    continue
            cleaned[key] = value
        return cleaned

    @field_validator("minPrice", "maxPrice")
    @classmethod
    def _require_finite(cls, value: float | None) -> float | None:
        if value is not None and not math.isfinite(value):
            raise ValueError("Price bounds must be finite numbers.")
        return value


class ProductSearchResponse(BaseModel):
    products: List[ProductOut] = Field(default_factory=list, description="One page of matching products, newest first")
    hasMore: bool = Field(..., description="Hint that another page likely exists")


class AutocompleteSuggestion(BaseModel):
    id: str
    name: str

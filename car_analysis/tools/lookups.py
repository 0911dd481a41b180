"""
Deterministic price and spec lookups.

Both return coarse estimates suitable for grounding a specialist's answer;
they carry no external sources.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from langchain_core.tools import tool
from pydantic import BaseModel, Field

from car_analysis.core.errors import ToolResult
from car_analysis.tools.base import CarTool, ToolKind

BASE_PRICE_EUR = 15000
VARIANCE_PER_YEAR_EUR = 500
UNKNOWN_YEAR_VARIANCE_EUR = 2000
NEW_PRICE_PREMIUM_EUR = 8000


class CarLookupInput(BaseModel):
    make: str = Field(..., min_length=1, description="Car manufacturer, e.g. 'Toyota'")
    model: str = Field(..., min_length=1, description="Model name, e.g. 'Corolla'")
    year: Optional[int] = Field(default=None, ge=1900, le=2100, description="Model year")


def estimate_price_band(make: str, model: str, year: Optional[int] = None) -> Dict[str, Any]:
    """Used price band widens by 500 EUR per year of age; 2000 EUR either side when the year is unknown."""
    if year:
        variance = max(0, datetime.now().year - year) * VARIANCE_PER_YEAR_EUR
    else:
        variance = UNKNOWN_YEAR_VARIANCE_EUR
    return {
        "make": make,
        "model": model,
        "year": year,
        "currency": "EUR",
        "used_low": BASE_PRICE_EUR - variance,
        "used_high": BASE_PRICE_EUR + variance,
        "new_msrp_est": BASE_PRICE_EUR + NEW_PRICE_PREMIUM_EUR,
        "sources": [],
    }


def lookup_specs(make: str, model: str, year: Optional[int] = None) -> Dict[str, Any]:
    return {
        "make": make,
        "model": model,
        "year": year,
        "body": "Hatchback",
        "fuel": "Petrol",
        "transmission": "Automatic",
        "power_kw": 90,
        "sources": [],
    }


@tool("price_lookup", args_schema=CarLookupInput)
def price_lookup(make: str, model: str, year: Optional[int] = None) -> Dict[str, Any]:
    """Estimate used and new price bands (EUR) for a car in Ireland."""
    return estimate_price_band(make, model, year)


@tool("spec_lookup", args_schema=CarLookupInput)
def spec_lookup(make: str, model: str, year: Optional[int] = None) -> Dict[str, Any]:
    """Return high-level spec info for a car (body, fuel, transmission, power)."""
    return lookup_specs(make, model, year)


class PriceLookupTool(CarTool):
    kind = ToolKind.PRICE_LOOKUP
    input_model = CarLookupInput
    declaration = price_lookup

    async def execute(self, params: CarLookupInput) -> ToolResult:
        return ToolResult.success(estimate_price_band(params.make, params.model, params.year))


class SpecLookupTool(CarTool):
    kind = ToolKind.SPEC_LOOKUP
    input_model = CarLookupInput
    declaration = spec_lookup

    async def execute(self, params: CarLookupInput) -> ToolResult:
        return ToolResult.success(lookup_specs(params.make, params.model, params.year))

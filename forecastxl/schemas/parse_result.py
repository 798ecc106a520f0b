"""
Pydantic schemas for parse results.

Serialized form of a ParseResult as handed to the persistence layer, plus
the upsert rule applied when a period is imported again.
"""
from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from forecastxl.engine.models import ModelBlock, ParseResult, Period
from forecastxl.services.period_normalizer import PeriodType


class PeriodSchema(BaseModel):
    """One fiscal year of extracted values."""

    model_config = ConfigDict(use_enum_values=True)

    year: int = Field(..., description="Fiscal year")
    period_date: date = Field(..., description="Fiscal year end")
    period_label: str = Field(..., description="Display label")
    period_type: PeriodType = Field(..., description="actual, budget or forecast")
    values: Dict[str, float] = Field(default_factory=dict, description="Non-null fields by name")

    @classmethod
    def from_period(cls, period: Period) -> "PeriodSchema":
        return cls(
            year=period.year,
            period_date=period.period_date,
            period_label=period.period_label,
            period_type=period.period_type,
            values=period.values(),
        )


class ModelBlockSchema(BaseModel):
    """One model block."""

    name: str = Field(..., description="Model name")
    periods: List[PeriodSchema] = Field(..., description="Periods sorted by year")
    unmapped_rows: List[str] = Field(default_factory=list, description="Labels with data but no field")
    source: Optional[str] = Field(None, description="Sheet and row range, e.g. 'Models:11-40'")

    @classmethod
    def from_block(cls, block: ModelBlock) -> "ModelBlockSchema":
        return cls(
            name=block.name,
            periods=[PeriodSchema.from_period(p) for p in block.periods],
            unmapped_rows=list(block.unmapped_rows),
            source=str(block.source) if block.source else None,
        )


class InputParametersSchema(BaseModel):
    """Workbook-wide deal constants; parameters not found are None."""

    shares_completion: Optional[float] = None
    shares_year_end: Optional[float] = None
    tso_warrants_count: Optional[float] = None
    tso_warrants_price: Optional[float] = None
    mip_share_pct: Optional[float] = None
    existing_warrants_count: Optional[float] = None
    existing_warrants_price: Optional[float] = None
    acquired_companies_multiple: Optional[float] = None
    acquired_with_shares_pct: Optional[float] = None
    ev_multiple: Optional[float] = None
    pref_growth_rate: Optional[float] = None


class ParseResultSchema(BaseModel):
    """Response model for a parsed workbook."""

    models: List[ModelBlockSchema] = Field(..., description="Extracted model blocks")
    input_parameters: InputParametersSchema = Field(default_factory=InputParametersSchema)
    warnings: List[str] = Field(default_factory=list, description="Recoverable issues, in order")

    @classmethod
    def from_result(cls, result: ParseResult) -> "ParseResultSchema":
        return cls(
            models=[ModelBlockSchema.from_block(m) for m in result.models],
            input_parameters=InputParametersSchema(**result.input_parameters.as_dict()),
            warnings=list(result.warnings),
        )


def merge_period_record(stored: Dict[str, Any], period: Period) -> Dict[str, Any]:
    """
    Apply a re-imported period to its stored record.

    Records are keyed by (model, period date). Fields present on the new
    period overwrite stored values; fields it leaves null keep what was
    stored. Label and type are always refreshed.

    Args:
        stored: Existing record, keyed by field name.
        period: Newly extracted period for the same date.

    Returns:
        The merged record (``stored`` is not modified).
    """
    merged = dict(stored)
    merged.update(period.values())
    merged["period_date"] = period.period_date
    merged["period_label"] = period.period_label
    merged["period_type"] = period.period_type.value
    return merged


__all__ = [
    "PeriodSchema",
    "ModelBlockSchema",
    "InputParametersSchema",
    "ParseResultSchema",
    "merge_period_record",
]

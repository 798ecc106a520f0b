"""
Data structures for the ForecastXL Engine.

- PeriodField: the tracked financial line items
- Period: one fiscal year of extracted values
- ModelBlock: one forecast variant found in a workbook
- InputParameters: workbook-wide deal constants
- ParseResult: everything extracted from one upload
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from forecastxl.services.period_normalizer import PeriodType


class PeriodField(str, Enum):
    """Financial line items tracked per fiscal year."""
    # P&L
    REVENUE_TOTAL = "revenue_total"
    REVENUE_MANAGED_SERVICES = "revenue_managed_services"
    REVENUE_PROFESSIONAL_SERVICES = "revenue_professional_services"
    REVENUE_OTHER = "revenue_other"
    REVENUE_ORGANIC = "revenue_organic"
    REVENUE_MA = "revenue_ma"
    REVENUE_GROWTH = "revenue_growth"
    ORGANIC_GROWTH = "organic_growth"
    ACQUIRED_REVENUE = "acquired_revenue"
    EBITDA_TOTAL = "ebitda_total"
    EBITDA_MARGIN = "ebitda_margin"
    EBITDA_MANAGED_SERVICES = "ebitda_managed_services"
    EBITDA_PROFESSIONAL_SERVICES = "ebitda_professional_services"
    EBITDA_CENTRAL_COSTS = "ebitda_central_costs"
    EBITDA_ORGANIC = "ebitda_organic"
    EBITDA_MA = "ebitda_ma"
    # Margins per service line
    MARGIN_MANAGED_SERVICES = "margin_managed_services"
    MARGIN_PROFESSIONAL_SERVICES = "margin_professional_services"
    MARGIN_CENTRAL_COSTS = "margin_central_costs"
    # Cash flow
    CAPEX = "capex"
    CAPEX_PCT_REVENUE = "capex_pct_revenue"
    CHANGE_NWC = "change_nwc"
    OTHER_CASH_FLOW_ITEMS = "other_cash_flow_items"
    OPERATING_FCF = "operating_fcf"
    MINORITY_INTEREST = "minority_interest"
    OPERATING_FCF_EXCL_MINORITIES = "operating_fcf_excl_minorities"
    CASH_CONVERSION = "cash_conversion"
    # Equity bridge
    SHARE_COUNT = "share_count"
    NIBD = "nibd"
    OPTION_DEBT = "option_debt"
    ADJUSTMENTS = "adjustments"
    ENTERPRISE_VALUE = "enterprise_value"
    EQUITY_VALUE = "equity_value"
    PREFERRED_EQUITY = "preferred_equity"
    PER_SHARE_PRE = "per_share_pre"
    MIP_AMOUNT = "mip_amount"
    TSO_AMOUNT = "tso_amount"
    WARRANTS_AMOUNT = "warrants_amount"
    EQV_POST_DILUTION = "eqv_post_dilution"
    PER_SHARE_POST = "per_share_post"


# =============================================================================
# Periods
# =============================================================================

@dataclass(frozen=True)
class Period:
    """One fiscal year's extracted values."""
    year: int
    period_date: date
    period_label: str
    period_type: PeriodType
    # P&L
    revenue_total: Optional[float] = None
    revenue_managed_services: Optional[float] = None
    revenue_professional_services: Optional[float] = None
    revenue_other: Optional[float] = None
    revenue_organic: Optional[float] = None
    revenue_ma: Optional[float] = None
    revenue_growth: Optional[float] = None
    organic_growth: Optional[float] = None
    acquired_revenue: Optional[float] = None
    ebitda_total: Optional[float] = None
    ebitda_margin: Optional[float] = None
    ebitda_managed_services: Optional[float] = None
    ebitda_professional_services: Optional[float] = None
    ebitda_central_costs: Optional[float] = None
    ebitda_organic: Optional[float] = None
    ebitda_ma: Optional[float] = None
    # Margins per service line
    margin_managed_services: Optional[float] = None
    margin_professional_services: Optional[float] = None
    margin_central_costs: Optional[float] = None
    # Cash flow
    capex: Optional[float] = None
    capex_pct_revenue: Optional[float] = None
    change_nwc: Optional[float] = None
    other_cash_flow_items: Optional[float] = None
    operating_fcf: Optional[float] = None
    minority_interest: Optional[float] = None
    operating_fcf_excl_minorities: Optional[float] = None
    cash_conversion: Optional[float] = None
    # Equity bridge
    share_count: Optional[float] = None
    nibd: Optional[float] = None
    option_debt: Optional[float] = None
    adjustments: Optional[float] = None
    enterprise_value: Optional[float] = None
    equity_value: Optional[float] = None
    preferred_equity: Optional[float] = None
    per_share_pre: Optional[float] = None
    mip_amount: Optional[float] = None
    tso_amount: Optional[float] = None
    warrants_amount: Optional[float] = None
    eqv_post_dilution: Optional[float] = None
    per_share_post: Optional[float] = None

    def get(self, period_field: PeriodField) -> Optional[float]:
        return getattr(self, period_field.value)

    def values(self) -> Dict[str, float]:
        """Non-null financial fields keyed by field name."""
        return {
            f.value: getattr(self, f.value)
            for f in PeriodField
            if getattr(self, f.value) is not None
        }

    @property
    def is_empty(self) -> bool:
        return not self.values()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["period_date"] = self.period_date.isoformat()
        data["period_type"] = self.period_type.value
        return data


@dataclass(frozen=True)
class BlockSource:
    """Where a model block was found, for diagnostics."""
    sheet: str
    start_row: int
    end_row: int

    def __str__(self) -> str:
        return f"{self.sheet}:{self.start_row}-{self.end_row}"


@dataclass(frozen=True)
class ModelBlock:
    """One self-contained forecast variant extracted from a workbook."""
    name: str
    periods: Tuple[Period, ...]
    unmapped_rows: Tuple[str, ...] = ()
    source: Optional[BlockSource] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "periods": [p.to_dict() for p in self.periods],
            "unmapped_rows": list(self.unmapped_rows),
            "source": str(self.source) if self.source else None,
        }


# =============================================================================
# Workbook-wide parameters and result
# =============================================================================

@dataclass(frozen=True)
class InputParameters:
    """Sparse workbook-wide deal constants."""
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

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def as_dict(self) -> Dict[str, float]:
        """Only the parameters that were found."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def is_empty(self) -> bool:
        return not self.as_dict()


@dataclass(frozen=True)
class ParseResult:
    """Final result of parsing one uploaded workbook."""
    models: Tuple[ModelBlock, ...]
    input_parameters: InputParameters = field(default_factory=InputParameters)
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "models": [m.to_dict() for m in self.models],
            "input_parameters": self.input_parameters.as_dict(),
            "warnings": list(self.warnings),
        }

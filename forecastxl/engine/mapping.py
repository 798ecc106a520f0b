"""
Label mapping for the ForecastXL Engine.

Translates row labels (English and Norwegian) into PeriodFields through an
ordered rule table. Each rule also names the section transition it triggers,
which lets ambiguous labels such as "% margin" resolve against the rows that
preceded them. Mapping is therefore order-dependent: rows of a block must be
fed in document order through one ParseContext.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Pattern, Tuple

import structlog

from forecastxl.engine.models import PeriodField

logger = structlog.get_logger(__name__)


class Section(str, Enum):
    """Statement sections tracked while scanning a block."""
    REVENUE = "revenue"
    EBITDA = "ebitda"
    CASH_FLOW = "cash_flow"
    EQUITY = "equity"


@dataclass(frozen=True)
class LabelRule:
    """One entry of the mapping table."""
    pattern: Pattern[str]
    field: PeriodField
    section: Optional[Section]  # None leaves the current section unchanged

    def matches(self, label: str) -> bool:
        return self.pattern.search(label) is not None


@dataclass
class ParseContext:
    """Mutable scan state for one block."""
    last_section: Optional[Section] = None
    last_field: Optional[PeriodField] = None

    def advance(self, rule: LabelRule) -> None:
        self.last_field = rule.field
        if rule.section is not None:
            self.last_section = rule.section


# =============================================================================
# Label normalization
# =============================================================================

_WHITESPACE = re.compile(r"\s+")
_PERCENT_SUFFIX = re.compile(r"\s*\(%\)$")
_UNIT_SUFFIX = re.compile(r"\s*\((?:nok|mnok|tnok|nok\s*m|eur|meur|usd|musd|sek|dkk|m|k)\)$")
_TRAILING_PUNCTUATION = re.compile(r"[,.:;()]+$")
_QUOTES = re.compile(r"[\"'“”‘’«»]")


def normalize_label(raw: str) -> str:
    """Lower-case, collapse whitespace and strip trailing punctuation, units and quotes."""
    label = _WHITESPACE.sub(" ", raw.lower()).strip()
    # "(%)" marks a ratio row: keep it as a bare "%"
    label = _PERCENT_SUFFIX.sub(" %", label)
    label = _UNIT_SUFFIX.sub("", label)
    label = _TRAILING_PUNCTUATION.sub("", label)
    label = _QUOTES.sub("", label)
    return label.strip()


# =============================================================================
# Rule table (first match wins)
# =============================================================================

F = PeriodField
S = Section


def _rule(pattern: str, field: PeriodField, section: Optional[Section]) -> LabelRule:
    return LabelRule(pattern=re.compile(pattern), field=field, section=section)


LABEL_RULES: Tuple[LabelRule, ...] = (
    # ── Revenue / Omsetning ──
    _rule(r"^(total\s+)?revenues?$", F.REVENUE_TOTAL, S.REVENUE),
    _rule(r"^(total\s+)?omsetning$", F.REVENUE_TOTAL, S.REVENUE),
    _rule(r"^(totale?\s+)?driftsinntekter$", F.REVENUE_TOTAL, S.REVENUE),
    _rule(r"^inntekter?\s*(total)?$", F.REVENUE_TOTAL, S.REVENUE),
    _rule(r"^turnover$", F.REVENUE_TOTAL, S.REVENUE),

    # Growth ahead of the broader revenue patterns
    _rule(r"^(total\s+)?(revenue|omsetning)\s*(growth|vekst)", F.REVENUE_GROWTH, S.REVENUE),
    _rule(r"^(total\s+)?vekst\s*%?$", F.REVENUE_GROWTH, S.REVENUE),
    _rule(r"organic\s+(revenue\s+)?growth", F.ORGANIC_GROWTH, None),
    _rule(r"organisk\s+(omsetnings)?vekst", F.ORGANIC_GROWTH, None),

    _rule(r"^net\s+(revenue|sales)", F.REVENUE_TOTAL, S.REVENUE),
    _rule(r"^netto\s+omsetning", F.REVENUE_TOTAL, S.REVENUE),
    _rule(r"^salgsinntekt", F.REVENUE_TOTAL, S.REVENUE),

    # EBITDA per service line ahead of the unanchored service-line rules
    _rule(r"ebitda\s*[-–]?\s*managed", F.EBITDA_MANAGED_SERVICES, S.EBITDA),
    _rule(r"ebitda\s*[-–]?\s*professional", F.EBITDA_PROFESSIONAL_SERVICES, S.EBITDA),

    # Explicit service-line margins
    _rule(r"^(managed\s+services?\s+margin|margin\s+managed\s+services?)", F.MARGIN_MANAGED_SERVICES, None),
    _rule(r"^(professional\s+services?\s+margin|margin\s+professional\s+services?)", F.MARGIN_PROFESSIONAL_SERVICES, None),
    _rule(r"^(central|sentrale?)\s*(costs?|kostnader?)\s*margin", F.MARGIN_CENTRAL_COSTS, None),

    # Revenue per service line
    _rule(r"managed\s+services?\s*(revenue|omsetning)?", F.REVENUE_MANAGED_SERVICES, S.REVENUE),
    _rule(r"^a&p$", F.REVENUE_MANAGED_SERVICES, S.REVENUE),
    _rule(r"^accounting\s*(&|and)\s*payroll", F.REVENUE_MANAGED_SERVICES, S.REVENUE),
    _rule(r"professional\s+services?\s*(revenue|omsetning)?", F.REVENUE_PROFESSIONAL_SERVICES, S.REVENUE),
    _rule(r"^advisory$", F.REVENUE_PROFESSIONAL_SERVICES, S.REVENUE),
    _rule(r"^rådgivning$", F.REVENUE_PROFESSIONAL_SERVICES, S.REVENUE),
    _rule(r"^licen[sc]e[sr]?$", F.REVENUE_OTHER, S.REVENUE),
    _rule(r"^lisens(er)?$", F.REVENUE_OTHER, S.REVENUE),
    _rule(r"(other|annen|andre|øvrige?)\s*(revenue|omsetning|inntekt)", F.REVENUE_OTHER, S.REVENUE),

    # Acquired / organic revenue
    _rule(r"^acquired\s+revenue", F.ACQUIRED_REVENUE, None),
    _rule(r"^oppkjøpt\s+omsetning", F.ACQUIRED_REVENUE, None),
    _rule(r"organic\s*(revenue|omsetning)", F.REVENUE_ORGANIC, S.REVENUE),
    _rule(r"organisk\s*(omsetning|inntekt)", F.REVENUE_ORGANIC, S.REVENUE),
    _rule(r"(m&a|\bma\b|acquired)\s*(revenue|omsetning)", F.REVENUE_MA, S.REVENUE),
    _rule(r"oppkjøpt\s*inntekt", F.REVENUE_MA, S.REVENUE),

    # ── EBITDA ──
    _rule(r"^(total\s+)?ebitda$", F.EBITDA_TOTAL, S.EBITDA),
    _rule(r"^ebitda\s*(%|margin|prosent)", F.EBITDA_MARGIN, S.EBITDA),
    _rule(r"^ebitda-margin", F.EBITDA_MARGIN, S.EBITDA),
    _rule(r"^margin\s*%?$", F.EBITDA_MARGIN, S.EBITDA),
    _rule(r"^(total\s+)?ebitda\s*\(?(pre|ex|excl)", F.EBITDA_TOTAL, S.EBITDA),
    _rule(r"^driftsresultat\s*(før\s*avskr)?", F.EBITDA_TOTAL, S.EBITDA),
    _rule(r"^(central|sentrale?)\s*(costs?|kostnader?)", F.EBITDA_CENTRAL_COSTS, S.EBITDA),
    _rule(r"ebitda\s*(organic|organisk)", F.EBITDA_ORGANIC, S.EBITDA),
    _rule(r"^(organic|organisk)\s+ebitda", F.EBITDA_ORGANIC, S.EBITDA),
    _rule(r"ebitda\s*(m&a|ma\b|acquired|oppkjøpt)", F.EBITDA_MA, S.EBITDA),

    # ── Cash flow / Kontantstrøm ──
    _rule(r"capex.*%\s*(of\s+)?(rev|omsetning)", F.CAPEX_PCT_REVENUE, None),
    _rule(r"capex\s*(%|in\s+%|as\s+%)", F.CAPEX_PCT_REVENUE, None),
    _rule(r"^(total\s+)?capex", F.CAPEX, S.CASH_FLOW),
    _rule(r"^investering(er)?$", F.CAPEX, S.CASH_FLOW),

    _rule(r"^(change\s+in\s+)?n(et\s+)?w(orking\s+)?c(apital)?", F.CHANGE_NWC, S.CASH_FLOW),
    _rule(r"^endring\s*(i\s+)?arbeidskapital", F.CHANGE_NWC, S.CASH_FLOW),
    _rule(r"^δ?\s*nwc", F.CHANGE_NWC, S.CASH_FLOW),
    _rule(r"^working\s*capital\s*(change)?", F.CHANGE_NWC, S.CASH_FLOW),

    _rule(r"^other\s*(cash\s*flow|cf)\s*(items)?", F.OTHER_CASH_FLOW_ITEMS, S.CASH_FLOW),
    _rule(r"^andre\s*(kontantstrøm|cf)\s*(poster)?", F.OTHER_CASH_FLOW_ITEMS, S.CASH_FLOW),
    _rule(r"^øvrige\s*(poster|kontantstrøm)", F.OTHER_CASH_FLOW_ITEMS, S.CASH_FLOW),

    _rule(r"^(operating\s+|op\.?\s*)?fcf\s*(excl|ex|etter)\.?\s*minor", F.OPERATING_FCF_EXCL_MINORITIES, None),
    _rule(r"^operating\s*(fcf|free\s*cash\s*flow)$", F.OPERATING_FCF, S.CASH_FLOW),
    _rule(r"^operasjonell\s*(fcf|fri\s*kontantstrøm)", F.OPERATING_FCF, S.CASH_FLOW),
    _rule(r"^op\.?\s*fcf", F.OPERATING_FCF, S.CASH_FLOW),
    _rule(r"^(total\s+)?fcf$", F.OPERATING_FCF, S.CASH_FLOW),
    _rule(r"^fri\s*kontantstrøm", F.OPERATING_FCF, S.CASH_FLOW),

    _rule(r"^minority\s*(interests?)?$", F.MINORITY_INTEREST, None),
    _rule(r"^minoritet(sinteresser?|er)?$", F.MINORITY_INTEREST, None),

    _rule(r"^cash\s*conversion", F.CASH_CONVERSION, S.CASH_FLOW),
    _rule(r"^kontant(konvertering|omregning)", F.CASH_CONVERSION, S.CASH_FLOW),

    # ── Equity bridge / Aksjebroanalyse ──
    _rule(r"^number\s+of\s+shares", F.SHARE_COUNT, S.EQUITY),
    _rule(r"^antall\s+aksjer", F.SHARE_COUNT, S.EQUITY),
    _rule(r"^aksjer\s*(utestående)?$", F.SHARE_COUNT, S.EQUITY),

    _rule(r"^nibd", F.NIBD, S.EQUITY),
    _rule(r"^net(to)?\s*(interest\s+bearing\s+)?debt", F.NIBD, S.EQUITY),
    _rule(r"^netto\s*(rente(bærende)?\s*)?gjeld", F.NIBD, S.EQUITY),

    _rule(r"^option\s*debt", F.OPTION_DEBT, None),
    _rule(r"^opsjonsgjeld", F.OPTION_DEBT, None),

    _rule(r"^adjustments?$", F.ADJUSTMENTS, None),
    _rule(r"^justeringer?$", F.ADJUSTMENTS, None),

    # Per-share and post-dilution values ahead of EV / EqV
    _rule(r"per\s+share.*(before|pre)", F.PER_SHARE_PRE, None),
    _rule(r"per\s+aksje.*før", F.PER_SHARE_PRE, None),
    _rule(r"per\s+share.*(after|post)", F.PER_SHARE_POST, None),
    _rule(r"per\s+aksje.*(etter|post)", F.PER_SHARE_POST, None),

    _rule(r"eqv.*post", F.EQV_POST_DILUTION, None),
    _rule(r"post\s*(mip|dilution)", F.EQV_POST_DILUTION, None),
    _rule(r"egenkapital.*etter\s*(utvanning)?", F.EQV_POST_DILUTION, None),

    _rule(r"^ev$", F.ENTERPRISE_VALUE, S.EQUITY),
    _rule(r"^enterprise\s+value", F.ENTERPRISE_VALUE, S.EQUITY),
    _rule(r"^(selskapsverdi|virksomhetsverdi)$", F.ENTERPRISE_VALUE, S.EQUITY),

    _rule(r"^eqv$", F.EQUITY_VALUE, S.EQUITY),
    _rule(r"^equity\s+value", F.EQUITY_VALUE, S.EQUITY),
    _rule(r"^egenkapitalverdi$", F.EQUITY_VALUE, S.EQUITY),

    _rule(r"^pref(erred)?(\s+eq(uity)?)?$", F.PREFERRED_EQUITY, None),
    _rule(r"^preferanse(aksjer|kapital)?$", F.PREFERRED_EQUITY, None),

    _rule(r"^mip(\s+(share|amount))?$", F.MIP_AMOUNT, None),
    _rule(r"^tso(\s+warrants?)?$", F.TSO_AMOUNT, None),
    _rule(r"^ex(isting)?\s*warr(a|e)nts?", F.WARRANTS_AMOUNT, None),
    _rule(r"^eksisterende\s*warrant(s|er)?", F.WARRANTS_AMOUNT, None),
)

# Context-resolved label families
_BARE_GROWTH = re.compile(r"^%\s*(growth|vekst)$")
_BARE_MARGIN = re.compile(r"^%\s*margin$")

MARGIN_SIBLINGS: Dict[PeriodField, PeriodField] = {
    F.EBITDA_MANAGED_SERVICES: F.MARGIN_MANAGED_SERVICES,
    F.REVENUE_MANAGED_SERVICES: F.MARGIN_MANAGED_SERVICES,
    F.EBITDA_PROFESSIONAL_SERVICES: F.MARGIN_PROFESSIONAL_SERVICES,
    F.REVENUE_PROFESSIONAL_SERVICES: F.MARGIN_PROFESSIONAL_SERVICES,
    F.EBITDA_CENTRAL_COSTS: F.MARGIN_CENTRAL_COSTS,
}


class LabelMapper:
    """
    Maps row labels to PeriodFields.

    Table rules are tried top to bottom; the first match wins and advances
    the context. Bare "% growth" and "% margin" rows match no table rule and
    are resolved from the context without changing it.
    """

    def __init__(self, rules: Tuple[LabelRule, ...] = LABEL_RULES):
        self.rules = rules

    def map(self, label: str, context: Optional[ParseContext] = None) -> Optional[PeriodField]:
        """
        Map a row label to the field it populates.

        Args:
            label: Raw or normalized row label.
            context: Scan state of the current block; updated on table matches.

        Returns:
            The target PeriodField, or None if the label is not recognized.
        """
        normalized = normalize_label(label)
        if not normalized:
            return None

        for rule in self.rules:
            if rule.matches(normalized):
                if context is not None:
                    context.advance(rule)
                return rule.field

        if context is None:
            return None

        if _BARE_GROWTH.match(normalized):
            # No EBITDA growth field is tracked
            if context.last_section == Section.EBITDA:
                return None
            return F.REVENUE_GROWTH

        if _BARE_MARGIN.match(normalized):
            return MARGIN_SIBLINGS.get(context.last_field, F.EBITDA_MARGIN)

        return None


# Singleton instance
_mapper_instance: Optional[LabelMapper] = None


def get_label_mapper() -> LabelMapper:
    """Get singleton LabelMapper instance."""
    global _mapper_instance
    if _mapper_instance is None:
        _mapper_instance = LabelMapper()
    return _mapper_instance

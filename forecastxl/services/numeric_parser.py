"""
Numeric parser service for spreadsheet text values.

Handles numbers typed as text in either locale convention:
- Norwegian/European: 1 105,0 and 1.105,0
- English: 1,105.0
- Negative: (123), -123
- Currency prefixes/suffixes: $, €, kr, NOK
- Percentages: 12.5%
- Placeholders: -, --, n/a, na
"""
import re
from dataclasses import dataclass
from typing import Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)


@dataclass
class ParsedNumber:
    """Result of parsing a numeric string."""

    value: Optional[float]
    raw_value: str
    confidence: float
    is_negative: bool = False
    currency: Optional[str] = None
    is_percentage: bool = False


class NumericParser:
    """
    Parser for numbers stored as spreadsheet text.

    The decimal mark is decided from the separators present:
    - comma only: comma is decimal, spaces group thousands
    - comma and dot: whichever comes last is the decimal mark
    - dot only (or none): dot is decimal, spaces group thousands

    Text that does not reduce to a plain decimal parses to ``None``, never
    raises.
    """

    # Placeholders used for "no value"
    NULL_SENTINELS = {"-", "--", "---", "—", "–", "n/a", "na", "n.a.", "n.a"}

    # Whitespace variants used as thousands separators
    SPACE_PATTERN = re.compile(r"\s+")

    PARENTHESES_PATTERN = re.compile(r"^\(([^)]+)\)$")
    CURRENCY_PREFIX_PATTERN = re.compile(r"^([$€£¥]|kr\.?|nok|sek|dkk|usd|eur|gbp)\s*", re.IGNORECASE)
    CURRENCY_SUFFIX_PATTERN = re.compile(r"\s*([$€£¥]|kr\.?|nok|sek|dkk|usd|eur|gbp)$", re.IGNORECASE)
    PERCENTAGE_PATTERN = re.compile(r"\s*%$")
    PLAIN_NUMBER_PATTERN = re.compile(r"^(\d+(\.\d*)?|\.\d+)$")

    def parse(self, value_str: Optional[str]) -> ParsedNumber:
        """
        Parse a string value into a numeric result.

        Args:
            value_str: The string to parse.

        Returns:
            ParsedNumber with parsed value and metadata.
        """
        if value_str is None or not str(value_str).strip():
            return ParsedNumber(value=None, raw_value=value_str or "", confidence=0.0)

        original = str(value_str)
        value_str = self.SPACE_PATTERN.sub(" ", original).strip()

        if value_str.lower() in self.NULL_SENTINELS:
            return ParsedNumber(value=None, raw_value=original, confidence=1.0)

        # Accounting negatives
        is_negative = False
        paren_match = self.PARENTHESES_PATTERN.match(value_str)
        if paren_match:
            value_str = paren_match.group(1).strip()
            is_negative = True

        if value_str[:1] in ("-", "−"):
            is_negative = True
            value_str = value_str[1:].strip()
        elif value_str.startswith("+"):
            value_str = value_str[1:].strip()

        # Percentage sign (value kept as written)
        is_percentage = False
        if self.PERCENTAGE_PATTERN.search(value_str):
            is_percentage = True
            value_str = self.PERCENTAGE_PATTERN.sub("", value_str).strip()

        currency = None
        for pattern in (self.CURRENCY_PREFIX_PATTERN, self.CURRENCY_SUFFIX_PATTERN):
            match = pattern.search(value_str)
            if match:
                currency = match.group(1)
                value_str = pattern.sub("", value_str).strip()
                break

        parsed_value, confidence = self._parse_number(value_str)

        if parsed_value is not None and is_negative:
            parsed_value = -parsed_value

        return ParsedNumber(
            value=parsed_value,
            raw_value=original,
            confidence=confidence,
            is_negative=is_negative,
            currency=currency,
            is_percentage=is_percentage,
        )

    def _parse_number(self, value_str: str) -> Tuple[Optional[float], float]:
        """
        Parse a cleaned numeric string into a float.

        Args:
            value_str: String stripped of sign, currency and percent markers.

        Returns:
            Tuple of (parsed float or None, confidence score).
        """
        if not value_str:
            return None, 0.0

        # Spaces only ever group thousands
        compact = value_str.replace(" ", "")

        comma_count = compact.count(",")
        period_count = compact.count(".")

        if comma_count == 0 and period_count <= 1:
            cleaned, confidence = compact, 1.0

        elif comma_count == 0:
            # 1.234.567 - dots grouping thousands
            if not self._is_thousand_separator(compact, "."):
                return None, 0.0
            cleaned, confidence = compact.replace(".", ""), 0.85

        elif period_count == 0:
            if comma_count == 1:
                # Norwegian decimal comma: 105,5 / 1 105,0
                cleaned, confidence = compact.replace(",", "."), 0.9
            elif self._is_thousand_separator(compact, ","):
                cleaned, confidence = compact.replace(",", ""), 0.85
            else:
                return None, 0.0

        else:
            # Mixed format: the separator appearing last is the decimal mark
            # 1,105.0 (English) vs 1.105,0 (European)
            if compact.rfind(".") > compact.rfind(","):
                decimal_mark, group_mark = ".", ","
            else:
                decimal_mark, group_mark = ",", "."
            if compact.count(decimal_mark) != 1:
                return None, 0.0
            cleaned = compact.replace(group_mark, "").replace(decimal_mark, ".")
            confidence = 0.95

        if not self.PLAIN_NUMBER_PATTERN.match(cleaned):
            logger.debug("Unparsable numeric text", value=value_str)
            return None, 0.0

        return float(cleaned), confidence

    def _is_thousand_separator(self, value_str: str, separator: str) -> bool:
        """
        Check if a separator is being used as thousand separator.

        Args:
            value_str: The string to check.
            separator: The separator character.

        Returns:
            True if separator appears to be thousand separator.
        """
        parts = value_str.split(separator)

        if len(parts) < 2 or not parts[0].isdigit() or len(parts[0]) > 3:
            return False

        # For thousand separator, all parts after first should be exactly 3 digits
        for part in parts[1:]:
            if len(part) != 3 or not part.isdigit():
                return False

        return True


# Singleton instance
_parser_instance: Optional[NumericParser] = None


def get_numeric_parser() -> NumericParser:
    """Get singleton NumericParser instance."""
    global _parser_instance
    if _parser_instance is None:
        _parser_instance = NumericParser()
    return _parser_instance

"""Pattern-based extraction of income and expense amounts from event text."""
import logging
import re
from typing import Optional, Sequence

from processor.models import Flow

logger = logging.getLogger(__name__)


CURRENCIES = ('Co', 'Éf', 'ÐE', '¢¢', 'MØ', 'FK', 'PO')

DISTRIBUTION_MARKER = 'les impôts ont été distribués aux différents ministères'


class FinanceExtractor:
    """
    Extracts money flows from raw (unfolded) event text.

    Three patterns are recognized, all case-insensitive:

    - income: "récolte 12 500 Co"
    - expense: "paie 300 Co"
    - distribution: the tax distribution sentence, whose recipients listed
      after the colon ("Ministère X 1 200 Co, Ministère Y 800 Co") are
      summed into a single expense.
    """

    def __init__(self, currencies: Sequence[str] = CURRENCIES):
        currency = '(' + '|'.join(re.escape(c) for c in currencies) + r')(?!\w)'
        self.income_re = re.compile(
            r'récolte\s+([\d\s]+)\s*' + currency, re.IGNORECASE
        )
        self.expense_re = re.compile(
            r'paie\s+([\d\s]+)\s*' + currency, re.IGNORECASE
        )
        self.marker_re = re.compile(re.escape(DISTRIBUTION_MARKER), re.IGNORECASE)
        self.recipient_re = re.compile(
            r'([^,]+?)\s+(\d[\d\s]*?)\s*' + currency, re.IGNORECASE
        )

    def extract(self, text: Optional[str]) -> Optional[Flow]:
        """
        Parse a flow out of event text.

        Returns None when no pattern matches. The currency of the first
        matching pattern (income, then expense, then distribution) is kept
        for the whole flow.
        """
        if not text:
            return None

        flow = Flow()
        matched = False

        income_match = self.income_re.search(text)
        if income_match:
            matched = True
            flow.income = self.parse_amount(income_match.group(1), text)
            flow.currency = income_match.group(2)

        expense_match = self.expense_re.search(text)
        if expense_match:
            matched = True
            flow.expense += self.parse_amount(expense_match.group(1), text)
            if flow.currency is None:
                flow.currency = expense_match.group(2)

        distribution = self._extract_distribution(text)
        if distribution is not None:
            matched = True
            total, currency = distribution
            flow.distribution = total
            flow.expense += total
            if flow.currency is None:
                flow.currency = currency

        return flow if matched else None

    def is_financial(self, text: Optional[str]) -> bool:
        return self.extract(text) is not None

    def _extract_distribution(self, text: str):
        if not self.marker_re.search(text):
            return None

        _, colon, rest = text.partition(':')
        if not colon:
            return None
        recipients = rest.split(':', 1)[0]

        total = 0
        currency = None
        found = False
        for match in self.recipient_re.finditer(recipients):
            found = True
            total += self.parse_amount(match.group(2), text)
            if currency is None:
                currency = match.group(3)

        if not found:
            return None
        return total, currency

    @staticmethod
    def parse_amount(raw: str, text: str = '') -> int:
        """Convert a space-grouped numeral to int; malformed input counts as 0."""
        digits = re.sub(r'\s', '', raw)
        try:
            return int(digits)
        except ValueError:
            logger.warning(
                f"Unparseable amount '{raw}' in event text, counting 0: {text[:80]}"
            )
            return 0

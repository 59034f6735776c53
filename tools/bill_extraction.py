"""
Bill extraction tools: total amount and GSTIN from receipt OCR text.
"""

import re
import logging
from typing import Callable, List, Optional, Pattern, Sequence

from models.expense import AmountCandidate, AmountConfidence, BillAnalysis
from tools.document_ai import ImageRef, extract_text_from_image
from tools.gst_validation import GST_SEARCH_PATTERN

logger = logging.getLogger("fundex.tools.bill_extraction")

TOTAL_KEYWORDS = (
    "total amount",
    "grand total",
    "net total",
    "amount payable",
    "total payable",
    "bill amount",
    "invoice total",
    "final amount",
    "amount due",
    "total:",
    "total =",
    "total rs",
    "total inr",
    "net amount",
    "payable amount",
    "balance due",
)

GST_KEYWORDS = ("gstin", "gst no", "gst number", "gst:", "gstin:", "tax id", "tin")

# Tried in order; the first pattern that matches a line wins for that line.
# Digit-group patterns refuse to start or stop inside a longer number.
AMOUNT_PATTERNS: Sequence[Pattern[str]] = (
    re.compile(r"(?:rs\.?|inr|₹)\s*(\d{1,3}(?:,\d{3})*(?:\.\d{2})?)(?![\d,])", re.IGNORECASE),
    re.compile(r"(?<![\d.,])(\d{1,3}(?:,\d{3})*(?:\.\d{2})?)(?![\d,])"),
    re.compile(r"(?<![\d.])(\d+\.\d{2})(?!\d)"),
    re.compile(r"(?<![\d.])(\d+)"),
)

MAX_AMOUNT = 10_000_000
MIN_UNLABELLED_AMOUNT = 10
KEYWORD_LOOKAHEAD_LINES = 2
BOTTOM_LINES = 5

AmountStrategy = Callable[[List[str]], Optional[AmountCandidate]]


def _parse_amount(raw: str) -> float:
    return float(raw.replace(",", ""))


def _first_amount(line: str, lower: float, upper: float = MAX_AMOUNT) -> Optional[float]:
    """First match, by pattern order, whose amount lies strictly between the bounds."""
    for pattern in AMOUNT_PATTERNS:
        match = pattern.search(line)
        if match:
            amount = _parse_amount(match.group(1))
            if lower < amount < upper:
                return amount
    return None


def _split_lines(text: str) -> List[str]:
    return [line.strip() for line in text.split("\n")]


# ----------------------------------------------------------------------
# Strategies, strongest first
# ----------------------------------------------------------------------

def find_keyword_amount(lines: List[str]) -> Optional[AmountCandidate]:
    """
    Amount on a total-keyword line or within the two lines after it.

    Args:
        lines: Stripped receipt lines

    Returns:
        Optional[AmountCandidate]: High-confidence candidate, if any
    """
    for index, line in enumerate(lines):
        lower = line.lower()
        if not any(keyword in lower for keyword in TOTAL_KEYWORDS):
            continue

        for offset in range(KEYWORD_LOOKAHEAD_LINES + 1):
            if index + offset >= len(lines):
                break
            candidate_line = lines[index + offset]
            amount = _first_amount(candidate_line, 0)
            if amount is not None:
                return AmountCandidate(
                    amount=amount,
                    line=candidate_line,
                    confidence=AmountConfidence.HIGH,
                    source="keyword",
                )
    return None


def find_largest_amount(lines: List[str]) -> Optional[AmountCandidate]:
    """Largest plausible number anywhere on the receipt."""
    best: Optional[AmountCandidate] = None

    for line in lines:
        for pattern in AMOUNT_PATTERNS:
            for match in pattern.finditer(line):
                amount = _parse_amount(match.group(1))
                if not MIN_UNLABELLED_AMOUNT < amount < MAX_AMOUNT:
                    continue
                if best is None or amount > best.amount:
                    best = AmountCandidate(
                        amount=amount,
                        line=line,
                        confidence=AmountConfidence.MEDIUM,
                        source="largest",
                    )
    return best


def find_bottom_amount(lines: List[str]) -> Optional[AmountCandidate]:
    """First plausible number in the last lines of the receipt."""
    for line in lines[-BOTTOM_LINES:]:
        amount = _first_amount(line, MIN_UNLABELLED_AMOUNT)
        if amount is not None:
            return AmountCandidate(
                amount=amount,
                line=line,
                confidence=AmountConfidence.LOW,
                source="bottom",
            )
    return None


AMOUNT_STRATEGIES: Sequence[AmountStrategy] = (
    find_keyword_amount,
    find_largest_amount,
    find_bottom_amount,
)


def find_amount_candidate(text: Optional[str]) -> Optional[AmountCandidate]:
    """
    Best amount candidate from OCR text.

    Args:
        text: Receipt OCR text

    Returns:
        Optional[AmountCandidate]: Candidate from the strongest strategy that found one
    """
    if not text:
        return None

    lines = _split_lines(text)
    for strategy in AMOUNT_STRATEGIES:
        candidate = strategy(lines)
        if candidate is not None:
            logger.debug(
                f"Amount {candidate.amount} found by {candidate.source} "
                f"({candidate.confidence.value}): {candidate.line!r}"
            )
            return candidate

    logger.debug("No amount found in receipt text")
    return None


def extract_amount_from_bill(text: Optional[str]) -> Optional[float]:
    """
    Total amount from receipt OCR text.

    Args:
        text: Receipt OCR text

    Returns:
        Optional[float]: The amount, or None if no plausible amount was found
    """
    candidate = find_amount_candidate(text)
    return candidate.amount if candidate else None


def extract_gst_from_bill(text: Optional[str]) -> Optional[str]:
    """
    GSTIN from receipt OCR text.

    Lines labelled with a GST keyword (and the two lines after them) are
    searched first, then the whole text.

    Args:
        text: Receipt OCR text

    Returns:
        Optional[str]: Upper-cased GSTIN, or None
    """
    if not text:
        return None

    lines = _split_lines(text)
    for index, line in enumerate(lines):
        lower = line.lower()
        if not any(keyword in lower for keyword in GST_KEYWORDS):
            continue
        for candidate_line in lines[index:index + KEYWORD_LOOKAHEAD_LINES + 1]:
            match = GST_SEARCH_PATTERN.search(candidate_line)
            if match:
                return match.group(0).upper()

    match = GST_SEARCH_PATTERN.search(text)
    return match.group(0).upper() if match else None


def analyze_bill(image_ref: ImageRef, processor_id: Optional[str] = None) -> BillAnalysis:
    """
    OCR a receipt and pull out its amount and GSTIN.

    Args:
        image_ref: Raw bytes, an http(s) URL or a local file path
        processor_id: Optional Document AI processor override

    Returns:
        BillAnalysis: ``success`` is False when OCR produced no text
    """
    try:
        text = extract_text_from_image(image_ref, processor_id=processor_id)

        if not text:
            logger.warning("Bill analysis failed: OCR produced no text")
            return BillAnalysis(success=False, error="Failed to extract text from image")

        analysis = BillAnalysis(
            success=True,
            text=text,
            amount=extract_amount_from_bill(text),
            gst_number=extract_gst_from_bill(text),
            text_length=len(text),
        )
        logger.info(
            f"Bill analyzed: amount={analysis.amount}, gst={analysis.gst_number}, "
            f"chars={analysis.text_length}"
        )
        return analysis
    except Exception as e:
        logger.error(f"Error analyzing bill: {e}", exc_info=True)
        return BillAnalysis(success=False, error=str(e))

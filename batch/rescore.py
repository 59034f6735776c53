"""
Batch fraud re-scoring for stored expenses.

Expenses submitted before fraud scoring existed (or whose score was never
set) are re-scored from the data stored on the record.
"""

import os
import json
import logging
from copy import deepcopy
from datetime import datetime
from typing import Any, Dict, List, Optional

from config.scoring_config import AUTO_FLAG_THRESHOLD, DEFAULT_RESCORE_REMAINING_BALANCE
from models.expense import ExpenseSubmission, GSTValidationResult, VerificationStatus
from tools.fraud_detection import calculate_fraud_score

logger = logging.getLogger("fundex.batch.rescore")


def needs_rescore(record: Dict[str, Any]) -> bool:
    """True for records without a fraud score or with a score of 0."""
    return not record.get("fraud_score")


def rescore_expense(
    record: Dict[str, Any],
    remaining_balance: float = DEFAULT_RESCORE_REMAINING_BALANCE,
    flag_threshold: int = AUTO_FLAG_THRESHOLD,
) -> Dict[str, Any]:
    """
    Re-derive the fraud analysis of a stored expense record.

    The request context is not stored with an expense, so a fixed remaining
    balance is assumed. A stored GSTIN counts as valid unless ``gst_valid``
    is explicitly False.

    Args:
        record: Stored expense with ``amount_spent``, ``detected_amount``,
            ``gst_number``, ``gst_valid`` and ``ocr_extracted``
        remaining_balance: Balance assumed for the overspending check
        flag_threshold: Fraud score at which the expense is flagged

    Returns:
        dict: Copy of the record with the fraud fields updated
    """
    gst_number = record.get("gst_number")
    submission = ExpenseSubmission(
        claimed_amount=record.get("amount_spent") or 0,
        detected_amount=record.get("detected_amount") or None,
        ocr_extracted_text=record.get("ocr_extracted") or "",
        gst_validation=GSTValidationResult(
            found=bool(gst_number),
            valid=record.get("gst_valid") is not False,
            extracted=gst_number,
        ),
        remaining_balance=remaining_balance,
    )
    fraud = calculate_fraud_score(submission)

    updated = deepcopy(record)
    updated["fraud_score"] = fraud.score
    updated["fraud_risk_level"] = fraud.risk_level.value
    updated["fraud_analysis"] = {
        "flags": fraud.flags,
        "details": fraud.details,
        "recommendation": fraud.recommendation,
    }
    if fraud.score >= flag_threshold:
        updated["verification_status"] = VerificationStatus.FLAGGED.value
    else:
        updated["verification_status"] = record.get("verification_status") or VerificationStatus.PENDING.value

    return updated


def rescore_expenses(
    records: List[Dict[str, Any]],
    remaining_balance: float = DEFAULT_RESCORE_REMAINING_BALANCE,
) -> Dict[str, Any]:
    """
    Re-score every record that has no fraud score yet.

    Args:
        records: Stored expense records
        remaining_balance: Balance assumed for the overspending check

    Returns:
        Dict[str, Any]: Summary with counts and the full list of records,
        updated where re-scored
    """
    pending = [index for index, record in enumerate(records) if needs_rescore(record)]
    logger.info(f"Found {len(pending)} expense(s) to update")

    results = list(records)
    success_count = 0
    failed_count = 0

    for index in pending:
        record = records[index]
        record_id = record.get("id", index)
        try:
            results[index] = rescore_expense(record, remaining_balance=remaining_balance)
            logger.debug(
                f"Expense {record_id}: fraud score {results[index]['fraud_score']} "
                f"({results[index]['fraud_risk_level']})"
            )
            success_count += 1
        except Exception as e:
            logger.error(f"Error updating expense {record_id}: {e}")
            failed_count += 1

    logger.info(
        f"Re-scoring complete. {len(pending)} expense(s), "
        f"{success_count} updated, {failed_count} failed."
    )

    return {
        "total": len(pending),
        "success": success_count,
        "failed": failed_count,
        "timestamp": datetime.now().isoformat(),
        "records": results,
    }


def rescore_file(input_path: str, output_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Re-score the expenses stored in a JSON file.

    Args:
        input_path: JSON file holding a list of expense records
        output_path: Where to write the updated records (defaults to
            ``<input>_rescored.json`` next to the input)

    Returns:
        Dict[str, Any]: Summary without the records
    """
    if not os.path.isfile(input_path):
        raise ValueError(f"Expense file not found: {input_path}")

    with open(input_path, "r", encoding="utf-8") as f:
        records = json.load(f)

    if not isinstance(records, list):
        raise ValueError(f"Expected a list of expense records in {input_path}")

    if output_path is None:
        output_path = f"{os.path.splitext(input_path)[0]}_rescored.json"

    summary = rescore_expenses(records)

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(summary.pop("records"), f, indent=2, ensure_ascii=False)

    summary["output_path"] = output_path
    logger.info(f"Wrote re-scored expenses to {output_path}")
    return summary

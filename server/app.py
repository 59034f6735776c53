"""
Fundex API Server

This module provides a FastAPI server for expense verification and scoring.
"""

import logging
from typing import Any, Dict, List, Optional
from datetime import datetime

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from models.expense import ExpenseSubmission
from tools.bill_extraction import extract_gst_from_bill, find_amount_candidate
from tools.fraud_detection import calculate_fraud_score, generate_fraud_report
from tools.gst_validation import validate_gst_online
from tools.reliability_score import calculate_reliability_score, generate_reliability_report
from tools.trust_score import get_ngo_trust_score
from utils.health_check import get_health

logger = logging.getLogger("fundex.server")

API_VERSION = "1.0.0"


class BillTextRequest(BaseModel):
    """Request model for extracting fields from OCR text."""
    text: str = Field(..., description="Receipt OCR text")


class TrustScoreRequest(BaseModel):
    """Request model for the NGO trust score."""
    ngo_id: str
    expenses: List[Dict[str, Any]] = Field(default_factory=list)
    fund_requests: List[Dict[str, Any]] = Field(default_factory=list)
    campaigns: List[Dict[str, Any]] = Field(default_factory=list)
    donations: List[Dict[str, Any]] = Field(default_factory=list)


def create_app(config: Dict[str, Any], agent: Optional[Any] = None) -> FastAPI:
    """
    Create a FastAPI application for Fundex.

    Args:
        config: Configuration dictionary
        agent: Optional expense verification agent (built from config if omitted)

    Returns:
        FastAPI: Configured FastAPI application
    """
    if agent is None:
        from agents.expense_verification_agent import ExpenseVerificationAgent

        agent = ExpenseVerificationAgent(
            flag_threshold=config.get("verification", {}).get("flag_threshold", 50),
            processor_id=config.get("google_cloud", {}).get("ocr_processor_id"),
        )

    app = FastAPI(
        title="Fundex API",
        description="Expense fraud and reliability scoring API",
        version=API_VERSION
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get("server", {}).get("cors_origins", ["*"]),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    async def root():
        """API root endpoint."""
        return {"message": "Fundex API", "version": API_VERSION}

    @app.get("/status")
    async def status():
        """System status endpoint."""
        return {
            "status": "ok",
            "timestamp": datetime.now().isoformat(),
            "environment": config.get("environment", "unknown"),
            "version": API_VERSION
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return get_health(config)

    @app.post("/expenses/analyze")
    async def analyze_expense(
        receipt: UploadFile = File(...),
        claimed_amount: float = Form(..., ge=0),
        remaining_balance: Optional[float] = Form(None),
    ):
        """
        Verify an expense receipt: OCR, GST validation, fraud and reliability scores.
        """
        content = await receipt.read()
        if not content:
            raise HTTPException(status_code=400, detail="Receipt file is empty")

        context = {
            "user_id": "api_user",
            "session_id": f"api_{datetime.now().timestamp()}",
            "receipt_name": receipt.filename,
        }

        try:
            analysis = await agent.analyze_expense(
                content,
                claimed_amount=claimed_amount,
                remaining_balance=remaining_balance,
                context=context,
            )
        except Exception as e:
            logger.error(f"Error analyzing expense: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Error analyzing expense: {str(e)}")

        result = analysis.model_dump(mode="json")
        result["receipt_ref"] = receipt.filename
        return result

    @app.post("/fraud/score")
    async def fraud_score(submission: ExpenseSubmission):
        """Score submitted expense fields for fraud risk."""
        result = calculate_fraud_score(submission)
        return {**result.model_dump(mode="json"), "report": generate_fraud_report(result)}

    @app.post("/reliability/score")
    async def reliability_score(submission: ExpenseSubmission):
        """Score submitted expense fields for reliability."""
        result = calculate_reliability_score(submission)
        return {**result.model_dump(mode="json"), "report": generate_reliability_report(result)}

    @app.post("/bill/extract")
    async def extract_bill(request: BillTextRequest):
        """Extract the total amount and GSTIN from receipt OCR text."""
        candidate = find_amount_candidate(request.text)
        return {
            "amount": candidate.amount if candidate else None,
            "amount_candidate": candidate.model_dump(mode="json") if candidate else None,
            "gst_number": extract_gst_from_bill(request.text),
            "text_length": len(request.text),
        }

    @app.get("/gst/{gst_number}")
    def validate_gst(gst_number: str):
        """Validate a GSTIN by format and against the public registry."""
        return validate_gst_online(gst_number).model_dump(mode="json")

    @app.post("/ngo/trust-score")
    async def ngo_trust_score(request: TrustScoreRequest):
        """Calculate the Trust & Transparency score of an NGO from its records."""
        records = request.model_dump(exclude={"ngo_id"})
        result = get_ngo_trust_score(request.ngo_id, lambda _ngo_id: records)
        return result.model_dump(mode="json")

    return app

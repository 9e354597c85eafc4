# job_service.py
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

import settings
from job_model import Job
from job_store import InsertResult, JobStore
from logging_config import get_logger
from pricing_engine import Noise, PricingConfig, calculate_quote, parse_quote_form

logger = get_logger(__name__)

SUCCESS_MESSAGE = "Quote saved successfully!"


@dataclass
class QuoteSubmission:
    """
    Outcome of one quote request. `quote` and `breakdown` are always set, even
    when the save fell back to local storage or failed outright.
    """

    quote: float
    breakdown: Dict[str, Any]
    job: Job
    status: str  # "success" | "warning" | "error"
    message: str
    demo_mode: bool
    save_result: InsertResult

    @property
    def saved(self) -> bool:
        return self.status != "error"


def _status_for(result: InsertResult) -> Tuple[str, str]:
    if result.error is not None:
        reason = result.error.message or "Please try again."
        if result.demo_mode:
            return "error", reason
        return "error", f"Failed to save quote: {reason}"
    if result.demo_mode:
        return "warning", result.message or "Quote saved locally"
    return "success", SUCCESS_MESSAGE


def submit_quote(
    form: Mapping[str, Any],
    config: PricingConfig,
    store: JobStore,
    *,
    noise: Noise = random.uniform,
    table: Optional[str] = None,
) -> QuoteSubmission:
    """
    Validate the form, price it, and persist the resulting job.

    Raises errors.ValidationError before any pricing happens when the form is
    invalid. Persistence problems never raise; they show up in `status`.
    """
    table = table or settings.JOBS_TABLE
    inputs = parse_quote_form(form)
    result = calculate_quote(inputs, config, noise=noise)
    job = Job.from_quote(inputs, result.quote, config)

    logger.info(
        "Quoted %s x%d (%s, %s): $%.2f",
        job.part_type, job.quantity, job.material, job.complexity, job.quote,
    )

    save = store.insert(table, job.to_record())
    status, message = _status_for(save)

    if save.record is not None:
        job = Job.from_record(save.record)

    return QuoteSubmission(
        quote=result.quote,
        breakdown=result.breakdown,
        job=job,
        status=status,
        message=message,
        demo_mode=save.demo_mode,
        save_result=save,
    )


def list_jobs(store: JobStore, *, table: Optional[str] = None, limit: Optional[int] = None) -> Tuple[List[Job], Optional[str]]:
    """Jobs newest first. A failed query means no jobs, plus the error text."""
    result = store.query(table or settings.JOBS_TABLE, limit=limit)
    if result.error is not None:
        return [], result.error.message
    return [Job.from_record(r) for r in result.data], None

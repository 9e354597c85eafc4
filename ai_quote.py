"""
AI price suggestion.

Looks up to five similar past jobs, asks a chat-completion endpoint for a
dollar amount, and falls back to a local estimate from the same formula
family as pricing_engine when the call fails for any reason.
"""

import math
import random
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

import requests

import pricing_config as cfg
import settings
from errors import ExternalServiceError
from job_store import JobStore
from logging_config import get_logger
from pricing_engine import (
    Noise,
    PricingConfig,
    QuoteInputs,
    complexity_multiplier,
    quantity_multiplier,
)

logger = get_logger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant that provides price quotes for manufacturing jobs. "
    "Respond only with the dollar amount."
)
FALLBACK_ERROR = "Could not reach AI service. Showing an estimated quote instead."
SIMILAR_JOBS_LIMIT = 5

_AMOUNT_RE = re.compile(r"\$?\s*(\d[\d,]*(?:\.\d+)?)")


@dataclass
class AiSuggestion:
    suggestion: Optional[str]
    amount: Optional[float]
    error: Optional[str] = None
    used_fallback: bool = False
    similar_jobs: List[Dict[str, Any]] = field(default_factory=list)
    prompt: str = ""

    def as_dict(self) -> Dict[str, Any]:
        return {
            "suggestion": self.suggestion,
            "amount": self.amount,
            "error": self.error,
            "used_fallback": self.used_fallback,
            "similar_jobs": self.similar_jobs,
        }


def parse_dollar_amount(text: Optional[str]) -> Optional[float]:
    if not text:
        return None
    m = _AMOUNT_RE.search(text)
    if not m:
        return None
    try:
        return round(float(m.group(1).replace(",", "")), 2)
    except ValueError:
        return None


# ----------------------------
# Prompt
# ----------------------------
def _days_between(start: datetime, end: datetime) -> int:
    return math.ceil(abs((end - start).total_seconds()) / 86400)


def _as_utc_datetime(x: Any) -> Optional[datetime]:
    if not x:
        return None
    if isinstance(x, datetime):
        dt = x
    elif isinstance(x, date):
        dt = datetime(x.year, x.month, x.day)
    else:
        try:
            dt = datetime.fromisoformat(str(x).replace("Z", "+00:00"))
        except ValueError:
            return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _deadline_text(deadline: Any, reference: Any) -> str:
    end = _as_utc_datetime(deadline)
    start = _as_utc_datetime(reference)
    if end is None or start is None:
        return "not specified"
    return f"{_days_between(start, end)} days"


def _historical_line(index: int, job: Dict[str, Any]) -> str:
    quote = job.get("quote")
    if quote is None:
        quote = job.get("quote_amount")
    try:
        quote_text = f"{float(quote):.2f}"
    except (TypeError, ValueError):
        quote_text = "0.00"

    return (
        f"{index}. Part: {job.get('part_type')}, Material: {job.get('material')}, "
        f"Quantity: {job.get('quantity')}, Complexity: {job.get('complexity')}, "
        f"Deadline: {_deadline_text(job.get('deadline'), job.get('created_at'))} → Quote: ${quote_text}"
    )


def build_prompt(inputs: QuoteInputs, similar_jobs: List[Dict[str, Any]], *, today: date) -> str:
    history = "\n".join(_historical_line(i, job) for i, job in enumerate(similar_jobs, start=1))
    deadline = _deadline_text(inputs.deadline, today)

    return (
        "You are a quoting assistant for a fabrication shop. Given the following historical "
        "quotes and a new job, suggest a reasonable quote amount.\n\n"
        "Historical Jobs:\n"
        f"{history or 'No historical data available for similar jobs.'}\n\n"
        "New Job:\n"
        f"Part: {inputs.part_type}, Material: {inputs.material}, Quantity: {inputs.quantity}, "
        f"Complexity: {inputs.complexity}, Deadline: {deadline}\n\n"
        "Return only the estimated quote as a dollar amount (e.g. $975.00)."
    )


# ----------------------------
# Remote call + fallback
# ----------------------------
def request_completion(
    prompt: str,
    *,
    api_key: str,
    model: str,
    base_url: str,
    timeout: float,
    session: Any = requests,
) -> str:
    if not api_key:
        raise ExternalServiceError("OPENAI_API_KEY is not set")

    try:
        r = session.post(
            f"{base_url}/chat/completions",
            json={
                "model": model,
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                "temperature": 0.7,
                "max_tokens": 50,
            },
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
            timeout=timeout,
        )
    except requests.RequestException as e:
        raise ExternalServiceError(f"AI request failed: {e}") from e

    if r.status_code != 200:
        raise ExternalServiceError(
            f"AI service returned {r.status_code}", {"body": (r.text or "")[:500]}
        )

    try:
        content = r.json()["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise ExternalServiceError("Unexpected AI response shape") from e

    content = (content or "").strip()
    if not content:
        raise ExternalServiceError("No valid response from AI")
    return content


def mock_estimate(
    inputs: QuoteInputs,
    config: PricingConfig,
    *,
    has_history: bool,
    noise: Noise = random.uniform,
) -> float:
    low, high = cfg.MOCK_VARIATION_RANGE_WITH_HISTORY if has_history else cfg.MOCK_VARIATION_RANGE
    variation = noise(low, high)
    base = max(float(config.base_price(inputs.material)), 0.0)
    amount = (
        base
        * complexity_multiplier(inputs.complexity)
        * quantity_multiplier(inputs.quantity)
        * inputs.quantity
        * variation
    )
    return round(amount, 2)


def suggest_quote(
    inputs: QuoteInputs,
    config: PricingConfig,
    store: JobStore,
    *,
    table: Optional[str] = None,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    noise: Noise = random.uniform,
    today: Optional[date] = None,
    session: Any = requests,
) -> AiSuggestion:
    similar = store.fetch_similar(
        table or settings.JOBS_TABLE, inputs.material, inputs.part_type, limit=SIMILAR_JOBS_LIMIT
    )
    if similar.error is not None:
        logger.warning("Similar job lookup failed, continuing without history: %s", similar.error.message)
    similar_jobs = similar.data if similar.error is None else []

    prompt = build_prompt(inputs, similar_jobs, today=today or date.today())
    logger.debug("AI prompt:\n%s", prompt)

    try:
        text = request_completion(
            prompt,
            api_key=api_key if api_key is not None else settings.OPENAI_API_KEY,
            model=model or settings.OPENAI_MODEL,
            base_url=(base_url or settings.OPENAI_BASE_URL).rstrip("/"),
            timeout=timeout or settings.REQUEST_TIMEOUT_SECONDS,
            session=session,
        )
    except ExternalServiceError as e:
        logger.warning("AI suggestion unavailable, using estimate: %s", e)
        amount = mock_estimate(inputs, config, has_history=bool(similar_jobs), noise=noise)
        return AiSuggestion(
            suggestion=f"${amount:.2f}",
            amount=amount,
            error=FALLBACK_ERROR,
            used_fallback=True,
            similar_jobs=similar_jobs,
            prompt=prompt,
        )

    logger.info("AI suggestion: %s", text)
    return AiSuggestion(
        suggestion=text,
        amount=parse_dollar_amount(text),
        similar_jobs=similar_jobs,
        prompt=prompt,
    )

# job_model.py
from dataclasses import asdict, dataclass, replace
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Union

import pricing_config as cfg
from pricing_engine import PricingConfig, QuoteInputs

JobId = Union[str, int]


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _date_or_none(x: Any) -> Optional[date]:
    if not x:
        return None
    if isinstance(x, date):
        return x
    try:
        return date.fromisoformat(str(x)[:10])
    except ValueError:
        return None


@dataclass(frozen=True)
class Job:
    """
    One quote request plus its price and the pricing settings used to compute it.

    Jobs are never mutated; with_id() returns a copy carrying the id assigned
    by whichever store saved it.
    """

    part_type: str
    material: str
    quantity: int
    complexity: str
    quote: float
    rush_fee_enabled: bool = False
    rush_fee_amount: float = 0
    margin_percentage: int = cfg.DEFAULT_MARGIN_PERCENTAGE
    deadline: Optional[date] = None
    created_at: str = ""
    id: Optional[JobId] = None

    @classmethod
    def from_quote(
        cls,
        inputs: QuoteInputs,
        quote: float,
        config: PricingConfig,
        *,
        created_at: Optional[str] = None,
    ) -> "Job":
        return cls(
            part_type=inputs.part_type,
            material=inputs.material,
            quantity=inputs.quantity,
            complexity=inputs.complexity,
            quote=quote,
            rush_fee_enabled=config.rush_fee_enabled,
            rush_fee_amount=config.rush_fee_amount if config.rush_fee_enabled else 0,
            margin_percentage=config.margin_percentage,
            deadline=inputs.deadline,
            created_at=created_at or utc_now_iso(),
        )

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Job":
        quote = record.get("quote")
        if quote is None:
            quote = record.get("quote_amount")  # legacy column name

        return cls(
            part_type=str(record.get("part_type") or ""),
            material=str(record.get("material") or ""),
            quantity=int(record.get("quantity") or 0),
            complexity=str(record.get("complexity") or cfg.DEFAULT_COMPLEXITY),
            quote=float(quote or 0),
            rush_fee_enabled=bool(record.get("rush_fee_enabled") or False),
            rush_fee_amount=float(record.get("rush_fee_amount") or 0),
            margin_percentage=int(
                record.get("margin_percentage")
                if record.get("margin_percentage") is not None
                else cfg.DEFAULT_MARGIN_PERCENTAGE
            ),
            deadline=_date_or_none(record.get("deadline")),
            created_at=str(record.get("created_at") or ""),
            id=record.get("id"),
        )

    def with_id(self, job_id: JobId, created_at: Optional[str] = None) -> "Job":
        return replace(self, id=job_id, created_at=created_at or self.created_at)

    def to_record(self) -> Dict[str, Any]:
        record = asdict(self)
        record["deadline"] = self.deadline.isoformat() if self.deadline else None
        if self.id is None:
            record.pop("id")
        return record

# pricing_engine.py
import math
import random
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, Mapping, Optional

import pricing_config as cfg
from errors import ValidationError

# noise(low, high) -> float in [low, high]
Noise = Callable[[float, float], float]


@dataclass(frozen=True)
class PricingConfig:
    material_prices: Dict[str, float] = field(
        default_factory=lambda: dict(cfg.DEFAULT_MATERIAL_PRICES)
    )
    rush_fee_enabled: bool = cfg.DEFAULT_RUSH_FEE_ENABLED
    rush_fee_amount: float = cfg.DEFAULT_RUSH_FEE_AMOUNT
    margin_percentage: int = cfg.DEFAULT_MARGIN_PERCENTAGE

    def base_price(self, material: str) -> float:
        return self.material_prices.get(material) or cfg.FALLBACK_BASE_PRICE

    def is_customized(self) -> bool:
        return any(
            self.material_prices.get(mat) != price
            for mat, price in cfg.DEFAULT_MATERIAL_PRICES.items()
        ) or any(mat not in cfg.DEFAULT_MATERIAL_PRICES for mat in self.material_prices)


@dataclass(frozen=True)
class QuoteInputs:
    part_type: str
    material: str
    quantity: int
    complexity: str = cfg.DEFAULT_COMPLEXITY
    deadline: Optional[date] = None


@dataclass(frozen=True)
class QuoteResult:
    quote: float
    breakdown: Dict[str, Any]


def normalize_complexity(label: Optional[str]) -> str:
    value = (label or cfg.DEFAULT_COMPLEXITY).strip().lower()
    return cfg.COMPLEXITY_ALIASES.get(value, value)


def complexity_multiplier(label: Optional[str]) -> float:
    return cfg.COMPLEXITY_MULTIPLIER.get(
        normalize_complexity(label), cfg.FALLBACK_COMPLEXITY_MULTIPLIER
    )


def quantity_multiplier(quantity: int) -> float:
    # Sub-linear volume curve; undefined for quantity < 1
    return max(1.0, math.log10(quantity) + 1)


# ----------------------------
# Form validation
# ----------------------------
def _parse_quantity(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    text = str(value).strip()
    if not text.isdecimal():
        return None
    return int(text)


def _parse_deadline(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def validate_quote_form(form: Mapping[str, Any]) -> Dict[str, str]:
    errors: Dict[str, str] = {}

    if not str(form.get("part_type") or "").strip():
        errors["part_type"] = "Part type is required"

    if not str(form.get("material") or "").strip():
        errors["material"] = "Material is required"

    qty = _parse_quantity(form.get("quantity"))
    if qty is None or qty <= 0:
        errors["quantity"] = "Valid quantity is required"

    complexity = normalize_complexity(form.get("complexity"))
    if complexity not in cfg.COMPLEXITY_MULTIPLIER:
        errors["complexity"] = "Complexity must be one of " + ", ".join(cfg.COMPLEXITY_LEVELS)

    try:
        _parse_deadline(form.get("deadline"))
    except (TypeError, ValueError):
        errors["deadline"] = "Deadline must be a valid date (YYYY-MM-DD)"

    return errors


def parse_quote_form(form: Mapping[str, Any]) -> QuoteInputs:
    errors = validate_quote_form(form)
    if errors:
        raise ValidationError(errors)

    return QuoteInputs(
        part_type=str(form["part_type"]).strip(),
        material=str(form["material"]).strip(),
        quantity=_parse_quantity(form["quantity"]),
        complexity=normalize_complexity(form.get("complexity")),
        deadline=_parse_deadline(form.get("deadline")),
    )


# ----------------------------
# Quote
# ----------------------------
def calculate_quote(
    x: QuoteInputs,
    config: PricingConfig,
    *,
    noise: Noise = random.uniform,
) -> QuoteResult:
    """
    Price a job: base price x complexity x volume curve x quantity, with market
    noise, margin and an optional flat rush fee.

    Inputs are expected to have passed validate_quote_form(); in particular
    quantity must be >= 1.
    """
    base_price = max(float(config.base_price(x.material)), 0.0)
    cx_mult = complexity_multiplier(x.complexity)
    qty_mult = quantity_multiplier(x.quantity)

    base_cost = base_price * cx_mult * qty_mult * x.quantity

    low, high = cfg.RANDOM_FACTOR_RANGE
    random_factor = noise(low, high)
    amount = base_cost * random_factor

    margin_multiplier = 1 + (config.margin_percentage / 100)
    amount = amount * margin_multiplier

    rush_fee = float(config.rush_fee_amount) if config.rush_fee_enabled else 0.0
    amount += rush_fee

    final_quote = round(max(amount, 0.0), 2)

    breakdown = {
        "material": x.material,
        "base_price": round(base_price, 2),
        "complexity": normalize_complexity(x.complexity),
        "complexity_multiplier": cx_mult,
        "quantity": x.quantity,
        "quantity_multiplier": round(qty_mult, 4),
        "random_factor": round(random_factor, 4),
        "margin_percentage": config.margin_percentage,
        "margin_multiplier": round(margin_multiplier, 4),
        "rush_fee_enabled": config.rush_fee_enabled,
        "rush_fee_amount": round(rush_fee, 2),
        "base_cost": round(base_cost, 2),
        "final_quote": final_quote,
    }

    return QuoteResult(quote=final_quote, breakdown=breakdown)


if __name__ == "__main__":
    inputs = QuoteInputs(part_type="bracket", material="steel", quantity=10, complexity="medium")
    result = calculate_quote(inputs, PricingConfig())
    print("QUOTE:", result.quote)
    print("BREAKDOWN:", result.breakdown)

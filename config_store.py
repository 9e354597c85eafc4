# config_store.py
import json
from dataclasses import replace
from typing import Any, Dict, Optional, Union

import pricing_config as cfg
from local_storage import LocalStorage
from logging_config import get_logger
from pricing_engine import PricingConfig

logger = get_logger(__name__)

MATERIAL_PRICES_KEY = "materialPrices"
ADVANCED_OPTIONS_KEY = "advancedOptions"


def _num(x: Any) -> Union[int, float]:
    # Integral values are kept as ints so "15" never round-trips to "15.0"
    if isinstance(x, bool):
        raise ValueError(f"not a number: {x!r}")
    value = float(x)
    return int(value) if value.is_integer() else value


def _dumps(obj: Any) -> str:
    # Compact separators, same output as JSON.stringify
    return json.dumps(obj, separators=(",", ":"))


class ConfigStore:
    """
    Loads and saves the pricing configuration (material prices, rush fee,
    margin) in local storage. Has no say in how quotes are priced.
    """

    def __init__(self, storage: Optional[LocalStorage] = None):
        self.storage = storage or LocalStorage()

    # ----------------------------
    # Load
    # ----------------------------
    def _read_json(self, key: str) -> Optional[Any]:
        raw = self.storage.get_item(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unreadable %s in local storage", key)
            return None

    def load_material_prices(self) -> Dict[str, Union[int, float]]:
        saved = self._read_json(MATERIAL_PRICES_KEY)
        if not isinstance(saved, dict):
            return dict(cfg.DEFAULT_MATERIAL_PRICES)

        prices: Dict[str, Union[int, float]] = {}
        for material, price in saved.items():
            try:
                prices[str(material)] = _num(price)
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid price for %s: %r", material, price)
        return prices or dict(cfg.DEFAULT_MATERIAL_PRICES)

    def load(self) -> PricingConfig:
        config = PricingConfig(material_prices=self.load_material_prices())

        options = self._read_json(ADVANCED_OPTIONS_KEY)
        if not isinstance(options, dict):
            return config

        try:
            if options.get("rushFeeEnabled") is not None:
                config = replace(config, rush_fee_enabled=bool(options["rushFeeEnabled"]))
            if options.get("rushFeeAmount") is not None:
                config = replace(config, rush_fee_amount=_num(options["rushFeeAmount"]))
            if options.get("marginPercentage") is not None:
                config = replace(config, margin_percentage=int(_num(options["marginPercentage"])))
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid advanced options: %r", options)
            return PricingConfig(material_prices=config.material_prices)

        return config

    # ----------------------------
    # Save
    # ----------------------------
    def save_material_prices(self, prices: Dict[str, Any]) -> None:
        normalized = {str(m): _num(p) for m, p in prices.items()}
        self.storage.set_item(MATERIAL_PRICES_KEY, _dumps(normalized))

    def save_advanced_options(self, config: PricingConfig) -> None:
        options = {
            "rushFeeEnabled": bool(config.rush_fee_enabled),
            "rushFeeAmount": _num(config.rush_fee_amount),
            "marginPercentage": int(config.margin_percentage),
        }
        self.storage.set_item(ADVANCED_OPTIONS_KEY, _dumps(options))

    def save(self, config: PricingConfig) -> None:
        self.save_material_prices(config.material_prices)
        self.save_advanced_options(config)

    def reset_material_prices(self) -> PricingConfig:
        self.save_material_prices(cfg.DEFAULT_MATERIAL_PRICES)
        return self.load()

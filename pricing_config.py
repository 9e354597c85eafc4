# pricing_config.py

# Base unit price per material ($ per piece before multipliers)
DEFAULT_MATERIAL_PRICES = {
    "aluminum": 10,
    "steel": 15,
    "plastic": 5,
    "titanium": 50,
}

# Used when a material has no configured price
FALLBACK_BASE_PRICE = 10

COMPLEXITY_LEVELS = ["low", "medium", "high"]

COMPLEXITY_MULTIPLIER = {
    "low": 1.0,
    "medium": 1.5,
    "high": 2.5,
}

# Older form labels
COMPLEXITY_ALIASES = {
    "simple": "low",
    "complex": "high",
}

DEFAULT_COMPLEXITY = "medium"
FALLBACK_COMPLEXITY_MULTIPLIER = 1.5

# Market variance band applied to every quote
RANDOM_FACTOR_RANGE = (0.9, 1.1)

# Mock AI estimate bands (wider when there is no history to lean on)
MOCK_VARIATION_RANGE = (0.9, 1.2)
MOCK_VARIATION_RANGE_WITH_HISTORY = (0.95, 1.15)

DEFAULT_MARGIN_PERCENTAGE = 20
DEFAULT_RUSH_FEE_ENABLED = False
DEFAULT_RUSH_FEE_AMOUNT = 50

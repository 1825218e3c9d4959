"""
Monitoring constants and default configuration values.

Values are organized by category for easy maintenance and auditing.
"""

from typing import Final


# =============================================================================
# Venues
# =============================================================================

VENUE_A_NAME: Final[str] = "PancakeSwap"
VENUE_B_NAME: Final[str] = "ApeSwap"

# {token} is replaced with the token contract address
VENUE_A_PRICE_URL: Final[str] = "https://api.pancakeswap.info/api/v2/tokens/{token}"
VENUE_B_PRICE_URL: Final[str] = "https://apeswap.finance/api/v1/price/{token}"

# Dotted path to the USD price inside each venue's JSON payload
VENUE_A_PRICE_PATH: Final[str] = "data.price"
VENUE_B_PRICE_PATH: Final[str] = "price"

# BNB Smart Chain token addresses
TOKEN_ADDRESSES: Final[dict[str, str]] = {
    "WBNB": "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c",
    "BUSD": "0xe9e7CEA3DedcA5984780Bafc599bD69ADd087D56",
    "CAKE": "0x0E09FaBB73Bd3Ade0a17ECC321fD13a19e81cE82",
}


# =============================================================================
# Pairs
# =============================================================================

PAIR_SEPARATOR: Final[str] = "/"

DEFAULT_PAIRS: Final[tuple[str, ...]] = ("WBNB/BUSD", "BUSD/WBNB", "CAKE/BUSD")

# Base (venue A, venue B) prices used by the simulated quote source
SIMULATED_BASE_PRICES: Final[dict[str, tuple[float, float]]] = {
    "WBNB/BUSD": (310.45, 312.18),
    "BUSD/WBNB": (0.003223, 0.003201),
    "CAKE/BUSD": (2.45, 2.47),
}

# Starting prices for simulated pairs missing from SIMULATED_BASE_PRICES
SIMULATED_DEFAULT_BASE: Final[tuple[float, float]] = (310.45, 312.18)


# =============================================================================
# Detection
# =============================================================================

# Absolute profitability (percent) above which a pair is an opportunity
DEFAULT_THRESHOLD_PCT: Final[float] = 0.5

# 1 means every cycle is classified independently
DEFAULT_HYSTERESIS_CYCLES: Final[int] = 1


# =============================================================================
# Timing
# =============================================================================

DEFAULT_POLL_INTERVAL_MS: Final[int] = 5000
DEFAULT_ROTATION_INTERVAL_MS: Final[int] = 3000
DEFAULT_REQUEST_TIMEOUT_S: Final[float] = 4.0

FETCH_POLICY_OVERLAP: Final[str] = "overlap"
FETCH_POLICY_SKIP: Final[str] = "skip"


# =============================================================================
# Trade Estimation
# =============================================================================

# Flash-loan round trip gas, in native token (BNB)
DEFAULT_GAS_COST_NATIVE: Final[float] = 0.003
DEFAULT_NATIVE_PRICE: Final[float] = 310.0
DEFAULT_SLIPPAGE_PCT: Final[float] = 0.5

SIMULATED_EXECUTION_DELAY_S: Final[float] = 0.2

# Simulated transaction handles kept for listing
EXECUTION_HISTORY_SIZE: Final[int] = 100


# =============================================================================
# Logging & Telemetry
# =============================================================================

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

MAX_LOG_QUEUE_SIZE: Final[int] = 10_000

LATENCY_WINDOW_SIZE: Final[int] = 500


# =============================================================================
# Dashboard
# =============================================================================

DEFAULT_DASHBOARD_HOST: Final[str] = "0.0.0.0"
DEFAULT_DASHBOARD_PORT: Final[int] = 8000

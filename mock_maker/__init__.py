"""
Mock Market Maker
Signed order client, price oracle, per-pair cycle engine and scheduler for
keeping a test exchange's order books populated.
"""

from .config import (
    PairConfig,
    Settings,
    configure_logging,
    get_logger,
    load_env,
)

from .protocol import (
    OrderIntent,
    MarketMakerError,
    ConfigError,
    SignerError,
    CycleError,
    PriceUnavailableError,
    InvalidPriceError,
    OrderRejectedError,
    CredentialExpiredError,
    FatalStop,
    to_backend_symbol,
    to_reference_symbol,
)

from .signer import RequestSigner, canonicalize
from .exchange_client import ExchangeClient
from .price_oracle import PriceOracle
from .alerts import Notifier, TelegramNotifier
from .cycle_engine import PairCycleEngine, PairRuntimeState, build_ladder
from .scheduler import CycleScheduler

__all__ = [
    'PairConfig', 'Settings', 'configure_logging', 'get_logger', 'load_env',
    'OrderIntent', 'MarketMakerError', 'ConfigError', 'SignerError', 'CycleError',
    'PriceUnavailableError', 'InvalidPriceError', 'OrderRejectedError',
    'CredentialExpiredError', 'FatalStop', 'to_backend_symbol', 'to_reference_symbol',
    'RequestSigner', 'canonicalize',
    'ExchangeClient', 'PriceOracle', 'Notifier', 'TelegramNotifier',
    'PairCycleEngine', 'PairRuntimeState', 'build_ladder',
    'CycleScheduler',
]

#!/usr/bin/env python3
"""
Mock Market Maker - Per-Pair Cycle Engine
One cycle for one pair: mark price -> cancel -> bid/ask ladder -> self-cross,
with consecutive-failure accounting that can stop the whole process.
"""

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import List, NamedTuple, Optional

from .alerts import Notifier
from .config import PairConfig
from .exchange_client import ExchangeClient
from .price_oracle import PriceOracle
from .protocol import CredentialExpiredError, FatalStop, InvalidPriceError, OrderSide

logger = logging.getLogger("cycle_engine")

LEVEL_SIZE_STEP = Decimal("0.5")  # each level deeper adds 50% of the base quantity

EXIT_CREDENTIAL_EXPIRED = 0  # operator must rotate the key; do not auto-restart
EXIT_TOO_MANY_ERRORS = 1     # supervisor may restart


class CycleState(Enum):
    """Pair cycle states"""
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    DEGRADED = "degraded"
    FATAL = "fatal"


@dataclass
class PairRuntimeState:
    """Mutable per-pair state; owned by exactly one engine."""
    symbol: str
    consecutive_errors: int = 0
    status: CycleState = CycleState.IDLE
    last_error: str = ""
    cycles_succeeded: int = 0
    cycles_failed: int = 0

    def record_success(self) -> None:
        self.consecutive_errors = 0
        self.cycles_succeeded += 1
        self.status = CycleState.SUCCEEDED

    def record_failure(self, error: str) -> int:
        self.consecutive_errors += 1
        self.cycles_failed += 1
        self.last_error = error
        self.status = CycleState.DEGRADED
        return self.consecutive_errors


class LadderOrder(NamedTuple):
    side: OrderSide
    level: int
    price: str
    quantity: str


def round_to(value: Decimal, places: int) -> str:
    quantum = Decimal(1).scaleb(-places)
    return format(value.quantize(quantum, rounding=ROUND_HALF_UP), "f")


def level_quantity(quantity: Decimal, level: int) -> Decimal:
    return quantity * (1 + (level - 1) * LEVEL_SIZE_STEP)


def level_price(mark_price: Decimal, spread: Decimal, level: int, side: OrderSide) -> Decimal:
    offset = spread * level
    if side == "BUY":
        return mark_price * (1 - offset)
    return mark_price * (1 + offset)


def build_ladder(
    pair: PairConfig,
    mark_price: Decimal,
    levels: int,
    price_decimals: int,
    qty_decimals: int,
) -> List[LadderOrder]:
    """All bid levels (nearest first), then all ask levels."""
    orders: List[LadderOrder] = []
    for side in ("BUY", "SELL"):
        for level in range(1, levels + 1):
            price = level_price(mark_price, pair.spread, level, side)
            price_str = round_to(price, price_decimals)
            if Decimal(price_str) <= 0:
                raise InvalidPriceError(
                    f"[{pair.symbol}] {side} level {level} price {price_str} is not positive "
                    f"(spread {pair.spread} x {level})"
                )
            orders.append(LadderOrder(
                side=side,
                level=level,
                price=price_str,
                quantity=round_to(level_quantity(pair.quantity, level), qty_decimals),
            ))
    return orders


class PairCycleEngine:
    def __init__(
        self,
        pair: PairConfig,
        client: ExchangeClient,
        oracle: PriceOracle,
        notifier: Notifier,
        levels: int = 5,
        max_errors: int = 5,
        price_decimals: int = 4,
        qty_decimals: int = 4,
        state: Optional[PairRuntimeState] = None,
    ):
        self.pair = pair
        self.client = client
        self.oracle = oracle
        self.notifier = notifier
        self.levels = levels
        self.max_errors = max_errors
        self.price_decimals = price_decimals
        self.qty_decimals = qty_decimals
        self.state = state or PairRuntimeState(symbol=pair.symbol)

    async def run_cycle(self, cycle: int) -> PairRuntimeState:
        """Run one full cycle; raises FatalStop when the process must end."""
        symbol = self.pair.symbol
        self.state.status = CycleState.RUNNING
        try:
            await self._trade(cycle)
        except CredentialExpiredError as exc:
            self.state.status = CycleState.FATAL
            self.state.last_error = str(exc)
            msg = f"[{symbol}] Cycle #{cycle} ❌ API key expired ({exc.status}). Update API_KEY in .env and restart manually."
            logger.error("%s", msg)
            await self.notifier.notify(msg)
            raise FatalStop(msg, EXIT_CREDENTIAL_EXPIRED) from exc
        except Exception as exc:  # noqa: broad-except
            errors = self.state.record_failure(str(exc))
            msg = f"[{symbol}] Cycle #{cycle} error ({errors}/{self.max_errors}): {exc}"
            logger.error("✗ %s", msg)
            await self.notifier.notify(f"⚠️ {msg}")

            if errors >= self.max_errors:
                self.state.status = CycleState.FATAL
                fatal = f"[{symbol}] Cycle #{cycle} Stopping after {self.max_errors} errors. Last: {exc}"
                logger.critical("❌ %s", fatal)
                await self.notifier.notify(f"🛑 {fatal}")
                raise FatalStop(fatal, EXIT_TOO_MANY_ERRORS) from exc
            return self.state

        self.state.record_success()
        return self.state

    async def _trade(self, cycle: int) -> None:
        pair = self.pair
        symbol = pair.symbol

        # 1. mark price
        mark_price = await self.oracle.get_mark_price(pair)
        mark_str = round_to(mark_price, self.price_decimals)
        logger.info("[%s] Cycle #%d mark price $%s", symbol, cycle, mark_str)

        # 2. cancel (best-effort; result only logged)
        await self.client.cancel_all_open_orders(pair)

        # 3. ladder, bids then asks
        for order in build_ladder(pair, mark_price, self.levels, self.price_decimals, self.qty_decimals):
            label = "BID" if order.side == "BUY" else "ASK"
            await self.client.place_order(
                pair, order.side, "LIMIT", "GTC", price=order.price, quantity=order.quantity,
            )
            logger.info("[%s] %s[%d] @ %s qty:%s... placed", symbol, label, order.level, order.price, order.quantity)

        # 4. self-cross at the exact mark price with the base quantity
        for side in ("BUY", "SELL"):
            await self.client.place_order(pair, side, "LIMIT", "GTC", price=mark_str)
            logger.info("[%s] Match %-4s @ %s (GTC)... placed", symbol, side, mark_str)

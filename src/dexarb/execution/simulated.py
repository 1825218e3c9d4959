"""
Simulated flash-loan executor.

Stands in for the wallet/contract layer: no transaction is encoded or
sent, a handle with a random hash is returned instead.
"""

import asyncio
import logging
import secrets
from collections import deque

from dexarb.config.constants import EXECUTION_HISTORY_SIZE, SIMULATED_EXECUTION_DELAY_S
from dexarb.core.errors import ExecutionError
from dexarb.core.types import TradeDirection, TransactionHandle, TransactionStatus
from dexarb.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)


class SimulatedExecutor:
    """
    Executor that pretends to submit flash-loan arbitrage transactions.

    Keeps the handles it issued so a surface can list them.
    """

    def __init__(
        self,
        delay_s: float = SIMULATED_EXECUTION_DELAY_S,
        fail: bool = False,
        history_size: int = EXECUTION_HISTORY_SIZE,
    ) -> None:
        """
        Initialize simulated executor.

        Args:
            delay_s: Simulated submission latency.
            fail: Reject every execution (for failure-path testing).
            history_size: Most recent handles kept in history.
        """
        self._delay_s = delay_s
        self._fail = fail
        self._history: deque[TransactionHandle] = deque(maxlen=history_size)

    async def execute_arbitrage(
        self,
        pair: str,
        amount: float,
        direction: TradeDirection,
    ) -> TransactionHandle:
        """
        Simulate submitting an arbitrage.

        Raises:
            ExecutionError: If the amount is not positive or failure is forced.
        """
        if amount <= 0:
            raise ExecutionError(f"Invalid flash-loan amount {amount}")

        if self._delay_s > 0:
            await asyncio.sleep(self._delay_s)

        if self._fail:
            raise ExecutionError(f"Simulated execution failure for {pair}")

        handle = TransactionHandle(
            tx_hash="0x" + secrets.token_hex(32),
            pair=pair,
            amount=amount,
            direction=direction,
            submitted_at=get_timestamp_ms(),
            status=TransactionStatus.CONFIRMED,
        )
        self._history.append(handle)
        logger.info(
            f"Simulated arbitrage {pair} {direction.value} amount={amount} tx={handle.tx_hash[:10]}..."
        )
        return handle

    @property
    def history(self) -> list[TransactionHandle]:
        """Most recent handles issued, oldest first."""
        return list(self._history)

"""Transfer classification — turns one transaction's balance changes into deposit/withdrawal events.

Pure functions, no RPC dependency. A deposit is a custody gain matched by a
wallet's loss of about the same amount; a withdrawal is a custody loss
matched by a wallet's gain.
"""

import logging
from collections import defaultdict
from decimal import Decimal

from stakeledger.domain.enums.staking import TransferDirection
from stakeledger.domain.models.staking import (
    ClassificationResult,
    ParsedTokenTransaction,
    RawTransferEvent,
    UnresolvedTransfer,
)

logger = logging.getLogger(__name__)


class TransferClassifier:
    def __init__(
        self,
        custody_owner: str,
        deposit_tolerance: Decimal = Decimal("1"),
        withdrawal_tolerance_min: Decimal = Decimal("1"),
        withdrawal_tolerance_ratio: Decimal = Decimal("0.001"),
    ) -> None:
        self._custody_owner = custody_owner
        self._deposit_tolerance = deposit_tolerance
        self._withdrawal_tolerance_min = withdrawal_tolerance_min
        self._withdrawal_tolerance_ratio = withdrawal_tolerance_ratio

    def withdrawal_tolerance(self, amount: Decimal) -> Decimal:
        return max(self._withdrawal_tolerance_min, amount * self._withdrawal_tolerance_ratio)

    def classify(self, tx: ParsedTokenTransaction) -> ClassificationResult:
        """Emit zero, one or two events for a transaction."""
        result = ClassificationResult()
        if tx.failed:
            return result

        timestamp_ms = tx.timestamp_ms
        if timestamp_ms is None:
            logger.debug("Skipping %s: no block time", tx.signature)
            return result

        custody_gain = Decimal(0)
        custody_loss = Decimal(0)
        # Net change per counterparty wallet, in first-seen order
        wallet_deltas: dict[str, Decimal] = defaultdict(Decimal)

        for change in tx.balance_changes:
            delta = change.delta
            if delta == 0 or change.owner is None:
                continue
            if change.owner == self._custody_owner:
                if delta > 0:
                    custody_gain += delta
                else:
                    custody_loss += -delta
            else:
                wallet_deltas[change.owner] += delta

        if custody_gain > 0:
            wallet = self._match(wallet_deltas, -custody_gain, self._deposit_tolerance)
            self._record(result, tx, TransferDirection.DEPOSIT, wallet, custody_gain, timestamp_ms)

        if custody_loss > 0:
            wallet = self._match(wallet_deltas, custody_loss, self.withdrawal_tolerance(custody_loss))
            self._record(result, tx, TransferDirection.WITHDRAWAL, wallet, custody_loss, timestamp_ms)

        return result

    @staticmethod
    def _match(wallet_deltas: dict[str, Decimal], expected: Decimal, tolerance: Decimal) -> str | None:
        """First wallet whose delta has the expected sign and lies strictly within tolerance of it."""
        for wallet, delta in wallet_deltas.items():
            if (delta > 0) != (expected > 0):
                continue
            if abs(delta - expected) < tolerance:
                return wallet
        return None

    @staticmethod
    def _record(
        result: ClassificationResult,
        tx: ParsedTokenTransaction,
        direction: TransferDirection,
        wallet: str | None,
        amount: Decimal,
        timestamp_ms: int,
    ) -> None:
        if wallet is None:
            logger.warning(
                "Unresolved %s of %s tokens in %s: no counterparty within tolerance",
                direction.value.lower(), amount, tx.signature,
            )
            result.unresolved.append(UnresolvedTransfer(signature=tx.signature, direction=direction, amount=amount))
            return

        logger.debug("%s of %s tokens by %s (%s)", direction.value, amount, wallet, tx.signature)
        result.events.append(RawTransferEvent(
            direction=direction,
            counterparty_wallet=wallet,
            amount=amount,
            timestamp_ms=timestamp_ms,
            transaction_id=tx.signature,
        ))


def classify_transactions(
    transactions: list[ParsedTokenTransaction],
    classifier: TransferClassifier,
) -> ClassificationResult:
    """Classify a chronologically sorted list of transactions, preserving order."""
    combined = ClassificationResult()
    for tx in transactions:
        result = classifier.classify(tx)
        combined.events.extend(result.events)
        combined.unresolved.extend(result.unresolved)
    return combined

"""Compare reconstructed stakes against the custody account's on-chain balance.

Diagnostic only: a mismatch is reported and logged, never scaled away, since
a correction factor would hide classification bugs.
"""

import logging
from decimal import Decimal

from stakeledger.domain.models.staking import ReconciliationReport, WalletStakeSummary

logger = logging.getLogger(__name__)

TOP_WALLETS = 10


def reconcile(
    summaries: list[WalletStakeSummary],
    on_chain_total: Decimal,
    threshold_pct: Decimal = Decimal("1"),
) -> ReconciliationReport:
    calculated_total = sum((s.total_staked for s in summaries), Decimal(0))
    difference = abs(calculated_total - on_chain_total)

    if on_chain_total > 0:
        percent_difference: Decimal | None = difference / on_chain_total * 100
        within_threshold = percent_difference <= threshold_pct
    else:
        percent_difference = None
        within_threshold = calculated_total == 0

    top_wallets = [
        (s.wallet_address, s.total_staked)
        for s in sorted(summaries, key=lambda s: -s.total_staked)[:TOP_WALLETS]
    ]
    report = ReconciliationReport(
        calculated_total=calculated_total,
        on_chain_total=on_chain_total,
        difference=difference,
        percent_difference=percent_difference,
        within_threshold=within_threshold,
        top_wallets=top_wallets,
    )

    logger.info("Calculated total staked: %s, on-chain custody balance: %s", calculated_total, on_chain_total)
    if not within_threshold:
        _log_mismatch(report, len(summaries))
    return report


def mismatch_warning(report: ReconciliationReport) -> str:
    pct = f"{report.percent_difference:.2f}%" if report.percent_difference is not None else "n/a (zero on-chain balance)"
    return (
        f"Calculated total {report.calculated_total} differs from on-chain balance "
        f"{report.on_chain_total} by {pct}; stake amounts may be inaccurate"
    )


def _log_mismatch(report: ReconciliationReport, wallet_count: int) -> None:
    logger.warning(mismatch_warning(report))
    logger.warning("Top %d wallets by calculated stake:", len(report.top_wallets))
    for address, total in report.top_wallets:
        logger.warning("  %s: %s", address, total)
    if wallet_count:
        logger.warning(
            "Total wallets: %d, average stake: %s",
            wallet_count, (report.calculated_total / wallet_count).quantize(Decimal("0.01")),
        )

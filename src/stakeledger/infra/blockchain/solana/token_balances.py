"""Convert Solana jsonParsed transactions into ParsedTokenTransaction.

This is the only place that knows the RPC response shape; everything
downstream works on TokenBalanceChange records.
"""

from decimal import Decimal, InvalidOperation

from stakeledger.domain.models.staking import ParsedTokenTransaction, TokenBalanceChange


def ui_amount(token_amount: dict | None) -> Decimal:
    """Exact UI amount from a uiTokenAmount dict.

    Prefers the raw integer amount scaled by decimals, then uiAmountString,
    then the float uiAmount.
    """
    if not token_amount:
        return Decimal(0)

    raw = token_amount.get("amount")
    decimals = token_amount.get("decimals")
    if raw is not None and decimals is not None:
        try:
            return Decimal(int(raw)).scaleb(-int(decimals))
        except (ValueError, InvalidOperation):
            pass

    ui_string = token_amount.get("uiAmountString")
    if ui_string:
        return Decimal(ui_string)

    ui_float = token_amount.get("uiAmount")
    if ui_float is None:
        return Decimal(0)
    return Decimal(str(ui_float))


def parse_token_transaction(
    tx_data: dict,
    mint: str,
    signature: str | None = None,
    block_time: int | None = None,
) -> ParsedTokenTransaction:
    """Extract balance changes for `mint` from a parsed transaction.

    An account missing from preTokenBalances (created in this TX) or from
    postTokenBalances (closed in this TX) counts as a zero balance on that side.
    signature/block_time are fallbacks from the signature listing.
    """
    meta = tx_data.get("meta", {}) or {}
    transaction = tx_data.get("transaction", {}) or {}
    message = transaction.get("message", {}) or {}
    account_keys = message.get("accountKeys", [])
    signatures = transaction.get("signatures", []) or []

    pubkeys = []
    for key in account_keys:
        if isinstance(key, dict):
            pubkeys.append(key.get("pubkey", ""))
        else:
            pubkeys.append(str(key))

    pre_map: dict[int, dict] = {}
    for tb in meta.get("preTokenBalances", []) or []:
        if tb.get("mint") == mint:
            pre_map[tb.get("accountIndex", -1)] = tb

    post_map: dict[int, dict] = {}
    for tb in meta.get("postTokenBalances", []) or []:
        if tb.get("mint") == mint:
            post_map[tb.get("accountIndex", -1)] = tb

    changes: list[TokenBalanceChange] = []
    for account_index in sorted(set(pre_map) | set(post_map)):
        if account_index < 0 or account_index >= len(pubkeys):
            continue

        pre_info = pre_map.get(account_index)
        post_info = post_map.get(account_index)
        owner = (post_info or pre_info or {}).get("owner")

        changes.append(TokenBalanceChange(
            account=pubkeys[account_index],
            owner=owner,
            mint=mint,
            pre_amount=ui_amount(pre_info.get("uiTokenAmount") if pre_info else None),
            post_amount=ui_amount(post_info.get("uiTokenAmount") if post_info else None),
        ))

    return ParsedTokenTransaction(
        signature=signatures[0] if signatures else (signature or ""),
        block_time=tx_data.get("blockTime") or block_time,
        failed=meta.get("err") is not None,
        balance_changes=changes,
    )

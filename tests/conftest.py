from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from stakeledger.config import Settings
from stakeledger.db.session import Base
import stakeledger.db.models  # noqa: F401 — register all models

CUSTODY_OWNER = "CustodyOwner1111111111111111111111111111111"
CUSTODY_ACCOUNT = "CustodyATA22222222222222222222222222222222"
MINT = "StakeMint333333333333333333333333333333333"
DAY0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture()
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await eng.dispose()


@pytest.fixture()
async def session(engine) -> AsyncSession:
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as sess:
        yield sess


@pytest.fixture()
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture()
def test_settings() -> Settings:
    """Settings pointing at the fake chain, with every delay zeroed."""
    return Settings(
        _env_file=None,
        solana_rpc_url="https://rpc.test",
        staking_contract_address=CUSTODY_OWNER,
        token_mint_address=MINT,
        lock_period_days=90,
        signature_page_size=3,
        signature_page_delay_seconds=0,
        tx_batch_size=2,
        tx_batch_delay_seconds=0,
        rpc_max_retries=2,
        rpc_retry_base_delay_seconds=0,
        rpc_retry_max_delay_seconds=0,
    )


def _token_balance(index: int, owner: str, amount: Decimal, mint: str = MINT) -> dict:
    return {
        "accountIndex": index,
        "mint": mint,
        "owner": owner,
        "uiTokenAmount": {
            "amount": str(int(amount * 10**6)),
            "decimals": 6,
            "uiAmountString": str(amount),
        },
    }


def make_transfer_tx(
    signature: str,
    block_time: int | None,
    wallet: str,
    wallet_delta: Decimal,
    custody_delta: Decimal,
    err: dict | None = None,
) -> dict:
    """jsonParsed getTransaction result moving tokens between `wallet` and the custody account."""
    wallet_pre = Decimal("100000")
    custody_pre = Decimal("100000")
    return {
        "blockTime": block_time,
        "slot": 1,
        "transaction": {
            "signatures": [signature],
            "message": {
                "accountKeys": [
                    {"pubkey": f"{wallet}-ata", "signer": False},
                    {"pubkey": CUSTODY_ACCOUNT, "signer": False},
                    {"pubkey": wallet, "signer": True},
                ],
            },
        },
        "meta": {
            "err": err,
            "fee": 5000,
            "preTokenBalances": [
                _token_balance(0, wallet, wallet_pre),
                _token_balance(1, CUSTODY_OWNER, custody_pre),
            ],
            "postTokenBalances": [
                _token_balance(0, wallet, wallet_pre + wallet_delta),
                _token_balance(1, CUSTODY_OWNER, custody_pre + custody_delta),
            ],
        },
    }


class FakeChain:
    """In-memory custody account history served through the SolanaRPCClient interface."""

    def __init__(self) -> None:
        self.balance = Decimal(0)
        self.signature_calls: list[dict] = []
        self.transaction_calls: list[str] = []
        self._signatures: list[dict] = []  # oldest first
        self._transactions: dict[str, dict] = {}

    def add_tx(self, signature: str, tx_data: dict | None, block_time: int | None, err: dict | None = None) -> None:
        self._signatures.append({"signature": signature, "slot": len(self._signatures), "blockTime": block_time, "err": err})
        self._transactions[signature] = tx_data

    def deposit(self, wallet: str, amount: str, day: float, signature: str | None = None) -> str:
        return self._transfer(wallet, Decimal(amount), day, signature, deposit=True)

    def withdraw(self, wallet: str, amount: str, day: float, signature: str | None = None) -> str:
        return self._transfer(wallet, Decimal(amount), day, signature, deposit=False)

    def _transfer(self, wallet: str, amount: Decimal, day: float, signature: str | None, deposit: bool) -> str:
        signature = signature or f"sig{len(self._signatures) + 1:04d}"
        block_time = block_time_for(day)
        if deposit:
            tx = make_transfer_tx(signature, block_time, wallet, -amount, amount)
            self.balance += amount
        else:
            tx = make_transfer_tx(signature, block_time, wallet, amount, -amount)
            self.balance -= amount
        self.add_tx(signature, tx, block_time)
        return signature

    async def get_version(self) -> dict:
        return {"solana-core": "1.18.0"}

    async def get_token_accounts_by_owner(self, owner: str, mint: str) -> list[str]:
        return [CUSTODY_ACCOUNT] if owner == CUSTODY_OWNER and mint == MINT else []

    async def get_token_account_balance(self, account: str) -> Decimal:
        return self.balance

    async def get_signatures(self, address: str, before=None, until=None, limit: int = 1000) -> list[dict]:
        self.signature_calls.append({"before": before, "until": until, "limit": limit})
        newest_first = list(reversed(self._signatures))
        start = 0
        if before is not None:
            start = next(i for i, s in enumerate(newest_first) if s["signature"] == before) + 1
        page: list[dict] = []
        for info in newest_first[start:]:
            if info["signature"] == until or len(page) == limit:
                break
            page.append(dict(info))
        return page

    async def get_transaction(self, signature: str) -> dict | None:
        self.transaction_calls.append(signature)
        return self._transactions.get(signature)


def block_time_for(day: float) -> int:
    return int((DAY0 + timedelta(days=day)).timestamp())


@pytest.fixture()
def fake_chain() -> FakeChain:
    return FakeChain()


@pytest.fixture()
def transfer_tx():
    return make_transfer_tx

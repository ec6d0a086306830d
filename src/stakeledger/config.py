from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    db_host: str = "localhost"
    db_port: int = 54377
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_name: str = "stakeledger"
    redis_url: str = "redis://localhost:6379/0"
    solana_rpc_url: str = ""
    solana_api_key: str = ""
    rpc_rate_per_second: float = 5.0
    rpc_timeout_seconds: float = 60.0

    # Chain deployment being tracked
    staking_contract_address: str = "GpUmCRvdKF7EkiufUTCPDvPgy6Fi4GXtrLgLSwLCCyLd"
    token_mint_address: str = "31k88G5Mq7ptbRDf3AM13HAq6wRQHXHikR8hik7wPygk"
    lock_period_days: int = 90

    signature_page_size: int = 100
    signature_page_delay_seconds: float = 1.0
    tx_batch_size: int = 5
    tx_batch_delay_seconds: float = 1.0
    rpc_max_retries: int = 5
    rpc_retry_base_delay_seconds: float = 1.0
    rpc_retry_max_delay_seconds: float = 30.0

    # Counterparty matching tolerances, in token UI units
    deposit_match_tolerance: Decimal = Decimal("1")
    withdrawal_match_tolerance_min: Decimal = Decimal("1")
    withdrawal_match_tolerance_ratio: Decimal = Decimal("0.001")

    reconciliation_threshold_pct: Decimal = Decimal("1")
    snapshot_interval_minutes: int = 60
    debug: bool = False

    @property
    def database_url(self) -> str:
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    @property
    def full_rpc_url(self) -> str:
        """RPC URL with the API key appended, unless the URL already carries credentials."""
        url = self.solana_rpc_url
        if not url or not self.solana_api_key:
            return url
        if "api-key=" in url or "@" in url:
            return url
        separator = "&" if "?" in url else "?"
        return f"{url}{separator}api-key={self.solana_api_key}"

    class Config:
        env_file = ".env"


settings = Settings()

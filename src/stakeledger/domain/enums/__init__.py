from stakeledger.domain.enums.staking import TransferDirection

__all__ = [
    "TransferDirection",
]

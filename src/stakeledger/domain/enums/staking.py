from enum import Enum


class TransferDirection(str, Enum):
    """Direction of a token movement relative to the custody account."""

    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"

"""
Mock chain client for testing.

Simulates block production and fee data without network calls.
"""

from dexarb.core.types import FeeData


GWEI = 1_000_000_000


class MockChainClient:
    """
    Mock chain client for testing.

    Returns scripted block numbers and fee data with configurable failures.
    """

    def __init__(
        self,
        chain: str = "arbitrum",
        block_number: int = 1000,
        base_fee_gwei: float = 0.1,
        fail_blocks: bool = False,
        fail_fees: bool = False,
    ) -> None:
        """
        Initialize mock client.

        Args:
            chain: Chain name.
            block_number: First block number returned.
            base_fee_gwei: Base fee reported in fee data.
            fail_blocks: Whether block number calls should fail.
            fail_fees: Whether fee data calls should fail.
        """
        self.chain = chain
        self.block_number = block_number
        self.base_fee_gwei = base_fee_gwei
        self.fail_blocks = fail_blocks
        self.fail_fees = fail_fees
        self.block_calls = 0
        self.fee_calls = 0
        self.closed = False

    async def get_block_number(self) -> int:
        """Mock block number. Advances one block per call."""
        self.block_calls += 1
        if self.fail_blocks:
            raise ConnectionError(f"{self.chain} node unreachable")
        number = self.block_number
        self.block_number += 1
        return number

    async def get_fee_data(self) -> FeeData:
        """Mock EIP-1559 fee data with a 1 gwei priority fee."""
        self.fee_calls += 1
        if self.fail_fees:
            raise ConnectionError(f"{self.chain} fee lookup failed")
        base_fee = int(self.base_fee_gwei * GWEI)
        return FeeData(
            gas_price=base_fee + GWEI,
            max_priority_fee_per_gas=GWEI,
            max_fee_per_gas=2 * base_fee + GWEI,
        )

    async def close(self) -> None:
        self.closed = True

"""
Capabilities the staking pool needs from its two asset contracts.

The pool never inspects token internals: it pulls stake in, pushes stake
out, and mints rewards. Any object with these methods can back a pool.
A call fails either by raising ContractRevert or by returning False.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class StakeAsset(Protocol):
    """Transferable stake token held in custody by the pool."""

    def transfer_in(self, pool: str, sender: str, amount: int) -> bool:
        """Pull ``amount`` from ``sender`` into ``pool`` (requires prior approval)."""
        ...

    def transfer_out(self, pool: str, recipient: str, amount: int) -> bool:
        """Push ``amount`` from ``pool`` custody to ``recipient``."""
        ...

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """Mint new stake tokens; only used on the bootstrap path."""
        ...

    def transfer_ownership(self, caller: str, new_owner: str) -> bool:
        ...


@runtime_checkable
class RewardAsset(Protocol):
    """Mintable reward token; the pool must be its owner."""

    def mint(self, minter: str, to: str, amount: int) -> bool:
        ...

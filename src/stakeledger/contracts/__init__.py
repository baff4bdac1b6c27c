"""
Asset contracts backing a staking pool.

The pool depends only on the StakeAsset / RewardAsset protocols; ERC20Token
is the in-memory implementation used for bootstrap and tests.
"""

from .erc20 import ERC20Token, TokenEvent
from .interfaces import RewardAsset, StakeAsset

__all__ = [
    "ERC20Token",
    "TokenEvent",
    "StakeAsset",
    "RewardAsset",
]

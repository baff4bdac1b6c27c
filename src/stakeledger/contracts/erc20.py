"""
In-memory ERC20 token used as the pool's stake and reward assets.

Provides the subset of EIP-20 the ledger relies on:
- transfer, approve, transferFrom
- owner-only minting with an optional supply cap
- pausing and ownership transfer
- Transfer/Approval event log

The ``transfer_in`` / ``transfer_out`` adapters satisfy the StakeAsset
protocol by routing through ``transfer_from`` and ``transfer``.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field

from ..core.config import UINT256_MAX, ZERO_ADDRESS
from ..core.exceptions import ContractRevert
from ..core.fixed_point import FixedPointMath

logger = logging.getLogger(__name__)


@dataclass
class TokenEvent:
    """Represents an ERC20 event."""

    event_type: str  # "Transfer" or "Approval"
    from_address: str
    to_address: str
    value: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class ERC20Token:
    """
    Minimal ERC20 token with owner-gated minting.

    Balances and allowances live in plain dicts keyed by lowercase address.
    Every failing call raises ContractRevert before touching state.
    """

    name: str
    symbol: str
    decimals: int = 18
    total_supply: int = 0

    address: str = ""
    owner: str = ""

    balances: dict[str, int] = field(default_factory=dict)
    allowances: dict[str, dict[str, int]] = field(default_factory=dict)
    events: list[TokenEvent] = field(default_factory=list)

    # Supply cap (0 = unlimited)
    max_supply: int = 0
    paused: bool = False

    def __post_init__(self) -> None:
        if not self.address:
            addr_hash = hashlib.sha3_256(
                f"{self.name}{self.symbol}{time.time()}".encode()
            ).digest()
            self.address = f"0x{addr_hash[-20:].hex()}"
        self.owner = self._normalize(self.owner)

    # ==================== View Functions ====================

    def balance_of(self, account: str) -> int:
        return self.balances.get(self._normalize(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        owner_norm = self._normalize(owner)
        spender_norm = self._normalize(spender)
        return self.allowances.get(owner_norm, {}).get(spender_norm, 0)

    # ==================== State-Changing Functions ====================

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """
        Transfer tokens from sender to recipient.

        Raises:
            ContractRevert: If paused, recipient is zero, or balance is short
        """
        self._require_not_paused()
        sender_norm = self._normalize(sender)
        recipient_norm = self._normalize(recipient)

        self._validate_address(recipient_norm, "recipient")
        self._validate_amount(amount)

        sender_balance = self.balances.get(sender_norm, 0)
        if sender_balance < amount:
            raise ContractRevert(
                f"ERC20: transfer amount exceeds balance ({amount} > {sender_balance})",
                reason="insufficient_balance",
            )

        self.balances[sender_norm] = sender_balance - amount
        self.balances[recipient_norm] = self.balances.get(recipient_norm, 0) + amount
        self._emit("Transfer", sender_norm, recipient_norm, amount)

        logger.debug(
            "ERC20 transfer",
            extra={
                "event": "erc20.transfer",
                "token": self.symbol,
                "from": sender_norm[:10],
                "to": recipient_norm[:10],
                "amount": amount,
            }
        )
        return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        self._require_not_paused()
        owner_norm = self._normalize(owner)
        spender_norm = self._normalize(spender)

        self._validate_address(spender_norm, "spender")
        self._validate_amount(amount)

        self.allowances.setdefault(owner_norm, {})[spender_norm] = amount
        self._emit("Approval", owner_norm, spender_norm, amount)
        return True

    def transfer_from(
        self, spender: str, from_addr: str, to_addr: str, amount: int
    ) -> bool:
        """
        Transfer tokens using an allowance.

        Raises:
            ContractRevert: If allowance or balance is insufficient
        """
        self._require_not_paused()
        spender_norm = self._normalize(spender)
        from_norm = self._normalize(from_addr)
        to_norm = self._normalize(to_addr)

        self._validate_address(to_norm, "recipient")
        self._validate_amount(amount)

        current_allowance = self.allowance(from_norm, spender_norm)
        if current_allowance < amount:
            raise ContractRevert(
                f"ERC20: insufficient allowance ({current_allowance} < {amount})",
                reason="insufficient_allowance",
            )

        from_balance = self.balances.get(from_norm, 0)
        if from_balance < amount:
            raise ContractRevert(
                f"ERC20: transfer amount exceeds balance ({amount} > {from_balance})",
                reason="insufficient_balance",
            )

        # Unlimited approvals are never decremented
        if current_allowance != UINT256_MAX:
            self.allowances[from_norm][spender_norm] = current_allowance - amount

        self.balances[from_norm] = from_balance - amount
        self.balances[to_norm] = self.balances.get(to_norm, 0) + amount
        self._emit("Transfer", from_norm, to_norm, amount)
        return True

    # ==================== Stake Asset Adapters ====================

    def transfer_in(self, pool: str, sender: str, amount: int) -> bool:
        return self.transfer_from(pool, sender, pool, amount)

    def transfer_out(self, pool: str, recipient: str, amount: int) -> bool:
        return self.transfer(pool, recipient, amount)

    # ==================== Minting ====================

    def mint(self, minter: str, to: str, amount: int) -> bool:
        """
        Mint new tokens (owner only).

        Raises:
            ContractRevert: If caller is not owner or the cap would be exceeded
        """
        self._require_not_paused()
        self._require_owner(minter)

        to_norm = self._normalize(to)
        self._validate_address(to_norm, "recipient")
        self._validate_amount(amount)

        if self.max_supply > 0 and self.total_supply + amount > self.max_supply:
            raise ContractRevert(
                f"ERC20: mint would exceed max supply "
                f"({self.total_supply + amount} > {self.max_supply})",
                reason="max_supply",
            )

        self.total_supply += amount
        self.balances[to_norm] = self.balances.get(to_norm, 0) + amount
        self._emit("Transfer", ZERO_ADDRESS, to_norm, amount)

        logger.info(
            "ERC20 mint",
            extra={
                "event": "erc20.mint",
                "token": self.symbol,
                "to": to_norm[:10],
                "amount": amount,
                "new_supply": self.total_supply,
            }
        )
        return True

    # ==================== Admin Functions ====================

    def pause(self, caller: str) -> bool:
        self._require_owner(caller)
        self.paused = True
        return True

    def unpause(self, caller: str) -> bool:
        self._require_owner(caller)
        self.paused = False
        return True

    def transfer_ownership(self, caller: str, new_owner: str) -> bool:
        self._require_owner(caller)
        new_owner_norm = self._normalize(new_owner)
        self._validate_address(new_owner_norm, "new owner")
        self.owner = new_owner_norm
        return True

    # ==================== Helpers ====================

    def _normalize(self, address: str) -> str:
        return address.lower()

    def _validate_address(self, address: str, label: str) -> None:
        if not address or address == ZERO_ADDRESS:
            raise ContractRevert(f"ERC20: {label} is zero address", reason="zero_address")

    def _validate_amount(self, amount: int) -> None:
        if not FixedPointMath.is_integer(amount) or amount < 0:
            raise ContractRevert("ERC20: amount must be a non-negative integer", reason="amount")
        if amount > UINT256_MAX:
            raise ContractRevert("ERC20: amount exceeds uint256", reason="amount")

    def _require_owner(self, caller: str) -> None:
        if self._normalize(caller) != self.owner:
            raise ContractRevert("ERC20: caller is not owner", reason="not_owner")

    def _require_not_paused(self) -> None:
        if self.paused:
            raise ContractRevert("ERC20: token is paused", reason="paused")

    def _emit(self, event_type: str, from_addr: str, to_addr: str, amount: int) -> None:
        self.events.append(TokenEvent(event_type, from_addr, to_addr, amount))


from abc import ABC, abstractmethod
from typing import Dict, Optional
import logging
import uuid
from debit_gate.core.errors import (
    AccountNotFound, InsufficientAllowance, InsufficientFunds, MintMismatch, TransferError, Unauthorized,
)
from debit_gate.schemas.accounts import TokenAccount
from debit_gate.schemas.records import U64_MAX

logger = logging.getLogger(__name__)


class ValueTransfer(ABC):
    """The value-movement primitive the orchestrator delegates to. Holds the balances."""

    @abstractmethod
    def asset_of(self, account_id: str) -> str:
        pass

    @abstractmethod
    def move(self, asset: str, amount: int, source: str, destination: str, authorized_by: str):
        pass


class InMemoryLedger(ValueTransfer):
    """
    Token accounts with an owner, a balance and at most one approved delegate.

    A move must be authorized by the source owner or by its delegate, in which
    case the delegated allowance is drawn down by the amount moved.
    """

    def __init__(self):
        self._accounts: Dict[str, TokenAccount] = {}

    def open_account(self, asset: str, owner: str, account_id: Optional[str] = None) -> TokenAccount:
        account_id = account_id or uuid.uuid4().hex
        if account_id in self._accounts:
            raise TransferError(f"Account {account_id} already exists")
        account = TokenAccount(account_id=account_id, asset=asset, owner=owner)
        self._accounts[account_id] = account
        logger.info(f"Opened {asset} account {account_id} for {owner}")
        return account.model_copy()

    def _get(self, account_id: str) -> TokenAccount:
        account = self._accounts.get(account_id)
        if account is None:
            raise AccountNotFound(f"Account {account_id} not found")
        return account

    def get_account(self, account_id: str) -> TokenAccount:
        return self._get(account_id).model_copy()

    def asset_of(self, account_id: str) -> str:
        return self._get(account_id).asset

    def deposit(self, account_id: str, amount: int) -> TokenAccount:
        account = self._get(account_id)
        if account.balance + amount > U64_MAX:
            raise TransferError("Deposit would overflow the account balance")
        account.balance += amount
        return account.model_copy()

    def approve(self, account_id: str, owner: str, delegate: str, amount: int) -> TokenAccount:
        account = self._get(account_id)
        if account.owner != owner:
            raise Unauthorized(f"Only the owner of {account_id} can approve a delegate")
        account.delegate = delegate
        account.delegated_amount = amount
        logger.info(f"Account {account_id} approved delegate {delegate} for {amount}")
        return account.model_copy()

    def move(self, asset: str, amount: int, source: str, destination: str, authorized_by: str):
        src = self._get(source)
        dst = self._get(destination)
        if src.asset != asset or dst.asset != asset:
            raise MintMismatch(f"Transfer of {asset} between {src.asset} and {dst.asset} accounts")

        if authorized_by != src.owner:
            if authorized_by != src.delegate or src.delegated_amount < amount:
                raise InsufficientAllowance(f"{authorized_by} is not approved to move {amount} from {source}")
        if src.balance < amount:
            raise InsufficientFunds(f"Account {source} holds {src.balance}, needs {amount}")
        if dst.balance + amount > U64_MAX:
            raise TransferError("Transfer would overflow the destination balance")

        if authorized_by != src.owner:
            src.delegated_amount -= amount
        src.balance -= amount
        dst.balance += amount
        logger.info(f"Moved {amount} {asset} from {source} to {destination}")

    def snapshot(self) -> Dict[str, TokenAccount]:
        return {k: v.model_copy() for k, v in self._accounts.items()}

    def restore(self, snapshot: Dict[str, TokenAccount]):
        self._accounts = snapshot

    def clear(self):
        self._accounts.clear()

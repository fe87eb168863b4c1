import logging
from decimal import Decimal, Inexact, InvalidOperation, localcontext
from typing import Dict, Iterator, Optional, Tuple

from models import LEDGER_CONTEXT, ClientAccount, InvariantViolation

logger = logging.getLogger(__name__)


class LedgerStore:
    """
    In-memory account state keyed by client id.
    Single owner: the processor that holds it is the only writer, so no locking.
    Accounts are kept in first-seen order and never removed.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}

    def __len__(self) -> int:
        return len(self._accounts)

    def __contains__(self, client_id: int) -> bool:
        return client_id in self._accounts

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create a zeroed, unlocked one."""
        if client_id not in self._accounts:
            logger.debug(f"Creating account for client {client_id}")
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def get_account(self, client_id: int) -> Optional[ClientAccount]:
        """Retrieve account without creating it."""
        return self._accounts.get(client_id)

    def apply_delta(self, client_id: int, available_delta: Decimal, held_delta: Decimal) -> ClientAccount:
        """
        Adjust available and held funds by signed deltas.

        Raises:
            InvariantViolation: if either balance would become negative or
                could not be represented exactly.
                The account is left untouched in that case.
        """
        account = self.get_or_create_account(client_id)
        try:
            with localcontext(LEDGER_CONTEXT):
                available = account.available + available_delta
                held = account.held + held_delta
        except (Inexact, InvalidOperation) as e:
            raise InvariantViolation(
                f"Client {client_id}: delta (available={available_delta}, held={held_delta}) "
                f"cannot be applied exactly"
            ) from e

        if available < 0 or held < 0:
            raise InvariantViolation(
                f"Client {client_id}: delta (available={available_delta}, held={held_delta}) "
                f"would leave available={available}, held={held}"
            )

        account.available = available
        account.held = held
        return account

    def lock_account(self, client_id: int) -> None:
        """Lock an account. Idempotent."""
        self.get_or_create_account(client_id).locked = True

    def snapshot(self) -> Iterator[Tuple[int, ClientAccount]]:
        """Yield (client_id, account) pairs in first-seen order."""
        for client_id, account in self._accounts.items():
            yield client_id, account

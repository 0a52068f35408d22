"""Query methods for the payment vault and transaction ledger."""

from ordering.domain import ordering
from ordering.payment.transaction import Transaction, TransactionStatus
from ordering.payment.vault import PaymentVault


@ordering.repository(part_of=PaymentVault)
class PaymentVaultRepository:
    def for_owner(self, owner_id) -> PaymentVault | None:
        vaults = self._dao.query.filter(owner_id=str(owner_id)).all().items
        return vaults[0] if vaults else None


@ordering.repository(part_of=Transaction)
class TransactionRepository:
    def for_order(self, order_id) -> list[Transaction]:
        """The order's ledger in the order entries were created."""
        transactions = self._dao.query.filter(order_id=str(order_id)).limit(None).all().items
        return sorted(transactions, key=lambda t: t.created_at)

    def for_user(self, user_id) -> list[Transaction]:
        """A user's payment history, newest first."""
        transactions = self._dao.query.filter(user_id=str(user_id)).limit(None).all().items
        return sorted(transactions, key=lambda t: t.created_at, reverse=True)

    def settlement_for(self, order_id) -> Transaction | None:
        return next((t for t in self.for_order(order_id) if t.is_settlement()), None)

    def by_idempotency_key(self, order_id, key) -> Transaction | None:
        """A prior attempt for this order under ``key`` that did not fail."""
        return next(
            (
                t
                for t in self.for_order(order_id)
                if t.idempotency_key == key and t.status != TransactionStatus.FAILED.value
            ),
            None,
        )

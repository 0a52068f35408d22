"""PaymentVault aggregate: a user's tokenized payment methods.

All of a user's methods live in one aggregate so that switching the default
is a single atomic change: there is never a moment with two defaults, or
with none while active methods exist.
"""

from datetime import UTC, date, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String

from ordering.domain import ordering
from ordering.payment.events import (
    DefaultPaymentMethodChanged,
    PaymentMethodAdded,
    PaymentMethodRemoved,
)


class PaymentMethodType(Enum):
    CREDIT_CARD = "CREDIT_CARD"
    DEBIT_CARD = "DEBIT_CARD"
    PAYPAL = "PAYPAL"
    VENMO = "VENMO"
    CAMPUS_CARD = "CAMPUS_CARD"


@ordering.entity(part_of="PaymentVault")
class PaymentMethod:
    """A payment instrument, stored only as an opaque gateway token.

    Card number and CVV never reach this system; the last four digits and
    brand are kept for display.
    """

    method_type = String(required=True, choices=PaymentMethodType)
    token = String(required=True, max_length=255)
    last_four = String(max_length=4)
    card_brand = String(max_length=50)
    expiry_month = Integer(min_value=1, max_value=12)
    expiry_year = Integer()
    billing_address_id = Identifier()
    is_default = Boolean(default=False)
    is_active = Boolean(default=True)
    created_at = DateTime()

    def is_expired(self, today: date | None = None) -> bool:
        """Expired once the expiry month has passed. Methods without expiry never expire."""
        if self.expiry_month is None or self.expiry_year is None:
            return False
        today = today or datetime.now(UTC).date()
        return self.expiry_year < today.year or (self.expiry_year == today.year and self.expiry_month < today.month)


@ordering.aggregate
class PaymentVault:
    owner_id = Identifier(required=True, unique=True)
    methods = HasMany(PaymentMethod)
    created_at = DateTime()

    @invariant.post
    def at_most_one_active_default(self):
        defaults = [m for m in self.methods if m.is_active and m.is_default]
        if len(defaults) > 1:
            raise ValidationError({"methods": ["Only one payment method can be the default"]})

    @invariant.post
    def removed_methods_are_never_default(self):
        if any(m.is_default and not m.is_active for m in self.methods):
            raise ValidationError({"methods": ["A removed payment method cannot be the default"]})

    @classmethod
    def create(cls, owner_id):
        return cls(owner_id=owner_id, created_at=datetime.now(UTC))

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def active_methods(self) -> list[PaymentMethod]:
        """Active methods, default first, then most recently added."""
        active = [m for m in self.methods if m.is_active]
        newest_first = sorted(active, key=lambda m: m.created_at, reverse=True)
        return sorted(newest_first, key=lambda m: not m.is_default)

    def default_method(self) -> PaymentMethod | None:
        return next((m for m in self.methods if m.is_active and m.is_default), None)

    def active_method(self, method_id) -> PaymentMethod:
        method = next(
            (m for m in self.methods if str(m.id) == str(method_id) and m.is_active),
            None,
        )
        if method is None:
            raise ObjectNotFoundError({"_entity": f"Payment method {method_id} not found"})
        return method

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def add_method(
        self,
        method_type,
        token,
        last_four=None,
        card_brand=None,
        expiry_month=None,
        expiry_year=None,
        billing_address_id=None,
        make_default=False,
    ) -> PaymentMethod:
        if last_four is not None and (len(last_four) != 4 or not last_four.isdigit()):
            raise ValidationError({"last_four": ["Must be exactly four digits"]})

        # First active method is always the default
        is_default = make_default or self.default_method() is None

        with atomic_change(self):
            if is_default:
                for existing in self.methods:
                    if existing.is_default:
                        existing.is_default = False
            method = PaymentMethod(
                method_type=method_type,
                token=token,
                last_four=last_four,
                card_brand=card_brand,
                expiry_month=expiry_month,
                expiry_year=expiry_year,
                billing_address_id=billing_address_id,
                is_default=is_default,
                created_at=datetime.now(UTC),
            )
            self.add_methods(method)

        self.raise_(
            PaymentMethodAdded(
                vault_id=str(self.id),
                owner_id=str(self.owner_id),
                payment_method_id=str(method.id),
                method_type=method.method_type,
                last_four=last_four,
                is_default=is_default,
            )
        )
        return method

    def set_default(self, method_id):
        method = self.active_method(method_id)
        previous = self.default_method()

        with atomic_change(self):
            for existing in self.methods:
                if existing.is_default:
                    existing.is_default = False
            method.is_default = True

        self.raise_(
            DefaultPaymentMethodChanged(
                vault_id=str(self.id),
                owner_id=str(self.owner_id),
                payment_method_id=str(method.id),
                previous_default_id=str(previous.id) if previous else None,
            )
        )

    def remove_method(self, method_id):
        """Soft-delete a method. Transactions keep pointing at it."""
        method = self.active_method(method_id)
        was_default = method.is_default

        promoted = None
        with atomic_change(self):
            method.is_active = False
            method.is_default = False
            if was_default:
                remaining = self.active_methods()
                if remaining:
                    promoted = remaining[0]
                    promoted.is_default = True

        self.raise_(
            PaymentMethodRemoved(
                vault_id=str(self.id),
                owner_id=str(self.owner_id),
                payment_method_id=str(method.id),
                promoted_default_id=str(promoted.id) if promoted else None,
            )
        )

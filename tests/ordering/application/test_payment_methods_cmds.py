"""Application tests for payment method commands."""

import pytest
from ordering.payment.methods import AddPaymentMethod, RemovePaymentMethod, SetDefaultPaymentMethod
from ordering.payment.vault import PaymentVault
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


def _add(owner_id="buyer-001", last_four="4242", **kwargs):
    return current_domain.process(
        AddPaymentMethod(
            owner_id=owner_id,
            method_type="CREDIT_CARD",
            token=f"tok_{last_four}",
            last_four=last_four,
            card_brand="VISA",
            expiry_month=12,
            expiry_year=2099,
            **kwargs,
        ),
        asynchronous=False,
    )


def _vault(owner_id="buyer-001"):
    return current_domain.repository_for(PaymentVault).for_owner(owner_id)


class TestAddPaymentMethod:
    def test_first_method_creates_vault(self):
        method_id = _add()

        vault = _vault()
        assert vault is not None
        method = vault.active_method(method_id)
        assert method.is_default is True
        assert method.token == "tok_4242"

    def test_methods_share_one_vault(self):
        _add(last_four="4242")
        _add(last_four="1111")
        assert len(_vault().active_methods()) == 2

    def test_vaults_are_per_owner(self):
        _add(owner_id="buyer-001")
        _add(owner_id="buyer-002", last_four="1111")
        assert _vault("buyer-001").id != _vault("buyer-002").id

    def test_invalid_method_type(self):
        with pytest.raises(ValidationError):
            AddPaymentMethod(owner_id="buyer-001", method_type="BITCOIN", token="tok")


class TestSetDefault:
    def test_set_default_persists(self):
        first = _add(last_four="4242")
        second = _add(last_four="1111")

        current_domain.process(
            SetDefaultPaymentMethod(owner_id="buyer-001", payment_method_id=second),
            asynchronous=False,
        )

        vault = _vault()
        assert vault.default_method().id == second
        assert vault.active_method(first).is_default is False

    def test_other_users_method_not_found(self):
        _add(owner_id="buyer-001")
        foreign = _add(owner_id="buyer-002", last_four="1111")

        with pytest.raises(ObjectNotFoundError):
            current_domain.process(
                SetDefaultPaymentMethod(owner_id="buyer-001", payment_method_id=foreign),
                asynchronous=False,
            )

    def test_without_vault(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(
                SetDefaultPaymentMethod(owner_id="buyer-404", payment_method_id="pm-1"),
                asynchronous=False,
            )


class TestRemovePaymentMethod:
    def test_remove_default_promotes_other(self):
        first = _add(last_four="4242")
        second = _add(last_four="1111")

        current_domain.process(
            RemovePaymentMethod(owner_id="buyer-001", payment_method_id=first),
            asynchronous=False,
        )

        vault = _vault()
        assert [m.id for m in vault.active_methods()] == [second]
        assert vault.default_method().id == second

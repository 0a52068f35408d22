"""Payment method management: commands and handler."""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.payment.vault import PaymentMethodType, PaymentVault


@ordering.command(part_of="PaymentVault")
class AddPaymentMethod:
    owner_id = Identifier(required=True)
    method_type = String(required=True, choices=PaymentMethodType)
    token = String(required=True, max_length=255)
    last_four = String(max_length=4)
    card_brand = String(max_length=50)
    expiry_month = Integer(min_value=1, max_value=12)
    expiry_year = Integer()
    billing_address_id = Identifier()
    make_default = Boolean(default=False)


@ordering.command(part_of="PaymentVault")
class SetDefaultPaymentMethod:
    owner_id = Identifier(required=True)
    payment_method_id = Identifier(required=True)


@ordering.command(part_of="PaymentVault")
class RemovePaymentMethod:
    owner_id = Identifier(required=True)
    payment_method_id = Identifier(required=True)


def vault_of(repo, owner_id) -> PaymentVault:
    vault = repo.for_owner(owner_id)
    if vault is None:
        raise ObjectNotFoundError({"_entity": f"No payment methods on file for user {owner_id}"})
    return vault


@ordering.command_handler(part_of=PaymentVault)
class ManagePaymentMethodsHandler:
    @handle(AddPaymentMethod)
    def add_payment_method(self, command):
        repo = current_domain.repository_for(PaymentVault)
        vault = repo.for_owner(command.owner_id) or PaymentVault.create(owner_id=command.owner_id)
        method = vault.add_method(
            method_type=command.method_type,
            token=command.token,
            last_four=command.last_four,
            card_brand=command.card_brand,
            expiry_month=command.expiry_month,
            expiry_year=command.expiry_year,
            billing_address_id=command.billing_address_id,
            make_default=command.make_default,
        )
        repo.add(vault)
        return str(method.id)

    @handle(SetDefaultPaymentMethod)
    def set_default_payment_method(self, command):
        repo = current_domain.repository_for(PaymentVault)
        vault = vault_of(repo, command.owner_id)
        vault.set_default(command.payment_method_id)
        repo.add(vault)

    @handle(RemovePaymentMethod)
    def remove_payment_method(self, command):
        repo = current_domain.repository_for(PaymentVault)
        vault = vault_of(repo, command.owner_id)
        vault.remove_method(command.payment_method_id)
        repo.add(vault)

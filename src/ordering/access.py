"""Who may do what to an order.

Roles come from the identity collaborator with the authenticated principal.
Order-level checks compare the principal against the order's buyer and the
sellers of its lines.
"""

from enum import Enum

from ordering.errors import Unauthorized


class Role(Enum):
    STUDENT = "STUDENT"
    ADMIN = "ADMIN"


def is_admin(role) -> bool:
    return role == Role.ADMIN.value or role == Role.ADMIN


def is_buyer(order, user_id) -> bool:
    return str(order.buyer_id) == str(user_id)


def ensure_buyer(order, user_id, action: str = "access this order") -> None:
    if not is_buyer(order, user_id):
        raise Unauthorized(f"Only the buyer can {action}")


def ensure_seller(order, user_id, action: str) -> None:
    if not order.is_seller(user_id):
        raise Unauthorized(f"Only a seller in this order can {action}")


def ensure_admin(role, action: str) -> None:
    if not is_admin(role):
        raise Unauthorized(f"Only an administrator can {action}")


def ensure_can_view(order, user_id, role) -> None:
    """Buyer, any seller of a line, or an administrator may read an order."""
    if is_admin(role) or is_buyer(order, user_id) or order.is_seller(user_id):
        return
    raise Unauthorized("You are not allowed to view this order")

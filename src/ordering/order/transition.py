"""Order status transitions — command and handler.

Commands are processed one writer at a time, so two transitions of the
same order never interleave. A cancellation that has to put stock back
does so in the same unit of work as the status write, so either both
happen or neither does.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from inventory.stock.ledger import merge_lines, restore_for_order
from ordering.order.order import Order, OrderStatus
from shared.domain import shopcore

logger = structlog.get_logger(__name__)


@shopcore.command(part_of="Order")
class TransitionOrder:
    order_id = Identifier(required=True)
    target_status = String(required=True, max_length=30)
    tracking_number = String(max_length=255)
    courier_name = String(max_length=255)


def parse_status(value) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(
            {"order_status": [f"Status must be one of: {', '.join(s.value for s in OrderStatus)}"]}
        ) from None


def load_order(order_id) -> Order:
    try:
        return current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError:
        raise ObjectNotFoundError(f"Order {order_id} does not exist") from None


def apply_transition(order: Order, target: OrderStatus, tracking_number=None, courier_name=None) -> bool:
    """Run one transition inside the caller's unit of work.

    Returns False when the order is already in ``target``. The caller
    persists the order.
    """
    if order.status == target:
        logger.debug("Order already in requested status", order_id=str(order.id), status=target.value)
        return False

    order.assert_can_transition(target, tracking_number, courier_name)

    if target == OrderStatus.CANCELLED and order.stock_decremented:
        restore_for_order(merge_lines(order.items), order_id=str(order.id))
        order.stock_decremented = False

    previous = order.transition_to(target, tracking_number, courier_name)

    logger.info(
        "Order status changed",
        order_id=str(order.id),
        order_number=order.order_number,
        from_status=previous.value,
        to_status=target.value,
    )
    return True


@shopcore.command_handler(part_of=Order)
class OrderTransitionHandler:
    @handle(TransitionOrder)
    def transition_order(self, command):
        target = parse_status(command.target_status)
        order = load_order(command.order_id)
        if apply_transition(order, target, command.tracking_number, command.courier_name):
            current_domain.repository_for(Order).add(order)
        return str(order.id)

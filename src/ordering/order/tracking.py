"""Order lookups for staff screens and customer tracking."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from ordering.order.order import Order
from ordering.order.transition import load_order, parse_status


def get_order(order_id) -> Order:
    return load_order(order_id)


def list_orders(
    status: str | None = None,
    customer_id: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Order]:
    """Newest orders first, optionally filtered by status or customer."""
    filters = {}
    if status is not None:
        filters["order_status"] = parse_status(status).value
    if customer_id is not None:
        filters["customer_id"] = str(customer_id)

    query = current_domain.repository_for(Order)._dao.query
    orders = (query.filter(**filters) if filters else query).all().items
    orders = sorted(orders, key=lambda o: (o.created_at, str(o.id)), reverse=True)
    return orders[offset : offset + limit]


def track_order(identifier: str) -> Order:
    """Find an order by id, tracking number or order number."""
    identifier = (identifier or "").strip()
    repo = current_domain.repository_for(Order)
    try:
        return repo.get(identifier)
    except ObjectNotFoundError:
        pass

    for filters in ({"tracking_number": identifier}, {"order_number": identifier.upper()}):
        matches = repo._dao.query.filter(**filters).all().items
        if matches:
            return min(matches, key=lambda o: o.created_at)
    raise ObjectNotFoundError(f"Order {identifier} does not exist")

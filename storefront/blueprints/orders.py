"""Orders blueprint: order placement and cancellation."""
from flask import Blueprint, current_app, jsonify, request

from storefront.blueprints.metrics import orders_cancelled_total, orders_created_total, orders_rejected_total
from storefront.database import get_session
from storefront.exceptions import InsufficientStockError, ValidationFailureError
from storefront.models import OrderStatus
from storefront.schemas import CreateOrderRequest, UpdateOrderRequest, parse_payload
from storefront.services.order_service import OrderWorkflow
from storefront.store import SqlStore
from storefront.utils.formatters import serialize

orders_bp = Blueprint('orders', __name__)


def _workflow() -> OrderWorkflow:
    return OrderWorkflow(
        SqlStore(get_session()),
        lock_inventory=current_app.config.get('INVENTORY_ROW_LOCKING', False),
    )


def _int_arg(name):
    value = request.args.get(name)
    if value is None:
        return None
    try:
        number = int(value)
    except ValueError:
        raise ValidationFailureError(f"'{name}' must be an integer") from None
    if number < 0:
        raise ValidationFailureError(f"'{name}' must not be negative")
    return number


@orders_bp.route('/orders', methods=['GET'])
def list_orders():
    """All store orders, newest first. Optional ``limit`` and ``skip`` query args."""
    orders = _workflow().list_orders(limit=_int_arg('limit'), skip=_int_arg('skip'))
    return jsonify(serialize(orders))


@orders_bp.route('/order/<order_id>', methods=['GET'])
def get_order(order_id):
    return jsonify(serialize(_workflow().get_order(order_id)))


@orders_bp.route('/order', methods=['POST'])
def create_order():
    """Place an order. 406 if the products cannot be fulfilled."""
    payload = parse_payload(CreateOrderRequest, request.get_json(silent=True))

    try:
        order = _workflow().create_order(payload)
    except InsufficientStockError:
        orders_rejected_total.inc()
        raise

    orders_created_total.inc()
    return jsonify(serialize(order)), 201


@orders_bp.route('/order', methods=['PUT'])
def update_order():
    """Update order status (only cancellation of a new order is supported)."""
    payload = parse_payload(UpdateOrderRequest, request.get_json(silent=True))
    order = _workflow().update_order(payload)

    if order['order_status'] is OrderStatus.CANCELLED:
        orders_cancelled_total.inc()
    return jsonify(serialize(order))

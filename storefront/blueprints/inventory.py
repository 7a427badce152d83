"""Inventory blueprint: product catalog and available quantities."""
from flask import Blueprint, jsonify, request

from storefront.database import get_session
from storefront.schemas import ProductRequest, UpdateProductRequest, parse_payload
from storefront.services.inventory_service import InventoryLedger
from storefront.store import SqlStore
from storefront.utils.formatters import serialize

inventory_bp = Blueprint('inventory', __name__, url_prefix='/inventory')


def _ledger() -> InventoryLedger:
    return InventoryLedger(SqlStore(get_session()))


@inventory_bp.route('', methods=['GET'])
def list_inventory():
    """Inventories of all store products."""
    return jsonify(serialize(_ledger().list_products()))


@inventory_bp.route('/<product_id>', methods=['GET'])
def get_inventory(product_id):
    """Inventory of a product by ID (404 if unknown)."""
    return jsonify(serialize(_ledger().get_product(product_id)))


@inventory_bp.route('', methods=['POST'])
def create_inventory():
    """
    Create an inventory item with its opening shipment.

    Returns the inserted row read back from the database, so server-side
    values such as ``created`` are included.
    """
    payload = parse_payload(ProductRequest, request.get_json(silent=True))
    ledger = _ledger()

    result = ledger.create_product(payload)
    product = ledger.get_product(result['product']['product_id'])
    return jsonify(serialize(product)), 201


@inventory_bp.route('', methods=['PUT'])
def update_inventory():
    """Update product details by ID. ``qty`` in the payload is ignored."""
    payload = parse_payload(UpdateProductRequest, request.get_json(silent=True))
    return jsonify(serialize(_ledger().update_product(payload)))

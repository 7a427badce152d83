"""
Unit tests for the inventory ledger (product catalog + quantity recomputation).
"""

import pytest
from decimal import Decimal

from storefront.exceptions import InsertFailureError, NotFoundError
from storefront.models import Order, OrderLineItem, OrderStatus, Product, Shipment
from storefront.store import Eq


def _product_data(product_id=None, qty=10, **overrides):
    data = {
        'name': 'Widget',
        'description': 'A widget',
        'price': Decimal('4.25'),
        'qty': qty,
    }
    if product_id:
        data['product_id'] = product_id
    data.update(overrides)
    return data


class TestCreateProduct:
    """Tests for product creation with the opening shipment."""

    def test_qty_stored_and_shipment_recorded(self, ledger, store):
        result = ledger.create_product(_product_data('p1', qty=12))

        product = ledger.get_product('p1')
        shipments = store.find(Shipment, [Eq('product_id', 'p1')])

        assert product['qty'] == 12
        assert len(shipments) == 1
        assert shipments[0]['qty'] == 12
        assert result['shipment']['shipment_id'] == shipments[0]['shipment_id']
        assert result['product']['product_id'] == 'p1'

    def test_product_id_generated_when_absent(self, ledger):
        result = ledger.create_product(_product_data())

        product_id = result['product']['product_id']
        assert product_id
        assert ledger.get_product(product_id)['name'] == 'Widget'

    def test_product_and_ledger_start_consistent(self, ledger, ledger_qty):
        ledger.create_product(_product_data('p1', qty=7))
        ledger.recompute_quantity({'p1'})

        assert ledger.get_product('p1')['qty'] == ledger_qty('p1') == 7

    def test_duplicate_product_rejected_without_extra_shipment(self, ledger, store):
        ledger.create_product(_product_data('p1', qty=5))

        with pytest.raises(InsertFailureError):
            ledger.create_product(_product_data('p1', qty=50))

        assert ledger.get_product('p1')['qty'] == 5
        assert len(store.find(Shipment, [Eq('product_id', 'p1')])) == 1

    def test_shipment_failure_rolls_back_product(self, ledger, store, monkeypatch):
        """Creation is all-or-nothing: a failed shipment insert leaves no product."""
        insert_one = store.insert_one

        def insert_without_shipments(entity, row):
            if entity is Shipment:
                return 0
            return insert_one(entity, row)

        monkeypatch.setattr(store, 'insert_one', insert_without_shipments)

        with pytest.raises(InsertFailureError) as exc_info:
            ledger.create_product(_product_data('p1'))

        assert exc_info.value.entity == 'shipment'
        assert store.find(Product) == []

    def test_unknown_fields_are_ignored(self, ledger):
        ledger.create_product(_product_data('p1', color='red'))

        assert 'color' not in ledger.get_product('p1')


class TestReadProducts:

    def test_list_products(self, ledger):
        ledger.create_product(_product_data('p1'))
        ledger.create_product(_product_data('p2'))

        assert {p['product_id'] for p in ledger.list_products()} == {'p1', 'p2'}

    def test_list_products_empty(self, ledger):
        assert ledger.list_products() == []

    def test_get_missing_product(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.get_product('missing')


class TestUpdateProduct:
    """Tests for product detail updates."""

    def test_updates_details(self, ledger):
        ledger.create_product(_product_data('p1'))

        product = ledger.update_product(_product_data('p1', name='Gadget', price=Decimal('9.99')))

        assert product['name'] == 'Gadget'
        assert product['price'] == Decimal('9.99')

    def test_qty_is_not_writable(self, ledger):
        """Test that qty passed to an update is dropped."""
        ledger.create_product(_product_data('p1', qty=10))

        product = ledger.update_product(_product_data('p1', qty=999, name='Renamed'))

        assert product['name'] == 'Renamed'
        assert product['qty'] == 10

    def test_update_missing_product(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.update_product(_product_data('missing'))

    def test_update_with_only_qty_changes_nothing(self, ledger):
        ledger.create_product(_product_data('p1', qty=10))

        with pytest.raises(NotFoundError):
            ledger.update_product({'product_id': 'p1', 'qty': 1})

        assert ledger.get_product('p1')['qty'] == 10


class TestRecomputeQuantity:
    """Tests for qty = shipments - non-cancelled line items."""

    def _order(self, store, order_id, status, lines):
        store.insert_one(Order, {'order_id': order_id, 'email': 'x@y.z', 'order_status': status})
        store.insert_many(OrderLineItem, [
            {'order_id': order_id, 'product_id': product_id, 'qty': qty}
            for product_id, qty in lines
        ])

    def test_recompute_from_fact_tables(self, ledger, store, ledger_qty):
        ledger.create_product(_product_data('p1', qty=10))
        ledger.create_product(_product_data('p2', qty=4))
        store.insert_one(Shipment, {'shipment_id': 's-extra', 'product_id': 'p1', 'qty': 5})
        self._order(store, 'o1', OrderStatus.NEW, [('p1', 3), ('p2', 1)])
        self._order(store, 'o2', OrderStatus.CANCELLED, [('p1', 6)])
        self._order(store, 'o3', OrderStatus.NEW, [('p1', 2)])

        ledger.recompute_quantity(['p1', 'p2'])

        assert ledger.get_product('p1')['qty'] == 10 + 5 - 3 - 2
        assert ledger.get_product('p2')['qty'] == 3
        for product_id in ('p1', 'p2'):
            assert ledger.get_product(product_id)['qty'] == ledger_qty(product_id)

    def test_recompute_only_touches_given_products(self, ledger, store):
        ledger.create_product(_product_data('p1', qty=10))
        ledger.create_product(_product_data('p2', qty=10))
        self._order(store, 'o1', OrderStatus.NEW, [('p1', 4), ('p2', 4)])

        ledger.recompute_quantity({'p1'})

        assert ledger.get_product('p1')['qty'] == 6
        assert ledger.get_product('p2')['qty'] == 10

    def test_product_without_facts_goes_to_zero(self, ledger, store):
        store.insert_one(Product, {
            'product_id': 'bare', 'name': 'Bare', 'description': '', 'price': Decimal('1.00'), 'qty': 42
        })

        ledger.recompute_quantity(['bare'])

        assert ledger.get_product('bare')['qty'] == 0

    def test_empty_id_set_is_a_no_op(self, ledger):
        ledger.create_product(_product_data('p1', qty=3))

        ledger.recompute_quantity(set())

        assert ledger.get_product('p1')['qty'] == 3


class TestFlush:

    def test_flush_removes_everything(self, ledger, store):
        ledger.create_product(_product_data('p1'))
        store.insert_one(Order, {'order_id': 'o1', 'email': 'x@y.z', 'order_status': OrderStatus.NEW})
        store.insert_one(OrderLineItem, {'order_id': 'o1', 'product_id': 'p1', 'qty': 1})

        ledger.flush()

        for entity in (Product, Shipment, Order, OrderLineItem):
            assert store.find(entity) == []

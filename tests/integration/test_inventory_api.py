"""
Integration tests for the inventory endpoints.
"""


def _product_json(product_id='p1', qty=10, **overrides):
    data = {
        'product_id': product_id,
        'name': 'Widget',
        'description': 'A widget',
        'price': 4.25,
        'qty': qty,
    }
    data.update(overrides)
    return data


class TestCreateInventory:
    """POST /inventory"""

    def test_create_returns_stored_row(self, client):
        response = client.post('/inventory', json=_product_json(qty=12))

        assert response.status_code == 201
        body = response.get_json()
        assert body['product_id'] == 'p1'
        assert body['qty'] == 12
        assert body['price'] == 4.25
        assert body['created']

    def test_create_generates_product_id(self, client):
        data = _product_json()
        del data['product_id']

        response = client.post('/inventory', json=data)

        assert response.status_code == 201
        assert response.get_json()['product_id']

    def test_create_records_opening_shipment(self, client, store):
        from storefront.models import Shipment
        from storefront.store import Eq

        client.post('/inventory', json=_product_json(qty=6))

        shipments = store.find(Shipment, [Eq('product_id', 'p1')])
        assert [row['qty'] for row in shipments] == [6]

    def test_duplicate_product_is_not_acceptable(self, client):
        client.post('/inventory', json=_product_json())

        response = client.post('/inventory', json=_product_json())

        assert response.status_code == 406
        assert response.get_json()['status'] == 'error'

    def test_invalid_payload_lists_errors(self, client):
        response = client.post('/inventory', json={'name': '', 'price': -1})

        assert response.status_code == 422
        fields = {error['field'] for error in response.get_json()['errors']}
        assert {'name', 'price', 'description', 'qty'} <= fields

    def test_unknown_field_rejected(self, client):
        response = client.post('/inventory', json=_product_json(color='red'))

        assert response.status_code == 422

    def test_non_json_body_rejected(self, client):
        response = client.post('/inventory', data='not json', content_type='text/plain')

        assert response.status_code == 422


class TestReadInventory:
    """GET /inventory and GET /inventory/<id>"""

    def test_list(self, client, make_product):
        make_product(product_id='a')
        make_product(product_id='b')

        response = client.get('/inventory')

        assert response.status_code == 200
        assert {row['product_id'] for row in response.get_json()} == {'a', 'b'}

    def test_list_empty(self, client):
        assert client.get('/inventory').get_json() == []

    def test_get_one(self, client, make_product):
        make_product(product_id='a', qty=3)

        response = client.get('/inventory/a')

        assert response.status_code == 200
        assert response.get_json()['qty'] == 3

    def test_get_missing(self, client):
        response = client.get('/inventory/nope')

        assert response.status_code == 404
        assert response.get_json()['status'] == 'error'


class TestUpdateInventory:
    """PUT /inventory"""

    def test_update_details_keeps_qty(self, client, make_product):
        make_product(product_id='p1', qty=10)

        response = client.put('/inventory', json=_product_json(name='Gadget', qty=500))

        assert response.status_code == 200
        body = response.get_json()
        assert body['name'] == 'Gadget'
        assert body['qty'] == 10

    def test_update_missing_product(self, client):
        response = client.put('/inventory', json=_product_json(product_id='ghost'))

        assert response.status_code == 404

    def test_update_requires_product_id(self, client):
        data = _product_json()
        del data['product_id']

        response = client.put('/inventory', json=data)

        assert response.status_code == 422

"""
HTTP API tests.

Exercises authentication, role enforcement and the full
purchase -> session -> sale -> close flow through the Flask test client.
"""

from decimal import Decimal


def _setup_pizza(client, admin_headers):
    """Create Flour, a Pizza using 0.25 kg and a 10 kg purchase for 2000 cents."""
    response = client.post('/api/ingredients', json={'name': 'Flour', 'unit': 'kg'}, headers=admin_headers)
    assert response.status_code == 201, response.get_json()
    flour_id = response.get_json()['id']

    response = client.post('/api/products', json={
        'sku': 'PIZZA', 'name': 'Pizza', 'price_cents': 900,
    }, headers=admin_headers)
    assert response.status_code == 201, response.get_json()
    pizza_id = response.get_json()['id']

    response = client.put(f'/api/products/{pizza_id}/recipe', json={
        'items': [{'ingredient_id': flour_id, 'quantity': '0.25'}],
    }, headers=admin_headers)
    assert response.status_code == 200, response.get_json()

    response = client.post('/api/purchases', json={
        'items': [{'ingredient_id': flour_id, 'quantity': '10', 'total_cost_cents': 2000}],
    }, headers=admin_headers)
    assert response.status_code == 201, response.get_json()

    return flour_id, pizza_id


def _stock_of(client, headers, ingredient_id):
    rows = client.get('/api/stock/current', headers=headers).get_json()['items']
    return next(r for r in rows if r['ingredient_id'] == ingredient_id)


class TestAuthentication:

    def test_protected_route_requires_token(self, client, db_session):
        response = client.get('/api/stock/current')
        assert response.status_code == 401

    def test_invalid_token_rejected(self, client, db_session):
        response = client.get('/api/stock/current', headers={'Authorization': 'Bearer nope'})
        assert response.status_code == 401

    def test_login_failure(self, client, admin_user):
        response = client.post('/api/auth/login', json={'email': admin_user.email, 'password': 'WrongPass1!'})
        assert response.status_code == 401

    def test_me_and_logout(self, client, admin_headers):
        response = client.get('/api/auth/me', headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()['user']['email'] == 'admin@pos.test'

        assert client.post('/api/auth/logout', headers=admin_headers).status_code == 200
        assert client.get('/api/auth/me', headers=admin_headers).status_code == 401


class TestRoleEnforcement:

    def test_cashier_cannot_purchase(self, client, cashier_headers):
        response = client.post('/api/purchases', json={
            'items': [{'ingredient_id': 1, 'quantity': '1', 'total_cost_cents': 100}],
        }, headers=cashier_headers)
        assert response.status_code == 403

    def test_cashier_cannot_adjust_stock(self, client, cashier_headers, make_ingredient):
        flour = make_ingredient('Flour')
        response = client.post('/api/stock/adjust', json={
            'ingredient_id': flour.id, 'quantity': '2',
        }, headers=cashier_headers)
        assert response.status_code == 403

    def test_kitchen_can_adjust_stock(self, client, kitchen_headers, make_ingredient, purchase):
        flour = make_ingredient('Flour')
        purchase(flour, '5', 500)

        response = client.post('/api/stock/adjust', json={
            'ingredient_id': flour.id, 'quantity': '-1.5', 'note': 'spilled',
        }, headers=kitchen_headers)

        assert response.status_code == 201, response.get_json()
        adjustment = response.get_json()['adjustment']
        assert adjustment['kind'] == 'WASTAGE'
        assert adjustment['cost_cents'] == '150'

    def test_kitchen_cannot_sell(self, client, kitchen_headers):
        response = client.post('/api/sales', json={
            'payment_type': 'CASH', 'items': [{'product_id': 1, 'qty': 1}],
        }, headers=kitchen_headers)
        assert response.status_code == 403


class TestInventoryFlow:

    def test_purchase_session_sale_close(self, client, admin_headers, cashier_headers):
        flour_id, pizza_id = _setup_pizza(client, admin_headers)

        response = client.post('/api/sessions/open', json={'opening_float_cents': 10000}, headers=cashier_headers)
        assert response.status_code == 201, response.get_json()
        session_id = response.get_json()['session']['id']

        response = client.post('/api/sales', json={
            'session_id': session_id,
            'payment_type': 'CASH',
            'items': [{'product_id': pizza_id, 'qty': 2}],
        }, headers=cashier_headers)
        assert response.status_code == 201, response.get_json()
        sale = response.get_json()['sale']
        assert sale['total_cents'] == 1800
        assert sale['cogs_cents'] == 100
        assert sale['gross_margin_cents'] == 1700

        assert _stock_of(client, cashier_headers, flour_id)['quantity'] == '9.5'

        movements = client.get(
            f'/api/stock/movements?ingredient_id={flour_id}&kind=SALE_CONSUME', headers=cashier_headers
        ).get_json()['items']
        assert len(movements) == 1
        assert movements[0]['quantity'] == '-0.5'

        response = client.post(f'/api/sessions/{session_id}/close', json={
            'closing_float_cents': 11800,
        }, headers=cashier_headers)
        assert response.status_code == 200, response.get_json()
        closed = response.get_json()['session']
        assert closed['status'] == 'CLOSED'
        assert closed['variance']['variance_cents'] == 0

        overview = client.get('/api/reports/overview', headers=admin_headers).get_json()
        assert overview['revenue_cents'] == 1800
        assert overview['cogs_cents'] == 100
        assert overview['order_count'] == 1

        consistency = client.get('/api/stock/consistency', headers=admin_headers).get_json()
        assert consistency['consistent'] is True

    def test_insufficient_stock_returns_409_with_details(self, client, admin_headers, cashier_headers):
        flour_id, pizza_id = _setup_pizza(client, admin_headers)

        response = client.post('/api/sales', json={
            'payment_type': 'CARD',
            'items': [{'product_id': pizza_id, 'qty': 100}],
        }, headers=cashier_headers)

        assert response.status_code == 409
        body = response.get_json()
        assert body['type'] == 'InsufficientStockError'
        assert body['details']['ingredient_id'] == flour_id
        assert body['details']['product_id'] == pizza_id
        assert body['details']['required'] == '25'
        assert body['details']['available'] == '10'

        assert _stock_of(client, cashier_headers, flour_id)['quantity'] == '10'
        assert client.get('/api/sales', headers=cashier_headers).get_json()['count'] == 0

    def test_validation_error_returns_400(self, client, cashier_headers):
        response = client.post('/api/sales', json={
            'payment_type': 'CASH',
            'items': [{'product_id': 1, 'qty': 0}],
        }, headers=cashier_headers)
        assert response.status_code == 400
        assert response.get_json()['type'] == 'ValidationError'

    def test_unknown_product_returns_404(self, client, cashier_headers):
        response = client.post('/api/sales', json={
            'payment_type': 'CASH',
            'items': [{'product_id': 999, 'qty': 1}],
        }, headers=cashier_headers)
        assert response.status_code == 404

    def test_second_session_open_returns_409(self, client, cashier_headers):
        assert client.post('/api/sessions/open', json={'opening_float_cents': 0}, headers=cashier_headers).status_code == 201

        response = client.post('/api/sessions/open', json={'opening_float_cents': 0}, headers=cashier_headers)
        assert response.status_code == 409
        assert response.get_json()['retryable'] is False

    def test_lots_endpoint_lists_fifo_order(self, client, admin_headers, make_ingredient, purchase):
        flour = make_ingredient('Flour')
        purchase(flour, '1', 100)
        purchase(flour, '2', 300)

        response = client.get(f'/api/stock/lots/{flour.id}', headers=admin_headers)
        assert response.status_code == 200
        lots = response.get_json()['lots']
        assert [Decimal(l['unit_cost_cents']) for l in lots] == [Decimal('100'), Decimal('150')]


class TestHealth:

    def test_health(self, client, db_session):
        response = client.get('/health')
        assert response.status_code == 200
        body = response.get_json()
        assert body['status'] == 'healthy'
        assert body['checks']['ledger']['status'] == 'healthy'


class TestCatalogAndExpenses:

    def test_duplicate_ingredient_name_conflicts(self, client, admin_headers):
        assert client.post('/api/ingredients', json={'name': 'Cheese', 'unit': 'kg'}, headers=admin_headers).status_code == 201

        response = client.post('/api/ingredients', json={'name': 'Cheese', 'unit': 'g'}, headers=admin_headers)
        assert response.status_code == 409

    def test_ingredient_rejects_unknown_fields(self, client, admin_headers):
        response = client.post('/api/ingredients', json={'name': 'Cheese', 'unit': 'kg', 'quantity': 5}, headers=admin_headers)
        assert response.status_code == 400

    def test_supplier_create_and_list(self, client, admin_headers, cashier_headers):
        response = client.post('/api/suppliers', json={'name': 'Mill Co', 'phone': '555-0101'}, headers=admin_headers)
        assert response.status_code == 201

        body = client.get('/api/suppliers', headers=cashier_headers).get_json()
        assert [s['name'] for s in body['items']] == ['Mill Co']

    def test_purchase_with_unknown_supplier_is_404(self, client, admin_headers, make_ingredient):
        flour = make_ingredient('Flour')
        response = client.post('/api/purchases', json={
            'supplier_id': 77,
            'items': [{'ingredient_id': flour.id, 'quantity': '1', 'total_cost_cents': 100}],
        }, headers=admin_headers)
        assert response.status_code == 404

    def test_deactivated_product_cannot_be_sold(self, client, admin_headers, cashier_headers):
        _, pizza_id = _setup_pizza(client, admin_headers)

        response = client.patch(f'/api/products/{pizza_id}', json={'is_active': False}, headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()['is_active'] is False

        response = client.post('/api/sales', json={
            'payment_type': 'CASH', 'items': [{'product_id': pizza_id, 'qty': 1}],
        }, headers=cashier_headers)
        assert response.status_code == 404

    def test_recipe_replace_and_clear(self, client, admin_headers):
        _, pizza_id = _setup_pizza(client, admin_headers)

        recipe = client.get(f'/api/products/{pizza_id}/recipe', headers=admin_headers).get_json()
        assert [i['quantity'] for i in recipe['items']] == ['0.25']

        response = client.put(f'/api/products/{pizza_id}/recipe', json={'items': []}, headers=admin_headers)
        assert response.status_code == 200
        assert response.get_json()['items'] == []

    def test_expense_recorded_and_reported(self, client, cashier_headers, admin_headers):
        response = client.post('/api/expenses', json={
            'label': 'Gas bottle', 'amount_cents': 4500, 'paid_via': 'CASH',
        }, headers=cashier_headers)
        assert response.status_code == 201, response.get_json()

        response = client.post('/api/expenses', json={
            'label': 'Bad', 'amount_cents': 100, 'paid_via': 'IOU',
        }, headers=cashier_headers)
        assert response.status_code == 400

        assert client.get('/api/expenses', headers=cashier_headers).get_json()['count'] == 1
        assert client.get('/api/reports/overview', headers=admin_headers).get_json()['expenses_cents'] == 4500

        activity = client.get('/api/reports/activity', headers=admin_headers).get_json()['items']
        assert activity[0]['type'] == 'expense'

    def test_admin_creates_user(self, client, admin_headers, cashier_headers):
        response = client.post('/api/users', json={
            'email': 'Kitchen2@POS.test', 'password': 'Password123!', 'name': 'Cook', 'role': 'KITCHEN',
        }, headers=admin_headers)
        assert response.status_code == 201
        assert response.get_json()['user']['email'] == 'kitchen2@pos.test'

        response = client.post('/api/users', json={
            'email': 'x@pos.test', 'password': 'Password123!', 'name': 'X',
        }, headers=cashier_headers)
        assert response.status_code == 403

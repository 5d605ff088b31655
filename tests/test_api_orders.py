"""HTTP contract for order intake and admin status changes."""
from storefront import db
from storefront.models import Order, ProductVariant, Transaction


def order_body(product, variant, qty=2, **extra):
    body = {
        'name': 'Maria Gonzalez',
        'phone': '0971555444',
        'address': 'Calle Palma 456, Asuncion',
        'items': [{'productId': product.id, 'variantId': variant.id, 'qty': qty}],
    }
    body.update(extra)
    return body


def test_guest_can_create_order(client, product, variant):
    res = client.post('/api/orders', json=order_body(product, variant))
    assert res.status_code == 201
    order = db.session.get(Order, res.get_json()['id'])
    assert order.user_id is None
    assert order.status == 'pending'
    assert order.subtotal == 20000


def test_logged_in_order_is_linked_to_user(client, product, variant, customer, auth_header):
    res = client.post('/api/orders', json=order_body(product, variant), headers=auth_header(customer))
    assert res.status_code == 201
    assert db.session.get(Order, res.get_json()['id']).user_id == customer.id


def test_invalid_token_falls_back_to_guest(client, product, variant):
    res = client.post('/api/orders', json=order_body(product, variant),
                      headers={'Authorization': 'Bearer not-a-token'})
    assert res.status_code == 201
    assert db.session.get(Order, res.get_json()['id']).user_id is None


def test_create_order_out_of_stock(client, product, variant):
    res = client.post('/api/orders', json=order_body(product, variant, qty=6))
    assert res.status_code == 409
    body = res.get_json()
    assert body['error'] == 'OUT_OF_STOCK'
    assert body['detail'] == 'Club Home Jersey (M)'
    assert Order.query.count() == 0


def test_create_order_product_mismatch(client, make_product, variant):
    other = make_product(title='Third Kit')
    res = client.post('/api/orders', json=order_body(other, variant))
    assert res.status_code == 400
    assert res.get_json()['error'] == 'PRODUCT_MISMATCH'


def test_create_order_rejects_bad_quantity(client, product, variant):
    res = client.post('/api/orders', json=order_body(product, variant, qty=100))
    assert res.status_code == 400
    assert res.get_json()['error'] == 'BAD_REQUEST'


def test_create_order_rejects_out_of_range_custom_number(client, product, variant):
    res = client.post('/api/orders', json=order_body(product, variant, customNumber=0))
    assert res.status_code == 400
    assert res.get_json()['error'] == 'BAD_REQUEST'


def test_create_order_requires_json(client):
    res = client.post('/api/orders', data='nope', content_type='text/plain')
    assert res.status_code == 400
    assert res.get_json()['error'] == 'BAD_REQUEST'


def _create(client, product, variant, **extra):
    return client.post('/api/orders', json=order_body(product, variant, **extra)).get_json()['id']


def test_admin_marks_order_paid(client, product, variant, admin, auth_header):
    order_id = _create(client, product, variant)

    res = client.patch(f'/api/orders/{order_id}', json={'status': 'paid'}, headers=auth_header(admin))
    assert res.status_code == 200
    assert res.get_json()['status'] == 'paid'
    assert db.session.get(ProductVariant, variant.id).stock == 3

    again = client.patch(f'/api/orders/{order_id}', json={'status': 'paid'}, headers=auth_header(admin))
    assert again.status_code == 400
    assert again.get_json() == {
        'error': 'BAD_REQUEST',
        'reason': 'INVALID_TRANSITION',
        'message': f'order {order_id} is already paid',
    }
    assert db.session.get(ProductVariant, variant.id).stock == 3


def test_status_change_requires_admin(client, product, variant, seller, auth_header):
    order_id = _create(client, product, variant)

    res = client.patch(f'/api/orders/{order_id}', json={'status': 'paid'})
    assert res.status_code == 401

    res = client.patch(f'/api/orders/{order_id}', json={'status': 'paid'}, headers=auth_header(seller))
    assert res.status_code == 403
    assert db.session.get(Order, order_id).status == 'pending'


def test_status_change_rejects_unknown_status(client, product, variant, admin, auth_header):
    order_id = _create(client, product, variant)
    res = client.patch(f'/api/orders/{order_id}', json={'status': 'delivered'}, headers=auth_header(admin))
    assert res.status_code == 400
    assert res.get_json()['error'] == 'BAD_REQUEST'


def test_paid_with_insufficient_stock_is_bad_request(client, make_product, admin, auth_header):
    product = make_product(variants=(('S', 1, None),))
    variant = product.variants[0]
    first = _create(client, product, variant, qty=1)
    second = _create(client, product, variant, qty=1)

    assert client.patch(f'/api/orders/{first}', json={'status': 'paid'},
                        headers=auth_header(admin)).status_code == 200
    res = client.patch(f'/api/orders/{second}', json={'status': 'paid'}, headers=auth_header(admin))

    assert res.status_code == 400
    assert res.get_json()['reason'] == 'OUT_OF_STOCK'
    assert db.session.get(ProductVariant, variant.id).stock == 0


def test_deposit_and_balance_over_http(client, make_product, admin, auth_header):
    product = make_product(base_price=25000)
    variant = product.variants[0]
    order_id = _create(client, product, variant, qty=2)

    res = client.patch(f'/api/orders/{order_id}', json={'depositAmount': 20000}, headers=auth_header(admin))
    body = res.get_json()
    assert res.status_code == 200
    assert body['depositAmount'] == 20000
    assert body['depositPaidAt'] is not None
    assert body['depositTransactionId'] is not None
    assert body['status'] == 'pending'

    res = client.patch(f'/api/orders/{order_id}', json={'status': 'paid'}, headers=auth_header(admin))
    body = res.get_json()
    assert body['status'] == 'paid'
    assert body['balancePaidAt'] is not None
    assert db.session.get(Transaction, body['balanceTransactionId']).amount == 30000


def test_patch_requires_status_or_deposit(client, product, variant, admin, auth_header):
    order_id = _create(client, product, variant)
    res = client.patch(f'/api/orders/{order_id}', json={}, headers=auth_header(admin))
    assert res.status_code == 400


def test_patch_unknown_order(client, admin, auth_header):
    res = client.patch('/api/orders/999', json={'status': 'paid'}, headers=auth_header(admin))
    assert res.status_code == 404


def test_order_detail_visible_to_owner_only(client, product, variant, customer, make_user, auth_header):
    res = client.post('/api/orders', json=order_body(product, variant), headers=auth_header(customer))
    order_id = res.get_json()['id']

    mine = client.get(f'/api/orders/{order_id}', headers=auth_header(customer))
    assert mine.status_code == 200
    assert mine.get_json()['items'][0]['price'] == 10000

    stranger = make_user()
    assert client.get(f'/api/orders/{order_id}', headers=auth_header(stranger)).status_code == 404


def test_list_orders(client, product, variant, customer, admin, auth_header):
    client.post('/api/orders', json=order_body(product, variant, qty=1), headers=auth_header(customer))
    _create(client, product, variant, qty=1)

    assert client.get('/api/orders').status_code == 401
    mine = client.get('/api/orders', headers=auth_header(customer)).get_json()
    everything = client.get('/api/orders', headers=auth_header(admin)).get_json()
    assert mine['total'] == 1
    assert everything['total'] == 2
    assert everything['items'][0]['itemCount'] == 1


def test_seller_sees_only_own_lines(client, make_product, seller, make_user, auth_header):
    from storefront.constants import Role
    other_seller = make_user(Role.SELLER)
    mine = make_product(title='Mine')
    theirs = make_product(title='Theirs', owner=other_seller)
    body = {
        'name': 'Mixed Cart',
        'phone': '0981000000',
        'address': 'Some street 123',
        'items': [
            {'productId': mine.id, 'variantId': mine.variants[0].id, 'qty': 1},
            {'productId': theirs.id, 'variantId': theirs.variants[0].id, 'qty': 1},
        ],
    }
    client.post('/api/orders', json=body)

    res = client.get('/api/seller/orders', headers=auth_header(seller))
    data = res.get_json()
    assert res.status_code == 200
    assert data['total'] == 1
    assert [i['title'] for i in data['items'][0]['items']] == ['Mine (M)']

    res = client.get('/api/seller/orders?search=Mixed&status=pending', headers=auth_header(seller))
    assert res.get_json()['total'] == 1

from datetime import datetime, timedelta

from tests.base import ApiTestCase

GUEST_CONTACT = {
    'name': 'Guest Person',
    'email': 'guest@example.com',
    'address': '2 Side St',
    'phone': '555-0199'
}


def future_day(days):
    return (datetime.utcnow() + timedelta(days=days)).date().isoformat()


class CartOrderApiTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.product_id = self.create_product(name='Camera', price=20.0)

    def cart_body(self, quantity=2, **overrides):
        body = {
            'product_id': self.product_id,
            'start_date': future_day(2),
            'end_date': future_day(5),
            'quantity': quantity
        }
        body.update(overrides)
        return body

    def guest_cookie(self, response):
        cookies = [header for header in response.headers.getlist('Set-Cookie')
                   if header.startswith('guestSessionId=')]
        return cookies[0] if cookies else None

    # ---------- Guest ----------

    def test_guest_cart_to_order(self):
        response = self.client.post('/api/cart', json=self.cart_body())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['message'], 'Product added to cart')
        cart_id = response.get_json()['cartId']

        cookie = self.guest_cookie(response)
        self.assertIsNotNone(cookie)
        self.assertIn('HttpOnly', cookie)
        self.assertIn('SameSite=Lax', cookie)

        # The cookie jar carries the guest session from here on
        items = self.client.get('/api/cart').get_json()
        self.assertEqual([item['id'] for item in items], [cart_id])
        self.assertEqual(items[0]['price_per_day'], 20.0)

        response = self.client.post('/api/orders', json=dict(GUEST_CONTACT, cartItems=[{'cartId': cart_id}]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['message'], 'Order placed successfully')
        order_id = response.get_json()['orderId']

        self.assertEqual(self.client.get('/api/cart').get_json(), [])
        orders = self.client.get('/api/orders/my-orders').get_json()
        self.assertEqual([order['id'] for order in orders], [order_id])
        item = orders[0]['items'][0]
        self.assertEqual((item['quantity'], item['total_price']), (2, 120.0))

    def test_guest_session_from_query_and_body(self):
        response = self.client.post('/api/cart?guestSessionId=guest-q', json=self.cart_body())
        self.assertIsNone(self.guest_cookie(response))

        other = self.app.test_client()
        self.assertEqual(len(other.get('/api/cart?guestSessionId=guest-q').get_json()), 1)
        self.assertEqual(other.get('/api/cart?guestSessionId=guest-r').get_json(), [])

        response = other.post('/api/orders', json=dict(GUEST_CONTACT, guestSessionId='guest-q', cartItems=[
            {'cartId': response.get_json()['cartId']}
        ]))
        self.assertEqual(response.status_code, 200)

    def test_guest_id_in_body_or_query_wins_over_cookie(self):
        self.client.set_cookie('guestSessionId', 'cookie-guest')
        response = self.client.post('/api/cart', json=self.cart_body(guestSessionId='body-guest'))
        self.assertEqual(response.status_code, 200)

        other = self.app.test_client()
        self.assertEqual(len(other.get('/api/cart?guestSessionId=body-guest').get_json()), 1)
        self.assertEqual(other.get('/api/cart?guestSessionId=cookie-guest').get_json(), [])

        self.assertEqual(len(self.client.get('/api/cart?guestSessionId=body-guest').get_json()), 1)
        self.assertEqual(self.client.get('/api/cart').get_json(), [])

    def test_overlong_guest_id_is_rejected(self):
        response = self.client.get('/api/cart?guestSessionId=' + 'x' * 65)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json(), {'error': 'Invalid guest session id'})

        response = self.client.post('/api/cart', json=self.cart_body(guest_session_id='y' * 65))
        self.assertEqual(response.status_code, 400)

        self.assertEqual(self.client.get('/api/cart?guestSessionId=' + 'x' * 64).get_json(), [])

    def test_guests_cannot_touch_each_others_items(self):
        cart_id = self.client.post('/api/cart', json=self.cart_body()).get_json()['cartId']

        stranger = self.app.test_client()
        response = stranger.put(f'/api/cart/{cart_id}', json={'quantity': 9})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json(), {'error': 'Cart item not found'})
        self.assertEqual(stranger.delete(f'/api/cart/{cart_id}').status_code, 404)

        self.assertEqual(self.client.put(f'/api/cart/{cart_id}', json={'quantity': 3}).status_code, 200)
        self.assertEqual(self.client.get('/api/cart').get_json()[0]['quantity'], 3)
        self.assertEqual(self.client.delete(f'/api/cart/{cart_id}').get_json()['message'], 'Cart item removed')

    def test_cart_validation_errors(self):
        response = self.client.post('/api/cart', json={'product_id': self.product_id})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error'], 'Missing required fields')

        response = self.client.post('/api/cart', json=self.cart_body(quantity=1.5))
        self.assertEqual(response.get_json()['error'], 'Quantity must be a positive integer')

        response = self.client.post('/api/cart', json=self.cart_body(start_date=future_day(5), end_date=future_day(2)))
        self.assertEqual(response.get_json()['error'], 'End date must be after start date')

        response = self.client.post('/api/cart', json=self.cart_body(start_date='2001-01-01', end_date='2001-01-03'))
        self.assertEqual(response.get_json()['error'], 'Start date cannot be in the past')

        response = self.client.post('/api/cart', json=self.cart_body(start_date='not a date'))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error'], 'Invalid request body')

        response = self.client.post('/api/cart', json=self.cart_body(product_id='abc', start_date='nope'))
        details = response.get_json()['details']
        self.assertIsInstance(details, str)
        self.assertIn('start_date', details)
        self.assertIn('product_id', details)

        response = self.client.post('/api/cart', json=self.cart_body(product_id=9999))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()['error'], 'Product not found or unavailable')

    def test_order_pre_checks(self):
        response = self.client.post('/api/orders', json=dict(GUEST_CONTACT, cartItems=[]))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error'], 'At least one cart item is required')

        cart_id = self.client.post('/api/cart', json=self.cart_body()).get_json()['cartId']
        body = dict(GUEST_CONTACT, cartItems=[{'cartId': cart_id}])
        del body['email']
        response = self.client.post('/api/orders', json=body)
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.get_json()['error'], 'Missing required fields: name, email, address, phone')
        self.assertEqual(len(self.client.get('/api/cart').get_json()), 1)

    def test_failed_line_returns_transaction_error(self):
        cart_id = self.client.post('/api/cart', json=self.cart_body()).get_json()['cartId']
        response = self.client.post('/api/orders', json=dict(GUEST_CONTACT, cartItems=[
            {'cartId': cart_id}, {'cartId': cart_id + 100}
        ]))
        self.assertEqual(response.status_code, 500)
        body = response.get_json()
        self.assertEqual(body['error'], 'Failed to place order')
        self.assertIn(str(cart_id + 100), body['details'])
        self.assertEqual(len(self.client.get('/api/cart').get_json()), 1)
        self.assertEqual(self.client.get('/api/orders/my-orders').get_json(), [])

    # ---------- Registered users ----------

    def test_user_cart_and_orders(self):
        user_id, headers = self.create_user()

        # Visiting as a guest first leaves a guest cookie behind
        self.client.get('/api/cart')
        response = self.client.post('/api/cart', json=self.cart_body(quantity=1), headers=headers)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(self.guest_cookie(response).startswith('guestSessionId=;'))

        cart_id = response.get_json()['cartId']
        anonymous = self.app.test_client()
        self.assertEqual(anonymous.delete(f'/api/cart/{cart_id}').status_code, 404)

        response = self.client.post('/api/orders', json={'cartItems': [{'cartId': cart_id}]}, headers=headers)
        self.assertEqual(response.status_code, 200)
        order_id = response.get_json()['orderId']

        orders = self.client.get('/api/orders/my-orders', headers=headers).get_json()
        self.assertEqual(orders[0]['id'], order_id)
        self.assertEqual(orders[0]['name'], 'client')
        self.assertEqual(orders[0]['user_id'], user_id)

    def test_bad_token_is_rejected(self):
        response = self.client.get('/api/cart', headers={'Authorization': 'Bearer nonsense'})
        self.assertEqual(response.status_code, 401)
        self.assertTrue(response.get_json()['error'].startswith('Invalid token'))

    # ---------- Admin ----------

    def test_admin_order_management(self):
        user_id, user_headers = self.create_user()
        _, admin_headers = self.create_admin()
        cart_id = self.client.post('/api/cart', json=self.cart_body(), headers=user_headers).get_json()['cartId']
        order_id = self.client.post('/api/orders', json={'cartItems': [{'cartId': cart_id}]},
                                    headers=user_headers).get_json()['orderId']

        for url in ('/api/orders', f'/api/orders/user/{user_id}', '/api/cart/all'):
            response = self.client.get(url, headers=user_headers)
            self.assertEqual(response.status_code, 401)
            self.assertEqual(response.get_json()['error'], 'Access denied')
            self.assertEqual(self.app.test_client().get(url).status_code, 401)

        self.assertEqual(len(self.client.get('/api/orders', headers=admin_headers).get_json()), 1)
        self.assertEqual(len(self.client.get(f'/api/orders/user/{user_id}', headers=admin_headers).get_json()), 1)
        self.assertEqual(self.client.get('/api/cart/all', headers=admin_headers).get_json(), [])

        response = self.client.put(f'/api/orders/{order_id}', json={'status': 'approved'}, headers=admin_headers)
        self.assertEqual(response.get_json()['order']['status'], 'approved')

        response = self.client.put(f'/api/orders/{order_id}', json={'status': 'lost'}, headers=admin_headers)
        self.assertEqual(response.status_code, 400)
        response = self.client.put('/api/orders/9999', json={'status': 'approved'}, headers=admin_headers)
        self.assertEqual(response.status_code, 404)

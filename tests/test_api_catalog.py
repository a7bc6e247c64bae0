from unittest import mock

import upload_service
from extensions import db
from init_data import create_initial_data
from models import PageContent, Product, User

from tests.base import ApiTestCase

PNG = 'data:image/png;base64,iVBORw0KGgo='


class ProductApiTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        _, self.admin = self.create_admin()
        _, self.client_headers = self.create_user()

    def test_public_listing_filters_and_orders(self):
        category_id = self.create_category(name='Tents')
        older = self.create_product(name='Older')
        tent = self.create_product(name='Tent', category_id=category_id)
        self.create_product(name='Hidden', available=False)
        self.create_product(name='Trashed', is_deleted=True)

        names = [product['name'] for product in self.client.get('/api/products').get_json()]
        self.assertEqual(names, ['Tent', 'Older'])

        in_category = self.client.get(f'/api/products?category={category_id}').get_json()
        self.assertEqual([product['id'] for product in in_category], [tent])

        self.assertEqual(self.client.get(f'/api/products/{older}').get_json()['name'], 'Older')
        self.assertEqual(self.client.get('/api/products/9999').status_code, 404)

    def test_soft_delete_and_restore(self):
        product_id = self.create_product(name='Drone')

        self.assertEqual(self.client.delete(f'/api/products/{product_id}', headers=self.client_headers).status_code, 401)
        response = self.client.delete(f'/api/products/{product_id}', headers=self.admin)
        self.assertEqual(response.get_json(), {'message': 'Product deleted'})

        self.assertEqual(self.client.get('/api/products').get_json(), [])
        self.assertEqual(self.client.get(f'/api/products/{product_id}').status_code, 404)
        deleted = self.client.get('/api/products/deleted', headers=self.admin).get_json()
        self.assertEqual([product['id'] for product in deleted], [product_id])

        # Deleted products cannot be carted
        response = self.client.post('/api/cart', json={
            'product_id': product_id, 'start_date': '2999-01-01', 'end_date': '2999-01-02', 'quantity': 1
        })
        self.assertEqual(response.status_code, 404)

        self.assertEqual(self.client.delete(f'/api/products/{product_id}', headers=self.admin).status_code, 404)

        response = self.client.put(f'/api/products/{product_id}/restore', headers=self.admin)
        self.assertEqual(response.get_json(), {'message': 'Product restored'})
        response = self.client.put(f'/api/products/{product_id}/restore', headers=self.admin)
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()['error'], 'Product not found in trash')
        self.assertEqual(len(self.client.get('/api/products').get_json()), 1)

    def test_add_product_uploads_images(self):
        with mock.patch.object(upload_service.image_uploader, 'upload',
                               side_effect=['https://cdn.test/main.png', 'https://cdn.test/g1.png']) as upload:
            response = self.client.post('/api/products', headers=self.admin, json={
                'name': 'Projector',
                'description': 'Full HD',
                'regular_price': '35',
                'sale_price': 30,
                'imageBase64': PNG,
                'galleryBase64': [PNG, 'not-an-image']
            })
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.get_json()['message'], 'Product added')
        self.assertEqual(upload.call_count, 2)

        product = self.client.get(f"/api/products/{response.get_json()['id']}").get_json()
        self.assertEqual(product['price_per_day'], 35.0)
        self.assertEqual(product['sale_price'], 30.0)
        self.assertEqual(product['image_url'], 'https://cdn.test/main.png')
        self.assertEqual(product['gallery_images'], ['https://cdn.test/g1.png'])
        self.assertTrue(product['available'])

    def test_add_product_validation(self):
        response = self.client.post('/api/products', headers=self.admin, json={'name': 'Thing'})
        self.assertEqual(response.get_json()['error'], 'Missing required fields: name, description, regular_price')

        response = self.client.post('/api/products', headers=self.admin,
                                    json={'name': 'Thing', 'description': 'd', 'regular_price': -3})
        self.assertEqual(response.get_json()['error'], 'Invalid regular_price: must be a positive number')

        response = self.client.post('/api/products', headers=self.admin,
                                    json={'name': 'Thing', 'description': 'd', 'regular_price': 3,
                                          'galleryBase64': [PNG] * 11})
        self.assertEqual(response.get_json()['error'], 'Gallery can have at most 10 images')

        response = self.client.post('/api/products', headers=self.admin,
                                    json={'name': 'Thing', 'description': 'd', 'regular_price': 3, 'category_id': 77})
        self.assertEqual(response.get_json()['error'], 'Invalid category_id')

    def test_upload_failure_is_reported(self):
        with mock.patch.object(upload_service.image_uploader, 'upload',
                               side_effect=upload_service.UploadError('Failed to upload image', details='boom')):
            response = self.client.post('/api/products', headers=self.admin, json={
                'name': 'Thing', 'description': 'd', 'regular_price': 3, 'imageBase64': PNG
            })
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.get_json(), {'error': 'Failed to upload image', 'details': 'boom'})
        with self.app.app_context():
            self.assertEqual(db.session.query(Product).count(), 0)

    def test_partial_update_and_gallery(self):
        product_id = self.create_product(name='Speaker', price=12.0, sale_price=10.0)

        with mock.patch.object(upload_service.image_uploader, 'upload',
                               side_effect=['https://cdn.test/a.png', 'https://cdn.test/b.png']):
            response = self.client.put(f'/api/products/{product_id}', headers=self.admin,
                                       json={'regular_price': 15, 'galleryBase64': [PNG, PNG]})
        self.assertEqual(response.status_code, 200)
        product = response.get_json()['product']
        self.assertEqual((product['name'], product['price_per_day'], product['sale_price']), ('Speaker', 15.0, 10.0))
        self.assertEqual(product['gallery_images'], ['https://cdn.test/a.png', 'https://cdn.test/b.png'])

        response = self.client.put(f'/api/products/{product_id}', headers=self.admin,
                                   json={'existingGalleryImages': ['https://cdn.test/b.png'], 'sale_price': None,
                                         'available': False})
        product = response.get_json()['product']
        self.assertEqual(product['gallery_images'], ['https://cdn.test/b.png'])
        self.assertIsNone(product['sale_price'])
        self.assertFalse(product['available'])

        response = self.client.put(f'/api/products/{product_id}', headers=self.admin,
                                   json={'existingGalleryImages': ['https://cdn.test/x.png'] * 11})
        self.assertEqual(response.get_json()['error'], 'Total gallery images cannot exceed 10')

        self.assertEqual(self.client.put('/api/products/9999', headers=self.admin, json={}).status_code, 404)


class CategoryApiTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        _, self.admin = self.create_admin()

    def test_category_crud(self):
        response = self.client.post('/api/categories', headers=self.admin, json={'description': 'no name'})
        self.assertEqual(response.get_json()['error'], 'Missing required field: name')

        tents_id = self.client.post('/api/categories', headers=self.admin, json={'name': 'Tents'}).get_json()['id']
        self.client.post('/api/categories', headers=self.admin, json={'name': 'Audio'})

        names = [category['name'] for category in self.client.get('/api/categories').get_json()]
        self.assertEqual(names, ['Audio', 'Tents'])

        response = self.client.put(f'/api/categories/{tents_id}', headers=self.admin, json={'description': 'Outdoor'})
        self.assertEqual(response.get_json()['message'], 'Category updated')
        self.assertEqual(self.client.get(f'/api/categories/{tents_id}').get_json()['description'], 'Outdoor')

        response = self.client.put(f'/api/categories/{tents_id}', headers=self.admin, json={})
        self.assertEqual(response.get_json()['error'], 'No valid fields provided for update')

    def test_delete_keeps_products(self):
        category_id = self.create_category(name='Cameras')
        product_id = self.create_product(name='Camera', category_id=category_id)

        response = self.client.delete(f'/api/categories/{category_id}', headers=self.admin)
        self.assertEqual(response.get_json()['message'], 'Category deleted')
        self.assertEqual(self.client.get(f'/api/categories/{category_id}').status_code, 404)

        product = self.client.get(f'/api/products/{product_id}').get_json()
        self.assertIsNone(product['category_id'])


class PageAndContactApiTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        _, self.admin = self.create_admin()
        with self.app.app_context():
            create_initial_data()

    def test_pages(self):
        about = self.client.get('/api/pages/about').get_json()
        self.assertIn('About', about['content'])
        self.assertEqual(self.client.get('/api/pages/missing').get_json(), {'content': '<h1>Page not found</h1>'})

        pages = self.client.get('/api/pages', headers=self.admin).get_json()
        self.assertEqual([page['page_name'] for page in pages], ['about', 'contact', 'privacy', 'terms'])

        response = self.client.put('/api/pages/about', headers=self.admin, json={'content': '<h1>Hello</h1>'})
        self.assertEqual(response.get_json()['message'], 'Page updated')
        self.assertEqual(self.client.get('/api/pages/about').get_json()['content'], '<h1>Hello</h1>')
        self.assertEqual(self.client.put('/api/pages/missing', headers=self.admin,
                                         json={'content': 'x'}).status_code, 404)

    def test_seed_is_idempotent(self):
        with self.app.app_context():
            create_initial_data()
            self.assertEqual(PageContent.query.count(), 4)
            self.assertEqual(User.query.filter_by(role='admin').count(), 2)

    def test_contact_inbox(self):
        response = self.client.post('/api/contact/submit', json={'name': 'Ann', 'email': 'ann@example.com'})
        self.assertEqual(response.get_json()['error'], 'Name, email, subject, and message are required')

        response = self.client.post('/api/contact/submit', json={
            'name': 'Ann', 'email': 'ann@example.com', 'subject': 'Bulk order', 'message': 'Ten tents please'
        })
        self.assertEqual(response.status_code, 201)

        self.assertEqual(self.client.get('/api/contact/messages').status_code, 401)
        messages = self.client.get('/api/contact/messages', headers=self.admin).get_json()
        self.assertEqual(messages[0]['status'], 'unread')

        url = f"/api/contact/messages/{messages[0]['id']}/status"
        self.assertEqual(self.client.put(url, headers=self.admin, json={'status': 'read'}).status_code, 200)
        self.assertEqual(self.client.put(url, headers=self.admin, json={'status': 'archived'}).status_code, 400)
        self.assertEqual(self.client.put('/api/contact/messages/9999/status', headers=self.admin,
                                         json={'status': 'read'}).status_code, 404)

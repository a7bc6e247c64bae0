import json
from datetime import datetime

from extensions import db
from pricing import money_out
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

ORDER_STATUSES = ('pending', 'approved', 'completed', 'cancelled')
REVENUE_STATUSES = ('approved', 'completed')
CONTACT_STATUSES = ('unread', 'read', 'responded')


def _iso(value):
    return value.isoformat() if value else None


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='client')  # client or admin
    address = db.Column(db.Text)
    phone = db.Column(db.String(30))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self):
        return self.role == 'admin'

    def to_dict(self):
        """Convert user to dictionary for API responses"""
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role,
            'address': self.address,
            'phone': self.phone,
            'created_at': _iso(self.created_at)
        }

    def __repr__(self):
        return f'<User {self.username}>'


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text)
    image_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    products = db.relationship('Product', backref='category', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'image_url': self.image_url,
            'created_at': _iso(self.created_at)
        }

    def __repr__(self):
        return f'<Category {self.name}>'


class Product(db.Model):
    __tablename__ = 'products'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    price_per_day = db.Column(db.Numeric(10, 2), nullable=False)
    sale_price = db.Column(db.Numeric(10, 2))
    image_url = db.Column(db.String(500))
    gallery_images = db.Column(db.Text)  # JSON list of image URLs
    available = db.Column(db.Boolean, nullable=False, default=True)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)
    category_id = db.Column(db.Integer, db.ForeignKey('categories.id', ondelete='SET NULL'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def effective_price(self):
        """Sale price when one is set, otherwise the regular daily price"""
        return self.sale_price if self.sale_price is not None else self.price_per_day

    @property
    def gallery(self):
        return json.loads(self.gallery_images) if self.gallery_images else []

    @gallery.setter
    def gallery(self, urls):
        self.gallery_images = json.dumps(list(urls)) if urls else None

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'price_per_day': money_out(self.price_per_day),
            'sale_price': money_out(self.sale_price),
            'image_url': self.image_url,
            'gallery_images': self.gallery,
            'available': self.available,
            'is_deleted': self.is_deleted,
            'category_id': self.category_id,
            'created_at': _iso(self.created_at)
        }

    def __repr__(self):
        return f'<Product {self.name}>'


# Exactly one owner column is set on cart rows and orders
_ONE_OWNER = '(user_id IS NULL) <> (guest_session_id IS NULL)'


class CartItem(db.Model):
    __tablename__ = 'cart'
    __table_args__ = (db.CheckConstraint(_ONE_OWNER, name='ck_cart_one_owner'),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    guest_session_id = db.Column(db.String(64), index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    price_snapshot = db.Column(db.Numeric(10, 2), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    product = db.relationship('Product')

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'guest_session_id': self.guest_session_id,
            'product_id': self.product_id,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'quantity': self.quantity,
            'price_snapshot': money_out(self.price_snapshot),
            'created_at': _iso(self.created_at)
        }

    def __repr__(self):
        return f'<CartItem {self.id}>'


class Order(db.Model):
    __tablename__ = 'orders'
    __table_args__ = (db.CheckConstraint(_ONE_OWNER, name='ck_orders_one_owner'),)

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    guest_session_id = db.Column(db.String(64), index=True)

    # Contact details captured at placement time
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), nullable=False)
    address = db.Column(db.Text, nullable=False)
    phone = db.Column(db.String(30), nullable=False)

    # Order status: pending, approved, completed, cancelled
    status = db.Column(db.String(20), nullable=False, default='pending')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    items = db.relationship('OrderItem', backref='order', lazy='select',
                            order_by='OrderItem.id', cascade='all, delete-orphan')

    @property
    def total_price(self):
        return sum(item.total_price for item in self.items)

    def to_dict(self, include_items=True):
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'guest_session_id': self.guest_session_id,
            'name': self.name,
            'email': self.email,
            'address': self.address,
            'phone': self.phone,
            'status': self.status,
            'created_at': _iso(self.created_at)
        }
        if include_items:
            data['items'] = [item.to_dict() for item in self.items]
            data['total_price'] = money_out(self.total_price)
        return data

    def __repr__(self):
        return f'<Order {self.id}>'


class OrderItem(db.Model):
    __tablename__ = 'order_items'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('orders.id'), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)

    # Product name/image frozen at order time
    product_name = db.Column(db.String(200), nullable=False)
    image_url = db.Column(db.String(500))

    start_date = db.Column(db.DateTime, nullable=False)
    end_date = db.Column(db.DateTime, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price_per_day = db.Column(db.Numeric(10, 2), nullable=False)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'product_name': self.product_name,
            'start_date': _iso(self.start_date),
            'end_date': _iso(self.end_date),
            'quantity': self.quantity,
            'price_per_day': money_out(self.price_per_day),
            'total_price': money_out(self.total_price),
            'image_url': self.image_url
        }

    def __repr__(self):
        return f'<OrderItem {self.id} of Order {self.order_id}>'


class PageContent(db.Model):
    __tablename__ = 'page_contents'

    id = db.Column(db.Integer, primary_key=True)
    page_name = db.Column(db.String(100), unique=True, nullable=False)
    content = db.Column(db.Text, nullable=False, default='')
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'page_name': self.page_name,
            'content': self.content,
            'updated_at': _iso(self.updated_at)
        }


class ContactMessage(db.Model):
    __tablename__ = 'contact_messages'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), nullable=False)
    company = db.Column(db.String(120))
    subject = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    status = db.Column(db.String(20), nullable=False, default='unread')  # unread, read, responded
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'company': self.company,
            'subject': self.subject,
            'message': self.message,
            'status': self.status,
            'created_at': _iso(self.created_at)
        }

    def __repr__(self):
        return f'<ContactMessage {self.id}>'

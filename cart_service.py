"""
Cart store: pending rental selections owned by a user or a guest session.

Every mutation filters on the item id and the owner in the same statement,
so a caller can only ever touch its own rows.
"""
import logging
from datetime import datetime, time

from errors import MissingIdentity, NotFound, ValidationError
from identity import owner_columns, owner_filter
from models import CartItem, Product
from pricing import money_out, to_money

logger = logging.getLogger(__name__)


def validate_quantity(quantity):
    # bool is an int subclass; True must not count as a quantity of one
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationError('Quantity must be a positive integer')
    return quantity


def validate_period(start_date, end_date):
    if start_date >= end_date:
        raise ValidationError('End date must be after start date')


def rentable_product(session, product_id):
    """Return the product if it can be rented right now, else None"""
    if product_id is None:
        return None
    return session.query(Product).filter(
        Product.id == product_id,
        Product.available.is_(True),
        Product.is_deleted.is_(False)
    ).first()


def add_item(session, owner, product_id, start_date, end_date, quantity, today=None):
    """Add a product to the owner's cart and return the new cart row id.

    The product's effective price is captured as the row's price snapshot.
    ``today`` defaults to the current UTC date.
    """
    if owner is None:
        raise MissingIdentity()

    validate_period(start_date, end_date)

    today = today or datetime.utcnow()
    if isinstance(today, datetime):
        today = today.date()
    if start_date < datetime.combine(today, time.min):
        raise ValidationError('Start date cannot be in the past')

    validate_quantity(quantity)

    product = rentable_product(session, product_id)
    if product is None:
        raise NotFound('Product not found or unavailable')

    item = CartItem(
        product_id=product.id,
        start_date=start_date,
        end_date=end_date,
        quantity=quantity,
        price_snapshot=to_money(product.effective_price),
        **owner_columns(owner)
    )
    session.add(item)
    session.commit()

    logger.info(f"[CART] Added product {product.id} x{quantity} for {owner} as item {item.id}")
    return item.id


def list_items(session, owner):
    """Cart rows for ``owner`` priced at their snapshot"""
    if owner is None:
        raise MissingIdentity()

    rows = session.query(CartItem, Product).join(Product, CartItem.product_id == Product.id) \
        .filter(owner_filter(CartItem, owner)) \
        .order_by(CartItem.id).all()

    items = []
    for item, product in rows:
        data = item.to_dict()
        data['price_per_day'] = money_out(item.price_snapshot)
        data['name'] = product.name
        data['image_url'] = product.image_url
        items.append(data)
    return items


def update_quantity(session, owner, item_id, quantity):
    if owner is None:
        raise MissingIdentity()
    validate_quantity(quantity)

    updated = session.query(CartItem).filter(
        CartItem.id == item_id,
        owner_filter(CartItem, owner)
    ).update({'quantity': quantity}, synchronize_session=False)
    session.commit()

    if updated == 0:
        raise NotFound('Cart item not found')
    logger.info(f"[CART] Item {item_id} quantity set to {quantity}")


def remove_item(session, owner, item_id):
    if owner is None:
        raise MissingIdentity()

    deleted = session.query(CartItem).filter(
        CartItem.id == item_id,
        owner_filter(CartItem, owner)
    ).delete(synchronize_session=False)
    session.commit()

    if deleted == 0:
        raise NotFound('Cart item not found')
    logger.info(f"[CART] Item {item_id} removed")


def list_all(session):
    """Every cart row with live product prices, for the admin dashboard"""
    rows = session.query(CartItem, Product).join(Product, CartItem.product_id == Product.id) \
        .order_by(CartItem.id).all()

    items = []
    for item, product in rows:
        data = item.to_dict()
        data['name'] = product.name
        data['image_url'] = product.image_url
        data['regular_price'] = money_out(product.price_per_day)
        data['sale_price'] = money_out(product.sale_price)
        items.append(data)
    return items

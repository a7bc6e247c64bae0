"""
Order placement and order queries.

``place_order`` turns cart rows (or ad-hoc product lines) into an order in a
single transaction. Either every line becomes an order item and every
referenced cart row is consumed, or nothing is written at all.
"""
import logging
import re

from errors import MissingIdentity, NotFound, TransactionFailure, ValidationError
from cart_service import rentable_product, validate_period, validate_quantity
from identity import UserOwner, owner_columns, owner_filter
from models import ORDER_STATUSES, CartItem, Order, OrderItem, User
from pricing import rental_total, to_money

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
NOT_PROVIDED = 'Not provided'


def resolve_contact(session, owner, contact=None):
    """Contact details recorded on the order.

    Registered users are read from their profile. Guests must supply all
    four fields with a well-formed email.
    """
    if isinstance(owner, UserOwner):
        user = session.get(User, owner.user_id)
        if user is None:
            raise NotFound('User not found')
        if not user.email:
            raise ValidationError('User profile missing required email')
        return {
            'name': user.username,
            'email': user.email,
            'address': user.address or NOT_PROVIDED,
            'phone': user.phone or NOT_PROVIDED
        }

    contact = contact or {}
    fields = ('name', 'email', 'address', 'phone')
    if not all(contact.get(field) for field in fields):
        raise ValidationError('Missing required fields: name, email, address, phone')
    if not EMAIL_PATTERN.match(contact['email']):
        raise ValidationError('Invalid email address')
    return {field: contact[field] for field in fields}


def _line_value(line, name):
    if isinstance(line, dict):
        return line.get(name)
    return getattr(line, name, None)


def _place_line(session, owner, order, line):
    """Insert one order item, consuming its cart row when it references one"""
    cart_id = _line_value(line, 'cartId')
    cart_item = None

    if cart_id:
        cart_item = session.query(CartItem).filter(
            CartItem.id == cart_id,
            owner_filter(CartItem, owner)
        ).first()
        if cart_item is None:
            raise NotFound(f'Cart item {cart_id} not found or does not belong to user')
        product_id = cart_item.product_id
    else:
        product_id = _line_value(line, 'productId')

    product = rentable_product(session, product_id)
    if product is None:
        raise NotFound(f'Product {product_id} not found or unavailable')

    if cart_item is not None:
        start_date, end_date, quantity = cart_item.start_date, cart_item.end_date, cart_item.quantity
        unit_price = cart_item.price_snapshot
    else:
        start_date = _line_value(line, 'start_date')
        end_date = _line_value(line, 'end_date')
        quantity = _line_value(line, 'quantity')
        unit_price = product.effective_price

    if not start_date or not end_date or quantity is None:
        raise ValidationError('Missing required fields: start_date, end_date, quantity')
    validate_period(start_date, end_date)
    validate_quantity(quantity)

    session.add(OrderItem(
        order_id=order.id,
        product_id=product.id,
        product_name=product.name,
        image_url=product.image_url,
        start_date=start_date,
        end_date=end_date,
        quantity=quantity,
        price_per_day=to_money(unit_price),
        total_price=rental_total(start_date, end_date, unit_price, quantity)
    ))

    if cart_item is not None:
        deleted = session.query(CartItem).filter(
            CartItem.id == cart_item.id,
            owner_filter(CartItem, owner)
        ).delete(synchronize_session=False)
        if deleted != 1:
            raise NotFound(f'Cart item {cart_id} not found or does not belong to user')


def place_order(session, owner, lines, contact=None):
    """Create an order from ``lines`` and return its id.

    Each line is either ``{cartId}`` or ``{productId, start_date, end_date,
    quantity}``. Validation errors raised before the transaction opens are
    reported as they are; anything that fails inside it rolls the whole
    order back and surfaces as ``TransactionFailure``.
    """
    if not lines:
        raise ValidationError('At least one cart item is required')
    if owner is None:
        raise MissingIdentity()

    details = resolve_contact(session, owner, contact)

    try:
        order = Order(status='pending', **details, **owner_columns(owner))
        session.add(order)
        session.flush()

        for line in lines:
            _place_line(session, owner, order, line)

        session.commit()
    except Exception as exc:
        session.rollback()
        logger.error(f"[ORDER] Placement rolled back for {owner}: {exc}")
        raise TransactionFailure(exc) from exc

    logger.info(f"[ORDER] Order {order.id} placed with {len(lines)} item(s) for {owner}")
    return order.id


# ---------- Queries ----------

def _newest_first(query):
    return [order.to_dict() for order in query.order_by(Order.created_at.desc(), Order.id.desc()).all()]


def list_orders_for_owner(session, owner):
    if owner is None:
        raise MissingIdentity()
    return _newest_first(session.query(Order).filter(owner_filter(Order, owner)))


def list_orders_for_user(session, user_id):
    return _newest_first(session.query(Order).filter(Order.user_id == user_id))


def list_all_orders(session):
    return _newest_first(session.query(Order))


def update_status(session, order_id, status):
    """Set an order's status and return the updated order"""
    if status not in ORDER_STATUSES:
        raise ValidationError('Invalid status')

    order = session.get(Order, order_id)
    if order is None:
        raise NotFound('Order not found')

    order.status = status
    session.commit()
    logger.info(f"[ORDER] Order {order_id} marked {status}")
    return order.to_dict(include_items=False)

import logging

from flask import Blueprint, jsonify

import cart_service
from errors import ValidationError
from extensions import db
from identity import admin_required, owner_required
from schemas import CartAddRequest, CartUpdateRequest, parse_body

logger = logging.getLogger(__name__)

cart_bp = Blueprint('cart', __name__, url_prefix='/api/cart')


@cart_bp.route('', methods=['POST'])
@owner_required
def add_to_cart(owner):
    data = parse_body(CartAddRequest)
    logger.debug(f"[CART] POST /api/cart for {owner}: {data}")

    if not data.product_id or not data.start_date or not data.end_date or data.quantity is None:
        raise ValidationError('Missing required fields')

    cart_id = cart_service.add_item(db.session, owner, data.product_id,
                                    data.start_date, data.end_date, data.quantity)
    return jsonify({'message': 'Product added to cart', 'cartId': cart_id})


@cart_bp.route('', methods=['GET'])
@owner_required
def get_cart(owner):
    return jsonify(cart_service.list_items(db.session, owner))


@cart_bp.route('/<int:item_id>', methods=['PUT'])
@owner_required
def update_cart_item(item_id, owner):
    data = parse_body(CartUpdateRequest)
    cart_service.update_quantity(db.session, owner, item_id, data.quantity)
    return jsonify({'message': 'Cart item updated'})


@cart_bp.route('/<int:item_id>', methods=['DELETE'])
@owner_required
def remove_cart_item(item_id, owner):
    cart_service.remove_item(db.session, owner, item_id)
    return jsonify({'message': 'Cart item removed'})


@cart_bp.route('/all', methods=['GET'])
@admin_required
def get_all_cart_items():
    return jsonify(cart_service.list_all(db.session))

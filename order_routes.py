import logging

from flask import Blueprint, jsonify

import order_service
from extensions import db
from identity import admin_required, owner_required
from schemas import PlaceOrderRequest, StatusUpdate, parse_body

logger = logging.getLogger(__name__)

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')


@orders_bp.route('', methods=['POST'])
@owner_required
def place_order(owner):
    data = parse_body(PlaceOrderRequest)
    logger.info(f"[ORDER] POST /api/orders for {owner} with {len(data.cartItems)} line(s)")

    order_id = order_service.place_order(db.session, owner, data.cartItems, data.contact())
    return jsonify({'message': 'Order placed successfully', 'orderId': order_id})


@orders_bp.route('/my-orders', methods=['GET'])
@owner_required
def my_orders(owner):
    return jsonify(order_service.list_orders_for_owner(db.session, owner))


@orders_bp.route('/user/<int:user_id>', methods=['GET'])
@admin_required
def orders_for_user(user_id):
    return jsonify(order_service.list_orders_for_user(db.session, user_id))


@orders_bp.route('', methods=['GET'])
@admin_required
def all_orders():
    return jsonify(order_service.list_all_orders(db.session))


@orders_bp.route('/<int:order_id>', methods=['PUT'])
@admin_required
def update_order_status(order_id):
    data = parse_body(StatusUpdate)
    order = order_service.update_status(db.session, order_id, data.status)
    return jsonify({'message': 'Order status updated', 'order': order})

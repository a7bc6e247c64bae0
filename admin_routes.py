from flask import Blueprint, jsonify, request

import stats_service
from extensions import db
from identity import admin_required

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


def _requested_period():
    return stats_service.get_period(request.args.get('period', stats_service.DEFAULT_PERIOD))


@admin_bp.route('/stats', methods=['GET'])
@admin_required
def stats():
    return jsonify(stats_service.overview(db.session, _requested_period()))


@admin_bp.route('/sales-over-time', methods=['GET'])
@admin_required
def sales_over_time():
    return jsonify(stats_service.sales_over_time(db.session, _requested_period()))


@admin_bp.route('/user-growth', methods=['GET'])
@admin_required
def user_growth():
    return jsonify(stats_service.user_growth(db.session, _requested_period()))


@admin_bp.route('/order-growth', methods=['GET'])
@admin_required
def order_growth():
    return jsonify(stats_service.order_growth(db.session, _requested_period()))


@admin_bp.route('/popular-products', methods=['GET'])
@admin_required
def popular_products():
    return jsonify(stats_service.popular_products(db.session, _requested_period()))


@admin_bp.route('/revenue-breakdown', methods=['GET'])
@admin_required
def revenue_breakdown():
    # Revenue breakdown is all-time; the period is still validated
    _requested_period()
    return jsonify(stats_service.revenue_breakdown(db.session))


@admin_bp.route('/category-performance', methods=['GET'])
@admin_required
def category_performance():
    return jsonify(stats_service.category_performance(db.session, _requested_period()))

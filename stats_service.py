"""
Admin dashboard aggregation.

All windows are half-open, ``[start, end)``, in naive UTC. Period boundaries
come from the ``PERIODS`` table; nothing caller-supplied reaches SQL text.
Time-series bucketing is done in Python over the rows in the lookback window.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy import distinct, func

from errors import ValidationError
from models import REVENUE_STATUSES, Category, Order, OrderItem, Product, User
from pricing import money_out

logger = logging.getLogger(__name__)

DEFAULT_PERIOD = 'month'
POPULAR_PRODUCTS_LIMIT = 10


def _midnight(moment):
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _add_months(moment, months):
    index = moment.year * 12 + moment.month - 1 + months
    return moment.replace(year=index // 12, month=index % 12 + 1)


@dataclass(frozen=True)
class Period:
    name: str
    floor: Callable[[datetime], datetime]
    advance: Callable[[datetime, int], datetime]
    lookback: int
    label_format: str

    def window(self, moment, offset=0):
        """Half-open window of the period containing ``moment``, shifted by ``offset`` periods"""
        start = self.advance(self.floor(moment), offset)
        return start, self.advance(start, 1)

    def lookback_start(self, moment):
        return self.advance(self.floor(moment), -self.lookback)

    def label(self, moment):
        return self.floor(moment).strftime(self.label_format)


PERIODS = {
    'day': Period(
        name='day',
        floor=_midnight,
        advance=lambda moment, n: moment + timedelta(days=n),
        lookback=90,
        label_format='%Y-%m-%d'
    ),
    # ISO weeks start on Monday
    'week': Period(
        name='week',
        floor=lambda moment: _midnight(moment) - timedelta(days=moment.weekday()),
        advance=lambda moment, n: moment + timedelta(weeks=n),
        lookback=26,
        label_format='%Y-%m-%d'
    ),
    'month': Period(
        name='month',
        floor=lambda moment: _midnight(moment).replace(day=1),
        advance=_add_months,
        lookback=24,
        label_format='%Y-%m'
    ),
    'year': Period(
        name='year',
        floor=lambda moment: _midnight(moment).replace(month=1, day=1),
        advance=lambda moment, n: moment.replace(year=moment.year + n),
        lookback=10,
        label_format='%Y'
    ),
}


def get_period(name):
    period = PERIODS.get(name or DEFAULT_PERIOD)
    if period is None:
        raise ValidationError('Invalid period')
    return period


def percentage_change(current, previous):
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 2)


def _in_window(column, window):
    start, end = window
    return (column >= start) & (column < end)


def _count(query):
    return query.scalar() or 0


def _revenue(session, *criteria):
    total = session.query(func.coalesce(func.sum(OrderItem.total_price), 0)) \
        .join(Order, OrderItem.order_id == Order.id) \
        .filter(Order.status.in_(REVENUE_STATUSES), *criteria) \
        .scalar()
    return float(total or 0)


# ---------------------------
# Overview cards
# ---------------------------

def overview(session, period, now=None):
    """Counts for the current and previous period plus lifetime totals"""
    now = now or datetime.utcnow()
    current = period.window(now)
    previous = period.window(now, -1)

    def users_in(window):
        return _count(session.query(func.count(User.id))
                      .filter(User.role == 'client', _in_window(User.created_at, window)))

    def products_in(window):
        return _count(session.query(func.count(Product.id))
                      .filter(Product.is_deleted.is_(False), _in_window(Product.created_at, window)))

    def orders_in(window, status=None):
        query = session.query(func.count(Order.id)).filter(_in_window(Order.created_at, window))
        if status:
            query = query.filter(Order.status == status)
        return _count(query)

    current_users, previous_users = users_in(current), users_in(previous)
    current_products, previous_products = products_in(current), products_in(previous)
    current_orders, previous_orders = orders_in(current), orders_in(previous)
    current_revenue = _revenue(session, _in_window(Order.created_at, current))
    previous_revenue = _revenue(session, _in_window(Order.created_at, previous))

    logger.debug(f"[STATS] {period.name} window {current[0]} - {current[1]}")

    return {
        'totalUsers': current_users,
        'totalProducts': current_products,
        'totalOrders': current_orders,
        'pendingOrders': orders_in(current, 'pending'),
        'approvedOrders': orders_in(current, 'approved'),
        'completedOrders': orders_in(current, 'completed'),
        'cancelledOrders': orders_in(current, 'cancelled'),
        'totalRevenue': current_revenue,
        'previousPeriodRevenue': previous_revenue,

        'userChange': percentage_change(current_users, previous_users),
        'productChange': percentage_change(current_products, previous_products),
        'orderChange': percentage_change(current_orders, previous_orders),
        'revenueChange': percentage_change(current_revenue, previous_revenue),

        'lifetimeUsers': _count(session.query(func.count(User.id)).filter(User.role == 'client')),
        'lifetimeProducts': _count(session.query(func.count(Product.id)).filter(Product.is_deleted.is_(False))),
        'lifetimeOrders': _count(session.query(func.count(Order.id))),
        'lifetimeRevenue': _revenue(session),
        'totalCategories': _count(session.query(func.count(Category.id))),

        'period': period.name
    }


# ---------------------------
# Time series
# ---------------------------

def _buckets(period, moments):
    """Ordered {label: [rows]} keyed by the period each moment falls in"""
    grouped = OrderedDict()
    for moment, row in sorted(moments, key=lambda pair: pair[0]):
        grouped.setdefault(period.label(moment), []).append(row)
    return grouped


def sales_over_time(session, period, now=None):
    now = now or datetime.utcnow()
    rows = session.query(Order.id, Order.created_at, OrderItem.total_price) \
        .outerjoin(OrderItem, OrderItem.order_id == Order.id) \
        .filter(Order.status.in_(REVENUE_STATUSES),
                Order.created_at >= period.lookback_start(now)) \
        .all()

    result = []
    for label, bucket in _buckets(period, [(row.created_at, row) for row in rows]).items():
        order_count = len({row.id for row in bucket})
        sales = float(sum(row.total_price or 0 for row in bucket))
        result.append({
            'period': label,
            'orderCount': order_count,
            'sales': sales,
            'avgOrderValue': round(sales / order_count, 2) if order_count else 0.0
        })
    return result


def user_growth(session, period, now=None):
    now = now or datetime.utcnow()
    users = session.query(User).filter(
        User.role == 'client',
        User.created_at >= period.lookback_start(now)
    ).all()

    return [
        {'period': label, 'newUsers': len(bucket)}
        for label, bucket in _buckets(period, [(user.created_at, user) for user in users]).items()
    ]


def order_growth(session, period, now=None):
    now = now or datetime.utcnow()
    orders = session.query(Order).filter(Order.created_at >= period.lookback_start(now)).all()

    result = []
    for label, bucket in _buckets(period, [(order.created_at, order) for order in orders]).items():
        statuses = [order.status for order in bucket]
        result.append({
            'period': label,
            'newOrders': len(bucket),
            'pendingOrders': statuses.count('pending'),
            'approvedOrders': statuses.count('approved'),
            'completedOrders': statuses.count('completed'),
            'cancelledOrders': statuses.count('cancelled')
        })
    return result


# ---------------------------
# Breakdowns
# ---------------------------

def _revenue_lines(session, columns, period, now):
    """Query over revenue order items inside the lookback window, joined to their product"""
    return session.query(*columns) \
        .select_from(OrderItem) \
        .join(Order, OrderItem.order_id == Order.id) \
        .join(Product, OrderItem.product_id == Product.id) \
        .filter(Order.status.in_(REVENUE_STATUSES),
                Order.created_at >= period.lookback_start(now),
                Product.is_deleted.is_(False))


def popular_products(session, period, now=None):
    now = now or datetime.utcnow()
    total_sales = func.sum(OrderItem.total_price).label('total_sales')
    rows = _revenue_lines(session, (
        Product.id,
        Product.name,
        Product.price_per_day,
        func.count(distinct(Order.id)).label('order_count'),
        func.sum(OrderItem.quantity).label('total_quantity'),
        total_sales,
        func.avg(OrderItem.total_price).label('avg_sale')
    ), period, now) \
        .group_by(Product.id, Product.name, Product.price_per_day) \
        .order_by(total_sales.desc(), Product.id) \
        .limit(POPULAR_PRODUCTS_LIMIT) \
        .all()

    return [
        {
            'id': row.id,
            'name': row.name,
            'pricePerDay': money_out(row.price_per_day),
            'orderCount': row.order_count,
            'totalQuantity': int(row.total_quantity or 0),
            'totalSales': float(row.total_sales or 0),
            'avgSaleValue': round(float(row.avg_sale or 0), 2)
        }
        for row in rows
    ]


def revenue_breakdown(session):
    """Order count and item revenue per order status, all time"""
    total_revenue = func.coalesce(func.sum(OrderItem.total_price), 0).label('total_revenue')
    rows = session.query(
        Order.status,
        func.count(distinct(Order.id)).label('order_count'),
        total_revenue
    ).outerjoin(OrderItem, OrderItem.order_id == Order.id) \
        .group_by(Order.status) \
        .order_by(total_revenue.desc(), Order.status) \
        .all()

    return [
        {'status': row.status, 'orderCount': row.order_count, 'totalRevenue': float(row.total_revenue or 0)}
        for row in rows
    ]


def category_performance(session, period, now=None):
    now = now or datetime.utcnow()
    total_revenue = func.sum(OrderItem.total_price).label('total_revenue')
    rows = _revenue_lines(session, (
        Category.id.label('category_id'),
        Category.name.label('category_name'),
        func.count(distinct(Product.id)).label('product_count'),
        func.count(distinct(Order.id)).label('order_count'),
        func.sum(OrderItem.quantity).label('total_quantity'),
        total_revenue
    ), period, now) \
        .outerjoin(Category, Product.category_id == Category.id) \
        .group_by(Category.id, Category.name) \
        .order_by(total_revenue.desc()) \
        .all()

    # Products without a category are reported together under id 0
    return [
        {
            'categoryId': row.category_id or 0,
            'categoryName': row.category_name or 'Uncategorized',
            'productCount': row.product_count,
            'orderCount': row.order_count,
            'totalQuantityRented': int(row.total_quantity or 0),
            'totalRevenue': float(row.total_revenue or 0)
        }
        for row in rows
    ]

import logging

from flask import Blueprint, jsonify

from errors import NotFound, ValidationError
from extensions import db
from identity import admin_required
from models import PageContent
from schemas import PageUpdate, parse_body

logger = logging.getLogger(__name__)

pages_bp = Blueprint('pages', __name__, url_prefix='/api/pages')

MISSING_PAGE = '<h1>Page not found</h1>'


@pages_bp.route('/<page_name>', methods=['GET'])
def get_page(page_name):
    page = PageContent.query.filter_by(page_name=page_name).first()
    return jsonify({'content': page.content if page else MISSING_PAGE})


@pages_bp.route('', methods=['GET'])
@admin_required
def list_pages():
    pages = PageContent.query.order_by(PageContent.page_name).all()
    return jsonify([page.to_dict() for page in pages])


@pages_bp.route('/<page_name>', methods=['PUT'])
@admin_required
def update_page(page_name):
    data = parse_body(PageUpdate)
    if data.content is None:
        raise ValidationError('Missing required field: content')

    page = PageContent.query.filter_by(page_name=page_name).first()
    if page is None:
        raise NotFound('Page not found')

    page.content = data.content
    db.session.commit()
    logger.info(f"[PAGES] Updated page {page_name}")
    return jsonify({'message': 'Page updated'})

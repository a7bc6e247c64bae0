import logging

from flask import Blueprint, jsonify

import upload_service
from errors import NotFound, ValidationError
from extensions import db
from identity import admin_required
from models import Category, Product
from schemas import CategoryRequest, parse_body

logger = logging.getLogger(__name__)

categories_bp = Blueprint('categories', __name__, url_prefix='/api/categories')


def _get_category(category_id):
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFound('Category not found')
    return category


@categories_bp.route('', methods=['GET'])
def list_categories():
    categories = Category.query.order_by(Category.name).all()
    return jsonify([category.to_dict() for category in categories])


@categories_bp.route('/<int:category_id>', methods=['GET'])
def get_category(category_id):
    return jsonify(_get_category(category_id).to_dict())


@categories_bp.route('', methods=['POST'])
@admin_required
def add_category():
    data = parse_body(CategoryRequest)
    if not data.name:
        raise ValidationError('Missing required field: name')

    image_url = None
    if upload_service.is_image_data(data.imageBase64):
        image_url = upload_service.image_uploader.upload(data.imageBase64)

    category = Category(name=data.name, description=data.description, image_url=image_url)
    db.session.add(category)
    db.session.commit()

    logger.info(f"[CATEGORIES] Added category {category.id}: {category.name}")
    return jsonify({'message': 'Category added', 'id': category.id}), 201


@categories_bp.route('/<int:category_id>', methods=['PUT'])
@admin_required
def update_category(category_id):
    category = _get_category(category_id)
    data = parse_body(CategoryRequest)

    changed = False
    if data.name:
        category.name = data.name
        changed = True
    if data.description is not None:
        category.description = data.description
        changed = True
    if upload_service.is_image_data(data.imageBase64):
        category.image_url = upload_service.image_uploader.upload(data.imageBase64)
        changed = True

    if not changed:
        raise ValidationError('No valid fields provided for update')

    db.session.commit()
    logger.info(f"[CATEGORIES] Updated category {category_id}")
    return jsonify({'message': 'Category updated'})


@categories_bp.route('/<int:category_id>', methods=['DELETE'])
@admin_required
def delete_category(category_id):
    category = _get_category(category_id)

    # Products outlive their category
    Product.query.filter_by(category_id=category_id) \
        .update({'category_id': None}, synchronize_session=False)
    db.session.delete(category)
    db.session.commit()

    logger.info(f"[CATEGORIES] Deleted category {category_id}")
    return jsonify({'message': 'Category deleted'})

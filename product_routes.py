import logging

from flask import Blueprint, current_app, jsonify, request

import upload_service
from errors import NotFound, ValidationError
from extensions import db
from identity import admin_required
from models import Category, Product
from pricing import to_money
from schemas import ProductRequest, parse_body

logger = logging.getLogger(__name__)

products_bp = Blueprint('products', __name__, url_prefix='/api/products')


def _check_price(value, field):
    if value is None or value <= 0:
        raise ValidationError(f'Invalid {field}: must be a positive number')
    return to_money(value)


def _check_category(category_id):
    if category_id is None:
        return None
    if category_id <= 0 or db.session.get(Category, category_id) is None:
        raise ValidationError('Invalid category_id')
    return category_id


def _check_gallery_size(urls, message):
    if len(urls) > current_app.config['MAX_GALLERY_IMAGES']:
        raise ValidationError(message)


def _live_product(product_id):
    product = Product.query.filter_by(id=product_id, is_deleted=False).first()
    if product is None:
        raise NotFound('Product not found')
    return product


@products_bp.route('', methods=['GET'])
def list_products():
    """Public catalog: available products, newest first"""
    query = Product.query.filter_by(available=True, is_deleted=False)
    category_id = request.args.get('category', type=int)
    if category_id:
        query = query.filter_by(category_id=category_id)
    products = query.order_by(Product.created_at.desc(), Product.id.desc()).all()
    return jsonify([product.to_dict() for product in products])


@products_bp.route('/deleted', methods=['GET'])
@admin_required
def list_deleted_products():
    products = Product.query.filter_by(is_deleted=True) \
        .order_by(Product.created_at.desc(), Product.id.desc()).all()
    return jsonify([product.to_dict() for product in products])


@products_bp.route('/<int:product_id>', methods=['GET'])
def get_product(product_id):
    return jsonify(_live_product(product_id).to_dict())


@products_bp.route('', methods=['POST'])
@admin_required
def add_product():
    data = parse_body(ProductRequest)

    if not data.name or not data.description or data.regular_price is None:
        raise ValidationError('Missing required fields: name, description, regular_price')
    price = _check_price(data.regular_price, 'regular_price')
    sale_price = _check_price(data.sale_price, 'sale_price') if data.sale_price is not None else None
    _check_gallery_size(data.galleryBase64, 'Gallery can have at most 10 images')
    category_id = _check_category(data.category_id)

    uploader = upload_service.image_uploader
    image_url = uploader.upload(data.imageBase64) if upload_service.is_image_data(data.imageBase64) else None
    gallery = uploader.upload_many(data.galleryBase64)

    product = Product(
        name=data.name,
        description=data.description,
        price_per_day=price,
        sale_price=sale_price,
        image_url=image_url,
        available=True if data.available is None else data.available,
        is_deleted=False,
        category_id=category_id
    )
    product.gallery = gallery
    db.session.add(product)
    db.session.commit()

    logger.info(f"[PRODUCTS] Added product {product.id}: {product.name}")
    return jsonify({'message': 'Product added', 'id': product.id}), 201


@products_bp.route('/<int:product_id>', methods=['PUT'])
@admin_required
def update_product(product_id):
    """Partial update; omitted fields keep their current value"""
    product = _live_product(product_id)
    data = parse_body(ProductRequest)
    fields = data.model_fields_set

    if data.name:
        product.name = data.name
    if data.description:
        product.description = data.description
    if data.regular_price is not None:
        product.price_per_day = _check_price(data.regular_price, 'regular_price')
    if 'sale_price' in fields:
        # An explicit null or empty value clears the sale
        product.sale_price = _check_price(data.sale_price, 'sale_price') if data.sale_price is not None else None
    if 'category_id' in fields:
        product.category_id = _check_category(data.category_id)
    if data.available is not None:
        product.available = data.available

    uploader = upload_service.image_uploader
    if upload_service.is_image_data(data.imageBase64):
        product.image_url = uploader.upload(data.imageBase64)

    if data.galleryBase64:
        gallery = product.gallery + uploader.upload_many(data.galleryBase64)
        _check_gallery_size(gallery, 'Total gallery images cannot exceed 10')
        product.gallery = gallery
    elif data.existingGalleryImages is not None:
        _check_gallery_size(data.existingGalleryImages, 'Total gallery images cannot exceed 10')
        product.gallery = data.existingGalleryImages

    db.session.commit()
    logger.info(f"[PRODUCTS] Updated product {product.id}")
    return jsonify({'message': 'Product updated', 'product': product.to_dict()})


@products_bp.route('/<int:product_id>', methods=['DELETE'])
@admin_required
def delete_product(product_id):
    """Soft delete: the product moves to the trash"""
    product = _live_product(product_id)
    product.is_deleted = True
    db.session.commit()
    logger.info(f"[PRODUCTS] Soft deleted product {product_id}")
    return jsonify({'message': 'Product deleted'})


@products_bp.route('/<int:product_id>/restore', methods=['PUT'])
@admin_required
def restore_product(product_id):
    product = Product.query.filter_by(id=product_id, is_deleted=True).first()
    if product is None:
        raise NotFound('Product not found in trash')
    product.is_deleted = False
    db.session.commit()
    logger.info(f"[PRODUCTS] Restored product {product_id}")
    return jsonify({'message': 'Product restored'})

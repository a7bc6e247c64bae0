import logging

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from auth_routes import check_password_length
from errors import ValidationError
from extensions import db
from identity import admin_required
from models import User
from schemas import PasswordChange, ProfileUpdate, parse_body

logger = logging.getLogger(__name__)

users_bp = Blueprint('users', __name__, url_prefix='/api/users')


@users_bp.route('/profile', methods=['GET'])
@login_required
def get_profile():
    return jsonify(current_user.to_dict())


@users_bp.route('/profile', methods=['PUT'])
@login_required
def update_profile():
    data = parse_body(ProfileUpdate)

    if data.email and data.email != current_user.email:
        taken = User.query.filter(User.email == data.email, User.id != current_user.id).first()
        if taken:
            raise ValidationError('Email already in use')
        current_user.email = data.email

    if data.username:
        current_user.username = data.username
    if data.address is not None:
        current_user.address = data.address or None
    if data.phone is not None:
        current_user.phone = data.phone or None

    db.session.commit()
    logger.info(f"[PROFILE] Updated profile for user {current_user.id}")
    return jsonify({'message': 'Profile updated', 'user': current_user.to_dict()})


@users_bp.route('/password', methods=['PUT'])
@login_required
def change_password():
    data = parse_body(PasswordChange)

    if not data.oldPassword or not data.newPassword:
        raise ValidationError('Old and new passwords are required')
    if not current_user.check_password(data.oldPassword):
        raise ValidationError('Incorrect old password')
    check_password_length(data.newPassword)

    current_user.set_password(data.newPassword)
    db.session.commit()
    logger.info(f"[PROFILE] Password changed for user {current_user.id}")
    return jsonify({'message': 'Password updated successfully'})


@users_bp.route('', methods=['GET'])
@admin_required
def list_users():
    users = User.query.order_by(User.created_at.desc(), User.id.desc()).all()
    return jsonify([user.to_dict() for user in users])

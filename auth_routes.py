import logging

from flask import Blueprint, jsonify

from errors import AuthFailure, ValidationError
from extensions import db
from identity import issue_token
from models import User
from schemas import LoginRequest, RegisterRequest, parse_body

logger = logging.getLogger(__name__)

# Create auth blueprint
auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')

MIN_PASSWORD_LENGTH = 6


def check_password_length(password):
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters long')


@auth_bp.route('/register', methods=['POST'])
def register():
    """Register a new client account"""
    data = parse_body(RegisterRequest)

    if not all([data.username, data.email, data.password, data.address, data.phone]):
        raise ValidationError('All fields (username, email, password, address, phone) are required')

    logger.info(f"[REGISTER] Registration attempt for: {data.email}")

    if User.query.filter_by(email=data.email).first():
        raise ValidationError('Email already in use')
    check_password_length(data.password)

    # Self-registration always creates a client; admins come from seed data
    user = User(
        username=data.username,
        email=data.email,
        role='client',
        address=data.address,
        phone=data.phone
    )
    user.set_password(data.password)
    db.session.add(user)
    db.session.commit()

    logger.info(f"[REGISTER] Created user {user.id} for: {data.email}")
    return jsonify({'message': 'User registered'}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    """Login user and return JWT token"""
    data = parse_body(LoginRequest)
    logger.info(f"[LOGIN] Login attempt for: {data.email}")

    user = User.query.filter_by(email=data.email).first() if data.email else None
    if not user or not data.password or not user.check_password(data.password):
        logger.info(f"[LOGIN] Invalid credentials for: {data.email}")
        raise AuthFailure('Invalid credentials')

    token = issue_token(user)
    logger.info(f"[LOGIN] Login successful for: {data.email}")

    return jsonify({
        'token': token,
        'user': {
            'id': user.id,
            'username': user.username,
            'email': user.email,
            'role': user.role
        }
    })

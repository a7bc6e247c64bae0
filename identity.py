"""
Request identity: registered users (JWT bearer token) or anonymous guests
(an opaque guest session id).
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from functools import wraps
from typing import Union

import jwt
from flask import current_app, g, request
from flask_login import current_user

from errors import AuthFailure, ValidationError
from extensions import db, login_manager
from models import User

logger = logging.getLogger(__name__)

# Matches the guest_session_id column width
GUEST_SESSION_MAX_LENGTH = 64


@dataclass(frozen=True)
class UserOwner:
    user_id: int


@dataclass(frozen=True)
class GuestOwner:
    session_id: str


Owner = Union[UserOwner, GuestOwner]


def owner_filter(model, owner):
    """SQL predicate restricting ``model`` rows to the given owner"""
    if isinstance(owner, UserOwner):
        return model.user_id == owner.user_id
    return model.guest_session_id == owner.session_id


def owner_columns(owner):
    """Column values recording ``owner`` on a new cart row or order"""
    if isinstance(owner, UserOwner):
        return {'user_id': owner.user_id, 'guest_session_id': None}
    return {'user_id': None, 'guest_session_id': owner.session_id}


# ---------------------------
# Tokens
# ---------------------------

def issue_token(user):
    payload = {
        'id': user.id,
        'role': user.role,
        'exp': datetime.utcnow() + current_app.config['JWT_EXPIRES_IN']
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET_KEY'],
                      algorithm=current_app.config['JWT_ALGORITHM'])


def decode_token(auth_header):
    """Decode an ``Authorization: Bearer <token>`` header into its claims"""
    if not auth_header or not auth_header.startswith('Bearer '):
        raise AuthFailure('No token provided')

    token = auth_header[len('Bearer '):].strip()
    try:
        claims = jwt.decode(token, current_app.config['JWT_SECRET_KEY'],
                            algorithms=[current_app.config['JWT_ALGORITHM']])
    except jwt.ExpiredSignatureError:
        raise AuthFailure('Token expired, please log in again')
    except jwt.InvalidTokenError as e:
        raise AuthFailure(f'Invalid token: {e}')

    if not claims.get('id'):
        raise AuthFailure('Invalid token: missing user ID')
    return claims


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))


@login_manager.request_loader
def load_user_from_request(req):
    auth_header = req.headers.get('Authorization')
    if not auth_header:
        return None

    claims = decode_token(auth_header)
    user = db.session.get(User, claims['id'])
    if user is None:
        logger.info(f"[AUTH] Token for unknown user {claims['id']}")
        raise AuthFailure('Invalid token: user no longer exists')
    return user


@login_manager.unauthorized_handler
def unauthorized():
    raise AuthFailure('No token provided')


# ---------------------------
# Guest sessions
# ---------------------------

def _guest_session_from_request():
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        from_body = body.get('guest_session_id') or body.get('guestSessionId')
        if isinstance(from_body, str) and from_body:
            return from_body

    from_query = request.args.get('guestSessionId')
    if from_query:
        return from_query
    return request.cookies.get(current_app.config['GUEST_SESSION_COOKIE'])


def resolve_owner():
    """Resolve the owner of the current request.

    Authenticated requests resolve to their user. Anonymous requests use the
    guest session id they carry, or get a new one which is sent back as a
    cookie once the response is built.
    """
    if current_user.is_authenticated:
        if request.cookies.get(current_app.config['GUEST_SESSION_COOKIE']):
            g.clear_guest_session = True
        return UserOwner(current_user.id)

    session_id = _guest_session_from_request()
    if session_id and len(session_id) > GUEST_SESSION_MAX_LENGTH:
        raise ValidationError('Invalid guest session id')
    if not session_id:
        session_id = str(uuid.uuid4())
        g.issued_guest_session = session_id
        logger.debug(f"[AUTH] Issued guest session {session_id}")
    return GuestOwner(session_id)


def apply_guest_cookie(response):
    """after_request hook that sets or clears the guest session cookie"""
    config = current_app.config
    cookie_name = config['GUEST_SESSION_COOKIE']
    production = config.get('APP_ENV') == 'production'

    issued = g.pop('issued_guest_session', None)
    if issued:
        response.set_cookie(
            cookie_name,
            issued,
            max_age=int(config['GUEST_SESSION_MAX_AGE'].total_seconds()),
            httponly=True,
            secure=production,
            samesite='None' if production else 'Lax'
        )
    elif g.pop('clear_guest_session', False):
        response.delete_cookie(cookie_name)
    return response


# ---------------------------
# Route decorators
# ---------------------------

def owner_required(f):
    """Resolve the request owner and pass it to the view as ``owner``"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        return f(*args, owner=resolve_owner(), **kwargs)
    return decorated_function


def admin_required(f):
    """Decorator to require an admin JWT"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            raise AuthFailure('No token provided')
        if not current_user.is_admin:
            logger.info(f"[AUTH] Access denied for {current_user.username} on {f.__name__}")
            raise AuthFailure('Access denied')
        return f(*args, **kwargs)
    return decorated_function

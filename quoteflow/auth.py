from functools import wraps

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from quoteflow import db, limiter
from quoteflow.business.core.persistence import commit
from quoteflow.data.core.user import User
from quoteflow.errors import Forbidden, Unauthenticated, ValidationError
from quoteflow.utils.logger import get_logger
from quoteflow.utils.logging_sanitizer import sanitize_dict

logger = get_logger("quoteflow.auth")
auth = Blueprint('auth', __name__, url_prefix='/auth')


def require_role(*roles):
    """Allow only authenticated users whose role is in ``roles``."""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                raise Unauthenticated()
            if current_user.role not in roles:
                logger.warning(f"User {current_user.username} ({current_user.role}) denied access to {request.path}")
                raise Forbidden("Insufficient permissions")
            return view(*args, **kwargs)
        return wrapped
    return decorator


require_back_office = require_role(*User.BACK_OFFICE_ROLES)


def _payload() -> dict:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


@auth.route('/login', methods=['POST'])
@limiter.limit("10 per minute")
def login():
    data = _payload()
    username = data.get('username') or data.get('email')
    password = data.get('password')

    logger.debug(f"Login attempt: {sanitize_dict(data)}")

    if not username or not password:
        logger.warning(f"Login attempt with missing credentials for username: {username}")
        raise ValidationError("Please enter both username and password")

    user = User.query.filter((User.username == username) | (User.email == username)).first()

    if user is None or not user.check_password(password):
        logger.warning(f"Failed login attempt for username: {username}")
        raise Unauthenticated("Invalid username or password")

    if not user.is_active:
        logger.warning(f"Login attempt for disabled account: {username}")
        raise Forbidden("Account is disabled")

    login_user(user, remember=bool(data.get('remember')))
    logger.info(f"Successful login for user: {user.username}")
    return jsonify({'success': True, 'user': user.to_dict()})


@auth.route('/register', methods=['POST'])
@limiter.limit("5 per minute")
def register():
    """Self-service signup; always creates a customer."""
    data = _payload()
    logger.debug(f"Registration attempt: {sanitize_dict(data)}")

    errors = {}
    for field in ('username', 'email', 'password'):
        if not data.get(field):
            errors[field] = 'is required'
    if data.get('password') and len(data['password']) < 8:
        errors['password'] = 'must be at least 8 characters'
    if errors:
        raise ValidationError("Invalid registration", details=errors)

    if User.query.filter((User.username == data['username']) | (User.email == data['email'])).first():
        raise ValidationError("Username or email already registered")

    user = User(
        username=data['username'],
        email=data['email'],
        first_name=data.get('firstName'),
        last_name=data.get('lastName'),
        company_name=data.get('companyName'),
        phone_number=data.get('phoneNumber'),
        role='customer',
    )
    user.set_password(data['password'])
    db.session.add(user)
    commit("register user")

    login_user(user)
    logger.info(f"Registered customer {user.username}")
    return jsonify({'success': True, 'user': user.to_dict()}), 201


@auth.route('/logout', methods=['POST'])
@login_required
def logout():
    username = current_user.username
    logout_user()
    logger.info(f"User logged out: {username}")
    return jsonify({'success': True, 'message': 'You have been logged out'})


@auth.route('/me')
@login_required
def me():
    return jsonify({'success': True, 'user': current_user.to_dict()})

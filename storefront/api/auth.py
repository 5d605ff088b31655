from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import IntegrityError
from storefront import db
from storefront.auth import issue_token, login_required
from storefront.errors import AuthorizationError, ConflictError
from storefront.models import User
from storefront.schemas import LoginIn, RegisterIn
from . import json_body

auth_bp = Blueprint('auth', __name__)


def _user_dict(user):
    return {
        'id': user.id,
        'email': user.email,
        'name': user.name,
        'role': user.role,
        'createdAt': user.created_at.isoformat() if user.created_at else None,
    }


@auth_bp.route('/register', methods=['POST'])
def register():
    data = RegisterIn.model_validate(json_body())
    email = data.email.lower()

    if User.query.filter_by(email=email).first():
        raise ConflictError('email already registered', code='EMAIL_IN_USE')

    user = User(email=email, name=data.name)
    user.set_password(data.password)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('email already registered', code='EMAIL_IN_USE')

    current_app.logger.info(f"User {user.id} registered")
    return jsonify(_user_dict(user)), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = LoginIn.model_validate(json_body())
    user = User.query.filter_by(email=data.email.lower()).first()

    if not user or not user.check_password(data.password):
        raise AuthorizationError('invalid credentials', code='INVALID_CREDENTIALS')

    return jsonify({'token': issue_token(user), 'user': _user_dict(user)})


@auth_bp.route('/me', methods=['GET'])
@login_required
def me(actor):
    user = db.session.get(User, actor.id)
    return jsonify(_user_dict(user))

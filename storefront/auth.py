from dataclasses import dataclass
from functools import wraps
from flask_jwt_extended import create_access_token, get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from . import db
from .constants import Role
from .errors import AuthorizationError, ForbiddenError
from .models import User


@dataclass(frozen=True)
class Actor:
    """인증된 요청자. 코어 로직은 (id, role)만 사용합니다."""
    id: int
    role: str

    @property
    def is_admin(self):
        return self.role == Role.ADMIN


def issue_token(user):
    return create_access_token(identity=str(user.id), additional_claims={'role': user.role})


def _load_actor():
    identity = get_jwt_identity()
    user = db.session.get(User, int(identity)) if identity else None
    if not user:
        raise AuthorizationError('user not found')
    # 역할은 토큰이 아닌 DB 기준 (권한 변경 즉시 반영)
    return Actor(id=user.id, role=user.role)


def authenticate():
    """Authorization: Bearer 토큰을 (id, role)로 변환. 실패 시 AuthorizationError."""
    try:
        verify_jwt_in_request()
    except (JWTExtendedException, PyJWTError) as e:
        raise AuthorizationError(str(e))
    return _load_actor()


def optional_actor():
    """토큰이 없거나 유효하지 않으면 None (비회원 주문용)."""
    try:
        verify_jwt_in_request(optional=True)
    except (JWTExtendedException, PyJWTError):
        return None
    if get_jwt_identity() is None:
        return None
    try:
        return _load_actor()
    except AuthorizationError:
        return None


def role_required(*roles):
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            actor = authenticate()
            if roles and actor.role not in roles:
                raise ForbiddenError('insufficient role')
            return f(actor, *args, **kwargs)
        return decorated_function
    return decorator


def login_required(f):
    return role_required()(f)


admin_required = role_required(Role.ADMIN)

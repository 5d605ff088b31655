"""
API 전역에서 사용하는 예외 계층.
모든 예외는 고정된 에러 코드(code)와 HTTP 상태(status_code)를 가지며,
블루프린트의 에러 핸들러가 {"error": code, "message": ...} 형태로 변환합니다.
"""


class ShopError(Exception):
    code = 'BAD_REQUEST'
    status_code = 400

    def __init__(self, message=None, code=None, detail=None):
        super().__init__(message or self.code)
        self.message = message
        if code:
            self.code = code
        self.detail = detail

    def to_dict(self):
        body = {'error': self.code}
        if self.message:
            body['message'] = self.message
        if self.detail:
            body['detail'] = self.detail
        return body


class ValidationError(ShopError):
    code = 'BAD_REQUEST'
    status_code = 400


class ProductMismatchError(ValidationError):
    code = 'PRODUCT_MISMATCH'


class NotFoundError(ShopError):
    code = 'NOT_FOUND'
    status_code = 404


class ConflictError(ShopError):
    code = 'CONFLICT'
    status_code = 409


class OutOfStockError(ConflictError):
    code = 'OUT_OF_STOCK'


class InvalidTransitionError(ConflictError):
    code = 'INVALID_TRANSITION'


class AuthorizationError(ShopError):
    code = 'UNAUTHORIZED'
    status_code = 401


class ForbiddenError(AuthorizationError):
    code = 'FORBIDDEN'
    status_code = 403


class InternalError(ShopError):
    code = 'INTERNAL_ERROR'
    status_code = 500


class ServiceUnavailableError(ShopError):
    code = 'SERVICE_UNAVAILABLE'
    status_code = 503

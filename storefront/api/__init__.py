from flask import request
from storefront.errors import ValidationError


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('JSON object body required')
    return data


def paginated(pagination, items, **extra):
    body = {
        'items': items,
        'page': pagination.page,
        'limit': pagination.per_page,
        'total': pagination.total,
    }
    body.update(extra)
    return body

from flask import Blueprint, request, jsonify
from storefront.auth import admin_required, login_required, optional_actor, role_required
from storefront.constants import Role
from storefront.errors import AuthorizationError, NotFoundError, ShopError
from storefront.schemas import CreateOrderIn, OrderQuery, UpdateOrderIn
from storefront.services.catalog import CatalogStore, variant_to_dict
from storefront.services.order_service import get_order_service
from . import json_body, paginated

order_bp = Blueprint('orders', __name__)
seller_order_bp = Blueprint('seller_orders', __name__)


@order_bp.route('', methods=['POST'])
def create_order():
    # 로그인하지 않아도 주문 가능 (유효한 토큰이 있으면 회원 주문으로 연결)
    actor = optional_actor()
    data = CreateOrderIn.model_validate(json_body())
    order = get_order_service().create(data, actor=actor)
    return jsonify({'id': order.id}), 201


@order_bp.route('', methods=['GET'])
@login_required
def list_orders(actor):
    query = OrderQuery.model_validate(request.args.to_dict())
    pagination = get_order_service().list_orders(actor, query)
    items = [{
        'id': o.id,
        'status': o.status,
        'name': o.name,
        'subtotal': o.subtotal,
        'totalPrice': o.total_price,
        'createdAt': o.created_at.isoformat() if o.created_at else None,
        'itemCount': len(o.items),
    } for o in pagination.items]
    return jsonify(paginated(pagination, items))


@order_bp.route('/<int:order_id>', methods=['GET'])
@login_required
def get_order(actor, order_id):
    order = get_order_service().get_for_actor(order_id, actor)
    return jsonify(order.to_dict())


@order_bp.route('/<int:order_id>', methods=['PATCH'])
@admin_required
def update_order(actor, order_id):
    data = UpdateOrderIn.model_validate(json_body())
    try:
        order = get_order_service().update(
            order_id,
            actor,
            status=data.status,
            deposit_amount=data.deposit_amount,
        )
    except (AuthorizationError, NotFoundError):
        raise
    except ShopError as e:
        # 상태 변경 실패는 400 으로 통일하고, 구체적인 원인은 reason 으로 전달
        body = {'error': 'BAD_REQUEST', 'reason': e.code}
        if e.message:
            body['message'] = e.message
        if e.detail:
            body['detail'] = e.detail
        return jsonify(body), 400

    return jsonify(order.to_dict())


@seller_order_bp.route('', methods=['GET'])
@role_required(Role.SELLER, Role.ADMIN)
def list_seller_orders(actor):
    query = OrderQuery.model_validate({'limit': 20, **request.args.to_dict()})
    pagination, owned_product_ids = get_order_service().list_seller_orders(actor, query)

    items = []
    for o in pagination.items:
        data = o.to_dict(include_items=False)
        # 판매자 본인 상품 라인만 노출
        data['items'] = [i.to_dict() for i in o.items if i.product_id in owned_product_ids]
        items.append(data)
    return jsonify(paginated(pagination, items))


@seller_order_bp.route('/products', methods=['GET'])
@role_required(Role.SELLER, Role.ADMIN)
def list_seller_products(actor):
    # 주문 관리 화면용 상품/옵션 목록
    products = CatalogStore.list_seller_products(actor)
    items = [{
        'id': p.id,
        'title': p.title,
        'basePrice': p.base_price,
        'imageUrl': p.cover_image_url,
        'createdAt': p.created_at.isoformat() if p.created_at else None,
        'variants': [variant_to_dict(v) for v in p.variants],
    } for p in products]
    return jsonify({'items': items})

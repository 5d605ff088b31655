from flask import Blueprint, request, jsonify
from storefront.auth import optional_actor, role_required
from storefront.constants import Role
from storefront.errors import AuthorizationError
from storefront.schemas import BulkDeleteIn, ImagesIn, ProductCreateIn, ProductQuery, ProductUpdateIn, VariantUpdateIn
from storefront.services.catalog import CatalogStore, product_to_dict, variant_to_dict
from storefront.services.social import queue_product_post
from . import json_body, paginated

product_bp = Blueprint('products', __name__)
variant_bp = Blueprint('variants', __name__)

seller_required = role_required(Role.SELLER, Role.ADMIN)


@product_bp.route('', methods=['GET'])
def get_products():
    query = ProductQuery.model_validate(request.args.to_dict())

    owner_id = None
    if query.mine:
        actor = optional_actor()
        if not actor:
            raise AuthorizationError('login required for mine=true')
        owner_id = actor.id

    pagination = CatalogStore.list_products(
        search=query.search,
        sort=query.sort,
        page=query.page,
        limit=query.limit,
        kit=query.kit.value if query.kit else None,
        quality=query.quality.value if query.quality else None,
        owner_id=owner_id,
    )
    return jsonify(paginated(pagination, [product_to_dict(p) for p in pagination.items]))


@product_bp.route('', methods=['POST'])
@seller_required
def create_product(actor):
    data = ProductCreateIn.model_validate(json_body())
    product = CatalogStore.create_product(actor, data)

    # 커밋 이후 비동기 게시 (실패해도 상품 등록에는 영향 없음)
    queue_product_post(product.id)

    return jsonify(product_to_dict(product)), 201


@product_bp.route('/<int:product_id>', methods=['GET'])
def get_product(product_id):
    return jsonify(product_to_dict(CatalogStore.get_product(product_id)))


@product_bp.route('/<int:product_id>', methods=['PATCH'])
@seller_required
def update_product(actor, product_id):
    data = ProductUpdateIn.model_validate(json_body())
    product = CatalogStore.update_product(product_id, actor, data)
    return jsonify(product_to_dict(product))


@product_bp.route('/<int:product_id>', methods=['DELETE'])
@seller_required
def delete_product(actor, product_id):
    CatalogStore.delete_product(product_id, actor)
    return '', 204


@product_bp.route('/bulk-delete', methods=['POST'])
@seller_required
def bulk_delete_products(actor):
    data = BulkDeleteIn.model_validate(json_body())
    deleted = CatalogStore.bulk_delete_products(data.ids, actor)
    return jsonify({'deleted': deleted})


@product_bp.route('/<int:product_id>/images', methods=['POST'])
@seller_required
def add_product_images(actor, product_id):
    data = ImagesIn.model_validate(json_body())
    created = CatalogStore.add_images(product_id, actor, data.images)
    return jsonify([{
        'id': img.id,
        'imageUrl': img.image_url,
        'imagePublicId': img.image_public_id,
        'order': img.position,
    } for img in created]), 201


@product_bp.route('/<int:product_id>/images/<int:image_id>', methods=['DELETE'])
@seller_required
def delete_product_image(actor, product_id, image_id):
    CatalogStore.delete_image(product_id, image_id, actor)
    return '', 204


@variant_bp.route('/<int:variant_id>', methods=['PATCH'])
@seller_required
def update_variant(actor, variant_id):
    data = VariantUpdateIn.model_validate(json_body())
    variant = CatalogStore.update_variant(variant_id, actor, data)
    return jsonify(variant_to_dict(variant))


@variant_bp.route('/<int:variant_id>', methods=['DELETE'])
@seller_required
def delete_variant(actor, variant_id):
    CatalogStore.delete_variant(variant_id, actor)
    return '', 204

from flask import Blueprint, request, jsonify
from storefront.auth import role_required
from storefront.constants import Role
from storefront.schemas import ImagesIn, TransactionCreateIn, TransactionQuery, TransactionUpdateIn
from storefront.services.ledger import LedgerService
from . import json_body

transaction_bp = Blueprint('transactions', __name__)

ledger_roles = role_required(Role.ADMIN, Role.SELLER)


@transaction_bp.route('', methods=['GET'])
@ledger_roles
def list_transactions(actor):
    query = TransactionQuery.model_validate(request.args.to_dict())
    return jsonify(LedgerService.list(actor, query))


@transaction_bp.route('', methods=['POST'])
@ledger_roles
def create_transaction(actor):
    data = TransactionCreateIn.model_validate(json_body())
    entry = LedgerService.create_manual(actor, data)
    return jsonify(entry.to_dict()), 201


@transaction_bp.route('/<int:transaction_id>', methods=['GET'])
@ledger_roles
def get_transaction(actor, transaction_id):
    return jsonify(LedgerService.get(transaction_id).to_dict())


@transaction_bp.route('/<int:transaction_id>', methods=['PATCH'])
@ledger_roles
def update_transaction(actor, transaction_id):
    data = TransactionUpdateIn.model_validate(json_body())
    entry = LedgerService.update(transaction_id, actor, data)
    return jsonify(entry.to_dict())


@transaction_bp.route('/<int:transaction_id>', methods=['DELETE'])
@ledger_roles
def delete_transaction(actor, transaction_id):
    LedgerService.delete(transaction_id, actor)
    return '', 204


@transaction_bp.route('/<int:transaction_id>/images', methods=['POST'])
@ledger_roles
def add_transaction_images(actor, transaction_id):
    data = ImagesIn.model_validate(json_body())
    created = LedgerService.add_images(transaction_id, actor, data.images)
    return jsonify([{
        'id': img.id,
        'imageUrl': img.image_url,
        'imagePublicId': img.image_public_id,
        'order': img.position,
    } for img in created]), 201


@transaction_bp.route('/<int:transaction_id>/images/<int:image_id>', methods=['DELETE'])
@ledger_roles
def delete_transaction_image(actor, transaction_id, image_id):
    LedgerService.delete_image(transaction_id, image_id, actor)
    return '', 204

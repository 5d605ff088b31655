from flask import Blueprint, jsonify
from storefront.auth import admin_required
from storefront.services.catalog import CatalogStore
from storefront.services.social import queue_missing_posts

admin_bp = Blueprint('admin', __name__)


@admin_bp.route('/instagram/publish-missing', methods=['POST'])
@admin_required
def publish_missing(actor):
    """Instagram 게시 기록이 없는 상품을 다시 큐에 넣습니다."""
    results = queue_missing_posts(CatalogStore.unpublished_products())
    summary = {
        'total': len(results),
        'queued': sum(1 for r in results if r['status'] == 'queued'),
        'skipped': sum(1 for r in results if r['status'] == 'skipped'),
        'errors': sum(1 for r in results if r['status'] == 'error'),
    }
    return jsonify({'summary': summary, 'results': results})

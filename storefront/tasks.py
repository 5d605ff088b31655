from celery import shared_task
from flask import current_app
from . import db
from .models import Product
from .services.social import InstagramPublishError, InstagramService, build_caption


@shared_task(ignore_result=True)
def publish_product_to_instagram(product_id):
    """신규 상품을 Instagram 에 게시 (best-effort). 실패는 로그만 남깁니다."""
    product = db.session.get(Product, product_id)
    if not product:
        current_app.logger.warning(f"Instagram publish skipped: product {product_id} not found")
        return None
    if product.instagram_post_id:
        return product.instagram_post_id

    service = InstagramService.from_config(current_app.config)
    image_urls = [img.image_url for img in product.images]
    try:
        post_id = service.publish(image_urls, build_caption(product))
    except InstagramPublishError as e:
        current_app.logger.warning(f"Instagram publish failed for product {product_id}: {e}")
        return None

    product.instagram_post_id = post_id
    db.session.commit()
    current_app.logger.info(f"Product {product_id} published to Instagram ({post_id})")
    return post_id

from flask import current_app
from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from storefront import db
from storefront.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from storefront.models import OrderItem, Product, ProductImage, ProductVariant
from storefront.services.pricing import VariantSnapshot


SORTABLE_FIELDS = {
    'createdAt': Product.created_at,
    'price': Product.base_price,
    'title': Product.title,
}

PRODUCT_REQUIRED_FIELDS = ('title', 'base_price')
VARIANT_REQUIRED_FIELDS = ('name',)


def _assert_owner(product, actor):
    if not actor.is_admin and product.owner_id != actor.id:
        raise ForbiddenError('not the product owner')


def _apply_changes(target, changes, required=()):
    # 필수 컬럼에 대한 명시적 null 은 무시
    for key, value in changes.items():
        if value is None and key in required:
            continue
        setattr(target, key, value)


class CatalogStore:
    @staticmethod
    def find_variants(variant_ids):
        """주문 계산용 스냅샷 {variant_id: VariantSnapshot}"""
        ids = list(set(variant_ids))
        if not ids:
            return {}

        variants = ProductVariant.query.filter(ProductVariant.id.in_(ids)).options(
            selectinload(ProductVariant.product).selectinload(Product.images)
        ).all()

        return {
            v.id: VariantSnapshot(
                id=v.id,
                product_id=v.product_id,
                product_title=v.product.title,
                name=v.name,
                stock=v.stock,
                base_price=v.product.base_price,
                price=v.price,
                image_url=v.image_url or v.product.cover_image_url or '',
            )
            for v in variants
        }

    @staticmethod
    def decrement_stock(variant_id, qty):
        """
        재고 >= qty 인 경우에만 차감하는 조건부 UPDATE.
        읽고-비교하고-쓰는 대신 DB 한 문장으로 처리하므로 동시 결제에서도 음수가 되지 않습니다.
        커밋은 호출자(트랜잭션 소유자)가 합니다.
        """
        if qty <= 0:
            raise ValidationError('quantity must be positive')

        result = db.session.execute(
            update(ProductVariant)
            .where(ProductVariant.id == variant_id, ProductVariant.stock >= qty)
            .values(stock=ProductVariant.stock - qty)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def restock(variant_id, qty):
        if qty <= 0:
            raise ValidationError('restock quantity must be positive')
        db.session.execute(
            update(ProductVariant)
            .where(ProductVariant.id == variant_id)
            .values(stock=ProductVariant.stock + qty)
            .execution_options(synchronize_session=False)
        )

    # --- 상품 CRUD ---

    @staticmethod
    def get_product(product_id):
        product = db.session.get(Product, product_id)
        if not product:
            raise NotFoundError(f"product {product_id} not found")
        return product

    @staticmethod
    def list_products(search=None, sort='createdAt:desc', page=1, limit=12, kit=None, quality=None, owner_id=None):
        query = Product.query.options(selectinload(Product.variants), selectinload(Product.images))

        if search:
            term = f"%{search}%"
            query = query.filter(or_(Product.title.ilike(term), Product.description.ilike(term)))
        if kit:
            query = query.filter(Product.kit == kit)
        if quality:
            query = query.filter(Product.quality == quality)
        if owner_id is not None:
            query = query.filter(Product.owner_id == owner_id)

        field_name, _, direction = sort.partition(':')
        column = SORTABLE_FIELDS.get(field_name, Product.created_at)
        query = query.order_by(column.asc() if direction == 'asc' else column.desc(), Product.id.desc())

        pagination = query.paginate(page=page, per_page=limit, error_out=False)
        return pagination

    @staticmethod
    def create_product(actor, data):
        product = Product(
            owner_id=actor.id,
            title=data.title,
            description=data.description,
            base_price=data.base_price,
            kit=data.kit.value if data.kit else None,
            quality=data.quality.value if data.quality else None,
            season_label=data.season_label,
            season_start=data.season_start,
        )
        for v in data.variants:
            product.variants.append(ProductVariant(
                name=v.name, stock=v.stock, price=v.price, sku=v.sku, image_url=v.image_url,
            ))
        for position, image in enumerate(data.images):
            product.images.append(ProductImage(
                image_url=image.image_url, image_public_id=image.image_public_id, position=position,
            ))

        db.session.add(product)
        _commit_or_conflict('duplicate variant name or sku')
        current_app.logger.info(f"Product {product.id} created by user {actor.id} ({len(product.variants)} variants)")
        return product

    @staticmethod
    def update_product(product_id, actor, data):
        product = CatalogStore.get_product(product_id)
        _assert_owner(product, actor)

        changes = data.model_dump(exclude_unset=True)
        for key in ('kit', 'quality'):
            if changes.get(key) is not None:
                changes[key] = changes[key].value
        _apply_changes(product, changes, PRODUCT_REQUIRED_FIELDS)

        db.session.commit()
        return product

    @staticmethod
    def delete_product(product_id, actor):
        product = CatalogStore.get_product(product_id)
        _assert_owner(product, actor)

        ordered = db.session.query(OrderItem.id).filter(OrderItem.product_id == product.id).first()
        if ordered:
            raise ConflictError('product has orders and cannot be deleted', code='PRODUCT_IN_USE')

        db.session.delete(product)
        db.session.commit()

    @staticmethod
    def bulk_delete_products(product_ids, actor):
        """여러 상품을 한 번에 삭제. 하나라도 거절되면 아무것도 삭제하지 않습니다."""
        products = Product.query.filter(Product.id.in_(list(set(product_ids)))).all()
        for product in products:
            _assert_owner(product, actor)

        ids = [p.id for p in products]
        if ids:
            in_use = db.session.query(OrderItem.product_id).filter(OrderItem.product_id.in_(ids)).first()
            if in_use:
                raise ConflictError(f"product {in_use[0]} has orders and cannot be deleted", code='PRODUCT_IN_USE')

        for product in products:
            db.session.delete(product)
        db.session.commit()
        current_app.logger.info(f"{len(ids)} products deleted by user {actor.id}")
        return len(ids)

    @staticmethod
    def list_seller_products(actor):
        """판매자 본인 상품 (관리자는 전체), 최신순"""
        query = Product.query.options(selectinload(Product.variants), selectinload(Product.images))
        if not actor.is_admin:
            query = query.filter(Product.owner_id == actor.id)
        return query.order_by(Product.created_at.desc(), Product.id.desc()).all()

    @staticmethod
    def unpublished_products():
        return Product.query.options(selectinload(Product.images)).filter(
            Product.instagram_post_id.is_(None)
        ).order_by(Product.id).all()

    # --- 옵션 ---

    @staticmethod
    def update_variant(variant_id, actor, data):
        variant = db.session.get(ProductVariant, variant_id)
        if not variant:
            raise NotFoundError(f"variant {variant_id} not found")
        _assert_owner(variant.product, actor)

        changes = data.model_dump(exclude_unset=True)
        restock_qty = changes.pop('restock', None)
        _apply_changes(variant, changes, VARIANT_REQUIRED_FIELDS)
        if restock_qty:
            CatalogStore.restock(variant.id, restock_qty)

        _commit_or_conflict('duplicate variant name or sku')
        db.session.refresh(variant)
        return variant

    @staticmethod
    def delete_variant(variant_id, actor):
        variant = db.session.get(ProductVariant, variant_id)
        if not variant:
            raise NotFoundError(f"variant {variant_id} not found")
        _assert_owner(variant.product, actor)
        db.session.delete(variant)
        db.session.commit()

    # --- 이미지 (업로드는 외부 호스트, 여기서는 URL만 기록) ---

    @staticmethod
    def add_images(product_id, actor, images):
        product = CatalogStore.get_product(product_id)
        _assert_owner(product, actor)

        start = max((img.position for img in product.images), default=-1) + 1
        created = []
        for offset, image in enumerate(images):
            position = image.order if image.order is not None else start + offset
            img = ProductImage(
                product_id=product.id,
                image_url=image.image_url,
                image_public_id=image.image_public_id,
                position=position,
            )
            db.session.add(img)
            created.append(img)

        db.session.commit()
        return created

    @staticmethod
    def delete_image(product_id, image_id, actor):
        product = CatalogStore.get_product(product_id)
        _assert_owner(product, actor)

        image = ProductImage.query.filter_by(id=image_id, product_id=product.id).first()
        if not image:
            raise NotFoundError(f"image {image_id} not found")
        db.session.delete(image)
        db.session.commit()


def _commit_or_conflict(message):
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(message)


def product_to_dict(product):
    return {
        'id': product.id,
        'ownerId': product.owner_id,
        'title': product.title,
        'description': product.description,
        'basePrice': product.base_price,
        'kit': product.kit,
        'quality': product.quality,
        'seasonLabel': product.season_label,
        'seasonStart': product.season_start,
        'instagramPostId': product.instagram_post_id,
        'createdAt': product.created_at.isoformat() if product.created_at else None,
        'variants': [variant_to_dict(v) for v in product.variants],
        'images': [{
            'id': img.id,
            'imageUrl': img.image_url,
            'imagePublicId': img.image_public_id,
            'order': img.position,
        } for img in product.images],
    }


def variant_to_dict(variant):
    return {
        'id': variant.id,
        'productId': variant.product_id,
        'sku': variant.sku,
        'name': variant.name,
        'stock': variant.stock,
        'price': variant.price,
        'imageUrl': variant.image_url,
    }

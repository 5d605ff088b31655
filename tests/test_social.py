"""Instagram auto-post: best-effort, never blocks product creation."""
import pytest
from storefront import db
from storefront.models import Product
from storefront.services.social import InstagramPublishError, InstagramService, build_caption, queue_product_post
from storefront.tasks import publish_product_to_instagram


BODY = {
    'title': 'Paraguay Home 2024',
    'basePrice': 250000,
    'kit': 'HOME',
    'variants': [{'name': 'M', 'stock': 2}],
    'images': [{'imageUrl': 'https://img.example.com/py-front.jpg'}],
}


@pytest.fixture
def auto_post(app):
    app.config.update(
        INSTAGRAM_AUTO_POST=True,
        INSTAGRAM_ACCESS_TOKEN='token',
        INSTAGRAM_ACCOUNT_ID='1784',
    )
    return app


def test_auto_post_disabled_by_default(app):
    assert queue_product_post(1) is False


def test_new_product_is_published(client, auto_post, seller, auth_header, monkeypatch):
    calls = []

    def fake_publish(self, image_urls, caption):
        calls.append((image_urls, caption))
        return 'ig-9001'

    monkeypatch.setattr(InstagramService, 'publish', fake_publish)

    res = client.post('/api/products', json=BODY, headers=auth_header(seller))
    assert res.status_code == 201

    db.session.expire_all()
    product = db.session.get(Product, res.get_json()['id'])
    assert product.instagram_post_id == 'ig-9001'
    assert calls[0][0] == ['https://img.example.com/py-front.jpg']
    assert calls[0][1].startswith('Paraguay Home 2024')


def test_publish_failure_does_not_break_product_creation(client, auto_post, seller, auth_header, monkeypatch):
    def failing_publish(self, image_urls, caption):
        raise InstagramPublishError('Graph API error (400)')

    monkeypatch.setattr(InstagramService, 'publish', failing_publish)

    res = client.post('/api/products', json=BODY, headers=auth_header(seller))
    assert res.status_code == 201
    db.session.expire_all()
    assert db.session.get(Product, res.get_json()['id']).instagram_post_id is None


def test_queue_failure_is_logged_not_raised(client, auto_post, seller, auth_header, monkeypatch):
    def broken_delay(*args, **kwargs):
        raise ConnectionError('broker unavailable')

    monkeypatch.setattr(publish_product_to_instagram, 'delay', broken_delay)

    res = client.post('/api/products', json=BODY, headers=auth_header(seller))
    assert res.status_code == 201


def test_already_published_product_is_skipped(auto_post, product, monkeypatch):
    product.instagram_post_id = 'ig-existing'
    db.session.commit()

    def unexpected(self, image_urls, caption):
        raise AssertionError('should not publish twice')

    monkeypatch.setattr(InstagramService, 'publish', unexpected)
    assert publish_product_to_instagram(product.id) == 'ig-existing'


def test_unconfigured_service_refuses_to_publish():
    service = InstagramService(access_token='', account_id='', api_base='https://graph.example.com/')
    assert not service.configured
    with pytest.raises(InstagramPublishError):
        service.publish(['https://img.example.com/a.jpg'], 'caption')


def test_service_requires_images():
    service = InstagramService(access_token='t', account_id='1', api_base='https://graph.example.com')
    with pytest.raises(InstagramPublishError):
        service.publish([], 'caption')


def test_build_caption(product):
    product.season_label = '2024'
    product.quality = 'FAN'
    product.description = 'Official fan version'
    caption = build_caption(product)
    assert caption.splitlines() == [
        'Club Home Jersey',
        '2024',
        'HOME / FAN',
        '',
        'Official fan version',
        '',
        'Gs. 10.000',
    ]


def test_publish_missing_requeues_unpublished_products(client, auto_post, make_product, admin, auth_header,
                                                       monkeypatch):
    monkeypatch.setattr(InstagramService, 'publish', lambda self, image_urls, caption: 'ig-retry')
    pending = make_product(title='Pending Kit')
    bare = make_product(title='Bare Kit')
    bare.images.clear()
    published = make_product(title='Published Kit')
    published.instagram_post_id = 'ig-old'
    db.session.commit()

    res = client.post('/api/admin/instagram/publish-missing', headers=auth_header(admin))
    assert res.status_code == 200
    body = res.get_json()
    assert body['summary'] == {'total': 2, 'queued': 1, 'skipped': 1, 'errors': 0}
    assert [(r['productId'], r['status']) for r in body['results']] == [
        (pending.id, 'queued'), (bare.id, 'skipped'),
    ]

    db.session.expire_all()
    assert db.session.get(Product, pending.id).instagram_post_id == 'ig-retry'
    assert db.session.get(Product, bare.id).instagram_post_id is None


def test_publish_missing_requires_credentials(client, app, admin, auth_header):
    app.config.update(INSTAGRAM_ACCESS_TOKEN='', INSTAGRAM_ACCOUNT_ID='')
    res = client.post('/api/admin/instagram/publish-missing', headers=auth_header(admin))
    assert res.status_code == 503
    assert res.get_json()['error'] == 'INSTAGRAM_NOT_CONFIGURED'


def test_publish_missing_is_admin_only(client, auto_post, seller, auth_header):
    res = client.post('/api/admin/instagram/publish-missing', headers=auth_header(seller))
    assert res.status_code == 403

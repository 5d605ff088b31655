import asyncio
import aiohttp
from flask import current_app
from storefront.errors import ServiceUnavailableError


class InstagramPublishError(Exception):
    pass


class InstagramService:
    """Instagram Graph API 게시 클라이언트 (컨테이너 생성 -> 처리 대기 -> 게시)"""

    def __init__(self, access_token, account_id, api_base, poll_attempts=30, poll_interval=2.0):
        self.access_token = access_token
        self.account_id = account_id
        self.api_base = api_base.rstrip('/')
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval

    @classmethod
    def from_config(cls, config):
        return cls(
            access_token=config.get('INSTAGRAM_ACCESS_TOKEN', ''),
            account_id=config.get('INSTAGRAM_ACCOUNT_ID', ''),
            api_base=config.get('INSTAGRAM_API_BASE', 'https://graph.instagram.com/v24.0'),
        )

    @property
    def configured(self):
        return bool(self.access_token and self.account_id)

    def publish(self, image_urls, caption):
        if not self.configured:
            raise InstagramPublishError('Instagram credentials are not configured')
        if not image_urls:
            raise InstagramPublishError('product has no images')
        try:
            return asyncio.run(self._publish(image_urls, caption))
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise InstagramPublishError(f"Graph API request failed: {e}") from e

    async def _publish(self, image_urls, caption):
        headers = {'Authorization': f"Bearer {self.access_token}"}
        timeout = aiohttp.ClientTimeout(total=60)
        async with aiohttp.ClientSession(headers=headers, timeout=timeout) as session:
            if len(image_urls) == 1:
                container_id = await self._create_container(session, {
                    'image_url': image_urls[0], 'caption': caption,
                })
            else:
                # 캐러셀: 이미지별 자식 컨테이너 생성 후 묶음 (최대 10장)
                children = []
                for url in image_urls[:10]:
                    child_id = await self._create_container(session, {
                        'image_url': url, 'is_carousel_item': 'true',
                    })
                    await self._wait_until_ready(session, child_id)
                    children.append(child_id)
                container_id = await self._create_container(session, {
                    'media_type': 'CAROUSEL', 'children': ','.join(children), 'caption': caption,
                })

            await self._wait_until_ready(session, container_id)
            data = await self._post(session, f"{self.api_base}/{self.account_id}/media_publish",
                                    {'creation_id': container_id})
            return data['id']

    async def _create_container(self, session, params):
        data = await self._post(session, f"{self.api_base}/{self.account_id}/media", params)
        return data['id']

    async def _post(self, session, url, params):
        async with session.post(url, params=params) as response:
            data = await response.json(content_type=None)
            if response.status >= 400 or 'id' not in data:
                raise InstagramPublishError(f"Graph API error ({response.status}): {data}")
            return data

    async def _wait_until_ready(self, session, container_id):
        for _ in range(self.poll_attempts):
            async with session.get(f"{self.api_base}/{container_id}", params={'fields': 'status_code'}) as response:
                data = await response.json(content_type=None)
            status_code = data.get('status_code')
            if status_code == 'FINISHED':
                return
            if status_code in ('ERROR', 'EXPIRED'):
                raise InstagramPublishError(f"Media container {container_id} status: {status_code}")
            await asyncio.sleep(self.poll_interval)
        raise InstagramPublishError(f"Media container {container_id} not ready after {self.poll_attempts} attempts")


def build_caption(product):
    lines = [product.title]
    if product.season_label:
        lines.append(product.season_label)
    details = ' / '.join(v for v in (product.kit, product.quality) if v)
    if details:
        lines.append(details)
    if product.description:
        lines.append('')
        lines.append(product.description)
    lines.append('')
    lines.append(f"Gs. {product.base_price:,}".replace(',', '.'))
    return '\n'.join(lines)


def queue_product_post(product_id):
    """
    신규 상품 자동 게시를 Celery 큐에 넣습니다.
    커밋 이후에만 호출하며, 실패해도 상품 생성 결과에는 영향을 주지 않습니다.
    """
    if not current_app.config.get('INSTAGRAM_AUTO_POST'):
        return False

    from storefront.tasks import publish_product_to_instagram
    try:
        publish_product_to_instagram.delay(product_id)
        return True
    except Exception as e:
        current_app.logger.warning(f"Instagram auto-post for product {product_id} not queued: {e}")
        return False


def queue_missing_posts(products):
    """
    instagram_post_id 가 없는 상품들을 다시 게시 큐에 넣습니다.
    이미지가 없는 상품은 건너뜁니다.
    """
    service = InstagramService.from_config(current_app.config)
    if not service.configured:
        raise ServiceUnavailableError(
            'INSTAGRAM_ACCESS_TOKEN and INSTAGRAM_ACCOUNT_ID are required', code='INSTAGRAM_NOT_CONFIGURED'
        )

    from storefront.tasks import publish_product_to_instagram
    results = []
    for product in products:
        result = {'productId': product.id, 'title': product.title}
        if not product.images:
            result['status'] = 'skipped'
        else:
            try:
                publish_product_to_instagram.delay(product.id)
                result['status'] = 'queued'
            except Exception as e:
                current_app.logger.warning(f"Instagram re-post for product {product.id} not queued: {e}")
                result['status'] = 'error'
                result['error'] = str(e)
        results.append(result)

    current_app.logger.info(
        f"Instagram publish-missing: {sum(r['status'] == 'queued' for r in results)}/{len(results)} queued"
    )
    return results

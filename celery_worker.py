# celery -A celery_worker.celery worker --loglevel=info
from storefront import create_app
from storefront.config import Config

app = create_app(Config)
celery = app.extensions['celery']

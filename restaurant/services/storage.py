import io, uuid
from minio import Minio
from restaurant.core.config import settings

ALLOWED_IMAGE_EXTENSIONS = {'.jpeg', '.jpg', '.png', '.gif'}
ALLOWED_IMAGE_TYPES = {'image/jpeg', 'image/png', 'image/gif'}

def _host() -> str:
    return settings.S3_ENDPOINT.replace('http://', '').replace('https://', '')

def _client():
    return Minio(_host(), access_key=settings.S3_ACCESS_KEY, secret_key=settings.S3_SECRET_KEY, secure=settings.S3_SECURE)

def ensure_bucket():
    c = _client()
    if not c.bucket_exists(settings.S3_BUCKET):
        c.make_bucket(settings.S3_BUCKET)

def is_allowed_image(filename: str, content_type: str | None) -> bool:
    ext = '.' + filename.rsplit('.', 1)[-1].lower() if '.' in filename else ''
    return ext in ALLOWED_IMAGE_EXTENSIONS and (content_type or '').lower() in ALLOWED_IMAGE_TYPES

def upload_bytes(data: bytes, content_type: str, ext: str = '', prefix: str = 'menu_items'):
    ensure_bucket()
    key = f"{prefix}/{uuid.uuid4().hex}{ext}"
    c = _client()
    c.put_object(settings.S3_BUCKET, key, io.BytesIO(data), length=len(data), content_type=content_type)
    scheme = 'https' if settings.S3_SECURE else 'http'
    url = f"{scheme}://{_host()}/{settings.S3_BUCKET}/{key}"
    return key, url

def object_key_from_url(url: str | None) -> str | None:
    """Key of an object this bucket served, or None for foreign URLs."""
    if not url:
        return None
    marker = f"/{settings.S3_BUCKET}/"
    if _host() not in url or marker not in url:
        return None
    return url.split(marker, 1)[1]

def delete_object(key: str) -> None:
    _client().remove_object(settings.S3_BUCKET, key)

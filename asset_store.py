import logging
import os
import secrets
import time
from collections import namedtuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from flask import current_app

from errors import StorageError
from image_processor import image_dimensions

logger = logging.getLogger(__name__)

KIND_UPLOAD = 'uploads'
KIND_THUMBNAIL = 'thumbnails'
KIND_GENERATED = 'generated'

StoredAsset = namedtuple('StoredAsset', ['kind', 'filename', 'path', 'file_size', 'width', 'height'])

EXTENSIONS = {
    'image/jpeg': '.jpg',
    'image/png': '.png',
    'image/webp': '.webp',
}


def extension_for(mime_type, fallback_name=None):
    if mime_type in EXTENSIONS:
        return EXTENSIONS[mime_type]
    if fallback_name:
        ext = os.path.splitext(fallback_name)[1].lower()
        if ext:
            return ext
    return '.jpg'


def make_filename(prefix, extension):
    """Unique, non-guessable stored filename."""
    return f"{prefix}{secrets.token_hex(16)}-{int(time.time() * 1000)}{extension}"


class LocalAssetStore:
    """Stores assets on the local filesystem, served by the app under fixed URL prefixes."""

    def __init__(self, upload_folder, generated_folder):
        upload_folder = os.path.abspath(upload_folder)
        self.folders = {
            KIND_UPLOAD: (upload_folder, '/uploads'),
            KIND_THUMBNAIL: (os.path.join(upload_folder, 'thumbnails'), '/uploads/thumbnails'),
            KIND_GENERATED: (os.path.abspath(generated_folder), '/generated'),
        }
        for directory, _ in self.folders.values():
            os.makedirs(directory, exist_ok=True)

    def _local_path(self, kind, filename):
        directory, _ = self.folders[kind]
        return os.path.join(directory, os.path.basename(filename))

    def save(self, kind, filename, data, mime_type='image/jpeg'):
        _, url_prefix = self.folders[kind]
        path = self._local_path(kind, filename)
        try:
            with open(path, 'wb') as f:
                f.write(data)
        except OSError as e:
            logger.error(f"Failed to write {path}: {str(e)}")
            raise StorageError(f'Failed to store {kind} file')
        width, height = image_dimensions(data)
        logger.info(f"Stored {kind}/{filename} ({len(data)} bytes)")
        return StoredAsset(kind, filename, f"{url_prefix}/{filename}", len(data), width, height)

    def read(self, kind, filename):
        with open(self._local_path(kind, filename), 'rb') as f:
            return f.read()

    def delete(self, kind, filename):
        path = self._local_path(kind, filename)
        try:
            os.remove(path)
            return True
        except FileNotFoundError:
            return False


class S3AssetStore:
    """Stores assets in an S3 bucket and returns their public URLs."""

    def __init__(self, bucket, region, folder_name='', access_key_id=None, secret_access_key=None):
        if not bucket:
            raise ValueError("AWS_S3_BUCKET must be set when STORAGE_BACKEND is 's3'")
        self.bucket = bucket
        self.region = region
        self.folder_name = folder_name.strip('/') if folder_name else ''
        self.client = boto3.client(
            's3',
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
        )

    def _key(self, kind, filename):
        key = f"{kind}/{os.path.basename(filename)}"
        return f"{self.folder_name}/{key}" if self.folder_name else key

    def save(self, kind, filename, data, mime_type='image/jpeg'):
        key = self._key(kind, filename)
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=mime_type)
        except (BotoCoreError, ClientError) as e:
            logger.error(f"S3 upload failed for {key}: {str(e)}")
            raise StorageError(f'Failed to store {kind} file')
        width, height = image_dimensions(data)
        url = f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"
        logger.info(f"Uploaded {key} to S3 ({len(data)} bytes)")
        return StoredAsset(kind, filename, url, len(data), width, height)

    def read(self, kind, filename):
        response = self.client.get_object(Bucket=self.bucket, Key=self._key(kind, filename))
        return response['Body'].read()

    def delete(self, kind, filename):
        self.client.delete_object(Bucket=self.bucket, Key=self._key(kind, filename))
        return True


def init_asset_store(app):
    """Build the configured asset store and attach it to the app."""
    backend = app.config.get('STORAGE_BACKEND', 'local')
    if backend == 's3':
        store = S3AssetStore(
            bucket=app.config.get('AWS_S3_BUCKET'),
            region=app.config.get('AWS_REGION'),
            folder_name=app.config.get('AWS_FOLDER_NAME', ''),
            access_key_id=app.config.get('AWS_ACCESS_KEY_ID'),
            secret_access_key=app.config.get('AWS_SECRET_ACCESS_KEY'),
        )
    elif backend == 'local':
        store = LocalAssetStore(app.config['UPLOAD_FOLDER'], app.config['GENERATED_FOLDER'])
    else:
        raise ValueError(f"Unknown STORAGE_BACKEND: {backend}")
    app.extensions['asset_store'] = store
    logger.info(f"Asset store: {type(store).__name__}")
    return store


def get_asset_store():
    return current_app.extensions['asset_store']


def remove_assets(assets):
    """Best-effort removal of stored files; failures are only logged."""
    store = get_asset_store()
    for kind, filename in assets:
        if not filename:
            continue
        try:
            store.delete(kind, filename)
        except Exception as e:
            logger.error(f"Failed to remove {kind}/{filename}: {type(e).__name__}: {str(e)}")

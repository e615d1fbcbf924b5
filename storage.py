import logging
import os
import secrets
import time
from collections import namedtuple

from flask import url_for
from werkzeug.utils import secure_filename

UploadResult = namedtuple('UploadResult', 'path full_path public_url')

IMAGE_EXTENSIONS = ['jpg', 'jpeg', 'png', 'gif', 'webp']


class StorageError(ValueError):
    pass


class StorageService:
    """Stores post images under the upload folder, one directory per user."""

    endpoint = 'public.uploaded_file'

    def __init__(self, app=None):
        self.root = None
        self.max_bytes = 10 * 1024 * 1024
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        self.root = os.path.abspath(app.config['UPLOAD_FOLDER'])
        self.max_bytes = app.config.get('MAX_IMAGE_BYTES', self.max_bytes)
        os.makedirs(self.root, exist_ok=True)
        app.extensions['storage'] = self

    def _resolve(self, path):
        full_path = os.path.abspath(os.path.join(self.root, path))
        if os.path.commonpath([self.root, full_path]) != self.root:
            raise StorageError('Geçersiz dosya yolu')
        return full_path

    @staticmethod
    def _size(file):
        stream = file.stream
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(0)
        return size

    def upload_post_image(self, file, user_id):
        if not file or not file.filename:
            raise StorageError('Bir resim dosyası seçin')
        if not (file.mimetype or '').startswith('image/'):
            raise StorageError('Sadece resim dosyaları yüklenebilir')
        if self._size(file) > self.max_bytes:
            raise StorageError('Dosya boyutu 10MB\'dan küçük olmalıdır')

        filename = secure_filename(file.filename)
        ext = filename.rsplit('.', 1)[1].lower() if '.' in filename else 'jpg'
        if ext not in IMAGE_EXTENSIONS:
            raise StorageError('Sadece resim dosyaları yüklenebilir')
        path = f"{user_id}/{int(time.time() * 1000)}-{secrets.token_hex(6)}.{ext}"
        full_path = self._resolve(path)

        try:
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            file.save(full_path)
        except OSError as e:
            logging.error(f"Error uploading image for user {user_id}: {e}")
            raise StorageError('Resim yüklenirken bir hata oluştu') from e

        logging.info(f"Stored post image {path}")
        return UploadResult(path, full_path, self.get_public_url(path))

    def delete_post_image(self, path):
        if not path:
            return
        full_path = self._resolve(path)
        try:
            os.remove(full_path)
        except FileNotFoundError:
            logging.warning(f"Image already missing from storage: {path}")

    def get_public_url(self, path):
        return url_for(self.endpoint, path=path)


storage = StorageService()

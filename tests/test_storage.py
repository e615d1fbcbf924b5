import io
import os
import re

import pytest
from werkzeug.datastructures import FileStorage

from storage import storage, StorageError
from conftest import PNG_BYTES


def file_storage(name='look.JPG', data=PNG_BYTES, content_type='image/jpeg'):
    return FileStorage(stream=io.BytesIO(data), filename=name, content_type=content_type)


def test_upload_uses_user_scoped_key(app):
    with app.test_request_context():
        result = storage.upload_post_image(file_storage(), user_id=7)
    assert re.fullmatch(r'7/\d{13}-[0-9a-f]{12}\.jpg', result.path)
    assert result.public_url == f'/uploads/{result.path}'
    with open(result.full_path, 'rb') as stored:
        assert stored.read() == PNG_BYTES


def test_upload_rejects_non_images(app):
    with app.test_request_context():
        with pytest.raises(StorageError, match='Sadece resim'):
            storage.upload_post_image(file_storage('a.pdf', content_type='application/pdf'), user_id=1)


def test_upload_rejects_large_files(app):
    app.extensions['storage'].max_bytes = 10
    with app.test_request_context():
        with pytest.raises(StorageError):
            storage.upload_post_image(file_storage(), user_id=1)


def test_upload_requires_a_file(app):
    with app.test_request_context():
        with pytest.raises(StorageError):
            storage.upload_post_image(None, user_id=1)


def test_delete_post_image(app):
    with app.test_request_context():
        result = storage.upload_post_image(file_storage(), user_id=3)
    storage.delete_post_image(result.path)
    assert not os.path.exists(result.full_path)
    # deleting twice is harmless
    storage.delete_post_image(result.path)


def test_paths_cannot_escape_upload_folder(app):
    with pytest.raises(StorageError):
        storage.delete_post_image('../../etc/passwd')


def test_upload_rejects_non_image_extensions_despite_image_mimetype(app):
    with app.test_request_context():
        with pytest.raises(StorageError, match='Sadece resim'):
            storage.upload_post_image(file_storage('evil.html', data=b'<script>alert(1)</script>',
                                                   content_type='image/png'), user_id=1)
    assert not os.path.exists(os.path.join(app.config['UPLOAD_FOLDER'], '1'))

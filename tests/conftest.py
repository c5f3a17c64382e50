import io
import json

import pytest
from PIL import Image, ImageDraw

from app import create_app
from models import db

SHOP_INFO = {'dealershipName': 'Sharma Traders', 'sapCode': 'SAP123', 'mobileNumber': '9876543210'}


def make_image_bytes(size=(1024, 768), fmt='JPEG'):
    """A storefront-like test photo: sky, wall, door and a sign band."""
    img = Image.new('RGB', size, (135, 180, 220))
    draw = ImageDraw.Draw(img)
    w, h = size
    draw.rectangle([0, h // 3, w, h], fill=(190, 170, 140))
    draw.rectangle([w // 3, h // 2, 2 * w // 3, h], fill=(90, 60, 40))
    draw.rectangle([w // 8, h // 3 + 10, 7 * w // 8, h // 3 + h // 10], fill=(200, 30, 30))
    output = io.BytesIO()
    img.save(output, format=fmt)
    return output.getvalue()


@pytest.fixture
def app(tmp_path):
    app = create_app(
        TESTING=True,
        DEBUG=False,
        SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'test.db'}",
        UPLOAD_FOLDER=str(tmp_path / 'uploads'),
        GENERATED_FOLDER=str(tmp_path / 'generated'),
        STORAGE_BACKEND='local',
        GEMINI_API_KEY=None,
        GENERATION_WORKERS=2,
        FRONTEND_URL='http://frontend.test',
    )
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes()


@pytest.fixture
def upload_image(client, jpeg_bytes):
    """POST a storefront photo; returns the response."""
    def _upload(user_info=None, user_id=None, data=None, filename='shop.jpg', content_type='image/jpeg'):
        form = {'image': (io.BytesIO(jpeg_bytes if data is None else data), filename, content_type)}
        if user_info is not None:
            form['userInfo'] = json.dumps(user_info)
        if user_id is not None:
            form['userId'] = str(user_id)
        return client.post('/api/upload', data=form, content_type='multipart/form-data')
    return _upload


@pytest.fixture
def upload_interior(client, jpeg_bytes):
    def _upload(user_id, storefront_design_id, data=None):
        form = {'image': (io.BytesIO(jpeg_bytes if data is None else data), 'inside.jpg', 'image/jpeg')}
        if user_id is not None:
            form['userId'] = str(user_id)
        if storefront_design_id is not None:
            form['storefrontDesignId'] = str(storefront_design_id)
        return client.post('/api/upload/interior', data=form, content_type='multipart/form-data')
    return _upload


@pytest.fixture
def storefront(client, upload_image):
    """A dealer with a storefront upload and its four generated designs."""
    def _storefront(sap_code='SAP123', dealership_name='Sharma Traders'):
        info = dict(SHOP_INFO, sapCode=sap_code, dealershipName=dealership_name)
        uploaded = upload_image(user_info=info).get_json()['data']
        generated = client.post('/api/generate', json={
            'uploadId': uploaded['uploadId'], 'userId': uploaded['userId'],
        }).get_json()['data']
        return {
            'userId': uploaded['userId'],
            'uploadId': uploaded['uploadId'],
            'designs': generated['generatedDesigns'],
        }
    return _storefront


@pytest.fixture
def interior(client, upload_interior):
    """Interior designs generated for one storefront design."""
    def _interior(user_id, storefront_design_id, design_types=None):
        uploaded = upload_interior(user_id, storefront_design_id).get_json()['data']
        body = {'uploadId': uploaded['uploadId'], 'userId': user_id}
        if design_types:
            body['designTypes'] = design_types
        generated = client.post('/api/generate/interior', json=body).get_json()['data']
        return {'uploadId': uploaded['uploadId'], 'designs': generated['generatedDesigns']}
    return _interior

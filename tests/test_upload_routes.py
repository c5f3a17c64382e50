import os
import struct
import zlib

from models import User

from conftest import SHOP_INFO, make_image_bytes


def test_storefront_upload_registers_dealer(client, upload_image, jpeg_bytes):
    response = upload_image(user_info=SHOP_INFO)
    assert response.status_code == 200
    body = response.get_json()
    assert body['success'] is True

    data = body['data']
    assert isinstance(data['userId'], int)
    assert data['width'] == 1024 and data['height'] == 768
    assert data['uploadType'] == 'storefront'
    assert data['thumbnailPath'].startswith('/uploads/thumbnails/thumb_')

    stored = client.get(data['filePath'])
    assert stored.status_code == 200
    assert stored.data == jpeg_bytes


def test_same_sap_code_resolves_to_one_user(app, upload_image):
    first = upload_image(user_info=SHOP_INFO).get_json()['data']
    second = upload_image(user_info=dict(SHOP_INFO, dealershipName='Sharma Hardware')).get_json()['data']

    assert first['userId'] == second['userId']
    with app.app_context():
        assert User.query.count() == 1
        assert User.query.one().dealership_name == 'Sharma Hardware'


def test_placeholder_user_id_is_anonymous(upload_image):
    response = upload_image(user_id='temp_1712345678')
    assert response.status_code == 200
    assert response.get_json()['data']['userId'] is None


def test_unknown_numeric_user_id_is_anonymous(upload_image):
    assert upload_image(user_id=424242).get_json()['data']['userId'] is None


def test_existing_user_id_is_kept(upload_image):
    user_id = upload_image(user_info=SHOP_INFO).get_json()['data']['userId']
    assert upload_image(user_id=user_id).get_json()['data']['userId'] == user_id


def test_upload_rejects_small_image_without_storing(app, upload_image):
    response = upload_image(data=make_image_bytes((150, 150)))
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid image'
    assert response.get_json()['success'] is False

    upload_dir = app.extensions['asset_store'].folders['uploads'][0]
    assert [name for name in os.listdir(upload_dir) if name != 'thumbnails'] == []


def test_upload_rejects_corrupt_file(upload_image):
    response = upload_image(data=b'\xff\xd8\xffnot really a jpeg')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid image'


def png_header_only(width, height):
    def chunk(kind, payload):
        return struct.pack('>I', len(payload)) + kind + payload + struct.pack('>I', zlib.crc32(kind + payload))
    ihdr = struct.pack('>IIBBBBB', width, height, 8, 2, 0, 0, 0)
    return b'\x89PNG\r\n\x1a\n' + chunk(b'IHDR', ihdr) + chunk(b'IDAT', b'') + chunk(b'IEND', b'')


def test_upload_rejects_huge_declared_dimensions(upload_image):
    response = upload_image(data=png_header_only(20000, 20000), filename='huge.png', content_type='image/png')
    assert response.status_code == 400
    body = response.get_json()
    assert body['error'] == 'Invalid image'
    assert 'decompression bomb' not in body['message']


def test_upload_rejects_wrong_type(upload_image):
    response = upload_image(filename='notes.txt', content_type='text/plain', data=b'hello')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid file type'


def test_upload_requires_file(client):
    response = client.post('/api/upload', data={}, content_type='multipart/form-data')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'No file uploaded'


def test_upload_rejects_oversized_file(app, upload_image):
    app.config['MAX_FILE_SIZE'] = 1024
    response = upload_image()
    assert response.status_code == 400
    assert response.get_json()['error'] == 'File too large'


def test_interior_upload_requires_fields(upload_interior):
    response = upload_interior(user_id=1, storefront_design_id=None)
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Missing required fields'


def test_interior_upload_checks_storefront_owner(storefront, upload_interior):
    owner = storefront()
    intruder = storefront(sap_code='SAP999', dealership_name='Other Shop')
    design_id = owner['designs'][0]['designId']

    response = upload_interior(intruder['userId'], design_id)
    assert response.status_code == 403
    assert response.get_json()['error'] == 'Invalid storefront design'

    response = upload_interior(owner['userId'], design_id)
    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['uploadType'] == 'interior'
    assert data['storefrontDesignId'] == design_id


def test_list_and_delete_uploads(app, client, storefront):
    owner = storefront()
    other = storefront(sap_code='SAP777')

    listed = client.get(f"/api/upload/{owner['userId']}").get_json()['data']
    assert [u['uploadId'] for u in listed] == [owner['uploadId']]

    response = client.delete(f"/api/upload/{owner['uploadId']}?userId={other['userId']}")
    assert response.status_code == 404

    generated_dir = app.extensions['asset_store'].folders['generated'][0]
    before = set(os.listdir(generated_dir))
    response = client.delete(f"/api/upload/{owner['uploadId']}?userId={owner['userId']}")
    assert response.status_code == 200

    removed = before - set(os.listdir(generated_dir))
    assert removed == {d['filename'] for d in owner['designs']}
    assert client.get(f"/api/upload/{owner['userId']}").get_json()['data'] == []
    assert client.get(f"/api/designs/{owner['userId']}").get_json()['data']['totalDesigns'] == 0

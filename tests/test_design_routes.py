def test_listing_filters(client, storefront, interior):
    owner = storefront()
    chosen = owner['designs'][0]
    interior(owner['userId'], chosen['designId'], design_types=['festive'])

    everything = client.get(f"/api/designs/{owner['userId']}").get_json()['data']
    assert everything['totalDesigns'] == 5
    assert len(everything['uploads']) == 2

    only_interior = client.get(f"/api/designs/{owner['userId']}?isInterior=true").get_json()['data']
    assert only_interior['totalDesigns'] == 1
    assert only_interior['uploads'][0]['uploadType'] == 'interior'

    festive = client.get(f"/api/designs/{owner['userId']}?designType=festive&isInterior=false").get_json()['data']
    assert [d['designType'] for g in festive['uploads'] for d in g['designs']] == ['festive']

    by_upload = client.get(f"/api/designs/{owner['userId']}?uploadId={owner['uploadId']}").get_json()['data']
    assert by_upload['totalDesigns'] == 4


def test_designs_are_isolated_per_user(client, storefront):
    owner = storefront()
    other = storefront(sap_code='SAP321')
    design_id = owner['designs'][0]['designId']

    assert client.get(f"/api/designs/detail/{design_id}?userId={other['userId']}").status_code == 404
    assert client.put(f"/api/designs/{design_id}/select", json={'userId': other['userId']}).status_code == 404
    assert client.delete(f"/api/designs/{design_id}?userId={other['userId']}").status_code == 404

    detail = client.get(f"/api/designs/detail/{design_id}?userId={owner['userId']}").get_json()['data']
    assert detail['designId'] == design_id
    assert detail['originalImage']['filename'] == 'shop.jpg'


def test_select_echoes_without_storing(client, storefront):
    owner = storefront()
    design = owner['designs'][1]
    response = client.put(f"/api/designs/{design['designId']}/select", json={'userId': owner['userId']})
    assert response.status_code == 200
    assert response.get_json()['data'] == {
        'designId': design['designId'], 'designType': design['designType'], 'isSelected': True,
    }


def test_owner_queries_require_user_id(client, storefront):
    design_id = storefront()['designs'][0]['designId']
    response = client.get(f"/api/designs/detail/{design_id}")
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Missing required fields'


def test_delete_design_removes_interior_variants(client, storefront, interior):
    owner = storefront()
    chosen = owner['designs'][0]
    interior(owner['userId'], chosen['designId'], design_types=['eco_smart'])

    response = client.delete(f"/api/designs/{chosen['designId']}?userId={owner['userId']}")
    assert response.status_code == 200

    remaining = client.get(f"/api/designs/{owner['userId']}").get_json()['data']
    assert remaining['totalDesigns'] == 3
    assert all(not d['isInterior'] for g in remaining['uploads'] for d in g['designs'])
    assert client.get(chosen['filePath']).status_code == 404


def test_design_stats(client, storefront, interior):
    owner = storefront()
    interior(owner['userId'], owner['designs'][0]['designId'], design_types=['festive', 'modern_premium'])

    stats = client.get(f"/api/designs/stats/{owner['userId']}").get_json()['data']
    assert stats['totalDesigns'] == 6
    assert stats['totalUploads'] == 2
    assert stats['interiorDesigns'] == 2
    assert stats['designsByType']['festive'] == 2

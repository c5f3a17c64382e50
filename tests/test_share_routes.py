from urllib.parse import quote


def share(client, owner, design, platform='whatsapp'):
    return client.post('/api/share', json={
        'userId': owner['userId'], 'designId': design['designId'], 'platform': platform,
    })


def test_log_share_returns_contest_links(client, storefront):
    owner = storefront()
    design = owner['designs'][0]
    response = share(client, owner, design)

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['contestUrl'] == f"http://frontend.test/contest/{data['shareId']}"
    assert set(data['sharingUrls']) == {'facebook', 'twitter', 'whatsapp', 'linkedin', 'telegram'}
    assert quote(data['contestUrl'], safe='') in data['sharingUrls']['linkedin']
    assert 'Sharma Traders' in data['shareContent']['text']
    assert data['design']['designId'] == design['designId']


def test_share_codes_are_unique(client, storefront):
    owner = storefront()
    design = owner['designs'][0]
    first = share(client, owner, design).get_json()['data']['shareId']
    second = share(client, owner, design).get_json()['data']['shareId']
    assert first != second


def test_cannot_share_someone_elses_design(client, storefront):
    owner = storefront()
    other = storefront(sap_code='SAP654')
    response = share(client, other, owner['designs'][0])
    assert response.status_code == 404
    assert response.get_json()['error'] == 'Design not found'


def test_contest_entry_is_public(client, storefront):
    owner = storefront()
    design = owner['designs'][2]
    code = share(client, owner, design).get_json()['data']['shareId']

    entry = client.get(f'/api/share/contest/{code}').get_json()['data']
    assert entry['design']['designType'] == design['designType']
    assert entry['originalImage']['filename'] == 'shop.jpg'
    assert entry['participant']['dealershipName'] == 'Sharma Traders'
    assert client.get('/api/share/contest/unknown').status_code == 404


def test_user_shares_and_aggregates(client, storefront):
    owner = storefront()
    other = storefront(sap_code='SAP888', dealership_name='Verma Stores')
    share(client, owner, owner['designs'][0], 'whatsapp')
    share(client, owner, owner['designs'][1], 'facebook')
    share(client, other, other['designs'][0], 'whatsapp')

    mine = client.get(f"/api/share/user/{owner['userId']}").get_json()['data']
    assert len(mine) == 2
    whatsapp = client.get(f"/api/share/user/{owner['userId']}?platform=whatsapp&contestOnly=true").get_json()['data']
    assert [s['platform'] for s in whatsapp] == ['whatsapp']

    stats = client.get('/api/share/stats').get_json()['data']
    assert stats == {
        'totalShares': 3, 'uniqueUsers': 2, 'uniqueDesigns': 3,
        'sharesByPlatform': {'whatsapp': 2, 'facebook': 1},
    }

    board = client.get('/api/share/leaderboard').get_json()['data']
    assert board['totalParticipants'] == 2
    top = board['leaderboard'][0]
    assert top['rank'] == 1
    assert top['participant']['userId'] == owner['userId']
    assert top['stats']['totalShares'] == 2
    assert top['stats']['platformsUsed'] == 2

from chalicelib.constants.status_codes import http200, http400, http401, http403, http404
from chalicelib.users import User
from tests.utils.fixtures import chalice_client, admin, diner, create_test_user, create_test_franchise, \
    create_test_store
from tests.utils.request_utils import make_request


def test_create_franchise(chalice_client, admin, diner):
    franchisee, franchisee_token = diner
    _, admin_token = admin
    franchise = create_test_franchise(chalice_client, admin_token, name='pizzaPocket',
                                      admin_emails=[franchisee.email])

    assert franchise['name'] == 'pizzaPocket'
    assert franchise['id']
    assert franchise['admins'] == [{'id': franchisee.id_, 'name': franchisee.name_, 'email': franchisee.email}]
    assert franchise['stores'] == []

    me = make_request(chalice_client, endpoint='/api/user/me', token=franchisee_token)
    assert {'role': 'franchisee', 'objectId': franchise['id']} in me.json_body['roles']


def test_create_franchise_unknown_admin(chalice_client, admin):
    _, admin_token = admin
    response = make_request(chalice_client, endpoint='/api/franchise', method='POST', token=admin_token,
                            json_body={'name': 'pizzaPocket', 'admins': [{'email': 'ghost@jwt.com'}]})

    assert response.status_code == http404
    assert response.json_body['message'] == 'unknown user for franchise admin ghost@jwt.com provided'


def test_create_franchise_without_name(chalice_client, admin):
    _, admin_token = admin
    response = make_request(chalice_client, endpoint='/api/franchise', method='POST', token=admin_token,
                            json_body={'admins': []})

    assert response.status_code == http400


def test_create_franchise_not_admin(chalice_client, diner):
    _, token = diner
    response = make_request(chalice_client, endpoint='/api/franchise', method='POST', token=token,
                            json_body={'name': 'pizzaPocket', 'admins': []})

    assert response.status_code == http403
    assert response.json_body['message'] == 'unable to create franchise'


def test_list_franchises_public(chalice_client, admin, diner):
    franchisee, _ = diner
    _, admin_token = admin
    franchise = create_test_franchise(chalice_client, admin_token, admin_emails=[franchisee.email])
    create_test_store(chalice_client, admin_token, franchise['id'], name='SLC')

    public = make_request(chalice_client, endpoint='/api/franchise')
    assert public.status_code == http200
    assert public.json_body['more'] is False
    listed = public.json_body['franchises'][0]
    assert listed['id'] == franchise['id']
    assert 'admins' not in listed
    assert [store['name'] for store in listed['stores']] == ['SLC']

    as_admin = make_request(chalice_client, endpoint='/api/franchise', token=admin_token)
    assert as_admin.json_body['franchises'][0]['admins'][0]['id'] == franchisee.id_


def test_list_franchises_filter_and_pages(chalice_client, admin):
    _, admin_token = admin
    for name in ('pizzaPocket', 'pizzaPlanet', 'tacoTown'):
        create_test_franchise(chalice_client, admin_token, name=name)

    filtered = make_request(chalice_client, endpoint='/api/franchise', query='name=PIZZA*')
    assert sorted(f['name'] for f in filtered.json_body['franchises']) == ['pizzaPlanet', 'pizzaPocket']

    first_page = make_request(chalice_client, endpoint='/api/franchise', query='page=0&limit=2')
    second_page = make_request(chalice_client, endpoint='/api/franchise', query='page=1&limit=2')
    assert len(first_page.json_body['franchises']) == 2 and first_page.json_body['more'] is True
    assert len(second_page.json_body['franchises']) == 1 and second_page.json_body['more'] is False

    bad_page = make_request(chalice_client, endpoint='/api/franchise', query='page=first')
    assert bad_page.status_code == http400


def test_user_franchises(chalice_client, admin, diner):
    franchisee, franchisee_token = diner
    _, admin_token = admin
    franchise = create_test_franchise(chalice_client, admin_token, admin_emails=[franchisee.email])
    create_test_franchise(chalice_client, admin_token)

    own = make_request(chalice_client, endpoint=f'/api/franchise/{franchisee.id_}', token=franchisee_token)
    assert own.status_code == http200
    assert [f['id'] for f in own.json_body] == [franchise['id']]

    by_admin = make_request(chalice_client, endpoint=f'/api/franchise/{franchisee.id_}', token=admin_token)
    assert [f['id'] for f in by_admin.json_body] == [franchise['id']]


def test_user_franchises_of_someone_else_is_empty(chalice_client, admin, diner):
    franchisee, _ = diner
    _, admin_token = admin
    create_test_franchise(chalice_client, admin_token, admin_emails=[franchisee.email])
    _, stranger_token = create_test_user(name='stranger')

    response = make_request(chalice_client, endpoint=f'/api/franchise/{franchisee.id_}', token=stranger_token)
    assert response.status_code == http200
    assert response.json_body == []


def test_franchisee_creates_and_deletes_store(chalice_client, admin, diner):
    franchisee, franchisee_token = diner
    _, admin_token = admin
    franchise = create_test_franchise(chalice_client, admin_token, admin_emails=[franchisee.email])

    store = create_test_store(chalice_client, franchisee_token, franchise['id'], name='Provo')
    assert store['franchiseId'] == franchise['id']
    assert store['name'] == 'Provo'

    response = make_request(chalice_client, endpoint=f"/api/franchise/{franchise['id']}/store/{store['id']}",
                            method='DELETE', token=franchisee_token)
    assert response.status_code == http200
    assert response.json_body == {'message': 'store deleted'}

    listed = make_request(chalice_client, endpoint='/api/franchise').json_body['franchises'][0]
    assert listed['stores'] == []


def test_store_forbidden_for_strangers(chalice_client, admin, diner):
    _, admin_token = admin
    _, token = diner
    franchise = create_test_franchise(chalice_client, admin_token)

    create = make_request(chalice_client, endpoint=f"/api/franchise/{franchise['id']}/store", method='POST',
                          token=token, json_body={'name': 'SLC'})
    assert create.status_code == http403

    unknown = make_request(chalice_client, endpoint='/api/franchise/nope/store', method='POST',
                           token=admin_token, json_body={'name': 'SLC'})
    assert unknown.status_code == http403
    assert unknown.json_body['message'] == 'unknown franchise'

    anonymous = make_request(chalice_client, endpoint=f"/api/franchise/{franchise['id']}/store", method='POST',
                             json_body={'name': 'SLC'})
    assert anonymous.status_code == http401


def test_delete_franchise(chalice_client, admin, diner):
    franchisee, franchisee_token = diner
    _, admin_token = admin
    franchise = create_test_franchise(chalice_client, admin_token, admin_emails=[franchisee.email])
    create_test_store(chalice_client, admin_token, franchise['id'])

    forbidden = make_request(chalice_client, endpoint=f"/api/franchise/{franchise['id']}", method='DELETE',
                             token=franchisee_token)
    assert forbidden.status_code == http403

    response = make_request(chalice_client, endpoint=f"/api/franchise/{franchise['id']}", method='DELETE',
                            token=admin_token)
    assert response.status_code == http200
    assert response.json_body == {'message': 'franchise deleted'}
    assert make_request(chalice_client, endpoint='/api/franchise').json_body['franchises'] == []
    assert [role.role.value for role in User.init_by_id(franchisee.id_).roles] == ['diner']


def test_delete_franchise_unauthenticated(chalice_client, admin):
    _, admin_token = admin
    franchise = create_test_franchise(chalice_client, admin_token)

    response = make_request(chalice_client, endpoint=f"/api/franchise/{franchise['id']}", method='DELETE')
    assert response.status_code == http401


def test_delete_store_by_stranger(chalice_client, admin, diner):
    _, admin_token = admin
    _, stranger_token = diner
    franchise = create_test_franchise(chalice_client, admin_token)
    store = create_test_store(chalice_client, admin_token, franchise['id'])
    store_endpoint = f"/api/franchise/{franchise['id']}/store/{store['id']}"

    forbidden = make_request(chalice_client, endpoint=store_endpoint, method='DELETE', token=stranger_token)
    assert forbidden.status_code == http403
    anonymous = make_request(chalice_client, endpoint=store_endpoint, method='DELETE')
    assert anonymous.status_code == http401

    listed = make_request(chalice_client, endpoint='/api/franchise').json_body['franchises'][0]
    assert [s['id'] for s in listed['stores']] == [store['id']]


def test_user_franchises_unauthenticated(chalice_client, diner):
    user, _ = diner

    assert make_request(chalice_client, endpoint=f'/api/franchise/{user.id_}').status_code == http401

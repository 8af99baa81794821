# "name" and "status" are DynamoDB reserved words, "id" collides with builtins
to_db = {
    'id': 'id_',
    'name': 'name_',
    'franchiseId': 'franchise_id',
    'storeId': 'store_id',
    'menuId': 'menu_id',
    'objectId': 'object_id',
}

from_db = {
    'id_': 'id',
    'name_': 'name',
    'franchise_id': 'franchiseId',
    'store_id': 'storeId',
    'menu_id': 'menuId',
    'object_id': 'objectId',
    'password_hash': None,
    'partkey': None,
    'sortkey': None,
    'record_type': None,
}

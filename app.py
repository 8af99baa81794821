from chalice import Chalice

from chalicelib import auth, docs, franchises, menu_items, orders, users

app = Chalice(app_name='pizza-service')

app.debug = True


# SERVICE INFO
@app.route('/', methods=['GET'], cors=True)
def welcome():
    return docs.endpoint_welcome(app.current_request)


@app.route('/api/docs', methods=['GET'], cors=True)
def get_docs():
    return docs.endpoint_docs(app.current_request)


# AUTH
@app.route('/api/auth', methods=['POST'], cors=True)
def register():
    return auth.endpoint_register(app.current_request)


@app.route('/api/auth', methods=['PUT'], cors=True)
def login():
    return auth.endpoint_login(app.current_request)


@app.route('/api/auth', methods=['DELETE'], cors=True)
def logout():
    return auth.endpoint_logout(app.current_request)


# FRANCHISES
@app.route('/api/franchise', methods=['GET'], cors=True)
def get_franchises():
    return franchises.endpoint_get_franchises(app.current_request)


@app.route('/api/franchise/{id_}', methods=['GET'], cors=True)
def get_user_franchises(id_):
    """
    id_ is a user id here
    """
    return franchises.endpoint_get_user_franchises(app.current_request, id_)


@app.route('/api/franchise', methods=['POST'], cors=True)
def create_franchise():
    """
    admin operation
    """
    return franchises.endpoint_create_franchise(app.current_request)


@app.route('/api/franchise/{id_}', methods=['DELETE'], cors=True)
def delete_franchise(id_):
    """
    admin operation, id_ is a franchise id here
    """
    return franchises.endpoint_delete_franchise(app.current_request, id_)


@app.route('/api/franchise/{franchise_id}/store', methods=['POST'], cors=True)
def create_store(franchise_id):
    """
    admin or franchise admin operation
    """
    return franchises.endpoint_create_store(app.current_request, franchise_id)


@app.route('/api/franchise/{franchise_id}/store/{store_id}', methods=['DELETE'], cors=True)
def delete_store(franchise_id, store_id):
    """
    admin or franchise admin operation
    """
    return franchises.endpoint_delete_store(app.current_request, franchise_id, store_id)


# MENU
@app.route('/api/order/menu', methods=['GET'], cors=True)
def get_menu():
    return menu_items.endpoint_get_menu(app.current_request)


@app.route('/api/order/menu', methods=['PUT'], cors=True)
def add_menu_item():
    """
    admin operation
    """
    return menu_items.endpoint_add_menu_item(app.current_request)


# ORDERS
@app.route('/api/order', methods=['GET'], cors=True)
def get_orders():
    return orders.endpoint_get_orders(app.current_request)


@app.route('/api/order', methods=['POST'], cors=True)
def create_order():
    """
    The order is sent to the factory right away
    """
    return orders.endpoint_create_order(app.current_request)


# USERS
@app.route('/api/user/me', methods=['GET'], cors=True)
def get_me():
    return users.endpoint_get_me(app.current_request)


@app.route('/api/user/{user_id}', methods=['PUT'], cors=True)
def update_user(user_id):
    return users.endpoint_update_user(app.current_request, user_id)


@app.route('/api/user/{user_id}', methods=['DELETE'], cors=True)
def delete_user(user_id):
    return users.endpoint_delete_user(app.current_request, user_id)


@app.route('/api/user', methods=['GET'], cors=True)
def list_users():
    return users.endpoint_list_users(app.current_request)

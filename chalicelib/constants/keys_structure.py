users_pk = 'users'
users_sk = '{user_id}'

users_email_pk = 'users_email'
users_email_sk = '{email}'

auth_tokens_pk = 'auth_tokens'
auth_tokens_sk = '{signature}'

franchises_pk = 'franchises'
franchises_sk = '{franchise_id}'

stores_pk = 'stores_{franchise_id}'
stores_sk = '{store_id}'

menu_items_pk = 'menu_items'
menu_items_sk = '{menu_item_id}'

orders_pk = 'orders_{user_id}'
orders_sk = '{order_id}'

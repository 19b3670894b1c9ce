from django.urls import path
from .views import cart, cart_item, cart_clear, order_list_create, order_detail, order_reorder
from .views_windows import available_window_list

urlpatterns = [
    # Cart endpoints
    path('cart', cart, name='cart'),
    path('cart/clear', cart_clear, name='cart-clear'),
    path('cart/<int:pk>', cart_item, name='cart-item'),

    # Order endpoints
    path('orders', order_list_create, name='order-list-create'),
    path('orders/<int:pk>', order_detail, name='order-detail'),
    path('orders/<int:pk>/reorder', order_reorder, name='order-reorder'),

    # Delivery windows
    path('windows', available_window_list, name='delivery-window-list'),
]

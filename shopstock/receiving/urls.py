from django.urls import path
from .views import goods_receiving_list_create, goods_receiving_detail

urlpatterns = [
    path('goods-receiving/', goods_receiving_list_create, name='goods-receiving-list-create'),
    path('goods-receiving/<int:pk>/', goods_receiving_detail, name='goods-receiving-detail'),
]

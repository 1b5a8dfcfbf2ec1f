from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView
from .views import (
    CustomTokenObtainPairView, user_me,
    user_list_create, user_detail,
    setting_list_create, setting_detail,
    activity_log_list, activity_log_detail, activity_log_stats,
)

urlpatterns = [
    # Auth endpoints
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', user_me, name='user-me'),

    # User endpoints
    path('users/', user_list_create, name='user-list-create'),
    path('users/<int:pk>/', user_detail, name='user-detail'),

    # Setting endpoints
    path('settings/', setting_list_create, name='setting-list-create'),
    path('settings/<int:pk>/', setting_detail, name='setting-detail'),

    # Activity log endpoints
    path('activity-logs/', activity_log_list, name='activity-log-list'),
    path('activity-logs/stats/', activity_log_stats, name='activity-log-stats'),
    path('activity-logs/<int:pk>/', activity_log_detail, name='activity-log-detail'),
]

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAdminUser
from rest_framework_simplejwt.views import TokenObtainPairView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed
from django.contrib.auth import get_user_model
from django.db.models import Count
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date
from .models import Setting, ActivityLog
from .serializers import (
    UserSerializer, UserCreateSerializer,
    SettingSerializer, ActivityLogSerializer
)

User = get_user_model()

ACTIVITY_LOG_DEFAULT_LIMIT = 100


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['groups'] = list(user.groups.values_list('name', flat=True))
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get current user with groups"""
    user_data = UserSerializer(request.user).data
    user_data['groups'] = list(request.user.groups.values_list('name', flat=True))
    user_data['is_admin'] = request.user.is_superuser or request.user.is_staff
    return Response(user_data)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def user_list_create(request):
    """List all users or create a new user"""
    if request.method == 'GET':
        users = User.objects.all().order_by('username')
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)
    else:
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        return Response(UserSerializer(user).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Setting views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminUser])
def setting_list_create(request):
    """List all settings or create a new setting"""
    if request.method == 'GET':
        settings = Setting.objects.all().order_by('key')
        serializer = SettingSerializer(settings, many=True)
        return Response(serializer.data)
    else:
        serializer = SettingSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminUser])
def setting_detail(request, pk):
    """Retrieve, update or delete a setting"""
    setting = get_object_or_404(Setting, pk=pk)

    if request.method == 'GET':
        return Response(SettingSerializer(setting).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SettingSerializer(setting, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        setting.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


def _filtered_activity_logs(request):
    """Apply the shared activity log filters; returns (queryset, error_message)"""
    queryset = ActivityLog.objects.all()

    # Non-admin users only see their own activity
    if not request.user.is_staff:
        queryset = queryset.filter(user=request.user)

    user_filter = request.query_params.get('user')
    if user_filter:
        if user_filter.isdigit():
            queryset = queryset.filter(user_id=int(user_filter))
        else:
            queryset = queryset.filter(username=user_filter)

    table_name = request.query_params.get('table_name')
    if table_name:
        queryset = queryset.filter(table_name=table_name)

    action = request.query_params.get('action')
    if action:
        queryset = queryset.filter(action=action)

    date_from = request.query_params.get('date_from')
    if date_from:
        parsed = parse_date(date_from)
        if parsed is None:
            return None, 'Invalid date_from, expected YYYY-MM-DD'
        queryset = queryset.filter(created_at__date__gte=parsed)

    # date_to includes the whole day
    date_to = request.query_params.get('date_to')
    if date_to:
        parsed = parse_date(date_to)
        if parsed is None:
            return None, 'Invalid date_to, expected YYYY-MM-DD'
        queryset = queryset.filter(created_at__date__lte=parsed)

    return queryset, None


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def activity_log_list(request):
    """Newest activity log entries with filtering"""
    queryset, error = _filtered_activity_logs(request)
    if error:
        return Response({'error': error}, status=status.HTTP_400_BAD_REQUEST)

    try:
        limit = int(request.query_params.get('limit', ACTIVITY_LOG_DEFAULT_LIMIT))
    except ValueError:
        return Response({'error': 'limit must be an integer'}, status=status.HTTP_400_BAD_REQUEST)
    limit = max(1, min(limit, ACTIVITY_LOG_DEFAULT_LIMIT))

    queryset = queryset.order_by('-created_at', '-id')[:limit]
    return Response(ActivityLogSerializer(queryset, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def activity_log_detail(request, pk):
    """Retrieve an activity log entry"""
    log = get_object_or_404(ActivityLog, pk=pk)

    if not request.user.is_staff and log.user_id != request.user.id:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    return Response(ActivityLogSerializer(log).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def activity_log_stats(request):
    """Activity counts per table and per action"""
    queryset, error = _filtered_activity_logs(request)
    if error:
        return Response({'error': error}, status=status.HTTP_400_BAD_REQUEST)

    by_table = {
        row['table_name']: row['count']
        for row in queryset.values('table_name').annotate(count=Count('id')).order_by('table_name')
    }
    by_action = {
        row['action']: row['count']
        for row in queryset.values('action').annotate(count=Count('id')).order_by('action')
    }
    return Response({
        'total': queryset.count(),
        'by_table': by_table,
        'by_action': by_action,
    })

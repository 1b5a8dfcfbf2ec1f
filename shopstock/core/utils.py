"""Utility functions for activity logging"""
import logging
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from django.db.models.fields.files import FieldFile

from .models import ActivityLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def _json_safe(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, FieldFile):
        return value.name or None
    return value


def snapshot(instance):
    """
    JSON-safe dict of a model row, keyed by column name.

    Foreign keys are stored by their raw id (``supplier_id``), decimals as
    strings and dates in ISO format so the result can go straight into a
    JSONField. Fields named in the model's ``SECRET_FIELDS`` are masked.
    """
    if instance is None:
        return None
    secret_fields = getattr(instance, 'SECRET_FIELDS', ())
    data = {}
    for field in instance._meta.concrete_fields:
        value = getattr(instance, field.attname)
        if field.name in secret_fields and value:
            value = '***'
        data[field.attname] = _json_safe(value)
    return data


def diff_snapshots(old_data, new_data):
    """Field-level diff ``{field: {'old': x, 'new': y}}`` between two snapshots"""
    if not old_data or not new_data:
        return {}
    changes = {}
    for key in set(old_data) | set(new_data):
        if key == 'updated_at':
            continue
        old_value = old_data.get(key)
        new_value = new_data.get(key)
        if old_value != new_value:
            changes[key] = {'old': old_value, 'new': new_value}
    return changes


def create_activity_log(request=None, action=None, table_name=None, record_id=None,
                        old_data=None, new_data=None, user=None):
    """
    Create an activity log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: 'insert', 'update' or 'delete'
        table_name: db_table of the changed model
        record_id: primary key of the changed row
        old_data: snapshot before the change (update/delete)
        new_data: snapshot after the change (insert/update)
        user: Optional user override (defaults to request.user if request provided)
    """
    try:
        log_user = None
        if user:
            log_user = user
        elif request and hasattr(request, 'user'):
            log_user = request.user

        if log_user is not None and not log_user.is_authenticated:
            log_user = None

        if not action or not table_name:
            logger.warning(f"Activity log creation skipped: missing required fields (action={action}, table_name={table_name})")
            return None

        changes = diff_snapshots(old_data, new_data) if action == 'update' else {}

        return ActivityLog.objects.create(
            user=log_user,
            username=log_user.username if log_user else '',
            action=action,
            table_name=table_name,
            record_id=str(record_id) if record_id is not None else None,
            old_data=old_data,
            new_data=new_data,
            changes=changes,
            ip_address=get_client_ip(request) if request else None,
        )
    except Exception as e:
        # Don't fail the main operation if activity logging fails
        logger.error(f"Failed to create activity log: {str(e)}")
        return None


def log_insert(request, instance, user=None):
    return create_activity_log(request, 'insert', instance._meta.db_table, instance.pk,
                               new_data=snapshot(instance), user=user)


def log_update(request, instance, old_data, user=None):
    return create_activity_log(request, 'update', instance._meta.db_table, instance.pk,
                               old_data=old_data, new_data=snapshot(instance), user=user)


def log_delete(request, instance, old_data=None, user=None):
    return create_activity_log(request, 'delete', instance._meta.db_table, instance.pk,
                               old_data=old_data or snapshot(instance), user=user)

"""Utility functions for audit logging and request parsing"""
import logging
import re

from .exceptions import ValidationFailed
from .models import AuditLog

logger = logging.getLogger(__name__)

_SLUG_STRIP = re.compile(r'[^a-z0-9]+')


def slugify_name(name):
    """
    Build the URL slug for a catalog name.

    Lowercases, collapses every run of characters outside [a-z0-9] into a
    single '-', and strips leading/trailing '-'.
    "Geek Bar / Pulse X" -> "geek-bar-pulse-x"
    """
    return _SLUG_STRIP.sub('-', (name or '').lower()).strip('-')


def parse_int(value):
    """Parse an integer query/body value, returning None when absent or invalid"""
    if value is None or value == '':
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


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


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, reorder, ...)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., category name, order number)
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or object_id is None:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def apply_display_order(queryset, ordered_ids):
    """
    Assign display_order = position for each id of a sibling group.

    Ids missing from `queryset` (unknown, or belonging to another parent)
    are skipped; a repeated id keeps its first position. Returns the
    changed objects. Uses bulk_update, so no save signals are sent.
    """
    if not isinstance(ordered_ids, (list, tuple)):
        raise ValidationFailed('orderedIds must be an array')
    ids = []
    for raw in ordered_ids:
        node_id = parse_int(raw)
        if node_id is None or isinstance(raw, bool):
            raise ValidationFailed(f'Invalid id in orderedIds: {raw}')
        ids.append(node_id)

    objects = queryset.in_bulk(ids)
    seen = set()
    changed = []
    for position, node_id in enumerate(ids):
        obj = objects.get(node_id)
        if obj is None or node_id in seen:
            continue
        seen.add(node_id)
        obj.display_order = position
        changed.append(obj)

    queryset.model.objects.bulk_update(changed, ['display_order'])
    return changed

"""Utility functions for tenant resolution, role checks and audit logging"""
import logging
from .models import AuditLog, Tenant

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


def get_user_tenant(user):
    """
    Resolve the tenant a user works in.

    Staff users are linked through ``user.tenant``; business owners may only
    be linked through ``Tenant.owner``.
    """
    if not user or not user.is_authenticated:
        return None
    if user.tenant_id:
        return user.tenant
    return Tenant.objects.filter(owner=user).first()


def has_role(user, roles):
    """Check the user's role. Superusers pass every role check."""
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    return user.role in roles


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None,
                     tenant=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, delete, payment_add, order_confirm, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., invoice number)
        object_reference: Reference identifier (e.g., invoice number, order number)
        tenant: Tenant the action belongs to (defaults to the user's tenant)
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        is_authenticated = bool(audit_user and audit_user.is_authenticated)
        if tenant is None and is_authenticated:
            tenant = get_user_tenant(audit_user)

        return AuditLog.objects.create(
            tenant=tenant,
            user=audit_user if is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def month_sequence_number(tenant, model, prefix=None):
    """
    Build a per-tenant monthly sequence number.

    Format: {business_code}-{MON}-{YY}-{sequence:03d}, or
    {business_code}-{prefix}-{MON}-{YY}-{sequence:03d} when a prefix is given.
    The sequence counts rows of ``model`` created by the tenant this month.
    """
    from django.utils import timezone

    now = timezone.now()
    month_name = now.strftime('%b').upper()
    year = now.strftime('%y')
    count = model.objects.filter(
        tenant=tenant,
        created_at__year=now.year,
        created_at__month=now.month,
    ).count()
    parts = [tenant.business_code]
    if prefix:
        parts.append(prefix)
    parts.extend([month_name, year, f"{count + 1:03d}"])
    return '-'.join(parts)

"""Audit trail helpers shared by every app"""
import logging

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """First address of X-Forwarded-For, else REMOTE_ADDR"""
    meta = getattr(request, 'META', None) or {}
    forwarded = meta.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip() or None
    return meta.get('REMOTE_ADDR') or None


def _acting_user(request, user):
    actor = user or getattr(request, 'user', None)
    if actor is not None and actor.is_authenticated:
        return actor
    return None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, organization=None, object_name=None):
    """
    Record who did what to a money-bearing object.

    ``user`` overrides ``request.user`` (management commands pass it
    directly). ``changes`` may hold Decimals, dates or nested lists; they
    are stored as JSON strings. Failures are logged and never raised, so a
    repayment or import is not rolled back because its audit row failed.
    """
    if not (action and model_name and object_id is not None):
        logger.warning(f"Audit log skipped: action={action}, model={model_name}, object_id={object_id}")
        return None

    try:
        return AuditLog.objects.create(
            user=_acting_user(request, user),
            organization=organization,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            changes=to_jsonable(changes or {}),
            ip_address=get_client_ip(request),
        )
    except Exception as e:
        logger.error(f"Failed to create audit log for {model_name} {object_id}: {str(e)}", exc_info=True)
        return None


def to_jsonable(data):
    """Decimals and dates inside service results as JSON-friendly strings"""
    if isinstance(data, dict):
        return {key: to_jsonable(value) for key, value in data.items()}
    if isinstance(data, (list, tuple)):
        return [to_jsonable(value) for value in data]
    if data is None or isinstance(data, (bool, int, str)):
        return data
    if hasattr(data, 'isoformat'):
        return data.isoformat()
    return str(data)

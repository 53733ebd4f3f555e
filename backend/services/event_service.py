"""
Helpers for writing the append-only event log.
"""

from clients.models import EventLog


def log_event(event_type, description, client=None, user=None, old_value=None, new_value=None, metadata=None):
    """
    Append one row to the event log and return it.

    ``metadata`` must be JSON-serialisable; callers convert datetimes and
    Decimals to strings first.
    """
    return EventLog.objects.create(
        event_type=event_type,
        description=description,
        client=client,
        user=user,
        old_value=old_value,
        new_value=new_value,
        metadata=metadata or {},
    )

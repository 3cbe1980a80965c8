# wholesale_ledger/modules/notifications/__init__.py

from .sms import BulkSmsClient, SmsResult
from .messages import (
    Notification,
    build_edit_ledger_notifications,
    build_new_ledger_notifications,
    dispatch,
    sms_segment_count,
)

from app.models.user import User
from app.models.recurring_bill import RecurringBill
from app.models.notification import Notification

__all__ = [
    "User",
    "RecurringBill",
    "Notification",
]

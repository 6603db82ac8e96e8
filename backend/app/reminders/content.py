"""Reminder notification and e-mail content."""
import html
from dataclasses import dataclass
from datetime import datetime, timezone

from app.reminders.bill import BillState
from app.reminders.due_dates import resolve_timezone

TYPE_BILL_REMINDER = "bill_reminder"
TYPE_BILL_DUE_TODAY = "bill_due_today"

# ─── Urgency colours (badge in the e-mail) ───
_RED = "#ef4444"
_AMBER = "#f59e0b"
_GREEN = "#10b981"


@dataclass(frozen=True)
class NotificationContent:
    type: str
    title: str
    message: str
    priority: int


def notification_type(offset: int) -> str:
    return TYPE_BILL_DUE_TODAY if offset == 0 else TYPE_BILL_REMINDER


def idempotency_key(bill: BillState, due_date_key: str, offset: int) -> str:
    """``{type}:{bill_id}:{due_date_key}:{offset}``: one logical reminder event."""
    return f"{notification_type(offset)}:{bill.id}:{due_date_key}:{offset}"


def _amount_text(bill: BillState) -> str | None:
    if bill.amount is None:
        return None
    return f"{bill.currency} {bill.amount:,.2f}"


def _format_due(bill: BillState, due_date: datetime, fmt: str) -> str:
    return due_date.astimezone(resolve_timezone(bill.timezone)).strftime(fmt)


def build_notification_content(bill: BillState, offset: int, due_date: datetime) -> NotificationContent:
    due = _format_due(bill, due_date, "%a, %b %d")
    amount = _amount_text(bill)
    amount_text = f" of {amount}" if amount else ""

    if offset == 0:
        return NotificationContent(
            type=TYPE_BILL_DUE_TODAY,
            title=f"{bill.name} is due today!",
            message=f"Your {bill.name} bill{amount_text} is due today ({due}). Don't forget to pay!",
            priority=8,
        )
    if offset == 1:
        return NotificationContent(
            type=TYPE_BILL_REMINDER,
            title=f"{bill.name} due tomorrow",
            message=f"Your {bill.name} bill{amount_text} is due tomorrow ({due}).",
            priority=6,
        )
    return NotificationContent(
        type=TYPE_BILL_REMINDER,
        title=f"{bill.name} due in {offset} days",
        message=f"Your {bill.name} bill{amount_text} is due on {due}. Plan ahead!",
        priority=4,
    )


def build_notification_details(bill: BillState, offset: int, due_date: datetime) -> dict:
    """JSON-serialisable metadata stored on the notification row."""
    return {
        "bill_name": bill.name,
        "amount": float(bill.amount) if bill.amount is not None else None,
        "currency": bill.currency,
        "category": bill.category,
        "due_date": due_date.isoformat(),
        "days_until_due": offset,
    }


def build_reminder_email(
    bill: BillState,
    offset: int,
    due_date: datetime,
    frontend_url: str,
    now: datetime | None = None,
) -> tuple[str, str]:
    """Return ``(subject, html_body)`` for a reminder e-mail."""
    due = _format_due(bill, due_date, "%A, %B %d, %Y")
    amount = _amount_text(bill) or "Variable amount"
    colour = _RED if offset == 0 else _AMBER if offset <= 2 else _GREEN
    urgency = "Due Today!" if offset == 0 else "Due Tomorrow" if offset == 1 else f"Due in {offset} days"
    year = (now or datetime.now(timezone.utc)).year

    name = html.escape(bill.name)
    category = html.escape(bill.category.replace("_", " "))
    notes_block = ""
    if bill.notes:
        notes_block = (
            '<div style="margin-top:16px;padding-top:16px;border-top:1px solid #e2e8f0;">'
            '<span style="color:#64748b;font-size:13px;">Notes:</span>'
            f'<p style="color:#475569;margin:4px 0 0 0;font-size:14px;">{html.escape(bill.notes)}</p>'
            "</div>"
        )

    body = f"""
    <div style="font-family:'Segoe UI',Arial,sans-serif;max-width:600px;margin:0 auto;background:#ffffff;">
      <div style="background:linear-gradient(135deg,#10b981 0%,#059669 100%);padding:40px 30px;text-align:center;border-radius:12px 12px 0 0;">
        <h1 style="color:#ffffff;margin:0;font-size:28px;">GreenReceipt</h1>
        <p style="color:rgba(255,255,255,0.9);margin:10px 0 0 0;font-size:14px;">Bill Reminder</p>
      </div>
      <div style="padding:40px 30px;">
        <div style="text-align:center;margin-bottom:30px;">
          <span style="display:inline-block;background:{colour};color:white;padding:8px 20px;border-radius:20px;font-weight:600;">{urgency}</span>
        </div>
        <div style="background:#f8fafc;border-radius:12px;padding:24px;margin-bottom:30px;">
          <h2 style="color:#1e293b;margin:0 0 20px 0;font-size:22px;">{name}</h2>
          <p style="margin:0 0 12px 0;"><span style="color:#64748b;">Amount:</span> <strong>{html.escape(amount)}</strong></p>
          <p style="margin:0 0 12px 0;"><span style="color:#64748b;">Due Date:</span> <strong>{due}</strong></p>
          <p style="margin:0;"><span style="color:#64748b;">Category:</span> <strong style="text-transform:capitalize;">{category}</strong></p>
          {notes_block}
        </div>
        <div style="text-align:center;">
          <a href="{html.escape(frontend_url.rstrip('/'))}/customer/bills"
             style="display:inline-block;background:#10b981;color:white;padding:14px 32px;border-radius:8px;text-decoration:none;font-weight:600;">View My Bills</a>
        </div>
      </div>
      <div style="background:#f8fafc;padding:24px 30px;text-align:center;border-radius:0 0 12px 12px;">
        <p style="color:#64748b;margin:0;font-size:13px;">You're receiving this because you have bill reminders enabled for {name}.</p>
        <p style="color:#94a3b8;margin:10px 0 0 0;font-size:12px;">&copy; {year} GreenReceipt - Go Paperless</p>
      </div>
    </div>
    """
    subject = f"{bill.name} is due today!" if offset == 0 else f"{bill.name}: {urgency.lower()}"
    return subject, body

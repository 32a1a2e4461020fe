"""
exports.py
CSV report artifacts and the printable invoice document.
Generated on demand, never stored.
"""

from __future__ import annotations

from datetime import date, datetime
from html import escape

import pandas as pd

import checkins
import config
import payments
import utils
from models import CheckIn, Member, Membership, Payment

CHECKIN_COLUMNS = ["Date", "Check-in Time", "Check-out Time", "Duration", "Member Code", "Name", "Phone"]
PAYMENT_COLUMNS = ["Date", "Invoice", "Member", "Code", "Amount", "Method", "Status"]


def _time(value: str | None) -> str:
    if not value:
        return ""
    return datetime.fromisoformat(value).strftime("%H:%M:%S")


def _plain_number(value) -> str:
    num = float(value)
    return str(int(num)) if num.is_integer() else str(num)


def _to_csv_bytes(records: list[dict], columns: list[str]) -> bytes:
    df = pd.DataFrame(records, columns=columns)
    return df.to_csv(index=False).encode("utf-8")


def checkins_csv(rows, now: datetime | None = None) -> bytes:
    """`rows` as returned by checkins.list_checkins()."""
    records = []
    for r in rows:
        ci = CheckIn.from_row(r)
        records.append({
            "Date": r["check_in_date"],
            "Check-in Time": _time(r["check_in_time"]),
            "Check-out Time": _time(r["check_out_time"]),
            "Duration": checkins.format_duration(checkins.duration(ci, now)),
            "Member Code": r["member_code"],
            "Name": r["full_name"],
            "Phone": r["phone"],
        })
    return _to_csv_bytes(records, CHECKIN_COLUMNS)


def payments_csv(rows) -> bytes:
    """`rows` as returned by payments.list_payments()."""
    records = [
        {
            "Date": r["payment_date"],
            "Invoice": r["invoice_number"],
            "Member": r["full_name"],
            "Code": r["member_code"],
            "Amount": _plain_number(r["amount"]),
            "Method": payments.method_label(r["payment_method"]),
            "Status": r["payment_status"],
        }
        for r in rows
    ]
    return _to_csv_bytes(records, PAYMENT_COLUMNS)


def _long_date(d: date) -> str:
    return d.strftime("%d %B %Y")


INVOICE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<title>Invoice {invoice_number}</title>
<style>
  @page {{ size: A4; margin: 15mm; }}
  * {{ margin: 0; padding: 0; box-sizing: border-box; }}
  body {{ font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; font-size: 13px; line-height: 1.6; color: #333; background: #f8f9fa; }}
  .invoice-container {{ max-width: 800px; margin: 20px auto; background: white; box-shadow: 0 0 20px rgba(0,0,0,0.1); }}
  .header {{ background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); color: white; padding: 40px; }}
  .logo {{ font-size: 32px; font-weight: 800; margin-bottom: 15px; letter-spacing: 1px; }}
  .title {{ display: flex; justify-content: space-between; align-items: center; padding: 30px 40px; border-bottom: 3px solid #667eea; }}
  .title h1 {{ font-size: 28px; color: #667eea; }}
  .info {{ display: flex; gap: 30px; padding: 30px 40px; }}
  .info-box {{ flex: 1; }}
  .info-box h2 {{ font-size: 14px; margin-bottom: 10px; color: #667eea; }}
  table {{ width: calc(100% - 80px); margin: 0 40px; border-collapse: collapse; }}
  th, td {{ padding: 12px; border-bottom: 1px solid #dee2e6; text-align: left; }}
  .amount {{ text-align: right; }}
  .total {{ padding: 30px 40px; text-align: right; font-size: 20px; font-weight: 700; }}
  .status {{ display: inline-block; margin-top: 10px; padding: 6px 16px; border-radius: 20px; background: #d4edda; color: #155724; font-size: 13px; }}
  .footer {{ padding: 30px 40px; text-align: center; color: #666; }}
  .printed {{ font-size: 11px; color: #999; margin-top: 15px; }}
  @media print {{ body {{ background: white; }} .invoice-container {{ box-shadow: none; margin: 0; }} }}
</style>
</head>
<body>
<div class="invoice-container">
  <div class="header">
    <div class="logo">{gym_name}</div>
    <div>{gym_address}<br>{gym_phone}</div>
  </div>
  <div class="title">
    <h1>INVOICE</h1>
    <div>Invoice Number<br><strong>{invoice_number}</strong></div>
  </div>
  <div class="info">
    <div class="info-box">
      <h2>Invoice Details</h2>
      <div>Date: {payment_date}</div>
      <div>Payment Method: {method}</div>
    </div>
    <div class="info-box">
      <h2>Member Details</h2>
      <div>Name: {member_name}</div>
      <div>Member Code: {member_code}</div>
      <div>Phone: {member_phone}</div>
    </div>
  </div>
  <table>
    <thead><tr><th>Description</th><th>Period</th><th class="amount">Amount</th></tr></thead>
    <tbody><tr><td><strong>{package_name}</strong></td><td>{period}</td><td class="amount">{amount}</td></tr></tbody>
  </table>
  <div class="total">
    Total Payment: {amount}<br>
    <span class="status">{status}</span>
  </div>
  <div class="footer">
    <div>Thank you for your payment!</div>
    <div>Keep training, stay healthy!</div>
    <div class="printed">Invoice printed on {printed_at}</div>
  </div>
</div>
</body>
</html>
"""


def invoice_html(
    payment: Payment,
    member: Member,
    membership: Membership | None = None,
    package_name: str | None = None,
    printed_at: datetime | None = None,
) -> str:
    """Self-contained printable invoice. Every interpolated value is HTML-escaped."""
    printed_at = printed_at or utils.now()
    if membership is not None:
        period = f"{_long_date(membership.start_date)} - {_long_date(membership.end_date)}"
    else:
        period = "N/A"
    fields = {
        "gym_name": config.GYM_NAME,
        "gym_address": config.GYM_ADDRESS,
        "gym_phone": config.GYM_PHONE,
        "invoice_number": payment.invoice_number,
        "payment_date": _long_date(payment.payment_date),
        "method": payments.method_label(payment.payment_method),
        "member_name": member.full_name,
        "member_code": member.member_code,
        "member_phone": member.phone,
        "package_name": package_name or "Membership Package",
        "period": period,
        "amount": utils.format_currency(payment.amount),
        "status": payments.status_label(payment.payment_status),
        "printed_at": printed_at.strftime("%d %B %Y, %H:%M"),
    }
    return INVOICE_TEMPLATE.format(**{k: escape(str(v)) for k, v in fields.items()})

"""
app.py
Streamlit gym back-office: members, packages, memberships, check-ins,
payments and financial reports.
Run: streamlit run app.py
"""

from __future__ import annotations

import logging
from datetime import date, timedelta

import pandas as pd
import streamlit as st

import auth
import checkins
import config
import db
import exports
import members
import memberships
import packages
import payments
import reports
import sample_data
import utils
from errors import GymError, ValidationError
from models import (
    CHECKIN_CHECKED_IN,
    CHECKIN_CHECKED_OUT,
    CHECKIN_NONE,
    GENDERS,
    PAYMENT_METHODS,
    PAYMENT_STATUSES,
    STAFF_ROLES,
    Payment,
)
from session import current_session, list_cache, optimistic_remove, sign_in, sign_out

logger = logging.getLogger(__name__)

st.set_page_config(page_title="Gym Management System", layout="wide")


def init_once():
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Initialize DB + default admin if needed
    default_hash = auth.hash_password(config.DEFAULT_ADMIN_PASSWORD)
    db.init_db(default_hash)
    memberships.expire_lapsed_memberships()


def show_error(exc: GymError):
    if isinstance(exc, ValidationError):
        for e in exc.errors:
            st.error(e)
    else:
        st.error(exc.message)


def login_screen():
    st.title("🔐 Staff Login")

    col1, col2 = st.columns([1, 1])
    with col1:
        username = st.text_input("Username", value=config.DEFAULT_ADMIN_USERNAME)
        password = st.text_input("Password", type="password")
        if st.button("Login", type="primary"):
            if sign_in(st.session_state, username, password):
                st.rerun()
            else:
                st.error("Invalid username or password, or the account is deactivated.")

    with col2:
        st.info(
            "First run creates a default admin:\n\n"
            f"- username: **{config.DEFAULT_ADMIN_USERNAME}**\n"
            f"- password: **{config.DEFAULT_ADMIN_PASSWORD}**\n\n"
            "You will be forced to change it on first login."
        )


def force_change_password_screen(staff):
    st.title("⚠️ Change Password (Required)")

    st.warning("You must change the default password before using the app.")
    new1 = st.text_input("New password", type="password")
    new2 = st.text_input("Confirm new password", type="password")

    if st.button("Update password", type="primary"):
        errors = auth.validate_new_password(new1, new2)
        if errors:
            for e in errors:
                st.error(e)
            return
        auth.change_password(staff.username, new1)
        st.success("Password updated. You can continue.")
        st.rerun()


def member_label(m) -> str:
    return f"{m.full_name} ({m.member_code})"


# ---------- Pages ----------

def dashboard_page(staff):
    st.header("📊 Dashboard")

    stats = reports.dashboard_stats()
    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Total members", stats.total_members)
    c2.metric("Active memberships", stats.active_memberships)
    c3.metric("Revenue this month", utils.format_currency(stats.monthly_revenue))
    c4.metric("Check-ins today", stats.checkins_today)
    c5.metric(f"Expiring in {config.EXPIRING_DAYS} days", stats.expiring_soon)

    st.divider()

    st.subheader(f"Expiring soon (next {config.EXPIRING_DAYS} days)")
    rows = memberships.expiring_memberships(days=config.EXPIRING_DAYS)
    if rows:
        st.dataframe(pd.DataFrame([dict(r) for r in rows]), use_container_width=True, hide_index=True)
    else:
        st.caption(f"No memberships expiring in the next {config.EXPIRING_DAYS} days.")

    st.subheader("Today's check-ins")
    today = utils.today()
    rows = checkins.list_checkins(start=today, end=today)
    if rows:
        st.dataframe(
            pd.DataFrame([{"code": r["member_code"], "name": r["full_name"], "in": r["check_in_time"],
                           "out": r["check_out_time"] or ""} for r in rows]),
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.caption("Nobody has checked in yet today.")


def member_form(staff, existing=None):
    if existing:
        st.subheader(f"✏️ Edit Member ({existing.member_code})")
    else:
        st.subheader("➕ Add Member")

    col1, col2, col3 = st.columns(3)
    with col1:
        full_name = st.text_input("Full name", value=(existing.full_name if existing else ""))
        phone = st.text_input("Phone", value=(existing.phone if existing else ""))
        email = st.text_input("Email (optional)", value=(existing.email or "" if existing else ""))
    with col2:
        gender_options = ["(not set)"] + list(GENDERS)
        gender = st.selectbox(
            "Gender",
            gender_options,
            index=gender_options.index(existing.gender) if existing and existing.gender else 0,
        )
        dob = st.date_input(
            "Date of birth",
            value=(existing.date_of_birth if existing and existing.date_of_birth else None),
            min_value=date(1920, 1, 1),
        )
        address = st.text_input("Address", value=(existing.address or "" if existing else ""))
    with col3:
        emergency = st.text_input("Emergency contact", value=(existing.emergency_contact or "" if existing else ""))
        photo_url = st.text_input("Photo URL", value=(existing.photo_url or "" if existing else ""))
        notes = st.text_input("Notes", value=(existing.notes or "" if existing else ""))

    if st.button("Save", type="primary"):
        fields = dict(
            full_name=full_name,
            phone=phone,
            email=email,
            gender=None if gender == "(not set)" else gender,
            date_of_birth=dob,
            address=address,
            emergency_contact=emergency,
            photo_url=photo_url,
            notes=notes,
        )
        try:
            if existing:
                members.update_member(existing.id, **fields)
                st.success("Member updated.")
            else:
                m = members.create_member(created_by=staff.username, **fields)
                st.success(f"Member added with code {m.member_code}.")
        except GymError as exc:
            show_error(exc)
            return
        list_cache(st.session_state).invalidate("members")
        st.session_state.edit_member_id = None
        st.rerun()


def members_page(staff):
    st.header("👥 Members")

    with st.sidebar:
        st.subheader("Search & Filters")
        search = st.text_input("Search (code/name/phone)")
        active_only = st.checkbox("Active members only", value=False)

    rows = members.list_members(active_only=active_only, search=search)
    df = pd.DataFrame([
        {"id": m.id, "code": m.member_code, "name": m.full_name, "phone": m.phone,
         "email": m.email or "", "active": m.is_active, "joined": m.join_date}
        for m in rows
    ])
    if df.empty:
        st.caption("No members found.")
    else:
        st.dataframe(df, use_container_width=True, hide_index=True)

    st.divider()

    colA, colB = st.columns([1, 2])
    with colA:
        st.subheader("Select member")
        options = {member_label(m): m.id for m in rows}
        selected = st.selectbox("Member", options=["(none)"] + list(options.keys()))

    with colB:
        if selected != "(none)":
            member_id = options[selected]
            m = members.find_member(member_id)
            if m is None:
                st.warning("Member no longer exists.")
            else:
                st.subheader("Member actions")
                active = memberships.get_active_membership(m.id)
                if active:
                    st.write(f"Active membership until **{active.end_date}**")
                else:
                    st.write("No active membership.")
                if m.date_of_birth:
                    st.write(f"Age: **{utils.calculate_age(m.date_of_birth)}**")
                c1, c2, c3 = st.columns(3)
                with c1:
                    if st.button("Edit"):
                        st.session_state.edit_member_id = m.id
                        st.rerun()
                with c2:
                    if st.button("Deactivate" if m.is_active else "Activate"):
                        members.set_member_active(m.id, not m.is_active)
                        list_cache(st.session_state).invalidate("members")
                        st.rerun()
                with c3:
                    delete_confirm = st.checkbox(
                        "Confirm delete (removes memberships, payments and check-ins)", value=False
                    )
                    if st.button("Delete", type="secondary", disabled=not delete_confirm):
                        try:
                            members.delete_member(m.id)
                        except GymError as exc:
                            show_error(exc)
                        else:
                            st.success("Member deleted.")
                            list_cache(st.session_state).invalidate("members", "payments")
                            st.rerun()

                history = memberships.list_memberships(member_id=m.id)
                if history:
                    st.dataframe(
                        pd.DataFrame([{"package": r["package_name"], "start": r["start_date"],
                                       "end": r["end_date"], "status": r["status"],
                                       "price_paid": r["price_paid"]} for r in history]),
                        use_container_width=True,
                        hide_index=True,
                    )

    st.divider()

    if st.session_state.get("edit_member_id"):
        existing = members.find_member(st.session_state.edit_member_id)
        if existing:
            member_form(staff, existing=existing)
        if st.button("Cancel edit"):
            st.session_state.edit_member_id = None
            st.rerun()
    else:
        member_form(staff)


def packages_page(staff):
    st.header("📦 Packages")

    rows = packages.list_packages(active_only=False)
    if rows:
        st.dataframe(
            pd.DataFrame([{"id": p.id, "name": p.package_name, "days": p.duration_days,
                           "price": utils.format_currency(p.price), "active": p.is_active} for p in rows]),
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.caption("No packages yet.")

    st.divider()

    options = {f"{p.package_name} (ID {p.id})": p for p in rows}
    chosen = st.selectbox("Package", ["(new package)"] + list(options.keys()))
    existing = options.get(chosen)

    col1, col2, col3 = st.columns(3)
    with col1:
        name = st.text_input("Package name", value=existing.package_name if existing else "")
        description = st.text_input("Description", value=(existing.description or "") if existing else "")
    with col2:
        duration = st.number_input("Duration (days)", min_value=0, max_value=utils.MAX_DURATION_DAYS, step=1,
                                   value=existing.duration_days if existing else 30)
    with col3:
        price = st.number_input("Price", min_value=0.0, step=1000.0,
                                value=existing.price if existing else 300000.0)
        is_active = st.checkbox("Active", value=existing.is_active if existing else True)

    c1, c2 = st.columns(2)
    with c1:
        if st.button("Save package", type="primary"):
            try:
                if existing:
                    packages.update_package(existing.id, name, duration, price, description, is_active)
                else:
                    packages.create_package(name, duration, price, description, is_active)
            except GymError as exc:
                show_error(exc)
            else:
                st.success("Package saved.")
                st.rerun()
    with c2:
        if existing and st.button("Delete package"):
            try:
                packages.delete_package(existing.id)
            except GymError as exc:
                show_error(exc)
            else:
                st.success("Package deleted.")
                st.rerun()


def memberships_page(staff):
    st.header("🎫 Memberships")

    cache = list_cache(st.session_state)
    active_members = cache.get("members", lambda: members.list_members(active_only=True))
    active_packages = packages.list_packages(active_only=True)
    if not active_members or not active_packages:
        st.info("Add at least one active member and one active package first.")
        return

    member_options = {member_label(m): m for m in active_members}
    m = member_options[st.selectbox("Member", list(member_options.keys()))]
    package_options = {f"{p.package_name} - {p.duration_days} days - {utils.format_currency(p.price)}": p
                       for p in active_packages}
    p = package_options[st.selectbox("Package", list(package_options.keys()))]
    method = st.selectbox("Payment method", list(PAYMENT_METHODS.keys()), format_func=payments.method_label)
    notes = st.text_input("Notes", value="")

    start = utils.today()
    st.info(f"Period: **{start}** to **{start + timedelta(days=p.duration_days)}**, "
            f"price **{utils.format_currency(p.price)}**")

    if st.button("Create membership", type="primary"):
        try:
            result = memberships.create_membership(m.id, p.id, notes=notes, payment_method=method,
                                                   created_by=staff.username)
        except GymError as exc:
            show_error(exc)
        else:
            st.success(f"Membership {p.package_name} created for {m.full_name}.")
            if result.warning:
                st.warning(result.warning)
            else:
                st.success(f"Payment recorded: {result.payment.invoice_number}")
            cache.invalidate("payments")

    st.divider()
    st.subheader("All memberships")
    status = st.selectbox("Status", ["All", "active", "expired", "cancelled"])
    rows = memberships.list_memberships(status=None if status == "All" else status)
    if rows:
        st.dataframe(pd.DataFrame([dict(r) for r in rows]), use_container_width=True, hide_index=True)
        active_rows = {f"{r['full_name']} - {r['package_name']} until {r['end_date']}": r["id"]
                       for r in rows if r["status"] == "active"}
        if active_rows:
            to_cancel = st.selectbox("Cancel membership", ["(none)"] + list(active_rows.keys()))
            if to_cancel != "(none)" and st.button("Cancel selected membership"):
                try:
                    memberships.cancel_membership(active_rows[to_cancel])
                except GymError as exc:
                    show_error(exc)
                else:
                    st.rerun()
    else:
        st.caption("No memberships.")


def checkins_page(staff):
    st.header("✅ Check-ins")

    query = st.text_input("Member code, name or phone")
    if st.button("Search"):
        try:
            st.session_state.checkin_results = members.search_members(query)
        except GymError as exc:
            show_error(exc)

    results = st.session_state.get("checkin_results") or []
    if results:
        options = {member_label(m): m for m in results}
        m = options[st.selectbox("Select member", list(options.keys()))]
        active = memberships.get_active_membership(m.id)
        if active:
            st.write(f"Active membership until **{active.end_date}**")
        else:
            st.error("Member does not have an active membership.")
        state_labels = {
            CHECKIN_NONE: "Not checked in today",
            CHECKIN_CHECKED_IN: "Checked in",
            CHECKIN_CHECKED_OUT: "Already visited today",
        }
        st.caption(state_labels[checkins.checkin_state(m.id)])
        if st.button("Check in", type="primary", disabled=active is None):
            try:
                checkins.check_in(m.id)
            except GymError as exc:
                show_error(exc)
            else:
                st.success(f"{m.full_name} checked in.")
                st.session_state.checkin_results = []
                st.rerun()

    st.divider()
    st.subheader("Today's check-ins")
    today = utils.today()
    rows = checkins.list_checkins(start=today, end=today)
    if not rows:
        st.caption("No check-ins today.")
    for r in rows:
        ci = checkins.get_checkin(r["id"])
        c1, c2, c3, c4 = st.columns([3, 2, 1, 1])
        c1.write(f"**{r['full_name']}** ({r['member_code']})")
        c2.write(checkins.format_duration(checkins.duration(ci)))
        with c3:
            if ci.is_open and st.button("Check out", key=f"out_{ci.id}"):
                try:
                    checkins.check_out(ci.id)
                except GymError as exc:
                    show_error(exc)
                else:
                    st.rerun()
        with c4:
            if st.button("Delete", key=f"del_{ci.id}"):
                try:
                    checkins.delete_checkin(ci.id)
                except GymError as exc:
                    show_error(exc)
                else:
                    st.rerun()


def checkin_history_page(staff):
    st.header("🕘 Check-in History")

    month_start, month_end = reports.period_range("monthly")
    c1, c2, c3 = st.columns(3)
    with c1:
        start = st.date_input("From", value=month_start)
    with c2:
        end = st.date_input("To", value=month_end)
    with c3:
        all_members = members.list_members()
        options = {"All members": None} | {member_label(m): m.id for m in all_members}
        member_id = options[st.selectbox("Member", list(options.keys()))]

    rows = checkins.list_checkins(start=start, end=end, member_id=member_id)
    stats = reports.checkin_stats(rows)
    s1, s2, s3 = st.columns(3)
    s1.metric("Check-ins", stats.total_checkins)
    s2.metric("Unique members", stats.unique_members)
    s3.metric("Total hours", f"{stats.total_hours:.1f}")

    if rows:
        now = utils.now()
        st.dataframe(
            pd.DataFrame([{
                "date": r["check_in_date"],
                "code": r["member_code"],
                "name": r["full_name"],
                "in": r["check_in_time"],
                "out": r["check_out_time"] or "",
                "duration": checkins.format_duration(checkins.duration(checkins.get_checkin(r["id"]), now)),
            } for r in rows]),
            use_container_width=True,
            hide_index=True,
        )
        st.download_button(
            "Download CSV",
            data=exports.checkins_csv(rows, now),
            file_name=f"checkin_history_{start}_to_{end}.csv",
            mime="text/csv",
        )
    else:
        st.caption("No check-ins in this range.")


def payments_page(staff):
    st.header("💳 Payments")

    cache = list_cache(st.session_state)
    active_members = members.list_members(active_only=True)
    if not active_members:
        st.info("No members yet. Add a member first.")
        return

    st.subheader("Record payment")
    options = {member_label(m): m for m in active_members}
    c1, c2, c3, c4 = st.columns([2, 1, 1, 1])
    with c1:
        m = options[st.selectbox("Member", list(options.keys()))]
    with c2:
        amount = st.text_input("Amount", value="300000")
    with c3:
        pay_date = st.date_input("Date", value=utils.today())
    with c4:
        method = st.selectbox("Method", list(PAYMENT_METHODS.keys()), format_func=payments.method_label)
    notes = st.text_input("Notes", value="")

    if st.button("Record payment", type="primary"):
        try:
            p = payments.record_payment(m.id, amount, method, notes=notes, payment_date=pay_date,
                                        received_by=staff.username)
        except GymError as exc:
            show_error(exc)
        else:
            cache.invalidate("payments")
            st.success(f"Payment recorded: {p.invoice_number}")

    st.divider()
    st.subheader("Payment history")
    status = st.selectbox("Status filter", ["All"] + list(PAYMENT_STATUSES.keys()))
    rows = cache.get("payments", lambda: list(payments.list_payments()))
    if status != "All":
        rows = [r for r in rows if r["payment_status"] == status]
    if not rows:
        st.caption("No payments.")
        return

    st.dataframe(
        pd.DataFrame([{"invoice": r["invoice_number"], "date": r["payment_date"], "member": r["full_name"],
                       "amount": utils.format_currency(r["amount"]),
                       "method": payments.method_label(r["payment_method"]),
                       "status": r["payment_status"]} for r in rows]),
        use_container_width=True,
        hide_index=True,
    )

    by_invoice = {r["invoice_number"]: r for r in rows}
    chosen = st.selectbox("Invoice", list(by_invoice.keys()))
    row = by_invoice[chosen]
    c1, c2 = st.columns(2)
    with c1:
        payment = Payment.from_row(row)
        member = members.find_member(row["member_id"])
        membership = memberships.get_membership(row["membership_id"]) if row["membership_id"] else None
        if member:
            st.download_button(
                "Download invoice (HTML)",
                data=exports.invoice_html(payment, member, membership, row["package_name"]),
                file_name=f"{chosen}.html",
                mime="text/html",
            )
    with c2:
        confirm = st.checkbox("Confirm delete payment")
        if st.button("Delete payment", disabled=not confirm):
            try:
                optimistic_remove(cache, "payments", lambda r: r["id"] == row["id"],
                                  lambda: payments.delete_payment(row["id"]))
            except GymError as exc:
                show_error(exc)
            else:
                st.success("Payment deleted.")
                st.rerun()


def financial_reports_page(staff):
    st.header("🧾 Financial Reports")

    period = st.selectbox("Period", reports.PERIODS, index=reports.PERIODS.index("monthly"))
    custom_start = custom_end = None
    if period == "custom":
        c1, c2 = st.columns(2)
        month_start, month_end = reports.period_range("monthly")
        custom_start = c1.date_input("Start", value=month_start)
        custom_end = c2.date_input("End", value=month_end)
    try:
        start, end = reports.period_range(period, start=custom_start, end=custom_end)
    except GymError as exc:
        show_error(exc)
        return

    summary = reports.revenue_summary(start, end)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total revenue", utils.format_currency(summary.total))
    c2.metric("Transactions", summary.count)
    c3.metric("Average transaction", utils.format_currency(summary.average))
    c4.metric("Methods used", len(summary.by_method))

    st.subheader("By payment method")
    if summary.by_method:
        st.dataframe(
            pd.DataFrame([{"method": payments.method_label(k), "amount": utils.format_currency(v)}
                          for k, v in summary.by_method[:5]]),
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.caption("No paid payments in this period.")

    page = st.number_input("Page", min_value=1, step=1, value=1)
    rows = payments.list_payments(start=start, end=end, status="paid",
                                  limit=config.PAGE_SIZE, offset=(page - 1) * config.PAGE_SIZE)
    if rows:
        st.dataframe(pd.DataFrame([dict(r) for r in rows]), use_container_width=True, hide_index=True)

    all_rows = payments.list_payments(start=start, end=end, status="paid")
    st.download_button(
        "Download CSV",
        data=exports.payments_csv(all_rows),
        file_name=f"financial_report_{start}_to_{end}.csv",
        mime="text/csv",
        disabled=not all_rows,
    )

    st.subheader("Revenue by month")
    st.dataframe(reports.revenue_by_month(), use_container_width=True, hide_index=True)


def settings_page(staff):
    st.header("⚙️ Settings")

    st.subheader("Change password")
    p1 = st.text_input("New password", type="password")
    p2 = st.text_input("Confirm new password", type="password")
    if st.button("Update password", type="primary"):
        errors = auth.validate_new_password(p1, p2)
        if errors:
            for e in errors:
                st.error(e)
        else:
            auth.change_password(staff.username, p1)
            st.success("Password updated.")

    if staff.role in ("owner", "admin"):
        st.divider()
        st.subheader("Staff accounts")
        st.dataframe(pd.DataFrame([dict(r) for r in auth.list_staff()]), use_container_width=True, hide_index=True)
        c1, c2, c3, c4 = st.columns(4)
        username = c1.text_input("Username")
        full_name = c2.text_input("Full name")
        password = c3.text_input("Initial password", type="password")
        role = c4.selectbox("Role", STAFF_ROLES, index=STAFF_ROLES.index("staff"))
        if st.button("Add staff"):
            try:
                auth.create_staff(username, password, full_name, role)
            except GymError as exc:
                show_error(exc)
            else:
                st.success("Staff account created.")
                st.rerun()

        others = [r["username"] for r in auth.list_staff() if r["username"] != staff.username]
        if others:
            target = st.selectbox("Account", others)
            a1, a2 = st.columns(2)
            if a1.button("Deactivate"):
                auth.set_staff_active(target, False)
                st.rerun()
            if a2.button("Activate"):
                auth.set_staff_active(target, True)
                st.rerun()

    st.divider()

    st.subheader("Sample data")
    st.caption("Insert sample packages, members, memberships, payments and check-ins (adds new rows each run).")
    if st.button("Insert sample data"):
        try:
            sample_data.insert_sample_data(created_by=staff.username)
        except GymError as exc:
            show_error(exc)
        else:
            list_cache(st.session_state).invalidate()
            st.success("Sample data inserted.")
            st.rerun()


PAGES = {
    "Dashboard": dashboard_page,
    "Members": members_page,
    "Packages": packages_page,
    "Memberships": memberships_page,
    "Check-ins": checkins_page,
    "Check-in History": checkin_history_page,
    "Payments": payments_page,
    "Financial Reports": financial_reports_page,
    "Settings": settings_page,
}


def main_app(staff):
    st.sidebar.title("🏋️ Gym System")
    st.sidebar.caption(f"Logged in as: {staff.display_name} ({staff.role})")

    pages = list(PAGES.keys())
    if "page" not in st.session_state:
        st.session_state.page = "Dashboard"
    st.session_state.page = st.sidebar.radio("Navigate", pages, index=pages.index(st.session_state.page))

    if st.sidebar.button("Logout"):
        sign_out(st.session_state)
        st.rerun()

    try:
        PAGES[st.session_state.page](staff)
    except GymError as exc:
        logger.error("Unhandled error on %s: %s", st.session_state.page, exc.message)
        show_error(exc)


# --------- App entry ---------

def run():
    init_once()

    staff = current_session(st.session_state)
    if staff is None:
        login_screen()
        return

    # Force password change on first login after DB creation
    if db.is_force_password_change():
        force_change_password_screen(staff)
        return

    main_app(staff)


if __name__ == "__main__":
    run()

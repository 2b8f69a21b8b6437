from datetime import timezone

from flask import Blueprint, current_app, flash, g, render_template

from gymportal.models.bill import Bill
from gymportal.models.database import StoreError
from gymportal.models.diet import DietPlan
from gymportal.models.member import Member
from gymportal.models.notification import Notification
from gymportal.models.package import Package
from gymportal.models.store_item import StoreItem
from gymportal.utils.decorators import member_required
from gymportal.utils.helpers import format_currency, months_between, parse_datetime

member_routes_bp = Blueprint('member', __name__)

RECENT_BILLS = 5
RECENT_NOTIFICATIONS = 3
RECENT_ACTIVITY_LIMIT = 8


def load_section(label, loader, default):
    """Run one dashboard loader; a store failure leaves that section empty."""
    try:
        return loader()
    except StoreError as e:
        current_app.logger.error("Error loading %s: %s", label, e)
        flash(f'Error loading {label}', 'error')
        return default


def recent_activity(bills, notifications):
    """Latest bills and notifications merged, newest first."""
    entries = []
    for bill in bills[:RECENT_BILLS]:
        entries.append({
            'kind': 'bill',
            'text': f"Bill {bill.status_name}: {format_currency(bill.amount)}",
            'when': bill.date,
        })
    for note in notifications[:RECENT_NOTIFICATIONS]:
        entries.append({
            'kind': 'notification',
            'text': note.message,
            'when': note.created_at,
        })

    def sort_key(entry):
        parsed = parse_datetime(entry['when'])
        if parsed is None:
            return 0
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.timestamp()

    entries.sort(key=sort_key, reverse=True)
    return entries[:RECENT_ACTIVITY_LIMIT]


@member_routes_bp.route('/')
@member_required
def dashboard():
    """Member dashboard: the signed-in user's membership, bills and gym news"""
    profile = g.profile

    # Login profiles and member records are linked only by email
    member = load_section('membership', lambda: Member.get_by_email(profile.email), None)
    if member is None:
        current_app.logger.info("No member record for %s", profile.email)

    package = None
    bills = []
    diet = None
    if member is not None:
        package = load_section('package', lambda: Package.get_by_id(member.package_id), None)
        bills = load_section('bills', lambda: Bill.get_member_bills(member.id), [])
        diet = load_section('diet plan', lambda: DietPlan.get_for_member(member.id), None)

    notifications = load_section('notifications', Notification.get_latest, [])
    catalog = load_section('store items', StoreItem.get_catalog, [])

    return render_template(
        'member/dashboard.html',
        profile=profile,
        member=member,
        package=package,
        months_active=months_between(member.join_date) if member else 0,
        bills=bills,
        notifications=notifications,
        diet=diet,
        catalog=catalog,
        activity=recent_activity(bills, notifications),
    )

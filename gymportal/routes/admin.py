from flask import (Blueprint, Response, abort, current_app, flash, g, redirect,
                   render_template, request, session, url_for)

from gymportal.models.bill import Bill, BillStatus
from gymportal.models.database import StoreError
from gymportal.models.diet import DietPlan
from gymportal.models.member import Member, MemberStatus
from gymportal.models.notification import Notification, NotificationTarget
from gymportal.models.package import Package
from gymportal.models.store_item import StoreItem
from gymportal.utils.background import run_detached
from gymportal.utils.decorators import admin_required
from gymportal.utils.email_utils import send_notification_email
from gymportal.utils.export import EXPORTS, export_collection
from gymportal.utils.pagination import ListState, ListView
from gymportal.utils.validators import (ValidationError, clean, require, require_email,
                                        require_positive, to_number)

admin_bp = Blueprint('admin', __name__)


def _bill_matches(snapshot, term):
    """Bills search: substring of id, member id or receipt number."""
    haystack = ' '.join(str(v or '') for v in (
        snapshot.id, snapshot.get('memberId'), snapshot.get('receiptNo')))
    return term in haystack.lower()


# name -> ListView keyword arguments
LIST_VIEWS = {
    'members': dict(
        collection=Member.COLLECTION, order_by='name',
        row_mapper=Member.from_snapshot, server_search=True,
        status_default=MemberStatus.ACTIVE.value,
        error_message='Error loading members',
    ),
    'bills': dict(
        collection=Bill.COLLECTION, order_by='date', descending=True,
        row_mapper=Bill.from_snapshot, text_matcher=_bill_matches,
        error_message='Error loading bills',
    ),
    'store': dict(
        collection=StoreItem.COLLECTION, order_by='name',
        row_mapper=StoreItem.from_snapshot,
        error_message='Error loading store items',
    ),
}


# -------------------- List view state --------------------

def get_list_view(name):
    """Build the named ListView around the state remembered in the session."""
    states = session.get('lists') or {}
    return ListView(
        current_app.store,
        page_size=current_app.config['PAGE_SIZE'],
        state=ListState.from_dict(states.get(name)),
        **LIST_VIEWS[name]
    )


def save_list_state(name, view):
    states = dict(session.get('lists') or {})
    states[name] = view.state.to_dict()
    session['lists'] = states
    session.modified = True


def render_lists(active=None, action=None, value=None):
    """
    Load every list view for the console.

    ``active`` names the list the request acts on; ``action`` is one of
    'search', 'filter' or a direction.  The other lists re-read their
    current page.
    """
    pages = {}
    for name in LIST_VIEWS:
        view = get_list_view(name)
        if name == active and action == 'search':
            pages[name] = view.search(value)
        elif name == active and action == 'filter':
            pages[name] = view.filter(value)
        elif name == active and action in ('initial', 'next', 'prev'):
            pages[name] = view.load(action)
        else:
            pages[name] = view.refresh()
        save_list_state(name, view)
    return pages


def load_counters():
    """Dashboard totals; None when the store could not be read."""
    try:
        return {
            'members': Member.get_count(),
            'bills': Bill.get_count(),
            'revenue': Bill.get_total_revenue(),
            'store': StoreItem.get_count(),
        }
    except StoreError as e:
        current_app.logger.error("Error loading dashboard counters: %s", e)
        return None


# -------------------- Dashboard --------------------

@admin_bp.route('/')
@admin_required
def dashboard():
    """Admin console: counters, lists, and every management form"""
    active = request.args.get('list')
    action = value = None
    if active in LIST_VIEWS:
        if 'q' in request.args:
            action, value = 'search', request.args.get('q', '')
        elif 'status' in request.args:
            action, value = 'filter', request.args.get('status', '')
        else:
            action = request.args.get('dir', 'initial')

    lists = render_lists(active, action, value)
    counters = load_counters()

    try:
        packages = Package.get_all()
    except StoreError as e:
        current_app.logger.error("Error loading packages: %s", e)
        flash('Error loading packages', 'error')
        packages = []

    try:
        member_choices = Member.get_for_select()
    except StoreError as e:
        current_app.logger.error("Error loading members for select: %s", e)
        member_choices = []

    try:
        member_names = Member.get_names(b.member_id for b in lists['bills'].rows)
    except StoreError as e:
        current_app.logger.error("Error loading bill member names: %s", e)
        member_names = {b.member_id: b.member_id for b in lists['bills'].rows if b.member_id}

    editing = None
    edit_id = request.args.get('edit')
    if edit_id:
        try:
            editing = Member.get_by_id(edit_id)
        except StoreError as e:
            current_app.logger.error("Error loading member %s: %s", edit_id, e)
        if editing is None:
            flash('Member not found', 'error')

    return render_template(
        'admin/dashboard.html',
        profile=g.profile,
        counters=counters,
        lists=lists,
        packages=packages,
        package_names={p.id: p.name for p in packages},
        member_choices=member_choices,
        member_names=member_names,
        editing=editing,
        member_statuses=list(MemberStatus),
        bill_statuses=list(BillStatus),
        notification_targets=list(NotificationTarget),
        exports=EXPORTS,
    )


def back_to_console(**params):
    return redirect(url_for('admin.dashboard', **params))


# -------------------- Members --------------------

@admin_bp.route('/members/add', methods=['POST'])
@admin_required
def add_member():
    name = clean(request.form.get('name'))
    email = clean(request.form.get('email'))
    try:
        require(name, email, message='Name and Email are required', category='error')
        require_email(email, category='error')
    except ValidationError as e:
        flash(e.message, e.category)
        return back_to_console()

    try:
        if Member.email_exists(email):
            flash('Email already exists for another member', 'error')
            return back_to_console()
        member = Member(
            name=name,
            email=email,
            phone=clean(request.form.get('phone')) or None,
            join_date=clean(request.form.get('join_date')) or None,
            package_id=clean(request.form.get('package_id')) or None,
            status=MemberStatus.parse(request.form.get('status')),
        )
        member.save()
        current_app.logger.info("Member %s added (%s)", member.id, email)
        flash('Member added successfully', 'success')
    except StoreError as e:
        current_app.logger.error("Error adding member: %s", e)
        flash(f'Error adding member: {e.message}', 'error')
    return back_to_console()


@admin_bp.route('/members/<member_id>/update', methods=['POST'])
@admin_required
def update_member(member_id):
    email = clean(request.form.get('email'))
    if email and '@' not in email:
        flash('Please enter a valid email address', 'error')
        return back_to_console(edit=member_id)

    try:
        member = Member.get_by_id(member_id)
        if member is None:
            flash('Member not found', 'error')
            return back_to_console()
        if email and email != member.email and Member.email_exists(email, exclude_id=member_id):
            flash('Email already exists for another member', 'error')
            return back_to_console(edit=member_id)
        member.update(
            name=clean(request.form.get('name')),
            email=email,
            phone=clean(request.form.get('phone')),
            join_date=clean(request.form.get('join_date')),
            package_id=clean(request.form.get('package_id')),
        )
        flash('Member updated successfully', 'success')
    except StoreError as e:
        current_app.logger.error("Error updating member %s: %s", member_id, e)
        flash(f'Error updating member: {e.message}', 'error')
    return back_to_console()


@admin_bp.route('/members/<member_id>/delete', methods=['POST'])
@admin_required
def delete_member(member_id):
    try:
        Member.delete(member_id)
        flash('Member deleted successfully', 'success')
    except StoreError as e:
        current_app.logger.error("Error deleting member %s: %s", member_id, e)
        flash(f'Error deleting member: {e.message}', 'error')
    return back_to_console()


# -------------------- Packages --------------------

@admin_bp.route('/packages/add', methods=['POST'])
@admin_required
def add_package():
    name = clean(request.form.get('name'))
    if not name:
        flash('Package name is required', 'error')
        return back_to_console()

    try:
        Package(
            name=name,
            price=to_number(request.form.get('price'), 0),
            duration_months=to_number(request.form.get('duration_months'), 1),
            description=clean(request.form.get('description')),
        ).save()
        flash('Package added successfully', 'success')
    except StoreError as e:
        current_app.logger.error("Error adding package: %s", e)
        flash(f'Error adding package: {e.message}', 'error')
    return back_to_console()


@admin_bp.route('/packages/<package_id>/delete', methods=['POST'])
@admin_required
def delete_package(package_id):
    try:
        Package.delete(package_id)
        flash('Package deleted successfully', 'success')
    except StoreError as e:
        current_app.logger.error("Error deleting package %s: %s", package_id, e)
        flash(f'Error deleting package: {e.message}', 'error')
    return back_to_console()


# -------------------- Bills --------------------

@admin_bp.route('/bills/add', methods=['POST'])
@admin_required
def add_bill():
    member_id = clean(request.form.get('member_id'))
    raw_amount = clean(request.form.get('amount'))
    receipt_no = clean(request.form.get('receipt_no'))
    status = BillStatus.parse(request.form.get('status'), default=BillStatus.PAID)

    try:
        require(member_id, raw_amount, message='Member ID and amount required', category='error')
        require_positive(to_number(raw_amount, 0))
    except ValidationError as e:
        flash(e.message, e.category)
        return back_to_console()

    try:
        if receipt_no and Bill.receipt_exists(receipt_no):
            flash('Receipt number already exists', 'error')
            return back_to_console()
        bill = Bill(member_id=member_id, amount=to_number(raw_amount, 0), status=status,
                    receipt_no=receipt_no or None)
        bill.save()
        current_app.logger.info("Bill %s created for member %s", bill.id, member_id)
        flash('Bill created successfully', 'success')
    except StoreError as e:
        current_app.logger.error("Error creating bill: %s", e)
        flash(f'Error creating bill: {e.message}', 'error')
    return back_to_console()


# -------------------- Store --------------------

@admin_bp.route('/store/add', methods=['POST'])
@admin_required
def add_store_item():
    name = clean(request.form.get('name'))
    if not name:
        flash('Item name is required', 'error')
        return back_to_console()

    try:
        StoreItem(
            name=name,
            price=to_number(request.form.get('price'), 0),
            stock=to_number(request.form.get('stock'), 0),
            description=clean(request.form.get('description')),
        ).save()
        flash('Item added successfully', 'success')
    except StoreError as e:
        current_app.logger.error("Error adding store item: %s", e)
        flash(f'Error adding item: {e.message}', 'error')
    return back_to_console()


@admin_bp.route('/store/<item_id>/delete', methods=['POST'])
@admin_required
def delete_store_item(item_id):
    try:
        StoreItem.delete(item_id)
        flash('Item deleted successfully', 'success')
    except StoreError as e:
        current_app.logger.error("Error deleting store item %s: %s", item_id, e)
        flash(f'Error deleting item: {e.message}', 'error')
    return back_to_console()


# -------------------- Diet plans --------------------

@admin_bp.route('/diet', methods=['POST'])
@admin_required
def save_diet():
    member_id = clean(request.form.get('member_id'))
    plan = clean(request.form.get('plan'))
    if not member_id or not plan:
        flash('Please select a member and enter a diet plan', 'error')
        return back_to_console()

    try:
        DietPlan(member_id=member_id, plan=plan).save()
        flash('Diet plan saved successfully', 'success')
    except StoreError as e:
        current_app.logger.error("Error saving diet plan for %s: %s", member_id, e)
        flash(f'Error saving diet plan: {e.message}', 'error')
    return back_to_console()


# -------------------- Notifications --------------------

def mail_members(message):
    """Mail a broadcast to every member with an email address."""
    recipients = [m.email for m in Member.get_for_select(limit=None) if m.email]
    sent = send_notification_email(recipients, message)
    current_app.logger.info("Notification mailed to %d of %d members", sent, len(recipients))
    return sent


@admin_bp.route('/notifications', methods=['POST'])
@admin_required
def send_notification():
    message = clean(request.form.get('message'))
    if not message:
        flash('Please enter a notification message', 'error')
        return back_to_console()

    target = NotificationTarget.parse(request.form.get('target'))
    try:
        Notification(target=target, message=message).save()
    except StoreError as e:
        current_app.logger.error("Error sending notification: %s", e)
        flash(f'Error sending notification: {e.message}', 'error')
        return back_to_console()

    if current_app.config.get('NOTIFY_BY_EMAIL') and target == NotificationTarget.ALL:
        run_detached(mail_members, message)
    flash('Notification sent successfully', 'success')
    return back_to_console()


# -------------------- Exports --------------------

@admin_bp.route('/export/<kind>')
@admin_required
def export(kind):
    """Download a whole collection as CSV"""
    if kind not in EXPORTS:
        abort(404)
    try:
        filename, text = export_collection(current_app.store, kind)
    except StoreError as e:
        current_app.logger.error("Error exporting %s: %s", kind, e)
        flash('Export failed', 'error')
        return back_to_console()

    current_app.logger.info("Exported %s", filename)
    return Response(
        text,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={filename}'},
    )

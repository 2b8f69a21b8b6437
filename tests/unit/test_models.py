# tests/unit/test_models.py
import pytest

from gymportal.models.bill import Bill, BillStatus
from gymportal.models.diet import DietPlan
from gymportal.models.member import Member, MemberStatus
from gymportal.models.notification import Notification, NotificationTarget
from gymportal.models.package import Package
from gymportal.models.store_item import StoreItem
from gymportal.models.user import Role, UserProfile


@pytest.fixture
def ctx(flask_app):
    with flask_app.app_context():
        yield flask_app


def test_role_and_status_parsing():
    assert Role.parse("ADMIN") is Role.ADMIN
    assert Role.parse("trainer") is None
    assert MemberStatus.parse(None) is MemberStatus.ACTIVE
    assert MemberStatus.parse("Suspended") is MemberStatus.SUSPENDED
    assert MemberStatus.parse("weird") is MemberStatus.ACTIVE
    assert BillStatus.parse("due") is BillStatus.DUE
    assert BillStatus.parse("refunded", default="refunded") == "refunded"
    assert NotificationTarget.parse("") is NotificationTarget.ALL


def test_user_profile_save_and_touch_last_login(ctx):
    UserProfile(uid="u1", name="Ann", email="ann@example.com", role=Role.ADMIN).save()
    profile = UserProfile.get("u1")
    assert profile.role is Role.ADMIN
    assert profile.created_at == profile.last_login

    UserProfile.touch_last_login("u1")
    refreshed = UserProfile.get("u1")
    assert refreshed.name == "Ann"
    assert refreshed.last_login >= profile.last_login
    assert UserProfile.get("missing") is None


def test_member_save_defaults_and_lookup(ctx):
    member_id = Member(name="Ann", email="ann@example.com").save()
    member = Member.get_by_id(member_id)
    assert member.status is MemberStatus.ACTIVE
    assert member.join_date  # defaults to today
    assert Member.get_by_email("ann@example.com").id == member_id
    assert Member.get_by_email("nobody@example.com") is None


def test_member_email_exists_excludes_self(ctx):
    member_id = Member(name="Ann", email="ann@example.com").save()
    assert Member.email_exists("ann@example.com")
    assert not Member.email_exists("ann@example.com", exclude_id=member_id)
    assert not Member.email_exists("other@example.com")


def test_member_names_skip_missing_ids(ctx):
    ann = Member(name="Ann", email="ann@example.com").save()
    unnamed = Member(email="x@example.com").save()
    names = Member.get_names([ann, unnamed, "gone", None, ann])
    assert names == {ann: "Ann", unnamed: unnamed}


def test_member_update_keeps_blank_fields(ctx):
    member_id = Member(name="Ann", email="ann@example.com", phone="555").save()
    member = Member.get_by_id(member_id)
    member.update(name="Annie", phone="")
    stored = Member.get_by_id(member_id)
    assert stored.name == "Annie"
    assert stored.phone == "555"
    assert stored.updated_at is not None


def test_member_dangling_package_reference(ctx):
    member_id = Member(name="Ann", email="ann@example.com", package_id="gone").save()
    member = Member.get_by_id(member_id)
    assert Package.get_by_id(member.package_id) is None


def test_bill_revenue_counts_only_paid(ctx):
    Bill(member_id="m1", amount=100, status=BillStatus.PAID).save()
    Bill(member_id="m1", amount=50.5, status=BillStatus.PAID).save()
    Bill(member_id="m1", amount=70, status=BillStatus.DUE).save()
    assert Bill.get_total_revenue() == 150.5
    assert Bill.get_count() == 3


def test_member_bills_newest_first(ctx):
    Bill(member_id="m1", amount=1, date="2024-01-01T00:00:00.000Z").save()
    Bill(member_id="m1", amount=2, date="2024-03-01T00:00:00.000Z").save()
    Bill(member_id="m2", amount=3, date="2024-02-01T00:00:00.000Z").save()
    bills = Bill.get_member_bills("m1")
    assert [b.amount for b in bills] == [2, 1]


def test_receipt_exists(ctx):
    Bill(member_id="m1", amount=10, receipt_no="R-1").save()
    assert Bill.receipt_exists("R-1")
    assert not Bill.receipt_exists("R-2")


def test_diet_plan_overwrites(ctx):
    DietPlan(member_id="m1", plan="Eggs").save()
    DietPlan(member_id="m1", plan="Oats").save()
    assert DietPlan.get_for_member("m1").plan == "Oats"
    assert DietPlan.get_for_member("m2") is None


def test_notifications_latest_for_target(ctx):
    store = ctx.store
    store.set("notifications", "n1", {"target": "all", "message": "old",
                                      "createdAt": "2024-01-01T00:00:00.000Z"})
    store.set("notifications", "n2", {"target": "all", "message": "new",
                                      "createdAt": "2024-02-01T00:00:00.000Z"})
    store.set("notifications", "n3", {"target": "admin", "message": "staff only",
                                      "createdAt": "2024-03-01T00:00:00.000Z"})
    latest = Notification.get_latest()
    assert [n.message for n in latest] == ["new", "old"]

    note_id = Notification(target=NotificationTarget.ALL, message="fresh").save()
    assert Notification.get_latest(limit=1)[0].id == note_id


def test_store_catalog_ordered_and_stock(ctx):
    StoreItem(name="Towel", price=5, stock=0).save()
    StoreItem(name="Bands", price=12, stock=4).save()
    catalog = StoreItem.get_catalog()
    assert [i.name for i in catalog] == ["Bands", "Towel"]
    assert catalog[0].in_stock() and not catalog[1].in_stock()

import uuid
from datetime import date
from enum import Enum

from gymportal.models.database import get_store, utc_now_iso


class MemberStatus(str, Enum):
    ACTIVE = 'active'
    INACTIVE = 'inactive'
    SUSPENDED = 'suspended'

    @classmethod
    def parse(cls, value):
        """Stored status string to MemberStatus; missing or unknown reads as active."""
        try:
            return cls((value or 'active').strip().lower())
        except ValueError:
            return cls.ACTIVE


class Member:
    """
    Member document in the ``members`` collection.

    Independent of the login profile in ``users``: the two are linked only by
    matching email when a member opens their dashboard.  ``package_id`` is a
    weak reference and may point at a deleted package.
    """

    COLLECTION = 'members'

    def __init__(self, id=None, name=None, email=None, phone=None, join_date=None,
                 package_id=None, status=MemberStatus.ACTIVE, created_at=None,
                 updated_at=None):
        self.id = id
        self.name = name
        self.email = email
        self.phone = phone
        self.join_date = join_date
        self.package_id = package_id
        self.status = status
        self.created_at = created_at
        self.updated_at = updated_at

    # -------------------- Fetchers --------------------

    @classmethod
    def from_snapshot(cls, snapshot):
        if not snapshot.exists:
            return None
        return cls(
            id=snapshot.id,
            name=snapshot.get('name'),
            email=snapshot.get('email'),
            phone=snapshot.get('phone'),
            join_date=snapshot.get('joinDate'),
            package_id=snapshot.get('packageId'),
            status=MemberStatus.parse(snapshot.get('status')),
            created_at=snapshot.get('createdAt'),
            updated_at=snapshot.get('updatedAt'),
        )

    @classmethod
    def get_by_id(cls, member_id):
        return cls.from_snapshot(get_store().get(cls.COLLECTION, member_id))

    @classmethod
    def get_by_email(cls, email):
        """First member whose email matches exactly, or None."""
        docs = get_store().collection(cls.COLLECTION).where('email', email or '').limit(1).get()
        return cls.from_snapshot(docs[0]) if docs else None

    @classmethod
    def email_exists(cls, email, exclude_id=None):
        docs = get_store().collection(cls.COLLECTION).where('email', email).get()
        return any(d.id != exclude_id for d in docs)

    @classmethod
    def get_for_select(cls, limit=200):
        """Members ordered by name for the bill and diet dropdowns."""
        docs = get_store().collection(cls.COLLECTION).order_by('name').limit(limit).get()
        return [cls.from_snapshot(d) for d in docs]

    @classmethod
    def get_names(cls, member_ids):
        """Map of id to display name for the members that still exist."""
        store = get_store()
        names = {}
        for member_id in set(filter(None, member_ids)):
            member = cls.from_snapshot(store.get(cls.COLLECTION, member_id))
            if member is not None:
                names[member_id] = member.name or member_id
        return names

    @classmethod
    def get_count(cls):
        return get_store().count(cls.COLLECTION)

    # -------------------- Persistence --------------------

    def to_dict(self):
        return {
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'joinDate': self.join_date,
            'packageId': self.package_id,
            'status': self.status.value if self.status else MemberStatus.ACTIVE.value,
            'createdAt': self.created_at,
        }

    def save(self):
        """Insert a new member under a generated id."""
        self.id = self.id or str(uuid.uuid4())
        self.join_date = self.join_date or date.today().isoformat()
        self.created_at = self.created_at or utc_now_iso()
        get_store().set(self.COLLECTION, self.id, self.to_dict())
        return self.id

    def update(self, name=None, email=None, phone=None, join_date=None, package_id=None):
        """Patch the member; blank values keep what is stored."""
        self.name = name or self.name
        self.email = email or self.email
        self.phone = phone or self.phone
        self.join_date = join_date or self.join_date
        self.package_id = package_id or self.package_id
        self.updated_at = utc_now_iso()
        patch = {
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'joinDate': self.join_date,
            'packageId': self.package_id,
            'updatedAt': self.updated_at,
        }
        get_store().set(self.COLLECTION, self.id, patch, merge=True)
        return self.id

    @classmethod
    def delete(cls, member_id):
        get_store().delete(cls.COLLECTION, member_id)

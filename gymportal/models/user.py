from enum import Enum

from gymportal.models.database import get_store, utc_now_iso


class Role(str, Enum):
    ADMIN = 'admin'
    MEMBER = 'member'

    @classmethod
    def parse(cls, value, default=None):
        """Map a stored role string to a Role, or ``default`` when unknown."""
        try:
            return cls((value or '').strip().lower())
        except ValueError:
            return default


class UserProfile:
    """Profile document stored under ``users/{uid}``."""

    COLLECTION = 'users'

    def __init__(self, uid=None, name=None, email=None, role=Role.MEMBER,
                 created_at=None, last_login=None):
        self.uid = uid
        self.name = name
        self.email = email
        self.role = role
        self.created_at = created_at
        self.last_login = last_login

    @property
    def role_name(self):
        return self.role.value if self.role else None

    @classmethod
    def from_snapshot(cls, snapshot):
        if not snapshot.exists:
            return None
        return cls(
            uid=snapshot.id,
            name=snapshot.get('name'),
            email=snapshot.get('email'),
            role=Role.parse(snapshot.get('role')),
            created_at=snapshot.get('createdAt'),
            last_login=snapshot.get('lastLogin'),
        )

    @classmethod
    def get(cls, uid):
        """Fetch a profile; ``None`` when the document does not exist."""
        return cls.from_snapshot(get_store().get(cls.COLLECTION, uid))

    @classmethod
    def touch_last_login(cls, uid):
        get_store().set(cls.COLLECTION, uid, {'lastLogin': utc_now_iso()}, merge=True)

    def to_dict(self):
        return {
            'name': self.name,
            'email': self.email,
            'role': self.role_name,
            'createdAt': self.created_at,
            'lastLogin': self.last_login,
        }

    def save(self):
        now = utc_now_iso()
        self.created_at = self.created_at or now
        self.last_login = self.last_login or now
        get_store().set(self.COLLECTION, self.uid, self.to_dict())
        return self.uid

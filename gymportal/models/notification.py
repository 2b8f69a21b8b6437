from enum import Enum

from gymportal.models.database import SERVER_TIMESTAMP, get_store


class NotificationTarget(str, Enum):
    ALL = 'all'
    ADMIN = 'admin'
    MEMBER = 'member'

    @classmethod
    def parse(cls, value):
        try:
            return cls((value or 'all').strip().lower())
        except ValueError:
            return cls.ALL


class Notification:
    COLLECTION = 'notifications'

    def __init__(self, id=None, target=NotificationTarget.ALL, message=None, created_at=None):
        self.id = id
        self.target = target
        self.message = message
        self.created_at = created_at

    @classmethod
    def from_snapshot(cls, snapshot):
        return cls(
            id=snapshot.id,
            target=NotificationTarget.parse(snapshot.get('target')),
            message=snapshot.get('message') or '',
            created_at=snapshot.get('createdAt'),
        )

    @classmethod
    def get_latest(cls, target=NotificationTarget.ALL, limit=10):
        """Newest notifications for a target audience"""
        docs = (get_store().collection(cls.COLLECTION)
                .where('target', target.value)
                .order_by('createdAt', descending=True)
                .limit(limit).get())
        return [cls.from_snapshot(d) for d in docs]

    def save(self):
        self.id = get_store().add(self.COLLECTION, {
            'target': self.target.value,
            'message': self.message,
            'createdAt': SERVER_TIMESTAMP,
        })
        return self.id

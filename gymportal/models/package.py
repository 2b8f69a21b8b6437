import uuid

from gymportal.models.database import get_store, utc_now_iso


class Package:
    """Membership package: name, price, duration in months."""

    COLLECTION = 'packages'

    def __init__(self, id=None, name=None, price=0, duration_months=1,
                 description=None, created_at=None):
        self.id = id
        self.name = name
        self.price = price
        self.duration_months = duration_months
        self.description = description
        self.created_at = created_at

    @classmethod
    def from_snapshot(cls, snapshot):
        if not snapshot.exists:
            return None
        return cls(
            id=snapshot.id,
            name=snapshot.get('name'),
            price=snapshot.get('price', 0),
            duration_months=snapshot.get('durationMonths', 1),
            description=snapshot.get('description'),
            created_at=snapshot.get('createdAt'),
        )

    @classmethod
    def get_all(cls):
        """All packages ordered by name"""
        docs = get_store().collection(cls.COLLECTION).order_by('name').get()
        return [cls.from_snapshot(d) for d in docs]

    @classmethod
    def get_by_id(cls, package_id):
        if not package_id:
            return None
        return cls.from_snapshot(get_store().get(cls.COLLECTION, package_id))

    def to_dict(self):
        return {
            'name': self.name,
            'price': self.price,
            'durationMonths': self.duration_months,
            'description': self.description,
            'createdAt': self.created_at,
        }

    def save(self):
        self.id = self.id or str(uuid.uuid4())
        self.created_at = self.created_at or utc_now_iso()
        get_store().set(self.COLLECTION, self.id, self.to_dict())
        return self.id

    @classmethod
    def delete(cls, package_id):
        get_store().delete(cls.COLLECTION, package_id)

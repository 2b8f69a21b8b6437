import uuid

from gymportal.models.database import get_store, utc_now_iso


class StoreItem:
    COLLECTION = 'storeItems'

    def __init__(self, id=None, name=None, price=0, stock=0, description=None,
                 created_at=None):
        self.id = id
        self.name = name
        self.price = price
        self.stock = stock
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
            stock=snapshot.get('stock', 0),
            description=snapshot.get('description'),
            created_at=snapshot.get('createdAt'),
        )

    @classmethod
    def get_catalog(cls, limit=20):
        """First items by name, as shown to members"""
        docs = get_store().collection(cls.COLLECTION).order_by('name').limit(limit).get()
        return [cls.from_snapshot(d) for d in docs]

    @classmethod
    def get_count(cls):
        return get_store().count(cls.COLLECTION)

    def in_stock(self):
        return (self.stock or 0) > 0

    def to_dict(self):
        return {
            'name': self.name,
            'price': self.price,
            'stock': self.stock,
            'description': self.description,
            'createdAt': self.created_at,
        }

    def save(self):
        self.id = self.id or str(uuid.uuid4())
        self.created_at = self.created_at or utc_now_iso()
        get_store().set(self.COLLECTION, self.id, self.to_dict())
        return self.id

    @classmethod
    def delete(cls, item_id):
        get_store().delete(cls.COLLECTION, item_id)

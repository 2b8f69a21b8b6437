from enum import Enum

from gymportal.models.database import SERVER_TIMESTAMP, get_store, utc_now_iso


class BillStatus(str, Enum):
    PAID = 'paid'
    DUE = 'due'
    OVERDUE = 'overdue'

    @classmethod
    def parse(cls, value, default=None):
        try:
            return cls((value or '').strip().lower())
        except ValueError:
            return default


# Upper bound on paid bills read when summing revenue
REVENUE_SCAN_LIMIT = 1000


class Bill:
    COLLECTION = 'bills'

    def __init__(self, id=None, member_id=None, amount=0, status=BillStatus.PAID,
                 receipt_no=None, date=None, created_at=None):
        self.id = id
        self.member_id = member_id
        self.amount = amount
        self.status = status
        self.receipt_no = receipt_no
        self.date = date
        self.created_at = created_at

    @property
    def status_name(self):
        return self.status.value if isinstance(self.status, BillStatus) else self.status

    @classmethod
    def from_snapshot(cls, snapshot):
        if not snapshot.exists:
            return None
        raw_status = snapshot.get('status')
        return cls(
            id=snapshot.id,
            member_id=snapshot.get('memberId'),
            amount=snapshot.get('amount') or 0,
            status=BillStatus.parse(raw_status, default=raw_status),
            receipt_no=snapshot.get('receiptNo'),
            date=snapshot.get('date'),
            created_at=snapshot.get('createdAt'),
        )

    @classmethod
    def receipt_exists(cls, receipt_no):
        docs = get_store().collection(cls.COLLECTION).where('receiptNo', receipt_no).limit(1).get()
        return bool(docs)

    @classmethod
    def get_member_bills(cls, member_id, limit=None):
        """A member's bills, newest first"""
        query = (get_store().collection(cls.COLLECTION)
                 .where('memberId', member_id)
                 .order_by('date', descending=True))
        if limit:
            query = query.limit(limit)
        return [cls.from_snapshot(d) for d in query.get()]

    @classmethod
    def get_count(cls):
        return get_store().count(cls.COLLECTION)

    @classmethod
    def get_total_revenue(cls):
        """Sum of paid bill amounts (first REVENUE_SCAN_LIMIT paid bills)."""
        docs = (get_store().collection(cls.COLLECTION)
                .where('status', BillStatus.PAID.value)
                .limit(REVENUE_SCAN_LIMIT).get())
        return sum(d.get('amount') or 0 for d in docs)

    def to_dict(self):
        return {
            'memberId': self.member_id,
            'amount': self.amount,
            'receiptNo': self.receipt_no,
            'status': self.status_name,
            'date': self.date,
            'createdAt': self.created_at,
        }

    def save(self):
        """Create the bill under a generated id"""
        self.date = self.date or utc_now_iso()
        data = self.to_dict()
        data['createdAt'] = self.created_at or SERVER_TIMESTAMP
        self.id = get_store().add(self.COLLECTION, data)
        return self.id

"""Whole-collection CSV exports.

Each export reads the entire collection in one query and builds the file in
memory.  Every field is double-quoted and embedded quotes are doubled.
"""
import csv
import io


def _member_row(snap):
    return [snap.id, snap.get('name'), snap.get('email'), snap.get('phone') or '',
            snap.get('joinDate'), snap.get('packageId') or '', snap.get('status') or 'active']


def _bill_row(snap):
    return [snap.id, snap.get('memberId'), snap.get('amount'), snap.get('status'),
            snap.get('receiptNo') or '', snap.get('date')]


def _package_row(snap):
    return [snap.id, snap.get('name'), snap.get('price'), snap.get('durationMonths'),
            snap.get('description') or '']


def _store_row(snap):
    return [snap.id, snap.get('name'), snap.get('price'), snap.get('stock'),
            snap.get('description') or '']


class CollectionExport:
    def __init__(self, collection, filename, headers, row_mapper, label):
        self.collection = collection
        self.filename = filename
        self.headers = headers
        self.row_mapper = row_mapper
        self.label = label


EXPORTS = {
    'members': CollectionExport(
        'members', 'members.csv',
        ['ID', 'Name', 'Email', 'Phone', 'Join Date', 'Package', 'Status'],
        _member_row, 'Members'),
    'bills': CollectionExport(
        'bills', 'bills.csv',
        ['ID', 'Member ID', 'Amount', 'Status', 'Receipt', 'Date'],
        _bill_row, 'Bills'),
    'packages': CollectionExport(
        'packages', 'packages.csv',
        ['ID', 'Name', 'Price', 'Duration (months)', 'Description'],
        _package_row, 'Packages'),
    'store': CollectionExport(
        'storeItems', 'store_items.csv',
        ['ID', 'Name', 'Price', 'Stock', 'Description'],
        _store_row, 'Store items'),
}


def to_csv(rows):
    """Serialize rows with every field quoted; None becomes an empty string."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
    for row in rows:
        writer.writerow(['' if value is None else value for value in row])
    return buffer.getvalue()


def export_collection(store, kind):
    """Return ``(filename, csv_text)`` for one of :data:`EXPORTS`.

    Raises ``KeyError`` for an unknown kind and lets store errors propagate.
    """
    spec = EXPORTS[kind]
    snapshots = store.collection(spec.collection).get()
    rows = [spec.headers] + [spec.row_mapper(s) for s in snapshots]
    return spec.filename, to_csv(rows)

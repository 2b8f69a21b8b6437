# tests/unit/test_export.py
import pytest

from gymportal.models.database import DocumentStore, init_db
from gymportal.utils.export import EXPORTS, export_collection, to_csv


@pytest.fixture
def doc_store(tmp_path):
    path = str(tmp_path / "export.db")
    init_db(path)
    return DocumentStore(path)


@pytest.mark.parametrize("kind", sorted(EXPORTS))
def test_empty_collection_exports_header_only(doc_store, kind):
    filename, text = export_collection(doc_store, kind)
    assert filename == EXPORTS[kind].filename
    lines = text.splitlines()
    assert len(lines) == 1
    assert lines[0] == ",".join(f'"{h}"' for h in EXPORTS[kind].headers)


def test_every_field_quoted_and_quotes_doubled():
    text = to_csv([["a", 'say "hi"', None, 5]])
    assert text == '"a","say ""hi""","","5"\n'


def test_members_export_rows(doc_store):
    doc_store.set("members", "m1", {
        "name": "Ann", "email": "ann@example.com", "joinDate": "2024-01-01",
    })
    filename, text = export_collection(doc_store, "members")
    assert filename == "members.csv"
    lines = text.splitlines()
    assert len(lines) == 2
    # missing phone/package become empty, missing status reads as active
    assert lines[1] == '"m1","Ann","ann@example.com","","2024-01-01","","active"'


def test_store_export_reads_store_items_collection(doc_store):
    doc_store.set("storeItems", "s1", {"name": "Shaker", "price": 9.5, "stock": 3})
    filename, text = export_collection(doc_store, "store")
    assert filename == "store_items.csv"
    assert '"s1","Shaker","9.5","3",""' in text


def test_unknown_kind_raises_key_error(doc_store):
    with pytest.raises(KeyError):
        export_collection(doc_store, "diets")

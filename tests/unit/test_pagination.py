# tests/unit/test_pagination.py
import pytest

from gymportal.models.database import Cursor, DocumentStore, StoreError, init_db
from gymportal.utils.pagination import PREFIX_SENTINEL, ListState, ListView


@pytest.fixture
def doc_store(tmp_path):
    path = str(tmp_path / "pages.db")
    init_db(path)
    return DocumentStore(path)


@pytest.fixture
def sixty_members(doc_store):
    statuses = ["active", "inactive"]
    for i in range(60):
        doc_store.set("members", f"id{i:02d}", {
            "name": f"Member {i:02d}",
            "email": f"member{i:02d}@example.com",
            "status": statuses[i % 2],
        })
    return doc_store


def member_view(doc_store, **kwargs):
    kwargs.setdefault("page_size", 25)
    return ListView(doc_store, "members", order_by="name", server_search=True,
                    row_mapper=lambda snap: snap.get("name"), status_default="active", **kwargs)


def test_initial_load_first_page(sixty_members):
    view = member_view(sixty_members)
    page = view.load("initial")
    assert page.page == 1
    assert page.label == "Page 1"
    assert len(page.rows) == 25
    assert page.rows[0] == "Member 00"
    assert page.has_next and not page.has_prev
    assert view.state.cursor == Cursor("Member 24", "id24")


def test_next_then_prev_returns_to_same_first_row(sixty_members):
    view = member_view(sixty_members)
    view.load("initial")
    second = view.next()
    assert second.page == 2
    assert second.rows[0] == "Member 25"

    third = view.next()
    assert third.rows[0] == "Member 50"
    assert len(third.rows) == 10

    back = view.prev()
    assert back.page == 2
    assert back.rows[0] == second.rows[0]

    back = view.prev()
    assert back.page == 1
    assert back.rows[0] == "Member 00"


def test_prev_at_page_one_stays_on_page_one(sixty_members):
    view = member_view(sixty_members)
    view.load("initial")
    page = view.prev()
    assert page.page == 1
    assert page.rows[0] == "Member 00"
    assert not page.has_prev


def test_next_without_cursor_behaves_as_initial(sixty_members):
    view = member_view(sixty_members)
    page = view.next()
    assert page.page == 1
    assert page.rows[0] == "Member 00"


def test_refresh_rereads_current_page(sixty_members):
    view = member_view(sixty_members)
    view.load("initial")
    view.next()
    sixty_members.set("members", "id00", {"name": "Member 00 renamed", "status": "active"})
    page = view.refresh()
    assert page.page == 2
    assert page.rows[0] == "Member 25"


def test_status_filter_never_exceeds_fetched(sixty_members):
    view = member_view(sixty_members)
    page = view.filter("inactive")
    assert page.page == 1
    assert page.fetched == 25
    assert len(page.rows) <= page.fetched
    assert page.rows[0] == "Member 01"

    empty = view.filter("suspended")
    assert empty.fetched == 25
    assert empty.rows == []


def test_missing_status_reads_as_default(doc_store):
    doc_store.set("members", "x", {"name": "No Status"})
    view = member_view(doc_store)
    assert view.filter("active").rows == ["No Status"]


def test_search_prefix_matches_name(doc_store):
    for i, name in enumerate(["John", "Joanna", "mjo", "Bob"]):
        doc_store.set("members", f"m{i}", {"name": name, "email": f"{name.lower()}@x.com"})
    view = member_view(doc_store)
    page = view.search("jo")
    assert sorted(page.rows) == ["Joanna", "John"]
    assert page.label == "Search results"
    assert not page.has_next and not page.has_prev


def test_search_is_case_insensitive(doc_store):
    doc_store.set("members", "m1", {"name": "John", "email": "john@x.com"})
    view = member_view(doc_store)
    assert view.search("JO").rows == ["John"]
    assert view.state.search_term == "jo"


def test_search_with_at_sign_orders_by_email(doc_store):
    doc_store.set("members", "m1", {"name": "Zed", "email": "ann@example.com"})
    doc_store.set("members", "m2", {"name": "Ann", "email": "bob@example.com"})
    view = member_view(doc_store)
    page = view.search("ann@")
    assert page.rows == ["Zed"]
    # cursor is taken on the searched field
    assert view.state.cursor == Cursor("ann@example.com", "m1")


def test_search_query_bounds(doc_store):
    view = member_view(doc_store)
    query, field = view._search_query("jo")
    assert field == "name"
    assert query._start_at == "jo"
    assert query._end_at == "jo" + PREFIX_SENTINEL

    query, field = view._search_query("jo@x")
    assert field == "email"
    assert query._end_at == "jo@x" + PREFIX_SENTINEL


def test_clearing_search_reenables_navigation(sixty_members):
    view = member_view(sixty_members)
    view.search("member 1")
    page = view.search("")
    assert page.label == "Page 1"
    assert page.has_next


def test_error_keeps_state_for_retry(sixty_members, monkeypatch):
    view = member_view(sixty_members, error_message="Error loading members")
    view.load("initial")
    good_cursor = view.state.cursor

    def broken(*a, **k):
        raise StoreError("unavailable", "backend down")
    monkeypatch.setattr(sixty_members, "_read", broken)

    page = view.next()
    assert page.error == "Error loading members"
    assert page.rows == []
    assert view.state.page == 1
    assert view.state.cursor == good_cursor

    monkeypatch.undo()
    retry = view.next()
    assert retry.page == 2
    assert retry.rows[0] == "Member 25"


def test_client_side_matcher_keeps_paging(doc_store):
    for i in range(30):
        doc_store.set("bills", f"b{i:02d}", {"date": f"2024-01-{i + 1:02d}", "receiptNo": f"R{i}"})
    view = ListView(doc_store, "bills", order_by="date", descending=True, page_size=25,
                    row_mapper=lambda snap: snap.get("receiptNo"),
                    text_matcher=lambda snap, term: term in snap.get("receiptNo").lower())
    page = view.search("r2")
    assert page.fetched == 25
    # newest first: b29..b05 were fetched, so R2 itself is not on this page
    assert page.rows == [f"R{i}" for i in range(29, 19, -1)]
    assert page.has_next
    assert page.label == "Page 1"


def test_state_round_trips_through_session_dict():
    state = ListState(cursor=Cursor("Ann", "m1"), page=3, search_term="jo", status_filter="active")
    restored = ListState.from_dict(state.to_dict())
    assert restored.cursor == state.cursor
    assert restored.page == 3
    assert restored.search_term == "jo"
    assert restored.status_filter == "active"

    fresh = ListState.from_dict(None)
    assert fresh.page == 1 and fresh.cursor is None

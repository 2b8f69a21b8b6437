"""Cursor-paginated list views over a document collection.

One :class:`ListView` per admin table (members, bills, store items).  The
view owns a :class:`ListState` (remembered cursor, page number, search term,
status filter) that the routes keep in the Flask session between requests.

Forward pages query strictly after the last document of the previous page.
The store has no reverse cursor, so ``prev`` re-reads the collection from
the start up to the end of the page before the target page and continues
after its last document.
"""
import logging

from flask import current_app, has_app_context

from gymportal.models.database import Cursor, StoreError

logger = logging.getLogger(__name__)

# Highest private-use code point; closes a prefix range on an ordered field.
PREFIX_SENTINEL = '\uf8ff'

DEFAULT_PAGE_SIZE = 25

# 'refresh' re-reads the current page after a mutation
DIRECTIONS = ('initial', 'next', 'prev', 'refresh')


class ListState:
    def __init__(self, cursor=None, page=1, search_term='', status_filter=''):
        self.cursor = cursor
        self.page = page
        self.search_term = search_term
        self.status_filter = status_filter

    def to_dict(self):
        return {
            'cursor': self.cursor.to_list() if self.cursor else None,
            'page': self.page,
            'search': self.search_term,
            'status': self.status_filter,
        }

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            cursor=Cursor.from_list(data.get('cursor')),
            page=max(1, int(data.get('page') or 1)),
            search_term=data.get('search') or '',
            status_filter=data.get('status') or '',
        )


class ListPage:
    """Rendered result of one load: rows plus navigation state."""

    def __init__(self, rows, page, label, has_next=False, has_prev=False, error=None,
                 fetched=0, search_term='', status_filter=''):
        self.rows = rows
        self.page = page
        self.label = label
        self.has_next = has_next
        self.has_prev = has_prev
        self.error = error
        self.fetched = fetched
        self.search_term = search_term
        self.status_filter = status_filter


class ListView:
    """
    Paginated, searchable, filterable view of one collection.

    ``row_mapper`` turns a snapshot into a table row.  With
    ``server_search`` a search term becomes a prefix-range query on ``name``
    (or ``email`` when the term contains '@') and paging is disabled while
    it is active; otherwise ``text_matcher(snapshot, term)`` filters the
    fetched page.  The status filter is always applied to the fetched page,
    comparing ``status_field`` (``status_default`` when missing).
    """

    def __init__(self, store, collection, order_by, descending=False,
                 page_size=DEFAULT_PAGE_SIZE, row_mapper=None, server_search=False,
                 text_matcher=None, status_field='status', status_default=None,
                 error_message='Error loading data', state=None):
        self.store = store
        self.collection = collection
        self.order_field = order_by
        self.descending = descending
        self.page_size = page_size
        self.row_mapper = row_mapper or (lambda snap: [snap.id])
        self.server_search = server_search
        self.text_matcher = text_matcher
        self.status_field = status_field
        self.status_default = status_default
        self.error_message = error_message
        self.state = state or ListState()

    @property
    def search_active(self):
        return self.server_search and bool(self.state.search_term)

    def _ordered(self):
        return self.store.collection(self.collection).order_by(
            self.order_field, descending=self.descending)

    def _search_query(self, term):
        field = 'email' if '@' in term else 'name'
        query = (self.store.collection(self.collection)
                 .order_by(field, ignore_case=True)
                 .start_at(term)
                 .end_at(term + PREFIX_SENTINEL)
                 .limit(self.page_size))
        return query, field

    def _plan(self, direction):
        """Work out the query to run and the page number it produces."""
        state = self.state
        if self.search_active:
            query, field = self._search_query(state.search_term)
            return query, field, 1

        ordered = self._ordered()
        if direction == 'next' and state.cursor:
            return ordered.start_after(state.cursor).limit(self.page_size), self.order_field, state.page + 1

        if direction == 'prev':
            page = max(1, state.page - 1)
            return self._rescan_to(ordered, page), self.order_field, page

        if direction == 'refresh':
            return self._rescan_to(ordered, state.page), self.order_field, state.page

        return ordered.limit(self.page_size), self.order_field, 1

    def _rescan_to(self, ordered, page):
        """Query for ``page`` by re-reading every document before it."""
        upto = (page - 1) * self.page_size
        cursor = None
        if upto > 0:
            docs = ordered.limit(upto).get()
            if docs:
                cursor = docs[-1]
        query = ordered.start_after(cursor) if cursor else ordered
        return query.limit(self.page_size)

    def _keep(self, snapshot):
        status_filter = self.state.status_filter
        if status_filter:
            status = snapshot.get(self.status_field) or self.status_default
            if status != status_filter:
                return False
        term = self.state.search_term
        if term and not self.server_search and self.text_matcher:
            return self.text_matcher(snapshot, term)
        return True

    def load(self, direction='initial'):
        """Fetch a page (one of :data:`DIRECTIONS`) and return a :class:`ListPage`.

        State only changes when the fetch succeeds, so after an error the
        next attempt starts from the last good cursor.
        """
        if direction not in DIRECTIONS:
            direction = 'initial'
        try:
            query, cursor_field, page = self._plan(direction)
            docs = query.get()
        except StoreError as e:
            self._log_failure(e)
            return ListPage(rows=[], page=self.state.page, label=self._label(self.state.page),
                            has_next=False, has_prev=False, error=self.error_message,
                            search_term=self.state.search_term,
                            status_filter=self.state.status_filter)

        self.state.page = page
        self.state.cursor = Cursor.from_snapshot(docs[-1], cursor_field) if docs else None

        rows = [self.row_mapper(d) for d in docs if self._keep(d)]
        searching = self.search_active
        return ListPage(
            rows=rows,
            page=page,
            label=self._label(page),
            has_next=not searching and bool(docs),
            has_prev=not searching and page > 1,
            fetched=len(docs),
            search_term=self.state.search_term,
            status_filter=self.state.status_filter,
        )

    def next(self):
        return self.load('next')

    def prev(self):
        return self.load('prev')

    def refresh(self):
        return self.load('refresh')

    def search(self, term):
        """Set the search term (case-insensitive) and reload from page 1"""
        self.state.search_term = (term or '').strip().lower()
        return self.load('initial')

    def filter(self, status):
        """Set the status filter ('' clears it) and reload from page 1"""
        self.state.status_filter = (status or '').strip()
        return self.load('initial')

    def _label(self, page):
        return 'Search results' if self.search_active else f'Page {page}'

    def _log_failure(self, error):
        if has_app_context():
            current_app.logger.error("Error rendering %s: %s", self.collection, error)
        else:
            logger.error("Error rendering %s: %s", self.collection, error)

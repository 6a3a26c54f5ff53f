"""
Fetch subsystem.

Components:
- fetch_models.py: data structures (RequestState, RequestStatus, RequestOptions, Page, outcomes)
- fetch_task.py: RequestTask, one async operation with retry, cancellation and published state
- pagination.py: PaginationController (page / page size / total over one RequestTask)
- infinite_scroll.py: InfiniteScrollController (accumulating pages over one RequestTask)
- debounce.py: Debouncer / DebouncedSearch for keystroke-driven requests
- errors.py: failure -> message helpers
"""

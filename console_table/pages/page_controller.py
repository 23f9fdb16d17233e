# Copyright (c) Humanitarian OpenStreetMap Team
#
# This file is part of console-table.
#
#     console-table is free software: you can redistribute it and/or modify
#     it under the terms of the GNU General Public License as published by
#     the Free Software Foundation, either version 3 of the License, or
#     (at your option) any later version.
#
#     console-table is distributed in the hope that it will be useful,
#     but WITHOUT ANY WARRANTY; without even the implied warranty of
#     MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#     GNU General Public License for more details.
#
#     You should have received a copy of the GNU General Public License
#     along with console-table.  If not, see <https:#www.gnu.org/licenses/>.
#
"""The state machine behind every paginated table screen.

One PageDataController is created per screen. It owns the query and the
displayed state, fires reads through a ListFetcher and writes through a
MutationCoordinator, and decides what the user sees when either fails.

Reads are tagged with a sequence number. Only the most recently issued
read may update the state, so a slow response to a superseded query is
dropped. After `unmount()` nothing is applied at all.
"""

import inspect
from typing import Any, Awaitable, Callable, Optional, Union

from loguru import logger as log

from console_table.enums import LoadState, MutationKind, RefreshPolicy
from console_table.errors import GENERIC_ERROR_MESSAGE, ApiError, SessionInvalidError
from console_table.listing.listing_crud import ListFetcher
from console_table.listing.listing_schemas import PageResult, Query, Record, record_id
from console_table.mutations.mutation_crud import MutationCoordinator, OptimisticPatch
from console_table.mutations.mutation_schemas import MutationOutcome, MutationRequest
from console_table.notifications.notification_crud import (
    LogNotifier,
    Notifier,
    error_notification,
    success_notification,
    warning_notification,
)
from console_table.pages.page_schemas import ControllerConfig, ErrorInfo, UIState

Hook = Callable[..., Union[None, Awaitable[None]]]


async def _call_hook(hook: Optional[Hook], *args) -> None:
    """Call an observer, which may be sync or async."""
    if hook is None:
        return
    result = hook(*args)
    if inspect.isawaitable(result):
        await result


class PageDataController:
    """Coordinate query, display state, reads and writes for one screen.

    Args:
        config (ControllerConfig): Endpoint, page size and row key.
        fetcher (ListFetcher): Performs reads.
        coordinator (MutationCoordinator): Performs writes.
        notifier (Notifier): Shows toasts. Defaults to logging them.
        on_data_loaded (callable): Called with the rows after every
            successful load, e.g. to fill a filter dropdown.
        on_session_invalid (callable): Called with the error on a 401 / 403,
            the caller is responsible for logging out.
    """

    def __init__(
        self,
        config: ControllerConfig,
        fetcher: ListFetcher,
        coordinator: MutationCoordinator,
        notifier: Optional[Notifier] = None,
        on_data_loaded: Optional[Hook] = None,
        on_session_invalid: Optional[Hook] = None,
    ):
        """Create the controller in the IDLE state."""
        self.config = config
        self.fetcher = fetcher
        self.coordinator = coordinator
        self.notifier = notifier or LogNotifier()
        self.on_data_loaded = on_data_loaded
        self.on_session_invalid = on_session_invalid

        query = Query(page_size=config.page_size, extra_filters=config.initial_filters)
        self._state = UIState(query=query, result=PageResult.empty(query))
        self._sequence = 0
        self._reading = False
        self._writes = 0
        self._mounted = False
        self._closed = False

    @property
    def state(self) -> UIState:
        """The current display state."""
        return self._state

    @property
    def query(self) -> Query:
        """The current read intent."""
        return self._state.query

    @property
    def closed(self) -> bool:
        """Whether the screen has been unmounted."""
        return self._closed

    def _set(self, **changes) -> None:
        """Replace the state atomically."""
        self._state = self._state.model_copy(update=changes)

    def _is_loading(self) -> bool:
        return self._reading or self._writes > 0

    def _is_stale(self, sequence: int) -> bool:
        return self._closed or sequence != self._sequence

    # Lifecycle

    async def mount(self) -> UIState:
        """Load the first page. IDLE -> LOADING."""
        if self._closed:
            raise RuntimeError("Cannot mount a controller after unmount")
        if self._mounted:
            log.debug(f"Controller for {self.config.endpoint} already mounted")
            return self._state
        self._mounted = True
        return await self._load(self.query)

    def unmount(self) -> None:
        """Tear down the screen, in-flight results are discarded."""
        log.debug(f"Unmounting controller for {self.config.endpoint}")
        self._closed = True

    # Read transitions

    async def refresh(self) -> UIState:
        """Reload the current query."""
        return await self._load(self.query)

    async def set_search_term(self, term: str, submit: bool = False) -> UIState:
        """Update the search box.

        A request is only fired on submit (enter / search button) or when
        the box is cleared, and always goes back to the first page.
        """
        term = term.strip()
        self._set(search_draft=term)
        if not submit and term:
            return self._state

        query = self.query.model_copy(update={"search_term": term, "page_index": 0})
        return await self._load(query)

    async def set_page(self, index: int, size: Optional[int] = None) -> UIState:
        """Move to a page, optionally changing the page size.

        Args:
            index (int): 0-based page index.
            size (int): New page size. A different size restarts at page 0.
        """
        if index < 0:
            raise ValueError(f"Page index must not be negative, got {index}")

        update: dict[str, Any] = {"page_index": index}
        if size is not None and size != self.query.page_size:
            options = self.config.page_size_options
            if size <= 0 or (options and size not in options):
                raise ValueError(f"Page size {size} is not one of {options}")
            update = {"page_index": 0, "page_size": size}

        if not self._state.result.paginated and update["page_index"] > 0:
            log.debug(f"{self.config.endpoint} is not paginated, staying on page 0")
            update["page_index"] = 0

        return await self._load(self.query.model_copy(update=update))

    async def set_filter(self, key: str, value: Any) -> UIState:
        """Set one extra filter, None or "" clears it. Restarts at page 0."""
        filters = dict(self.query.extra_filters)
        if value is None or value == "":
            filters.pop(key, None)
        else:
            filters[key] = value
        query = self.query.model_copy(
            update={"extra_filters": filters, "page_index": 0}
        )
        return await self._load(query)

    async def _load(self, query: Query, after_delete: bool = False) -> UIState:
        """Fetch a page for `query`, applying it only if still current."""
        if self._closed:
            log.debug("Ignoring load on an unmounted controller")
            return self._state

        self._sequence += 1
        sequence = self._sequence
        self._reading = True
        self._set(query=query, is_loading=True, load_state=LoadState.LOADING)

        try:
            result = await self.fetcher.fetch(self.config.endpoint, query)
        except ApiError as e:
            if self._is_stale(sequence):
                log.debug(f"Discarding stale error for request {sequence}: {e}")
                return self._state
            await self._read_failed(e)
            return self._state
        except Exception:
            if not self._is_stale(sequence):
                self._reading = False
                self._set(is_loading=self._is_loading(), load_state=LoadState.FAILED)
            log.exception(f"Unexpected error loading {self.config.endpoint}")
            raise

        if self._is_stale(sequence):
            log.debug(f"Discarding stale result for request {sequence}")
            return self._state

        if after_delete and not result.items and query.page_index > 0:
            # The deleted row was the last on its page
            log.info(
                f"Page {query.page_index} of {self.config.endpoint} is empty "
                "after delete, loading the previous page"
            )
            previous = query.model_copy(update={"page_index": query.page_index - 1})
            return await self._load(previous, after_delete=True)

        self._reading = False
        self._set(
            result=result,
            is_loading=self._is_loading(),
            load_state=LoadState.LOADED,
            last_error=None,
        )
        await _call_hook(self.on_data_loaded, result.items)
        return self._state

    async def _read_failed(self, error: ApiError) -> None:
        """A failed read keeps the previous rows on screen."""
        log.warning(f"Failed to load {self.config.endpoint}: {error}")
        self._reading = False
        self._set(
            is_loading=self._is_loading(),
            load_state=LoadState.FAILED,
            last_error=ErrorInfo.from_error(error),
        )
        self.notifier.notify(error_notification(error))
        if isinstance(error, SessionInvalidError):
            await _call_hook(self.on_session_invalid, error)

    # Write transitions

    async def execute(self, request: MutationRequest) -> MutationOutcome:
        """Run a mutation and reconcile the display with its outcome.

        Status toggles flip the row locally first and revert on failure.
        Successful writes reload the page chosen by the outcome, deletes
        fall back a page when they empty a later one.
        """
        if self._closed:
            raise RuntimeError("Cannot run a mutation on an unmounted controller")

        endpoint = self.config.endpoints.for_kind(request.kind)
        patch = None
        if request.kind == MutationKind.STATUS_TOGGLE:
            patch = OptimisticPatch(
                request.target_id,
                {request.status_field: not request.current_value},
                row_key=self.config.row_key,
            )
            self._set(result=patch.apply(self._state.result))

        self._writes += 1
        self._set(is_loading=True)
        try:
            outcome = await self.coordinator.execute(endpoint, request)
        except Exception:
            log.exception(f"Unexpected error trying to {request.action_label}")
            outcome = MutationOutcome(
                request=request, ok=False, error=ApiError(GENERIC_ERROR_MESSAGE)
            )
        finally:
            self._writes -= 1
            if not self._closed:
                self._set(is_loading=self._is_loading())

        if self._closed:
            log.debug(f"Screen closed before {request.action_label} settled")
            return outcome

        if not outcome.ok:
            await self._write_failed(outcome, patch)
            return outcome

        if patch:
            self._set(result=patch.confirm(self._state.result))
        if outcome.message:
            self.notifier.notify(success_notification(outcome.message))
        if outcome.warning:
            self.notifier.notify(warning_notification(outcome.warning))

        await self._reconcile(outcome)
        return outcome

    async def _write_failed(
        self, outcome: MutationOutcome, patch: Optional[OptimisticPatch]
    ) -> None:
        """Undo the optimistic change and report the failed action."""
        action = outcome.request.action_label
        if patch:
            self._set(result=patch.revert(self._state.result))
        self._set(last_error=ErrorInfo.from_error(outcome.error, action=action))
        self.notifier.notify(error_notification(outcome.error, action=action))
        if outcome.session_invalid:
            await _call_hook(self.on_session_invalid, outcome.error)

    async def _reconcile(self, outcome: MutationOutcome) -> None:
        """Reload after a successful write."""
        kind = outcome.request.kind
        if kind == MutationKind.STATUS_TOGGLE and not self.config.refresh_after_toggle:
            return

        query = self.query
        if outcome.refresh == RefreshPolicy.FIRST_PAGE:
            query = query.model_copy(update={"page_index": 0})
        await self._load(query, after_delete=kind == MutationKind.DELETE)

    # Convenience wrappers for the common screen actions

    async def create(
        self,
        payload: dict,
        refresh_policy: RefreshPolicy = RefreshPolicy.CURRENT_PAGE,
        **kwargs,
    ) -> MutationOutcome:
        """Create a record."""
        return await self.execute(
            MutationRequest.create(payload, refresh_policy=refresh_policy, **kwargs)
        )

    async def update(self, target_id, payload: dict, **kwargs) -> MutationOutcome:
        """Update a record."""
        return await self.execute(MutationRequest.update(target_id, payload, **kwargs))

    async def delete(self, target_id, **kwargs) -> MutationOutcome:
        """Delete a record."""
        return await self.execute(MutationRequest.delete(target_id, **kwargs))

    async def toggle_status(
        self, record: Record, field: str = "active", **kwargs
    ) -> MutationOutcome:
        """Flip a boolean field of a displayed row."""
        target_id = record_id(record, self.config.row_key)
        return await self.execute(
            MutationRequest.toggle(
                target_id,
                status_field=field,
                current_value=bool(record.get(field)),
                **kwargs,
            )
        )

"""Paginated data tables and CRUD workflows for the admin console."""

from console_table.__version__ import __version__
from console_table.enums import LoadState, MutationKind, RefreshPolicy
from console_table.errors import (
    ApiError,
    DecodeError,
    HttpError,
    NetworkError,
    SessionInvalidError,
)
from console_table.listing.listing_crud import ListFetcher
from console_table.listing.listing_schemas import PageResult, Query
from console_table.mutations.mutation_crud import MutationCoordinator, OptimisticPatch
from console_table.mutations.mutation_schemas import MutationOutcome, MutationRequest
from console_table.pages.page_controller import PageDataController
from console_table.pages.page_schemas import ControllerConfig, UIState
from console_table.transport.transport_client import ApiClient

__all__ = [
    "__version__",
    "ApiClient",
    "ApiError",
    "ControllerConfig",
    "DecodeError",
    "HttpError",
    "ListFetcher",
    "LoadState",
    "MutationCoordinator",
    "MutationKind",
    "MutationOutcome",
    "MutationRequest",
    "NetworkError",
    "OptimisticPatch",
    "PageDataController",
    "PageResult",
    "Query",
    "RefreshPolicy",
    "SessionInvalidError",
    "UIState",
]

# NetXMS Query Bridge
# File: router.py
# Version: v1

"""Query-type dispatcher for a batch of data queries.

Every query is attempted once, in input order, and produces exactly one
DataResponse keyed by its RefID. A failure in one query never affects the
others in the batch.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Mapping, Optional
import asyncio
import contextlib
import logging

from . import queries
from .client import NetXMSClient
from .config import PluginSettings, load_settings
from .errors import DataSourceError, Status
from .models import (
    DataQuery,
    DataResponse,
    QueryDataRequest,
    QueryDataResponse,
    QueryModel,
    QueryType,
)

logger = logging.getLogger(__name__)

QueryHandler = Callable[[NetXMSClient, DataQuery, QueryModel], Awaitable[DataResponse]]

QUERY_HANDLERS: Dict[str, QueryHandler] = {
    QueryType.ALARMS.value: queries.handle_alarms,
    QueryType.DCI_VALUES.value: queries.handle_dci_values,
    QueryType.SUMMARY_TABLES.value: queries.handle_summary_table,
    QueryType.OBJECT_QUERIES.value: queries.handle_object_query,
    QueryType.OBJECT_STATUS.value: queries.handle_object_status,
}


class BatchCancelled(Exception):
    """Raised internally when the caller's cancel event fires."""


def _make_client(settings: PluginSettings) -> NetXMSClient:
    """Create a NetXMSClient for one settings snapshot.

    Tests replace this to inject an httpx.MockTransport.
    """
    return NetXMSClient(settings=settings)


async def _await_unless_cancelled(
    awaitable: Awaitable[DataResponse],
    cancel_event: Optional[asyncio.Event],
) -> DataResponse:
    """Await ``awaitable``; abort it if ``cancel_event`` is set first."""
    if cancel_event is None:
        return await awaitable

    task = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(cancel_event.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        task.cancel()
        raise
    finally:
        waiter.cancel()

    if task.done():
        return task.result()

    task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await task
    raise BatchCancelled()


async def run_query(
    query: DataQuery,
    instance_settings: Optional[Mapping[str, Any]],
) -> DataResponse:
    """Run a single query and turn every expected failure into a response."""
    handler = QUERY_HANDLERS.get(query.query_type)
    if handler is None:
        return DataResponse.error_response(
            Status.NOT_IMPLEMENTED,
            f"unsupported query type: {query.query_type!r}",
        )

    try:
        model = QueryModel.from_json(query.json)
    except ValueError as exc:
        return DataResponse.error_response(Status.BAD_REQUEST, f"json unmarshal: {exc}")

    try:
        settings = load_settings(instance_settings)
    except DataSourceError as exc:
        return DataResponse.error_response(
            Status.BAD_REQUEST, f"failed to load plugin settings: {exc}"
        )

    client = _make_client(settings)
    try:
        return await handler(client, query, model)
    except DataSourceError as exc:
        return DataResponse.from_error(exc)
    except Exception as exc:  # one query must not take down the batch
        logger.exception("Query %s (%s) crashed", query.ref_id, query.query_type)
        return DataResponse.error_response(Status.INTERNAL, f"internal error: {exc}")


async def query_data(
    request: QueryDataRequest,
    cancel_event: Optional[asyncio.Event] = None,
) -> QueryDataResponse:
    """Dispatch every query of the batch to the handler for its type.

    If ``cancel_event`` is set while the batch runs, the in-flight remote call
    is aborted and the remaining queries are answered as cancelled.
    """
    response = QueryDataResponse()
    cancelled = False

    for query in request.queries:
        if cancelled or (cancel_event is not None and cancel_event.is_set()):
            cancelled = True
            response.responses[query.ref_id] = DataResponse.error_response(
                Status.CANCELLED, "query cancelled"
            )
            continue

        try:
            result = await _await_unless_cancelled(
                run_query(query, request.instance_settings), cancel_event
            )
        except BatchCancelled:
            logger.info("Batch cancelled while running query %s", query.ref_id)
            cancelled = True
            result = DataResponse.error_response(Status.CANCELLED, "query cancelled")

        if result.error is not None:
            logger.warning(
                "Query %s (%s) failed: [%s] %s",
                query.ref_id,
                query.query_type,
                int(result.status),
                result.error,
            )
        response.responses[query.ref_id] = result

    return response

"""Handlers of the internal API, each returning a status code and a JSON body."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

from ..connectors.cloud_connector import CloudConnectorClient
from ..connectors.inventory import InventoryClient
from ..connectors.sources import SourcesConnector
from ..dispatch import DispatchManager
from ..ratelimit import RateLimiter, rate_limiter_from_config
from . import connection_status
from .cancel import cancel_runs
from .create import InvalidRequestError, create_runs_v1, create_runs_v2

log = logging.getLogger(__name__)

Response = tuple[int, Any]


def _bad_request() -> Response:
    return int(HTTPStatus.BAD_REQUEST), None


def _is_list_of_objects(payload: Any) -> bool:
    return isinstance(payload, list) and all(isinstance(item, Mapping) for item in payload)


class Controllers:
    """The internal API operations."""

    def __init__(
        self,
        cfg: Mapping[str, Any],
        cloud_connector: CloudConnectorClient,
        inventory: InventoryClient,
        sources: SourcesConnector,
        dispatch_manager: DispatchManager,
        translator: Any,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self.cfg = cfg
        self.cloud_connector = cloud_connector
        self.inventory = inventory
        self.sources = sources
        self.dispatch_manager = dispatch_manager
        self.translator = translator
        self.rate_limiter = rate_limiter or rate_limiter_from_config(cfg)

    def version(self) -> Response:
        """The build commit of the running service."""
        commit = self.cfg.get("build.commit")
        return int(HTTPStatus.OK), "" if commit is None else str(commit)

    def runs_create(self, payload: Any, principal: str) -> Response:
        """Create runs from a v1 request list."""
        if not _is_list_of_objects(payload):
            return _bad_request()
        results = create_runs_v1(
            self.dispatch_manager, self.translator, self.cfg, payload, principal
        )
        return int(HTTPStatus.MULTI_STATUS), [result.to_dict() for result in results]

    def runs_create_v2(self, payload: Any, principal: str) -> Response:
        """Create runs from a v2 request list."""
        if not _is_list_of_objects(payload):
            return _bad_request()
        try:
            results = create_runs_v2(self.dispatch_manager, self.cfg, payload, principal)
        except InvalidRequestError as error:
            return int(HTTPStatus.BAD_REQUEST), {"message": str(error)}
        return int(HTTPStatus.MULTI_STATUS), [result.to_dict() for result in results]

    def runs_cancel_v2(self, payload: Any) -> Response:
        """Cancel runs from a v2 request list."""
        if not _is_list_of_objects(payload):
            return _bad_request()
        results = cancel_runs(self.dispatch_manager, payload)
        return int(HTTPStatus.MULTI_STATUS), [result.to_dict() for result in results]

    def recipients_status(self, payload: Any) -> Response:
        """Connection status of each listed recipient."""
        if not _is_list_of_objects(payload):
            return _bad_request()
        try:
            results = connection_status.recipients_status(
                self.cloud_connector, self.rate_limiter, payload
            )
        except Exception as error:
            log.error("%s", error)
            return int(HTTPStatus.INTERNAL_SERVER_ERROR), None
        return int(HTTPStatus.OK), [result.to_dict() for result in results]

    def high_level_connection_status(self, payload: Any) -> Response:
        """Connection status of hosts, grouped by the recipient that reaches them."""
        if (
            not isinstance(payload, Mapping)
            or not isinstance(payload.get("hosts"), list)
            or payload.get("org_id") is None
        ):
            return _bad_request()
        try:
            results = connection_status.high_level_connection_status(
                self.inventory,
                self.cloud_connector,
                self.sources,
                self.cfg,
                str(payload["org_id"]),
                [str(host) for host in payload["hosts"]],
            )
        except Exception as error:
            log.error("%s", error)
            return _bad_request()
        return int(HTTPStatus.OK), [result.to_dict() for result in results]
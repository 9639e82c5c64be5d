# playbook-dispatcher

A library for dispatching playbook runs to hosts reachable through a cloud
connector. Runs go either directly to hosts running the `rhc-worker-playbook`
worker or through a Satellite instance using the `foreman_rh_cloud` worker.
The library keeps a record of each run and reports the connection status of
hosts.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## What is inside

- `playbook_dispatcher.models`: the run records and inputs `RunInput`,
  `RunHostsInput`, `CancelInput`, `Run`, `RunHost` and `RunStatus`, and the
  helpers `new_run` and `new_host_runs`.
- `playbook_dispatcher.protocols`: builds the message metadata each worker
  understands. `RunnerProtocol` is for directly connected hosts and
  `SatelliteProtocol` for Satellite, which also builds cancel metadata and
  hashes the initiating principal with SHA-256. `build_common_signal` holds
  the entries shared by both.
- `playbook_dispatcher.dispatch`: `DispatchManager` sends a run or a
  cancellation through a `CloudConnectorClient`, taking a token from a
  `RateLimiter` first, and stores runs in a `RunStore`. `InMemoryRunStore` is
  the one store provided. `get_protocol` picks the Satellite protocol when a
  run has a `sat_id`.
- `playbook_dispatcher.ratelimit`: `RateLimiter`, a token bucket, and
  `rate_limiter_from_config`.
- `playbook_dispatcher.errors`: the failures a dispatch can raise, all derived
  from `DispatchError`: `RecipientNotFoundError`, `RunNotFoundError`,
  `RunOrgIdMismatchError`, `RunCancelTypeError` and
  `RunCancelNotCancelableError`.
- `playbook_dispatcher.connectors`: clients for external services.
  - `http`: `HttpRequest`, `HttpResponse`, the `HttpRequestDoer` interface,
    `RequestsDoer` (built on `requests`) and `UnexpectedResponseError`.
  - `cloud_connector`: `HttpCloudConnectorClient`, `MockCloudConnectorClient`,
    `ConnectionStatus` and `new_connector_client`.
  - `inventory`: `InventoryClient`, `HostDetails` and `new_inventory_client`.
  - `sources`: `SourcesClient`, `MockSourcesClient`, `SourcesError` and
    `new_sources_client`.
- `playbook_dispatcher.private`: the internal API operations.
  - `create`: `create_runs_v1`, `create_runs_v2` and their validation and
    error mapping (`validate_satellite_fields`, `is_org_id_blocklisted`,
    `handle_run_create_error`).
  - `cancel`: `cancel_runs` and `handle_run_cancel_error`.
  - `connection_status`: `recipients_status` and
    `high_level_connection_status`.
  - `controller`: `Controllers`, whose methods take a decoded JSON body and
    return a `(status code, body)` pair.
- `playbook_dispatcher.public`: helpers behind a run listing API.
  - `common`: paging (`get_limit`, `get_offset`, `create_links`) and field
    selection (`parse_fields`).
  - `conversions`: `db_run_to_api_run`.
  - `queries`: SQL fragments (`get_order_by`, `map_fields_to_sql`,
    `map_host_fields_to_sql`), `label_filter_json`, `inventory_link` and
    `db_run_host_to_api`.
- `playbook_dispatcher.instrumentation`: in-process `Counter`s for requests,
  errors and created or cancelled runs, with logging probes; `start()` makes
  the known label combinations report zero.

## Configuration

Components take a mapping with dotted keys. The keys read include:

- `return.url`, `response.interval`: sent with every run signal
- `satellite.response.full`: whether Satellite runs report full output
- `web.console.url.default`, `default.run.timeout`: defaults for runs that do
  not set their own
- `demo.mode`: when true, every correlation id is the all-zero UUID
- `cloud.connector.rps`, `cloud.connector.req.bucket`: rate limit toward the
  cloud connector
- `cloud.connector.scheme`, `.host`, `.port`, `.client.id`, `.psk`,
  `.timeout`: location and credentials of the cloud connector
- `inventory.connector.scheme`, `.host`, `.port`, `.timeout`, `.ordered.by`,
  `.ordered.how`, `.limit`, `.offset`: the host inventory
- `sources.scheme`, `.host`, `.port`, `.timeout`: the sources service
- `blocklist.org.ids`: comma-separated organisations whose requests are
  rejected
- `build.commit`: reported by `Controllers.version`

## Example

```python
import uuid

from playbook_dispatcher.connectors.cloud_connector import MockCloudConnectorClient
from playbook_dispatcher.dispatch import DispatchManager, InMemoryRunStore
from playbook_dispatcher.models import RunInput
from playbook_dispatcher.ratelimit import rate_limiter_from_config

cfg = {
    "return.url": "https://example.com/return",
    "response.interval": "60",
    "web.console.url.default": "https://example.com/console",
    "default.run.timeout": 3600,
    "cloud.connector.rps": 100,
    "cloud.connector.req.bucket": 60,
    "demo.mode": False,
    "satellite.response.full": True,
}

manager = DispatchManager(
    cfg,
    MockCloudConnectorClient(),
    rate_limiter_from_config(cfg),
    InMemoryRunStore(),
)

run_id, correlation_id = manager.process_run(
    "5318290",
    "remediations",
    RunInput(
        recipient=uuid.uuid4(),
        org_id="5318290",
        url="https://example.com/playbook.yml",
    ),
)
```

If the recipient has no connection, `process_run` raises
`RecipientNotFoundError`. `process_cancel` works only on Satellite runs that
are still running; otherwise it raises one of the errors listed above.

## What this package does not do

- It has no HTTP server and no command line. `Controllers` implements the
  internal operations, but routing, authentication and request parsing are
  left to the caller.
- It has no database. Runs are kept only in `InMemoryRunStore`, or in any
  `RunStore` you supply. The public helpers produce SQL fragments and
  conversions, but they do not run queries.
- It does not translate account numbers to organisation ids. `create_runs_v1`
  and `Controllers` expect a translator object with an `ean_to_org_id`
  method.
- There is no permission checking and no schema migration. Timed-out runs are
  not cleaned up.
"""Application dependency container."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from broker_console.core.config import AppConfig, load_config, resolve_deployment_id
from broker_console.repositories.db_pool import ThreadLocalConnection
from broker_console.repositories.document_store import SqliteDocumentStore
from broker_console.repositories.identity import LocalIdentityService
from broker_console.repositories.schema import initialize_schema
from broker_console.services.mutation_gateway import MutationGateway
from broker_console.services.record_store import RecordStore


@dataclass
class ServiceContainer:
    """Wires adapters and services."""

    config: AppConfig
    deployment: str
    store: SqliteDocumentStore
    identity: LocalIdentityService
    records: RecordStore
    gateway: MutationGateway


def build_container(config: AppConfig | None = None, config_path: Path | None = None) -> ServiceContainer:
    """Build dependencies and initialize schema."""
    config = config or load_config(config_path)
    deployment = resolve_deployment_id(config)

    pool = ThreadLocalConnection(config.store.path)
    initialize_schema(pool)

    store = SqliteDocumentStore(pool)
    identity = LocalIdentityService(pool)
    records = RecordStore(store, identity, deployment)

    return ServiceContainer(
        config=config,
        deployment=deployment,
        store=store,
        identity=identity,
        records=records,
        gateway=MutationGateway(store, records),
    )

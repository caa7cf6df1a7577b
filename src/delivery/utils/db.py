"""Schema management for SQL-backed providers.

The in-memory provider needs no schema, so both functions skip it.
"""

from protean.domain import Domain
from sqlalchemy import create_engine

_SQL_PROVIDERS = ("sqlite", "postgresql")


def _sql_providers(domain: Domain):
    for _, provider in domain.providers.items():
        if provider.conn_info["provider"] in _SQL_PROVIDERS:
            yield provider


def setup_db(domain: Domain) -> None:
    """Create tables for every aggregate, entity and projection on a SQL provider."""
    with domain.domain_context():
        for provider in _sql_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])

            # Touching the DAO registers each model with SQLAlchemy's metadata
            registries = (
                domain.registry.aggregates,
                domain.registry.entities,
                domain.registry.projections,
            )
            for registry in registries:
                for _, record in registry.items():
                    if record.cls.meta_.provider == provider.name:
                        domain.repository_for(record.cls)._dao  # noqa: B018

            provider._metadata.create_all(engine)


def drop_db(domain: Domain) -> None:
    """Drop the tables created by `setup_db`."""
    with domain.domain_context():
        for provider in _sql_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)

"""Schema management for SQL-backed providers (``setup-db`` / ``drop-db``)."""

from protean.domain import Domain
from sqlalchemy import create_engine

_SQL_PROVIDERS = ("sqlite", "postgresql")

# Registry sections whose elements are persisted through a provider
_PERSISTED_ELEMENTS = ("aggregates", "entities", "projections")


def _sql_providers(domain: Domain):
    for _, provider in domain.providers.items():
        if provider.conn_info["provider"] in _SQL_PROVIDERS:
            yield provider, create_engine(provider.conn_info["database_uri"])


def _register_models(domain: Domain, provider) -> None:
    """Build every element's SQLAlchemy model so it lands in the provider's metadata."""
    for section in _PERSISTED_ELEMENTS:
        for _, record in getattr(domain.registry, section).items():
            if record.cls.meta_.provider == provider.name:
                domain.repository_for(record.cls)._dao  # noqa: B018


def setup_db(domain: Domain) -> None:
    with domain.domain_context():
        for provider, engine in _sql_providers(domain):
            _register_models(domain, provider)
            provider._metadata.create_all(engine)


def drop_db(domain: Domain) -> None:
    with domain.domain_context():
        for provider, engine in _sql_providers(domain):
            _register_models(domain, provider)
            provider._metadata.drop_all(engine)


def reset_db(domain: Domain) -> None:
    drop_db(domain)
    setup_db(domain)

"""Third-party integration heuristics over declared dependency names."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from .models import DependencyReference

CATEGORY_DATABASE = "Database"
CATEGORY_CACHE = "Cache"
CATEGORY_CLOUD = "Cloud"
CATEGORY_MESSAGE_QUEUE = "MessageQueue"
CATEGORY_SEARCH = "Search"
CATEGORY_MONITORING = "Monitoring"
CATEGORY_AUTH = "Auth"
CATEGORY_RPC = "RPC/Resilience"
CATEGORY_WEB = "Web framework"
CATEGORY_RUNTIME = "Runtime/Serialization"

# Ordered: the first category whose fragment occurs in the package name wins.
_CATEGORY_FRAGMENTS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (
        CATEGORY_DATABASE,
        (
            "npgsql", "mysql", "sqlserver", "sqlclient", "sqlite", "mongodb", "neo4j",
            "oracle", "dapper", "entityframework", "efcore", "prisma", "typeorm",
            "sequelize", "knex", "mongoose", "pgx", "go-sql-driver", "lib/pq",
            "psycopg", "sqlalchemy", "pymongo", "motor", "asyncpg", "sqlx", "diesel",
            "rusqlite", "gorm",
        ),
    ),
    (CATEGORY_CACHE, ("redis", "memcache", "memorycache")),
    (
        CATEGORY_CLOUD,
        (
            "aws", "amazon", "dynamodb", "azure", "google.cloud", "google-cloud",
            "cloud.google.com", "boto3", "botocore", "rusoto",
        ),
    ),
    (
        CATEGORY_MESSAGE_QUEUE,
        (
            "rabbitmq", "masstransit", "nats", "kafka", "confluent", "amqp",
            "servicebus", "celery", "pika", "lapin",
        ),
    ),
    (CATEGORY_SEARCH, ("elasticsearch", "elastic.", "opensearch")),
    (
        CATEGORY_MONITORING,
        (
            "serilog", "nlog", "log4net", "prometheus", "opentelemetry", "datadog",
            "applicationinsights", "structlog", "loguru", "sentry", "tracing",
        ),
    ),
    (
        CATEGORY_AUTH,
        ("identity", "jwt", "openid", "oauth", "auth0", "duende", "keycloak", "python-jose", "authlib"),
    ),
    (CATEGORY_RPC, ("grpc", "refit", "polly", "tonic", "tower")),
    (
        CATEGORY_WEB,
        (
            "django", "flask", "fastapi", "starlette", "sanic", "aiohttp", "tornado",
            "axum", "actix", "warp", "rocket", "gin-gonic", "labstack/echo", "gofiber",
            "express",
        ),
    ),
    (CATEGORY_RUNTIME, ("tokio", "async-std", "serde")),
)


@dataclass(frozen=True)
class Integration:
    """A dependency recognized as an external integration."""

    category: str
    name: str
    version: str = ""

    @property
    def label(self) -> str:
        return f"{self.name} ({self.version})" if self.version else self.name


def categorize(package_name: str) -> Optional[str]:
    """Return the integration category for ``package_name`` or ``None``."""
    key = package_name.strip().lower()
    if not key:
        return None
    for category, fragments in _CATEGORY_FRAGMENTS:
        if any(fragment in key for fragment in fragments):
            return category
    return None


def group_integrations(
    dependencies: Iterable[DependencyReference],
) -> List[Tuple[str, List[str]]]:
    """Group recognized dependencies by category, categories sorted by name."""
    grouped: Dict[str, List[str]] = {}
    for dependency in dependencies:
        category = categorize(dependency.name)
        if category is None:
            continue
        label = Integration(category, dependency.name, dependency.version).label
        labels = grouped.setdefault(category, [])
        if label not in labels:
            labels.append(label)
    return sorted(grouped.items(), key=lambda item: item[0].lower())


__all__ = ["Integration", "categorize", "group_integrations"]

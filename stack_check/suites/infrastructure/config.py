"""Configuration for the infrastructure suite."""

from pydantic import BaseModel


class InfrastructureConfig(BaseModel):
    """Host-side endpoints of the shared infrastructure services."""

    consul_url: str = "http://localhost:8500"
    opensearch_url: str = "http://localhost:9200"
    minio_url: str = "http://localhost:9000"
    apicurio_url: str = "http://localhost:8081"
    grafana_url: str = "http://localhost:3001"
    request_timeout: float = 10.0

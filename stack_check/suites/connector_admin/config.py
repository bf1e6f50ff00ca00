"""Configuration for the connector-admin suite."""

from pydantic import BaseModel


class ConnectorAdminConfig(BaseModel):
    """Configuration for the connector-admin suite."""

    base_url: str = "http://localhost:38107/connector"
    grpc_endpoint: str = "localhost:38107"
    grpc_service: str = "ai.pipestream.connector.intake.v1.ConnectorAdminService"
    service_name: str = "connector-admin"
    platform_registration_url: str = "http://localhost:38201/platform-registration"
    consul_url: str = "http://localhost:8500"
    apicurio_url: str = "http://localhost:8081"
    request_timeout: float = 10.0
    s3_bucket: str = "test-bucket"
    s3_base_path: str = "test/path"
    max_file_size: int = 10 * 1024 * 1024
    rate_limit_per_minute: int = 100
    grpcurl: str = "grpcurl"

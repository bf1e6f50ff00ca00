"""Configuration for the platform-registration-service suite."""

from pydantic import BaseModel

from stack_check.models.definition import RetryPolicy


class PlatformRegistrationConfig(BaseModel):
    """Configuration for the platform-registration-service suite."""

    base_url: str = "http://localhost:38201/platform-registration"
    grpc_endpoint: str = "localhost:38201"
    grpc_service: str = (
        "ai.pipestream.platform.registration.v1.PlatformRegistrationService"
    )
    service_name: str = "platform-registration-service"
    consul_url: str = "http://localhost:8500"
    apicurio_url: str = "http://localhost:8081"
    request_timeout: float = 10.0
    # Consul needs a moment before a freshly registered service is listed
    propagation: RetryPolicy = RetryPolicy(max_attempts=10, interval=1.0)
    grpcurl: str = "grpcurl"

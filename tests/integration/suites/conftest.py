"""Fixtures for suite integration tests."""

from collections.abc import AsyncGenerator, Callable, Mapping
from typing import Any, TypeAlias
from unittest.mock import Mock

import aiohttp
import pytest

from stack_check.grpcurl import GrpcurlClient

GrpcResponses: TypeAlias = Mapping[str, str | None]
GrpcFn: TypeAlias = Callable[[GrpcResponses], Mock]


@pytest.fixture
async def session() -> AsyncGenerator[aiohttp.ClientSession, None]:
    """Client session the suite checks share."""
    async with aiohttp.ClientSession() as client_session:
        yield client_session


@pytest.fixture
def grpc() -> GrpcFn:
    """Return a function building a grpcurl mock answering by method name.

    Keys are bare method names (``ListServices``); methods without a key
    answer None, like a failed grpcurl call.
    """

    def _create(responses: GrpcResponses) -> Mock:
        client = Mock(spec=GrpcurlClient)
        client.is_available.return_value = True
        client.list_services.return_value = ["grpc.reflection.v1.ServerReflection"]
        client.list_methods.return_value = ["Service.Method"]

        async def invoke(
            method: str, payload: Mapping[str, Any] | None = None, **kwargs: Any
        ) -> str | None:
            return responses.get(method.rsplit("/", 1)[-1])

        client.invoke.side_effect = invoke
        return client

    return _create

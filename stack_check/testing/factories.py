"""Test factories for generating test data."""

from pathlib import Path

from polyfactory import Use
from polyfactory.factories import DataclassFactory
from polyfactory.factories.pydantic_factory import ModelFactory

from stack_check.models.definition import RetryPolicy, StackDefinition
from stack_check.models.result import StepResult


class StepResultFactory(DataclassFactory[StepResult]):
    """Factory for StepResult."""

    __model__ = StepResult

    outcome = "pass"
    detail = ""


class RetryPolicyFactory(ModelFactory[RetryPolicy]):
    """Factory for RetryPolicy."""

    max_attempts = 3
    interval = 2.0


class StackDefinitionFactory(ModelFactory[StackDefinition]):
    """Factory for StackDefinition."""

    compose_files = Use(lambda: [Path("docker-compose.yml")])
    tag_variable = "VERSION"
    settle_delay = 0.0
    dependencies = Use(list)
    suites = Use(list)

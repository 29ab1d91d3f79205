"""
Configuration Matcher
=====================
First-match-wins resolution of schemas and delivery agents for a target.
"""

from typing import Sequence

from .config import DeliveryAgentConfig, Schema
from .errors import NoDeliveryAgentMatchedError, NoSchemaMatchedError
from .interfaces import DeliveryAgent
from .models import OTPTarget


def match_schema(target: OTPTarget, schemas: Sequence[Schema]) -> Schema:
    """Return the first schema accepting ``target``."""
    for schema in schemas:
        if schema.matches(target):
            return schema
    raise NoSchemaMatchedError()


def match_delivery_agent(
    target: OTPTarget,
    agents: Sequence[DeliveryAgentConfig],
) -> DeliveryAgent:
    """Return a delivery agent built from the first config accepting ``target``."""
    for config in agents:
        if config.matches(target):
            return config.agent()
    raise NoDeliveryAgentMatchedError()

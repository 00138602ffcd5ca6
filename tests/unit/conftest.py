from __future__ import annotations

import pytest

from gwstack.config import BuilderConfig
from gwstack.core.context import BuildContext
from gwstack.core.stack import Stack, StackID
from gwstack.ir.models import LoadBalancerType


@pytest.fixture
def alb_config() -> BuilderConfig:
    return BuilderConfig(cluster_name="cluster", vpc_id="vpc-123")


@pytest.fixture
def nlb_config() -> BuilderConfig:
    return BuilderConfig(
        cluster_name="cluster",
        vpc_id="vpc-123",
        load_balancer_type=LoadBalancerType.NETWORK,
    )


@pytest.fixture
def context() -> BuildContext:
    return BuildContext(label="ns/gw1")


@pytest.fixture
def stack() -> Stack:
    return Stack(StackID("ns", "gw1"))

"""Shared fixtures."""

import pytest

from splitledger.audit import AuditLogger, InMemoryAuditSink
from splitledger.calculation import BalanceAggregator, SettlementOptimizer, SplitCalculator
from splitledger.config import EngineSettings


@pytest.fixture
def settings():
    return EngineSettings(_env_file=None)


@pytest.fixture
def sink():
    return InMemoryAuditSink()


@pytest.fixture
def audit_logger(sink):
    return AuditLogger(sink)


@pytest.fixture
def calculator(settings, audit_logger):
    return SplitCalculator(settings, audit_logger)


@pytest.fixture
def aggregator(settings, audit_logger):
    return BalanceAggregator(settings, audit_logger)


@pytest.fixture
def optimizer(settings, audit_logger):
    return SettlementOptimizer(settings, audit_logger)

"""
Pytest configuration and shared fixtures.

Provides:
- Logging setup
- Isolation of the global jitshape configuration
- Small helpers for building graphs and metadata
"""

import pytest
import torch
from pathlib import Path
import sys
import logging

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "torchscript: marks tests that script functions with torch.jit"
    )
    config.addinivalue_line(
        "markers", "integration: marks end-to-end engine tests"
    )


@pytest.fixture(autouse=True)
def reset_random_seeds():
    """Reset random seeds before each test for reproducibility."""
    torch.manual_seed(42)


@pytest.fixture(autouse=True)
def reset_jitshape_config(monkeypatch):
    """Keep the global config and JITSHAPE_* environment out of each test."""
    import os
    from jitshape import config as config_module

    for name in list(os.environ):
        if name.startswith('JITSHAPE_'):
            monkeypatch.delenv(name, raising=False)
    config_module.set_config(None)
    yield
    config_module.set_config(None)


@pytest.fixture
def metas():
    """Build a list of tensor ValueMeta from plain shapes."""
    from jitshape.core.metadata import ValueMeta

    def _metas(*shapes):
        return [ValueMeta.tensor(s) for s in shapes]

    return _metas

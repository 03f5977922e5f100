import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))

from aggregator import OrgDataAggregator
from config_loader import ConsoleConfig
from fake_github import PAGE_SIZE, FakeGitHubClient


@pytest.fixture
def fake():
    return FakeGitHubClient("test-org")


@pytest.fixture
def config():
    return ConsoleConfig(
        org_name="test-org",
        token="test-token",
        page_size=PAGE_SIZE,
        max_workers=4,
    )


@pytest.fixture
def aggregator(fake, config):
    return OrgDataAggregator(fake, config)

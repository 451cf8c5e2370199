"""
Shared fixtures for warden tests.
"""

import pytest

from warden.models import Profile, Repository, Rule
from warden.providers.github import GitHubClient

from tests.helpers import API_URL, make_rule_type


@pytest.fixture
def repository():
    """A public, non-archived repository."""
    return Repository(owner="acme", name="widgets", default_branch="main")


@pytest.fixture
def rule_type():
    return make_rule_type()


@pytest.fixture
def profile():
    """Profile with one rule, remediation off and alerts on."""
    return Profile(
        name="baseline",
        remediate="off",
        alert="on",
        repository=[Rule(type="no-secrets", definition={"enabled": True})],
    )


@pytest.fixture
def github_client():
    return GitHubClient(token="test-token", base_url=API_URL, timeout=5)

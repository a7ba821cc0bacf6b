"""
Shared fixtures for accessible_filter tests.
"""

import pytest
from bs4 import BeautifulSoup

from accessible_filter.config import TOGGLES, PipelineConfiguration
from accessible_filter.pipeline import RequestContext


@pytest.fixture
def only():
    """Factory for a configuration enabling just the given toggles."""
    def build(*enabled, locale='en_US'):
        settings = {name: ('true' if name in enabled else 'false') for name in TOGGLES}
        return PipelineConfiguration.from_settings(settings, locale=locale)
    return build


@pytest.fixture
def config():
    """Configuration with every toggle enabled, in English."""
    return PipelineConfiguration.from_settings({}, locale='en_US')


@pytest.fixture
def context():
    return RequestContext(base_url='http://example.com/dir/page.html', user_agent='')


@pytest.fixture
def parse():
    """Parse HTML the way the pipeline does."""
    def build(html):
        return BeautifulSoup(html, 'html.parser')
    return build

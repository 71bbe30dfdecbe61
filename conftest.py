"""
Root conftest.py for pytest configuration

Registers domain markers and applies them automatically based on the
directory a test lives in.
"""
import pytest

DOMAIN_MARKERS = {
    "core": "Configuration, logging and error handling tests",
    "d0_providers": "Provider descriptor and registry tests",
    "d1_cache": "Cache key and cache service tests",
    "d2_enrichment": "Strategy, validation and coordination tests",
}


def pytest_configure(config):
    """
    Configure pytest with custom markers.

    This registers domain markers dynamically.
    """
    for marker_name, description in DOMAIN_MARKERS.items():
        config.addinivalue_line("markers", f"{marker_name}: {description}")
    config.addinivalue_line("markers", "unit: Fast isolated tests")


def pytest_collection_modifyitems(config, items):
    """Apply the unit marker and the domain marker matching each test's directory"""
    for item in items:
        path = str(item.fspath)
        if "/tests/unit/" in path:
            item.add_marker(pytest.mark.unit)
        for marker_name in DOMAIN_MARKERS:
            if f"/{marker_name}/" in path:
                item.add_marker(getattr(pytest.mark, marker_name))

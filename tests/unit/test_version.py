"""Test basic package functionality."""

import rest_client_core


def test_version():
    """Test that package version is defined."""
    assert rest_client_core.__version__ == "0.1.0"


def test_public_api_is_importable():
    """Everything listed in __all__ is importable from the package root."""
    for name in rest_client_core.__all__:
        assert hasattr(rest_client_core, name), name

"""Tests for version information."""

from cdbundle.cli import version_string


def test_version_module():
    """Test that version is accessible from module."""
    from cdbundle import __version__

    assert __version__
    assert isinstance(__version__, str)
    # Should be in SemVer format
    parts = __version__.split('.')
    assert len(parts) >= 2  # At least MAJOR.MINOR


def test_version_string():
    """Test the --version text names the package, python and platform."""
    from cdbundle import __version__

    text = version_string()

    assert text.startswith(f"cdbundle {__version__} ")
    assert "python" in text
    assert "platform" in text

"""
Tests for the top-level entry point.
"""

import main


def test_version(capsys):
    """Test --version prints the VERSION file contents."""
    assert main.main(['--version']) == 0
    assert capsys.readouterr().out.strip() == f"classifier-eval {main.load_version()}"


def test_load_version():
    """Test the version is read from the VERSION file."""
    assert main.load_version() == "0.1.0"


def test_delegates_to_pipeline(tmp_path):
    """Test other arguments are handled by the pipeline CLI."""
    assert main.main(['evaluate', '--dataset', str(tmp_path)]) == 2

"""Root pytest configuration for aptly-cli tests."""
import pytest

from aptly_cli.cli_context import AptlyContext
from aptly_cli.config import ConfigStructure
from aptly_cli.flags import ContextFlags
from aptly_cli.settings import Settings


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow (may take significant time)"
    )


# Set up test environment variables
@pytest.fixture(autouse=True)
def test_env(tmp_path, monkeypatch):
    """Point HOME and the system config into a temp dir for every test."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("APTLY_SYSTEM_CONFIG", str(tmp_path / "etc" / "aptly.conf"))
    monkeypatch.delenv("APTLY_ENABLE_DEBUG", raising=False)
    return home


@pytest.fixture
def home(test_env):
    """Temporary home directory."""
    return test_env


@pytest.fixture
def settings(tmp_path, home):
    """Standard test settings (debug off)."""
    return Settings(home_dir=home, system_config_path=tmp_path / "etc" / "aptly.conf")


@pytest.fixture
def debug_settings(settings):
    """Settings with debug instrumentation enabled."""
    return Settings(
        home_dir=settings.home_dir,
        system_config_path=settings.system_config_path,
        enable_debug=True,
    )


@pytest.fixture
def config(tmp_path):
    """Configuration rooted in a temp dir."""
    return ConfigStructure(root_dir=str(tmp_path / "aptly-root"))


@pytest.fixture
def context(settings, config):
    """Context with a pre-resolved config; shut down after the test."""
    ctx = AptlyContext(ContextFlags(), settings=settings, config=config)
    yield ctx
    ctx.shutdown()

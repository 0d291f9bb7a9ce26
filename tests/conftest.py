"""Root-level pytest fixtures for the lstpipe test suite.

Provides shared configuration fixtures following the Pydantic-based
architecture, plus synthetic Landsat scenes written to temp directories.
All tests must use these fixtures instead of creating raw dict configs.
"""

import logging
import pytest
from pathlib import Path
import tempfile
import shutil

from lstpipe.schemas import ParamConfig, UserConfig, resolve_config
from lstpipe.setup_directories import setup_output_directories

from tests.helpers.fake_raster import CALIBRATION, write_scene


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults.

    Use this as the base for all test configs. Override specific values
    using user_config or by creating custom UserConfig instances.
    """
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides, no scenes).

    Use this when tests don't care about specific config values and just
    need a valid InternalConfig to pass to constructors.

    Examples
    --------
    >>> def test_loader_init(internal_config):
    ...     loader = BandLoader(internal_config)
    ...     assert loader.nodata == -9999.0
    """
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.

    Returns a callable that accepts UserConfig-compatible kwargs.

    Examples
    --------
    >>> def test_custom_radius(make_config):
    ...     config = make_config(kernel_radius=5)
    ...     assert config.proximity.kernel_radius == 5
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            user = UserConfig(**user_overrides)
            return resolve_config(param_config, user, None)
        else:
            return resolve_config(param_config, None, None)

    return _make


@pytest.fixture
def calibration():
    """Band 10 constants as a plain dict."""
    return dict(CALIBRATION)


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def output_dirs(temp_dir):
    """Standard lstpipe output directory structure under temp_dir/out."""
    return setup_output_directories(temp_dir / "out", verbose=False)


# =============================================================================
# Synthetic Scene Fixtures
# =============================================================================

@pytest.fixture
def scene_files(temp_dir):
    """20x20 synthetic scene as uint16 GeoTIFFs: (band paths, full bbox)."""
    return write_scene(temp_dir / "scene")


# =============================================================================
# Logging
# =============================================================================

@pytest.fixture(autouse=True)
def restore_root_logging():
    """Undo root handler changes made by PipelineOrchestrator._setup_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)

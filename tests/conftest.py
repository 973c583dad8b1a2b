import pytest
from export_samples import build_export, dual_year_lines, single_year_lines

from clinic_dashboard.config import default_app_config


@pytest.fixture
def summary_text() -> str:
    return build_export(95, single_year_lines())


@pytest.fixture
def dual_year_text() -> str:
    return build_export(53, dual_year_lines())


@pytest.fixture
def app_config(tmp_path):
    """Default configuration with the database in a temporary directory."""
    return default_app_config(tmp_path)

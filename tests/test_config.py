from pathlib import Path

import pytest

from smb_cashflow.config import load_app_config


def _write_config(tmp_path, content: str) -> Path:
    path = tmp_path / "smb_cashflow_config.toml"
    path.write_text(content, encoding="utf-8")
    return path


def test_defaults_with_empty_file(tmp_path) -> None:
    cfg = load_app_config(str(_write_config(tmp_path, "")))

    assert cfg.timezone == "America/Santiago"
    assert cfg.currency == "CLP"
    assert cfg.cash_rounding_unit == 10
    assert cfg.series.default_months == 6
    assert cfg.series.min_months == 3
    assert cfg.series.max_months == 24
    assert cfg.max_workers == 9
    assert cfg.display_mode == "table"
    assert cfg.logging.level == "INFO"
    assert cfg.logging.format == "console"
    assert cfg.database.engine == "sqlite"
    # Relative paths are resolved against the config file location.
    assert cfg.database.path == (tmp_path / "data/db/smb_cashflow.sqlite").resolve()


def test_full_file(tmp_path) -> None:
    path = _write_config(
        tmp_path,
        """
[business]
timezone = "UTC"
currency = "EUR"
cash_rounding_unit = 1

[database]
path = "ledger.sqlite"

[series]
default_months = 12
min_months = 2
max_months = 36

[engine]
max_workers = 4

[display]
mode = "both"

[logging]
level = "DEBUG"
format = "json"
""",
    )

    cfg = load_app_config(str(path))

    assert cfg.timezone == "UTC"
    assert cfg.cash_rounding_unit == 1
    assert cfg.database.path == (tmp_path / "ledger.sqlite").resolve()
    assert cfg.series.default_months == 12
    assert cfg.max_workers == 4
    assert cfg.display_mode == "both"
    assert cfg.logging.format == "json"


def test_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_app_config(str(tmp_path / "missing.toml"))


@pytest.mark.parametrize(
    "content",
    [
        "[business]\ntimezone = 'Nowhere/Atlantis'\n",
        "[business]\ncash_rounding_unit = 0\n",
        "[business]\ncash_rounding_unit = 'ten'\n",
        "[series]\ndefault_months = 2\nmin_months = 3\n",
        "[series]\nmax_months = 4\n",
        "[engine]\nmax_workers = 0\n",
        "[display]\nmode = 'html'\n",
        "[logging]\nlevel = 'TRACE'\n",
        "[logging]\nformat = 'xml'\n",
        "this is not toml",
    ],
)
def test_invalid_settings_are_rejected(tmp_path, content) -> None:
    path = _write_config(tmp_path, content)

    with pytest.raises(ValueError):
        load_app_config(str(path))

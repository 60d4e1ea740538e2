"""Tests for infrastructure/config_loader.py."""

from pathlib import Path

import pytest

from cratescope.domain.configuration import AnalysisConfig
from cratescope.domain.exceptions import ConfigError
from cratescope.infrastructure.config_loader import load_config


def _config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "cratescope.toml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    """Tests for load_config()."""

    def test_section(self, tmp_path: Path) -> None:
        path = _config(
            tmp_path,
            """
[cratescope]
target_dir = "game/src"
output_dir = "/abs/out"
exclude = ["**/generated/**"]
crate_name = "game"
workers = 8
""",
        )

        values = load_config(path)

        assert values == {
            "target_dir": tmp_path / "game" / "src",
            "output_dir": Path("/abs/out"),
            "exclude": ("**/generated/**",),
            "crate_name": "game",
            "workers": 8,
        }

    def test_top_level_keys(self, tmp_path: Path) -> None:
        path = _config(tmp_path, 'target_dir = "src"\nextensions = [".rs", ".rs.in"]\n')

        values = load_config(path)

        assert values["target_dir"] == tmp_path / "src"
        assert values["extensions"] == (".rs", ".rs.in")

    def test_only_present_keys(self, tmp_path: Path) -> None:
        assert load_config(_config(tmp_path, "[cratescope]\n")) == {}

    def test_values_build_config(self, tmp_path: Path) -> None:
        path = _config(
            tmp_path,
            '[cratescope]\ntarget_dir = "src"\ngenerated_at = "2024-01-01T00:00:00Z"\n',
        )

        config = AnalysisConfig(**load_config(path))

        assert config.target_dir == tmp_path / "src"
        assert config.generated_at == "2024-01-01T00:00:00Z"


class TestLoadConfigErrors:
    """Invalid files raise ConfigError."""

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path / "absent.toml")

        assert exc_info.value.field == "config"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="invalid TOML"):
            load_config(_config(tmp_path, "target_dir = \n"))

    def test_unknown_key(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError) as exc_info:
            load_config(_config(tmp_path, "[cratescope]\nthreads = 4\n"))

        assert exc_info.value.field == "threads"
        assert exc_info.value.reason == "unknown configuration key"

    @pytest.mark.parametrize(
        ("line", "field"),
        [
            ("target_dir = 3", "target_dir"),
            ('exclude = "**/target/**"', "exclude"),
            ("extensions = [1]", "extensions"),
            ('workers = "4"', "workers"),
            ("workers = true", "workers"),
            ("crate_name = 1", "crate_name"),
        ],
    )
    def test_wrong_type(self, tmp_path: Path, line: str, field: str) -> None:
        with pytest.raises(ConfigError) as exc_info:
            load_config(_config(tmp_path, f"[cratescope]\n{line}\n"))

        assert exc_info.value.field == field

    def test_section_not_a_table(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="must be a table"):
            load_config(_config(tmp_path, 'cratescope = "yes"\n'))

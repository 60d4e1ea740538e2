"""Tests for domain/configuration.py."""

from pathlib import Path

import pytest

from cratescope.domain.configuration import (
    DEFAULT_EXCLUDES,
    DEFAULT_EXTENSIONS,
    AnalysisConfig,
)
from cratescope.domain.exceptions import ConfigError


class TestAnalysisConfig:
    """Tests for AnalysisConfig validation."""

    def test_defaults(self) -> None:
        config = AnalysisConfig(target_dir=Path("src"))

        assert config.output_dir == Path("output")
        assert config.extensions == DEFAULT_EXTENSIONS
        assert config.exclude == DEFAULT_EXCLUDES
        assert config.crate_name == "crate"
        assert config.workers == 4
        assert config.generated_at is None

    def test_structure_dir(self) -> None:
        config = AnalysisConfig(target_dir=Path("src"), output_dir=Path("out"))

        assert config.structure_dir == Path("out/structure")

    def test_extension_without_dot_raises(self) -> None:
        with pytest.raises(ConfigError, match="extensions"):
            AnalysisConfig(target_dir=Path("src"), extensions=("rs",))

    def test_no_extensions_raises(self) -> None:
        with pytest.raises(ConfigError, match="at least one extension"):
            AnalysisConfig(target_dir=Path("src"), extensions=())

    def test_empty_exclude_pattern_raises(self) -> None:
        with pytest.raises(ConfigError, match="exclude"):
            AnalysisConfig(target_dir=Path("src"), exclude=("",))

    def test_crate_name_must_be_identifier(self) -> None:
        with pytest.raises(ConfigError, match="crate_name"):
            AnalysisConfig(target_dir=Path("src"), crate_name="my-crate")

    @pytest.mark.parametrize("workers", [0, -1])
    def test_workers_must_be_positive(self, workers: int) -> None:
        with pytest.raises(ConfigError, match="workers"):
            AnalysisConfig(target_dir=Path("src"), workers=workers)

    def test_generated_at_accepts_zulu(self) -> None:
        config = AnalysisConfig(target_dir=Path("src"), generated_at="2024-01-01T00:00:00Z")

        assert config.generated_at == "2024-01-01T00:00:00Z"

    def test_generated_at_must_be_iso(self) -> None:
        with pytest.raises(ConfigError, match="generated_at"):
            AnalysisConfig(target_dir=Path("src"), generated_at="yesterday")

    def test_config_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            AnalysisConfig(target_dir=Path("src"), workers=0)

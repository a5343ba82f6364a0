"""
Tests for CodecConfig and YAML loading.
"""

import pytest
from pydantic import ValidationError

from chuk_score_codec.constants import Dynamics
from chuk_score_codec.core import GRID_16, GRID_32, GRID_64
from chuk_score_codec.models import CodecConfig, load_config


class TestCodecConfig:
    """Defaults and validation."""

    def test_defaults(self) -> None:
        config = CodecConfig()
        assert config.fine is GRID_64
        assert config.coarse is GRID_16
        assert config.merge_tied_notes is True
        assert config.collapse_dynamics(Dynamics.MF) is Dynamics.F
        assert config.collapse_dynamics(Dynamics.PPP) is Dynamics.PP
        assert config.collapse_dynamics(Dynamics.NONE) is Dynamics.NONE

    def test_unknown_grid(self) -> None:
        with pytest.raises(ValidationError, match="Unknown duration grid"):
            CodecConfig(fine_grid="grid128")

    def test_coarse_must_be_coarser(self) -> None:
        with pytest.raises(ValidationError, match="must be coarser"):
            CodecConfig(fine_grid="grid16", coarse_grid="grid32")

    def test_custom_grids(self) -> None:
        config = CodecConfig(fine_grid="grid32")
        assert config.fine is GRID_32

    def test_dynamics_table_merges_over_defaults(self) -> None:
        config = CodecConfig(coarse_dynamics={"mp": "mf", "fff": "none"})
        assert config.collapse_dynamics(Dynamics.MP) is Dynamics.MF
        assert config.collapse_dynamics(Dynamics.FFF) is Dynamics.NONE
        assert config.collapse_dynamics(Dynamics.MF) is Dynamics.F

    def test_bad_dynamics_mark(self) -> None:
        with pytest.raises(ValidationError):
            CodecConfig(coarse_dynamics={"loud": "f"})

    def test_frozen(self) -> None:
        config = CodecConfig()
        with pytest.raises(ValidationError):
            config.merge_tied_notes = False


class TestLoadConfig:
    """YAML files."""

    def test_load(self, temp_dir) -> None:
        path = temp_dir / "codec.yaml"
        path.write_text(
            "fine_grid: grid32\n"
            "merge_tied_notes: false\n"
            "coarse_dynamics:\n"
            "  mp: mf\n"
        )
        config = load_config(path)
        assert config.fine is GRID_32
        assert config.coarse is GRID_16
        assert config.merge_tied_notes is False
        assert config.collapse_dynamics(Dynamics.MP) is Dynamics.MF

    def test_empty_file(self, temp_dir) -> None:
        path = temp_dir / "empty.yaml"
        path.write_text("")
        assert load_config(path) == CodecConfig()

    def test_not_a_mapping(self, temp_dir) -> None:
        path = temp_dir / "list.yaml"
        path.write_text("- grid64\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(str(path))

    def test_invalid_values(self, temp_dir) -> None:
        path = temp_dir / "bad.yaml"
        path.write_text("coarse_grid: grid64\n")
        with pytest.raises(ValidationError):
            load_config(path)

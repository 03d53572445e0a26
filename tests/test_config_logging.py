"""
Tests for tokdd.io (YAML settings + logger setup).
"""
import logging

import pytest

from tokdd.io.config import FluxSurfaceSettings, discover_yaml_files, load_settings, load_yaml
from tokdd.io.logging_utils import LOGGER_NAME, setup_logger


# ============================================================================
# YAML helpers
# ============================================================================

def test_discover_yaml_files_sorted_by_name(tmp_path):
    (tmp_path / "b.yml").write_text("x: 1\n")
    (tmp_path / "A.yaml").write_text("y: 2\n")
    (tmp_path / "notes.txt").write_text("ignored\n")
    names = [p.name for p in discover_yaml_files(tmp_path)]
    assert names == ["A.yaml", "b.yml"]


def test_discover_yaml_files_missing_dir(tmp_path):
    with pytest.raises(FileNotFoundError):
        discover_yaml_files(tmp_path / "nope")


def test_load_yaml_normalizes_empty_and_rejects_lists(tmp_path):
    empty = tmp_path / "empty.yaml"
    empty.write_text("")
    assert load_yaml(empty) == {}

    listy = tmp_path / "list.yaml"
    listy.write_text("- 1\n- 2\n")
    with pytest.raises(TypeError):
        load_yaml(listy)


# ============================================================================
# FluxSurfaceSettings
# ============================================================================

def test_defaults():
    s = load_settings()
    assert s == FluxSurfaceSettings()
    assert s.cocos == 11
    assert s.upsample_factor == 1


def test_load_settings_from_mapping_section():
    s = load_settings({"flux_surfaces": {"upsample_factor": 2, "boundary_precision": "1e-8"}})
    assert s.upsample_factor == 2
    assert s.boundary_precision == pytest.approx(1e-8)
    assert s.cocos == 11


def test_load_settings_from_yaml_file(tmp_path):
    path = tmp_path / "fs.yaml"
    path.write_text("flux_surfaces:\n  cocos: 1\n  axis_seed_points: 33\n")
    s = load_settings(path)
    assert s.cocos == 1
    assert s.axis_seed_points == 33


@pytest.mark.parametrize(
    "raw",
    [
        {"not_a_setting": 1},
        {"upsample_factor": 0},
        {"upsample_factor": 1.5},
        {"boundary_precision": -1.0},
        {"axis_seed_points": 3},
        {"optimizer_gtol": "fast"},
    ],
)
def test_invalid_settings(raw):
    with pytest.raises(ValueError):
        load_settings(raw)


def test_with_overrides_validates_and_ignores_none():
    base = FluxSurfaceSettings()
    assert base.with_overrides(upsample_factor=None) is base
    s = base.with_overrides(upsample_factor=3)
    assert s.upsample_factor == 3
    assert base.upsample_factor == 1
    with pytest.raises(ValueError):
        base.with_overrides(upsample_factor=0)


# ============================================================================
# logging
# ============================================================================

@pytest.fixture
def clean_logger():
    logger = logging.getLogger(LOGGER_NAME)
    saved = list(logger.handlers)
    level = logger.level
    for h in saved:
        logger.removeHandler(h)
    yield logger
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    for h in saved:
        logger.addHandler(h)
    logger.setLevel(level)


def test_setup_logger_is_idempotent(clean_logger, tmp_path):
    log_path = tmp_path / "logs" / "run.log"
    logger = setup_logger(log_path, level="debug")
    assert logger is clean_logger
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    assert log_path.exists()

    setup_logger(log_path)
    assert len(logger.handlers) == 2


def test_module_loggers_are_children():
    from tokdd.physics import equilibrium

    assert equilibrium.log.name.startswith(LOGGER_NAME + ".")

"""
Tests for the data-dictionary tables (tokdd.dd.schema) and path helpers
(tokdd.dd.paths).
"""
import pytest

from tokdd.dd import i2p, info, p2i, u_location
from tokdd.dd.paths import common_prefix, normalize_info_path, typename
from tokdd.dd.schema import children, dependents, field_info, ids_names, load_schema
from tokdd.errors import UnknownPathError


# ============================================================================
# paths
# ============================================================================

def test_i2p_splits_names_and_indices():
    assert i2p("core_profiles.profiles_1d[0].ion[:].label") == ["core_profiles", "profiles_1d", 0, "ion", ":", "label"]
    assert i2p("") == []


def test_p2i_is_inverse_of_i2p():
    path = "wall.description_2d[0].mobile.unit[12].outline[3].r"
    assert p2i(i2p(path)) == path


def test_p2i_rejects_leading_index():
    with pytest.raises(ValueError):
        p2i([0, "a"])


def test_u_location_replaces_every_index():
    assert u_location("equilibrium.time_slice[2].profiles_2d[0].psi") == "equilibrium.time_slice[:].profiles_2d[:].psi"
    assert u_location(["equilibrium", "time_slice", 1, "boundary"]) == "equilibrium.time_slice[:].boundary"


def test_normalize_info_path_drops_trailing_index():
    assert normalize_info_path("core_profiles.profiles_1d[1]") == "core_profiles.profiles_1d"
    assert normalize_info_path("core_profiles.profiles_1d[:]") == "core_profiles.profiles_1d"


def test_common_prefix_and_typename():
    assert common_prefix("a.b[:].c", "a.b[:].d.e") == "a.b[:]"
    assert typename("equilibrium.time_slice[:].profiles_1d") == "equilibrium__time_slice___profiles_1d"
    assert typename("") == "dd"


# ============================================================================
# schema
# ============================================================================

def test_bundled_ids():
    names = ids_names()
    for ids in ("core_profiles", "core_sources", "equilibrium", "pf_active", "wall"):
        assert ids in names


def test_schema_is_loaded_once():
    assert load_schema() is load_schema()


def test_field_info_of_a_profile():
    finfo = field_info("equilibrium.time_slice[:].profiles_1d.q")
    assert finfo.data_type == "FLT_1D"
    assert finfo.coordinates == ("equilibrium.time_slice[:].profiles_1d.psi",)
    assert finfo.is_array and finfo.ndim == 1


def test_children_keep_schema_order():
    fields = list(children("equilibrium.time_slice[:].boundary.outline"))
    assert fields == ["r", "z"]


def test_dependents_of_a_coordinate():
    deps = dependents("equilibrium.time_slice[:].profiles_1d.psi")
    assert "equilibrium.time_slice[:].profiles_1d.q" in deps
    assert "equilibrium.time_slice[:].profiles_1d.psi" not in deps


def test_info_normalizes_numeric_indices():
    a = info("core_profiles.profiles_1d[1].electrons.temperature")
    b = info("core_profiles.profiles_1d[:].electrons.temperature")
    assert a == b
    assert a["full_path"] == "core_profiles.profiles_1d[:].electrons.temperature"
    assert a["data_type"] == "FLT_1D"
    assert a["coordinates"] == ["core_profiles.profiles_1d[:].grid.rho_tor_norm"]
    assert a["documentation"]


def test_info_of_struct_array_with_trailing_index():
    assert info("core_profiles.profiles_1d[3]")["data_type"] == "STRUCT_ARRAY"


def test_info_unknown_path():
    with pytest.raises(UnknownPathError):
        info("equilibrium.time_slice[0].not_a_field")
    with pytest.raises(KeyError):
        info("nonexistent_ids")

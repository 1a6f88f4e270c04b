import re
from datetime import datetime

import numpy as np
import pytest

import interVTU as iv
from builders import build_vtu, ramp_bytes, ramp_spec, write_file
from interVTU.errors import NotInterpolatableError, ShapeMismatchError, TopologyMismatchError
from interVTU.Fields import FieldKeywords, FieldState
from interVTU.VTU import VTUFile, timestamped

KW = FieldKeywords(uncompress=["xRamp", "velocity"], interpolation=["xRamp", "velocity"])
X = np.linspace(0.0, 0.8, 5)


@pytest.fixture
def ramp_path(tmp_path):
    return write_file(tmp_path / "ramp.vtu", ramp_bytes(compress=True))


def _sample(tmp_path, k):
    spec = ramp_spec(compress=True)
    spec.arrays[0].values = X * k
    return write_file(tmp_path / f"sample_{k}.vtu", build_vtu(spec))


def test_open_reads_the_whole_file(ramp_path):
    vtu = VTUFile(ramp_path, keywords=KW)
    assert vtu.number_of_points == 5
    assert vtu.number_of_cells == 4
    assert vtu.keys() == ["xRamp", "velocity"]
    assert list(vtu) == vtu.keys()
    assert "xRamp" in vtu
    assert "untouched" not in vtu
    assert vtu.state("untouched") is FieldState.OPAQUE
    np.testing.assert_array_equal(vtu["xRamp"][:, 0], X)
    assert "VTUFile(" in repr(vtu)


def test_missing_file_raises_oserror(tmp_path):
    with pytest.raises(OSError):
        VTUFile(tmp_path / "nope.vtu")


def test_write_adds_timestamp(ramp_path):
    vtu = VTUFile(ramp_path, keywords=KW)
    out = vtu.write()
    assert out.parent == ramp_path.parent
    assert re.fullmatch(r"ramp_\d{8}_\d{6}_\d{6}\.vtu", out.name)
    assert out.read_bytes() == ramp_path.read_bytes()
    # no temporary files left behind
    assert sorted(p.name for p in ramp_path.parent.iterdir()) == sorted(["ramp.vtu", out.name])


def test_write_without_timestamp(ramp_path, tmp_path):
    vtu = VTUFile(ramp_path)
    target = tmp_path / "sub" / "copy.vtu"
    assert vtu.write(target, add_timestamp=False) == target
    assert target.read_bytes() == ramp_path.read_bytes()


def test_timestamped_name():
    when = datetime(2024, 5, 17, 9, 3, 7, 42)
    assert timestamped("out/run.vtu", when).as_posix() == "out/run_20240517_090307_000042.vtu"


def test_monte_carlo_mean(tmp_path):
    paths = [_sample(tmp_path, k) for k in (1, 2, 3)]
    mean = VTUFile(paths[0], keywords=KW)
    for p in paths[1:]:
        acc = mean
        mean += VTUFile(p, keywords=KW)
        assert mean is acc
    mean /= len(paths)
    np.testing.assert_allclose(mean["xRamp"][:, 0], 2.0 * X)

    out = iv.read(mean.write(), keywords=KW)
    np.testing.assert_allclose(out["xRamp"][:, 0], 2.0 * X)
    np.testing.assert_array_equal(out["velocity"], mean["velocity"])


def test_operator_sugar(ramp_path):
    a = VTUFile(ramp_path, keywords=KW)
    b = VTUFile(ramp_path, keywords=KW)
    x = a["xRamp"][:, 0].copy()

    np.testing.assert_array_equal((a + b)["xRamp"][:, 0], 2 * x)
    np.testing.assert_array_equal((a - b)["xRamp"][:, 0], np.zeros(5))
    np.testing.assert_array_equal((a * b)["xRamp"][:, 0], x * x)
    np.testing.assert_array_equal((a * 2)["xRamp"][:, 0], 2 * x)
    np.testing.assert_array_equal((2 * a)["xRamp"][:, 0], 2 * x)
    np.testing.assert_array_equal((np.float64(2.0) * a)["xRamp"][:, 0], 2 * x)
    np.testing.assert_array_equal((1 + a)["xRamp"][:, 0], 1 + x)
    np.testing.assert_array_equal((1 - a)["xRamp"][:, 0], 1 - x)
    np.testing.assert_array_equal((a ** 2)["xRamp"][:, 0], x ** 2)
    np.testing.assert_array_equal((-a)["xRamp"][:, 0], -x)
    np.testing.assert_array_equal(abs(-a)["xRamp"][:, 0], x)
    with np.errstate(divide="ignore"):
        np.testing.assert_array_equal((2 / a)["xRamp"][:, 0], 2 / x)
    # operands are never modified by the allocating forms
    np.testing.assert_array_equal(a["xRamp"][:, 0], x)


def test_operator_sugar_rejects_unsupported_operands(ramp_path):
    a = VTUFile(ramp_path, keywords=KW)
    with pytest.raises(TypeError):
        a ** a
    with pytest.raises(TypeError):
        a + "1"
    with pytest.raises(TypeError):
        a += [1.0]


def test_in_place_scalar_ops(ramp_path):
    a = VTUFile(ramp_path, keywords=KW)
    handle = a
    a += 1.0
    a *= 2.0
    a -= 2.0
    a /= 2.0
    a **= 2.0
    assert a is handle
    np.testing.assert_allclose(a["xRamp"][:, 0], X ** 2)


def test_topology_mismatch_between_files(tmp_path):
    a = VTUFile(write_file(tmp_path / "a.vtu", ramp_bytes()), keywords=KW)
    b = VTUFile(write_file(tmp_path / "b.vtu", ramp_bytes(n=7)), keywords=KW)
    with pytest.raises(TopologyMismatchError):
        a + b
    with pytest.raises(TopologyMismatchError):
        a += b
    np.testing.assert_array_equal(a["xRamp"][:, 0], X)


def test_setitem(ramp_path):
    a = VTUFile(ramp_path, keywords=KW)
    a["xRamp"] = np.arange(5.0)
    np.testing.assert_array_equal(a["xRamp"][:, 0], np.arange(5.0))
    with pytest.raises(ShapeMismatchError):
        a["velocity"] = np.zeros((5, 2))
    with pytest.raises(NotInterpolatableError):
        a["untouched"] = np.zeros(5)

    back = VTUFile.from_bytes(a.to_bytes(), keywords=KW)
    np.testing.assert_array_equal(back["xRamp"][:, 0], np.arange(5.0))


def test_fill_zero_one(ramp_path):
    a = VTUFile(ramp_path, keywords=KW)
    z = a.zero()
    o = a.one()
    np.testing.assert_array_equal(z["velocity"], np.zeros((5, 3)))
    np.testing.assert_array_equal(o["xRamp"], np.ones((5, 1)))
    np.testing.assert_array_equal(a["xRamp"][:, 0], X)
    assert a.fill(7.0, names=["xRamp"]) is a
    np.testing.assert_array_equal(a["xRamp"], np.full((5, 1), 7.0))
    np.testing.assert_array_equal(a["velocity"][:, 0], X)


def test_minimum_maximum(ramp_path):
    a = VTUFile(ramp_path, keywords=KW)
    np.testing.assert_array_equal(a.minimum(0.4)["xRamp"][:, 0], np.minimum(X, 0.4))
    np.testing.assert_array_equal(a.maximum(a.zero() + 0.4)["xRamp"][:, 0], np.maximum(X, 0.4))


def test_default_keywords_apply_at_open(ramp_path):
    iv.set_uncompress_keywords(["xRamp"])
    iv.set_interpolation_keywords(["xRamp"])
    a = iv.open(ramp_path)
    iv.reset_keywords()
    b = iv.open(ramp_path)
    assert a.keys() == ["xRamp"]
    assert b.keys() == []
    assert a.keywords.uncompress == ("xRamp",)


def test_module_write(ramp_path, tmp_path):
    a = iv.read(ramp_path, KW) * 3.0
    out = iv.write(a, add_timestamp=False, path=tmp_path / "tripled.vtu")
    np.testing.assert_allclose(iv.read(out, KW)["xRamp"][:, 0], 3.0 * X)



def test_scalar_divided_by_file_is_exact():
    spec = ramp_spec(n=2)
    spec.arrays[0].values = np.array([10.0, 3.0])
    a = VTUFile.from_bytes(build_vtu(spec), keywords=KW)
    out = 3.0 / a
    assert out["xRamp"][0, 0] == 0.3
    np.testing.assert_array_equal(out["xRamp"][:, 0], 3.0 / np.array([10.0, 3.0]))
    np.testing.assert_array_equal(a["xRamp"][:, 0], [10.0, 3.0])

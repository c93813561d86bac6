import numpy as np
import pytest

from calibu.geometry import SE3, SO3
from calibu.textio import (
    format_matrix,
    format_se3,
    format_so3,
    parse_matrix,
    parse_se3,
    parse_so3,
)


def test_format_matrix_layout():
    assert format_matrix(np.array([[1.0, 2.0], [3.0, 4.0]])) == "[ 1, 2; 3, 4 ]"


def test_format_vector_as_column():
    assert format_matrix(np.array([1, 0, 0])) == "[ 1; 0; 0 ]"


def test_format_empty_raises():
    with pytest.raises(ValueError):
        format_matrix(np.zeros((0, 3)))


def test_matrix_round_trip():
    m = np.array([[0.5, -1.25, 3.0], [1e-3, 2.0, -7.5]])
    assert np.allclose(parse_matrix(format_matrix(m), 2, 3), m)


def test_parse_source_default_vector():
    v = parse_matrix("[ 1; 0; 0 ]", 3, 1)
    assert np.allclose(v.ravel(), [1.0, 0.0, 0.0])


def test_parse_ignores_text_before_bracket():
    v = parse_matrix("  note [0; 1; 0 ]", 3, 1)
    assert np.allclose(v.ravel(), [0.0, 1.0, 0.0])


def test_parse_empty_text_returns_default():
    default = np.array([[4.0], [5.0]])
    assert np.allclose(parse_matrix("", 2, 1, default), default)


def test_parse_text_without_bracket_reads_zeros():
    assert np.allclose(parse_matrix("1 2 3", 3, 1, np.ones(3)), 0.0)


def test_parse_missing_fields_read_zero():
    v = parse_matrix("[ 2; 3", 3, 1)
    assert np.allclose(v.ravel(), [2.0, 3.0, 0.0])


def test_parse_bad_shape_raises():
    with pytest.raises(ValueError):
        parse_matrix("[ 1 ]", 0, 1)
    with pytest.raises(ValueError):
        parse_matrix("[ 1 ]", 2, 1, [1.0, 2.0, 3.0])


def test_so3_round_trip():
    r = SO3.exp([0.3, -0.6, 0.2])
    again = parse_so3(format_so3(r))
    assert np.allclose(again.matrix(), r.matrix(), atol=1e-5)


def test_format_identity_so3():
    assert format_so3(SO3()) == "[ 0; 0; 0; 1 ]"


def test_se3_round_trip():
    t = SE3(SO3.exp([0.1, 0.2, -0.3]), [1.5, -2.25, 0.75])
    again = parse_se3(format_se3(t))
    assert np.allclose(again.matrix(), t.matrix(), atol=1e-5)


def test_parse_se3_requires_leading_bracket():
    text = " " + format_se3(SE3(SO3.exp([0.4, 0.0, 0.0]), [1.0, 2.0, 3.0]))
    assert np.allclose(parse_se3(text).matrix(), np.eye(4))
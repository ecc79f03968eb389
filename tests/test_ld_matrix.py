import numpy as np
import pytest

from pydentist.matrix.ld import compute_ld_matrix, find_duplicate_variants
from pydentist.utils.data_types import LDMatrix, as_ld_array


def test_ld_matrix_validation() -> None:
    with pytest.raises(ValueError):
        LDMatrix(np.ones(3))
    with pytest.raises(ValueError):
        LDMatrix(np.ones((2, 3)))
    with pytest.raises(ValueError):
        LDMatrix(np.array([[1.0, np.nan], [np.nan, 1.0]]))
    with pytest.raises(ValueError):
        LDMatrix(np.array([[1.0, 0.5], [0.2, 1.0]]))
    with pytest.raises(ValueError):
        LDMatrix([[1.0, 0.0], [0.0, 1.0]])


def test_ld_matrix_is_read_only_copy() -> None:
    data = np.array([[1.0, 0.3], [0.3, 1.0]])
    ld = LDMatrix(data)

    data[0, 1] = 0.9
    assert ld[0, 1] == 0.3
    assert ld.n_markers == 2
    assert ld.shape == (2, 2)
    np.testing.assert_array_equal(ld.diagonal, [1.0, 1.0])
    with pytest.raises(ValueError):
        ld.to_numpy()[0, 0] = 2.0


def test_ld_matrix_subset_and_passthrough() -> None:
    data = np.array([
        [1.0, 0.2, 0.4],
        [0.2, 1.0, 0.1],
        [0.4, 0.1, 1.0],
    ])
    ld = LDMatrix(data)

    sub = ld.subset([0, 2])
    np.testing.assert_array_equal(sub.to_numpy(), [[1.0, 0.4], [0.4, 1.0]])
    assert as_ld_array(LDMatrix(ld)) is ld.to_numpy()
    with pytest.raises(ValueError):
        as_ld_array(np.ones((2, 3)))


def test_compute_ld_matrix_matches_corrcoef() -> None:
    rng = np.random.default_rng(0)
    geno = rng.integers(0, 3, size=(200, 6)).astype(float)

    ld = compute_ld_matrix(geno)

    np.testing.assert_allclose(ld.to_numpy(), np.corrcoef(geno, rowvar=False), atol=1e-12)
    np.testing.assert_array_equal(ld.diagonal, np.ones(6))


def test_compute_ld_matrix_handles_missing_and_monomorphic() -> None:
    geno = np.array([
        [0.0, 1.0, 2.0],
        [1.0, 1.0, -9.0],
        [2.0, 1.0, 0.0],
        [1.0, 1.0, 1.0],
    ])

    ld = compute_ld_matrix(geno, missing_value=-9)

    # Marker 1 is monomorphic
    np.testing.assert_array_equal(ld[1], [0.0, 1.0, 0.0])
    filled = np.array([2.0, 1.0, 0.0, 1.0])
    expected = np.corrcoef(geno[:, 0], filled)[0, 1]
    assert ld[0, 2] == pytest.approx(expected)


def test_compute_ld_matrix_needs_two_individuals() -> None:
    with pytest.raises(ValueError):
        compute_ld_matrix(np.zeros((1, 4)))


def test_find_duplicate_variants_clusters() -> None:
    ld = np.eye(6)
    ld[0, 3] = ld[3, 0] = 0.995
    ld[3, 5] = ld[5, 3] = -0.999  # perfect LD with flipped allele
    ld[1, 2] = ld[2, 1] = 0.8

    representatives, representative_of = find_duplicate_variants(ld, 0.99)

    np.testing.assert_array_equal(representatives, [0, 1, 2, 4])
    np.testing.assert_array_equal(representative_of, [0, 1, 2, 0, 4, 0])


def test_find_duplicate_variants_threshold() -> None:
    ld = np.eye(3)
    ld[0, 1] = ld[1, 0] = 0.8

    representatives, _ = find_duplicate_variants(ld, 0.75)
    np.testing.assert_array_equal(representatives, [0, 2])

    representatives, _ = find_duplicate_variants(ld, 1.0)
    np.testing.assert_array_equal(representatives, [0, 1, 2])

    with pytest.raises(ValueError):
        find_duplicate_variants(ld, 0.0)

"""Unit tests for the homography solver and replay validation."""

import numpy as np
import pytest

from ebeam_calibrator.calibration.errors import (
    DegenerateMatrix,
    SingularSystem,
    ValidationMismatch,
)
from ebeam_calibrator.calibration.homography import (
    Correspondence,
    HomographyMatrix,
    build_linear_system,
    solve_coefficients,
    solve_homography,
)
from ebeam_calibrator.calibration.replay import project_point, validate_homography

SCALE = 10**12


@pytest.mark.unit()
class TestHomographyMatrix:
    """Test the fixed-point matrix value type."""

    def test_identity(self):
        matrix = HomographyMatrix.identity(12)

        assert tuple(matrix) == (SCALE, 0, 0, 0, SCALE, 0, 0, 0, SCALE)
        assert matrix.scale == SCALE
        assert matrix[4] == SCALE
        assert matrix.rows()[2] == (0, 0, SCALE)

    def test_as_dict(self):
        names = list(HomographyMatrix.identity(9).as_dict())
        assert names == [f"h{i}" for i in range(1, 10)]

    def test_validation(self):
        with pytest.raises(ValueError):
            HomographyMatrix((1, 2, 3))
        with pytest.raises(TypeError):
            HomographyMatrix((1.0, 0, 0, 0, 1, 0, 0, 0, 1))
        with pytest.raises(ValueError):
            HomographyMatrix((2**63, 0, 0, 0, 1, 0, 0, 0, 1))


@pytest.mark.unit()
class TestSolver:
    """Test solving the linear system."""

    def test_linear_system_rows(self):
        A, b = build_linear_system([Correspondence(2, 3, 5, 7)])

        np.testing.assert_array_equal(A[0], [2, 3, 1, 0, 0, 0, -10, -15])
        np.testing.assert_array_equal(A[1], [0, 0, 0, 2, 3, 1, -14, -21])
        np.testing.assert_array_equal(b, [5, 7])

    def test_affine_solution(self, square_correspondences):
        matrix = solve_homography(square_correspondences, 12)

        h = list(matrix)
        assert h[6] == 0 and h[7] == 0
        assert tuple(matrix) == (
            800_000_000_000,
            0,
            100 * SCALE,
            0,
            800_000_000_000,
            100 * SCALE,
            0,
            0,
            SCALE,
        )

    def test_precision_sets_h9(self, square_correspondences):
        for precision in (9, 14):
            matrix = solve_homography(square_correspondences, precision)
            assert matrix.scale == 10**precision

    def test_collinear_points_are_singular(self):
        correspondences = [
            Correspondence(100, 100, 200, 200),
            Correspondence(200, 200, 200, 800),
            Correspondence(300, 300, 800, 200),
            Correspondence(400, 400, 800, 800),
        ]

        with pytest.raises(SingularSystem):
            solve_homography(correspondences, 12)

    def test_zero_matrix_is_singular(self):
        with pytest.raises(SingularSystem):
            solve_coefficients(np.zeros((8, 8)), np.zeros(8))

    def test_requires_four_points(self, square_correspondences):
        with pytest.raises(ValueError):
            solve_homography(square_correspondences[:3], 12)


@pytest.mark.unit()
class TestReplay:
    """Test driver-exact replay of a matrix."""

    def test_identity_projection(self):
        matrix = HomographyMatrix.identity(12)

        assert project_point(matrix, 10, 20) == (10, 20)
        assert project_point(matrix, 0, 0) == (0, 0)

    def test_scaled_projection(self):
        # x = X / 2 - 25 rounded like the driver
        matrix = HomographyMatrix(
            (SCALE // 2, 0, -25 * SCALE, 0, SCALE // 2, -25 * SCALE, 0, 0, SCALE)
        )

        assert project_point(matrix, 306, 242) == (128, 96)
        assert project_point(matrix, 307, 243) == (129, 97)

    def test_zero_denominator(self):
        matrix = HomographyMatrix((1, 0, 0, 0, 1, 0, 0, 0, 0))

        with pytest.raises(DegenerateMatrix):
            project_point(matrix, 10, 10)

    def test_validate_accepts_solved_matrix(self, square_correspondences):
        matrix = solve_homography(square_correspondences, 12)

        replayed = validate_homography(matrix, square_correspondences)
        assert replayed == [c.screen for c in square_correspondences]

    def test_validate_reports_mismatch(self):
        matrix = HomographyMatrix.identity(12)
        correspondences = [
            Correspondence(10, 20, 10, 20),
            Correspondence(30, 40, 31, 40),
        ]

        with pytest.raises(ValidationMismatch) as excinfo:
            validate_homography(matrix, correspondences)

        error = excinfo.value
        assert error.index == 1
        assert error.device == (30, 40)
        assert error.replayed == (30, 40)
        assert error.expected == (31, 40)
        assert str(error).startswith("point 2:")

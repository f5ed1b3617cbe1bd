"""Unit tests for terrain, wind, drag and the body table."""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from spacesim.environment import (
    BODY_RADII,
    EARTH_RADIUS,
    SOLAR_SYSTEM,
    AtmosphericDrag,
    CelestialBody,
    ConstantWindField,
    Environment,
    FlatHeightField,
    PerlinHeightField,
    PerlinNoise,
    PerlinWindField,
    SurfaceEnvironment,
    SurfaceGrid,
    constant_wind,
    find_body,
    flat_calm,
    index_of,
    load_solar_system,
    perlin_terrain,
)
from spacesim.integrators import ConfigurationError

# =============================================================================
# Noise Tests
# =============================================================================


class TestPerlinNoise:
    """Test the gradient noise generator."""

    def test_deterministic(self):
        """Same seed, same values."""
        x = np.linspace(0.0, 5.0, 40)
        y = np.linspace(-2.0, 3.0, 40)
        assert_allclose(PerlinNoise(3).noise(x, y), PerlinNoise(3).noise(x, y))

    def test_seeds_differ(self):
        """Different seeds give different fields."""
        x = np.linspace(0.1, 5.1, 40)
        assert not np.allclose(PerlinNoise(1).noise(x, x * 0.7), PerlinNoise(2).noise(x, x * 0.7))

    def test_zero_at_lattice_points(self):
        """Gradient noise vanishes on integer coordinates."""
        noise = PerlinNoise(11)
        for x, y in [(0.0, 0.0), (3.0, 7.0), (-4.0, 2.0)]:
            assert noise.noise(x, y) == pytest.approx(0.0, abs=1e-12)

    def test_scalar_in_scalar_out(self):
        """Scalar inputs return a Python float."""
        assert isinstance(PerlinNoise(0).noise(0.3, 0.6), float)

    def test_bounded(self):
        """Values stay within [-1, 1]."""
        grid = np.linspace(-10.0, 10.0, 201)
        xs, ys = np.meshgrid(grid, grid)
        values = PerlinNoise(5).noise(xs, ys)
        assert values.shape == xs.shape
        assert np.all(np.abs(values) <= 1.0 + 1e-12)


# =============================================================================
# Grid and Field Tests
# =============================================================================


class TestSurfaceGrid:
    """Test position to cell mapping."""

    def test_cell_uses_floor(self):
        """Cells are binned with floor on x (column) and z (row)."""
        grid = SurfaceGrid(cell_size=2.0)
        assert grid.cell(np.array([-0.5, 9.0, 4.1])) == (2, -1)
        assert grid.cell(np.array([3.9, 0.0, -0.1])) == (-1, 1)

    def test_index_inside_and_outside(self):
        """Only cells within the extent have an array index."""
        grid = SurfaceGrid(extent=10)
        assert grid.shape == (21, 21)
        assert grid.index(np.array([0.0, 0.0, 0.0])) == (10, 10)
        assert grid.index(np.array([10.5, 0.0, -10.5])) is None

    def test_origin_offset(self):
        """The origin is subtracted before binning."""
        grid = SurfaceGrid(origin=(100.0, 0.0, -50.0))
        assert grid.cell(np.array([100.5, 0.0, -49.5])) == (0, 0)

    def test_invalid_cell_size(self):
        """Cell size must be positive."""
        with pytest.raises(ConfigurationError, match="cell_size"):
            SurfaceGrid(cell_size=0.0)


class TestFields:
    """Test height and wind fields."""

    def test_flat_and_constant_are_uniform(self):
        """Uniform fields ignore the position."""
        far = np.array([-2715.0, 1500.0, 1e6])
        assert FlatHeightField(0.25).height(far) == 0.25
        assert_allclose(ConstantWindField((1e-4, 0.0, 2e-4)).wind(far), [1e-4, 0.0, 2e-4])

    def test_perlin_height(self):
        """Heights come from the table inside the grid and are 0 outside."""
        grid = SurfaceGrid(extent=20)
        field = PerlinHeightField(grid, scale=0.13, amplitude=0.2, seed=4)
        assert field.heights.shape == grid.shape
        assert np.all(np.abs(field.heights) <= 0.2 + 1e-12)
        assert np.ptp(field.heights) > 0.0

        pos = np.array([3.5, 0.0, -7.2])
        assert field.height(pos) == field.heights[grid.index(pos)]
        assert field.height(np.array([500.0, 0.0, 0.0])) == 0.0

    def test_perlin_wind(self):
        """Wind is horizontal inside the grid and calm outside."""
        grid = SurfaceGrid(extent=20)
        field = PerlinWindField(grid, scale=0.13, max_speed=1e-3, seed=4)
        winds = [field.wind(np.array([x, 0.0, -x])) for x in np.linspace(-15.0, 15.0, 31)]
        winds = np.array(winds)
        assert_allclose(winds[:, 1], 0.0)
        assert np.all(np.abs(winds) <= 1e-3 + 1e-15)
        assert np.any(winds[:, 0] != winds[:, 2])
        assert_allclose(field.wind(np.array([0.0, 0.0, 900.0])), np.zeros(3))

    def test_same_seed_same_terrain(self):
        """Two environments built with one seed agree everywhere."""
        a = perlin_terrain(seed=9)
        b = perlin_terrain(seed=9)
        pos = np.array([12.3, 5.0, -40.2])
        assert a.altitude(pos) == b.altitude(pos)
        assert_allclose(a.wind(pos), b.wind(pos))


class TestSurfaceEnvironment:
    """Test the composed provider."""

    def test_altitude_above_terrain(self):
        """Altitude is y minus the terrain height."""
        env = SurfaceEnvironment(FlatHeightField(0.5), ConstantWindField())
        assert env.altitude(np.array([0.0, 2.0, 0.0])) == pytest.approx(1.5)

    def test_constant_wind_helper(self):
        """constant_wind blows along +x."""
        env = constant_wind(2e-4, elevation=0.1)
        assert_allclose(env.wind(np.array([0.0, 1.0, 0.0])), [2e-4, 0.0, 0.0])
        assert env.altitude(np.array([0.0, 1.0, 0.0])) == pytest.approx(0.9)

    def test_protocol(self):
        """Built-in providers satisfy the Environment protocol."""
        assert isinstance(flat_calm(), Environment)
        assert isinstance(perlin_terrain(), Environment)


# =============================================================================
# Drag Tests
# =============================================================================


class TestAtmosphericDrag:
    """Test quadratic drag."""

    def test_opposes_relative_velocity(self):
        """F = -k |v| v in still air."""
        drag = AtmosphericDrag(coefficient=0.002)
        v = np.array([3.0, -4.0, 0.0])
        force = drag.force(np.array([0.0, 10.0, 0.0]), v, flat_calm())
        assert_allclose(force, -0.002 * 5.0 * v)

    def test_wind_relative(self):
        """Moving with the wind gives zero drag."""
        env = constant_wind(0.5)
        force = AtmosphericDrag().force(np.array([0.0, 10.0, 0.0]), np.array([0.5, 0.0, 0.0]), env)
        assert_allclose(force, np.zeros(3))

    def test_no_drag_above_ceiling(self):
        """Drag switches off above the atmosphere ceiling."""
        drag = AtmosphericDrag(ceiling=70.0)
        v = np.array([1.0, -1.0, 0.0])
        assert_allclose(drag.force(np.array([0.0, 70.5, 0.0]), v, flat_calm()), np.zeros(3))
        assert np.any(drag.force(np.array([0.0, 70.0, 0.0]), v, flat_calm()) != 0.0)

    def test_ceiling_measured_from_terrain(self):
        """The ceiling is an altitude above the local terrain."""
        env = SurfaceEnvironment(FlatHeightField(5.0), ConstantWindField())
        v = np.array([1.0, 0.0, 0.0])
        assert np.any(AtmosphericDrag().force(np.array([0.0, 74.0, 0.0]), v, env) != 0.0)

    def test_invalid_coefficient(self):
        """Negative drag constant is rejected."""
        with pytest.raises(ConfigurationError, match="coefficient"):
            AtmosphericDrag(coefficient=-1.0)


# =============================================================================
# Celestial Body Tests
# =============================================================================


class TestBodies:
    """Test the reference body table."""

    def test_load_all(self):
        """All eleven bodies load in table order."""
        bodies = load_solar_system()
        assert [b.name for b in bodies] == list(SOLAR_SYSTEM)
        assert len(bodies) == 11

    def test_fresh_copies(self):
        """Mutating a loaded body does not leak into later loads."""
        earth = find_body(load_solar_system(), "Earth")
        earth.position[0] = 0.0
        assert find_body(load_solar_system(), "Earth").position[0] != 0.0

    def test_subset_keeps_order(self):
        """A subset follows table order, not request order."""
        bodies = load_solar_system(["Titan", "Sun"])
        assert [b.name for b in bodies] == ["Sun", "Titan"]

    def test_unknown_name(self):
        """Unknown names are reported."""
        with pytest.raises(ConfigurationError, match="Pluto"):
            load_solar_system(["Pluto"])
        with pytest.raises(ConfigurationError, match="Pluto"):
            index_of(load_solar_system(), "Pluto")

    def test_lookup_case_insensitive(self):
        """Names match regardless of case."""
        bodies = load_solar_system()
        assert find_body(bodies, "saturn").name == "Saturn"

    def test_titan_near_saturn(self):
        """Titan starts within ~1.2 million km of Saturn."""
        bodies = load_solar_system()
        d = find_body(bodies, "Titan").distance_to(find_body(bodies, "Saturn"))
        assert 1e5 < d < 2e6

    def test_state_and_validation(self):
        """state() is [r, v]; negative mass is rejected."""
        body = CelestialBody("Probe", 1.0, np.array([1.0, 2.0, 3.0]), np.array([4.0, 5.0, 6.0]))
        assert_allclose(body.state(), [1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
        with pytest.raises(ConfigurationError, match="mass"):
            CelestialBody("Bad", -1.0)

    def test_radii(self):
        """Every loaded body carries its mean radius, kept by copy()."""
        bodies = load_solar_system()
        assert set(BODY_RADII) == set(SOLAR_SYSTEM)
        for body in bodies:
            assert body.radius == BODY_RADII[body.name]
        earth = find_body(bodies, "Earth")
        assert earth.radius == EARTH_RADIUS
        assert earth.copy().radius == EARTH_RADIUS
        with pytest.raises(ConfigurationError, match="radius"):
            CelestialBody("Bad", 1.0, radius=-1.0)

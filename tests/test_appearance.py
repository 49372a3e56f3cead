"""Unit tests for heat → glyph/colour quantization and frame rendering."""

import numpy as np
import pytest

from hearth import (
    CLASSIC_GLYPH_BINS,
    GLYPH_BINS,
    GRADIENT,
    AppearanceMapper,
    HeatGrid,
    render_cells,
    render_rows,
)


@pytest.fixture
def mapper():
    return AppearanceMapper()


class TestAppearanceMapper:
    """Test cases for AppearanceMapper."""

    def test_bin_counts(self, mapper):
        assert mapper.n_glyph == len(GLYPH_BINS) == 12
        assert mapper.n_color == len(GRADIENT) == 11

    def test_extremes(self, mapper):
        assert mapper.glyph_bin_index(0) == 0
        assert mapper.glyph_bin_index(255) == mapper.n_glyph - 1
        assert mapper.color_bin_index(0) == 0
        assert mapper.color_bin_index(255) == mapper.n_color - 1

    def test_floor_quantization(self, mapper):
        # floor(128 / 255 * 11) = floor(5.52)
        assert mapper.glyph_bin_index(128) == 5
        # floor(128 / 255 * 10) = floor(5.02)
        assert mapper.color_bin_index(128) == 5
        # floor(127 / 255 * 10) = floor(4.98)
        assert mapper.color_bin_index(127) == 4

    def test_out_of_range_heat_is_clamped(self, mapper):
        assert mapper.glyph_bin_index(-5) == 0
        assert mapper.glyph_bin_index(300) == mapper.n_glyph - 1
        assert mapper.color_bin_index(1000) == mapper.n_color - 1

    def test_indices_never_decrease_with_heat(self, mapper):
        glyph_idx = [mapper.glyph_bin_index(h) for h in range(256)]
        color_idx = [mapper.color_bin_index(h) for h in range(256)]
        assert glyph_idx == sorted(glyph_idx)
        assert color_idx == sorted(color_idx)

    def test_glyph_comes_from_its_bin(self, mapper, rng):
        for heat in range(256):
            glyph, color = mapper.glyph_and_color(heat, rng)
            assert glyph in GLYPH_BINS[mapper.glyph_bin_index(heat)]
            assert color == GRADIENT[mapper.color_bin_index(heat)]

    def test_every_candidate_gets_picked(self, mapper, rng):
        seen = {mapper.glyph_and_color(255, rng)[0] for _ in range(200)}
        assert seen == set(GLYPH_BINS[-1])

    def test_classic_bins_are_deterministic(self, rng):
        mapper = AppearanceMapper(CLASSIC_GLYPH_BINS)
        for heat in (0, 40, 128, 255):
            picks = {mapper.glyph_and_color(heat, rng) for _ in range(20)}
            assert len(picks) == 1
        assert mapper.glyph_and_color(255, rng) == ("M", GRADIENT[-1])

    def test_vectorized_matches_scalar_bins(self, mapper, rng):
        heat = np.arange(256).reshape(16, 16)
        glyphs = mapper.glyphs(heat, rng)
        bins = mapper.color_indices(heat)
        assert glyphs.shape == bins.shape == (16, 16)
        for h, g, i in zip(heat.ravel(), glyphs.ravel(), bins.ravel()):
            assert g in GLYPH_BINS[mapper.glyph_bin_index(h)]
            assert i == mapper.color_bin_index(h)

    def test_vectorized_empty(self, mapper, rng):
        assert mapper.glyphs(np.zeros((0, 4), dtype=np.uint8), rng).shape == (0, 4)

    @pytest.mark.parametrize(
        "glyph_bins,color_bins",
        [
            ((), GRADIENT),
            (((" ",), ()), GRADIENT),
            ((("ab",),), GRADIENT),
            (GLYPH_BINS, ()),
        ],
    )
    def test_rejects_bad_bins(self, glyph_bins, color_bins):
        with pytest.raises(ValueError):
            AppearanceMapper(glyph_bins, color_bins)


class TestRenderRows:
    """Test cases for render_rows."""

    def test_shape_and_order(self, mapper, rng):
        grid = HeatGrid.from_array([
            [0, 0, 0],
            [255, 255, 255],
        ])
        rows = render_rows(grid, mapper, rng)
        assert len(rows) == 2
        assert all(len(row) == 3 for row in rows)
        assert rows[0] == [(" ", GRADIENT[0])] * 3
        for glyph, color in rows[1]:
            assert glyph in GLYPH_BINS[-1]
            assert color == GRADIENT[-1]

    def test_leaves_grid_alone(self, mapper, rng):
        grid = HeatGrid.from_array(rng.integers(0, 256, size=(5, 7)))
        before = grid.cells.copy()
        render_rows(grid, mapper, rng)
        assert np.array_equal(grid.cells, before)

    def test_plain_python_values(self, mapper, rng):
        rows = render_rows(HeatGrid.from_array([[128]]), mapper, rng)
        glyph, color = rows[0][0]
        assert type(glyph) is str
        assert type(color) is int

    def test_empty_grid(self, mapper, rng):
        assert render_rows(HeatGrid(0, 0), mapper, rng) == []
        assert render_rows(HeatGrid(4, 0), mapper, rng) == []


class TestRenderCells:
    """Test cases for render_cells."""

    def test_carries_bin_index_not_colour(self, rng):
        # Bins 1 and 2 share a colour but must stay apart for bolding
        mapper = AppearanceMapper(CLASSIC_GLYPH_BINS, (16, 52, 52, 196, 15))
        grid = HeatGrid.from_array([[0, 70, 130, 200, 255]])
        cells = render_cells(grid, mapper, rng)
        assert [i for _, i in cells[0]] == [0, 1, 2, 3, 4]
        assert [c for _, c in render_rows(grid, mapper, rng)[0]] == [16, 52, 52, 196, 15]

    def test_same_glyphs_as_render_rows(self, mapper):
        grid = HeatGrid.from_array(np.arange(0, 256, 16).reshape(2, 8))
        cells = render_cells(grid, mapper, np.random.default_rng(5))
        rows = render_rows(grid, mapper, np.random.default_rng(5))
        for cell_row, row in zip(cells, rows):
            assert [g for g, _ in cell_row] == [g for g, _ in row]
            assert [mapper.color_bins[i] for _, i in cell_row] == [c for _, c in row]
            assert all(type(i) is int for _, i in cell_row)

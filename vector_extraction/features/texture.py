"""
Spatial uniform-LBP descriptor.

Every interior pixel votes for its uniform-pattern bin in up to four
neighbouring region cells, weighted bilinearly by its position; each
cell histogram is then square-root normalized.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from vector_extraction.errors import InvalidGeometryError
from vector_extraction.features._utils import hellinger_normalize
from vector_extraction.features.pattern_mapping import N_BINS, build_uniform_pattern_table


# (dy, dx) per bit, y grows downwards: E, SE, S, SW, W, NW, N, NE
NEIGHBOR_OFFSETS: List[Tuple[int, int]] = [
    (0, 1),
    (1, 1),
    (1, 0),
    (1, -1),
    (0, -1),
    (-1, -1),
    (-1, 0),
    (-1, 1),
]


@dataclass(frozen=True)
class RegionGrid:
    cells_x: int
    cells_y: int
    cell_size: int

    @property
    def n_cells(self) -> int:
        return self.cells_x * self.cells_y

    @property
    def feature_dim(self) -> int:
        return N_BINS * self.n_cells


def compute_region_grid(height: int, width: int, cell_size: int) -> RegionGrid:
    """
    Derive the region grid for an image.

    Leftover pixels at the far edges never form a partial cell.

    Raises:
        InvalidGeometryError: If cell_size <= 0 or the grid is empty on an axis
    """
    if cell_size <= 0:
        raise InvalidGeometryError(f"cell_size must be positive, got {cell_size}")
    cells_x = width // cell_size
    cells_y = height // cell_size
    if cells_x == 0 or cells_y == 0:
        raise InvalidGeometryError(
            f"Image of {width}x{height} yields an empty {cells_x}x{cells_y} grid "
            f"for cell_size={cell_size}"
        )
    return RegionGrid(cells_x=cells_x, cells_y=cells_y, cell_size=cell_size)


def bilinear_weights(coords: np.ndarray, cell_size: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Map pixel coordinates along one axis to their lower cell and interpolation weights.

    Args:
        coords: Integer pixel coordinates
        cell_size: Region cell size in pixels

    Returns:
        Tuple of (lower_cell, w1, w2); the upper cell is lower_cell + 1
        and w1 + w2 == 1 for every coordinate
    """
    pos = (np.asarray(coords, dtype=np.float64) + 0.5) / float(cell_size) - 0.5
    lower = np.floor(pos)
    w2 = pos - lower
    w1 = 1.0 - w2
    return lower.astype(np.int64), w1, w2


def compute_lbp_codes(gray: np.ndarray) -> np.ndarray:
    """
    8-bit neighbour codes for every interior pixel.

    Bit k is set when neighbour k (see NEIGHBOR_OFFSETS) is strictly
    brighter than the centre pixel.

    Returns:
        uint8 array of shape (height - 2, width - 2)
    """
    h, w = gray.shape
    center = gray[1:h - 1, 1:w - 1]
    codes = np.zeros(center.shape, dtype=np.uint8)
    for bit, (dy, dx) in enumerate(NEIGHBOR_OFFSETS):
        neighbor = gray[1 + dy:h - 1 + dy, 1 + dx:w - 1 + dx]
        codes |= (neighbor > center).astype(np.uint8) << bit
    return codes


def accumulate_lbp_histograms(gray: np.ndarray, grid: RegionGrid, table: np.ndarray) -> np.ndarray:
    """
    Bilinearly accumulate the mapped LBP bins of every interior pixel.

    Returns:
        Raw float64 counts of shape (N_BINS, cells_y, cells_x)
    """
    h, w = gray.shape
    hist = np.zeros((N_BINS, grid.cells_y, grid.cells_x), dtype=np.float64)

    ys = np.arange(1, h - 1)
    xs = np.arange(1, w - 1)
    ry1, wy1, wy2 = bilinear_weights(ys, grid.cell_size)
    rx1, wx1, wx2 = bilinear_weights(xs, grid.cell_size)

    # Pixels whose lower cell lies past the grid are skipped outright.
    keep_y = ry1 < grid.cells_y
    keep_x = rx1 < grid.cells_x

    bins = table[compute_lbp_codes(gray)][np.ix_(keep_y, keep_x)].astype(np.int64)
    ry1, wy1, wy2 = ry1[keep_y], wy1[keep_y], wy2[keep_y]
    rx1, wx1, wx2 = rx1[keep_x], wx1[keep_x], wx2[keep_x]

    corners = [
        (ry1, wy1, rx1, wx1),
        (ry1, wy1, rx1 + 1, wx2),
        (ry1 + 1, wy2, rx1, wx1),
        (ry1 + 1, wy2, rx1 + 1, wx2),
    ]
    for ry, wy, rx, wx in corners:
        valid_y = (ry >= 0) & (ry < grid.cells_y)
        valid_x = (rx >= 0) & (rx < grid.cells_x)
        if not valid_y.any() or not valid_x.any():
            continue
        cy, cx = np.meshgrid(ry[valid_y], rx[valid_x], indexing="ij")
        weights = np.outer(wy[valid_y], wx[valid_x])
        np.add.at(hist, (bins[np.ix_(valid_y, valid_x)], cy, cx), weights)
    return hist


def extract_lbp_grid(gray: np.ndarray, cell_size: int, table: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Uniform LBP descriptor: one normalized 58-bin histogram per region cell.

    Args:
        gray: 2D uint8 grayscale image (height, width); never modified
        cell_size: Region cell size in pixels
        table: Code -> bin lookup table (defaults to the shared uniform table)

    Returns:
        Flat float64 vector of length 58 * cells_x * cells_y, bin-major

    Raises:
        InvalidGeometryError: On a non-2D image, an image smaller than 3x3,
                              or a cell size that yields an empty grid
    """
    gray = np.asarray(gray)
    if gray.ndim != 2:
        raise InvalidGeometryError(f"Expected a 2D grayscale image, got shape {gray.shape}")
    h, w = gray.shape
    if h < 3 or w < 3:
        raise InvalidGeometryError(f"Image must be at least 3x3, got {w}x{h}")

    grid = compute_region_grid(h, w, int(cell_size))
    if table is None:
        table = build_uniform_pattern_table()

    hist = accumulate_lbp_histograms(gray, grid, table)
    hellinger_normalize(hist)
    return hist.reshape(-1)

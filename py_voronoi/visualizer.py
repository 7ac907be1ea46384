"""Static rendering of Voronoi diagrams with matplotlib."""

from pathlib import Path
from typing import Dict, Optional, Union

import matplotlib.pyplot as plt
import numpy as np
import structlog
from shapely.geometry import Polygon, box

from .config import settings
from .core.diagram import Diagram

logger = structlog.get_logger()


def cell_polygons(diagram: Diagram) -> Dict[int, np.ndarray]:
    """
    Real cells' polygons clipped to the visible plane.

    Args:
        diagram: Diagram to extract polygons from

    Returns:
        Mapping of cell id to an (n, 2) array of polygon coordinates
        (closed ring, first point repeated at the end)
    """
    plane = box(0.0, 0.0, diagram.size(), diagram.size())
    polygons = {}
    for cell in diagram.real_cells():
        vertices = cell.vertices()
        if len(vertices) < 3:
            continue
        clipped = Polygon(vertices).intersection(plane)
        if clipped.is_empty or clipped.geom_type != "Polygon":
            logger.debug("Cell not drawable", cell=cell.id, geometry=clipped.geom_type)
            continue
        polygons[cell.id] = np.asarray(clipped.exterior.coords)
    return polygons


def render_diagram(diagram: Diagram, output: Union[str, Path],
                   show_generators: bool = True, dpi: Optional[int] = None,
                   title: Optional[str] = None) -> Path:
    """
    Draw a diagram's cells and generators and save the image.

    The image format follows the output file's extension (png, svg, pdf...).

    Returns:
        Path of the written image
    """
    output = Path(output)
    size = diagram.size()
    inches = settings.render_size_inches

    fig, ax = plt.subplots(figsize=(inches, inches))
    try:
        ax.set_xlim(0, size)
        # Screen convention: origin in the top-left corner
        ax.set_ylim(size, 0)
        ax.set_aspect("equal")
        ax.set_xticks([])
        ax.set_yticks([])

        polygons = cell_polygons(diagram)
        for coords in polygons.values():
            ax.fill(coords[:, 0], coords[:, 1], facecolor="#dde8f3", alpha=0.6)
            ax.plot(coords[:, 0], coords[:, 1], color="#2b4b6f", linewidth=0.8)

        if show_generators:
            generators = diagram.generators()
            if len(generators):
                ax.scatter(generators[:, 0], generators[:, 1], c="#b22222", s=6, zorder=5)

        if title:
            ax.set_title(title, fontsize=10)

        fig.savefig(output, dpi=dpi or settings.render_dpi, bbox_inches="tight")
    finally:
        plt.close(fig)

    logger.info("Diagram rendered", path=str(output), cells=len(polygons))
    return output

import logging
import math
import os
from typing import Dict, List, Sequence

import matplotlib

matplotlib.use("Agg")  # Must be set before importing pyplot
import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402

from pgibbs.models import ExperimentRecord, NodeSummary  # noqa: E402

logger = logging.getLogger("pgibbs.visualization")

# tag -> per-node scalar
DIAGNOSTICS = (
    ("pred", lambda s: s.expectation),
    ("updates", lambda s: s.updates),
    ("unsampled", lambda s: 1.0 if s.updates == 0 else 0.0),
    ("final_sample", lambda s: s.assignment),
    ("heights", lambda s: s.height),
)


def make_filename(tag: str, extension: str, experiment_id: int) -> str:
    return f"{tag}{experiment_id}{extension}"


def raster_side(node_count: int) -> int:
    """Side of the square raster: floor(sqrt(node_count))."""
    return math.isqrt(node_count)


def project_nodes(values: Sequence[float], rows: int) -> np.ndarray:
    """Row-major projection of per-node values onto a ``rows x rows`` raster.

    Values past ``rows * rows`` are dropped.
    """
    img = np.zeros(rows * rows, dtype=float)
    n = min(len(values), img.size)
    img[:n] = np.asarray(values[:n], dtype=float)
    return img.reshape(rows, rows)


def apply_calibration_pixels(img: np.ndarray, arity0: int) -> np.ndarray:
    """Force pixel 0 to 0 and pixel 1 to ``arity0 - 1``.

    This pins the colour scale of expectation images to the full value range
    of node 0. The two pixels no longer carry node data. Pixels missing from
    rasters smaller than 2 pixels are left out.
    """
    flat = img.reshape(-1)
    if flat.size > 0:
        flat[0] = 0
    if flat.size > 1:
        flat[1] = arity0 - 1
    return img


def save_pgm(img: np.ndarray, filepath: str) -> None:
    """Binary 8-bit greymap, values rescaled min..max onto 0..255."""
    lo, hi = float(img.min()), float(img.max())
    if hi > lo:
        scaled = (img - lo) * (255.0 / (hi - lo))
    else:
        scaled = np.zeros_like(img)
    data = np.clip(np.rint(scaled), 0, 255).astype(np.uint8)
    rows, cols = data.shape
    with open(filepath, "wb") as f:
        f.write(f"P5\n{cols} {rows}\n255\n".encode("ascii"))
        f.write(data.tobytes())


def save_raster(img: np.ndarray, filepath: str) -> None:
    _ensure_dir(os.path.dirname(filepath))
    if filepath.endswith(".pgm"):
        save_pgm(img, filepath)
    else:
        plt.imsave(filepath, img, cmap="gray")


class DiagnosticRenderer:
    """Writes the five per-checkpoint diagnostic rasters."""

    def __init__(self, output_dir: str = ".", extension: str = ".pgm"):
        self.output_dir = output_dir
        self.extension = extension

    def rasters(self, summaries: List[NodeSummary]) -> Dict[str, np.ndarray]:
        rows = raster_side(len(summaries))
        images: Dict[str, np.ndarray] = {}
        for tag, value_of in DIAGNOSTICS:
            images[tag] = project_nodes([value_of(s) for s in summaries], rows)
        if summaries:
            apply_calibration_pixels(images["pred"], summaries[0].arity)
        return images

    def render(self, summaries: List[NodeSummary], experiment_id: int) -> Dict[str, str]:
        rows = raster_side(len(summaries))
        logger.info("Rows: %d", rows)
        if rows == 0:
            logger.warning("Empty model, no diagnostic images for experiment %d", experiment_id)
            return {}
        paths: Dict[str, str] = {}
        for tag, img in self.rasters(summaries).items():
            path = os.path.join(self.output_dir, make_filename(tag, self.extension, experiment_id))
            save_raster(img, path)
            paths[tag] = path
        return paths


def save_convergence_plot(records: List[ExperimentRecord], filepath: str) -> None:
    """Plot log-likelihood against cumulative runtime, one marker per checkpoint."""
    fig, ax = plt.subplots(figsize=(10, 6))
    times = [r.run_so_far for r in records]
    logliks = [r.loglik for r in records]

    ax.plot(
        times,
        logliks,
        "b-o",
        linewidth=2,
        markersize=6,
        markerfacecolor="white",
        markeredgecolor="blue",
        markeredgewidth=2,
    )

    ax.set_xlabel("Runtime [s]", fontsize=12)
    ax.set_ylabel("Unnormalized log-likelihood", fontsize=12)
    ax.set_title("Convergence", fontsize=14, fontweight="bold")
    ax.grid(True, alpha=0.3)

    if len(records) > 1:
        ax.annotate(
            f"Start: {logliks[0]:.2f}",
            xy=(times[0], logliks[0]),
            xytext=(10, 10),
            textcoords="offset points",
            bbox=dict(boxstyle="round,pad=0.3", facecolor="yellow", alpha=0.7),
            arrowprops=dict(arrowstyle="->", connectionstyle="arc3,rad=0"),
        )

        ax.annotate(
            f"Last: {logliks[-1]:.2f}",
            xy=(times[-1], logliks[-1]),
            xytext=(10, -20),
            textcoords="offset points",
            bbox=dict(boxstyle="round,pad=0.3", facecolor="lightgreen", alpha=0.7),
            arrowprops=dict(arrowstyle="->", connectionstyle="arc3,rad=0"),
        )

    fig.tight_layout()
    _ensure_dir(os.path.dirname(filepath))
    fig.savefig(filepath, dpi=180, bbox_inches="tight")
    plt.close(fig)
    logger.info("Convergence plot saved as: %s", filepath)


def _ensure_dir(path: str):
    if path:
        os.makedirs(path, exist_ok=True)

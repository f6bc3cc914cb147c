"""Settings for loading datasets and for running the training pipeline."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class LoadConfig:
    """How a dataset is read from disk."""

    max_frames: Optional[int] = None
    """Largest number of frames to load."""

    max_resolution: int = 1920
    """Images larger than this on either side are scaled down to fit."""

    eval_split_every: Optional[int] = None
    """Put every nth image into the evaluation split."""

    subsample_frames: Optional[int] = None
    """Load only every nth frame."""

    subsample_points: Optional[int] = None
    """Keep only every nth point of the initial structure-from-motion data."""


@dataclass
class PipelineConfig:
    """How the training pipeline runs, evaluates and exports."""

    seed: int = 42
    """Random seed."""

    start_iter: int = 0
    """Iteration to resume from."""

    eval_every: int = 1000
    """Evaluate every this many steps."""

    eval_save_to_disk: bool = False
    """Write rendered evaluation images below ``export_path``."""

    export_every: int = 5000
    """Export every this many steps."""

    export_path: str = "."
    """Directory for exported files, relative to the working directory if not absolute."""

    export_name: str = "export_{iter}.ply"
    """File name of an exported splat file; ``{iter}`` is replaced by the step."""
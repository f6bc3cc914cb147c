"""Loading a COLMAP reconstruction into views and an initial point cloud."""

import logging
import math
import posixpath
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterator, Optional

import numpy as np

from .colmap import InputType, read_input
from .config import LoadConfig
from .errors import FormatError
from .images import ImageFile
from .scene import Dataset, SceneView, ViewCamera

logger = logging.getLogger(__name__)

SH_C0 = 0.2820948
"""Zeroth-band spherical harmonic constant."""


@dataclass(frozen=True)
class ParseMetadata:
    """What is known about a batch of splats read from a dataset."""

    up_axis: Optional[tuple]
    total_splats: int
    frame_count: int
    current_frame: int


@dataclass
class SplatMessage:
    """Initial splats: centres (N, 3) and zeroth-band SH colours (N, 3)."""

    meta: ParseMetadata
    means: np.ndarray
    sh_dc: np.ndarray


def rgb_to_sh(rgb):
    """Zeroth-band spherical harmonic coefficients for colours in [0, 1]."""
    return (np.asarray(rgb, dtype=np.float64) - 0.5) / SH_C0


def focal_to_fov(focal, pixels):
    """Field of view in radians for a focal length and image size in pixels."""
    return 2.0 * math.atan(pixels / (2.0 * focal))


def _as_path(path):
    return path if isinstance(path, PurePosixPath) else PurePosixPath(str(path).replace("\\", "/"))


def _clean(path):
    return PurePosixPath(posixpath.normpath(str(path)))


def _ends_with(path, name):
    wanted = [part.lower() for part in PurePosixPath(name).parts]
    parts = [part.lower() for part in path.parts]
    return bool(wanted) and parts[-len(wanted):] == wanted


def _files_ending_in(files, name):
    return (path for path in files if _ends_with(path, name))


def find_mask_path(files, path):
    """The mask that belongs to an image: same stem, in a ``masks`` sibling directory."""
    path = _as_path(path)
    stem = path.stem
    if not stem:
        return None
    masks_dir = _clean(_clean(path.parent).parent / "masks")
    for candidate in map(_as_path, files):
        if candidate.stem == stem and _clean(candidate.parent) == masks_dir:
            return candidate
    return None


def find_image_and_mask(files, name):
    """Find the image called ``name`` among ``files`` and its mask, if any.

    Masks are never taken as images; among several candidates the first in
    path order wins. Returns ``(image_path, mask_path_or_None)`` or None.
    """
    files = [_as_path(path) for path in files]
    name = name[1:] if name.startswith("/") else name
    candidates = {path: find_mask_path(files, path) for path in _files_ending_in(files, name)}
    for mask in [mask for mask in candidates.values() if mask is not None]:
        candidates.pop(mask, None)
    if not candidates:
        return None
    best = min(candidates, key=lambda path: path.parts)
    return best, candidates[best]


def _list_files(root):
    return sorted(
        (PurePosixPath(path.relative_to(root).as_posix()) for path in root.rglob("*") if path.is_file()),
        key=lambda path: path.parts,
    )


def _on_disk(root, relative):
    return root.joinpath(*relative.parts)


def _read(root, relative, input_type, binary):
    try:
        with open(_on_disk(root, relative), "rb") as stream:
            return read_input(stream, input_type, binary)
    except OSError as err:
        raise FormatError(f"File IO error: {err}") from err


def _locate_reconstruction(files):
    for suffix, binary in (("bin", True), ("txt", False)):
        found = next(_files_ending_in(files, f"cameras.{suffix}"), None)
        if found is not None:
            return found.parent / f"cameras.{suffix}", found.parent / f"images.{suffix}", binary
    raise FormatError("No camera file could be found")


def _quat_matrix(x, y, z, w):
    return np.array(
        [
            [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
            [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
            [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
        ]
    )


def _view_camera(camera, info):
    fx, fy = camera.focal()
    fov_x = focal_to_fov(fx, camera.width)
    fov_y = focal_to_fov(fy, camera.height)
    cx, cy = camera.principal_point()
    center_uv = (cx / camera.width, cy / camera.height)

    quat = np.asarray(info.quat, dtype=np.float64)
    norm = np.linalg.norm(quat)
    if norm == 0.0:
        raise FormatError(f"Invalid rotation for image {info.name}")
    x, y, z, w = quat / norm
    world_to_cam = _quat_matrix(x, y, z, w)
    position = -world_to_cam.T @ np.asarray(info.tvec, dtype=np.float64)
    return ViewCamera(tuple(position), (-x, -y, -z, w), fov_x, fov_y, center_uv)


def _create_views(root, files, cameras, ordered_images, config):
    train_views = []
    eval_views = []
    step = config.subsample_frames or 1
    selected = ordered_images[: config.max_frames][::step]
    for index, info in enumerate(selected):
        camera = cameras.get(info.camera_id)
        if camera is None:
            raise FormatError(f"Camera {info.camera_id} of image {info.name} not found")
        view_camera = _view_camera(camera, info)

        found = find_image_and_mask(files, info.name)
        if found is None:
            logger.warning("Image not found: %s", info.name)
            continue
        img_path, mask_path = found
        image = ImageFile.open(
            _on_disk(root, img_path),
            None if mask_path is None else _on_disk(root, mask_path),
            config.max_resolution,
        )
        view = SceneView(image=image, camera=view_camera)

        if config.eval_split_every and index % config.eval_split_every == 0:
            eval_views.append(view)
        else:
            train_views.append(view)
    return train_views, eval_views


def _initial_splats(root, files, config) -> Iterator[SplatMessage]:
    points_path = next(_files_ending_in(files, "points3d.bin"), None) or next(
        _files_ending_in(files, "points3d.txt"), None
    )
    if points_path is None:
        raise FormatError("Could not find points file")
    logger.info("Located points file at: %s", points_path)

    points = _read(root, points_path, InputType.POINTS3D, points_path.suffix.lower() == ".bin")
    if not points:
        return
    logger.info("Starting from colmap points %d", len(points))

    kept = list(points.values())[:: config.subsample_points or 1]
    means = np.array([point.xyz for point in kept], dtype=np.float64)
    colors = rgb_to_sh(np.array([point.rgb for point in kept], dtype=np.float64) / 255.0)
    yield SplatMessage(
        meta=ParseMetadata(up_axis=None, total_splats=len(kept), frame_count=1, current_frame=0),
        means=means,
        sh_dc=colors,
    )


def load_dataset(root, config=None):
    """Load a COLMAP dataset from a directory.

    Returns ``(splat_stream, dataset)``. The stream is a generator that reads
    the sparse points only when iterated.
    """
    root = Path(root)
    if not root.is_dir():
        raise FormatError(f"Dataset directory {root} not found")
    config = config or LoadConfig()
    files = _list_files(root)

    cam_path, img_path, binary = _locate_reconstruction(files)
    logger.info("Located cameras file at: %s", cam_path)
    logger.info("Located images file at: %s", img_path)
    cameras = _read(root, cam_path, InputType.CAMERAS, binary)
    images = _read(root, img_path, InputType.IMAGES, binary)
    ordered = sorted(images.values(), key=lambda info: info.name)

    train_views, eval_views = _create_views(root, files, cameras, ordered, config)
    return _initial_splats(root, files, config), Dataset.from_views(train_views, eval_views)
"""Camera views of a scene, their bounds, and a background batch loader."""

import math
import os
import queue
import random
import threading
from dataclasses import dataclass
from typing import NamedTuple, Optional

import numpy as np

from . import linalg
from .images import MAX_CACHE_MB, ImageCache, _has_alpha, view_to_sample_image

_IMAGE_QUEUE = 32
_BATCH_QUEUE = 2
_POLL_SECONDS = 0.05

_OFFSETS = np.array(
    [(x, y, 1.0) for x in (-1.0, 0.0, 1.0) for y in (-1.0, 0.0, 1.0)]
)


class _Bounds(NamedTuple):
    center: np.ndarray
    extent: np.ndarray

    @classmethod
    def from_min_max(cls, low, high):
        low = np.asarray(low, dtype=np.float64)
        high = np.asarray(high, dtype=np.float64)
        with np.errstate(invalid="ignore"):
            return cls((low + high) / 2.0, (high - low) / 2.0)


def _affine(matrix):
    m = np.asarray(matrix, dtype=np.float64)
    if m.shape == (3, 4):
        m = np.vstack([m, [0.0, 0.0, 0.0, 1.0]])
    if m.shape != (4, 4):
        raise ValueError(f"expected a 4x4 or 3x4 transform, got shape {m.shape}")
    return m


def _transform_points(matrix, points):
    return points @ matrix[:3, :3].T + matrix[:3, 3]


@dataclass(frozen=True)
class ViewCamera:
    """Pose and intrinsics of one view; ``rotation`` is a quaternion (x, y, z, w)."""

    position: tuple
    rotation: tuple
    fov_x: float
    fov_y: float
    center_uv: tuple = (0.5, 0.5)

    def __post_init__(self):
        position = tuple(float(v) for v in self.position)
        rotation = tuple(float(v) for v in self.rotation)
        center_uv = tuple(float(v) for v in self.center_uv)
        if len(position) != 3:
            raise ValueError("position must have three components")
        if len(rotation) != 4:
            raise ValueError("rotation must be a quaternion of four components")
        if len(center_uv) != 2:
            raise ValueError("center_uv must have two components")
        object.__setattr__(self, "position", position)
        object.__setattr__(self, "rotation", rotation)
        object.__setattr__(self, "center_uv", center_uv)

    def _rotation_matrix(self):
        x, y, z, w = self.rotation
        return np.array(
            [
                [1 - 2 * (y * y + z * z), 2 * (x * y - w * z), 2 * (x * z + w * y)],
                [2 * (x * y + w * z), 1 - 2 * (x * x + z * z), 2 * (y * z - w * x)],
                [2 * (x * z - w * y), 2 * (y * z + w * x), 1 - 2 * (x * x + y * y)],
            ]
        )

    def local_to_world(self):
        """The 4x4 camera-to-world transform."""
        matrix = np.eye(4)
        matrix[:3, :3] = self._rotation_matrix()
        matrix[:3, 3] = self.position
        return matrix


@dataclass(frozen=True)
class SceneView:
    """An image together with the camera that took it."""

    image: object
    camera: ViewCamera


class Scene:
    """An ordered, immutable collection of views."""

    def __init__(self, views):
        self.views = tuple(views)

    def __len__(self):
        return len(self.views)

    def bounds(self):
        """Box around the camera positions, as ``center`` and half ``extent``."""
        return self.adjusted_bounds(0.0, 0.0)

    def adjusted_bounds(self, cam_near, cam_far):
        """Box around the points at the near and far distance along each view axis."""
        low = np.full(3, np.inf)
        high = np.full(3, -np.inf)
        if self.views:
            positions = np.array([view.camera.position for view in self.views])
            forwards = np.array(
                [view.camera._rotation_matrix()[:, 2] for view in self.views]
            )
            points = np.concatenate(
                [positions + forwards * cam_near, positions + forwards * cam_far]
            )
            low = points.min(axis=0)
            high = points.max(axis=0)
        return _Bounds.from_min_max(low, high)

    def get_nearest_view(self, reference):
        """Index of the view whose pose is closest to a camera-to-world transform."""
        if not self.views:
            return None
        reference_points = _transform_points(_affine(reference), _OFFSETS)
        penalties = [
            float(
                np.linalg.norm(
                    _transform_points(view.camera.local_to_world(), _OFFSETS)
                    - reference_points,
                    axis=1,
                ).sum()
            )
            for view in self.views
        ]
        return min(range(len(penalties)), key=penalties.__getitem__)

    def estimate_extent(self):
        """Rough size of the scene from its cameras, or None with fewer than 5 views."""
        if len(self.views) < 5:
            return None
        smallest, second = sorted(self.bounds().extent * 2.0)[:2]
        return math.hypot(smallest, second)


@dataclass
class Dataset:
    """Training views and optional evaluation views."""

    train: Scene
    eval_scene: Optional[Scene] = None

    @classmethod
    def from_views(cls, train_views, eval_views):
        eval_views = list(eval_views)
        return cls(Scene(train_views), Scene(eval_views) if eval_views else None)

    def estimate_up(self):
        """Estimated up direction of the scene from all camera poses."""
        views = self.train.views
        if self.eval_scene is not None:
            views = views + self.eval_scene.views
        return linalg.estimate_up(
            [view.camera.local_to_world() for view in views],
            [view.camera.position for view in views],
        )


@dataclass
class SceneBatch:
    """One training sample: a float image in [0, 1] of shape (H, W, C)."""

    img: np.ndarray
    alpha_is_mask: bool
    camera: ViewCamera

    def has_alpha(self):
        return self.img.shape[2] == 4


def _to_float_array(image):
    mode = "RGBA" if _has_alpha(image) else "RGB"
    return np.asarray(image.convert(mode), dtype=np.float32) / np.float32(255.0)


class SceneLoader:
    """Loads views in shuffled order on background threads, one batch at a time."""

    def __init__(self, scene, seed, workers=None):
        views = scene.views
        if not views:
            raise ValueError("Need at least one view in dataset")
        if workers is None:
            workers = min(os.cpu_count() or 8, _IMAGE_QUEUE)
        if workers < 1:
            raise ValueError("workers must be at least 1")

        self._stop = threading.Event()
        self._error = None
        self._samples = queue.Queue(_IMAGE_QUEUE)
        self._batches = queue.Queue(_BATCH_QUEUE)
        cache = ImageCache(MAX_CACHE_MB, len(views))

        self._threads = [
            threading.Thread(
                target=self._load_views,
                args=(views, cache, random.Random(seed + i)),
                daemon=True,
            )
            for i in range(workers)
        ]
        self._threads.append(threading.Thread(target=self._convert, daemon=True))
        for thread in self._threads:
            thread.start()

    def _put(self, target, item):
        while not self._stop.is_set():
            try:
                target.put(item, timeout=_POLL_SECONDS)
                return True
            except queue.Full:
                continue
        return False

    def _load_views(self, views, cache, rng):
        order = []
        while not self._stop.is_set():
            if not order:
                order = list(range(len(views)))
                rng.shuffle(order)
            index = order.pop()
            view = views[index]
            try:
                sample = cache.try_get(index)
                if sample is None:
                    sample = view_to_sample_image(
                        view.image.load(), view.image.is_masked()
                    )
                    cache.insert(index, sample)
            except Exception as err:  # handed to the consumer in next_batch
                self._put(self._samples, err)
                return
            item = (sample, view.image.is_masked(), view.camera)
            if not self._put(self._samples, item):
                return

    def _convert(self):
        while not self._stop.is_set():
            try:
                item = self._samples.get(timeout=_POLL_SECONDS)
            except queue.Empty:
                continue
            if isinstance(item, Exception):
                self._put(self._batches, item)
                return
            sample, alpha_is_mask, camera = item
            batch = SceneBatch(_to_float_array(sample), alpha_is_mask, camera)
            if not self._put(self._batches, batch):
                return

    def next_batch(self):
        """Block until the next batch is ready and return it."""
        if self._error is not None:
            raise self._error
        if self._stop.is_set():
            raise RuntimeError("scene loader is closed")
        item = self._batches.get()
        if isinstance(item, Exception):
            self._error = item
            raise item
        return item

    def close(self):
        """Stop the background threads."""
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout=1.0)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
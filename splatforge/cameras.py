"""COLMAP camera models and intrinsics."""

from dataclasses import dataclass
from enum import Enum


class CameraModel(Enum):
    """A COLMAP camera model, named as in COLMAP's text files."""

    SIMPLE_PINHOLE = (0, 3, True)
    PINHOLE = (1, 4, False)
    SIMPLE_RADIAL = (2, 4, True)
    RADIAL = (3, 5, True)
    OPENCV = (4, 8, False)
    OPENCV_FISHEYE = (5, 8, False)
    FULL_OPENCV = (6, 12, False)
    FOV = (7, 5, False)
    SIMPLE_RADIAL_FISHEYE = (8, 4, True)
    RADIAL_FISHEYE = (9, 5, True)
    THIN_PRISM_FISHEYE = (10, 12, False)

    def __init__(self, model_id, param_count, single_focal):
        self.model_id = model_id
        self._param_count = param_count
        self._single_focal = single_focal

    @classmethod
    def from_id(cls, model_id):
        """Return the model with this numeric id, or None if there is none."""
        return next((model for model in cls if model.model_id == model_id), None)

    @classmethod
    def from_name(cls, name):
        """Return the model with this COLMAP name, or None if there is none."""
        return cls.__members__.get(name)

    def num_params(self):
        """Number of intrinsic parameters the model stores."""
        return self._param_count

    @property
    def single_focal(self):
        """True when the model has one focal length shared by both axes."""
        return self._single_focal


@dataclass(frozen=True)
class Camera:
    """Intrinsics of one COLMAP camera."""

    id: int
    model: CameraModel
    width: int
    height: int
    params: tuple

    def focal(self):
        """Focal lengths (fx, fy) in pixels."""
        fx = self.params[0]
        fy = self.params[0 if self.model.single_focal else 1]
        return fx, fy

    def principal_point(self):
        """Principal point (cx, cy) in pixels."""
        offset = 1 if self.model.single_focal else 2
        return self.params[offset], self.params[offset + 1]
"""Readers for COLMAP sparse reconstructions in binary and text form."""

import struct
from dataclasses import dataclass, field
from enum import Enum

from .cameras import Camera, CameraModel
from .errors import FormatError

_I32_RANGE = (-(2**31), 2**31 - 1)
_I64_RANGE = (-(2**63), 2**63 - 1)
_U64_RANGE = (0, 2**64 - 1)
_U8_RANGE = (0, 255)


@dataclass
class ColmapImage:
    """A registered image: pose (world to camera) and its 2D observations.

    ``quat`` is stored as (x, y, z, w).
    """

    tvec: tuple
    quat: tuple
    camera_id: int
    name: str
    xys: list = field(default_factory=list)
    point3d_ids: list = field(default_factory=list)


@dataclass
class Point3D:
    """A reconstructed point with its colour, error and track."""

    xyz: tuple
    rgb: tuple
    error: float
    image_ids: list = field(default_factory=list)
    point2d_idxs: list = field(default_factory=list)


class InputType(Enum):
    """Which of the three reconstruction files is being read."""

    POINTS3D = 0
    IMAGES = 1
    CAMERAS = 2


class _BinaryReader:
    def __init__(self, stream):
        self._stream = stream

    def _take(self, size):
        data = self._stream.read(size)
        if len(data) < size:
            raise FormatError("Unexpected end of file")
        return data

    def _unpack(self, fmt):
        layout = struct.Struct(fmt)
        return layout.unpack(self._take(layout.size))

    def u8(self):
        return self._unpack("<B")[0]

    def i32(self):
        return self._unpack("<i")[0]

    def i64(self):
        return self._unpack("<q")[0]

    def u64(self):
        return self._unpack("<Q")[0]

    def f64(self):
        return self._unpack("<d")[0]

    def f64s(self, count):
        return self._unpack(f"<{count}d")

    def cstring(self):
        chunks = bytearray()
        while True:
            byte = self._stream.read(1)
            if not byte:
                raise FormatError("Unexpected end of file in image name")
            if byte == b"\0":
                break
            chunks += byte
        try:
            return chunks.decode("utf-8")
        except UnicodeDecodeError as err:
            raise FormatError(f"Invalid image name: {err}") from None


def _lines(stream):
    for raw in stream:
        yield raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else raw


def _int(token, bounds):
    try:
        value = int(token)
    except ValueError:
        raise FormatError("Parse error") from None
    low, high = bounds
    if not low <= value <= high:
        raise FormatError("Parse error")
    return value


def _float(token):
    try:
        return float(token)
    except ValueError:
        raise FormatError("Parse error") from None


def read_cameras_binary(stream):
    """Read ``cameras.bin`` into a dict of camera id to Camera."""
    reader = _BinaryReader(stream)
    cameras = {}
    for _ in range(reader.u64()):
        camera_id = reader.i32()
        model_id = reader.i32()
        width = reader.u64()
        height = reader.u64()
        model = CameraModel.from_id(model_id)
        if model is None:
            raise FormatError("Invalid camera model")
        params = reader.f64s(model.num_params())
        cameras[camera_id] = Camera(camera_id, model, width, height, tuple(params))
    return cameras


def read_cameras_text(stream):
    """Read ``cameras.txt`` into a dict of camera id to Camera."""
    cameras = {}
    for line in _lines(stream):
        if line.startswith("#"):
            continue
        parts = line.split()
        if len(parts) < 4:
            raise FormatError("Invalid camera data")
        camera_id = _int(parts[0], _I32_RANGE)
        model = CameraModel.from_name(parts[1])
        if model is None:
            raise FormatError("Invalid camera model")
        width = _int(parts[2], _U64_RANGE)
        height = _int(parts[3], _U64_RANGE)
        params = tuple(_float(token) for token in parts[4:])
        if len(params) != model.num_params():
            raise FormatError("Invalid number of camera parameters")
        cameras[camera_id] = Camera(camera_id, model, width, height, params)
    return cameras


def read_images_binary(stream):
    """Read ``images.bin`` into a dict of image id to ColmapImage."""
    reader = _BinaryReader(stream)
    images = {}
    for _ in range(reader.u64()):
        image_id = reader.i32()
        w, x, y, z = reader.f64s(4)
        tvec = reader.f64s(3)
        camera_id = reader.i32()
        name = reader.cstring()
        xys = []
        point3d_ids = []
        for _ in range(reader.u64()):
            xys.append(reader.f64s(2))
            point3d_ids.append(reader.i64())
        images[image_id] = ColmapImage(
            tvec=tuple(tvec),
            quat=(x, y, z, w),
            camera_id=camera_id,
            name=name,
            xys=xys,
            point3d_ids=point3d_ids,
        )
    return images


def read_images_text(stream):
    """Read ``images.txt`` into a dict of image id to ColmapImage.

    Every image takes two lines: the pose line and the observation line,
    which may be empty.
    """
    images = {}
    lines = _lines(stream)
    for line in lines:
        if not line.strip() or line.startswith("#"):
            continue
        elems = line.split()
        if len(elems) < 10:
            raise FormatError("Invalid image data")
        image_id = _int(elems[0], _I32_RANGE)
        w, x, y, z = (_float(token) for token in elems[1:5])
        tvec = tuple(_float(token) for token in elems[5:8])
        camera_id = _int(elems[8], _I32_RANGE)
        name = elems[9]

        tokens = next(lines, "").split()
        if len(tokens) % 3:
            raise FormatError("Invalid image point data")
        xys = []
        point3d_ids = []
        triples = iter(tokens)
        for px, py, pid in zip(triples, triples, triples):
            xys.append((_float(px), _float(py)))
            point3d_ids.append(_int(pid, _I64_RANGE))

        images[image_id] = ColmapImage(
            tvec=tvec,
            quat=(x, y, z, w),
            camera_id=camera_id,
            name=name,
            xys=xys,
            point3d_ids=point3d_ids,
        )
    return images


def read_points_binary(stream):
    """Read ``points3D.bin`` into a dict of point id to Point3D."""
    reader = _BinaryReader(stream)
    points = {}
    for _ in range(reader.u64()):
        point_id = reader.i64()
        xyz = reader.f64s(3)
        rgb = (reader.u8(), reader.u8(), reader.u8())
        error = reader.f64()
        image_ids = []
        point2d_idxs = []
        for _ in range(reader.u64()):
            image_ids.append(reader.i32())
            point2d_idxs.append(reader.i32())
        points[point_id] = Point3D(tuple(xyz), rgb, error, image_ids, point2d_idxs)
    return points


def read_points_text(stream):
    """Read ``points3D.txt`` into a dict of point id to Point3D."""
    points = {}
    for line in _lines(stream):
        if line.startswith("#"):
            continue
        parts = line.split()
        if len(parts) < 8:
            raise FormatError("Invalid point3D data")
        point_id = _int(parts[0], _I64_RANGE)
        xyz = tuple(_float(token) for token in parts[1:4])
        rgb = tuple(_int(token, _U8_RANGE) for token in parts[4:7])
        error = _float(parts[7])
        track = parts[8:]
        if len(track) % 2:
            raise FormatError("Invalid point3D track data")
        pairs = iter(track)
        image_ids = []
        point2d_idxs = []
        for image_id, point2d_idx in zip(pairs, pairs):
            image_ids.append(_int(image_id, _I32_RANGE))
            point2d_idxs.append(_int(point2d_idx, _I32_RANGE))
        points[point_id] = Point3D(xyz, rgb, error, image_ids, point2d_idxs)
    return points


_READERS = {
    (InputType.CAMERAS, True): read_cameras_binary,
    (InputType.CAMERAS, False): read_cameras_text,
    (InputType.IMAGES, True): read_images_binary,
    (InputType.IMAGES, False): read_images_text,
    (InputType.POINTS3D, True): read_points_binary,
    (InputType.POINTS3D, False): read_points_text,
}


def read_input(stream, input_type, binary):
    """Read one reconstruction file of the given type and encoding."""
    return _READERS[(InputType(input_type), bool(binary))](stream)
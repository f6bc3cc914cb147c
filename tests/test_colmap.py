import io
import struct

import pytest

from splatforge.cameras import CameraModel
from splatforge.colmap import (
    ColmapImage,
    InputType,
    Point3D,
    read_cameras_binary,
    read_cameras_text,
    read_images_binary,
    read_images_text,
    read_input,
    read_points_binary,
    read_points_text,
)
from splatforge.errors import FormatError


def _camera_record(cam_id, model_id, width, height, params):
    return struct.pack("<iiQQ", cam_id, model_id, width, height) + struct.pack(
        f"<{len(params)}d", *params
    )


def _image_record(image_id, qvec, tvec, camera_id, name, points):
    data = struct.pack("<i", image_id) + struct.pack("<4d", *qvec)
    data += struct.pack("<3d", *tvec) + struct.pack("<i", camera_id)
    data += name.encode("utf-8") + b"\0" + struct.pack("<Q", len(points))
    for x, y, pid in points:
        data += struct.pack("<ddq", x, y, pid)
    return data


def _point_record(point_id, xyz, rgb, error, track):
    data = struct.pack("<q", point_id) + struct.pack("<3d", *xyz)
    data += struct.pack("<3B", *rgb) + struct.pack("<d", error)
    data += struct.pack("<Q", len(track))
    for image_id, idx in track:
        data += struct.pack("<ii", image_id, idx)
    return data


def test_cameras_binary_round_trip():
    params = (500.0, 510.0, 320.0, 240.0)
    data = struct.pack("<Q", 1) + _camera_record(7, 1, 640, 480, params)
    cameras = read_cameras_binary(io.BytesIO(data))
    cam = cameras[7]
    assert cam.model is CameraModel.PINHOLE
    assert (cam.width, cam.height) == (640, 480)
    assert cam.params == params


def test_cameras_binary_invalid_model():
    data = struct.pack("<Q", 1) + _camera_record(1, 42, 10, 10, ())
    with pytest.raises(FormatError):
        read_cameras_binary(io.BytesIO(data))


def test_cameras_binary_truncated():
    data = struct.pack("<Q", 2) + _camera_record(1, 0, 10, 10, (1.0, 2.0, 3.0))
    with pytest.raises(FormatError):
        read_cameras_binary(io.BytesIO(data))


def test_cameras_text():
    text = "# Camera list\n1 SIMPLE_PINHOLE 800 600 700 400 300\n2 PINHOLE 64 32 50 51 32 16\n"
    cameras = read_cameras_text(io.StringIO(text))
    assert sorted(cameras) == [1, 2]
    assert cameras[1].model is CameraModel.SIMPLE_PINHOLE
    assert cameras[1].params == (700.0, 400.0, 300.0)
    assert cameras[2].width == 64
    assert cameras[2].focal() == (50.0, 51.0)


def test_cameras_text_accepts_bytes_lines():
    cameras = read_cameras_text(io.BytesIO(b"3 SIMPLE_RADIAL 10 20 5 5 10 0.5\n"))
    assert cameras[3].model is CameraModel.SIMPLE_RADIAL
    assert cameras[3].height == 20


@pytest.mark.parametrize(
    "line",
    [
        "1 PINHOLE 640\n",
        "1 UNKNOWN_MODEL 640 480 1 2 3\n",
        "1 PINHOLE 640 480 1 2 3\n",
        "x PINHOLE 640 480 1 2 3 4\n",
        "1 PINHOLE -5 480 1 2 3 4\n",
    ],
)
def test_cameras_text_errors(line):
    with pytest.raises(FormatError):
        read_cameras_text(io.StringIO(line))


def test_images_binary_round_trip():
    data = struct.pack("<Q", 1) + _image_record(
        5, (1.0, 0.0, 0.5, 0.25), (1.5, -2.0, 3.0), 7, "frame_01.png",
        [(10.5, 20.25, 3), (1.0, 2.0, -1)],
    )
    images = read_images_binary(io.BytesIO(data))
    image = images[5]
    assert isinstance(image, ColmapImage)
    assert image.quat == (0.0, 0.5, 0.25, 1.0)
    assert image.tvec == (1.5, -2.0, 3.0)
    assert image.camera_id == 7
    assert image.name == "frame_01.png"
    assert image.xys == [(10.5, 20.25), (1.0, 2.0)]
    assert image.point3d_ids == [3, -1]


def test_images_binary_missing_terminator():
    data = struct.pack("<Q", 1) + _image_record(1, (1, 0, 0, 0), (0, 0, 0), 1, "a", [])
    cut = data[: data.index(b"a\0") + 1]
    with pytest.raises(FormatError):
        read_images_binary(io.BytesIO(cut))


def test_images_text_with_empty_observation_line():
    text = (
        "# Image list\n"
        "1 1 0 0 0 0.5 1.5 2.5 3 a.png\n"
        "\n"
        "2 0.5 0.5 0.5 0.5 4 5 6 3 b.png\n"
        "1.5 2.5 10 3.5 4.5 -1\n"
    )
    images = read_images_text(io.StringIO(text))
    assert sorted(images) == [1, 2]
    assert images[1].name == "a.png"
    assert images[1].xys == []
    assert images[1].tvec == (0.5, 1.5, 2.5)
    assert images[2].quat == (0.5, 0.5, 0.5, 0.5)
    assert images[2].xys == [(1.5, 2.5), (3.5, 4.5)]
    assert images[2].point3d_ids == [10, -1]


def test_images_text_bad_observation_count():
    text = "1 1 0 0 0 0 0 0 1 a.png\n1.0 2.0\n"
    with pytest.raises(FormatError):
        read_images_text(io.StringIO(text))


def test_points_binary_round_trip():
    data = struct.pack("<Q", 2)
    data += _point_record(11, (1.0, 2.0, 3.0), (255, 0, 128), 0.5, [(1, 4), (2, 9)])
    data += _point_record(12, (-1.0, 0.0, 0.25), (1, 2, 3), 1.25, [])
    points = read_points_binary(io.BytesIO(data))
    assert sorted(points) == [11, 12]
    first = points[11]
    assert isinstance(first, Point3D)
    assert first.xyz == (1.0, 2.0, 3.0)
    assert first.rgb == (255, 0, 128)
    assert first.error == 0.5
    assert first.image_ids == [1, 2]
    assert first.point2d_idxs == [4, 9]
    assert points[12].image_ids == []


def test_points_text():
    text = "# 3D point list\n7 1.0 2.0 3.0 10 20 30 0.5 1 2 3 4\n"
    points = read_points_text(io.StringIO(text))
    point = points[7]
    assert point.xyz == (1.0, 2.0, 3.0)
    assert point.rgb == (10, 20, 30)
    assert point.image_ids == [1, 3]
    assert point.point2d_idxs == [2, 4]


@pytest.mark.parametrize(
    "line",
    [
        "7 1.0 2.0 3.0 10 20 30\n",
        "7 1.0 2.0 3.0 10 20 30 0.5 1\n",
        "7 1.0 2.0 3.0 256 20 30 0.5\n",
        "7 1.0 abc 3.0 10 20 30 0.5\n",
    ],
)
def test_points_text_errors(line):
    with pytest.raises(FormatError):
        read_points_text(io.StringIO(line))


def test_read_input_dispatches_on_type_and_encoding():
    params = (700.0, 400.0, 300.0)
    binary = struct.pack("<Q", 1) + _camera_record(2, 0, 800, 600, params)
    from_binary = read_input(io.BytesIO(binary), InputType.CAMERAS, True)
    from_text = read_input(
        io.StringIO("2 SIMPLE_PINHOLE 800 600 700 400 300\n"), InputType.CAMERAS, False
    )
    assert from_binary == from_text


def test_read_input_points_text():
    points = read_input(io.StringIO("3 0 0 0 1 1 1 0.0\n"), InputType.POINTS3D, False)
    assert list(points) == [3]
    assert points[3].rgb == (1, 1, 1)


def test_read_input_images_binary():
    data = struct.pack("<Q", 1) + _image_record(9, (1, 0, 0, 0), (0, 0, 0), 1, "x.jpg", [])
    images = read_input(io.BytesIO(data), InputType.IMAGES, True)
    assert images[9].name == "x.jpg"
    assert images[9].quat == (0.0, 0.0, 0.0, 1.0)
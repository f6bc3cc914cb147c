import pytest

from splatforge.cameras import Camera, CameraModel


def test_from_id_known_and_unknown():
    assert CameraModel.from_id(0) is CameraModel.SIMPLE_PINHOLE
    assert CameraModel.from_id(10) is CameraModel.THIN_PRISM_FISHEYE
    assert CameraModel.from_id(11) is None
    assert CameraModel.from_id(-1) is None


@pytest.mark.parametrize("model", list(CameraModel))
def test_id_and_name_round_trip(model):
    assert CameraModel.from_id(model.model_id) is model
    assert CameraModel.from_name(model.name) is model


def test_from_name_is_exact():
    assert CameraModel.from_name("OPENCV_FISHEYE") is CameraModel.OPENCV_FISHEYE
    assert CameraModel.from_name("opencv") is None
    assert CameraModel.from_name("") is None


@pytest.mark.parametrize(
    "model, count",
    [
        (CameraModel.SIMPLE_PINHOLE, 3),
        (CameraModel.PINHOLE, 4),
        (CameraModel.RADIAL, 5),
        (CameraModel.OPENCV, 8),
        (CameraModel.FULL_OPENCV, 12),
        (CameraModel.THIN_PRISM_FISHEYE, 12),
    ],
)
def test_num_params(model, count):
    assert model.num_params() == count


def test_pinhole_focal_and_principal_point():
    cam = Camera(1, CameraModel.PINHOLE, 640, 480, (500.0, 510.0, 320.0, 240.0))
    assert cam.focal() == (500.0, 510.0)
    assert cam.principal_point() == (320.0, 240.0)


def test_simple_pinhole_shares_focal():
    cam = Camera(2, CameraModel.SIMPLE_PINHOLE, 800, 600, (700.0, 400.0, 300.0))
    assert cam.focal() == (700.0, 700.0)
    assert cam.principal_point() == (400.0, 300.0)


def test_simple_radial_uses_single_focal():
    cam = Camera(3, CameraModel.SIMPLE_RADIAL, 100, 100, (90.0, 50.0, 49.0, 0.01))
    assert cam.focal() == (90.0, 90.0)
    assert cam.principal_point() == (50.0, 49.0)


def test_opencv_uses_two_focals():
    params = (600.0, 610.0, 330.0, 250.0, 0.1, 0.2, 0.0, 0.0)
    cam = Camera(4, CameraModel.OPENCV, 660, 500, params)
    assert cam.focal() == (600.0, 610.0)
    assert cam.principal_point() == (330.0, 250.0)
import pytest

from splatforge.errors import (
    BackendError,
    BadRequestError,
    DatasetError,
    FormatError,
    FormatNotSupportedError,
    InternalError,
    NotFoundError,
    PipelineError,
    ZipExtractError,
)


def test_format_error_is_dataset_error_with_detail():
    err = FormatError("Camera file could be found")
    assert isinstance(err, DatasetError)
    assert err.detail == "Camera file could be found"
    assert str(err) == "Failed to load format: Camera file could be found"


def test_format_not_supported_message():
    err = FormatNotSupportedError()
    assert str(err) == (
        "Format not recognized: Only colmap and nerfstudio json are supported."
    )
    with pytest.raises(DatasetError):
        raise err


def test_pipeline_error_message():
    err = PipelineError()
    assert str(err) == "Dataset Error"


def test_pipeline_error_chains_dataset_error():
    format_error = FormatError("broken")
    with pytest.raises(PipelineError) as info:
        try:
            raise format_error
        except DatasetError as cause:
            raise PipelineError() from cause
    error = info.value
    assert str(error) == "Dataset Error"
    cause = error.__cause__
    assert cause is format_error
    assert cause.detail == "broken"
    assert str(cause) == "Failed to load format: broken"


@pytest.mark.parametrize(
    "error, status, text",
    [
        (BadRequestError("Unsupported content type"), 400, "Invalid input: Unsupported content type"),
        (NotFoundError(), 404, "Scene not found"),
        (ZipExtractError("bad archive"), 400, "Zip Extract error: bad archive"),
        (InternalError(), 500, "Internal server error"),
    ],
)
def test_backend_errors_carry_status_and_message(error, status, text):
    assert isinstance(error, BackendError)
    assert error.status_code == status
    assert error.message == text


def test_backend_error_default():
    err = BackendError()
    assert err.status_code == 500
    assert str(err) == "Internal server error"
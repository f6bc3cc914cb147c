"""Exceptions raised while loading datasets, running the pipeline and serving requests."""


class DatasetError(Exception):
    """A dataset could not be loaded."""


class FormatError(DatasetError):
    """The files of a dataset are missing or malformed."""

    def __init__(self, detail):
        self.detail = detail
        super().__init__(f"Failed to load format: {detail}")


class FormatNotSupportedError(DatasetError):
    """The dataset is in a layout that is not recognised."""

    def __init__(self):
        super().__init__(
            "Format not recognized: Only colmap and nerfstudio json are supported."
        )


class PipelineError(Exception):
    """The training pipeline failed; the cause is chained as ``__cause__``."""

    def __init__(self, message="Dataset Error"):
        super().__init__(message)


class BackendError(Exception):
    """Base class for errors that the HTTP server turns into responses."""

    status_code = 500

    def __init__(self, message="Internal server error"):
        super().__init__(message)

    @property
    def message(self):
        return str(self)


class BadRequestError(BackendError):
    """The client sent input that cannot be handled."""

    status_code = 400

    def __init__(self, detail):
        self.detail = detail
        super().__init__(f"Invalid input: {detail}")


class NotFoundError(BackendError):
    """The requested scene does not exist."""

    status_code = 404

    def __init__(self):
        super().__init__("Scene not found")


class ZipExtractError(BackendError):
    """An uploaded archive could not be unpacked."""

    status_code = 400

    def __init__(self, detail):
        self.detail = detail
        super().__init__(f"Zip Extract error: {detail}")


class InternalError(BackendError):
    """Something failed on the server side."""

    status_code = 500

    def __init__(self):
        super().__init__("Internal server error")
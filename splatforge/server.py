"""HTTP API for uploading and listing scenes."""

import argparse
import logging
from pathlib import Path

import requests
from flask import Flask, Response, jsonify, request

from .errors import BackendError, BadRequestError, InternalError, NotFoundError
from .store import DEFAULT_DATABASE, SceneMetadata, SceneRepository, SceneSource, SourceKind

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 1024 * 1024 * 1024 * 2
ZIP_FILENAME = "scene.zip"
_DOWNLOAD_TIMEOUT = 60


def sanitize_file_path(path):
    """Drop empty, dot and hidden components so a path stays inside its directory."""
    components = (
        part
        for part in path.replace("\\", "/").split("/")
        if part and part not in (".", "..") and not part.startswith(".")
    )
    return "/".join(components)


def _write(path, data):
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as err:
        raise InternalError() from err


def _copy_to_dir(data, file_path, directory):
    target = directory / sanitize_file_path(file_path)
    if target == directory:
        raise BadRequestError(f"Invalid file name: {file_path}")
    _write(target, data)


def _make_dir(path):
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as err:
        raise InternalError() from err


def _scene_response(metadata):
    return {"name": metadata.name}


def _multipart_upload(repository, scenes_dir):
    name = request.form.get("name")
    if name is None:
        raise BadRequestError("Failed to parse multipart data")
    if not repository.can_add(name):
        raise BadRequestError(f"Upload already exists: {name}")
    dir_name = sanitize_file_path(name)
    if not dir_name:
        raise BadRequestError(f"Invalid scene name: {name}")
    base = scenes_dir / dir_name
    _make_dir(base)

    source = None
    for _, upload in request.files.items(multi=True):
        filename = upload.filename or "unknown"
        data = upload.read()
        if filename.endswith(".zip"):
            zip_path = base / ZIP_FILENAME
            _write(zip_path, data)
            source = SceneSource.zip(zip_path)
        else:
            _copy_to_dir(data, filename, base)
            if source is None:
                source = SceneSource.directory(base)

    if source is None:
        raise BadRequestError("No scene files were uploaded")
    try:
        repository.add_scene(SceneMetadata(name, source))
    except ValueError as err:
        raise InternalError() from err
    return {"name": name}


def _download(url, scenes_dir):
    base = scenes_dir / sanitize_file_path(url)
    _make_dir(base)
    try:
        response = requests.get(url, timeout=_DOWNLOAD_TIMEOUT)
    except requests.RequestException as err:
        raise InternalError() from err
    if not 200 <= response.status_code < 300:
        raise BadRequestError("Failed to download url")

    content_type = response.headers.get("content-type", "")
    data = response.content
    if "application/zip" in content_type or url.lower().endswith(".zip"):
        _write(base / ZIP_FILENAME, data)
        return SceneSource.zip(base)
    filename = sanitize_file_path(url.split("/")[-1]) or "downloaded_file"
    _write(base / filename, data)
    return SceneSource.directory(base)


def _json_upload(repository, scenes_dir):
    try:
        source = SceneSource.from_dict(request.get_json(silent=True))
    except ValueError:
        raise BadRequestError("Failed to parse JSON data") from None
    if source.kind is not SourceKind.URL:
        raise BadRequestError(
            f"Only Url sources are supported via JSON. Got: {source.to_dict()}"
        )
    url = source.location
    logger.info("Received URL upload: %s", url)
    final_source = _download(url, scenes_dir)
    try:
        repository.add_scene(SceneMetadata(url, final_source))
    except ValueError as err:
        raise InternalError() from err
    return {"name": url}


def create_app(repository, data_dir="data"):
    """Build the Flask application serving the scene API."""
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_UPLOAD_BYTES
    scenes_dir = Path(data_dir) / "scenes"

    @app.errorhandler(BackendError)
    def _handle_backend_error(err):
        if err.__cause__ is not None:
            logger.error("Request failed: %s", err.__cause__)
        return Response(err.message, status=err.status_code, mimetype="text/plain")

    @app.post("/upload_scene")
    def upload_scene():
        content_type = request.headers.get("Content-Type", "")
        if "multipart/form-data" in content_type:
            return jsonify(_multipart_upload(repository, scenes_dir))
        if "application/json" in content_type:
            return jsonify(_json_upload(repository, scenes_dir))
        raise BadRequestError("Unsupported content type")

    @app.get("/scene/<name>")
    def get_scene(name):
        scene = repository.get_scene(name)
        if scene is None:
            raise NotFoundError()
        return jsonify(_scene_response(scene))

    @app.get("/scenes")
    def get_scenes():
        return jsonify([_scene_response(scene) for scene in repository.list_scenes()])

    return app


def main(argv=None):
    """Run the scene server."""
    parser = argparse.ArgumentParser(description="Serve the scene upload API.")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=3000)
    parser.add_argument("--db", default=DEFAULT_DATABASE, help="path of the scene database")
    parser.add_argument("--data-dir", default="data", help="where uploaded scenes are stored")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    with SceneRepository(args.db) as repository:
        app = create_app(repository, args.data_dir)
        logger.info("Listening on http://%s:%d", args.host, args.port)
        app.run(host=args.host, port=args.port, threaded=True)
    return 0
# splatforge

Tools for preparing Gaussian splat training data:

- read COLMAP sparse reconstructions (`cameras`, `images`, `points3D`, in
  binary or text form) into Python objects;
- build a training / evaluation `Dataset` of camera views and images, with
  optional masks, a resolution limit, frame subsampling and an eval split;
- estimate a scene's up axis and extent from its camera poses;
- hand out shuffled training samples from background threads;
- a small HTTP server for uploading scenes (folder uploads, zip archives or
  download URLs) and listing them.

## Installation

```
pip install splatforge
```

For running the tests:

```
pip install "splatforge[test]"
pytest
```

## Reading COLMAP data

```python
from splatforge.colmap import InputType, read_input

with open("sparse/0/cameras.bin", "rb") as stream:
    cameras = read_input(stream, InputType.CAMERAS, binary=True)

for camera_id, camera in cameras.items():
    print(camera_id, camera.model, camera.focal(), camera.principal_point())
```

`read_input` dispatches to one of `read_cameras_binary`, `read_cameras_text`,
`read_images_binary`, `read_images_text`, `read_points_binary` and
`read_points_text`, which can also be called directly. They return dicts keyed
by id of `splatforge.cameras.Camera`, `splatforge.colmap.ColmapImage` and
`splatforge.colmap.Point3D`. Image rotations are stored as quaternions
`(x, y, z, w)`. Truncated or malformed input raises
`splatforge.errors.FormatError`.

`CameraModel` covers the eleven COLMAP camera models; `CameraModel.from_id`
and `CameraModel.from_name` return `None` for unknown models.

## Loading a dataset

```python
from splatforge.colmap_loader import load_dataset
from splatforge.config import LoadConfig

config = LoadConfig(max_resolution=1600, eval_split_every=8)
splats, dataset = load_dataset("path/to/scene", config)

print(len(dataset.train.views), "training views")
if dataset.eval_scene is not None:
    print(len(dataset.eval_scene.views), "evaluation views")
print("estimated up axis:", dataset.estimate_up())
print("scene extent:", dataset.train.estimate_extent())

for message in splats:
    print(message.meta.total_splats, "initial points", message.means.shape)
```

`load_dataset` looks for `cameras.bin` (or else `cameras.txt`) anywhere under
the root and reads `images.bin` / `images.txt` from the same directory. Images
are ordered by name, then limited by `max_frames` and thinned by
`subsample_frames`; with `eval_split_every = n` every nth of them goes to the
evaluation scene. Each COLMAP image name is matched to a file under the root;
a file with the same stem in a `masks` directory next to the image's directory
is used as its alpha mask. Images that cannot be found are skipped with a
warning.

The first return value is a generator that reads `points3D` only when
iterated. It yields one `SplatMessage` with the point centres (`means`) and
their zeroth-band spherical harmonic colours (`sh_dc`, see `rgb_to_sh`), thinned
by `subsample_points`; it yields nothing when there are no points.

### Images and samples

`splatforge.images.ImageFile.open` reads only an image's header. `dim()`,
`width()`, `height()` and `aspect_ratio()` give its size after fitting into
`max_resolution` (see `fit_within`), and `load()` decodes it, copies the mask
into the alpha channel and scales it down. `view_to_sample_image` converts an
image with straight alpha into premultiplied alpha, leaving images without
alpha, or whose alpha is a mask, unchanged. `ImageCache` keeps decoded samples
up to a size budget in MiB.

`splatforge.scene.SceneLoader` loads the views of a `Scene` in shuffled order
on background threads and returns `SceneBatch` objects holding float images in
`[0, 1]` of shape `(H, W, 3)` or `(H, W, 4)`:

```python
from splatforge.scene import SceneLoader

with SceneLoader(dataset.train, seed=42) as loader:
    batch = loader.next_batch()
    print(batch.img.shape, batch.has_alpha(), batch.camera.position)
```

`Scene` also offers `bounds()`, `adjusted_bounds(cam_near, cam_far)` and
`get_nearest_view(reference)` for a 4x4 camera-to-world transform.

## Scene server

```
splatforge-server --help
```

Options: `--host` (default `0.0.0.0`), `--port` (default `3000`), `--db`
(the scene database file, default `goonr.db`) and `--data-dir` (default
`data`). The server offers:

- `POST /upload_scene` — either a multipart form with a `name` field and the
  scene files (or one `.zip` file), or a JSON body naming a download URL,
  such as `{"Url": {"url": "https://example.com/scene.zip"}}`;
- `GET /scene/<name>` — `{"name": ...}` for one scene, or 404;
- `GET /scenes` — all scenes, ordered by name.

Uploaded files are kept under `<data-dir>/scenes/<name>`, with path components
that are empty, `.`, `..` or hidden dropped (see `sanitize_file_path`); a zip
upload is stored as `scene.zip`. Uploading a name that already exists is
rejected with 400. Requests are limited to 2 GiB. Scenes are recorded with
`splatforge.store.SceneRepository`, an SQLite catalogue of `SceneMetadata`
entries. To embed the server in another application, call
`splatforge.server.create_app(repository, data_dir)`.

## Utilities

- `splatforge.prefix_sum.prefix_sum` — inclusive prefix sum of integers with
  32-bit wrap-around; `calc_cube_count` computes work-group counts.
- `splatforge.linalg.compute_sorted_eigenvectors` — eigenvectors of a
  symmetric 3×3 matrix, largest eigenvalue first; `estimate_up` estimates an
  up direction from camera poses.
- `splatforge.config.PipelineConfig` — training run settings (seed, start
  iteration, evaluation and export intervals, export path and file name).

## What the package does not do

The package prepares and serves scene data only. It does not train, render or
export Gaussian splats: `PipelineConfig` holds settings but nothing in the
package runs a training loop, and the server has no endpoint for starting
training or streaming its progress. Zip uploads are stored as received and
are not unpacked, and there is no viewer or web front end.
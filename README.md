# clusterimager

A small HTTP service that crops and resizes images. Upload a PNG or JPEG
image as a multipart form field named `image` and get the result back as a
JPEG.

## Install

```
pip install .
```

## Run the server

```
clusterimager
clusterimager --host 127.0.0.1 --port 9000
```

By default the server listens on `0.0.0.0:8080`. On SIGINT or SIGTERM it
stops serving, waiting up to 5 seconds for the server loop to finish, and
exits with status 0; if it cannot listen it exits with status 1.

Every request gets a fresh `X-Request-ID` response header and two JSON log
lines on standard output ("request started" and "request completed", with
method, path, status, size and duration in milliseconds).

## Endpoints

Both endpoints accept `POST` only. Parameters go in the query string as
integers; the image goes in the multipart form field `image`.

- `POST /crop?x=..&y=..&width=..&height=..` crops a `width` × `height`
  region starting at (`x`, `y`). `x` and `y` must not be negative and the
  region must lie inside the image.
- `POST /resize?width=..&height=..` scales the image to exactly
  `width` × `height` with Lanczos filtering.

Every width and height must be between 1 and 10000.

Responses:

- `200` with `Content-Type: image/jpeg` on success (transparent areas are
  flattened onto black).
- `400` for a missing or non-integer query parameter
  (`Invalid value for 'x'` and so on), out-of-range parameters
  (`Invalid parameters`), a body that is not `multipart/form-data`, a
  missing `image` field, an image that is not PNG or JPEG, or a crop
  region outside the image (`Failed to process image`).
- `405` for any method other than `POST`.
- `404` for any other path.

## Using the library

```python
from clusterimager.imaging import load_image, export_image
from clusterimager.processors import default_registry

image = load_image("photo.png")
crop = default_registry().get("crop")
params = {"x": 10, "y": 10, "width": 50, "height": 50}
crop.validate_params(params)
export_image(crop.process(image, params), "photo-cropped.jpg")
```

- `clusterimager.imaging` has `crop_image`, `resize_image`, `load_image`
  and `export_image`. `export_image` writes `.jpg`, `.jpeg` and `.png`
  files and raises `UnsupportedFormatError` for any other extension.
- `clusterimager.processors` has the `CropProcessor` and
  `ResizeProcessor`, and a thread-safe `Registry` whose `get` raises
  `ProcessorNotFoundError` and whose `register` raises
  `ProcessorAlreadyRegisteredError` for a name already taken.
- `clusterimager.validation` has `validate_dimension`,
  `validate_crop_params` and `validate_resize_params`, which raise
  `ValidationError` (a `ValueError`) or one of its subclasses.
- `clusterimager.errors` has `AppError`, an exception carrying an HTTP
  status, with `bad_request`, `internal_error` and `method_not_allowed`.

To serve the application from another WSGI server, build it with
`clusterimager.server.create_app(logger, registry)`; both arguments may be
left out.

## Jobs in Redis

`clusterimager.jobs` defines `Job` records (with `to_json`/`from_json`),
their `Status` and `JobType`, a `Filter` for listings and the abstract
`Store`. `clusterimager.redis_store.RedisStore` implements it on a Redis
server, keeping each job as JSON under `<prefix>:<id>` and one set of job
IDs per status:

```python
from clusterimager.jobs import Filter, Job, JobType, Status
from clusterimager.redis_store import RedisStore

with RedisStore.from_url("redis://localhost:6379/0", "jobs", ttl=3600) as store:
    store.create(Job(id="job-1", type=JobType.RESIZE, parameters={"width": 100, "height": 100}))
    store.update_status("job-1", Status.PROCESSING)
    queued = store.list(Filter(status=Status.QUEUED))
```

`get` raises `JobNotFoundError` for an unknown ID; Redis failures raise
`StoreError`. In `list`, `limit` and `offset` are applied only when more
jobs match than `limit`, and `since`/`until` compare against the creation
time.

## What it does not do

The HTTP server processes each upload while the request waits; it does not
create jobs or use the job store. `clusterimager.queue` (`Publisher`,
`Consumer`, `Queue`, `QueueConfig`) and `clusterimager.storage`
(`Storage`, `StorageConfig`, `ObjectMetadata`) are interfaces only: the
package has no message queue implementation and no object-storage
backend. The server sets no limit of its own on upload size.

## Tests

```
pip install .[test]
pytest
```
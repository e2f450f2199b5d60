[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "clusterimager"
version = "0.1.0"
description = "HTTP service that crops and resizes uploaded images, with a Redis job store and job, queue and storage interfaces"
requires-python = ">=3.10"
keywords = ["image", "crop", "resize", "http", "wsgi", "jobs", "redis"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Environment :: Web Environment",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: Multimedia :: Graphics",
]
dependencies = [
    "pillow",
    "werkzeug",
    "redis",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
clusterimager = "clusterimager.server:main"

[tool.hatch.build.targets.wheel]
packages = ["clusterimager"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

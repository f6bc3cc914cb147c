[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "splatforge"
version = "0.1.0"
description = "COLMAP scene loading, camera geometry helpers and a scene upload server for Gaussian splat training data"
requires-python = ">=3.10"
keywords = ["colmap", "gaussian-splatting", "3d", "photogrammetry", "dataset"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Framework :: Flask",
    "Topic :: Multimedia :: Graphics :: 3D Rendering",
    "Topic :: Scientific/Engineering :: Image Processing",
]
dependencies = [
    "numpy",
    "pillow",
    "flask",
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
splatforge-server = "splatforge.server:main"

[tool.hatch.build.targets.wheel]
packages = ["splatforge"]

[tool.pytest.ini_options]
addopts = "-ra"

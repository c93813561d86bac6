[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "calibu"
version = "0.1.0"
description = "Camera models, rig XML files, rectification and calibration-target geometry built on NumPy"
requires-python = ">=3.10"
keywords = [
    "camera",
    "calibration",
    "rectification",
    "computer vision",
    "conics",
    "kannala-brandt",
    "stereo",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Image Processing",
]
dependencies = [
    "numpy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["calibu"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

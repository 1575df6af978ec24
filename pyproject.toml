[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "adnodes"
version = "0.1.0"
description = "Forward- and reverse-mode automatic differentiation with expression nodes over NumPy arrays"
requires-python = ">=3.10"
dependencies = ["numpy"]
keywords = [
    "automatic differentiation",
    "autodiff",
    "gradient",
    "reverse mode",
    "forward mode",
    "dual numbers",
    "numpy",
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
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["adnodes"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "attnblocks"
version = "0.1.0"
description = "Transformer encoder and decoder building blocks on NumPy"
requires-python = ">=3.10"
dependencies = ["numpy"]
keywords = ["transformer", "attention", "numpy", "embeddings", "neural-network"]
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
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
attnblocks-demo = "attnblocks.demo:main"

[tool.hatch.build.targets.wheel]
packages = ["attnblocks"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

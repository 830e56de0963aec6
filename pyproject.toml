[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gcpclosecheck"
version = "0.1.0"
description = "Rules, escape analysis and resource tracking for finding Google Cloud client resources that are never closed or stopped"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = [
    "lint",
    "static-analysis",
    "google-cloud",
    "resource-leak",
    "spanner",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Quality Assurance",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["gcpclosecheck"]

[tool.hatch.build.targets.sdist]
include = [
    "gcpclosecheck",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dive"
version = "0.1.0"
description = "CI gating rules, evaluation reports and JSON export for container image layer analysis"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["container", "image", "layers", "docker", "efficiency", "ci"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Quality Assurance",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["dive"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vmoutil"
version = "0.1.0"
description = "Helpers for a monitoring operator: JVM heap sizing, JSON and throttled progress logging, shutdown signals and StatefulSet update planning"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "kubernetes",
    "operator",
    "opensearch",
    "statefulset",
    "jvm",
    "logging",
    "monitoring",
]
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
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["vmoutil"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "scaling_agent"
version = "0.1.0"
description = "Decision engine for an intelligent workload autoscaler: precedence resolution, validation, cost gating and cluster coordination."
requires-python = ">=3.10"
dependencies = []
keywords = ["autoscaling", "scaling", "cluster", "slo", "cost", "precedence"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["scaling_agent"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true

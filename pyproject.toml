[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cabbagesql"
version = "0.1.0"
description = "SQL query core: typed values, expressions, table schemas, plan nodes, optimizer passes and executors"
requires-python = ">=3.10"
dependencies = []
keywords = ["sql", "database", "query-planner", "optimizer", "executor"]
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
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["cabbagesql"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

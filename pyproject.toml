[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "varstruct"
version = "0.1.0"
description = "Convert dataclass structs to and from plain variant data, parse nested query strings, and compare and format structs."
requires-python = ">=3.10"
dependencies = []
keywords = ["serialization", "variant", "query-string", "dataclasses", "conversion"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["varstruct"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
